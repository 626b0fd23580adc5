"""NeuroStudy — centralized configuration."""
import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.environ.get('NEUROSTUDY_DATA_DIR', BASE_DIR)
DB_PATH = os.environ.get('NEUROSTUDY_DB_PATH', os.path.join(DATA_DIR, 'neurostudy.db'))
LOG_FILE = os.path.join(DATA_DIR, 'neurostudy_debug.log')

# Catalog snapshot ({CACHE_NAME}.json inside DATA_DIR)
CACHE_NAME = os.environ.get('NEUROSTUDY_CACHE_NAME', 'neurodata_cache')

# Bundled seed catalog used when no snapshot can be loaded
SEED_CATALOG_PATH = os.path.join(BASE_DIR, 'db', 'estructuras_anatomicas.json')

# Spaced repetition
SCHEDULER_DEFAULTS = {
    'initial_intervals': {'HARD': 1, 'MEDIUM': 3, 'EASY': 5},
    'base_priority': 100.0,
}

# Quiz / matching exercises
EXERCISE_DEFAULTS = {
    'quiz_length': 10,
    'quiz_options': 4,
    'matching_size': 5,
    'results_delay_s': 2.0,
}

# Progress statistics
PROGRESS_DEFAULTS = {
    'retention_points': {'EASY': 100, 'MEDIUM': 70, 'HARD': 30},
    'activity_days': {'week': 7, 'month': 30, 'all': 90},
    'review_list_limit': 10,
}
