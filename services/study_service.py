"""Study service: single owner of the catalog and the scheduler.

The presentation layer talks only to this object. All mutations run under
one lock; observers registered with subscribe() are called with
(event, payload) after each change.
"""
import logging
import os
import sqlite3
import threading

from config import settings
from db.database import init_db
from engine import codes
from engine import exercises
from engine import progress
from engine.relation_inference import infer_relations
from engine.scheduler import StudyScheduler, normalize_difficulty
from models import review as review_model
from models import study_session as session_model
from models.knowledge_graph import KnowledgeGraph
from services import import_service

logger = logging.getLogger(__name__)


class StudyService:

    def __init__(self, repository=None, scheduler=None, data_dir=None,
                 cache_name=None, seed_path=None, persist_reviews=True):
        self.repository = repository or KnowledgeGraph()
        self.scheduler = scheduler or StudyScheduler()
        self.data_dir = data_dir or settings.DATA_DIR
        self.cache_name = cache_name or settings.CACHE_NAME
        self.seed_path = seed_path or settings.SEED_CATALOG_PATH
        self.persist_reviews = persist_reviews
        self._lock = threading.RLock()
        self._observers = []
        self._timers = []

    @property
    def snapshot_path(self):
        return os.path.join(self.data_dir, f'{self.cache_name}.json')

    # --- Observers ---

    def subscribe(self, callback):
        self._observers.append(callback)
        return callback

    def unsubscribe(self, callback):
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify(self, event, payload=None):
        for callback in list(self._observers):
            try:
                callback(event, payload)
            except Exception:
                logger.exception('Observer %r failed on %s', callback, event)

    # --- Startup ---

    def start(self):
        """Load the cached snapshot, falling back to the bundled seed catalog.

        Returns 'cache', 'seed' or 'empty' depending on where the catalog
        came from.
        """
        with self._lock:
            if self.repository.import_from_json(self.snapshot_path):
                logger.info('Catalog loaded from cache %s', self.snapshot_path)
                source = 'cache'
            else:
                source = self._load_seed()
            if self.persist_reviews:
                init_db()
                self.scheduler.restore(review_model.get_all(), session_model.get_all())
        self._notify('catalog_loaded', {'source': source})
        return source

    def _load_seed(self):
        try:
            nodes = import_service.import_catalog_file(self.repository, self.seed_path)
        except (OSError, ValueError) as e:
            logger.error('Could not import seed catalog %s: %s', self.seed_path, e)
            return 'empty'
        logger.info('Imported %d structures from seed catalog', len(nodes))
        infer_relations(self.repository)
        self.repository.export_to_json(self.snapshot_path)
        return 'seed'

    # --- Catalog queries ---

    def nodes(self):
        return self.repository.all_nodes()

    def node(self, code):
        return self.repository.find_node_by_code(code)

    def node_by_raw_id(self, raw_id):
        return self.repository.find_node_by_raw_id(raw_id)

    def nodes_by_system(self, system):
        return self.repository.find_by_system(system)

    def nodes_by_category(self, category):
        return self.repository.find_by_category(category)

    def nodes_by_region(self, region):
        return self.repository.find_by_region(region)

    def search(self, text, system=None, category=None):
        """Text search, optionally narrowed to a system and category."""
        results = self.repository.search(text)
        if system is not None:
            allowed = {n['code'] for n in self.repository.find_by_system(system)}
            results = [n for n in results if n['code'] in allowed]
        if category is not None:
            results = [n for n in results if codes.node_category(n) == category]
        return results

    def relations_by_type(self, rel_type):
        return self.repository.find_relations_by_type(rel_type)

    def relations_from(self, code):
        return self.repository.find_relations_from(code)

    def relations_to(self, code):
        return self.repository.find_relations_to(code)

    def related_nodes(self, code):
        return self.repository.related_nodes(code)

    def catalog_stats(self):
        return self.repository.stats()

    def systems(self):
        return codes.system_menu()

    def relation_types(self):
        return [{'type': t, 'description': codes.relation_description(t)}
                for t in codes.RELATION_TYPES]

    # --- Import / export ---

    def import_catalog_json(self, text, infer=True):
        """Import a wire-format catalog. Raises ValueError on malformed input."""
        with self._lock:
            nodes = import_service.import_catalog_json(self.repository, text)
            if infer:
                infer_relations(self.repository,
                                only_codes={n['code'] for n in nodes})
        self._notify('catalog_imported', {'count': len(nodes)})
        return nodes

    def export_snapshot(self):
        with self._lock:
            return self.repository.export_to_json(self.snapshot_path)

    def load_snapshot(self):
        with self._lock:
            loaded = self.repository.import_from_json(self.snapshot_path)
        if loaded:
            self._notify('catalog_loaded', {'source': 'cache'})
        return loaded

    # --- Reviews ---

    def record_review(self, code, difficulty, source='flashcard'):
        """Schedule and persist one review.

        When the database write fails the scheduler is put back as it was
        and the sqlite3 error propagates.
        """
        difficulty = normalize_difficulty(difficulty)
        if source not in review_model.SOURCES:
            raise ValueError(f'Unknown review source: {source!r}')
        with self._lock:
            saved = self.scheduler.state() if self.persist_reviews else None
            record = self.scheduler.record_review(code, difficulty)
            if self.persist_reviews:
                try:
                    session_model.save_with_review(
                        self.scheduler.today_session(), code, record, source,
                    )
                except sqlite3.Error:
                    self.scheduler.restore(*saved)
                    logger.error('Review of %s not saved, scheduler rolled back', code)
                    raise
        self._notify('review_recorded', {'code': code, 'record': record})
        return record

    def priority(self, code):
        return self.scheduler.priority(code)

    def order_by_priority(self, nodes):
        return self.scheduler.order_by_priority(nodes)

    def study_queue(self, system=None, category=None):
        """Catalog nodes (optionally filtered) in study order."""
        if system is not None:
            nodes = self.repository.find_by_system(system)
        else:
            nodes = self.repository.all_nodes()
        if category is not None:
            nodes = [n for n in nodes if codes.node_category(n) == category]
        return self.scheduler.order_by_priority(nodes)

    def due_for_review(self):
        return self.scheduler.due_for_review()

    def close_today_session(self):
        with self._lock:
            session = self.scheduler.close_today_session()
            if session is not None and self.persist_reviews:
                session_model.delete(session['date'])
        if session is not None:
            self._notify('session_closed', {'date': session['date']})
        return session

    # --- Exercises ---

    def quiz(self, system=None, category=None, limit=None, rng=None):
        limit = limit or settings.EXERCISE_DEFAULTS['quiz_length']
        return exercises.build_quiz(self.study_queue(system, category), limit, rng=rng)

    def answer_quiz(self, question, chosen_code):
        is_correct, difficulty = exercises.grade_quiz_answer(question, chosen_code)
        self.record_review(question['target_code'], difficulty, source='quiz')
        return is_correct

    def matching(self, system=None, category=None, rng=None):
        return exercises.build_matching(self.study_queue(system, category), rng=rng)

    def check_matching(self, exercise, connections):
        results = exercises.grade_matching(exercise, connections)
        for result in results:
            self.record_review(result['code'], result['difficulty'], source='matching')
        return results

    def schedule_results(self, callback, delay=None):
        """Call callback after delay seconds unless shutdown() runs first."""
        if delay is None:
            delay = settings.EXERCISE_DEFAULTS['results_delay_s']
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        self._timers = [t for t in self._timers if t.is_alive()]
        self._timers.append(timer)
        timer.start()
        return timer

    def shutdown(self):
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    # --- Progress ---

    def progress(self, period='week'):
        return progress.summary(self.repository, self.scheduler, period)
