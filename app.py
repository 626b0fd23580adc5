"""NeuroStudy — application entry point for the presentation layer."""
import logging
import logging.handlers

from config.settings import LOG_FILE
from services.study_service import StudyService

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

# Set once per process by configure_logging()
_file_handler = None


def configure_logging(log_file=LOG_FILE):
    """Console logging plus a debug file rotated daily, 3-day retention.

    Handlers go on the root logger; later calls return the existing
    file handler.
    """
    global _file_handler
    if _file_handler is not None:
        return _file_handler

    file_handler = logging.handlers.TimedRotatingFileHandler(
        log_file, when='midnight', backupCount=3, encoding='utf-8',
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(stream_handler)
    root.addHandler(file_handler)
    _file_handler = file_handler
    return file_handler


def create_app(log_file=LOG_FILE, **service_options):
    """Configure logging, then build and start the shared StudyService.

    Every view of the presentation layer should receive this one instance.
    """
    configure_logging(log_file)
    service = StudyService(**service_options)
    source = service.start()
    stats = service.catalog_stats()
    logging.getLogger('neurostudy').info(
        'Catalog ready from %s: %d structures, %d relations',
        source, stats['nodes'], stats['relations'],
    )
    return service
