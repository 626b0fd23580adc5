"""Tests for app.py service wiring and logging set-up."""
import logging
import logging.handlers

import pytest

import app
from app import create_app, configure_logging
from engine.scheduler import StudyScheduler


@pytest.fixture(autouse=True)
def root_handlers():
    """Drop handlers added by configure_logging after each test."""
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    app._file_handler = None
    yield
    for handler in root.handlers[:]:
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    app._file_handler = None


def test_create_app_starts_service(tmp_path, clock):
    service = create_app(log_file=str(tmp_path / 'debug.log'),
                         scheduler=StudyScheduler(now=clock), data_dir=str(tmp_path))
    assert len(service.nodes()) == 26
    assert (tmp_path / 'neurodata_cache.json').exists()


def test_create_app_reuses_snapshot(tmp_path, clock):
    log_file = str(tmp_path / 'debug.log')
    create_app(log_file=log_file, scheduler=StudyScheduler(now=clock), data_dir=str(tmp_path))
    events = []
    service = create_app(log_file=log_file, scheduler=StudyScheduler(now=clock),
                         data_dir=str(tmp_path), cache_name='neurodata_cache')
    service.subscribe(lambda event, payload: events.append(event))
    service.load_snapshot()
    assert events == ['catalog_loaded']
    assert service.catalog_stats()['nodes'] == 26


def test_create_app_writes_log_file(tmp_path, clock):
    log_file = tmp_path / 'debug.log'
    create_app(log_file=str(log_file), scheduler=StudyScheduler(now=clock),
               data_dir=str(tmp_path))
    app._file_handler.flush()
    text = log_file.read_text(encoding='utf-8')
    assert 'Catalog ready from seed: 26 structures' in text
    assert '[INFO] neurostudy:' in text


def test_configure_logging_runs_once(tmp_path):
    first = configure_logging(str(tmp_path / 'a.log'))
    second = configure_logging(str(tmp_path / 'b.log'))
    assert first is second
    assert isinstance(first, logging.handlers.TimedRotatingFileHandler)
    assert first.backupCount == 3
    assert sum(1 for h in logging.getLogger().handlers if h is first) == 1
    assert not (tmp_path / 'b.log').exists()
