"""Shared test fixtures — isolated temp DB for every test."""
import os
import sys
from datetime import datetime, timedelta

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class FixedClock:
    """Callable returning a controllable 'now'."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, days=0, hours=0):
        self.current += timedelta(days=days, hours=hours)


@pytest.fixture(autouse=True)
def temp_db(monkeypatch, tmp_path):
    """Redirect DB_PATH to a temp file for every test."""
    db_path = str(tmp_path / 'test_neurostudy.db')
    monkeypatch.setattr('config.settings.DB_PATH', db_path)

    # Also patch the already-imported database module
    import db.database as db_mod
    monkeypatch.setattr(db_mod, 'DB_PATH', db_path)

    from db.database import init_db
    init_db()

    return db_path


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 10, 9, 0))


@pytest.fixture
def scheduler(clock):
    from engine.scheduler import StudyScheduler
    return StudyScheduler(now=clock)


@pytest.fixture
def graph():
    from models.knowledge_graph import KnowledgeGraph
    return KnowledgeGraph()


@pytest.fixture
def populated_graph(graph):
    """Small catalog: three central nodes, one vascular node, two relations."""
    thal = graph.create_node('SC', 'NUC', 'THAL', 'THAL', 'NUC-THAL', 'NUCL',
                             'Tálamo', 'Thalamus', 'Relevo sensitivo',
                             ['Relevo sensitivo'])
    caud = graph.create_node('SC', 'NUC', 'CAUD', 'CAUD', 'NUC-CAUD', 'NUCL',
                             'Núcleo Caudado', 'Nucleus caudatus', 'Núcleo basal',
                             ['Control motor'])
    insula = graph.create_node('SC', 'SG', 'CORT', 'CORT', 'INS-CORT', 'CORT',
                               'Ínsula', 'Insula', 'Lóbulo oculto',
                               ['Interocepción'])
    artery = graph.create_node('SV', 'AR', 'CER', 'CER-POST', 'ART-CER-POST', 'ANAT',
                               'Arteria Cerebral Posterior', 'Arteria cerebri posterior',
                               'Irriga el Tálamo', ['Aporte sanguíneo'])
    graph.create_relation('IRRIGATES', artery['code'], thal['code'])
    graph.create_relation('BORDERS', caud['code'], thal['code'])
    return graph


@pytest.fixture
def service(tmp_path, clock):
    """StudyService writing its snapshot into tmp_path, bundled seed catalog."""
    from engine.scheduler import StudyScheduler
    from services.study_service import StudyService
    return StudyService(scheduler=StudyScheduler(now=clock), data_dir=str(tmp_path))
