"""Tests for models layer — review history and study session persistence."""
import sqlite3
from datetime import date, datetime

import pytest

from db.database import get_db, init_db, query_db
from models import review, study_session

THAL = 'NA-SC-NUC-THAL-THAL-001'
CAUD = 'NA-SC-NUC-CAUD-CAUD-001'


def _record(when, difficulty='EASY', interval=5):
    return {'timestamp': when, 'difficulty': difficulty, 'interval_days': interval}


# ===========================================================================
# Schema & migrations
# ===========================================================================

class TestSchema:

    def test_review_records_columns(self):
        cols = {r['name'] for r in query_db("PRAGMA table_info(review_records)")}
        assert {'node_code', 'reviewed_at', 'difficulty', 'interval_days', 'source'} <= cols

    def test_session_tables_exist(self):
        tables = {r['name'] for r in query_db(
            "SELECT name FROM sqlite_master WHERE type='table'")}
        assert {'study_sessions', 'session_difficulties'} <= tables

    def test_init_db_is_repeatable(self):
        init_db()
        init_db()
        cols = [r['name'] for r in query_db("PRAGMA table_info(review_records)")]
        assert cols.count('source') == 1

    def test_migration_adds_source_to_old_table(self, monkeypatch, tmp_path):
        old_path = str(tmp_path / 'old.db')
        conn = sqlite3.connect(old_path)
        conn.execute("""CREATE TABLE review_records (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            node_code TEXT NOT NULL,
            reviewed_at TEXT NOT NULL,
            difficulty TEXT NOT NULL,
            interval_days INTEGER NOT NULL)""")
        conn.execute("INSERT INTO review_records (node_code, reviewed_at, difficulty, interval_days) "
                     "VALUES (?, ?, ?, ?)", (THAL, '2026-03-01T09:00:00', 'EASY', 5))
        conn.commit()
        conn.close()

        import db.database as db_mod
        monkeypatch.setattr(db_mod, 'DB_PATH', old_path)
        init_db()

        assert review.count_by_source() == {'flashcard': 1}
        assert review.get_for_node(THAL)[0]['interval_days'] == 5

    def test_fresh_database_needs_no_migration(self, monkeypatch, tmp_path, caplog):
        import db.database as db_mod
        monkeypatch.setattr(db_mod, 'DB_PATH', str(tmp_path / 'fresh.db'))
        with caplog.at_level('INFO', logger='db.database'):
            init_db()
        assert 'source' in {r['name'] for r in query_db("PRAGMA table_info(review_records)")}
        assert not any('Migration' in r.getMessage() for r in caplog.records)

    def test_foreign_keys_enabled(self):
        conn = get_db()
        try:
            assert conn.execute('PRAGMA foreign_keys').fetchone()[0] == 1
        finally:
            conn.close()

    def test_difficulty_constraint(self):
        with pytest.raises(sqlite3.IntegrityError):
            review.create(THAL, _record(datetime(2026, 3, 1), difficulty='facil'))


# ===========================================================================
# Review records
# ===========================================================================

class TestReview:

    def test_create_and_read_back(self):
        when = datetime(2026, 3, 1, 9, 30)
        review.create(THAL, _record(when, 'MEDIUM', 3))
        assert review.get_for_node(THAL) == [_record(when, 'MEDIUM', 3)]

    def test_get_all_groups_by_node_in_order(self):
        review.create(THAL, _record(datetime(2026, 3, 2), 'EASY', 10))
        review.create(THAL, _record(datetime(2026, 3, 1), 'EASY', 5))
        review.create(CAUD, _record(datetime(2026, 3, 1), 'HARD', 1))
        history = review.get_all()
        assert set(history) == {THAL, CAUD}
        assert [r['interval_days'] for r in history[THAL]] == [5, 10]

    def test_sources(self):
        now = datetime(2026, 3, 1)
        review.create(THAL, _record(now))
        review.create(THAL, _record(now), source='quiz')
        review.create(CAUD, _record(now), source='matching')
        assert review.count_by_source() == {'flashcard': 1, 'quiz': 1, 'matching': 1}

    def test_unknown_source(self):
        with pytest.raises(ValueError):
            review.create(THAL, _record(datetime(2026, 3, 1)), source='exam')


# ===========================================================================
# Study sessions
# ===========================================================================

class TestStudySession:

    def _session(self, day, difficulties):
        return {'date': day, 'structures_studied': len(difficulties),
                'difficulties': dict(difficulties)}

    def test_save_and_get(self):
        day = date(2026, 3, 10)
        study_session.save(self._session(day, {THAL: 'EASY', CAUD: 'HARD'}))
        assert study_session.get_by_date(day) == self._session(
            day, {THAL: 'EASY', CAUD: 'HARD'})

    def test_save_replaces_difficulties(self):
        day = date(2026, 3, 10)
        study_session.save(self._session(day, {THAL: 'HARD'}))
        study_session.save(self._session(day, {THAL: 'EASY', CAUD: 'MEDIUM'}))
        stored = study_session.get_by_date(day)
        assert stored['structures_studied'] == 2
        assert stored['difficulties'] == {THAL: 'EASY', CAUD: 'MEDIUM'}

    def test_get_all_sorted_by_date(self):
        study_session.save(self._session(date(2026, 3, 10), {THAL: 'EASY'}))
        study_session.save(self._session(date(2026, 3, 1), {CAUD: 'EASY'}))
        assert [s['date'] for s in study_session.get_all()] == \
            [date(2026, 3, 1), date(2026, 3, 10)]

    def test_delete_cascades(self):
        day = date(2026, 3, 10)
        study_session.save(self._session(day, {THAL: 'EASY'}))
        study_session.delete(day)
        assert study_session.get_by_date(day) is None
        assert query_db("SELECT * FROM session_difficulties") == []

    def test_missing_session(self):
        assert study_session.get_by_date(date(2020, 1, 1)) is None

    def test_save_with_review(self):
        day = date(2026, 3, 10)
        record = _record(datetime(2026, 3, 10, 9, 0))
        study_session.save_with_review(self._session(day, {THAL: 'EASY'}), THAL, record, 'quiz')
        assert review.get_for_node(THAL) == [record]
        assert review.count_by_source() == {'quiz': 1}
        assert study_session.get_by_date(day)['difficulties'] == {THAL: 'EASY'}

    def test_save_with_review_is_all_or_nothing(self):
        day = date(2026, 3, 10)
        bad_session = self._session(day, {THAL: 'facil'})
        with pytest.raises(sqlite3.IntegrityError):
            study_session.save_with_review(bad_session, THAL, _record(datetime(2026, 3, 10)))
        assert review.get_all() == {}
        assert study_session.get_by_date(day) is None
