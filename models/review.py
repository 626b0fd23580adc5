"""CRUD for review_records table."""
from datetime import datetime

from db.database import query_db, execute_db

SOURCES = ('flashcard', 'quiz', 'matching')


def _from_row(row):
    return {
        'timestamp': datetime.fromisoformat(row['reviewed_at']),
        'difficulty': row['difficulty'],
        'interval_days': row['interval_days'],
    }


def insert_statement(node_code, record, source='flashcard'):
    """(sql, params) inserting one review, for use inside a larger transaction."""
    if source not in SOURCES:
        raise ValueError(f'Unknown review source: {source!r}')
    return (
        """INSERT INTO review_records
           (node_code, reviewed_at, difficulty, interval_days, source)
           VALUES (?, ?, ?, ?, ?)""",
        (node_code, record['timestamp'].isoformat(), record['difficulty'],
         record['interval_days'], source),
    )


def create(node_code, record, source='flashcard'):
    return execute_db(*insert_statement(node_code, record, source))


def get_for_node(node_code):
    rows = query_db(
        "SELECT * FROM review_records WHERE node_code=? ORDER BY reviewed_at, id",
        (node_code,),
    )
    return [_from_row(r) for r in rows]


def get_all():
    """All review history as {node_code: [record, ...]} in review order."""
    rows = query_db("SELECT * FROM review_records ORDER BY reviewed_at, id")
    history = {}
    for row in rows:
        history.setdefault(row['node_code'], []).append(_from_row(row))
    return history


def count_by_source():
    rows = query_db(
        "SELECT source, COUNT(*) as cnt FROM review_records GROUP BY source"
    )
    return {r['source']: r['cnt'] for r in rows}
