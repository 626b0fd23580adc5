"""CRUD for study_sessions and session_difficulties tables."""
from datetime import date

from db.database import query_db, execute_db, execute_many
from models import review


def save_statements(session):
    """(sql, params) pairs that upsert a day's session and its difficulties."""
    day = session['date'].isoformat()
    statements = [
        ("""INSERT INTO study_sessions (session_date, structures_studied)
            VALUES (?, ?)
            ON CONFLICT(session_date) DO UPDATE SET
             structures_studied=excluded.structures_studied""",
         (day, session['structures_studied'])),
        ("DELETE FROM session_difficulties WHERE session_date=?", (day,)),
    ]
    for node_code, difficulty in session['difficulties'].items():
        statements.append((
            """INSERT INTO session_difficulties (session_date, node_code, difficulty)
               VALUES (?, ?, ?)""",
            (day, node_code, difficulty),
        ))
    return statements


def save(session):
    """Insert or replace a day's session together with its difficulties."""
    execute_many(save_statements(session))


def save_with_review(session, node_code, record, source='flashcard'):
    """Store one review and the updated session in a single transaction."""
    statements = [review.insert_statement(node_code, record, source)]
    statements.extend(save_statements(session))
    execute_many(statements)


def get_by_date(day):
    row = query_db(
        "SELECT * FROM study_sessions WHERE session_date=?",
        (day.isoformat(),), one=True,
    )
    if not row:
        return None
    return _with_difficulties(row)


def _with_difficulties(row):
    rows = query_db(
        """SELECT node_code, difficulty FROM session_difficulties
           WHERE session_date=? ORDER BY node_code""",
        (row['session_date'],),
    )
    return {
        'date': date.fromisoformat(row['session_date']),
        'structures_studied': row['structures_studied'],
        'difficulties': {r['node_code']: r['difficulty'] for r in rows},
    }


def get_all():
    rows = query_db("SELECT * FROM study_sessions ORDER BY session_date")
    return [_with_difficulties(r) for r in rows]


def delete(day):
    execute_db(
        "DELETE FROM study_sessions WHERE session_date=?", (day.isoformat(),)
    )
