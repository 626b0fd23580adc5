"""Spaced-repetition scheduler (simplified SM-2).

Interval rules:
  first review:  HARD -> 1 day, MEDIUM -> 3 days, EASY -> 5 days
  later reviews: HARD -> 1, MEDIUM -> last interval, EASY -> last interval * 2

Priority (higher = study sooner):
  never reviewed:        100
  overdue (d >= i):      d - i + 100
  not yet due (d < i):   d / i * 100
where d = whole days since the last review and i = its interval.

The scheduler only knows node codes; persistence lives in models.review and
models.study_session.
"""
import logging
from datetime import datetime

from config.settings import SCHEDULER_DEFAULTS

logger = logging.getLogger(__name__)

DIFFICULTIES = ('HARD', 'MEDIUM', 'EASY')

# Values written by older clients
LEGACY_DIFFICULTIES = {'dificil': 'HARD', 'medio': 'MEDIUM', 'facil': 'EASY'}


def normalize_difficulty(value):
    if value in DIFFICULTIES:
        return value
    text = str(value or '')
    if text.upper() in DIFFICULTIES:
        return text.upper()
    if text.lower() in LEGACY_DIFFICULTIES:
        return LEGACY_DIFFICULTIES[text.lower()]
    raise ValueError(f'Unknown difficulty: {value!r}')


def days_between(earlier, later):
    """Whole days elapsed from earlier to later."""
    return (later - earlier).days


class StudyScheduler:
    """Review history and daily session log for a single learner."""

    def __init__(self, now=None,
                 initial_intervals=None,
                 base_priority=SCHEDULER_DEFAULTS['base_priority']):
        self._now = now or datetime.now
        self.initial_intervals = dict(initial_intervals or SCHEDULER_DEFAULTS['initial_intervals'])
        self.base_priority = base_priority
        self.reviews = {}
        self.sessions = []

    def now(self):
        return self._now()

    def restore(self, reviews, sessions):
        """Replace in-memory state with persisted history and sessions."""
        self.reviews = {code: list(records) for code, records in reviews.items()}
        self.sessions = sorted(sessions, key=lambda s: s['date'])

    def state(self):
        """Copy of (reviews, sessions) in the form restore() accepts."""
        reviews = {code: list(records) for code, records in self.reviews.items()}
        sessions = [dict(s, difficulties=dict(s['difficulties'])) for s in self.sessions]
        return reviews, sessions

    # --- Sessions ---

    def today_session(self):
        if self.sessions and self.sessions[-1]['date'] == self.now().date():
            return self.sessions[-1]
        return None

    def _ensure_today_session(self):
        session = self.today_session()
        if session is None:
            session = {
                'date': self.now().date(),
                'structures_studied': 0,
                'difficulties': {},
            }
            self.sessions.append(session)
            logger.debug('Opened study session for %s', session['date'])
        return session

    def close_today_session(self):
        """Discard today's session. Returns the removed session or None."""
        session = self.today_session()
        if session is None:
            return None
        self.sessions.pop()
        logger.info('Discarded study session for %s (%d structures)',
                    session['date'], session['structures_studied'])
        return session

    # --- Reviews ---

    def history(self, node_code):
        return list(self.reviews.get(node_code, []))

    def last_review(self, node_code):
        records = self.reviews.get(node_code)
        return records[-1] if records else None

    def compute_interval(self, node_code, difficulty):
        difficulty = normalize_difficulty(difficulty)
        last = self.last_review(node_code)
        if last is None:
            return self.initial_intervals[difficulty]
        last_interval = last['interval_days']
        if difficulty == 'HARD':
            return 1
        if difficulty == 'MEDIUM':
            return last_interval
        return last_interval * 2

    def record_review(self, node_code, difficulty):
        """Log a review in today's session and append it to the node's history.

        Returns the new review record.
        """
        difficulty = normalize_difficulty(difficulty)
        session = self._ensure_today_session()
        if node_code not in session['difficulties']:
            session['structures_studied'] += 1
        session['difficulties'][node_code] = difficulty

        interval = self.compute_interval(node_code, difficulty)
        record = {
            'timestamp': self.now(),
            'difficulty': difficulty,
            'interval_days': interval,
        }
        self.reviews.setdefault(node_code, []).append(record)
        logger.debug('Review %s %s -> next in %d days', node_code, difficulty, interval)
        return record

    # --- Ordering ---

    def days_since(self, node_code):
        last = self.last_review(node_code)
        if last is None:
            return None
        return days_between(last['timestamp'], self.now())

    def priority(self, node_code):
        last = self.last_review(node_code)
        if last is None:
            return self.base_priority
        days = days_between(last['timestamp'], self.now())
        interval = last['interval_days']
        if days >= interval:
            return float(days - interval + self.base_priority)
        return days / interval * self.base_priority

    def order_by_priority(self, items):
        """Stable sort, highest priority first. Items are codes or node dicts."""
        def _code(item):
            return item if isinstance(item, str) else item['code']
        return sorted(items, key=lambda item: self.priority(_code(item)), reverse=True)

    def is_due(self, node_code):
        last = self.last_review(node_code)
        if last is None:
            return False
        return days_between(last['timestamp'], self.now()) >= last['interval_days']

    def due_for_review(self):
        """Codes of reviewed nodes whose interval has elapsed, most overdue first."""
        due = [code for code in sorted(self.reviews) if self.is_due(code)]
        return sorted(due, key=self.priority, reverse=True)
