"""Study progress statistics over the scheduler state and the catalog."""
import calendar
from datetime import timedelta

from config.settings import PROGRESS_DEFAULTS
from engine import codes
from engine.scheduler import days_between

PERIODS = ('week', 'month', 'all')


def _one_month_back(day):
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def period_start(period, today):
    """First date included in a period, or None for 'all'."""
    if period == 'week':
        return today - timedelta(days=7)
    if period == 'month':
        return _one_month_back(today)
    if period == 'all':
        return None
    raise ValueError(f'Unknown period: {period!r}')


def sessions_in_period(sessions, period, today):
    start = period_start(period, today)
    if start is None:
        return list(sessions)
    return [s for s in sessions if s['date'] >= start]


def structures_studied(sessions):
    """Number of distinct node codes across the sessions."""
    studied = set()
    for s in sessions:
        studied.update(s['difficulties'])
    return len(studied)


def coverage_percent(studied, total):
    if total == 0:
        return 0
    return int(studied / total * 100)


def estimated_retention(reviews,
                        points=PROGRESS_DEFAULTS['retention_points']):
    """Mean of points for each node's latest difficulty (0 without history)."""
    total = 0
    count = 0
    for records in reviews.values():
        if records:
            total += points[records[-1]['difficulty']]
            count += 1
    if count == 0:
        return 0
    return total // count


def daily_activity(sessions, period, today,
                   windows=PROGRESS_DEFAULTS['activity_days']):
    """Structures studied per day, oldest day first."""
    num_days = windows[period]
    by_day = {}
    for s in sessions:
        by_day[s['date']] = by_day.get(s['date'], 0) + len(s['difficulties'])
    result = []
    for i in range(num_days - 1, -1, -1):
        day = today - timedelta(days=i)
        result.append({'label': str(day.day), 'value': by_day.get(day, 0), 'date': day})
    return result


def system_distribution(repository, reviews):
    """Percent of each system's nodes that have been reviewed.

    Systems without nodes are left out; sorted by percent, highest first.
    """
    result = []
    for sys_code, name in codes.SYSTEMS.items():
        nodes = repository.find_by_system(sys_code)
        if not nodes:
            continue
        studied = sum(1 for n in nodes if reviews.get(n['code']))
        result.append({'system': name, 'percent': studied / len(nodes) * 100})
    return sorted(result, key=lambda r: r['percent'], reverse=True)


def structures_to_review(repository, reviews, now,
                         limit=PROGRESS_DEFAULTS['review_list_limit']):
    """Overdue catalog nodes, longest since last review first."""
    due = []
    for code, records in reviews.items():
        if not records:
            continue
        node = repository.find_node_by_code(code)
        if node is None:
            continue
        days = days_between(records[-1]['timestamp'], now)
        if days >= records[-1]['interval_days']:
            due.append((days, node))
    due.sort(key=lambda item: item[0], reverse=True)
    return [node for _days, node in due[:limit]]


def summary(repository, scheduler, period='week'):
    now = scheduler.now()
    today = now.date()
    sessions = sessions_in_period(scheduler.sessions, period, today)
    studied = structures_studied(sessions)
    return {
        'period': period,
        'sessions': len(sessions),
        'structures_studied': studied,
        'coverage_percent': coverage_percent(studied, len(repository.nodes)),
        'estimated_retention': estimated_retention(scheduler.reviews),
        'daily_activity': daily_activity(scheduler.sessions, period, today),
        'system_distribution': system_distribution(repository, scheduler.reviews),
        'to_review': structures_to_review(repository, scheduler.reviews, now),
    }
