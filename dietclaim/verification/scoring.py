"""
Period adherence scoring.

A period is the half-open block range [start, end). Every block in it
counts toward the denominator. Only blocks with a log can count toward
the numerator, so unlogged days lower the score.
"""

from typing import Iterable

from dietclaim.core.exceptions import InvalidPeriod
from dietclaim.core.models import DailyLog, PlanRule, is_int


MAX_PERIOD_BLOCKS = 365


def validate_period(period_start: int, period_end: int) -> int:
    """Return the period length, or raise InvalidPeriod."""
    if not is_int(period_start) or not is_int(period_end):
        raise InvalidPeriod(details={"start": period_start, "end": period_end})
    if period_end <= period_start or period_end - period_start > MAX_PERIOD_BLOCKS:
        raise InvalidPeriod(details={"start": period_start, "end": period_end})
    return period_end - period_start


def is_compliant_day(rules: Iterable[PlanRule], log: DailyLog) -> bool:
    """
    True iff every rule naming a metric present in the log is satisfied.
    Rules for metrics the log does not mention are vacuously satisfied.
    """
    rules = list(rules)
    for metric, value in log.metric_values():
        for rule in rules:
            if rule.metric == metric and not rule.allows(value):
                return False
    return True


def count_compliant_days(
    rules:        Iterable[PlanRule],
    logs,
    user:         str,
    period_start: int,
    period_end:   int,
) -> int:
    """Count compliant logged blocks. `logs` needs get_log(user, block)."""
    rules = list(rules)
    compliant = 0
    for block in range(period_start, period_end):
        log = logs.get_log(user, block)
        if log is None:
            continue
        if is_compliant_day(rules, log):
            compliant += 1
    return compliant


def adherence_score(compliant_days: int, period_days: int) -> int:
    """floor(compliant_days * 100 / period_days), integer arithmetic only."""
    return (compliant_days * 100) // period_days


def score_period(
    rules:        Iterable[PlanRule],
    logs,
    user:         str,
    period_start: int,
    period_end:   int,
) -> int:
    period_days = validate_period(period_start, period_end)
    compliant = count_compliant_days(rules, logs, user, period_start, period_end)
    return adherence_score(compliant, period_days)
