"""
tests/test_scoring.py

Period scoring rules:

    score = floor(compliant_days * 100 / (end - start))

  - unlogged blocks are never compliant but always in the denominator
  - a day fails if any rule naming calories or a logged nutrient is violated
  - rules for metrics absent from the log are vacuously satisfied
"""

import pytest

from dietclaim.adapters.stores import InMemoryLogStore
from dietclaim.core.exceptions import InvalidPeriod
from dietclaim.core.models import DailyLog, Nutrient, PlanRule
from dietclaim.verification.scoring import (
    MAX_PERIOD_BLOCKS,
    adherence_score,
    count_compliant_days,
    is_compliant_day,
    score_period,
    validate_period,
)

from conftest import USER, compliant_log, standard_plan


CALORIES_ONLY = (PlanRule("calories", 1500, 2500),)


class TestPeriodValidation:

    @pytest.mark.parametrize("start,end", [(130, 100), (100, 100), (0, MAX_PERIOD_BLOCKS + 1)])
    def test_invalid_periods_rejected(self, start, end):
        with pytest.raises(InvalidPeriod):
            validate_period(start, end)

    def test_full_year_is_allowed(self):
        assert validate_period(0, MAX_PERIOD_BLOCKS) == MAX_PERIOD_BLOCKS

    def test_non_integer_bounds_rejected(self):
        with pytest.raises(InvalidPeriod):
            validate_period("100", 130)


class TestDayCompliance:

    def test_all_rules_satisfied(self):
        assert is_compliant_day(standard_plan().rules, compliant_log())

    def test_bounds_are_inclusive(self):
        assert is_compliant_day(standard_plan().rules, compliant_log(calories=1500, protein=200))

    def test_calorie_violation_fails_day(self):
        assert not is_compliant_day(standard_plan().rules, compliant_log(calories=3000))

    def test_nutrient_violation_fails_day(self):
        assert not is_compliant_day(standard_plan().rules, compliant_log(protein=10))

    def test_rule_for_unlogged_metric_is_vacuous(self):
        """A fiber rule does not matter when the log never mentions fiber."""
        rules = standard_plan().rules + (PlanRule("fiber", 25, 40),)
        assert is_compliant_day(rules, compliant_log())

    def test_logged_nutrient_without_rule_is_ignored(self):
        log = DailyLog(hash=b"h", calories=2000, nutrients=(Nutrient("sodium", 99999),))
        assert is_compliant_day(CALORIES_ONLY, log)

    def test_every_rule_for_a_metric_must_hold(self):
        """Two calorie rules: the day must satisfy both."""
        rules = (PlanRule("calories", 1500, 2500), PlanRule("calories", 1800, 1900))
        assert not is_compliant_day(rules, compliant_log(calories=2000))
        assert is_compliant_day(rules, compliant_log(calories=1850))

    def test_no_rules_means_compliant(self):
        assert is_compliant_day((), compliant_log(calories=0))


class TestPeriodScore:

    def test_missing_days_count_against_score(self):
        """10 compliant logs in a 20-block period score 50."""
        logs = InMemoryLogStore()
        logs.add_logs(USER, range(100, 110), compliant_log())
        assert score_period(CALORIES_ONLY, logs, USER, 100, 120) == 50

    def test_full_coverage_scores_100(self):
        logs = InMemoryLogStore()
        logs.add_logs(USER, range(100, 130), compliant_log())
        assert score_period(standard_plan().rules, logs, USER, 100, 130) == 100

    def test_no_logs_scores_zero(self):
        assert score_period(CALORIES_ONLY, InMemoryLogStore(), USER, 100, 130) == 0

    def test_score_is_floored(self):
        """1 compliant day out of 3 is 33, not 33.3 or 34."""
        logs = InMemoryLogStore()
        logs.add_log(USER, 10, compliant_log())
        assert score_period(CALORIES_ONLY, logs, USER, 10, 13) == 33

    def test_non_compliant_logs_not_counted(self):
        logs = InMemoryLogStore()
        logs.add_logs(USER, range(0, 5), compliant_log())
        logs.add_logs(USER, range(5, 10), compliant_log(calories=4000))
        assert count_compliant_days(CALORIES_ONLY, logs, USER, 0, 10) == 5

    def test_end_block_is_excluded(self):
        logs = InMemoryLogStore()
        logs.add_log(USER, 120, compliant_log())
        assert count_compliant_days(CALORIES_ONLY, logs, USER, 100, 120) == 0

    def test_other_users_logs_ignored(self):
        logs = InMemoryLogStore()
        logs.add_logs("someone-else", range(100, 120), compliant_log())
        assert score_period(CALORIES_ONLY, logs, USER, 100, 120) == 0

    def test_adherence_score_arithmetic(self):
        assert adherence_score(0, 7) == 0
        assert adherence_score(7, 7) == 100
        assert adherence_score(2, 3) == 66
