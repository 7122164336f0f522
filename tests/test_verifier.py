"""
tests/test_verifier.py

ComplianceVerifier behaviour:

  - one Verification per (user, period_start, period_end), never overwritten
  - status is score >= compliance_threshold at verification time
  - exactly one fee transfer (caller -> admin) per successful verify_period
  - a failed call leaves verifications, aggregates and balances untouched
  - aggregate.average_score is the floored running mean
"""

import pytest

from dietclaim.core.exceptions import (
    AlreadyVerified,
    InvalidFee,
    InvalidPeriod,
    InvalidPlan,
    InvalidThreshold,
    InvalidUser,
    InvariantViolation,
    MaxPeriodsExceeded,
    NotAuthorized,
    TransferFailed,
    VerificationFailed,
)
from dietclaim.core.models import AggregateScore, Plan, PlanRule, Transfer
from dietclaim.verification.verifier import VerifierConfig

from conftest import ADMIN, OTHER, START_HEIGHT, USER, compliant_log, seed_user


@pytest.fixture
def verifier(ctx):
    seed_user(ctx)
    return ctx.verifier


def log_days(ctx, blocks, user=USER, **kwargs):
    ctx.logs.add_logs(user, blocks, compliant_log(**kwargs))


class TestVerifyPeriod:

    def test_full_adherence_scores_100(self, ctx, verifier):
        """30 compliant days in a 30-block period: score 100, status true."""
        log_days(ctx, range(100, 130))

        assert verifier.verify_period(USER, 100, 130) == 100

        verification = verifier.get_verification(USER, 100, 130)
        assert verification.score == 100
        assert verification.status is True
        assert verification.timestamp == START_HEIGHT

    def test_fee_moves_to_admin(self, ctx, verifier):
        log_days(ctx, range(100, 130))
        verifier.verify_period(USER, 100, 130)

        assert ctx.value_ledger.transfers == [Transfer(500, USER, ADMIN)]
        assert ctx.value_ledger.balance_of(ADMIN) == 500
        assert ctx.value_ledger.balance_of(USER) == 1_000_000 - 500

    def test_half_adherence_fails_default_threshold(self, ctx, verifier):
        """10 logged days in 20 score 50, below the default threshold of 80."""
        log_days(ctx, range(100, 110))

        assert verifier.verify_period(USER, 100, 120) == 50
        assert verifier.get_verification_status(USER, 100, 120) is False

    def test_lowered_threshold_passes_half_adherence(self, ctx, verifier):
        verifier.set_compliance_threshold(ADMIN, 50)
        log_days(ctx, range(100, 110))

        verifier.verify_period(USER, 100, 120)
        assert verifier.get_verification_status(USER, 100, 120) is True

    def test_status_is_frozen_at_verification_time(self, ctx, verifier):
        """Raising the threshold later does not rewrite an existing status."""
        log_days(ctx, range(100, 130))
        verifier.verify_period(USER, 100, 130)

        verifier.set_compliance_threshold(ADMIN, 100)
        verifier.set_compliance_threshold(ADMIN, 1)

        assert verifier.get_verification(USER, 100, 130).status is True

    def test_second_verification_rejected(self, ctx, verifier):
        log_days(ctx, range(100, 130))
        verifier.verify_period(USER, 100, 130)

        with pytest.raises(AlreadyVerified):
            verifier.verify_period(USER, 100, 130)

        assert len(ctx.value_ledger.transfers) == 1, "Rejected call must not charge"

    def test_same_period_other_user_is_independent(self, ctx, verifier):
        ctx.profiles.subscribe(OTHER, 1)
        log_days(ctx, range(100, 130))

        verifier.verify_period(USER, 100, 130)
        assert verifier.verify_period(OTHER, 100, 130) == 0

    @pytest.mark.parametrize("start,end", [(130, 100), (100, 100), (0, 366), (False, 10)])
    def test_invalid_period(self, verifier, start, end):
        with pytest.raises(InvalidPeriod):
            verifier.verify_period(USER, start, end)

    def test_period_checked_before_duplicate(self, ctx, verifier):
        log_days(ctx, range(100, 130))
        verifier.verify_period(USER, 100, 130)

        with pytest.raises(InvalidPeriod):
            verifier.verify_period(USER, 130, 100)

    def test_user_without_profile(self, ctx):
        with pytest.raises(InvalidUser):
            ctx.verifier.verify_period(USER, 100, 130)

    def test_plan_id_zero_is_invalid(self, ctx):
        ctx.profiles.subscribe(USER, 0)
        with pytest.raises(InvalidPlan):
            ctx.verifier.verify_period(USER, 100, 130)

    def test_unknown_plan_is_invalid(self, ctx):
        ctx.profiles.subscribe(USER, 7)
        with pytest.raises(InvalidPlan):
            ctx.verifier.verify_period(USER, 100, 130)

    def test_transfer_failure_leaves_no_state(self, ctx):
        """A broke user gets TransferFailed and nothing is recorded."""
        seed_user(ctx, user="ST9BROKE")
        log_days(ctx, range(100, 130), user="ST9BROKE")

        with pytest.raises(TransferFailed):
            ctx.verifier.verify_period("ST9BROKE", 100, 130)

        assert ctx.verifier.get_verification("ST9BROKE", 100, 130) is None
        assert ctx.verifier.get_aggregate_score("ST9BROKE") is None
        assert ctx.value_ledger.transfers == []
        assert len(ctx.journal) == 0

    def test_zero_fee_still_records_transfer(self, ctx, verifier):
        verifier.set_verification_fee(ADMIN, 0)
        log_days(ctx, range(100, 130))

        verifier.verify_period(USER, 100, 130)
        assert ctx.value_ledger.transfers == [Transfer(0, USER, ADMIN)]

    def test_verification_status_missing(self, verifier):
        with pytest.raises(VerificationFailed):
            verifier.get_verification_status(USER, 100, 130)


class TestAggregateScore:

    def test_absent_before_first_verification(self, verifier):
        assert verifier.get_aggregate_score(USER) is None

    def test_running_mean_is_floored(self, ctx, verifier):
        log_days(ctx, range(0, 10))      # 100 over [0, 10)
        log_days(ctx, range(10, 11))     # 33 over [10, 13)

        verifier.verify_period(USER, 0, 10)
        verifier.verify_period(USER, 10, 13)

        assert verifier.get_aggregate_score(USER) == AggregateScore(2, 66)

    def test_three_periods(self, ctx, verifier):
        log_days(ctx, range(0, 10))
        log_days(ctx, range(10, 15))

        verifier.verify_period(USER, 0, 10)     # 100
        verifier.verify_period(USER, 10, 20)    # 50
        verifier.verify_period(USER, 20, 30)    # 0

        assert verifier.get_aggregate_score(USER) == AggregateScore(3, 50)

    def test_failing_periods_still_counted(self, ctx, verifier):
        verifier.verify_period(USER, 0, 10)
        aggregate = verifier.get_aggregate_score(USER)
        assert aggregate.total_periods == 1
        assert aggregate.average_score == 0

    def test_max_periods_rejects_before_charging(self, ctx, verifier):
        verifier.set_max_periods(ADMIN, 1)
        verifier.verify_period(USER, 0, 10)

        with pytest.raises(MaxPeriodsExceeded):
            verifier.verify_period(USER, 10, 20)

        assert len(ctx.value_ledger.transfers) == 1
        assert verifier.get_verification(USER, 10, 20) is None
        assert verifier.get_aggregate_score(USER).total_periods == 1

    def test_ceiling_guard_raises_runtime_error(self, verifier):
        """Bypassing the capacity pre-check trips the aggregate guard."""
        verifier.set_max_periods(ADMIN, 1)
        verifier._update_aggregate(USER, 90)

        with pytest.raises(InvariantViolation):
            verifier._update_aggregate(USER, 90)
        assert issubclass(InvariantViolation, RuntimeError)


class TestAdherencePreview:

    def test_preview_does_not_record_or_charge(self, ctx, verifier):
        log_days(ctx, range(100, 110))

        assert verifier.calculate_adherence_score(USER, 100, 120) == 50
        assert verifier.get_verification(USER, 100, 120) is None
        assert ctx.value_ledger.transfers == []

    def test_preview_against_explicit_plan(self, ctx, verifier):
        ctx.plans.add_plan(2, Plan(rules=(PlanRule("calories", 0, 1000),)))
        log_days(ctx, range(100, 110))

        assert verifier.calculate_adherence_score(USER, 100, 110, plan_id=2) == 0
        assert verifier.calculate_adherence_score(USER, 100, 110) == 100

    def test_preview_unknown_plan(self, verifier):
        with pytest.raises(InvalidPlan):
            verifier.calculate_adherence_score(USER, 100, 110, plan_id=99)

    def test_preview_without_profile(self, ctx):
        with pytest.raises(InvalidUser):
            ctx.verifier.calculate_adherence_score(USER, 100, 110)


class TestVerifierAdmin:

    def test_non_admin_cannot_configure(self, verifier):
        with pytest.raises(NotAuthorized):
            verifier.set_max_periods(USER, 5)
        with pytest.raises(NotAuthorized):
            verifier.set_verification_fee(USER, 5)
        with pytest.raises(NotAuthorized):
            verifier.set_compliance_threshold(USER, 50)

    def test_setters_apply(self, verifier):
        assert verifier.set_max_periods(ADMIN, 5) is True
        assert verifier.set_verification_fee(ADMIN, 42) is True
        assert verifier.set_compliance_threshold(ADMIN, 60) is True

        assert verifier.config.max_periods == 5
        assert verifier.config.verification_fee == 42
        assert verifier.config.compliance_threshold == 60

    def test_zero_max_periods_rejected(self, verifier):
        with pytest.raises(InvalidPeriod):
            verifier.set_max_periods(ADMIN, 0)

    def test_negative_fee_rejected(self, verifier):
        with pytest.raises(InvalidFee):
            verifier.set_verification_fee(ADMIN, -1)

    @pytest.mark.parametrize("threshold", [0, 101, -5])
    def test_threshold_out_of_range(self, verifier, threshold):
        with pytest.raises(InvalidThreshold):
            verifier.set_compliance_threshold(ADMIN, threshold)

    @pytest.mark.parametrize("threshold", [1, 100])
    def test_threshold_bounds_inclusive(self, verifier, threshold):
        assert verifier.set_compliance_threshold(ADMIN, threshold) is True

    def test_bools_are_not_numbers(self, verifier):
        with pytest.raises(InvalidThreshold):
            verifier.set_compliance_threshold(ADMIN, True)
        with pytest.raises(InvalidPeriod):
            verifier.set_max_periods(ADMIN, True)
        with pytest.raises(InvalidFee):
            verifier.set_verification_fee(ADMIN, False)
        assert verifier.config == VerifierConfig(admin=ADMIN)

    @pytest.mark.parametrize("changes, error", [
        ({"max_periods": 0},          InvalidPeriod),
        ({"verification_fee": -5},    InvalidFee),
        ({"compliance_threshold": 0}, InvalidThreshold),
    ])
    def test_config_rejects_out_of_range_values(self, changes, error):
        with pytest.raises(error):
            VerifierConfig(admin=ADMIN, **changes)

    def test_admin_handover(self, verifier):
        verifier.set_admin(ADMIN, OTHER)

        assert verifier.admin == OTHER
        with pytest.raises(NotAuthorized):
            verifier.set_verification_fee(ADMIN, 1)
        verifier.set_verification_fee(OTHER, 1)

    def test_fee_goes_to_new_admin(self, ctx, verifier):
        verifier.set_admin(ADMIN, OTHER)
        verifier.verify_period(USER, 0, 10)
        assert ctx.value_ledger.transfers[-1].recipient == OTHER
