"""
Compliance verifier: stage one of the pipeline.

PROTOCOL INVARIANT: check order is observable through error codes.
Order: Period → Already verified → Profile → Plan → Capacity → Fee → Write
"""

import threading
from dataclasses import dataclass
from typing import Dict, Optional

from dietclaim.core.component import PipelineComponent
from dietclaim.core.exceptions import (
    AlreadyVerified,
    InvalidFee,
    InvalidPeriod,
    InvalidPlan,
    InvalidThreshold,
    InvalidUser,
    InvariantViolation,
    MaxPeriodsExceeded,
    VerificationFailed,
)
from dietclaim.core.models import AggregateScore, Plan, PeriodKey, Verification, is_int
from dietclaim.core.time import HeightClock
from dietclaim.ledger.journal import Journal, RecordType
from dietclaim.verification.scoring import score_period, validate_period


@dataclass(frozen=True)
class VerifierConfig:
    admin:                str
    max_periods:          int = 100
    verification_fee:     int = 500
    compliance_threshold: int = 80

    def __post_init__(self) -> None:
        if not is_int(self.max_periods) or self.max_periods <= 0:
            raise InvalidPeriod("max_periods must be positive", {"max_periods": self.max_periods})
        if not is_int(self.verification_fee) or self.verification_fee < 0:
            raise InvalidFee(details={"fee": self.verification_fee})
        if not is_int(self.compliance_threshold) or not 1 <= self.compliance_threshold <= 100:
            raise InvalidThreshold(details={"threshold": self.compliance_threshold})


class ComplianceVerifier(PipelineComponent):
    """
    Scores a user's period against their subscribed plan and records the
    result exactly once per (user, period_start, period_end).
    """

    component_name = "verifier"

    def __init__(
        self,
        config:       VerifierConfig,
        clock:        HeightClock,
        value_ledger,
        plans,
        profiles,
        logs,
        journal:      Optional[Journal] = None,
        lock:         Optional[threading.RLock] = None,
    ) -> None:
        super().__init__(config, clock, value_ledger, journal, lock)
        self.plans    = plans
        self.profiles = profiles
        self.logs     = logs
        self._verifications: Dict[PeriodKey, Verification] = {}
        self._aggregates:    Dict[str, AggregateScore]     = {}

    # ── Admin setters ─────────────────────────────────────────

    def set_max_periods(self, caller: str, max_periods: int) -> bool:
        return self._update_config(caller, max_periods=max_periods)

    def set_verification_fee(self, caller: str, fee: int) -> bool:
        return self._update_config(caller, verification_fee=fee)

    def set_compliance_threshold(self, caller: str, threshold: int) -> bool:
        return self._update_config(caller, compliance_threshold=threshold)

    # ── Verification ──────────────────────────────────────────

    def verify_period(self, user: str, period_start: int, period_end: int) -> int:
        """
        Score [period_start, period_end) for `user`, charge the verification
        fee, store the Verification and fold the score into the aggregate.

        Returns:
            The integer score, 0..100.
        """
        with self._lock:
            validate_period(period_start, period_end)

            key = (user, period_start, period_end)
            if key in self._verifications:
                raise AlreadyVerified(details={"user": user, "start": period_start, "end": period_end})

            plan_id, plan = self._resolve_plan(user)
            score = score_period(plan.rules, self.logs, user, period_start, period_end)

            aggregate = self._aggregates.get(user, AggregateScore())
            if aggregate.total_periods + 1 > self.config.max_periods:
                raise MaxPeriodsExceeded(
                    details={"user": user, "max_periods": self.config.max_periods}
                )

            transfer = self._charge(user, self.config.verification_fee)

            verification = Verification(
                score=     score,
                status=    score >= self.config.compliance_threshold,
                timestamp= self._height(),
            )
            self._commit(transfer, "verify_period", RecordType.VERIFICATION, user, {
                "user":         user,
                "period_start": period_start,
                "period_end":   period_end,
                "plan_id":      plan_id,
                "verification": verification.to_dict(),
                "aggregate":    aggregate.record(score).to_dict(),
            })

            self._verifications[key] = verification
            self._update_aggregate(user, score)
            return score

    def calculate_adherence_score(
        self,
        user:         str,
        period_start: int,
        period_end:   int,
        plan_id:      Optional[int] = None,
    ) -> int:
        """
        Score a period without recording anything or charging a fee.
        Uses `plan_id` if given, otherwise the user's subscribed plan.
        """
        if plan_id is None:
            _, plan = self._resolve_plan(user)
        else:
            plan = self.plans.get_plan(plan_id)
            if plan is None:
                raise InvalidPlan(details={"plan_id": plan_id})
        return score_period(plan.rules, self.logs, user, period_start, period_end)

    # ── Reads ─────────────────────────────────────────────────

    def get_verification(
        self, user: str, period_start: int, period_end: int
    ) -> Optional[Verification]:
        return self._verifications.get((user, period_start, period_end))

    def get_aggregate_score(self, user: str) -> Optional[AggregateScore]:
        return self._aggregates.get(user)

    def get_verification_status(self, user: str, period_start: int, period_end: int) -> bool:
        verification = self.get_verification(user, period_start, period_end)
        if verification is None:
            raise VerificationFailed(details={"user": user, "start": period_start, "end": period_end})
        return verification.status

    # ── Internal ──────────────────────────────────────────────

    def _resolve_plan(self, user: str):
        """Return (plan_id, Plan) for the user's subscription."""
        plan_id = self.profiles.get_subscribed_plan(user)
        if plan_id is None:
            raise InvalidUser(details={"user": user})
        if plan_id <= 0:
            raise InvalidPlan(details={"plan_id": plan_id})
        plan: Optional[Plan] = self.plans.get_plan(plan_id)
        if plan is None:
            raise InvalidPlan(details={"plan_id": plan_id})
        return plan_id, plan

    def _update_aggregate(self, user: str, score: int) -> None:
        """
        The capacity pre-check in verify_period makes the ceiling
        unreachable here. Hitting it means that check was bypassed.
        """
        aggregate = self._aggregates.get(user, AggregateScore()).record(score)
        if aggregate.total_periods > self.config.max_periods:
            raise InvariantViolation(
                f"Aggregate invariant violated — total_periods={aggregate.total_periods} "
                f"exceeds max_periods={self.config.max_periods} for {user}"
            )
        self._aggregates[user] = aggregate
