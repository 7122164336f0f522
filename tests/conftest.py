"""
Shared fixtures and builders for the DietClaim test suite.
"""

import pytest

from dietclaim.adapters.stores import InMemoryValueLedger
from dietclaim.core.models import DailyLog, Nutrient, Plan, PlanRule, Proof
from dietclaim.core.time import HeightClock
from dietclaim.runtime.config import PipelineConfig
from dietclaim.runtime.context import PipelineContext


ADMIN   = "ST1ADMIN"
USER    = "ST1USER"
OTHER   = "ST3OTHER"
INSURER = "ST2INSURER"

START_HEIGHT = 1000


def standard_plan() -> Plan:
    """calories 1500-2500, protein 50-200, threshold 80."""
    return Plan(
        rules=(
            PlanRule("calories", 1500, 2500),
            PlanRule("protein", 50, 200),
        ),
        threshold=80,
    )


def compliant_log(calories: int = 2000, protein: int = 100) -> DailyLog:
    return DailyLog(
        hash=b"hash",
        calories=calories,
        nutrients=(Nutrient("protein", protein),),
    )


def make_proof(user: str = USER, status: bool = True, expiry: int = 53560) -> Proof:
    return Proof(
        user=user,
        period_start=100,
        period_end=130,
        score=90,
        proof_hash=b"hash",
        issued_at=START_HEIGHT,
        expiry=expiry,
        status=status,
        plan_id=1,
    )


def seed_user(ctx: PipelineContext, user: str = USER, plan_id: int = 1) -> None:
    """Register the standard plan and subscribe `user` to it."""
    ctx.plans.add_plan(plan_id, standard_plan())
    ctx.profiles.subscribe(user, plan_id)


class VerificationBook:
    """Stand-in for the verifier when testing the issuer alone."""

    def __init__(self):
        self.records = {}

    def get_verification(self, user, period_start, period_end):
        return self.records.get((user, period_start, period_end))


class ProofBook:
    """Stand-in for the issuer when testing the settler alone."""

    def __init__(self):
        self.proofs = {}

    def get_proof(self, proof_id):
        return self.proofs.get(proof_id)


@pytest.fixture
def clock():
    return HeightClock(START_HEIGHT)


@pytest.fixture
def value_ledger():
    return InMemoryValueLedger(balances={USER: 1_000_000, OTHER: 1_000_000})


@pytest.fixture
def ctx():
    """A fully wired pipeline at height 1000 with funded users."""
    context = PipelineContext.build(PipelineConfig(admin=ADMIN, height=START_HEIGHT))
    context.value_ledger.credit(USER, 1_000_000)
    context.value_ledger.credit(OTHER, 1_000_000)
    return context


SCENARIO = """
config:
  admin: treasury
  height: 1000
  issuer:
    proof_fee: 50
balances:
  alice: 10000
  bob: 10000
plans:
  1:
    threshold: 80
    rules:
      - {metric: calories, min: 1500, max: 2500}
      - {metric: protein, min: 50, max: 200}
profiles:
  alice: 1
logs:
  - user: alice
    blocks: [100, 130]
    hash: "aa"
    calories: 2000
    nutrients:
      - {nutrient: protein, value: 120}
  - {user: alice, block: 130, calories: 9000}
insurers: [acme]
steps:
  - {op: calculate_adherence_score, caller: alice, args: {period_start: 100, period_end: 131}, expect: 96}
  - {op: verify_period, caller: alice, args: {period_start: 100, period_end: 130}, expect: 100}
  - {op: verify_period, caller: alice, args: {period_start: 100, period_end: 130}, expect_error: AlreadyVerified}
  - {op: generate_proof, caller: alice, args: {period_start: 100, period_end: 130, plan_id: 1, proof_hash: "ab"}, expect: 0}
  - {op: advance, args: {blocks: 10}}
  - {op: verify_proof, args: {proof_id: 0}, expect: true}
  - {op: submit_claim, caller: bob, args: {proof_id: 0, insurer: acme, discount_amount: 5}, expect_error: InvalidUser}
  - {op: submit_claim, caller: alice, args: {proof_id: 0, insurer: acme, discount_amount: 5}, expect: 0}
  - {op: approve_claim, caller: acme, args: {claim_id: 0}}
"""
