"""
Scenario runner.

A scenario is a YAML document that seeds the collaborators and then
drives the pipeline step by step:

    config:   {admin: treasury, height: 1000, issuer: {proof_fee: 50}}
    balances: {alice: 10000}
    plans:
      1:
        threshold: 80
        rules:
          - {metric: calories, min: 1500, max: 2500}
    profiles: {alice: 1}
    logs:
      - {user: alice, blocks: [100, 130], calories: 2000}
    insurers: [acme]
    steps:
      - {op: verify_period, caller: alice, args: {period_start: 100, period_end: 130}, expect: 100}
      - {op: generate_proof, caller: alice, args: {period_start: 100, period_end: 130, plan_id: 1, proof_hash: "ab"}}
      - {op: advance, args: {blocks: 10}}
      - {op: submit_claim, caller: bob, args: {proof_id: 0, insurer: acme, discount_amount: 5}, expect_error: InvalidUser}

`blocks: [start, end]` is a half-open range. A step failing with a
DietClaimError is recorded and the run continues.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from dietclaim.core.crypto import Ed25519KeyManager
from dietclaim.core.exceptions import DietClaimError
from dietclaim.core.models import DailyLog, Plan
from dietclaim.runtime.config import PipelineConfig
from dietclaim.runtime.context import PipelineContext


# op name → (component attribute, method name, takes caller)
_OPERATIONS = {
    "verify_period":             ("verifier", "verify_period",             True),
    "calculate_adherence_score": ("verifier", "calculate_adherence_score", True),
    "get_verification_status":   ("verifier", "get_verification_status",   True),
    "set_max_periods":           ("verifier", "set_max_periods",           True),
    "set_verification_fee":      ("verifier", "set_verification_fee",      True),
    "set_compliance_threshold":  ("verifier", "set_compliance_threshold",  True),
    "generate_proof":            ("issuer",   "generate_proof",            True),
    "verify_proof":              ("issuer",   "verify_proof",              False),
    "revoke_proof":              ("issuer",   "revoke_proof",              True),
    "set_max_proofs":            ("issuer",   "set_max_proofs",            True),
    "set_proof_fee":             ("issuer",   "set_proof_fee",             True),
    "set_proof_expiry":          ("issuer",   "set_proof_expiry",          True),
    "register_insurer":          ("settler",  "register_insurer",          True),
    "submit_claim":              ("settler",  "submit_claim",              True),
    "approve_claim":             ("settler",  "approve_claim",             True),
    "reject_claim":              ("settler",  "reject_claim",              True),
    "set_max_claims":            ("settler",  "set_max_claims",            True),
    "set_claim_fee":             ("settler",  "set_claim_fee",             True),
}

CLOCK_OPERATIONS = ("advance", "set_height")


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, bytes):
        return value.hex()
    return value


@dataclass
class StepResult:
    index:        int
    op:           str
    ok:           bool
    value:        Any = None
    error:        Optional[str] = None
    message:      Optional[str] = None
    expected:     Any = None
    expect_error: Optional[str] = None
    has_expect:   bool = False

    @property
    def matched(self) -> bool:
        """Did the step end the way the scenario said it would?"""
        if self.expect_error is not None:
            return not self.ok and self.error == self.expect_error
        if self.has_expect:
            return self.ok and self.value == self.expected
        return self.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index":   self.index,
            "op":      self.op,
            "ok":      self.ok,
            "value":   _jsonable(self.value),
            "error":   self.error,
            "message": self.message,
            "matched": self.matched,
        }


@dataclass
class ScenarioResult:
    steps:   List[StepResult] = field(default_factory=list)
    context: Optional[PipelineContext] = None

    @property
    def all_matched(self) -> bool:
        return all(step.matched for step in self.steps)

    def to_dict(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "all_matched": self.all_matched,
            "steps":       [s.to_dict() for s in self.steps],
        }
        if self.context is not None:
            summary["transfers"] = [t.to_dict() for t in self.context.value_ledger.transfers]
            summary["journal"]   = self.context.journal.get_stats()
        return summary


class ScenarioRunner:
    """Seeds a PipelineContext from a scenario mapping and runs its steps."""

    def __init__(self, scenario: Dict[str, Any]) -> None:
        if not isinstance(scenario, dict):
            raise ValueError("Scenario must be a mapping")
        self.scenario = scenario

    @classmethod
    def from_yaml(cls, scenario_file: Path) -> "ScenarioRunner":
        with open(scenario_file, "r", encoding="utf-8") as f:
            return cls(yaml.safe_load(f) or {})

    # ── Setup ─────────────────────────────────────────────────

    def build_context(
        self,
        config:      Optional[PipelineConfig] = None,
        key_manager: Optional[Ed25519KeyManager] = None,
    ) -> PipelineContext:
        if config is None:
            config = PipelineConfig.from_dict(self.scenario.get("config"))
        ctx = PipelineContext.build(config, key_manager=key_manager)

        for account, amount in (self.scenario.get("balances") or {}).items():
            ctx.value_ledger.credit(str(account), int(amount))

        for plan_id, plan in (self.scenario.get("plans") or {}).items():
            ctx.plans.add_plan(int(plan_id), Plan.from_dict(plan))

        for user, plan_id in (self.scenario.get("profiles") or {}).items():
            ctx.profiles.subscribe(str(user), int(plan_id))

        for entry in self.scenario.get("logs") or []:
            log = DailyLog.from_dict(entry)
            if "blocks" in entry:
                start, end = entry["blocks"]
                ctx.logs.add_logs(entry["user"], range(start, end), log)
            else:
                ctx.logs.add_log(entry["user"], int(entry["block"]), log)

        for insurer in self.scenario.get("insurers") or []:
            ctx.settler.register_insurer(ctx.settler.admin, str(insurer))

        return ctx

    # ── Execution ─────────────────────────────────────────────

    def run(
        self,
        config:      Optional[PipelineConfig] = None,
        key_manager: Optional[Ed25519KeyManager] = None,
    ) -> ScenarioResult:
        ctx = self.build_context(config, key_manager)
        result = ScenarioResult(context=ctx)
        for index, step in enumerate(self.scenario.get("steps") or []):
            result.steps.append(self._run_step(ctx, index, step))
        return result

    def _run_step(self, ctx: PipelineContext, index: int, step: Dict[str, Any]) -> StepResult:
        op   = step.get("op")
        args = dict(step.get("args") or {})
        result = StepResult(
            index=        index,
            op=           op,
            ok=           False,
            expected=     step.get("expect"),
            expect_error= step.get("expect_error"),
            has_expect=   "expect" in step,
        )

        if op in CLOCK_OPERATIONS:
            result.value = getattr(ctx.clock, op)(**args)
            result.ok = True
            return result

        if op not in _OPERATIONS:
            raise ValueError(f"Unknown scenario op '{op}' at step {index}")

        component_name, method_name, takes_caller = _OPERATIONS[op]
        method = getattr(getattr(ctx, component_name), method_name)

        if isinstance(args.get("proof_hash"), str):
            args["proof_hash"] = bytes.fromhex(args["proof_hash"])

        try:
            if takes_caller:
                result.value = method(step.get("caller", ctx.verifier.admin), **args)
            else:
                result.value = method(**args)
            result.ok = True
        except DietClaimError as exc:
            result.error   = exc.name
            result.message = str(exc)
        return result
