"""
dietclaim/core/models.py

Pipeline Data Model

═══════════════════════════════════════════════════════════════════
RECORD CONTRACTS
═══════════════════════════════════════════════════════════════════

Verification    keyed by (user, period_start, period_end)
                written once, never updated or deleted

AggregateScore  keyed by user
                total_periods only ever increments by 1
                average_score = floor((avg * n + score) / (n + 1))

Proof           keyed by proof_id (0, 1, 2, ...)
                indexed by (user, period_start, period_end)
                status True → False is the only mutation (revocation)

Claim           keyed by claim_id (0, 1, 2, ...)
                indexed by (user, proof_id)
                PENDING → APPROVED | REJECTED, both terminal

to_dict() output is JSON-primitive throughout (bytes → hex) so any
record can go straight into a journal payload.
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Tuple

from dietclaim.core.exceptions import InvalidStatus


CALORIES_METRIC = "calories"

# (user, period_start, period_end)
PeriodKey = Tuple[str, int, int]


def is_int(value: Any) -> bool:
    """An int that is not a bool."""
    return isinstance(value, int) and not isinstance(value, bool)


def _to_bytes(value: Any) -> bytes:
    """Accept bytes as-is; hex strings from YAML/JSON are decoded."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if value is None:
        return b""
    return bytes.fromhex(value)


# ─────────────────────────────────────────────────────────────
# Plan and log inputs (owned by external collaborators)
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PlanRule:
    """One inclusive bound on a tracked metric."""
    metric:    str
    min_value: int
    max_value: int

    def allows(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value

    def to_dict(self) -> Dict[str, Any]:
        return {"metric": self.metric, "min": self.min_value, "max": self.max_value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanRule":
        return cls(
            metric=    data["metric"],
            min_value= int(data["min"]),
            max_value= int(data["max"]),
        )


@dataclass(frozen=True)
class Plan:
    rules:     Tuple[PlanRule, ...]
    threshold: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        return cls(
            rules=     tuple(PlanRule.from_dict(r) for r in data.get("rules", [])),
            threshold= int(data.get("threshold", 0)),
        )


@dataclass(frozen=True)
class Nutrient:
    nutrient: str
    value:    int


@dataclass(frozen=True)
class DailyLog:
    """One day of intake for one user, keyed by (user, block)."""
    hash:      bytes
    calories:  int
    nutrients: Tuple[Nutrient, ...] = ()

    def metric_values(self) -> Iterator[Tuple[str, int]]:
        """Yield (metric, value) for calories and every logged nutrient."""
        yield CALORIES_METRIC, self.calories
        for item in self.nutrients:
            yield item.nutrient, item.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyLog":
        return cls(
            hash=      _to_bytes(data.get("hash")),
            calories=  int(data["calories"]),
            nutrients= tuple(
                Nutrient(nutrient=n["nutrient"], value=int(n["value"]))
                for n in data.get("nutrients", [])
            ),
        )


# ─────────────────────────────────────────────────────────────
# Stage 1: Verification
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Verification:
    score:     int
    status:    bool
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "status": self.status, "timestamp": self.timestamp}


@dataclass(frozen=True)
class AggregateScore:
    total_periods: int = 0
    average_score: int = 0

    def record(self, score: int) -> "AggregateScore":
        """Return the aggregate after one more verified period."""
        total = self.total_periods + 1
        return AggregateScore(
            total_periods= total,
            average_score= (self.average_score * self.total_periods + score) // total,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_periods": self.total_periods,
            "average_score": self.average_score,
        }


# ─────────────────────────────────────────────────────────────
# Stage 2: Proof
# ─────────────────────────────────────────────────────────────

@dataclass
class Proof:
    user:         str
    period_start: int
    period_end:   int
    score:        int
    proof_hash:   bytes
    issued_at:    int
    expiry:       int
    status:       bool
    plan_id:      int

    @property
    def period_key(self) -> PeriodKey:
        return (self.user, self.period_start, self.period_end)

    def is_expired(self, height: int) -> bool:
        return self.expiry <= height

    def revoke(self) -> None:
        """Terminal. Calling twice is harmless."""
        self.status = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user":         self.user,
            "period_start": self.period_start,
            "period_end":   self.period_end,
            "score":        self.score,
            "proof_hash":   self.proof_hash.hex(),
            "issued_at":    self.issued_at,
            "expiry":       self.expiry,
            "status":       self.status,
            "plan_id":      self.plan_id,
        }


# ─────────────────────────────────────────────────────────────
# Stage 3: Claim
# ─────────────────────────────────────────────────────────────

class ClaimStatus(str, Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ClaimStatus.PENDING


@dataclass
class Claim:
    user:            str
    proof_id:        int
    insurer:         str
    discount_amount: int
    status:          ClaimStatus
    submitted_at:    int

    def transition(self, new_status: ClaimStatus) -> None:
        """
        Move a pending claim to a terminal status.
        Raises InvalidStatus if the claim already left PENDING.
        """
        if self.status is not ClaimStatus.PENDING:
            raise InvalidStatus(
                details={"current": self.status.value, "requested": new_status.value}
            )
        if not new_status.is_terminal:
            raise ValueError(f"cannot transition a claim to {new_status.value}")
        self.status = new_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user":            self.user,
            "proof_id":        self.proof_id,
            "insurer":         self.insurer,
            "discount_amount": self.discount_amount,
            "status":          self.status.value,
            "submitted_at":    self.submitted_at,
        }


# ─────────────────────────────────────────────────────────────
# Value transfers
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Transfer:
    amount:    int
    sender:    str
    recipient: str

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "from": self.sender, "to": self.recipient}
