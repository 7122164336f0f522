"""
DietClaim Verification

Stage one: score a period of daily logs against the user's plan and
record one Verification per (user, period).
"""

from dietclaim.verification.scoring import (
    MAX_PERIOD_BLOCKS,
    adherence_score,
    is_compliant_day,
    score_period,
)
from dietclaim.verification.verifier import ComplianceVerifier, VerifierConfig

__all__ = [
    "ComplianceVerifier",
    "VerifierConfig",
    "MAX_PERIOD_BLOCKS",
    "adherence_score",
    "is_compliant_day",
    "score_period",
]
