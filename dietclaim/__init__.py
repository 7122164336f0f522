"""
dietclaim/__init__.py

DietClaim: Diet Adherence → Proof → Insurance Discount Settlement

Three stages, each consuming exactly one artifact of the stage before:

    ComplianceVerifier.verify_period   → Verification
    ProofIssuer.generate_proof         → Proof      (needs a passing Verification)
    ClaimSettler.submit_claim          → Claim      (needs a live Proof)

Every fee-gated call moves exactly one fee from caller to admin, and
every successful mutation lands in the signed audit Journal.
"""

__version__ = "0.3.0"

from dietclaim.core.exceptions import DietClaimError, InvariantViolation, JournalWriteError
from dietclaim.core.models import (
    AggregateScore,
    Claim,
    ClaimStatus,
    DailyLog,
    Nutrient,
    Plan,
    PlanRule,
    Proof,
    Transfer,
    Verification,
)
from dietclaim.core.crypto import Ed25519KeyManager
from dietclaim.core.time import HeightClock
from dietclaim.ledger.journal import Journal, RecordType
from dietclaim.verification.verifier import ComplianceVerifier, VerifierConfig
from dietclaim.proofs.issuer import IssuerConfig, ProofIssuer
from dietclaim.settlement.engine import ClaimSettler, SettlerConfig
from dietclaim.runtime.config import PipelineConfig
from dietclaim.runtime.context import PipelineContext

__all__ = [
    # Stages
    "ComplianceVerifier",
    "ProofIssuer",
    "ClaimSettler",
    "VerifierConfig",
    "IssuerConfig",
    "SettlerConfig",
    # Records
    "AggregateScore",
    "Claim",
    "ClaimStatus",
    "DailyLog",
    "Nutrient",
    "Plan",
    "PlanRule",
    "Proof",
    "Transfer",
    "Verification",
    # Errors
    "DietClaimError",
    "InvariantViolation",
    "JournalWriteError",
    # Runtime
    "Ed25519KeyManager",
    "HeightClock",
    "Journal",
    "RecordType",
    "PipelineConfig",
    "PipelineContext",
]
