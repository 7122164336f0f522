"""
DietClaim Journal - Signed Append-Only Audit Log

Every successful verification, proof, claim, and fee transfer is
recorded here.
"""

from dietclaim.ledger.journal import (
    GENESIS_HASH,
    Journal,
    JournalEntry,
    JournalViolation,
    RecordType,
    load_entries,
    verify_entries,
)

__all__ = [
    "GENESIS_HASH",
    "Journal",
    "JournalEntry",
    "JournalViolation",
    "RecordType",
    "load_entries",
    "verify_entries",
]
