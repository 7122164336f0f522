"""
Runtime context: one fully wired pipeline.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dietclaim.adapters.stores import (
    InMemoryLogStore,
    InMemoryPlanRegistry,
    InMemoryProfileStore,
    InMemoryValueLedger,
    InsurerRegistry,
)
from dietclaim.core.crypto import Ed25519KeyManager
from dietclaim.core.time import HeightClock
from dietclaim.ledger.journal import Journal
from dietclaim.proofs.issuer import ProofIssuer
from dietclaim.runtime.config import PipelineConfig
from dietclaim.settlement.engine import ClaimSettler
from dietclaim.verification.verifier import ComplianceVerifier


@dataclass
class PipelineContext:
    """Verifier → Issuer → Settler sharing one clock, ledger, lock and journal."""

    clock:        HeightClock
    value_ledger: InMemoryValueLedger
    plans:        InMemoryPlanRegistry
    profiles:     InMemoryProfileStore
    logs:         InMemoryLogStore
    insurers:     InsurerRegistry
    journal:      Journal
    verifier:     ComplianceVerifier
    issuer:       ProofIssuer
    settler:      ClaimSettler

    @classmethod
    def build(
        cls,
        config:      Optional[PipelineConfig] = None,
        key_manager: Optional[Ed25519KeyManager] = None,
    ) -> "PipelineContext":
        """Wire a pipeline with in-memory collaborators."""
        config = config or PipelineConfig()

        if key_manager is None and config.key_path:
            key_manager = Ed25519KeyManager.load_or_generate(Path(config.key_path))

        clock        = HeightClock(config.height)
        value_ledger = InMemoryValueLedger(allow_overdraft=config.allow_overdraft)
        plans        = InMemoryPlanRegistry()
        profiles     = InMemoryProfileStore()
        logs         = InMemoryLogStore()
        insurers     = InsurerRegistry()
        journal      = Journal(key_manager=key_manager, journal_path=config.journal_path)
        lock         = threading.RLock()

        verifier = ComplianceVerifier(
            config.verifier, clock, value_ledger,
            plans=plans, profiles=profiles, logs=logs,
            journal=journal, lock=lock,
        )
        issuer = ProofIssuer(
            config.issuer, clock, value_ledger,
            verifications=verifier,
            journal=journal, lock=lock,
        )
        settler = ClaimSettler(
            config.settler, clock, value_ledger,
            proofs=issuer, insurers=insurers,
            journal=journal, lock=lock,
        )

        return cls(
            clock=        clock,
            value_ledger= value_ledger,
            plans=        plans,
            profiles=     profiles,
            logs=         logs,
            insurers=     insurers,
            journal=      journal,
            verifier=     verifier,
            issuer=       issuer,
            settler=      settler,
        )

    @classmethod
    def from_config(
        cls,
        config_file:  Optional[Path] = None,
        journal_path: Optional[Path] = None,
        key_path:     Optional[Path] = None,
    ) -> "PipelineContext":
        """Create a context from a YAML file; explicit paths override it."""
        config = PipelineConfig.from_yaml(config_file) if config_file else PipelineConfig()
        if journal_path is not None:
            config.journal_path = str(journal_path)
        if key_path is not None:
            config.key_path = str(key_path)
        return cls.build(config)

    def __repr__(self) -> str:
        return (
            f"PipelineContext("
            f"height={self.clock.current_height()}, "
            f"journal_entries={len(self.journal)})"
        )
