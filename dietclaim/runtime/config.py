"""
Pipeline configuration, loaded from YAML.

    admin: treasury
    height: 1000
    allow_overdraft: false
    verifier:
      max_periods: 100
      verification_fee: 500
      compliance_threshold: 80
    issuer:
      max_proofs: 1000
      proof_fee: 200
      proof_expiry: 52560
    settler:
      max_claims: 1000
      claim_fee: 100
    journal:
      path: .dietclaim/journal.jsonl
      key: .dietclaim/journal.key

Every key is optional. Each stage's admin defaults to the top-level admin.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from dietclaim.core.models import is_int
from dietclaim.proofs.issuer import IssuerConfig
from dietclaim.settlement.engine import SettlerConfig
from dietclaim.verification.verifier import VerifierConfig


DEFAULT_ADMIN = "admin"


def _section(cls, admin: str, data: Optional[Dict[str, Any]], name: str):
    values = {"admin": admin}
    values.update(data or {})
    try:
        return cls(**values)
    except TypeError as exc:
        raise ValueError(f"Invalid '{name}' configuration: {exc}") from exc


@dataclass
class PipelineConfig:
    admin:           str           = DEFAULT_ADMIN
    height:          int           = 0
    allow_overdraft: bool          = False
    verifier:        VerifierConfig = None
    issuer:          IssuerConfig   = None
    settler:         SettlerConfig  = None
    journal_path:    Optional[str] = None
    key_path:        Optional[str] = None

    def __post_init__(self) -> None:
        if self.verifier is None:
            self.verifier = VerifierConfig(admin=self.admin)
        if self.issuer is None:
            self.issuer = IssuerConfig(admin=self.admin)
        if self.settler is None:
            self.settler = SettlerConfig(admin=self.admin)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PipelineConfig":
        """Build from a parsed YAML/JSON mapping. Raises ValueError on bad input."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Pipeline configuration must be a mapping")
        data = dict(data)

        admin   = str(data.pop("admin", DEFAULT_ADMIN))
        journal = data.pop("journal", None) or {}

        height = data.pop("height", 0)
        if not is_int(height) or height < 0:
            raise ValueError(f"height must be a non-negative integer, got {height!r}")

        config = cls(
            admin=           admin,
            height=          height,
            allow_overdraft= bool(data.pop("allow_overdraft", False)),
            verifier=        _section(VerifierConfig, admin, data.pop("verifier", None), "verifier"),
            issuer=          _section(IssuerConfig,   admin, data.pop("issuer", None),   "issuer"),
            settler=         _section(SettlerConfig,  admin, data.pop("settler", None),  "settler"),
            journal_path=    journal.get("path"),
            key_path=        journal.get("key"),
        )
        if data:
            raise ValueError(f"Unknown configuration keys: {sorted(data)}")
        return config

    @classmethod
    def from_yaml(cls, config_file: Path) -> "PipelineConfig":
        """Load configuration from a YAML file."""
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data)
