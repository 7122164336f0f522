"""
dietclaim/ledger/journal.py

Append-only signed audit journal.

emit() MUST, in this exact order:
  1. Acquire lock
  2. Build the entry with causal_hash = SHA-256(JCS(prev.to_chain_dict()))
  3. Sign canonical bytes of to_chain_dict()
  4. Append to the JSONL file, if the journal is file-backed
  5. Advance internal state — only after a confirmed write
  6. Return the signed entry

A failed write raises JournalWriteError and leaves sequence and head
untouched. Inside batch() the entries of one operation are staged and
appended together, so a failed write drops all of them or none.
"""

import json
import threading
import warnings
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from dietclaim.core.canonical import canonical_hash, canonicalize
from dietclaim.core.crypto import Ed25519KeyManager
from dietclaim.core.exceptions import JournalWriteError
from dietclaim.core.time import journal_timestamp


GENESIS_HASH = "0" * 64


class RecordType:
    """Journal record_type constants. emit() rejects anything else."""
    VERIFICATION       = "verification"
    PROOF_ISSUED       = "proof_issued"
    PROOF_REVOKED      = "proof_revoked"
    CLAIM_SUBMITTED    = "claim_submitted"
    CLAIM_SETTLED      = "claim_settled"
    INSURER_REGISTERED = "insurer_registered"
    CONFIG_CHANGED     = "config_changed"
    FEE_TRANSFER       = "fee_transfer"


_VALID_RECORD_TYPES = {
    RecordType.VERIFICATION,
    RecordType.PROOF_ISSUED,
    RecordType.PROOF_REVOKED,
    RecordType.CLAIM_SUBMITTED,
    RecordType.CLAIM_SETTLED,
    RecordType.INSURER_REGISTERED,
    RecordType.CONFIG_CHANGED,
    RecordType.FEE_TRANSFER,
}


@dataclass
class JournalEntry:
    """A single signed entry in the journal"""
    sequence:          int
    record_type:       str
    component:         str
    actor:             str
    height:            int
    timestamp:         str
    causal_hash:       str
    signer_public_key: str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    def to_chain_dict(self) -> Dict[str, Any]:
        """Everything except the signature. Signed, and hashed by the next entry."""
        return {
            "actor":             self.actor,
            "causal_hash":       self.causal_hash,
            "component":         self.component,
            "height":            self.height,
            "payload":           self.payload,
            "record_type":       self.record_type,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_chain_dict()
        d["signature"] = self.signature
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            sequence=          data["sequence"],
            record_type=       data["record_type"],
            component=         data["component"],
            actor=             data["actor"],
            height=            data["height"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            signer_public_key= data["signer_public_key"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    def chain_hash(self) -> str:
        """The causal_hash any entry following this one must carry."""
        return canonical_hash(self.to_chain_dict())

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return Ed25519KeyManager.verify_detached(
            canonicalize(self.to_chain_dict()),
            self.signature,
            self.signer_public_key,
        )


@dataclass
class JournalViolation:
    sequence: int
    kind:     str
    detail:   str

    def to_dict(self) -> Dict[str, Any]:
        return {"sequence": self.sequence, "kind": self.kind, "detail": self.detail}


def verify_entries(entries: List[JournalEntry]) -> List[JournalViolation]:
    """
    Check sequence, chain linkage, record_type and signature of every entry.
    Returns all violations found. An empty list means the journal is intact.
    """
    violations: List[JournalViolation] = []
    prev_hash = GENESIS_HASH

    for i, entry in enumerate(entries):
        if entry.sequence != i:
            violations.append(JournalViolation(
                entry.sequence, "sequence", f"expected {i}, got {entry.sequence}",
            ))
        if entry.causal_hash != prev_hash:
            violations.append(JournalViolation(
                entry.sequence, "chain",
                f"expected ...{prev_hash[-12:]}, got ...{entry.causal_hash[-12:]}",
            ))
        if entry.record_type not in _VALID_RECORD_TYPES:
            violations.append(JournalViolation(
                entry.sequence, "schema", f"unknown record_type {entry.record_type!r}",
            ))
        if not entry.verify_signature():
            violations.append(JournalViolation(
                entry.sequence, "signature", "signature does not verify",
            ))
        prev_hash = entry.chain_hash()

    return violations


def load_entries(path: Path) -> List[JournalEntry]:
    """
    Read every entry of a JSONL journal.
    Raises FileNotFoundError, or ValueError naming the bad line.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Journal not found: {path}")

    entries: List[JournalEntry] = []
    with open(path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                if not isinstance(data, dict):
                    raise TypeError(f"expected an object, got {type(data).__name__}")
                entries.append(JournalEntry.from_dict(data))
            except (json.JSONDecodeError, KeyError, TypeError) as exc:
                raise ValueError(f"Invalid journal entry at line {line_num}: {exc}") from exc
    return entries


class Journal:
    """
    Signed, hash-chained record of every successful pipeline mutation.

    In-memory when journal_path is None, otherwise mirrored to a JSONL
    file. State survives restart by replaying the file on __init__.
    Thread-safe via internal lock (single-process only).
    """

    def __init__(
        self,
        key_manager:  Optional[Ed25519KeyManager] = None,
        journal_path: Optional[Path] = None,
    ) -> None:
        self.key_manager = key_manager or Ed25519KeyManager.generate()

        self._lock:    threading.RLock    = threading.RLock()
        self._entries: List[JournalEntry] = []
        self._staged:  Optional[List[JournalEntry]] = None
        self._path:    Optional[Path]     = Path(journal_path) if journal_path else None

        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._restore_state()

    # ── Public API ────────────────────────────────────────────

    def emit(
        self,
        record_type: str,
        component:   str,
        actor:       str,
        height:      int,
        payload:     Dict[str, Any],
    ) -> JournalEntry:
        """
        Append one signed entry. Raises ValueError on an unknown
        record_type and JournalWriteError if the file write fails.
        Inside batch() the entry is staged and written when the batch ends.
        """
        if record_type not in _VALID_RECORD_TYPES:
            raise ValueError(
                f"Invalid record_type '{record_type}'. "
                f"Valid: {sorted(_VALID_RECORD_TYPES)}"
            )

        with self._lock:
            pending = self._staged if self._staged is not None else []
            chain   = self._entries + pending
            prev    = chain[-1] if chain else None
            entry = JournalEntry(
                sequence=          len(chain),
                record_type=       record_type,
                component=         component,
                actor=             actor,
                height=            height,
                timestamp=         journal_timestamp(),
                causal_hash=       prev.chain_hash() if prev else GENESIS_HASH,
                signer_public_key= self.key_manager.public_key_hex,
                payload=           payload,
            )
            entry.signature = self.key_manager.sign(canonicalize(entry.to_chain_dict()))

            if self._staged is not None:
                self._staged.append(entry)
                return entry

            self._write([entry])
            return entry

    @contextmanager
    def batch(self) -> Iterator[None]:
        """
        Group the emits of one operation into a single append.

        Nothing is visible until the block exits cleanly and the write
        succeeds. An exception in the block discards the staged entries.
        Nested batches join the outermost one.
        """
        with self._lock:
            if self._staged is not None:
                yield
                return
            self._staged = []
            try:
                yield
                staged = self._staged
            finally:
                self._staged = None
            if staged:
                self._write(staged)

    def check_writable(self) -> None:
        """Raise JournalWriteError if the backing file cannot be appended to."""
        if self._path is None:
            return
        try:
            with open(self._path, "a", encoding="utf-8"):
                pass
        except OSError as exc:
            raise JournalWriteError(f"Journal: {self._path} is not writable: {exc}") from exc

    @property
    def entries(self) -> List[JournalEntry]:
        return list(self._entries)

    def entries_of(self, record_type: str) -> List[JournalEntry]:
        return [e for e in self._entries if e.record_type == record_type]

    def verify_chain(self) -> bool:
        """True if every entry verifies and links to its predecessor."""
        return not verify_entries(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        by_type: Dict[str, int] = {}
        for entry in self._entries:
            by_type[entry.record_type] = by_type.get(entry.record_type, 0) + 1
        return {
            "total_entries": len(self._entries),
            "by_type":       by_type,
            "head_hash":     self._entries[-1].chain_hash() if self._entries else GENESIS_HASH,
            "journal_file":  str(self._path) if self._path else None,
        }

    def __len__(self) -> int:
        return len(self._entries)

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Reload entries from an existing file. A corrupt file leaves the
        journal empty and issues a RuntimeWarning; new entries will then
        break the chain, which verify tooling reports.
        """
        if not self._path.exists():
            return
        try:
            self._entries = load_entries(self._path)
        except (OSError, ValueError) as exc:
            self._entries = []
            warnings.warn(
                f"Journal: could not restore state from {self._path}: {exc}. "
                "Run `dietclaim journal verify` before emitting.",
                RuntimeWarning,
                stacklevel=3,
            )

    def _write(self, entries: List[JournalEntry]) -> None:
        """Append to the file in one write, then advance in-memory state."""
        if self._path is not None:
            text = "".join(json.dumps(e.to_dict()) + "\n" for e in entries)
            try:
                with open(self._path, "a", encoding="utf-8") as f:
                    f.write(text)
            except OSError as exc:
                raise JournalWriteError(f"Journal: write failed — {exc}") from exc
        self._entries.extend(entries)
