"""
dietclaim/core/crypto.py

Ed25519 keys for signing journal entries.

A journal entry carries only the signer's public key hex, so checking an
entry never needs the private key:

    signer = Ed25519KeyManager.load_or_generate(".dietclaim/journal.key")
    sig    = signer.sign(canonicalize(entry.to_chain_dict()))
    Ed25519KeyManager.verify_detached(data, sig, signer.public_key_hex)

Signatures travel as unpadded base64url text.
"""

import base64
import binascii
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)


SIGNATURE_BYTES  = 64
PUBLIC_KEY_HEX   = 64


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class Ed25519KeyManager:
    """The journal's signing identity: one private key, its public hex."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        raw_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._public_key_hex = raw_public.hex()

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Read a PKCS8 PEM private key.
        Raises FileNotFoundError for a missing file and ValueError for
        anything that is not an Ed25519 key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            loaded = load_pem_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"Unreadable signing key {path}: {exc}") from exc
        if not isinstance(loaded, Ed25519PrivateKey):
            raise ValueError(f"{path} holds a {type(loaded).__name__}, not an Ed25519 key")
        return cls(loaded)

    @classmethod
    def load_or_generate(cls, path: Path) -> "Ed25519KeyManager":
        """Reuse the key at `path`, creating and saving one on first use."""
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        signer = cls.generate()
        signer.save(path)
        return signer

    # ── Signing ───────────────────────────────────────────────

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    def sign(self, data: bytes) -> str:
        return _b64url_encode(self._private_key.sign(data))

    @staticmethod
    def verify_detached(data: bytes, signature: str, public_key_hex: str) -> bool:
        """
        Check `signature` over `data` with nothing but a public key hex.
        Any malformed input counts as a failed check; this never raises.
        """
        if not isinstance(signature, str) or not isinstance(public_key_hex, str):
            return False
        if len(public_key_hex) != PUBLIC_KEY_HEX:
            return False
        try:
            public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            raw_sig = _b64url_decode(signature)
        except (ValueError, binascii.Error):
            return False
        if len(raw_sig) != SIGNATURE_BYTES:
            return False
        try:
            public_key.verify(raw_sig, data)
        except InvalidSignature:
            return False
        return True

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """Write the private key as unencrypted PKCS8 PEM. RuntimeError on failure."""
        path = Path(path)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(pem)
        except OSError as exc:
            raise RuntimeError(f"Could not write signing key to {path}: {exc}") from exc

    def __repr__(self) -> str:
        return f"Ed25519KeyManager(public_key_hex={self._public_key_hex[:16]}...)"
