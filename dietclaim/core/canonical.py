"""
DietClaim: Canonical JSON Encoding — RFC 8785 (JCS)

Every journal signature and chain hash goes through this module.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "DietClaim requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    Values must be JSON-primitive. Convert bytes to hex first.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """Lowercase hex SHA-256 of the RFC 8785 canonical form."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()
