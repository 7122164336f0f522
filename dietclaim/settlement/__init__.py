"""
DietClaim Settlement

Stage three: open one discount claim per proof against a registered
insurer, and let that insurer approve or reject it exactly once.

Design Philosophy:
- Insurer check first, proof lookup second
- Three-state claim machine, both outcomes terminal
- No value moves on settlement
"""

from dietclaim.settlement.engine import ClaimSettler, SettlerConfig

__all__ = ["ClaimSettler", "SettlerConfig"]
