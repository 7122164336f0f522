"""
DietClaim Proofs

Stage two: mint expiring, revocable proofs from passing verifications.
"""

from dietclaim.proofs.issuer import IssuerConfig, ProofIssuer

__all__ = ["IssuerConfig", "ProofIssuer"]
