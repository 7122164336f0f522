"""
DietClaim Exception Hierarchy

All recoverable errors inherit from DietClaimError for easy catching.
Each concrete error belongs to exactly one kind (authorization,
validation, not-found, conflict, expired, capacity, state, transfer).

InvariantViolation is NOT a DietClaimError. It signals a bug, not a
user-facing failure, and must never be caught alongside them.
"""


class DietClaimError(Exception):
    """Base exception for all DietClaim errors"""

    def __init__(self, message: str = None, details: dict = None):
        message = message or self.__class__.__doc__ or self.__class__.__name__
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class InvariantViolation(RuntimeError):
    """Raised when an internal invariant is breached. Always a bug."""
    pass


class JournalWriteError(RuntimeError):
    """The audit journal could not be written. Not a DietClaimError."""
    pass


# ── Kinds ─────────────────────────────────────────────────────

class AuthorizationError(DietClaimError):
    """Caller is not the admin, insurer, or owner"""
    pass


class ValidationError(DietClaimError):
    """Raised when input validation fails"""
    pass


class NotFoundError(DietClaimError):
    """Raised when a referenced record does not exist"""
    pass


class ConflictError(DietClaimError):
    """Raised when a record for the key already exists"""
    pass


class ExpiredError(DietClaimError):
    """Raised when an artifact is past expiry or revoked"""
    pass


class CapacityExceededError(DietClaimError):
    """Raised when a configured ceiling is reached"""
    pass


class InvalidStateError(DietClaimError):
    """Raised on a disallowed state transition"""
    pass


class TransferError(DietClaimError):
    """Raised when the value transfer cannot complete"""
    pass


# ── Authorization ─────────────────────────────────────────────

class NotAuthorized(AuthorizationError):
    """Caller is not authorized for this operation"""
    pass


# ── Validation ────────────────────────────────────────────────

class InvalidPeriod(ValidationError):
    """Period must satisfy start < end and end - start <= 365"""
    pass


class InvalidThreshold(ValidationError):
    """Compliance threshold must be within 1..100"""
    pass


class InvalidFee(ValidationError):
    """Fee must be a non-negative integer"""
    pass


class InvalidExpiry(ValidationError):
    """Proof expiry must be a positive number of blocks"""
    pass


class InvalidProofHash(ValidationError):
    """Proof hash must be non-empty"""
    pass


class InvalidAmount(ValidationError):
    """Discount amount must be positive"""
    pass


class InvalidProofId(ValidationError):
    """Proof id is unknown or the proof ceiling is invalid"""
    pass


class InvalidClaimId(ValidationError):
    """Claim ceiling must be positive"""
    pass


class InsufficientScore(ValidationError):
    """Verification does not qualify for a proof"""
    pass


class InvalidUser(ValidationError):
    """User has no profile or does not own the proof"""
    pass


class InvalidPlan(ValidationError):
    """Subscribed plan id is invalid or the plan does not exist"""
    pass


# ── Not found ─────────────────────────────────────────────────

class VerificationFailed(NotFoundError):
    """No verification recorded for this period"""
    pass


class InvalidVerification(NotFoundError):
    """No verification exists for this period"""
    pass


class InvalidProof(NotFoundError):
    """Proof does not exist"""
    pass


class ClaimNotFound(NotFoundError):
    """Claim does not exist"""
    pass


class InsurerNotRegistered(NotFoundError):
    """Insurer is not registered"""
    pass


# ── Conflict ──────────────────────────────────────────────────

class AlreadyVerified(ConflictError):
    """Period has already been verified"""
    pass


class ProofAlreadyGenerated(ConflictError):
    """A proof already exists for this period"""
    pass


class ClaimAlreadySubmitted(ConflictError):
    """A claim already exists for this proof"""
    pass


# ── Expired / invalidated ─────────────────────────────────────

class ProofExpired(ExpiredError):
    """Proof has expired"""
    pass


class ProofInvalidated(ExpiredError):
    """Proof has been revoked"""
    pass


# ── Capacity ──────────────────────────────────────────────────

class MaxPeriodsExceeded(CapacityExceededError):
    """User has reached the maximum number of verified periods"""
    pass


class MaxProofsExceeded(CapacityExceededError):
    """Maximum number of proofs reached"""
    pass


class MaxClaimsExceeded(CapacityExceededError):
    """Maximum number of claims reached"""
    pass


# ── State ─────────────────────────────────────────────────────

class InvalidStatus(InvalidStateError):
    """Claim is not pending"""
    pass


# ── Transfer ──────────────────────────────────────────────────

class TransferFailed(TransferError):
    """Fee transfer failed"""
    pass
