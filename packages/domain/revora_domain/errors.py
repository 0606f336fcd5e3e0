"""Errors raised by ledger operations.

Every failure is reported synchronously to the caller and leaves state exactly
as it was before the operation (see Runtime.atomic). Errors are grouped into
six categories; concrete classes name the specific failed guard.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""
    pass


# =============================================================================
# Categories
# =============================================================================

class InvalidInput(LedgerError, ValueError):
    """Zero/negative amounts, malformed addresses, out-of-range bps."""
    pass


class InvalidState(LedgerError):
    """Operation not allowed at the current lifecycle stage."""
    pass


class Unauthorized(LedgerError):
    """Caller lacks the required role."""
    pass


class AlreadyDone(LedgerError):
    """Operation was already performed (double claim, double close, ...)."""
    pass


class DeadlineExceeded(LedgerError):
    """A claim window has passed."""
    pass


class InsufficientEffect(LedgerError):
    """Computed amount rounds to zero."""
    pass


class TransferFailed(LedgerError):
    """The payment asset rejected a transfer."""
    pass


# =============================================================================
# InvalidInput
# =============================================================================

class ZeroAmount(InvalidInput):
    pass


class AmountTooLarge(InvalidInput):
    pass


class InvalidAddress(InvalidInput):
    pass


class InvalidBasisPoints(InvalidInput):
    pass


class InvalidDuration(InvalidInput):
    pass


class InsufficientBalance(InvalidInput):
    pass


class UnknownDistribution(InvalidInput):
    pass


class UnknownTranche(InvalidInput):
    pass


class FutureLookup(InvalidInput):
    """Checkpoint lookups must target a sequence that has already committed."""
    pass


# =============================================================================
# InvalidState
# =============================================================================

class FundingNotComplete(InvalidState):
    pass


class TransfersFrozen(InvalidState):
    pass


class NotCancelled(InvalidState):
    pass


class NoPool(InvalidState):
    pass


class TrancheNotConfigured(InvalidState):
    pass


class ClaimPeriodActive(InvalidState):
    pass


# =============================================================================
# Unauthorized
# =============================================================================

class NotOperator(Unauthorized):
    pass


class OperatorNotAllowed(Unauthorized):
    """The controlling operator may not invest in its own tranche."""
    pass


class NotConfigurer(Unauthorized):
    pass


# =============================================================================
# AlreadyDone
# =============================================================================

class AlreadyClaimed(AlreadyDone):
    pass


class TrancheAlreadyClosed(AlreadyDone):
    pass


class AlreadyInState(AlreadyDone):
    pass


class AlreadyWithdrawn(AlreadyDone):
    pass


class AddressInUse(AlreadyDone):
    pass


# =============================================================================
# DeadlineExceeded
# =============================================================================

class DeadlinePassed(DeadlineExceeded):
    pass


# =============================================================================
# InsufficientEffect
# =============================================================================

class BelowMinimum(InsufficientEffect):
    pass


class NothingToClaim(InsufficientEffect):
    pass


class NoBalance(InsufficientEffect):
    pass


class RefundTooSmall(InsufficientEffect):
    pass
