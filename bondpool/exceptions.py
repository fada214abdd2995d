"""
bondpool Exceptions

Custom exception classes for the reserve pool and auction engines.

Every exception aborts the invocation that raised it; callers never see a
partially applied operation.
"""


class BondPoolException(Exception):
    """Base exception for bondpool."""
    pass


class ConfigurationError(BondPoolException):
    """Configuration error."""
    pass


# ── Authorization ─────────────────────────────────────────────────────

class AuthorizationError(BondPoolException):
    """Caller is not the identity an operation is restricted to."""
    pass


class NotBankError(AuthorizationError):
    """Caller is not the bank."""
    pass


class NotStakingOrBankError(AuthorizationError):
    """Caller is neither the bank nor the staking contract."""
    pass


class NotExecutableError(AuthorizationError):
    """Caller is not the executable (privileged configuration) identity."""
    pass


class NotAuctionOwnerError(AuthorizationError):
    """Caller does not own the auction."""
    pass


# ── Concurrency ───────────────────────────────────────────────────────

class ConcurrencyError(BondPoolException):
    """Operation interleaved with an in-flight one."""
    pass


class ReentrancyError(ConcurrencyError):
    """Swap invoked while the pool is locked."""
    pass


# ── Validation ────────────────────────────────────────────────────────

class ValidationError(BondPoolException, ValueError):
    """Malformed request."""
    pass


class InvalidAmountError(ValidationError):
    """Amount is negative or otherwise out of range."""
    pass


class InvalidSwapRequestError(ValidationError):
    """Swap must pay out exactly one side."""
    pass


class InvalidRecipientError(ValidationError):
    """Recipient is one of the swapped tokens."""
    pass


class InsufficientLiquidityError(ValidationError):
    """Requested output would exhaust a reserve, or a reserve is empty."""
    pass


class InvariantViolationError(ValidationError):
    """Constant product decreased."""
    pass


class InsufficientInputError(ValidationError):
    """No input amount detected."""
    pass


class InvalidPathError(ValidationError):
    """Quote path is too short."""
    pass


class InvalidAuctionDurationError(ValidationError):
    """Auction duration outside the configured bounds."""
    pass


class InvalidAuctionPriceError(ValidationError):
    """Auction min/max currency amounts are misordered or zero."""
    pass


class InvalidProductError(ValidationError):
    """Auction product is empty or malformed."""
    pass


class UnknownAssetError(ValidationError):
    """Token or position id is not registered."""
    pass


# ── Auction state ─────────────────────────────────────────────────────

class AuctionError(BondPoolException):
    """Auction is in the wrong state for the operation."""
    pass


class AuctionNotFoundError(AuctionError):
    """No auction with this id."""
    pass


class AuctionNotStartedError(AuctionError):
    """Auction starting time is still in the future."""
    pass


class AuctionExpiredError(AuctionError):
    """Auction duration has elapsed."""
    pass


class AuctionStateError(AuctionError):
    """Auction already completed or cancelled."""
    pass


class SelfBidError(AuctionError):
    """Auction owner bid on their own auction."""
    pass


# ── Ledger arithmetic ─────────────────────────────────────────────────

class LedgerArithmeticError(BondPoolException, ArithmeticError):
    """Entries arithmetic cannot be carried out."""
    pass


class LiquidityUnderflowError(LedgerArithmeticError):
    """Removal exceeds the pair's allocated entries."""
    pass


class ZeroDenominatorError(LedgerArithmeticError):
    """Division by an empty reserve."""
    pass


class LedgerInconsistencyError(BondPoolException):
    """total_entries no longer equals the sum of its pair entries."""
    pass


# ── Collaborators ─────────────────────────────────────────────────────

class TransferDeclinedError(BondPoolException):
    """A fungible asset or tokenized position refused a transfer."""
    pass


class InsufficientBalanceError(TransferDeclinedError):
    """Sender balance is too low."""
    pass
