"""
Custom exceptions for CulturePoints business logic.

Each exception carries a machine-readable code that the API layer maps to an
HTTP status (see utils/errors.py).
"""


class RewardsError(Exception):
    """Base exception for all rewards engine errors."""

    def __init__(self, message: str, code: str = "REWARDS_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class FormatError(RewardsError):
    """Malformed wallet address or email. Rejected before any write."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message, "INVALID_FORMAT")


class ValidationError(RewardsError):
    """Invalid input data (bad CSV row, non-positive credit, ...)."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class NotFoundError(RewardsError):
    """Resource not found."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class PlayerNotFoundError(NotFoundError):
    """No player for the given id, address or email."""

    def __init__(self, identifier=None):
        super().__init__("Player", identifier)


class CheckpointNotFoundError(NotFoundError):
    """Checkpoint not found."""

    def __init__(self, identifier=None):
        super().__init__("Checkpoint", identifier)


class ConflictError(RewardsError):
    """Address or email already bound to a different player."""

    def __init__(self, message: str):
        super().__init__(message, "ALREADY_BOUND")


class DailyLimitExceededError(RewardsError):
    """Player reached the daily check-in cap. Message is shown verbatim."""

    def __init__(self, limit: int):
        self.limit = limit
        message = f"Daily checkpoint limit of {limit} reached. Come back tomorrow!"
        super().__init__(message, "DAILY_LIMIT_EXCEEDED")


class InvariantViolationError(RewardsError):
    """
    Ledger or pending-points invariant broken (e.g. re-awarding an entry).

    Programming error: callers must not catch and ignore this.
    """

    def __init__(self, message: str):
        super().__init__(message, "INVARIANT_VIOLATION")
