"""
Utility modules for CulturePoints.
"""
from .logging_config import setup_logging, get_logger
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    forbidden,
    not_found,
    internal_error,
)
from .exceptions import (
    RewardsError,
    FormatError,
    ValidationError,
    NotFoundError,
    PlayerNotFoundError,
    CheckpointNotFoundError,
    ConflictError,
    DailyLimitExceededError,
    InvariantViolationError,
)
