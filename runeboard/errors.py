"""
Runeboard Error Hierarchy

Exception hierarchy shared by the resolution engine, the game session and the
HTTP host adapter. All custom exceptions inherit from RuneBoardError for easy
catching and filtering.

Usage:
    from runeboard.errors import InvalidMoveError

    try:
        session.swap(3, 4, 3, 5)
    except InvalidMoveError as e:
        logger.warning(f"Rejected swap: {e.message}, reason: {e.reason}")
"""

from typing import Any

__all__ = [
    "ConfigurationError",
    "InvalidLayoutError",
    "InvalidMoveError",
    "InvalidStateError",
    # Base error
    "RuneBoardError",
    "SessionNotFoundError",
]


class RuneBoardError(Exception):
    """Base exception for all runeboard errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "RUNEBOARD_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Board Errors
# =============================================================================


class InvalidStateError(RuneBoardError):
    """Malformed grid or unusable session.

    Raised when a grid breaks a structural contract (wrong dimensions,
    missing cells, coordinates out of sync) or when a closed session is
    asked to mutate its board. These are programming errors, not
    recoverable gameplay conditions.
    """
    code: str = "INVALID_STATE"


class InvalidLayoutError(RuneBoardError):
    """Layout descriptor that cannot be turned into a board.

    Attributes:
        row: Offending descriptor row, when known
    """
    code: str = "INVALID_LAYOUT"

    def __init__(
        self,
        message: str,
        row: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.row = row
        if row is not None:
            self.context["row"] = row


# =============================================================================
# Move Errors
# =============================================================================


class InvalidMoveError(RuneBoardError):
    """Swap that cannot be applied to the current board.

    Raised by swap validation when the two cells are not adjacent, lie off
    the board, or involve an empty hole, a stone or a chained tile.

    Attributes:
        reason: Short machine-readable rejection reason (e.g. "chained")
    """
    code: str = "INVALID_MOVE"

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.reason = reason
        if reason:
            self.context["reason"] = reason


# =============================================================================
# Service Errors
# =============================================================================


class SessionNotFoundError(RuneBoardError):
    """Unknown or expired game session id."""
    code: str = "SESSION_NOT_FOUND"


class ConfigurationError(RuneBoardError):
    """Invalid configuration value read from the environment."""
    code: str = "CONFIGURATION_ERROR"
