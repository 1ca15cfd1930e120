"""Custom exception classes for draw errors.

Provides structured error handling with error codes and caller-facing messages.
Every error is a precondition violation raised before any state is touched.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for draw errors."""

    # Access
    UNAUTHORIZED = "UNAUTHORIZED"

    # Commit / reveal ordering
    ALREADY_COMMITTED = "ALREADY_COMMITTED"
    NOT_COMMITTED = "NOT_COMMITTED"
    ALREADY_REVEALED = "ALREADY_REVEALED"
    SEED_MISMATCH = "SEED_MISMATCH"

    # Drawing
    NOT_REVEALED = "NOT_REVEALED"
    DECK_EXHAUSTED = "DECK_EXHAUSTED"

    # Round lifecycle
    ROUND_IN_PROGRESS = "ROUND_IN_PROGRESS"

    # Validation errors
    INVALID_PAYLOAD = "INVALID_PAYLOAD"


class DrawError(Exception):
    """Base exception for draw-related errors.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable error message
        details: Additional error details
        recoverable: Whether retrying with corrected input can succeed
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errorCode": self.code,
            "errorMessage": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class UnauthorizedError(DrawError):
    """Raised when a non-authority caller attempts a guarded operation."""

    def __init__(self, caller: str, operation: str):
        super().__init__(
            code=ErrorCode.UNAUTHORIZED,
            message=f"Caller is not the authority: {operation} denied",
            details={"caller": caller, "operation": operation},
            recoverable=True,
        )


class AlreadyCommittedError(DrawError):
    """Raised when committing to a round that already holds a commitment."""

    def __init__(self, phase: str):
        super().__init__(
            code=ErrorCode.ALREADY_COMMITTED,
            message="Round already has a commitment",
            details={"phase": phase},
        )


class NotCommittedError(DrawError):
    """Raised when revealing before any commitment exists."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.NOT_COMMITTED,
            message="No commitment recorded for this round",
        )


class AlreadyRevealedError(DrawError):
    """Raised when revealing a round a second time."""

    def __init__(self, phase: str):
        super().__init__(
            code=ErrorCode.ALREADY_REVEALED,
            message="Round secret has already been revealed",
            details={"phase": phase},
        )


class SeedMismatchError(DrawError):
    """Raised when the disclosed secret does not hash to the committed digest."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            code=ErrorCode.SEED_MISMATCH,
            message="Secret does not match the committed digest",
            details={"expectedDigest": expected, "actualDigest": actual},
            recoverable=False,
        )


class NotRevealedError(DrawError):
    """Raised when drawing before the secret is revealed."""

    def __init__(self, phase: str):
        super().__init__(
            code=ErrorCode.NOT_REVEALED,
            message="Cannot draw before the secret is revealed",
            details={"phase": phase},
        )


class DeckExhaustedError(DrawError):
    """Raised when drawing from a deck with no cards left."""

    def __init__(self, deck_size: int):
        super().__init__(
            code=ErrorCode.DECK_EXHAUSTED,
            message=f"All {deck_size} cards have been drawn",
            details={"deckSize": deck_size},
        )


class RoundInProgressError(DrawError):
    """Raised when resetting a round that still has undrawn cards."""

    def __init__(self, phase: str, remaining: int):
        super().__init__(
            code=ErrorCode.ROUND_IN_PROGRESS,
            message=f"Round in progress: {remaining} cards remaining",
            details={"phase": phase, "remaining": remaining},
        )


class InvalidPayloadError(DrawError):
    """Raised when a digest, secret or deck size is malformed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            code=ErrorCode.INVALID_PAYLOAD,
            message=message,
            details={"field": field} if field else {},
        )
