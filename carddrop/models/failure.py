"""
Outcome Envelope — Unified Result Classification.

Every game operation returns an ApiResponse to the platform layer. Every
failure is classified and carries a user-appropriate message, so the
rendering layer never sees a raw exception.

Response types:
- Success: Operation completed successfully
- KnownFailure: System knows why it failed (cooldown, bad index, ...)
- UnknownFailure: System does not know why it failed

AUTHORITY BOUNDARY:
All responses handed to the platform layer pass through `finalize_response()`.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, PrivateAttr


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Cooldown not elapsed
    NOT_ELIGIBLE = "not_eligible"

    # Resource failures
    NOT_FOUND = "not_found"
    NO_ACTIVE_SESSION = "no_active_session"

    # Actor is not allowed to act on this resource
    UNAUTHORIZED = "unauthorized"

    INVALID_INPUT = "invalid_input"

    # Durable store or remote artwork failures
    UPSTREAM_FAILURE = "upstream_failure"

    INVARIANT_VIOLATION = "invariant_violation"

    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )
    retry_after_seconds: int | None = Field(
        default=None,
        description="Whole seconds until the action becomes available (cooldowns only)",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Universal response envelope for all game operations.

    Every response is classified into one of three outcome types,
    ensuring no failure reaches the user unexplained.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    # Set only by finalize_response
    _finalized: bool = PrivateAttr(default=False)

    @property
    def ok(self) -> bool:
        return self.outcome == OutcomeType.SUCCESS

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        """Create a success response."""
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        retry_after_seconds: int | None = None,
    ) -> "ApiResponse[Any]":
        """
        Create a known failure response.

        Use when the system knows exactly why the operation failed.
        Example: Cooldown still running, inventory index out of range.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
                retry_after_seconds=retry_after_seconds,
            ),
        )


# Standard exception types that map to known failures


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
        retry_after_seconds: int | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            retry_after_seconds=self.retry_after_seconds,
        )


class NotFoundError(KnownError):
    """A referenced card, index, instance or choice does not exist."""

    def __init__(self, message: str, detail: str | None = None, suggestion: str | None = None):
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=message,
            detail=detail,
            suggestion=suggestion,
            status_code=404,
        )


class UnauthorizedError(KnownError):
    """The acting user may not perform this action."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.UNAUTHORIZED,
            message=message,
            detail=detail,
            status_code=403,
        )


class InvalidInputError(KnownError):
    """The request is malformed or self-contradictory."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            status_code=400,
        )


class UpstreamFailureError(KnownError):
    """The durable store or a remote artwork host failed."""

    def __init__(self, message: str, detail: str | None = None, suggestion: str | None = None):
        super().__init__(
            kind=FailureKind.UPSTREAM_FAILURE,
            message=message,
            detail=detail,
            suggestion=suggestion or "Try again in a moment.",
            status_code=502,
        )


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================

UNKNOWN_FAILURE_MESSAGE = "Something went wrong and I don't know why. Please try again."
UNKNOWN_FAILURE_SUGGESTION = "If this persists, please report the issue."


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Finalize a response through the authority boundary.

    Args:
        response: The ApiResponse to finalize

    Returns:
        The same response, marked as having passed through the boundary

    Raises:
        ValueError: If response structure is invalid
    """
    if response.outcome == OutcomeType.SUCCESS:
        if response.failure is not None:
            raise ValueError("Success response must not have failure details")
    else:
        if response.failure is None:
            raise ValueError(f"{response.outcome.value} response must have failure details")

    response._finalized = True

    return response


def is_finalized(response: ApiResponse[Any]) -> bool:
    """Check if a response has passed through the authority boundary."""
    return response._finalized


def create_success(data: T) -> ApiResponse[T]:
    """Create a finalized success response."""
    response = ApiResponse[T](outcome=OutcomeType.SUCCESS, data=data)
    return finalize_response(response)


def create_known_failure(error: KnownError) -> ApiResponse[Any]:
    """Create a finalized known failure response from a KnownError."""
    return finalize_response(error.to_response())


def create_unknown_failure(
    exception: Exception,
    include_type: bool = True,
) -> ApiResponse[Any]:
    """
    Create an unknown failure response from an exception.

    The message is fixed and cannot be customized.
    """
    detail = None
    if include_type:
        detail = f"{type(exception).__name__}"

    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.UNKNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=UNKNOWN_FAILURE_MESSAGE,
            detail=detail,
            suggestion=UNKNOWN_FAILURE_SUGGESTION,
        ),
    )

    return finalize_response(response)
