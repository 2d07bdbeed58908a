"""
Tests for the failure authority boundary.

All responses handed to the platform layer pass through finalize_response().
"""

from datetime import timedelta

import pytest

from carddrop.models.failure import (
    UNKNOWN_FAILURE_MESSAGE,
    UNKNOWN_FAILURE_SUGGESTION,
    ApiResponse,
    FailureDetail,
    FailureKind,
    NotFoundError,
    OutcomeType,
    UpstreamFailureError,
    create_known_failure,
    create_success,
    create_unknown_failure,
    finalize_response,
    is_finalized,
)
from carddrop.services.cooldowns import CooldownAction, NotEligibleError


class TestFinalizeResponse:
    """Tests for the finalize_response authority boundary."""

    def test_success_response_is_finalized(self) -> None:
        response = ApiResponse(outcome=OutcomeType.SUCCESS, data={"key": "value"})
        finalized = finalize_response(response)

        assert is_finalized(finalized)
        assert finalized.ok

    def test_unfinalized_response_not_marked(self) -> None:
        """Responses that bypass the boundary are detectable."""
        response = ApiResponse(outcome=OutcomeType.SUCCESS, data={"key": "value"})

        assert not is_finalized(response)

    def test_flag_belongs_to_the_instance(self) -> None:
        """Finalizing one response never marks another, and the flag is not serialized."""
        finalized = finalize_response(ApiResponse(outcome=OutcomeType.SUCCESS, data=1))
        twin = ApiResponse(outcome=OutcomeType.SUCCESS, data=1)

        assert is_finalized(finalized)
        assert not is_finalized(twin)
        assert "_finalized" not in finalized.model_dump()

    def test_success_with_failure_raises(self) -> None:
        response = ApiResponse(
            outcome=OutcomeType.SUCCESS,
            data={"key": "value"},
            failure=FailureDetail(kind=FailureKind.UNKNOWN, message="oops"),
        )

        with pytest.raises(ValueError, match="must not have failure"):
            finalize_response(response)

    def test_failure_without_details_raises(self) -> None:
        response = ApiResponse(outcome=OutcomeType.KNOWN_FAILURE, failure=None)

        with pytest.raises(ValueError, match="must have failure details"):
            finalize_response(response)


class TestResponseFactories:
    def test_create_success(self) -> None:
        response = create_success({"cards": 3})

        assert is_finalized(response)
        assert response.data == {"cards": 3}

    def test_known_failure_keeps_message(self) -> None:
        """Known failures carry the error's own user-facing message."""
        response = create_known_failure(
            NotFoundError("Invalid index.", detail="index 9", suggestion="Check your inventory.")
        )

        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.kind == FailureKind.NOT_FOUND
        assert response.failure.message == "Invalid index."
        assert response.failure.detail == "index 9"
        assert response.failure.suggestion == "Check your inventory."

    def test_cooldown_failure_carries_retry_after(self) -> None:
        error = NotEligibleError(CooldownAction.DRAW, timedelta(seconds=42))

        response = create_known_failure(error)

        assert response.failure is not None
        assert response.failure.retry_after_seconds == 42
        assert response.failure.message == "You can draw again in 42s."

    def test_upstream_failure_default_suggestion(self) -> None:
        error = UpstreamFailureError("Failed to load card images.")

        assert error.status_code == 502
        assert error.suggestion == "Try again in a moment."

    def test_unknown_failure_uses_fixed_message(self) -> None:
        response = create_unknown_failure(ValueError("secret internals"))

        assert response.outcome == OutcomeType.UNKNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.message == UNKNOWN_FAILURE_MESSAGE
        assert response.failure.suggestion == UNKNOWN_FAILURE_SUGGESTION
        assert response.failure.detail == "ValueError"
        assert "secret" not in response.model_dump_json()

    def test_unknown_failure_without_type(self) -> None:
        response = create_unknown_failure(ValueError("x"), include_type=False)

        assert response.failure is not None
        assert response.failure.detail is None
