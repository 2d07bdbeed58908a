from carddrop.models.card import CardDefinition, CardInstance
from carddrop.models.failure import (
    ApiResponse,
    FailureDetail,
    FailureKind,
    InvalidInputError,
    KnownError,
    NotFoundError,
    OutcomeType,
    UnauthorizedError,
    UpstreamFailureError,
    create_known_failure,
    create_success,
    create_unknown_failure,
    finalize_response,
    is_finalized,
)
from carddrop.models.session import EPOCH, UserSession

__all__ = [
    "ApiResponse",
    "CardDefinition",
    "CardInstance",
    "EPOCH",
    "FailureDetail",
    "FailureKind",
    "InvalidInputError",
    "KnownError",
    "NotFoundError",
    "OutcomeType",
    "UnauthorizedError",
    "UpstreamFailureError",
    "UserSession",
    "create_known_failure",
    "create_success",
    "create_unknown_failure",
    "finalize_response",
    "is_finalized",
]
