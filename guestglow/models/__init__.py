"""
Pydantic models and status transitions for GuestGlow
"""

from guestglow.models.schemas import (
    # Enums
    FeedbackStatus,
    ApprovalStatus,
    ResponseStatus,
    ApprovalAction,
    SeverityLevel,
    Sentiment,
    ResponsePriority,
    EmailPriority,
    EscalationAction,

    # Database Models
    Feedback,
    ExternalReview,
    ReviewResponse,
    ResponseApproval,
    ApprovalToken,
    EscalationStat,
    ManagerContact,

    # API Models
    RiskAssessment,
    EmailRequest,
    EmailResult,
    SLACheckResult,
    ErrorResponse,
)
from guestglow.models.transitions import (
    FeedbackEvent,
    ApprovalEvent,
    InvalidTransitionError,
    transition_feedback,
    transition_approval,
    transition_response,
)

__all__ = [
    # Enums
    "FeedbackStatus",
    "ApprovalStatus",
    "ResponseStatus",
    "ApprovalAction",
    "SeverityLevel",
    "Sentiment",
    "ResponsePriority",
    "EmailPriority",
    "EscalationAction",

    # Database Models
    "Feedback",
    "ExternalReview",
    "ReviewResponse",
    "ResponseApproval",
    "ApprovalToken",
    "EscalationStat",
    "ManagerContact",

    # API Models
    "RiskAssessment",
    "EmailRequest",
    "EmailResult",
    "SLACheckResult",
    "ErrorResponse",

    # Transitions
    "FeedbackEvent",
    "ApprovalEvent",
    "InvalidTransitionError",
    "transition_feedback",
    "transition_approval",
    "transition_response",
]
