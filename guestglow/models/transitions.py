"""
Status transitions for feedback, approvals and review responses

Every status change in the service goes through one of the pure functions
below. They never touch the database; callers persist the returned state.
"""
from enum import Enum
from typing import Dict, Tuple

from guestglow.models.schemas import ApprovalStatus, FeedbackStatus, ResponseStatus


class InvalidTransitionError(ValueError):
    """Raised when an event is not allowed from the current state"""

    def __init__(self, entity: str, state: Enum, event: Enum):
        self.entity = entity
        self.state = state
        self.event = event
        super().__init__(
            f"Cannot apply '{event.value}' to {entity} in state '{state.value}'"
        )


class FeedbackEvent(str, Enum):
    ACKNOWLEDGE = "acknowledge"
    START = "start"
    RESOLVE = "resolve"
    AUTO_CLOSE = "auto_close"


class ApprovalEvent(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


_OPEN_FEEDBACK = (FeedbackStatus.NEW, FeedbackStatus.ACKNOWLEDGED, FeedbackStatus.IN_PROGRESS)

FEEDBACK_TRANSITIONS: Dict[Tuple[FeedbackStatus, FeedbackEvent], FeedbackStatus] = {
    (FeedbackStatus.NEW, FeedbackEvent.ACKNOWLEDGE): FeedbackStatus.ACKNOWLEDGED,
    (FeedbackStatus.ACKNOWLEDGED, FeedbackEvent.START): FeedbackStatus.IN_PROGRESS,
    **{(state, FeedbackEvent.RESOLVE): FeedbackStatus.RESOLVED for state in _OPEN_FEEDBACK},
    **{(state, FeedbackEvent.AUTO_CLOSE): FeedbackStatus.AUTO_CLOSED for state in _OPEN_FEEDBACK},
}

APPROVAL_TRANSITIONS: Dict[Tuple[ApprovalStatus, ApprovalEvent], ApprovalStatus] = {
    (ApprovalStatus.PENDING, ApprovalEvent.APPROVE): ApprovalStatus.APPROVED,
    (ApprovalStatus.PENDING, ApprovalEvent.REJECT): ApprovalStatus.REJECTED,
}

RESPONSE_TRANSITIONS: Dict[Tuple[ResponseStatus, ApprovalEvent], ResponseStatus] = {
    (ResponseStatus.DRAFT, ApprovalEvent.APPROVE): ResponseStatus.APPROVED,
    (ResponseStatus.DRAFT, ApprovalEvent.REJECT): ResponseStatus.REJECTED,
}


def transition_feedback(state: FeedbackStatus, event: FeedbackEvent) -> FeedbackStatus:
    """Next feedback status, or InvalidTransitionError"""
    try:
        return FEEDBACK_TRANSITIONS[(FeedbackStatus(state), FeedbackEvent(event))]
    except KeyError:
        raise InvalidTransitionError("feedback", FeedbackStatus(state), FeedbackEvent(event)) from None


def transition_approval(state: ApprovalStatus, event: ApprovalEvent) -> ApprovalStatus:
    """Next approval status, or InvalidTransitionError"""
    try:
        return APPROVAL_TRANSITIONS[(ApprovalStatus(state), ApprovalEvent(event))]
    except KeyError:
        raise InvalidTransitionError("approval", ApprovalStatus(state), ApprovalEvent(event)) from None


def transition_response(state: ResponseStatus, event: ApprovalEvent) -> ResponseStatus:
    """Next review-response status, or InvalidTransitionError"""
    try:
        return RESPONSE_TRANSITIONS[(ResponseStatus(state), ApprovalEvent(event))]
    except KeyError:
        raise InvalidTransitionError("review response", ResponseStatus(state), ApprovalEvent(event)) from None


def is_open(state: FeedbackStatus) -> bool:
    """True while the SLA checker still watches the feedback"""
    return FeedbackStatus(state) in _OPEN_FEEDBACK
