"""
Guest feedback endpoints

- POST /api/v1/feedback                       - guest submission
- POST /api/v1/feedback/{feedback_id}/acknowledge
- POST /api/v1/feedback/{feedback_id}/start
- POST /api/v1/feedback/{feedback_id}/resolve
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from guestglow.dependencies import get_feedback_service
from guestglow.models.schemas import (
    Feedback,
    FeedbackActionRequest,
    FeedbackSubmission,
    FeedbackSubmissionResult,
)
from guestglow.models.transitions import FeedbackEvent, InvalidTransitionError
from guestglow.services.feedback_service import FeedbackNotFoundError, FeedbackService
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/feedback",
    tags=["feedback"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("", response_model=FeedbackSubmissionResult, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    submission: FeedbackSubmission,
    service: FeedbackService = Depends(get_feedback_service)
) -> FeedbackSubmissionResult:
    try:
        return await service.submit(submission)

    except Exception as e:
        logger.error(f"Feedback submission failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


async def _run_action(
    service: FeedbackService,
    event: FeedbackEvent,
    feedback_id: str,
    request: Optional[FeedbackActionRequest]
) -> Feedback:
    handlers = {
        FeedbackEvent.ACKNOWLEDGE: service.acknowledge,
        FeedbackEvent.START: service.start,
        FeedbackEvent.RESOLVE: service.resolve,
    }
    try:
        return await handlers[event](feedback_id, request)

    except FeedbackNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error(f"Feedback {event.value} failed for {feedback_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/{feedback_id}/acknowledge", response_model=Feedback)
async def acknowledge_feedback(
    feedback_id: str,
    request: Optional[FeedbackActionRequest] = None,
    service: FeedbackService = Depends(get_feedback_service)
) -> Feedback:
    return await _run_action(service, FeedbackEvent.ACKNOWLEDGE, feedback_id, request)


@router.post("/{feedback_id}/start", response_model=Feedback)
async def start_feedback(
    feedback_id: str,
    request: Optional[FeedbackActionRequest] = None,
    service: FeedbackService = Depends(get_feedback_service)
) -> Feedback:
    return await _run_action(service, FeedbackEvent.START, feedback_id, request)


@router.post("/{feedback_id}/resolve", response_model=Feedback)
async def resolve_feedback(
    feedback_id: str,
    request: Optional[FeedbackActionRequest] = None,
    service: FeedbackService = Depends(get_feedback_service)
) -> Feedback:
    return await _run_action(service, FeedbackEvent.RESOLVE, feedback_id, request)
