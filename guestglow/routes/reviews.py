"""
External review endpoints

- POST /api/v1/reviews/sync
- POST /api/v1/reviews/responses/{response_id}/approve
- POST /api/v1/reviews/responses/{response_id}/reject
- POST /api/v1/reviews/responses/{response_id}/regenerate
"""
from typing import Awaitable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from guestglow.dependencies import get_review_service
from guestglow.models.schemas import ReviewResponse, ReviewSyncRequest, ReviewSyncResult
from guestglow.models.transitions import InvalidTransitionError
from guestglow.services.review_sync import ReviewResponseNotFoundError, ReviewService
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/reviews",
    tags=["reviews"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/sync", response_model=ReviewSyncResult)
async def sync_reviews(
    request: ReviewSyncRequest,
    service: ReviewService = Depends(get_review_service)
) -> ReviewSyncResult:
    try:
        return await service.sync(request)

    except Exception as e:
        logger.error(f"External review sync failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


async def _response_action(action: Awaitable[ReviewResponse], response_id: str) -> ReviewResponse:
    try:
        return await action

    except ReviewResponseNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error(f"Review response action failed for {response_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/responses/{response_id}/approve", response_model=ReviewResponse)
async def approve_response(
    response_id: str,
    actor: Optional[str] = Query(None),
    service: ReviewService = Depends(get_review_service)
) -> ReviewResponse:
    return await _response_action(service.approve_response(response_id, actor), response_id)


@router.post("/responses/{response_id}/reject", response_model=ReviewResponse)
async def reject_response(
    response_id: str,
    actor: Optional[str] = Query(None),
    service: ReviewService = Depends(get_review_service)
) -> ReviewResponse:
    return await _response_action(service.reject_response(response_id, actor), response_id)


@router.post(
    "/responses/{response_id}/regenerate",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED
)
async def regenerate_response(
    response_id: str,
    use_ai: bool = Query(False),
    service: ReviewService = Depends(get_review_service)
) -> ReviewResponse:
    return await _response_action(service.regenerate_response(response_id, use_ai), response_id)
