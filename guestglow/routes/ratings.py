"""
Rating goal endpoints

- POST /api/v1/ratings/goals          - compute and store a rating goal
- POST /api/v1/ratings/daily-progress - recompute the daily aggregate and
                                        send the morning briefing
"""
from fastapi import APIRouter, Depends, HTTPException, status

from guestglow.dependencies import get_rating_service
from guestglow.models.schemas import (
    DailyProgressRequest,
    DailyProgressResult,
    RatingGoalCalculation,
    RatingGoalRequest,
)
from guestglow.services.rating_goals import RatingService
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/ratings",
    tags=["ratings"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/goals", response_model=RatingGoalCalculation)
async def calculate_goals(
    request: RatingGoalRequest,
    service: RatingService = Depends(get_rating_service)
) -> RatingGoalCalculation:
    if request.target_rating <= request.current_rating:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="target_rating must be higher than current_rating"
        )
    try:
        return await service.set_goal(request)

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Rating goal calculation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/daily-progress", response_model=DailyProgressResult)
async def daily_progress(
    request: DailyProgressRequest,
    service: RatingService = Depends(get_rating_service)
) -> DailyProgressResult:
    try:
        return await service.daily_progress(
            request.tenant_id,
            progress_date=request.date,
            send_briefing=request.send_briefing
        )

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Daily progress report failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
