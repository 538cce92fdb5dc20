"""
Scheduled report endpoint

POST /api/v1/reports/feedback - build a daily/weekly/monthly guest feedback
                                report and email it, triggered by a scheduler
"""
from fastapi import APIRouter, Depends, HTTPException, status

from guestglow.dependencies import get_feedback_report_service
from guestglow.models.schemas import FeedbackReportRequest, FeedbackReportResult
from guestglow.services.feedback_reports import FeedbackReportService
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["reports"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/feedback", response_model=FeedbackReportResult)
async def send_feedback_report(
    request: FeedbackReportRequest,
    service: FeedbackReportService = Depends(get_feedback_report_service)
) -> FeedbackReportResult:
    try:
        return await service.send_report(request)

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Scheduled feedback report failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
