"""
SLA check endpoint

POST /api/v1/sla/check - one escalation pass, triggered by an external poller
"""
from fastapi import APIRouter, Depends, HTTPException, status

from guestglow.dependencies import get_escalation_service
from guestglow.models.schemas import SLACheckResult
from guestglow.services.escalation import EscalationService
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/sla",
    tags=["sla"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/check", response_model=SLACheckResult)
async def check_sla(
    service: EscalationService = Depends(get_escalation_service)
) -> SLACheckResult:
    try:
        return await service.check_sla()

    except Exception as e:
        logger.error(f"SLA monitoring failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"SLA monitoring failed: {e}"
        )
