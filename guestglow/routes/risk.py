"""
Risk assessment endpoint

POST /api/v1/risk/assess - score a proposed response and open an approval
when a human must sign off
"""
from fastapi import APIRouter, Depends, HTTPException, status

from guestglow.dependencies import get_risk_assessor
from guestglow.models.schemas import RiskAssessmentRequest, RiskAssessmentResponse
from guestglow.services.risk_assessor import RiskAssessorService
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/risk",
    tags=["risk"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/assess", response_model=RiskAssessmentResponse)
async def assess_risk(
    request: RiskAssessmentRequest,
    assessor: RiskAssessorService = Depends(get_risk_assessor)
) -> RiskAssessmentResponse:
    """
    Assess feedback for legal, safety, misconduct, media, bypass and
    security risk.
    """
    try:
        assessment, approval_id = await assessor.assess(
            request.feedback_text,
            request.rating,
            request.response_text,
            tenant_id=request.tenant_id,
            feedback_id=request.feedback_id
        )
        return RiskAssessmentResponse(**assessment.model_dump(), approval_id=approval_id)

    except Exception as e:
        logger.error(f"Risk assessment failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
