"""
Approval workflow endpoints

- POST /api/v1/approvals/{approval_id}/notify - email approve/reject links
- GET  /api/v1/approvals/action               - redeem a link (token-authorised,
                                                returns an HTML page)
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse

from guestglow.dependencies import get_approval_workflow
from guestglow.models.schemas import ApprovalNotificationResult
from guestglow.models.transitions import InvalidTransitionError
from guestglow.services import email_templates
from guestglow.services.approval_workflow import ApprovalNotFoundError, ApprovalWorkflow
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/approvals", tags=["approvals"])


@router.post(
    "/{approval_id}/notify",
    response_model=ApprovalNotificationResult,
    dependencies=[Depends(verify_api_key)]
)
async def notify_approvers(
    approval_id: str,
    workflow: ApprovalWorkflow = Depends(get_approval_workflow)
) -> ApprovalNotificationResult:
    try:
        return await workflow.notify(approval_id)

    except ApprovalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error(f"Approval notification failed for {approval_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.get("/action", response_class=HTMLResponse)
async def process_approval_action(
    token: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow)
) -> HTMLResponse:
    """Landing page for the approve/reject links sent to approvers."""
    try:
        outcome = await workflow.redeem(token, action)
        return HTMLResponse(content=outcome.html, status_code=outcome.status_code)

    except ApprovalNotFoundError as e:
        logger.error(f"Approval processing error: {e}")
        return HTMLResponse(
            content=email_templates.approval_error_page("Not Found", "This approval no longer exists."),
            status_code=status.HTTP_404_NOT_FOUND
        )
    except Exception as e:
        logger.error(f"Approval processing error: {e}")
        return HTMLResponse(
            content=email_templates.approval_error_page(
                "Processing Error", "An error occurred while processing your approval."
            ),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
