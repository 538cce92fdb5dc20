"""
Email dispatch endpoint

POST /api/v1/emails/send - send one transactional email through Resend
"""
from fastapi import APIRouter, Depends, HTTPException, status

from guestglow.dependencies import get_email_dispatcher
from guestglow.models.schemas import EmailRequest, EmailResult
from guestglow.services.email_dispatcher import EmailDeliveryError, EmailDispatcher
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/emails",
    tags=["emails"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/send", response_model=EmailResult)
async def send_email(
    request: EmailRequest,
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher)
) -> EmailResult:
    try:
        return await dispatcher.send(request)

    except EmailDeliveryError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Email sending failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
