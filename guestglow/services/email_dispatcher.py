"""
Email Dispatcher

Sends transactional email through the Resend HTTP API and records every
successful send in `communication_logs`.

- Sender address and display name are chosen from the email type
- Guest-facing types are branded with the tenant's hotel name
- No retry: a provider failure surfaces as EmailDeliveryError
"""
import asyncio
from typing import Any, Dict, Optional, Tuple

import httpx

from guestglow.config import get_settings
from guestglow.models.schemas import EmailRequest, EmailResult
from guestglow.repositories.audit_repository import AuditRepository
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


class EmailDeliveryError(Exception):
    """Raised when the email provider rejects or cannot be reached"""


# email_type -> (from address, display name)
SENDER_CONFIGS: Dict[str, Tuple[str, str]] = {
    # Manager and system alerts
    "manager_alert": ("alerts@guest-glow.com", "GuestGlow Alerts"),
    "system_notification": ("system@guest-glow.com", "GuestGlow System"),
    "escalation": ("urgent@guest-glow.com", "GuestGlow Urgent"),
    # Guest communications
    "guest_confirmation": ("donotreply@guest-glow.com", "GuestGlow Team"),
    "guest_thank_you": ("feedback@guest-glow.com", "GuestGlow Feedback"),
    "detailed_thankyou": ("guestrelations@guest-glow.com", "GuestGlow Guest Relations"),
    "satisfaction_followup": ("relations@guest-glow.com", "GuestGlow Guest Relations"),
    "feedback_link": ("feedback@guest-glow.com", "GuestGlow Feedback"),
    # Reports and analytics
    "gm_introduction_preview": ("analytics@guest-glow.com", "GuestGlow Analytics"),
    "gm_introduction_production": ("analytics@guest-glow.com", "GuestGlow Analytics"),
    "daily_report": ("reports@guest-glow.com", "GuestGlow Reports"),
    "weekly_report": ("reports@guest-glow.com", "GuestGlow Reports"),
    "monthly_report": ("reports@guest-glow.com", "GuestGlow Reports"),
    # Tenant management
    "tenant_welcome": ("welcome@guest-glow.com", "GuestGlow Welcome"),
}
DEFAULT_SENDER: Tuple[str, str] = ("system@guest-glow.com", "GuestGlow System")

GUEST_RELATIONS_REPLY_TO = "guestrelations@guest-glow.com"


def sender_for(email_type: str) -> Tuple[str, str]:
    return SENDER_CONFIGS.get(email_type, DEFAULT_SENDER)


def hotel_display_name(tenant_slug: Optional[str]) -> str:
    """'eusbett' -> 'Eusbett Hotel'"""
    if not tenant_slug:
        return "Hotel Team"
    return f"{tenant_slug[:1].upper()}{tenant_slug[1:]} Hotel"


def display_name_for(email_type: str, tenant_slug: Optional[str]) -> str:
    if email_type == "guest_confirmation":
        return f"{hotel_display_name(tenant_slug)} Team"
    if email_type == "detailed_thankyou":
        return f"{hotel_display_name(tenant_slug)} Guest Relations"
    return sender_for(email_type)[1]


class EmailDispatcher:
    """
    Resend client with communication logging
    """

    def __init__(self, audit_repository: AuditRepository):
        self.audit_repo = audit_repository
        self.api_url = f"{settings.resend_api_url.rstrip('/')}/emails"
        self.api_key = settings.resend_api_key
        self.timeout = settings.email_timeout_seconds

    def build_payload(self, request: EmailRequest) -> Dict[str, Any]:
        """Provider request body for an email request"""
        tenant_slug = request.tenant_slug or settings.default_tenant_slug
        from_address, _ = sender_for(request.email_type)
        display_name = display_name_for(request.email_type, tenant_slug)

        payload: Dict[str, Any] = {
            "from": f"{display_name} <{from_address}>",
            "to": [request.recipient_email],
            "cc": request.cc_emails,
            "bcc": request.bcc_emails,
            "subject": request.subject,
            "html": request.html_content,
            "headers": {
                "X-Entity-Ref-ID": request.feedback_id or "system",
                "X-Tenant-Slug": tenant_slug,
                "X-Email-Type": request.email_type,
                "X-Priority": request.priority.value,
            },
        }
        if request.email_type == "detailed_thankyou":
            payload["reply_to"] = GUEST_RELATIONS_REPLY_TO
        return payload

    async def send(self, request: EmailRequest) -> EmailResult:
        """
        Send one email and log it.

        Raises:
            EmailDeliveryError: API key missing, provider error or network failure
        """
        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY is not configured")

        payload = self.build_payload(request)
        logger.info(
            f"Sending {request.email_type} email to {request.recipient_email} "
            f"(priority={request.priority.value})"
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    }
                )
                response.raise_for_status()
                result = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Resend API error: {e.response.status_code} - {e.response.text}")
            raise EmailDeliveryError(
                f"Resend API error: {e.response.status_code} - {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed: {e}")
            raise EmailDeliveryError(f"Resend request failed: {e}") from e

        email_id = result.get("id", "")
        logger.info(f"Email sent successfully: {email_id}")

        await asyncio.to_thread(
            self.audit_repo.log_communication,
            self._log_entry(request, payload["from"], result)
        )

        return EmailResult(
            email_id=email_id,
            sender=sender_for(request.email_type)[0],
            recipient=request.recipient_email
        )

    @staticmethod
    def _log_entry(request: EmailRequest, sender: str, result: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "tenant_id": request.tenant_id,
            "feedback_id": request.feedback_id,
            "email_type": request.email_type,
            "recipient_email": request.recipient_email,
            "sender_email": result.get("from") or sender,
            "subject": request.subject,
            "status": "sent",
            "external_id": result.get("id"),
            "priority": request.priority.value,
            "metadata": {
                "cc_emails": request.cc_emails,
                "bcc_emails": request.bcc_emails,
                "custom_note": request.custom_note,
                "resend_created_at": result.get("created_at"),
            },
        }
