"""
Feedback Service

Guest submissions from the QR-code form and the staff actions that move a
feedback row through its lifecycle (acknowledge, start, resolve), plus the
satisfaction survey sent to the guest once their feedback is resolved.
"""
import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from guestglow.config import get_settings
from guestglow.models.schemas import (
    EmailPriority,
    EmailRequest,
    Feedback,
    FeedbackActionRequest,
    FeedbackSubmission,
    FeedbackSubmissionResult,
)
from guestglow.models.transitions import (
    FeedbackEvent,
    InvalidTransitionError,
    transition_feedback,
)
from guestglow.repositories.audit_repository import AuditRepository
from guestglow.repositories.base_repository import utc_now
from guestglow.repositories.escalation_repository import EscalationRepository
from guestglow.repositories.feedback_repository import FeedbackRepository
from guestglow.services import email_templates
from guestglow.services.email_dispatcher import (
    GUEST_RELATIONS_REPLY_TO,
    EmailDispatcher,
    hotel_display_name,
)
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

FOLLOWUP_EMAIL_TYPE = "satisfaction_followup"


class FeedbackNotFoundError(LookupError):
    """Raised when a feedback id does not exist"""


class FeedbackService:

    def __init__(
        self,
        feedback_repository: FeedbackRepository,
        escalation_repository: EscalationRepository,
        audit_repository: AuditRepository,
        email_dispatcher: EmailDispatcher,
        now: Callable[[], datetime] = utc_now
    ):
        self.feedback_repo = feedback_repository
        self.escalation_repo = escalation_repository
        self.audit_repo = audit_repository
        self.dispatcher = email_dispatcher
        self.now = now

    async def submit(self, submission: FeedbackSubmission) -> FeedbackSubmissionResult:
        """Store a guest submission and confirm receipt by email when possible."""
        feedback = await asyncio.to_thread(
            self.feedback_repo.create, submission, submission.tenant_id
        )

        if not feedback.guest_email:
            return FeedbackSubmissionResult(
                feedback=feedback,
                message="No guest email provided; confirmation skipped"
            )

        tenant_slug = submission.tenant_slug or settings.default_tenant_slug
        try:
            await self.dispatcher.send(EmailRequest(
                feedback_id=feedback.id,
                email_type="guest_confirmation",
                recipient_email=feedback.guest_email,
                subject="Thank you for your feedback",
                html_content=email_templates.guest_confirmation_email(
                    feedback, hotel_display_name(tenant_slug)
                ),
                tenant_id=feedback.tenant_id,
                tenant_slug=tenant_slug,
                priority=EmailPriority.NORMAL
            ))
        except Exception as e:
            logger.error(f"Guest confirmation failed for feedback {feedback.id}: {e}")
            return FeedbackSubmissionResult(
                feedback=feedback,
                message="Feedback stored; confirmation email could not be sent"
            )

        return FeedbackSubmissionResult(feedback=feedback, confirmation_sent=True)

    async def acknowledge(
        self,
        feedback_id: str,
        request: Optional[FeedbackActionRequest] = None
    ) -> Feedback:
        now = self.now()
        updated = await self._apply(
            feedback_id, FeedbackEvent.ACKNOWLEDGE, now, {"acknowledged_at": now.isoformat()}, request
        )
        await asyncio.to_thread(self.escalation_repo.mark_acknowledged, feedback_id, now)
        return updated

    async def start(
        self,
        feedback_id: str,
        request: Optional[FeedbackActionRequest] = None
    ) -> Feedback:
        return await self._apply(feedback_id, FeedbackEvent.START, self.now(), {}, request)

    async def resolve(
        self,
        feedback_id: str,
        request: Optional[FeedbackActionRequest] = None
    ) -> Feedback:
        now = self.now()
        extra: Dict[str, Any] = {"resolved_at": now.isoformat()}
        if request and request.resolution_notes:
            extra["resolution_notes"] = request.resolution_notes
        updated = await self._apply(feedback_id, FeedbackEvent.RESOLVE, now, extra, request)
        await self.send_satisfaction_followup(updated)
        return updated

    async def send_satisfaction_followup(self, feedback: Feedback) -> bool:
        """
        Ask the guest how the resolution went.

        Skipped when the guest left no email or a follow-up was already
        logged for this feedback. Failures are logged, never raised.

        Returns:
            True if a survey email was sent
        """
        if not feedback.guest_email:
            logger.info(f"No guest email for feedback {feedback.id}, satisfaction follow-up skipped")
            return False

        tenant_slug = settings.default_tenant_slug
        hotel_name = hotel_display_name(tenant_slug)
        try:
            already_sent = await asyncio.to_thread(
                self.audit_repo.has_communication, feedback.id, FOLLOWUP_EMAIL_TYPE
            )
            if already_sent:
                logger.info(f"Satisfaction follow-up already sent for feedback {feedback.id}")
                return False

            await self.dispatcher.send(EmailRequest(
                feedback_id=feedback.id,
                email_type=FOLLOWUP_EMAIL_TYPE,
                recipient_email=feedback.guest_email,
                cc_emails=[settings.system_monitor_email],
                subject=email_templates.satisfaction_followup_subject(hotel_name),
                html_content=email_templates.satisfaction_followup_email(
                    feedback, hotel_name, GUEST_RELATIONS_REPLY_TO
                ),
                tenant_id=feedback.tenant_id,
                tenant_slug=tenant_slug,
                priority=EmailPriority.NORMAL
            ))
        except Exception as e:
            logger.error(f"Satisfaction follow-up failed for feedback {feedback.id}: {e}")
            return False

        await asyncio.to_thread(
            self.audit_repo.log_system_event,
            feedback.tenant_id,
            "satisfaction_followup",
            "satisfaction_survey_sent",
            {
                "feedback_id": feedback.id,
                "room_number": feedback.room_number,
                "original_rating": feedback.rating,
                "issue_category": feedback.issue_category,
            },
        )
        return True

    async def _apply(
        self,
        feedback_id: str,
        event: FeedbackEvent,
        now: datetime,
        extra: Dict[str, Any],
        request: Optional[FeedbackActionRequest]
    ) -> Feedback:
        """
        Validate the transition, then persist it guarded by the current status.

        Raises:
            FeedbackNotFoundError: unknown feedback id
            InvalidTransitionError: event not allowed, or the row changed meanwhile
        """
        feedback = await asyncio.to_thread(self.feedback_repo.get, feedback_id)
        if feedback is None:
            raise FeedbackNotFoundError(f"Feedback not found: {feedback_id}")

        new_status = transition_feedback(feedback.status, event)
        updated = await asyncio.to_thread(
            self.feedback_repo.update_status,
            feedback_id,
            new_status,
            expected_status=feedback.status,
            now=now,
            extra=extra,
        )
        if updated is None:
            raise InvalidTransitionError("feedback", feedback.status, event)

        await asyncio.to_thread(
            self.audit_repo.log_system_event,
            feedback.tenant_id,
            "feedback",
            f"feedback_{event.value}",
            {
                "feedback_id": feedback_id,
                "from_status": feedback.status.value,
                "to_status": new_status.value,
                "actor": request.actor if request else None,
            },
        )
        return updated
