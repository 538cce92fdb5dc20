"""
Human-in-the-loop Approval Workflow

Risky responses are held as pending ResponseApprovals. Approvers receive an
email with one approve link and one reject link; each link carries a
single-use, expiring token.

Flow:
1. notify()  - revoke outstanding tokens, issue a new pair, email approvers
2. redeem()  - claim token, invalidate its sibling, transition the approval,
               deliver the approved response to the guest
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from urllib.parse import urlencode

from guestglow.config import get_settings
from guestglow.models.schemas import (
    ApprovalAction,
    ApprovalNotificationResult,
    ApprovalStatus,
    EmailPriority,
    EmailRequest,
    Feedback,
    ResponseApproval,
)
from guestglow.models.transitions import (
    ApprovalEvent,
    InvalidTransitionError,
    transition_approval,
)
from guestglow.repositories.approval_repository import ApprovalRepository
from guestglow.repositories.base_repository import utc_now
from guestglow.repositories.feedback_repository import FeedbackRepository
from guestglow.services import email_templates
from guestglow.services.email_dispatcher import EmailDispatcher
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

EMAIL_APPROVER = "email_approval"


class ApprovalNotFoundError(LookupError):
    """Raised when an approval id does not exist"""


@dataclass
class RedemptionOutcome:
    """HTML page plus status code returned to the approver's browser"""
    status_code: int
    html: str
    approval: Optional[ResponseApproval] = None
    guest_notified: bool = False


class ApprovalWorkflow:
    """
    Issue and redeem approval tokens
    """

    def __init__(
        self,
        approval_repository: ApprovalRepository,
        feedback_repository: FeedbackRepository,
        email_dispatcher: EmailDispatcher,
        now: Callable[[], datetime] = utc_now
    ):
        self.approval_repo = approval_repository
        self.feedback_repo = feedback_repository
        self.dispatcher = email_dispatcher
        self.now = now

    def action_link(self, token: str, action: ApprovalAction) -> str:
        query = urlencode({"token": token, "action": action.value})
        return f"{settings.public_base_url.rstrip('/')}/api/v1/approvals/action?{query}"

    async def _load_feedback(self, approval: ResponseApproval) -> Optional[Feedback]:
        if not approval.feedback_id:
            return None
        return await asyncio.to_thread(self.feedback_repo.get, approval.feedback_id)

    # ------------------------------------------------------------------
    # Notify
    # ------------------------------------------------------------------
    async def notify(self, approval_id: str) -> ApprovalNotificationResult:
        """
        Email approvers a fresh approve/reject token pair.

        Raises:
            ApprovalNotFoundError: unknown approval
            InvalidTransitionError: approval already decided
            EmailDeliveryError: provider rejected a notification
        """
        approval = await asyncio.to_thread(self.approval_repo.get_approval, approval_id)
        if approval is None:
            raise ApprovalNotFoundError(f"Approval not found: {approval_id}")
        if approval.status != ApprovalStatus.PENDING:
            raise InvalidTransitionError("approval", approval.status, ApprovalEvent.APPROVE)

        now = self.now()
        expires_at = now + timedelta(hours=settings.approval_token_ttl_hours)

        revoked = await asyncio.to_thread(
            self.approval_repo.revoke_outstanding_tokens, approval_id, now
        )
        if revoked:
            logger.info(f"Revoked {revoked} outstanding token(s) for approval {approval_id}")

        tokens = await asyncio.to_thread(
            self.approval_repo.create_token_pair, approval_id, expires_at
        )
        approve_link = self.action_link(tokens[ApprovalAction.APPROVE].token, ApprovalAction.APPROVE)
        reject_link = self.action_link(tokens[ApprovalAction.REJECT].token, ApprovalAction.REJECT)

        feedback = await self._load_feedback(approval)
        html = email_templates.approval_request_email(
            approval, feedback, approve_link, reject_link, settings.approval_token_ttl_hours
        )
        recipients = settings.approval_recipient_list or [settings.system_monitor_email]

        email_ids = []
        for recipient in recipients:
            result = await self.dispatcher.send(EmailRequest(
                feedback_id=approval.feedback_id,
                email_type="manager_alert",
                recipient_email=recipient,
                subject=email_templates.approval_request_subject(approval),
                html_content=html,
                tenant_id=approval.tenant_id,
                priority=EmailPriority.HIGH
            ))
            email_ids.append(result.email_id)

        logger.info(f"Approval {approval_id} sent to {len(recipients)} approver(s)")
        return ApprovalNotificationResult(
            approval_id=approval_id,
            recipients=recipients,
            email_ids=email_ids,
            expires_at=expires_at
        )

    # ------------------------------------------------------------------
    # Redeem
    # ------------------------------------------------------------------
    async def redeem(self, token: Optional[str], action: Optional[str]) -> RedemptionOutcome:
        """
        Redeem an emailed approve/reject link.

        The token is claimed before the approval is touched, so a link works
        at most once even when clicked twice concurrently.
        """
        if not token or not action:
            return RedemptionOutcome(400, email_templates.approval_error_page(
                "Invalid request", "Missing token or action parameter"
            ))
        try:
            approval_action = ApprovalAction(action)
        except ValueError:
            return RedemptionOutcome(400, email_templates.approval_error_page(
                "Invalid request", f"Unknown action: {action}"
            ))

        now = self.now()
        claimed = await asyncio.to_thread(
            self.approval_repo.claim_token, token, approval_action, now
        )
        if claimed is None:
            logger.warning(f"Rejected {approval_action.value} link: token expired or already used")
            return RedemptionOutcome(400, email_templates.approval_error_page(
                "Invalid Token", "This approval link has expired or has already been used."
            ))

        # The other link of the pair must not be redeemable any more
        await asyncio.to_thread(
            self.approval_repo.revoke_outstanding_tokens, claimed.approval_id, now
        )

        approval = await asyncio.to_thread(self.approval_repo.get_approval, claimed.approval_id)
        if approval is None:
            raise ApprovalNotFoundError(f"Approval not found: {claimed.approval_id}")

        try:
            new_status = transition_approval(approval.status, ApprovalEvent(approval_action.value))
        except InvalidTransitionError:
            return self._already_decided(approval)

        updated = await asyncio.to_thread(
            self.approval_repo.update_status,
            approval.id,
            new_status,
            expected_status=ApprovalStatus.PENDING,
            approved_by=EMAIL_APPROVER,
            decided_at=now,
        )
        if updated is None:
            return self._already_decided(approval)

        logger.info(f"Approval {approval.id} {new_status.value} via email link")

        feedback = await self._load_feedback(updated)
        guest_notified = False
        if new_status == ApprovalStatus.APPROVED:
            guest_notified = await self._deliver_to_guest(updated, feedback)

        page = email_templates.approval_success_page(approval_action, updated, feedback, now)
        return RedemptionOutcome(200, page, approval=updated, guest_notified=guest_notified)

    @staticmethod
    def _already_decided(approval: ResponseApproval) -> RedemptionOutcome:
        return RedemptionOutcome(409, email_templates.approval_error_page(
            "Already Processed",
            f"This response has already been {approval.status.value}."
        ), approval=approval)

    async def _deliver_to_guest(
        self,
        approval: ResponseApproval,
        feedback: Optional[Feedback]
    ) -> bool:
        """Send the approved response; failures are logged, never raised."""
        if feedback is None or not feedback.guest_email:
            logger.info(f"Approval {approval.id}: no guest email on file, skipping delivery")
            return False

        hotel_name = settings.default_hotel_name
        try:
            await self.dispatcher.send(EmailRequest(
                feedback_id=feedback.id,
                email_type="detailed_thankyou",
                recipient_email=feedback.guest_email,
                subject=f"Thank you for your feedback - {hotel_name}",
                html_content=email_templates.guest_response_email(
                    feedback.guest_name, approval.generated_response, hotel_name
                ),
                tenant_id=approval.tenant_id,
                priority=EmailPriority.NORMAL
            ))
            return True
        except Exception as e:
            logger.error(f"Failed to send approved response for approval {approval.id}: {e}")
            return False
