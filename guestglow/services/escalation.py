"""
SLA Escalation Checker

Called periodically by an external poller. For every unresolved feedback row
the elapsed time since submission is compared with the category's escalation
threshold `h`:

    elapsed >= 4h                      -> auto-close
    elapsed >= 2h and unacknowledged   -> level 2 (General Manager)
    elapsed >= h  and unacknowledged   -> level 1 (Guest Relations)

A level is notified only once: it is claimed in the database before the email
goes out, so overlapping polls cannot send it twice.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from dateutil import parser as date_parser

from guestglow.config import get_settings
from guestglow.models.schemas import (
    EmailPriority,
    EmailRequest,
    EscalationAction,
    Feedback,
    FeedbackStatus,
    SLACheckItem,
    SLACheckResult,
)
from guestglow.models.transitions import FeedbackEvent, transition_feedback
from guestglow.repositories.audit_repository import AuditRepository
from guestglow.repositories.base_repository import utc_now
from guestglow.repositories.escalation_repository import EscalationRepository
from guestglow.repositories.feedback_repository import FeedbackRepository
from guestglow.services import email_templates
from guestglow.services.email_dispatcher import EmailDispatcher
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

GM_ESCALATION_MULTIPLIER = 2
AUTO_CLOSE_MULTIPLIER = 4
AUTO_CLOSE_LEVEL = 3

AUTO_CLOSE_NOTE = (
    "Automatically closed after SLA escalation timeout. No manager response received."
)

# level -> (manager title, escalation_stats department)
LEVEL_CONTACTS = {
    1: ("Guest Relations Manager", "Guest Relations"),
    2: ("General Manager", "Management"),
}


@dataclass(frozen=True)
class EscalationPlan:
    action: EscalationAction
    level: int


NO_ACTION = EscalationPlan(EscalationAction.NONE, 0)


def plan_escalation(
    hours_since_created: float,
    escalation_hours: float,
    acknowledged: bool,
    current_level: int = 0
) -> EscalationPlan:
    """
    Decide what the checker should do for one feedback row.

    Args:
        hours_since_created: elapsed hours since submission
        escalation_hours: category threshold h
        acknowledged: whether staff already acknowledged the feedback
        current_level: highest level already notified

    Returns:
        EscalationPlan; escalations at or below current_level become NO_ACTION
    """
    if hours_since_created >= escalation_hours * AUTO_CLOSE_MULTIPLIER:
        return EscalationPlan(EscalationAction.AUTO_CLOSE, AUTO_CLOSE_LEVEL)

    if acknowledged:
        return NO_ACTION

    if hours_since_created >= escalation_hours * GM_ESCALATION_MULTIPLIER:
        level = 2
    elif hours_since_created >= escalation_hours:
        level = 1
    else:
        return NO_ACTION

    if level <= (current_level or 0):
        return NO_ACTION
    return EscalationPlan(EscalationAction.ESCALATE, level)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def is_acknowledged(feedback: Feedback) -> bool:
    return feedback.acknowledged_at is not None or feedback.status != FeedbackStatus.NEW


class EscalationService:
    """
    Stateless SLA checker; all progress lives on the feedback rows
    """

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

    async def check_sla(self) -> SLACheckResult:
        """Run one SLA pass over all unresolved feedback."""
        now = self.now()
        unresolved = await asyncio.to_thread(self.feedback_repo.list_unresolved)

        if not unresolved:
            logger.info("SLA check: no unresolved feedback")
            return SLACheckResult(message="No unresolved feedback requiring SLA action")

        logger.info(f"SLA check: {len(unresolved)} unresolved feedback item(s)")

        thresholds: Dict[Optional[str], float] = {}
        results: List[SLACheckItem] = []
        failures = 0

        for feedback in unresolved:
            try:
                item = await self._process(feedback, now, thresholds)
            except Exception as e:
                failures += 1
                logger.error(f"SLA action failed for feedback {feedback.id}: {e}")
                continue

            if item is not None:
                results.append(item)

        escalations = sum(1 for r in results if r.action == EscalationAction.ESCALATE)
        closures = sum(1 for r in results if r.action == EscalationAction.AUTO_CLOSE)

        await asyncio.to_thread(
            self.audit_repo.log_system_event,
            None,
            "sla_monitoring",
            "sla_check_completed",
            {
                "total_checked": len(unresolved),
                "actions_taken": len(results),
                "escalations_sent": escalations,
                "auto_closed": closures,
                "failures": failures,
            },
        )

        logger.info(
            f"SLA check completed: checked={len(unresolved)} actions={len(results)} "
            f"failures={failures}"
        )
        return SLACheckResult(
            checked_count=len(unresolved),
            actions_taken=len(results),
            results=results
        )

    async def _threshold(self, category: Optional[str], cache: Dict[Optional[str], float]) -> float:
        if category not in cache:
            hours = await asyncio.to_thread(self.escalation_repo.get_escalation_hours, category)
            cache[category] = hours if hours else settings.default_escalation_hours
        return cache[category]

    async def _process(
        self,
        feedback: Feedback,
        now: datetime,
        thresholds: Dict[Optional[str], float]
    ) -> Optional[SLACheckItem]:
        escalation_hours = await self._threshold(feedback.issue_category, thresholds)
        elapsed = hours_between(feedback.created_at, now)
        plan = plan_escalation(
            elapsed, escalation_hours, is_acknowledged(feedback), feedback.escalation_level
        )

        if plan.action == EscalationAction.NONE:
            return None

        if plan.action == EscalationAction.AUTO_CLOSE:
            done = await self._auto_close(feedback, elapsed, now)
            recipient = settings.system_monitor_email
        else:
            recipient = await self._escalate(feedback, plan.level, elapsed, escalation_hours, now)
            done = recipient is not None

        if not done:
            return None

        return SLACheckItem(
            feedback_id=feedback.id,
            action=plan.action,
            escalation_level=plan.level,
            hours_since_created=round(elapsed, 2),
            escalation_hours=escalation_hours,
            recipient=recipient
        )

    async def _escalate(
        self,
        feedback: Feedback,
        level: int,
        elapsed: float,
        escalation_hours: float,
        now: datetime
    ) -> Optional[str]:
        """Claim the level, then notify. Returns the recipient, or None if already claimed."""
        claimed = await asyncio.to_thread(
            self.feedback_repo.claim_escalation_level, feedback.id, level, now
        )
        if not claimed:
            logger.info(f"Feedback {feedback.id}: level {level} already claimed, skipping")
            return None

        manager = await asyncio.to_thread(
            self.escalation_repo.get_manager, level, feedback.tenant_id
        )
        recipient = manager.email_address if manager else settings.system_fallback_email
        title, department = LEVEL_CONTACTS[level]

        logger.warning(
            f"Escalating feedback {feedback.id} to level {level} ({title}) "
            f"after {elapsed:.2f}h"
        )

        await self.dispatcher.send(EmailRequest(
            feedback_id=feedback.id,
            email_type="manager_alert",
            recipient_email=recipient,
            bcc_emails=[settings.system_monitor_email],
            subject=email_templates.escalation_subject(feedback, elapsed),
            html_content=email_templates.escalation_email(
                feedback, level, title, elapsed, escalation_hours
            ),
            tenant_id=feedback.tenant_id,
            priority=EmailPriority.HIGH
        ))

        await asyncio.to_thread(
            self.escalation_repo.record_stat, feedback.id, level, recipient, department, now
        )
        await asyncio.to_thread(
            self.audit_repo.log_system_event,
            feedback.tenant_id,
            "escalation",
            "feedback_escalated",
            {"feedback_id": feedback.id, "escalation_level": level, "recipient": recipient},
            "warning",
        )
        return recipient

    async def _auto_close(self, feedback: Feedback, elapsed: float, now: datetime) -> bool:
        new_status = transition_feedback(feedback.status, FeedbackEvent.AUTO_CLOSE)
        closed = await asyncio.to_thread(
            self.feedback_repo.update_status,
            feedback.id,
            new_status,
            expected_status=feedback.status,
            now=now,
            extra={"resolved_at": now.isoformat(), "resolution_notes": AUTO_CLOSE_NOTE},
        )
        if closed is None:
            logger.info(f"Feedback {feedback.id} changed before auto-close, skipping")
            return False

        logger.warning(f"Auto-closed feedback {feedback.id} after {elapsed:.2f}h")
        await asyncio.to_thread(self.escalation_repo.mark_auto_closed, feedback.id, now)

        await self.dispatcher.send(EmailRequest(
            feedback_id=feedback.id,
            email_type="system_notification",
            recipient_email=settings.system_monitor_email,
            subject=email_templates.auto_close_subject(feedback),
            html_content=email_templates.auto_close_email(feedback, elapsed),
            tenant_id=feedback.tenant_id,
            priority=EmailPriority.NORMAL
        ))
        return True


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp supplied on the command line"""
    return date_parser.isoparse(value)
