"""
Feedback Repository

Reads and writes the `feedback` table. Status changes are guarded by the
expected current status so an UPDATE never applies to a row that moved on in
the meantime.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from guestglow.models.schemas import Feedback, FeedbackStatus, FeedbackSubmission
from guestglow.repositories.base_repository import BaseRepository
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

OPEN_STATUSES = [
    FeedbackStatus.NEW.value,
    FeedbackStatus.ACKNOWLEDGED.value,
    FeedbackStatus.IN_PROGRESS.value,
]
TERMINAL_STATUSES = (FeedbackStatus.RESOLVED, FeedbackStatus.AUTO_CLOSED)


class FeedbackRepository(BaseRepository):
    """Repository for guest feedback rows."""

    table_name = "feedback"

    def create(self, submission: FeedbackSubmission, tenant_id: Optional[str]) -> Feedback:
        """Insert a new guest submission with status 'new'."""
        payload = {
            "tenant_id": tenant_id,
            "guest_name": submission.guest_name,
            "guest_email": submission.guest_email,
            "room_number": submission.room_number,
            "rating": submission.rating,
            "feedback_text": submission.feedback_text,
            "issue_category": submission.issue_category,
            "source": submission.source,
            "qr_code_id": submission.qr_code_id,
            "location_name": submission.location_name,
            "status": FeedbackStatus.NEW.value,
            "escalation_level": 0,
        }
        try:
            response = self._table().insert(payload).execute()
            row = self._first(response)
            if not row:
                raise ValueError("Supabase insert returned no data")

            feedback = Feedback(**row)
            logger.info("Stored feedback %s (rating=%s)", feedback.id, feedback.rating)
            return feedback

        except Exception as exc:
            self._handle_error("create_feedback", exc)

    def get(self, feedback_id: str) -> Optional[Feedback]:
        try:
            response = self._table() \
                .select("*") \
                .eq("id", feedback_id) \
                .limit(1) \
                .execute()

            row = self._first(response)
            return Feedback(**row) if row else None

        except Exception as exc:
            self._handle_error(f"get_feedback({feedback_id})", exc)

    def list_unresolved(self) -> List[Feedback]:
        """All feedback the SLA checker still watches."""
        try:
            response = self._table() \
                .select("*") \
                .in_("status", OPEN_STATUSES) \
                .is_("resolved_at", "null") \
                .order("created_at") \
                .execute()

            return [Feedback(**row) for row in self._rows(response)]

        except Exception as exc:
            self._handle_error("list_unresolved", exc)

    def list_created_between(
        self,
        tenant_id: Optional[str],
        start: datetime,
        end: datetime
    ) -> List[Feedback]:
        """Feedback submitted within [start, end], for the scheduled reports."""
        try:
            query = self._table() \
                .select("*") \
                .gte("created_at", start.isoformat()) \
                .lte("created_at", end.isoformat())

            if tenant_id:
                query = query.eq("tenant_id", tenant_id)

            response = query.order("created_at").execute()
            return [Feedback(**row) for row in self._rows(response)]

        except Exception as exc:
            self._handle_error("list_created_between", exc)

    def claim_escalation_level(self, feedback_id: str, level: int, now: datetime) -> bool:
        """
        Record that `level` is being notified.

        Only matches while the stored level is lower, so a level is claimed
        by exactly one poll even when runs overlap.
        """
        try:
            response = self._table() \
                .update({
                    "escalation_level": level,
                    "last_escalated_at": now.isoformat(),
                    "updated_at": now.isoformat(),
                }) \
                .eq("id", feedback_id) \
                .or_(f"escalation_level.is.null,escalation_level.lt.{level}") \
                .is_("resolved_at", "null") \
                .execute()

            return bool(self._rows(response))

        except Exception as exc:
            self._handle_error(f"claim_escalation_level({feedback_id}, {level})", exc)

    def update_status(
        self,
        feedback_id: str,
        new_status: FeedbackStatus,
        *,
        expected_status: FeedbackStatus,
        now: datetime,
        extra: Optional[Dict[str, Any]] = None
    ) -> Optional[Feedback]:
        """
        Apply a status change computed by the transition functions.

        Terminal statuses also require `resolved_at IS NULL` so that the
        resolution timestamp is written at most once.

        Returns:
            Updated feedback, or None when the guard did not match
        """
        updates: Dict[str, Any] = {"status": new_status.value, "updated_at": now.isoformat()}
        if extra:
            updates.update(extra)

        try:
            query = self._table() \
                .update(updates) \
                .eq("id", feedback_id) \
                .eq("status", expected_status.value)

            if new_status in TERMINAL_STATUSES:
                query = query.is_("resolved_at", "null")

            response = query.execute()
            row = self._first(response)
            if row:
                logger.info(
                    "Feedback %s: %s -> %s", feedback_id, expected_status.value, new_status.value
                )
            return Feedback(**row) if row else None

        except Exception as exc:
            self._handle_error(f"update_status({feedback_id})", exc)
