"""
Escalation Repository

Routing configuration (per-category SLA hours, escalation contacts) and the
`escalation_stats` rows written for every escalation notification.
"""
from datetime import datetime
from typing import Optional

from guestglow.models.schemas import EscalationStat, ManagerContact
from guestglow.repositories.base_repository import BaseRepository
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)


class EscalationRepository(BaseRepository):
    """Repository for SLA routing and escalation statistics."""

    table_name = "escalation_stats"
    routing_table = "category_routing_configurations"
    managers_table = "manager_configurations"

    def get_escalation_hours(self, category: Optional[str]) -> Optional[float]:
        """Configured auto_escalation_hours for a feedback category."""
        if not category:
            return None
        try:
            response = self._table(self.routing_table) \
                .select("auto_escalation_hours") \
                .eq("feedback_category", category) \
                .eq("is_active", True) \
                .limit(1) \
                .execute()

            row = self._first(response)
            hours = row.get("auto_escalation_hours") if row else None
            return float(hours) if hours is not None else None

        except Exception as exc:
            self._handle_error(f"get_escalation_hours({category})", exc)

    def get_manager(self, level: int, tenant_id: Optional[str] = None) -> Optional[ManagerContact]:
        """Escalation contact for a level (1 Guest Relations, 2 General Manager)."""
        try:
            query = self._table(self.managers_table) \
                .select("*") \
                .eq("escalation_level", level) \
                .eq("is_active", True)

            if tenant_id:
                query = query.eq("tenant_id", tenant_id)

            response = query.limit(1).execute()
            row = self._first(response)
            if not row or not row.get("email_address"):
                return None
            return ManagerContact(**row)

        except Exception as exc:
            self._handle_error(f"get_manager({level})", exc)

    def record_stat(
        self,
        feedback_id: str,
        level: int,
        manager_email: str,
        manager_department: str,
        now: datetime
    ) -> EscalationStat:
        payload = {
            "feedback_id": feedback_id,
            "escalation_level": level,
            "manager_email": manager_email,
            "manager_department": manager_department,
            "escalated_at": now.isoformat(),
            "was_acknowledged": False,
            "was_auto_closed": False,
        }
        try:
            response = self._table().insert(payload).execute()
            row = self._first(response)
            return EscalationStat(**(row or payload))

        except Exception as exc:
            self._handle_error(f"record_stat({feedback_id}, {level})", exc)

    def mark_acknowledged(self, feedback_id: str, now: datetime) -> None:
        try:
            self._table() \
                .update({"was_acknowledged": True, "acknowledged_at": now.isoformat()}) \
                .eq("feedback_id", feedback_id) \
                .execute()

        except Exception as exc:
            self._handle_error(f"mark_acknowledged({feedback_id})", exc)

    def mark_auto_closed(self, feedback_id: str, now: datetime) -> None:
        try:
            self._table() \
                .update({"was_auto_closed": True, "auto_closed_at": now.isoformat()}) \
                .eq("feedback_id", feedback_id) \
                .execute()

        except Exception as exc:
            self._handle_error(f"mark_auto_closed({feedback_id})", exc)
