"""
Audit Repository

Append-only `communication_logs` and `system_logs` tables. Writes here are
best-effort: a failed insert is logged and swallowed so it never masks the
result of the operation being audited.
"""
from typing import Any, Dict, List, Optional

from guestglow.repositories.base_repository import BaseRepository
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository(BaseRepository):
    """Repository for outbound email and system event audit rows."""

    table_name = "communication_logs"
    system_table = "system_logs"

    def log_communication(self, entry: Dict[str, Any]) -> bool:
        """Insert a communication log row. Returns False if the insert failed."""
        try:
            self._table().insert(entry).execute()
            logger.debug(
                "Logged %s email to %s", entry.get("email_type"), entry.get("recipient_email")
            )
            return True
        except Exception as exc:
            logger.warning("Failed to log email communication: %s", exc)
            return False

    def log_system_event(
        self,
        tenant_id: Optional[str],
        category: str,
        name: str,
        data: Dict[str, Any],
        severity: str = "info"
    ) -> bool:
        """Insert a system event row. Returns False if the insert failed."""
        try:
            self._table(self.system_table).insert({
                "tenant_id": tenant_id,
                "event_type": "system_event",
                "event_category": category,
                "event_name": name,
                "event_data": data,
                "severity": severity,
            }).execute()
            return True
        except Exception as exc:
            logger.warning("Could not write system log %s/%s: %s", category, name, exc)
            return False

    def has_communication(self, feedback_id: str, email_type: str) -> bool:
        """True when an email of this type was already logged for the feedback."""
        try:
            response = self._table() \
                .select("id") \
                .eq("feedback_id", feedback_id) \
                .eq("email_type", email_type) \
                .limit(1) \
                .execute()

            return bool(self._rows(response))

        except Exception as exc:
            self._handle_error(f"has_communication({feedback_id}, {email_type})", exc)

    def get_communications(self, feedback_id: str) -> List[Dict[str, Any]]:
        """Communication history for one feedback, newest first."""
        try:
            response = self._table() \
                .select("*") \
                .eq("feedback_id", feedback_id) \
                .order("created_at", desc=True) \
                .execute()

            return self._rows(response)

        except Exception as exc:
            self._handle_error(f"get_communications({feedback_id})", exc)
