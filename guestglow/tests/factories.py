"""
Row and model builders shared by the test modules
"""
from datetime import datetime, timezone
from typing import Any, Dict

from guestglow.models.schemas import Feedback

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def feedback_row(**overrides: Any) -> Dict[str, Any]:
    row = {
        "id": "fb-1",
        "tenant_id": "tenant-1",
        "guest_name": "Ama Mensah",
        "guest_email": "ama@example.com",
        "room_number": "204",
        "rating": 2,
        "feedback_text": "The shower was cold and nobody came.",
        "issue_category": "Maintenance",
        "status": "new",
        "created_at": BASE_TIME.isoformat(),
        "escalation_level": 0,
    }
    row.update(overrides)
    return row


def make_feedback(**overrides: Any) -> Feedback:
    return Feedback(**feedback_row(**overrides))
