"""
Base Repository

Shared plumbing for the Supabase-backed repositories: client injection,
timestamp helpers and centralized error logging.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from guestglow.utils.logger import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class BaseRepository:
    """
    Base repository class.

    All repositories accept an optional Supabase client so tests can pass a
    mock; otherwise the shared service-role client is used.
    """

    table_name: str = ""

    def __init__(self, supabase_client=None):
        if supabase_client is None:
            from guestglow.services.supabase_client import get_supabase_client  # Lazy import for tests

            supabase_client = get_supabase_client()
        self.client = supabase_client

    def _table(self, name: Optional[str] = None):
        return self.client.table(name or self.table_name)

    @staticmethod
    def _rows(response) -> List[Dict[str, Any]]:
        return list(response.data or [])

    @staticmethod
    def _first(response) -> Optional[Dict[str, Any]]:
        rows = response.data or []
        return rows[0] if rows else None

    def _handle_error(self, operation: str, error: Exception):
        """
        Centralized error handling for repository operations.

        Args:
            operation: Description of failed operation
            error: Exception that occurred

        Raises:
            Re-raises exception after logging
        """
        logger.error(f"Repository error during {operation}: {error}")
        raise error
