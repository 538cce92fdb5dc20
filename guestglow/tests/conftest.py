"""
Shared fixtures for GuestGlow tests
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from guestglow.models.schemas import EmailResult

CHAIN_METHODS = (
    "table", "select", "insert", "update", "upsert",
    "eq", "is_", "gt", "gte", "lt", "lte", "in_", "or_", "order", "limit",
)


@pytest.fixture
def mock_supabase():
    """Mocked Supabase client whose query builder methods chain onto itself"""
    client = MagicMock()
    for method in CHAIN_METHODS:
        getattr(client, method).return_value = client

    client.execute.return_value = MagicMock(data=[], count=0)
    return client


@pytest.fixture
def mock_dispatcher():
    """EmailDispatcher stand-in that always succeeds"""
    dispatcher = MagicMock()
    dispatcher.send = AsyncMock(side_effect=lambda request: EmailResult(
        email_id=f"email-{dispatcher.send.await_count}",
        sender="alerts@guest-glow.com",
        recipient=request.recipient_email
    ))
    return dispatcher
