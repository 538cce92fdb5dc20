"""
Supabase client factory
"""
from functools import lru_cache

from supabase import create_client, Client

from guestglow.config import get_settings

settings = get_settings()


@lru_cache()
def get_supabase_client() -> Client:
    """
    Shared Supabase client using the service role key

    The service bypasses RLS, so tenant scoping is applied explicitly in
    each repository query.
    """
    return create_client(
        settings.supabase_url,
        settings.supabase_admin_key
    )
