"""
Supabase client for flow storage

Built on first use so that importing the package never opens a connection.
"""
import logging
from typing import Optional
from supabase import create_client, Client

from .config import settings
from .exceptions import StorageNotConfiguredError

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def is_storage_configured() -> bool:
    """True when Supabase credentials are present"""
    return bool(settings.SUPABASE_URL and settings.SUPABASE_KEY)


def get_supabase_client() -> Client:
    """
    Shared Supabase client.

    Raises:
        StorageNotConfiguredError: If SUPABASE_URL or SUPABASE_KEY is empty
    """
    global _supabase_client

    if _supabase_client is None:
        if not is_storage_configured():
            raise StorageNotConfiguredError()
        _supabase_client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        logger.info("Supabase client created")

    return _supabase_client
