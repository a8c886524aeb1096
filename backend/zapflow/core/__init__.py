from .config import settings, get_settings
from .supabase_client import get_supabase_client, is_storage_configured
from .exceptions import (
    ZapflowError,
    FlowNotFoundError,
    ProductNotFoundError,
    StorageNotConfiguredError,
    InvalidTriggerPatternError
)

__all__ = [
    "settings",
    "get_settings",
    "get_supabase_client",
    "is_storage_configured",
    "ZapflowError",
    "FlowNotFoundError",
    "ProductNotFoundError",
    "StorageNotConfiguredError",
    "InvalidTriggerPatternError",
]
