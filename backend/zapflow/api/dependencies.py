"""
Shared application components, built once per process
"""
import logging
from functools import lru_cache

from ..core.supabase_client import is_storage_configured
from ..flow.engine import ConversationEngine
from ..flow.triggers import TriggerMatcher
from ..models.flow import create_sample_flow
from ..services.database import FlowRepository, InMemoryFlowRepository
from ..services.products import create_product_service
from ..services.session_store import SessionStore
from ..services.whatsapp import create_whatsapp_service

logger = logging.getLogger(__name__)


def create_repository():
    """Supabase repository, or an in-memory one holding the sample flow"""
    if is_storage_configured():
        return FlowRepository()

    logger.warning("Supabase not configured, serving the sample flow from memory")
    return InMemoryFlowRepository([create_sample_flow()])


@lru_cache()
def get_engine() -> ConversationEngine:
    """Process-wide conversation engine"""
    return ConversationEngine(
        repository=create_repository(),
        whatsapp=create_whatsapp_service(),
        products=create_product_service(),
        triggers=TriggerMatcher(),
        sessions=SessionStore()
    )
