"""
Services Module
External collaborators and process-wide state of the flow engine
"""

# Flow storage
from .database import FlowRepository, InMemoryFlowRepository

# WhatsApp integration (Evolution API)
from .whatsapp import WhatsAppService, create_whatsapp_service

# Product lookup
from .products import (
    ProductProvider,
    HttpProductProvider,
    ProductService,
    create_product_service
)

# Conversation sessions
from .session_store import SessionStore


__all__ = [
    # Storage
    "FlowRepository",
    "InMemoryFlowRepository",

    # WhatsApp
    "WhatsAppService",
    "create_whatsapp_service",

    # Products
    "ProductProvider",
    "HttpProductProvider",
    "ProductService",
    "create_product_service",

    # Sessions
    "SessionStore",
]
