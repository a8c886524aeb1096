from .webhook import router as webhook_router
from .triggers import router as triggers_router
from .sessions import router as sessions_router
from .flows import router as flows_router

__all__ = [
    "webhook_router",
    "triggers_router",
    "sessions_router",
    "flows_router"
]
