"""
Conversation session API routes
"""
from fastapi import APIRouter, HTTPException, Depends

from ...flow.engine import ConversationEngine
from ..dependencies import get_engine

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("")
async def list_sessions(engine: ConversationEngine = Depends(get_engine)):
    """List active sessions"""
    return [session.to_dict() for session in engine.sessions.list_sessions()]


@router.get("/stats")
async def get_session_stats(engine: ConversationEngine = Depends(get_engine)):
    return engine.sessions.get_stats()


@router.get("/{user_id}")
async def get_session(user_id: str, engine: ConversationEngine = Depends(get_engine)):
    session = engine.sessions.get(user_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.to_dict()


@router.delete("/{user_id}")
async def delete_session(user_id: str, engine: ConversationEngine = Depends(get_engine)):
    """Reset a user's conversation"""
    async with engine.sessions.lock_for(user_id):
        if not engine.sessions.delete(user_id):
            raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True, "user_id": user_id}
