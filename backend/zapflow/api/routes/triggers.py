"""
Flow trigger API routes
"""
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field

from ...core.exceptions import InvalidTriggerPatternError
from ...flow.engine import ConversationEngine
from ...flow.triggers import load_flow_triggers
from ..dependencies import get_engine

router = APIRouter(prefix="/triggers", tags=["triggers"])


class TriggerCreate(BaseModel):
    """Trigger registered at runtime (not persisted)"""

    model_config = {"populate_by_name": True}

    type: str = "text"  # text | regex
    value: str
    flow_id: str = Field(alias="flowId")


@router.get("")
async def list_triggers(engine: ConversationEngine = Depends(get_engine)):
    """List triggers in evaluation order"""
    return engine.triggers.list_triggers()


@router.post("", status_code=201)
async def add_trigger(
    trigger: TriggerCreate,
    engine: ConversationEngine = Depends(get_engine)
):
    """Register a trigger for a flow"""
    if trigger.type == "regex":
        try:
            rule = engine.triggers.add_pattern(trigger.value, trigger.flow_id)
        except InvalidTriggerPatternError as e:
            raise HTTPException(status_code=400, detail=str(e))
    elif trigger.type == "text":
        rule = engine.triggers.add_trigger(trigger.value, trigger.flow_id)
    else:
        raise HTTPException(status_code=400, detail=f"Unknown trigger type: {trigger.type}")

    return rule.to_dict()


@router.delete("/{flow_id}")
async def remove_triggers(flow_id: str, engine: ConversationEngine = Depends(get_engine)):
    """Remove every trigger of a flow"""
    removed = engine.triggers.remove_trigger(flow_id)
    return {"flow_id": flow_id, "removed": removed}


@router.post("/reload")
async def reload_triggers(engine: ConversationEngine = Depends(get_engine)):
    """Reload triggers of active flows from storage"""
    loaded = await load_flow_triggers(engine.repository, engine.triggers)
    return {"loaded": loaded}
