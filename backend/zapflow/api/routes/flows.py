"""
Flow execution and diagnostics API routes
"""
import logging
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import Optional

from ...core.exceptions import FlowNotFoundError
from ...flow.engine import ConversationEngine
from ...flow.validator import FlowValidator
from ..dependencies import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flows", tags=["flows"])


class FlowExecuteRequest(BaseModel):
    """Manual flow start for a contact"""

    model_config = {"populate_by_name": True}

    contact_number: str = Field(alias="contactNumber")
    message: Optional[str] = None
    instance_name: Optional[str] = Field(default=None, alias="instanceName")


@router.post("/{flow_id}/execute")
async def execute_flow(
    flow_id: str,
    request: FlowExecuteRequest,
    engine: ConversationEngine = Depends(get_engine)
):
    """Start a flow for a contact"""
    result = await engine.start_flow(
        flow_id,
        request.contact_number,
        message=request.message,
        instance_name=request.instance_name
    )

    if result.error == "FLOW_NOT_FOUND":
        raise HTTPException(status_code=404, detail=result.message)

    return result.to_dict()


@router.get("/{flow_id}/diagnostics")
async def diagnose_flow(flow_id: str, engine: ConversationEngine = Depends(get_engine)):
    """Advisory report of structural problems in a flow"""
    try:
        flow = await engine.repository.get_flow_by_id(flow_id)
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    triggers = await engine.repository.list_active_triggers()
    is_valid, errors = FlowValidator.validate(flow, triggers if flow.active else None)

    return {
        "flow_id": flow.id,
        "name": flow.name,
        "active": flow.active,
        "node_count": len(flow.nodes),
        "edge_count": len(flow.edges),
        "is_valid": is_valid,
        "issues": [error.to_dict() for error in errors]
    }
