"""
Webhook routes for the Evolution API and other channel adapters
"""
import logging
from fastapi import APIRouter, BackgroundTasks, Depends
from typing import Any

from ...flow.engine import ConversationEngine
from ...models.webhook import IncomingMessageRequest, parse_webhook
from ..dependencies import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


@router.post("/webhook/evolution")
async def receive_evolution_webhook(
    payload: dict[str, Any],
    background_tasks: BackgroundTasks,
    engine: ConversationEngine = Depends(get_engine)
):
    """
    Receive a webhook event from the Evolution API.

    Inbound messages are handed to the conversation engine in the background;
    every other event is acknowledged and ignored.
    """
    try:
        logger.debug(f"Evolution webhook received: {payload.get('event', 'unknown')}")

        message = parse_webhook(payload)
        if message is None:
            return {"status": "ignored", "reason": "not an inbound message"}

        logger.info(f"Message from {message.user_id}: {message.text[:50]}")

        background_tasks.add_task(
            engine.handle_inbound_message,
            message.user_id,
            message.text,
            message.instance_name
        )

        return {"status": "received"}

    except Exception as e:
        logger.exception(f"Webhook error: {e}")
        return {"status": "error", "message": str(e)}


@router.post("/webhook/incoming-message")
async def receive_incoming_message(
    request: IncomingMessageRequest,
    background_tasks: BackgroundTasks,
    engine: ConversationEngine = Depends(get_engine)
):
    """Plain entry point for adapters that already extracted sender and text"""
    background_tasks.add_task(
        engine.handle_inbound_message,
        request.sender,
        request.message,
        request.instance_name
    )
    return {"status": "received"}
