"""
Evolution API webhook payload parser

Inbound messages arrive as `messages.upsert` events:
{
  "event": "messages.upsert",
  "instance": "instance-name",
  "data": {
    "key": {
      "remoteJid": "5511999999999@s.whatsapp.net",
      "fromMe": false,
      "id": "message_id"
    },
    "pushName": "Name",
    "message": {"conversation": "Hello"},
    "messageType": "conversation",
    "messageTimestamp": 1672531200
  }
}
"""
import json
from typing import Optional, Any, Dict
from pydantic import BaseModel, Field


class IncomingMessage(BaseModel):
    """Normalized inbound user message handed to the conversation engine"""
    user_id: str
    text: str
    instance_name: Optional[str] = None
    push_name: Optional[str] = None
    message_id: Optional[str] = None


class IncomingMessageRequest(BaseModel):
    """Body of the plain incoming-message endpoint"""

    model_config = {"extra": "allow", "populate_by_name": True}

    sender: str = Field(alias="from")
    message: str
    instance_name: Optional[str] = Field(default=None, alias="instanceName")


class WebhookPayload(BaseModel):
    """Evolution API webhook envelope - flexible to accept every event"""

    model_config = {"extra": "allow"}

    event: Optional[str] = None
    instance: Optional[Any] = None
    data: Optional[Dict[str, Any]] = None
    sender: Optional[str] = None

    @property
    def instance_name(self) -> Optional[str]:
        if isinstance(self.instance, dict):
            return self.instance.get("instanceName") or self.instance.get("name")
        if isinstance(self.instance, str):
            return self.instance
        return None

    @property
    def key(self) -> Dict[str, Any]:
        if self.data and isinstance(self.data.get("key"), dict):
            return self.data["key"]
        return {}

    @property
    def is_message_event(self) -> bool:
        """Check if this is a message event"""
        if self.event:
            normalized = self.event.lower().replace("_", ".")
            return normalized == "messages.upsert"
        return bool(self.data and self.data.get("message"))

    @property
    def is_inbound(self) -> bool:
        """Messages sent by the bot itself come back with fromMe"""
        return not self.key.get("fromMe", False)

    @property
    def sender_phone(self) -> Optional[str]:
        remote_jid = self.key.get("remoteJid")
        if remote_jid:
            return extract_phone_from_jid(remote_jid)
        return None

    @property
    def push_name(self) -> Optional[str]:
        if self.data:
            return self.data.get("pushName")
        return None

    @property
    def message_id(self) -> Optional[str]:
        return self.key.get("id")

    @property
    def message_text(self) -> str:
        if not self.data:
            return ""
        return extract_message_text(self.data.get("message"))


def extract_message_text(message: Any) -> str:
    """
    Extract the text of a WhatsApp message.

    List and button replies resolve to the selected row/button id, which is
    what list nodes expect.
    """
    if not message or not isinstance(message, dict):
        return ""

    if message.get("conversation"):
        return message["conversation"]

    list_reply = (message.get("listResponseMessage") or {}).get("singleSelectReply") or {}
    if list_reply.get("selectedRowId"):
        return list_reply["selectedRowId"]

    button_reply = message.get("buttonsResponseMessage") or {}
    if button_reply.get("selectedButtonId"):
        return button_reply["selectedButtonId"]

    extended = message.get("extendedTextMessage") or {}
    if extended.get("text"):
        return extended["text"]

    for value in message.values():
        if isinstance(value, str):
            return value

    return json.dumps(message)


def parse_webhook(payload: dict) -> Optional[IncomingMessage]:
    """
    Parse a raw webhook payload.

    Returns None for non-message events, messages sent by the bot and
    payloads without a sender.
    """
    webhook = WebhookPayload(**payload)

    if not webhook.is_message_event or not webhook.is_inbound:
        return None

    phone = webhook.sender_phone
    if not phone:
        return None

    return IncomingMessage(
        user_id=phone,
        text=webhook.message_text,
        instance_name=webhook.instance_name,
        push_name=webhook.push_name,
        message_id=webhook.message_id
    )


def extract_phone_from_jid(jid: str) -> str:
    """Extract phone number from WhatsApp JID"""
    # JID format: 5511999999999@c.us or 5511999999999@s.whatsapp.net
    return jid.split("@")[0].replace("+", "").replace("-", "").replace(" ", "")
