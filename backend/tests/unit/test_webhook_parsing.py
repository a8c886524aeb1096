"""
Unit tests for webhook payload parsing.
"""
from zapflow.models.webhook import (
    WebhookPayload,
    parse_webhook,
    extract_message_text,
    extract_phone_from_jid,
)


def make_payload(message, event="messages.upsert", from_me=False):
    return {
        "event": event,
        "instance": "loja",
        "data": {
            "key": {
                "remoteJid": "5511999999999@s.whatsapp.net",
                "fromMe": from_me,
                "id": "MSG1"
            },
            "pushName": "Maria",
            "message": message
        }
    }


class TestParseWebhook:
    """Tests for inbound message extraction."""

    def test_conversation_message(self):
        incoming = parse_webhook(make_payload({"conversation": "Oi"}))

        assert incoming.user_id == "5511999999999"
        assert incoming.text == "Oi"
        assert incoming.instance_name == "loja"
        assert incoming.push_name == "Maria"
        assert incoming.message_id == "MSG1"

    def test_uppercase_event_name(self):
        incoming = parse_webhook(make_payload({"conversation": "Oi"}, event="MESSAGES_UPSERT"))
        assert incoming is not None

    def test_other_events_are_ignored(self):
        assert parse_webhook(make_payload({"conversation": "Oi"}, event="connection.update")) is None

    def test_own_messages_are_ignored(self):
        assert parse_webhook(make_payload({"conversation": "Oi"}, from_me=True)) is None

    def test_missing_sender_is_ignored(self):
        payload = make_payload({"conversation": "Oi"})
        payload["data"]["key"].pop("remoteJid")
        assert parse_webhook(payload) is None

    def test_instance_object(self):
        webhook = WebhookPayload(instance={"instanceName": "loja"})
        assert webhook.instance_name == "loja"


class TestMessageText:
    """Tests for message text extraction."""

    def test_list_reply_uses_row_id(self):
        message = {"listResponseMessage": {"singleSelectReply": {"selectedRowId": "B"}}}
        assert extract_message_text(message) == "B"

    def test_button_reply(self):
        assert extract_message_text({"buttonsResponseMessage": {"selectedButtonId": "yes"}}) == "yes"

    def test_extended_text(self):
        assert extract_message_text({"extendedTextMessage": {"text": "link aqui"}}) == "link aqui"

    def test_unknown_shape_falls_back_to_json(self):
        assert extract_message_text({"imageMessage": {"url": "x"}}) == '{"imageMessage": {"url": "x"}}'

    def test_empty_message(self):
        assert extract_message_text(None) == ""

    def test_phone_from_jid(self):
        assert extract_phone_from_jid("+55 11-9999@c.us") == "55119999"
