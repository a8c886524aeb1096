"""
Unit tests for the Evolution API client.
"""
import json
import httpx
import pytest

from zapflow.services.whatsapp import WhatsAppService


class RecordingTransport:
    """Collects requests and answers with a canned response"""

    def __init__(self, status_code=201, body=None):
        self.requests = []
        self.status_code = status_code
        self.body = body if body is not None else {"key": {"id": "WAMSG1"}}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/instance/fetchInstances"):
            return httpx.Response(200, json=[{"instance": {"instanceName": "auto"}}])
        return httpx.Response(self.status_code, json=self.body)


def make_service(recorder, default_instance="loja"):
    return WhatsAppService(
        base_url="http://evolution.local/",
        api_key="secret",
        default_instance=default_instance,
        transport=httpx.MockTransport(recorder)
    )


class TestSendText:
    """Tests for text messages."""

    async def test_posts_number_and_text(self):
        recorder = RecordingTransport()
        service = make_service(recorder)

        result = await service.send_text("5511999999999@s.whatsapp.net", "Olá!")

        assert result["success"] is True
        assert result["message_id"] == "WAMSG1"
        request = recorder.requests[0]
        assert request.url.path == "/message/sendText/loja"
        assert request.headers["apikey"] == "secret"
        assert json.loads(request.content) == {"number": "5511999999999", "text": "Olá!"}

    async def test_explicit_instance_wins(self):
        recorder = RecordingTransport()
        service = make_service(recorder)

        await service.send_text("5511", "Oi", instance="outra")

        assert recorder.requests[0].url.path == "/message/sendText/outra"

    async def test_http_error_is_reported(self):
        recorder = RecordingTransport(status_code=500, body={"error": "boom"})
        service = make_service(recorder)

        result = await service.send_text("5511", "Oi")

        assert result["success"] is False
        assert "HTTP 500" in result["error"]

    async def test_network_error_is_reported(self):
        def broken(request):
            raise httpx.ConnectError("refused", request=request)

        service = WhatsAppService(
            base_url="http://evolution.local",
            api_key="secret",
            default_instance="loja",
            transport=httpx.MockTransport(broken)
        )

        result = await service.send_text("5511", "Oi")

        assert result["success"] is False
        assert "refused" in result["error"]

    async def test_instance_discovered_when_not_configured(self):
        recorder = RecordingTransport()
        service = make_service(recorder, default_instance="")

        await service.send_text("5511", "Oi")

        assert recorder.requests[-1].url.path == "/message/sendText/auto"
        assert service.default_instance == "auto"


class TestSendList:
    """Tests for interactive lists."""

    async def test_list_payload(self):
        recorder = RecordingTransport()
        service = make_service(recorder)

        result = await service.send_list(
            "5511",
            title="Selecione uma opção",
            description="Escolha uma cor",
            options=[
                {"id": "A", "text": "Red"},
                {"id": "B", "text": "Blue", "description": "Cor do céu"}
            ],
            button_text="Ver",
            footer_text="Loja"
        )

        assert result["success"] is True
        body = json.loads(recorder.requests[0].content)
        assert recorder.requests[0].url.path == "/message/sendList/loja"
        assert body["title"] == "Selecione uma opção"
        assert body["description"] == "Escolha uma cor"
        assert body["buttonText"] == "Ver"
        assert body["footerText"] == "Loja"
        assert body["sections"][0]["rows"] == [
            {"title": "Red", "description": "Red", "rowId": "A"},
            {"title": "Blue", "description": "Cor do céu", "rowId": "B"}
        ]


@pytest.mark.parametrize("data,expected", [
    ([{"instance": {"instanceName": "a"}}, {"name": "b"}], ["a", "b"]),
    ({"instances": [{"instanceName": "c"}]}, ["c"]),
    ([], []),
])
async def test_fetch_instances_shapes(data, expected):
    def handler(request):
        return httpx.Response(200, json=data)

    service = WhatsAppService(
        base_url="http://evolution.local",
        api_key="secret",
        default_instance="loja",
        transport=httpx.MockTransport(handler)
    )

    result = await service.fetch_instances()

    assert result["success"] is True
    assert result["instances"] == expected
