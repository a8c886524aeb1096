"""
WhatsApp service - Evolution API integration
Outbound text and interactive list messages, plus instance discovery
"""
import logging
from typing import Optional, Any, List, Dict
import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class WhatsAppService:
    """Service for WhatsApp integration via Evolution API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        default_instance: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.EVOLUTION_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.EVOLUTION_API_KEY
        self.default_instance = default_instance or settings.EVOLUTION_DEFAULT_INSTANCE
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with the API key"""
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "apikey": self.api_key or ""
        }

    def _format_phone(self, phone: str) -> str:
        """Strip WhatsApp JID suffixes from a phone number"""
        return phone.replace("@s.whatsapp.net", "").replace("@c.us", "").strip()

    async def _resolve_instance(self, instance: Optional[str]) -> Optional[str]:
        """Use the given instance, the configured default or the first one the API reports"""
        if instance:
            return instance
        if self.default_instance:
            return self.default_instance

        result = await self.fetch_instances()
        instances = result.get("instances") or []
        if instances:
            self.default_instance = instances[0]
            return self.default_instance
        return None

    # ==========================================
    # INSTANCES
    # ==========================================

    async def fetch_instances(self) -> dict[str, Any]:
        """
        List the instances registered in the Evolution API.

        Returns:
            {"success": True, "instances": [names]} or error
        """
        url = f"{self.base_url}/instance/fetchInstances"

        try:
            async with self._client() as client:
                response = await client.get(url, headers=self._get_headers(), timeout=30)

                if response.status_code == 200:
                    data = response.json()
                    return {
                        "success": True,
                        "instances": _instance_names(data),
                        "data": data
                    }
                else:
                    logger.error(f"Evolution API error: {response.status_code} - {response.text}")
                    return {
                        "success": False,
                        "error": f"HTTP {response.status_code}: {response.text}"
                    }

        except Exception as e:
            logger.error(f"Error fetching instances: {e}")
            return {"success": False, "error": str(e)}

    # ==========================================
    # SEND MESSAGES
    # ==========================================

    async def send_text(
        self,
        to: str,
        message: str,
        instance: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Send a text message.

        Args:
            to: Phone number (or JID) to send to
            message: Message text
            instance: Evolution instance name (optional)

        Returns:
            API response
        """
        instance = await self._resolve_instance(instance)
        if not instance:
            return {"success": False, "error": "No WhatsApp instance available"}

        url = f"{self.base_url}/message/sendText/{instance}"
        payload = {
            "number": self._format_phone(to),
            "text": message
        }

        return await self._post(url, payload, "text message")

    async def send_list(
        self,
        to: str,
        title: str,
        description: str,
        options: List[Dict[str, Any]],
        instance: Optional[str] = None,
        button_text: Optional[str] = None,
        footer_text: Optional[str] = None,
        section_title: str = "Opções disponíveis"
    ) -> dict[str, Any]:
        """
        Send an interactive list message.

        Args:
            to: Phone number to send to
            title: List title
            description: Text shown above the button
            options: [{"id", "text", "description"}]
            instance: Evolution instance name (optional)
            button_text: Label of the button that opens the list
            footer_text: Footer text
            section_title: Title of the single section

        Returns:
            API response
        """
        instance = await self._resolve_instance(instance)
        if not instance:
            return {"success": False, "error": "No WhatsApp instance available"}

        rows = [
            {
                "title": option["text"],
                # The API rejects rows without a description
                "description": option.get("description") or option["text"],
                "rowId": option["id"]
            }
            for option in options
        ]

        url = f"{self.base_url}/message/sendList/{instance}"
        payload = {
            "number": self._format_phone(to),
            "title": title,
            "description": description,
            "buttonText": button_text or settings.LIST_BUTTON_TEXT,
            "footerText": footer_text or settings.LIST_FOOTER_TEXT,
            "sections": [{"title": section_title, "rows": rows}]
        }

        return await self._post(url, payload, "list message")

    async def _post(self, url: str, payload: dict[str, Any], kind: str) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers=self._get_headers(),
                    timeout=30
                )

                if response.status_code in (200, 201):
                    data = response.json()
                    return {
                        "success": True,
                        "message_id": (data.get("key") or {}).get("id") if isinstance(data, dict) else None,
                        "data": data
                    }
                else:
                    logger.error(f"Evolution API error: {response.status_code} - {response.text}")
                    return {
                        "success": False,
                        "error": f"HTTP {response.status_code}: {response.text}"
                    }

        except Exception as e:
            logger.error(f"Error sending WhatsApp {kind}: {e}")
            return {"success": False, "error": str(e)}


def _instance_names(data: Any) -> List[str]:
    """Instance names from a fetchInstances response (list or wrapped list)"""
    items = data if isinstance(data, list) else (data or {}).get("instances") or []
    names = []
    for item in items:
        if not isinstance(item, dict):
            continue
        inner = item.get("instance") if isinstance(item.get("instance"), dict) else item
        name = inner.get("instanceName") or inner.get("name")
        if name:
            names.append(name)
    return names


# Factory function
def create_whatsapp_service(
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    default_instance: Optional[str] = None
) -> WhatsAppService:
    """Create WhatsApp service instance"""
    return WhatsAppService(base_url=base_url, api_key=api_key, default_instance=default_instance)
