"""Evolution API (WhatsApp gateway) client."""

from enum import Enum
from typing import Any, Optional

import httpx

from menubot.config import settings
from menubot.logging_config import get_logger
from menubot.services.phone_service import mask_phone

logger = get_logger("evolution_service")


class SendStatus(str, Enum):
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"

    @property
    def ok(self) -> bool:
        return self == SendStatus.SUCCESS


def gateway_base_url(api_url: str) -> str:
    """Panel URLs end in /manager, the REST API lives at the root."""
    return api_url.rstrip("/").removesuffix("/manager").rstrip("/")


class EvolutionClient:
    """Thin async wrapper over the gateway's send endpoints.

    Every call returns a SendStatus; transport errors are reported, never raised.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = gateway_base_url(api_url or settings.evolution_api_url)
        self.api_token = api_token if api_token is not None else settings.evolution_api_token
        self.timeout = timeout or settings.send_timeout_seconds
        self._http_client = http_client

    async def _post(self, path: str, instance: str, payload: dict[str, Any]) -> SendStatus:
        url = f"{self.base_url}{path}/{instance}"
        headers = {"Content-Type": "application/json", "apikey": self.api_token or ""}
        number = mask_phone(str(payload.get("number", "")))
        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(
                f"Evolution request failed: {type(e).__name__}",
                extra={"context": {"path": path, "instance": instance, "number": number, "error": str(e)}},
            )
            return SendStatus.NETWORK_ERROR

        if response.is_success:
            return SendStatus.SUCCESS

        logger.warning(
            f"Evolution response: status={response.status_code}",
            extra={
                "context": {
                    "path": path,
                    "instance": instance,
                    "number": number,
                    "body": response.text[:200],
                }
            },
        )
        if 400 <= response.status_code < 500:
            return SendStatus.CLIENT_ERROR
        return SendStatus.SERVER_ERROR

    async def send_text(self, instance: str, number: str, text: str) -> SendStatus:
        return await self._post("/message/sendText", instance, {"number": number, "text": text})

    async def send_list(
        self,
        instance: str,
        number: str,
        title: str,
        description: str,
        button_text: str,
        footer_text: str,
        sections: list[dict[str, Any]],
    ) -> SendStatus:
        payload = {
            "number": number,
            "title": title,
            "description": description,
            "buttonText": button_text,
            "footerText": footer_text,
            "sections": sections,
        }
        return await self._post("/message/sendList", instance, payload)

    async def send_image(self, instance: str, number: str, image_url: str, caption: str) -> SendStatus:
        payload = {"number": number, "mediatype": "image", "media": image_url, "caption": caption}
        return await self._post("/message/sendMedia", instance, payload)

    async def send_presence(self, instance: str, number: str, delay_ms: int) -> SendStatus:
        payload = {"number": number, "presence": "composing", "delay": delay_ms}
        return await self._post("/chat/sendPresence", instance, payload)
