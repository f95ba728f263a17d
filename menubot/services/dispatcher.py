"""Outbound delivery with phone-format retries and plain-text fallback."""

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

from menubot.config import settings
from menubot.logging_config import get_logger
from menubot.services.alert_service import alert_critical
from menubot.services.conversation_engine import OutboundResponse
from menubot.services.evolution_service import EvolutionClient, SendStatus
from menubot.services.phone_service import mask_phone, normalize_phone

logger = get_logger("dispatcher")

TITLE_LIMIT = 60
DESCRIPTION_LIMIT = 1024
BUTTON_LIMIT = 20
FOOTER_LIMIT = 60
SECTION_TITLE_LIMIT = 24
ROW_TITLE_LIMIT = 24
ROW_DESCRIPTION_LIMIT = 72


class MessageShape(str, Enum):
    LIST = "list"
    IMAGE = "image"
    TEXT = "text"


@dataclass
class DeliveryReport:
    sent: bool
    shape: MessageShape
    variant: Optional[str] = None
    attempts: list[tuple[str, SendStatus]] = field(default_factory=list)
    fell_back: bool = False


def choose_shape(response: OutboundResponse, prefer_interactive: bool) -> MessageShape:
    if prefer_interactive and response.rows:
        return MessageShape.LIST
    if response.image_url:
        return MessageShape.IMAGE
    return MessageShape.TEXT


def build_list_payload(response: OutboundResponse, button_label: Optional[str], footer: str = "") -> dict:
    """List message fields truncated to the gateway's limits."""
    return {
        "title": (response.title or "")[:TITLE_LIMIT],
        "description": response.text[:DESCRIPTION_LIMIT],
        "button_text": (button_label or response.button_text or "")[:BUTTON_LIMIT],
        "footer_text": footer[:FOOTER_LIMIT],
        "sections": [
            {
                "title": response.section_title[:SECTION_TITLE_LIMIT],
                "rows": [
                    {
                        "rowId": row.row_id,
                        "title": row.title[:ROW_TITLE_LIMIT],
                        "description": (row.description or "")[:ROW_DESCRIPTION_LIMIT],
                    }
                    for row in response.rows
                ],
            }
        ],
    }


def pick_delay_ms(min_ms: int, max_ms: int, ceiling_ms: Optional[int] = None) -> int:
    """Random delay in [min, max], both bounds clamped to the ceiling."""
    ceiling = settings.max_response_delay_ms if ceiling_ms is None else ceiling_ms
    low = max(0, min(min_ms or 0, ceiling))
    high = max(0, min(max_ms or 0, ceiling))
    if high < low:
        low, high = high, low
    return random.randint(low, high)


class Dispatcher:
    def __init__(self, gateway: EvolutionClient, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.gateway = gateway
        self._sleep = sleep

    async def _try_variants(
        self,
        variants: list[str],
        send: Callable[[str], Awaitable[SendStatus]],
        report: DeliveryReport,
    ) -> bool:
        for number in variants:
            status = await send(number)
            report.attempts.append((number, status))
            if status.ok:
                report.variant = number
                logger.info(
                    f"Sent {report.shape.value} with format {mask_phone(number)}",
                    extra={"context": {"attempts": len(report.attempts)}},
                )
                return True
            logger.info(
                f"Format {mask_phone(number)} returned {status.value}, trying next",
                extra={"context": {"shape": report.shape.value}},
            )
        return False

    async def deliver(
        self,
        instance: str,
        phone: str,
        response: OutboundResponse,
        prefer_interactive: bool = True,
        button_label: Optional[str] = None,
    ) -> DeliveryReport:
        variants = normalize_phone(phone).variants
        shape = choose_shape(response, prefer_interactive)
        report = DeliveryReport(sent=False, shape=shape)

        if shape == MessageShape.LIST:
            payload = build_list_payload(response, button_label)

            async def send(number: str) -> SendStatus:
                return await self.gateway.send_list(instance, number, **payload)

        elif shape == MessageShape.IMAGE:

            async def send(number: str) -> SendStatus:
                return await self.gateway.send_image(instance, number, response.image_url, response.text)

        else:

            async def send(number: str) -> SendStatus:
                return await self.gateway.send_text(instance, number, response.text)

        if await self._try_variants(variants, send, report):
            report.sent = True
            return report

        if shape != MessageShape.TEXT and response.text:
            logger.warning(
                f"All formats failed for {shape.value}, falling back to plain text",
                extra={"context": {"instance": instance, "phone": mask_phone(phone)}},
            )
            report.fell_back = True

            async def send_plain(number: str) -> SendStatus:
                return await self.gateway.send_text(instance, number, response.text)

            if await self._try_variants(variants, send_plain, report):
                report.sent = True
                return report

        logger.error(
            f"All {len(report.attempts)} send attempts failed",
            extra={"context": {"instance": instance, "phone": mask_phone(phone), "shape": shape.value}},
        )
        await asyncio.to_thread(
            alert_critical,
            "WhatsApp send failed",
            {"instance": instance, "phone": mask_phone(phone), "attempts": len(report.attempts)},
        )
        return report

    async def simulate_typing(self, instance: str, phone: str, delay_ms: int, typing_enabled: bool) -> None:
        """Best-effort composing indicator, then wait."""
        if typing_enabled and delay_ms > 0:
            status = await self.gateway.send_presence(instance, phone, delay_ms)
            if not status.ok:
                logger.debug(f"Presence not accepted: {status.value}")
        if delay_ms > 0:
            await self._sleep(delay_ms / 1000)
