import asyncio
from unittest.mock import AsyncMock, Mock, patch

from menubot.services.conversation_engine import ChoiceRow, OutboundResponse
from menubot.services.dispatcher import (
    BUTTON_LIMIT,
    ROW_TITLE_LIMIT,
    TITLE_LIMIT,
    Dispatcher,
    MessageShape,
    build_list_payload,
    choose_shape,
    pick_delay_ms,
)
from menubot.services.evolution_service import SendStatus

PHONE = "5511987654321"

MENU_RESPONSE = OutboundResponse(
    text="Nossos planos",
    title="Planos",
    rows=(ChoiceRow("lm_plans_1", "1. Plano Mensal"), ChoiceRow("lm_voltar", "0. Voltar", "Retornar")),
    button_text="Ver opções",
    use_list_message=True,
)


def make_gateway(**statuses):
    gateway = Mock()
    for method in ("send_text", "send_list", "send_image", "send_presence"):
        setattr(gateway, method, AsyncMock(return_value=statuses.get(method, SendStatus.SUCCESS)))
    return gateway


class TestChooseShape:
    def test_rows_prefer_list(self):
        assert choose_shape(MENU_RESPONSE, prefer_interactive=True) == MessageShape.LIST

    def test_list_disabled_sends_text(self):
        assert choose_shape(MENU_RESPONSE, prefer_interactive=False) == MessageShape.TEXT

    def test_image_when_not_a_list(self):
        response = OutboundResponse(text="Promo", image_url="https://cdn.example.com/p.png")
        assert choose_shape(response, prefer_interactive=True) == MessageShape.IMAGE


class TestBuildListPayload:
    def test_fields_are_truncated(self):
        response = OutboundResponse(
            text="x",
            title="T" * 100,
            rows=(ChoiceRow("lm_a", "R" * 50),),
        )
        payload = build_list_payload(response, "B" * 40)

        assert len(payload["title"]) == TITLE_LIMIT
        assert len(payload["button_text"]) == BUTTON_LIMIT
        assert len(payload["sections"][0]["rows"][0]["title"]) == ROW_TITLE_LIMIT
        assert payload["sections"][0]["rows"][0]["rowId"] == "lm_a"

    def test_button_label_falls_back_to_response(self):
        payload = build_list_payload(MENU_RESPONSE, None)
        assert payload["button_text"] == "Ver opções"
        assert payload["sections"][0]["title"] == "Opções"


class TestPickDelay:
    def test_within_bounds(self):
        for _ in range(20):
            assert 1000 <= pick_delay_ms(1000, 3000, 8000) <= 3000

    def test_clamped_to_ceiling(self):
        for _ in range(20):
            assert 5000 <= pick_delay_ms(5000, 20000, 8000) <= 8000

    def test_inverted_bounds(self):
        assert 1000 <= pick_delay_ms(3000, 1000, 8000) <= 3000

    def test_zero_delay(self):
        assert pick_delay_ms(0, 0, 8000) == 0


class TestDeliver:
    def test_list_sent_on_first_variant(self):
        gateway = make_gateway()
        report = asyncio.run(Dispatcher(gateway).deliver("loja1", PHONE, MENU_RESPONSE, button_label="Menu"))

        assert report.sent is True
        assert report.shape == MessageShape.LIST
        assert report.variant == PHONE
        gateway.send_list.assert_awaited_once()
        assert gateway.send_list.await_args.kwargs["button_text"] == "Menu"
        gateway.send_text.assert_not_called()

    def test_retries_next_variant(self):
        gateway = make_gateway()
        gateway.send_text = AsyncMock(side_effect=[SendStatus.CLIENT_ERROR, SendStatus.SERVER_ERROR, SendStatus.SUCCESS])
        report = asyncio.run(Dispatcher(gateway).deliver("loja1", PHONE, OutboundResponse(text="Oi")))

        assert report.sent is True
        assert report.variant == "11987654321"
        assert len(report.attempts) == 3

    def test_list_exhausted_falls_back_to_text(self):
        gateway = make_gateway(send_list=SendStatus.CLIENT_ERROR)
        report = asyncio.run(Dispatcher(gateway).deliver("loja1", PHONE, MENU_RESPONSE))

        assert report.sent is True
        assert report.fell_back is True
        assert gateway.send_list.await_count == 4
        gateway.send_text.assert_awaited_once_with("loja1", PHONE, "Nossos planos")

    @patch("menubot.services.dispatcher.alert_critical")
    def test_total_failure_alerts(self, mock_alert):
        gateway = make_gateway(send_text=SendStatus.NETWORK_ERROR)
        report = asyncio.run(Dispatcher(gateway).deliver("loja1", PHONE, OutboundResponse(text="Oi")))

        assert report.sent is False
        assert len(report.attempts) == 4
        mock_alert.assert_called_once()
        assert mock_alert.call_args[0][0] == "WhatsApp send failed"

    def test_image_send(self):
        gateway = make_gateway()
        response = OutboundResponse(text="Promo", image_url="https://cdn.example.com/p.png")
        report = asyncio.run(Dispatcher(gateway).deliver("loja1", PHONE, response))

        assert report.shape == MessageShape.IMAGE
        gateway.send_image.assert_awaited_once_with("loja1", PHONE, "https://cdn.example.com/p.png", "Promo")

    def test_raw_jid_is_normalized_before_sending(self):
        gateway = make_gateway()
        report = asyncio.run(
            Dispatcher(gateway).deliver("loja1", "1187654321@s.whatsapp.net", OutboundResponse(text="Oi"))
        )

        assert report.variant == PHONE
        gateway.send_text.assert_awaited_once_with("loja1", PHONE, "Oi")


class TestSimulateTyping:
    def test_presence_then_sleep(self):
        gateway = make_gateway()
        sleep = AsyncMock()
        asyncio.run(Dispatcher(gateway, sleep=sleep).simulate_typing("loja1", PHONE, 1500, typing_enabled=True))

        gateway.send_presence.assert_awaited_once_with("loja1", PHONE, 1500)
        sleep.assert_awaited_once_with(1.5)

    def test_typing_disabled_still_waits(self):
        gateway = make_gateway()
        sleep = AsyncMock()
        asyncio.run(Dispatcher(gateway, sleep=sleep).simulate_typing("loja1", PHONE, 1000, typing_enabled=False))

        gateway.send_presence.assert_not_called()
        sleep.assert_awaited_once_with(1.0)

    def test_presence_failure_is_ignored(self):
        gateway = make_gateway(send_presence=SendStatus.SERVER_ERROR)
        sleep = AsyncMock()
        asyncio.run(Dispatcher(gateway, sleep=sleep).simulate_typing("loja1", PHONE, 500, typing_enabled=True))
        sleep.assert_awaited_once()
