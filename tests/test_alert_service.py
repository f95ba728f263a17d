from unittest.mock import MagicMock, Mock, patch

import httpx

from menubot.services.alert_service import alert_critical, alert_warning, format_alert, send_alert


def configured_settings():
    return Mock(alert_bot_token="test-token", alert_chat_id="test-chat")


class TestFormatAlert:
    def test_includes_level_and_service(self):
        text = format_alert("WARNING", "Seller without main menu")
        assert "WARNING" in text
        assert "menubot" in text
        assert "Seller without main menu" in text

    def test_includes_context(self):
        text = format_alert("CRITICAL", "Send failed", {"instance": "loja1", "attempts": 4})
        assert "instance: loja1" in text
        assert "attempts: 4" in text


class TestSendAlert:
    @patch("menubot.services.alert_service.settings", Mock(alert_bot_token=None, alert_chat_id=None))
    def test_returns_false_when_not_configured(self):
        assert send_alert("ERROR", "Test message") is False

    @patch("menubot.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=200)

        with patch("menubot.services.alert_service.settings", configured_settings()):
            result = send_alert("ERROR", "Test error message")

        assert result is True
        call_args = mock_client.post.call_args
        assert "api.telegram.org/bottest-token" in call_args[0][0]
        json_data = call_args[1]["json"]
        assert json_data["chat_id"] == "test-chat"
        assert "ERROR" in json_data["text"]

    @patch("menubot.services.alert_service.httpx.Client")
    def test_returns_false_on_telegram_error(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=400)

        with patch("menubot.services.alert_service.settings", configured_settings()):
            assert send_alert("ERROR", "Test message") is False

    @patch("menubot.services.alert_service.httpx.Client")
    def test_returns_false_on_network_error(self, mock_client_class):
        mock_client_class.return_value.__enter__.side_effect = httpx.ConnectError("Network error")

        with patch("menubot.services.alert_service.settings", configured_settings()):
            assert send_alert("ERROR", "Test message") is False


class TestShortcuts:
    @patch("menubot.services.alert_service.send_alert")
    def test_alert_warning(self, mock_send):
        alert_warning("Test", {"key": "value"})
        mock_send.assert_called_once_with("WARNING", "Test", {"key": "value"})

    @patch("menubot.services.alert_service.send_alert")
    def test_alert_critical(self, mock_send):
        alert_critical("Test")
        mock_send.assert_called_once_with("CRITICAL", "Test", None)
