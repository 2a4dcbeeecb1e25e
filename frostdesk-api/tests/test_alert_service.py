from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from app.config import settings
from app.services.alert_service import alert_critical, alert_warning, send_alert


@pytest.fixture
def configured_alerts():
    with patch.object(settings, "alert_bot_token", "test-token"), patch.object(settings, "alert_chat_id", "ops-chat"):
        yield


def _mock_client(mock_client_class, status_code=200):
    mock_client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = mock_client
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_client.post.return_value = mock_response
    return mock_client


class TestSendAlert:
    def test_returns_false_when_not_configured(self):
        with patch.object(settings, "alert_bot_token", None), patch.object(settings, "alert_chat_id", None):
            assert send_alert("CRITICAL", "Audit write failed") is False

    @patch("app.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class, configured_alerts):
        mock_client = _mock_client(mock_client_class)

        result = send_alert("CRITICAL", "Booking audit write failed", {"booking_id": "b-1"})

        assert result is True
        url, kwargs = mock_client.post.call_args[0][0], mock_client.post.call_args[1]
        assert "api.telegram.org/bottest-token" in url
        assert kwargs["json"]["chat_id"] == "ops-chat"
        assert "🔥" in kwargs["json"]["text"]
        assert "booking_id: b-1" in kwargs["json"]["text"]

    @patch("app.services.alert_service.httpx.Client")
    def test_returns_false_on_telegram_error(self, mock_client_class, configured_alerts):
        _mock_client(mock_client_class, status_code=400)
        assert send_alert("WARNING", "Test message") is False

    @patch("app.services.alert_service.httpx.Client")
    def test_returns_false_on_transport_error(self, mock_client_class, configured_alerts):
        mock_client_class.return_value.__enter__.side_effect = httpx.ConnectError("Network error")
        assert send_alert("CRITICAL", "Test message") is False


class TestAlertShortcuts:
    @patch("app.services.alert_service.send_alert")
    def test_alert_critical(self, mock_send):
        mock_send.return_value = True

        assert alert_critical("Expiry sweep failed") is True
        mock_send.assert_called_once_with("CRITICAL", "Expiry sweep failed", None)

    @patch("app.services.alert_service.send_alert")
    def test_alert_warning(self, mock_send):
        mock_send.return_value = True

        alert_warning("Quota missing", {"channel": "whatsapp"})
        mock_send.assert_called_once_with("WARNING", "Quota missing", {"channel": "whatsapp"})
