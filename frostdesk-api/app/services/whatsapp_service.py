import re
from typing import Optional

import httpx

from app.logging_config import get_logger
from app.services.result import Result

logger = get_logger("whatsapp_service")

MIN_PHONE_DIGITS = 10


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    """Digits only, as the Cloud API expects. None if too short to be a number."""
    digits = re.sub(r"\D", "", raw or "")
    if len(digits) < MIN_PHONE_DIGITS:
        return None
    return digits


class WhatsAppCloudSender:
    """Sends text messages through the WhatsApp Cloud (Graph) API."""

    BASE_URL = "https://graph.facebook.com/{version}/{phone_number_id}/messages"

    def __init__(self, access_token: str, phone_number_id: str, api_version: str = "v19.0"):
        self.access_token = access_token
        self.url = self.BASE_URL.format(version=api_version, phone_number_id=phone_number_id)

    def send_text(self, to: str, text: str) -> Result[str]:
        """Send a text message. On success the value is the provider message id."""
        phone = normalize_phone(to)
        if phone is None:
            return Result.failure(f"Invalid recipient: {to!r}", "invalid_recipient")

        payload = {
            "messaging_product": "whatsapp",
            "to": phone,
            "type": "text",
            "text": {"body": text},
        }
        try:
            with httpx.Client(timeout=30.0) as client:
                response = client.post(
                    self.url,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"WhatsApp API error: {e}")
            return Result.failure(str(e), "transport_error")

        if response.status_code != 200:
            logger.error(
                "WhatsApp send rejected",
                extra={"context": {"status_code": response.status_code, "body": response.text[:500]}},
            )
            return Result.failure(f"WhatsApp API error: {response.status_code}", "provider_error")

        messages = response.json().get("messages") or [{}]
        return Result.success(messages[0].get("id"))
