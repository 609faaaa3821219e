from typing import Optional

import httpx

from relay.logging_config import get_logger

logger = get_logger("whatsapp_service")


class WhatsAppAPIError(Exception):
    """WhatsApp Cloud API rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class WhatsAppService:
    """Client for the WhatsApp Cloud API ``/messages`` endpoint."""

    BASE_URL = "https://graph.facebook.com/{version}/{phone_number_id}"

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_version: str = "v19.0",
        timeout: float = 30.0,
    ):
        self.access_token = access_token
        self.base_url = self.BASE_URL.format(version=api_version, phone_number_id=phone_number_id)
        self.timeout = timeout

    def _post(self, endpoint: str, payload: dict) -> dict:
        url = f"{self.base_url}/{endpoint}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"WhatsApp transport error: {e}")
            raise WhatsAppAPIError(str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error = data.get("error") or {}
            message = error.get("message") or f"WhatsApp API error: {response.status_code}"
            logger.error(
                "WhatsApp call failed",
                extra={"context": {"status": response.status_code, "error": message}},
            )
            raise WhatsAppAPIError(message, status_code=response.status_code, code=error.get("code"))

        return data

    def send_text(self, wa_id: str, text: str) -> dict:
        """Send a plain text message to a contact."""
        return self._post(
            "messages",
            {
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": wa_id,
                "type": "text",
                "text": {"body": text},
            },
        )

    def mark_read(self, message_id: str) -> dict:
        """Mark an inbound message (and everything before it) as read."""
        return self._post(
            "messages",
            {
                "messaging_product": "whatsapp",
                "status": "read",
                "message_id": message_id,
            },
        )
