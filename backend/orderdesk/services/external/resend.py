"""Resend transactional email client."""

import httpx
import structlog

from orderdesk.config import Settings, get_settings
from orderdesk.services.exceptions import ConfigurationError, DeliveryRejectedError, TransientTransportError
from orderdesk.services.notifications.composer import NotificationPayload

logger = structlog.get_logger(__name__)


def _is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class ResendService:
    """Sends one email per call through the Resend HTTP API.

    No retries happen here: transient failures raise TransientTransportError
    and the calling task's retry policy decides what to do.
    """

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or get_settings()
        # Tests inject an httpx.MockTransport
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.resend_api_key}",
            "Content-Type": "application/json",
        }

    async def send(
        self,
        recipients: list[str] | tuple[str, ...],
        subject: str,
        html: str,
        text: str | None = None,
    ) -> str | None:
        """Send an email.

        Args:
            recipients: Destination addresses; empty entries are dropped
            subject: Subject line
            html: HTML body
            text: Optional plain-text alternative

        Returns:
            Resend message id, or None if there was nobody to send to

        Raises:
            ConfigurationError: If no API key is configured (checked before anything else)
            TransientTransportError: On network errors, HTTP 429 or 5xx
            DeliveryRejectedError: On any other non-2xx response
        """
        if not self.settings.resend_api_key:
            raise ConfigurationError("RESEND_API_KEY is not configured")

        to = [address for address in recipients if address]
        if not to:
            logger.info("No recipients, skipping email", subject=subject)
            return None

        body: dict[str, str | list[str]] = {
            "from": self.settings.resend_from,
            "to": to,
            "subject": subject,
            "html": html,
        }
        if text:
            body["text"] = text

        async with httpx.AsyncClient(transport=self._transport, timeout=self.settings.resend_timeout) as client:
            try:
                response = await client.post(self.settings.resend_api_url, headers=self._get_headers(), json=body)
            except httpx.RequestError as e:
                logger.warning("Resend request failed", subject=subject, error=str(e))
                raise TransientTransportError(f"Request error: {e}") from e

        if response.is_success:
            try:
                message_id: str | None = response.json().get("id")
            except ValueError:
                # Accepted, but the body carries no readable id
                logger.warning("Resend accepted email without a JSON body", subject=subject)
                message_id = None
            logger.info("Email sent", subject=subject, recipients=len(to), message_id=message_id)
            return message_id

        if _is_transient_status(response.status_code):
            logger.warning("Resend temporarily unavailable", subject=subject, status_code=response.status_code)
            raise TransientTransportError(f"HTTP error: {response.status_code}")

        logger.error(
            "Resend rejected email",
            subject=subject,
            status_code=response.status_code,
            response=response.text,
        )
        raise DeliveryRejectedError(response.status_code, response.text)

    async def send_payload(self, payload: NotificationPayload) -> str | None:
        """Send a composed notification."""
        return await self.send(
            list(payload.recipients),
            payload.subject,
            payload.html_body,
            payload.text_body,
        )
