"""Out-of-band delivery of recovery codes.

- email: Resend HTTP API
- whatsapp: Twilio Messages API (WhatsApp sender)
- log: development fallback, writes the code to the application log

A channel whose provider credentials are not configured falls back to the
log sender. Delivery failures raise DeliveryError; nothing is retried here.
"""

import logging
from abc import ABC, abstractmethod
from enum import StrEnum

import httpx

from micampofresco.core.config import settings
from micampofresco.core.errors import DeliveryError

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_TWILIO_MESSAGES_URL = (
    "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
)
_HTTP_TIMEOUT = 10.0


class Channel(StrEnum):
    """Delivery channel for recovery codes."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"


def _recovery_text(code: str) -> str:
    minutes = settings.recovery_code_ttl_minutes
    return (
        f"Your MiCampoFresco recovery code is: {code}\n\n"
        f"It expires in {minutes} minutes. "
        "If you didn't request this, you can safely ignore this message."
    )


class NotificationSender(ABC):
    """Delivers a one-time code to a destination."""

    channel: str

    @abstractmethod
    async def send(self, destination: str, code: str) -> None:
        """Deliver a recovery code.

        Args:
            destination: Email address or phone number.
            code: Plain 6-digit recovery code.

        Raises:
            DeliveryError: If the provider rejects or cannot be reached.
        """


class ResendEmailSender(NotificationSender):
    """Send recovery codes as plain-text email via Resend."""

    channel = Channel.EMAIL

    def __init__(self, *, api_key: str, sender: str) -> None:
        self._api_key = api_key
        self._sender = sender

    async def send(self, destination: str, code: str) -> None:
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={
                        "from": self._sender,
                        "to": destination,
                        "subject": "MiCampoFresco recovery code",
                        "text": _recovery_text(code),
                    },
                    timeout=_HTTP_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send recovery email", exc_info=True)
            raise DeliveryError(self.channel, cause=str(exc)) from exc


class TwilioWhatsAppSender(NotificationSender):
    """Send recovery codes as WhatsApp messages via Twilio."""

    channel = Channel.WHATSAPP

    def __init__(self, *, account_sid: str, auth_token: str, sender: str) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._sender = sender

    async def send(self, destination: str, code: str) -> None:
        url = _TWILIO_MESSAGES_URL.format(account_sid=self._account_sid)
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    url,
                    auth=(self._account_sid, self._auth_token),
                    data={
                        "From": f"whatsapp:{self._sender}",
                        "To": f"whatsapp:{destination}",
                        "Body": _recovery_text(code),
                    },
                    timeout=_HTTP_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send recovery WhatsApp message", exc_info=True)
            raise DeliveryError(self.channel, cause=str(exc)) from exc


class LogNotificationSender(NotificationSender):
    """Development sender: logs the code instead of delivering it."""

    def __init__(self, channel: str) -> None:
        self.channel = channel

    async def send(self, destination: str, code: str) -> None:
        logger.info(
            "Recovery code for %s via %s: %s (provider not configured)",
            destination,
            self.channel,
            code,
        )


def get_notification_sender(channel: Channel) -> NotificationSender:
    """Build the sender for a channel from current settings.

    Args:
        channel: Delivery channel.

    Returns:
        Provider-backed sender, or LogNotificationSender when the provider
        credentials are not configured.

    Raises:
        DeliveryError: Provider not configured in production.
    """
    if channel == Channel.EMAIL:
        api_key = settings.resend_api_key.get_secret_value()
        if api_key:
            return ResendEmailSender(api_key=api_key, sender=settings.email_from)
    elif channel == Channel.WHATSAPP:
        token = settings.twilio_auth_token.get_secret_value()
        if settings.twilio_account_sid and token and settings.twilio_whatsapp_from:
            return TwilioWhatsAppSender(
                account_sid=settings.twilio_account_sid,
                auth_token=token,
                sender=settings.twilio_whatsapp_from,
            )
    # Security: codes must never end up in production logs
    if settings.is_production:
        raise DeliveryError(channel, cause="provider not configured")
    return LogNotificationSender(channel)
