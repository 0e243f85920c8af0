import html
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from nefes_backend.core.config import Settings
from nefes_backend.core.logger import get_logger
from nefes_backend.models.quote import Quote

logger = get_logger(__name__)


class MailDeliveryError(Exception):
    pass


class UnsupportedRecipientError(MailDeliveryError):
    pass


class MailTransport(ABC):
    @abstractmethod
    async def send(self, to: str, subject: str, html_body: str) -> None: ...

    async def aclose(self) -> None:
        pass


class HttpMailTransport(MailTransport):
    """
    Delivers mail through a Mailgun-compatible HTTP API: a form POST with
    from/to/subject/html and basic auth ``api:<key>``.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.sender = sender
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._auth = ("api", api_key)

    async def send(self, to: str, subject: str, html_body: str) -> None:
        # Phone numbers end up here when the customer left no email
        if "@" not in to:
            raise UnsupportedRecipientError(f"Cannot email non-address recipient {to!r}")

        logger.info(f"Mail API POST {self.api_url} to={to}")
        try:
            response = await self._client.post(
                self.api_url,
                auth=self._auth,
                data={"from": self.sender, "to": to, "subject": subject, "html": html_body},
            )
        except httpx.RequestError as e:
            raise MailDeliveryError(f"Mail API request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Mail API error {response.status_code}: {response.text}")
            raise MailDeliveryError(f"Mail API returned {response.status_code}")

    async def aclose(self) -> None:
        await self._client.aclose()


def build_confirmation(quote: Quote, company_name: str) -> tuple[str, str]:
    subject = f"{company_name} - Quote request received ({quote.quote_number})"
    body = (
        f"<h1>Hello {html.escape(quote.name)}</h1>"
        f"<p>Thank you for contacting {html.escape(company_name)}.</p>"
        f"<p>Your quote number: <strong>{quote.quote_number}</strong></p>"
    )
    return subject, body


class Notifier:
    """Best-effort confirmation mail. Never raises into the caller."""

    def __init__(self, transport: Optional[MailTransport], company_name: str):
        self.transport = transport
        self.company_name = company_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "Notifier":
        if not settings.mail_enabled:
            logger.warning("Mail API not configured; confirmation emails are disabled")
            return cls(None, settings.COMPANY_NAME)
        transport = HttpMailTransport(
            api_url=settings.MAIL_API_URL,
            api_key=settings.EMAIL_PASS,
            sender=settings.EMAIL_USER,
            timeout=settings.MAIL_TIMEOUT_SECONDS,
        )
        return cls(transport, settings.COMPANY_NAME)

    @staticmethod
    def recipient_for(quote: Quote) -> str:
        return quote.email or quote.phone

    async def send_confirmation(self, quote: Quote) -> bool:
        if self.transport is None:
            logger.info(f"Skipping confirmation email for {quote.quote_number}: no mail transport")
            return False

        subject, body = build_confirmation(quote, self.company_name)
        try:
            await self.transport.send(self.recipient_for(quote), subject, body)
        except Exception as e:
            logger.error(f"Confirmation email for {quote.quote_number} failed: {e}")
            return False

        logger.info(f"Confirmation email sent for {quote.quote_number}")
        return True

    async def aclose(self) -> None:
        if self.transport is not None:
            await self.transport.aclose()
