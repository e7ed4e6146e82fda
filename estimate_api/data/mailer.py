import logging
from typing import List
from .base import Mailer, MailMessage
from ..core.config import settings
from ..core.errors import UpstreamError
import httpx

logger = logging.getLogger(__name__)

class LogMailer(Mailer):
    """
    Development mailer: writes the message to the log and keeps a copy.
    """
    def __init__(self):
        self.sent: List[MailMessage] = []

    async def send(self, message: MailMessage) -> None:
        self.sent.append(message)
        logger.info("mail (not sent): %s", message.subject)

class ResendMailer(Mailer):
    """
    Sends plain-text mail through the Resend HTTP API.
    """
    API_URL = "https://api.resend.com/emails"

    def __init__(self, api_key: str, sender: str, recipient: str,
                 timeout: float = settings.HTTP_TIMEOUT_SECONDS, transport=None):
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient
        self.timeout = timeout
        self.transport = transport

    async def send(self, message: MailMessage) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(
                    self.API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"from": self.sender, "to": self.recipient,
                          "subject": message.subject, "text": message.text},
                )
                r.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamError("mail provider unavailable") from exc

def mailer() -> Mailer:
    if settings.MAIL_PROVIDER == "resend" and settings.RESEND_API_KEY:
        return ResendMailer(settings.RESEND_API_KEY, settings.MAIL_FROM, settings.MAIL_TO)
    return LogMailer()
