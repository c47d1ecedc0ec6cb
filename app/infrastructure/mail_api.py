"""HTTP mail relay client — delivers password reset links out of band.

The relay is any JSON endpoint accepting {from, to, subject, text}; an empty
MAIL_API_URL disables delivery.
"""

import asyncio

import httpx
import structlog

from app.config import get_settings

logger = structlog.get_logger(__name__)


class MailAPIClient:
    """Thin async client for the transactional mail relay."""

    def __init__(self):
        settings = get_settings()
        self.url = settings.MAIL_API_URL
        self.sender = settings.MAIL_FROM
        self.headers = {"Content-Type": "application/json"}
        if settings.MAIL_API_KEY:
            self.headers["Authorization"] = f"Bearer {settings.MAIL_API_KEY}"
        self.max_retries = 3
        self.retry_delay = 2  # seconds, doubled per attempt
        self.timeout = 15

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, to: str, subject: str, text: str) -> bool:
        """Send one message; True once the relay accepts it."""
        if not self.enabled:
            logger.warning("Mail relay not configured, message not sent", to=to, subject=subject)
            return False

        payload = {"from": self.sender, "to": to, "subject": subject, "text": text}

        for attempt in range(1, self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=self.headers)
                    response.raise_for_status()
                logger.info("Mail sent", to=to, subject=subject, attempt=attempt)
                return True
            except httpx.HTTPStatusError as e:
                logger.warning(
                    "Mail relay rejected message",
                    to=to,
                    attempt=attempt,
                    status_code=e.response.status_code,
                    body=e.response.text[:200],
                )
                if e.response.status_code < 500 and e.response.status_code != 429:
                    return False
            except httpx.HTTPError as e:
                logger.warning("Mail relay unreachable", to=to, attempt=attempt, error=str(e))

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * 2 ** (attempt - 1))

        logger.error("Mail delivery failed", to=to, subject=subject, attempts=self.max_retries)
        return False

    async def send_password_reset(self, to: str, reset_link: str, expires_minutes: int) -> bool:
        text = (
            "An administrator has reset the password for your Tract Library account.\n\n"
            f"Choose a new password here (valid for {expires_minutes} minutes):\n{reset_link}\n\n"
            "If you did not expect this message you can ignore it."
        )
        return await self.send(to, "Reset your Tract Library password", text)
