"""SMS delivery channels."""

from __future__ import annotations

import abc

import aiohttp
import structlog

from access_notifier.core.config import TwilioConfig
from access_notifier.notify.exceptions import DispatchError

logger = structlog.get_logger(__name__)


class SmsChannel(abc.ABC):
    """Base class for "send text to phone number" providers."""

    @abc.abstractmethod
    async def send(self, phone: str, body: str) -> bool:
        """Send *body* to *phone*. Returns True on success."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class TwilioSmsChannel(SmsChannel):
    """Delivers SMS through the Twilio Messages REST API."""

    def __init__(self, config: TwilioConfig) -> None:
        self._account_sid = config.account_sid
        self._auth_token = config.auth_token.get_secret_value()
        self._from_number = config.from_number
        self._base_url = config.base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    @property
    def configured(self) -> bool:
        return bool(self._account_sid and self._auth_token and self._from_number)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def send(self, phone: str, body: str) -> bool:
        if not self.configured:
            raise DispatchError("Twilio credentials or sender number not configured")

        url = f"{self._base_url}/2010-04-01/Accounts/{self._account_sid}/Messages.json"
        form = {"From": self._from_number, "To": phone, "Body": body}
        auth = aiohttp.BasicAuth(self._account_sid, self._auth_token)

        try:
            session = self._get_session()
            async with session.post(url, data=form, auth=auth) as resp:
                if 200 <= resp.status < 300:
                    return True
                text = await resp.text()
                logger.warning(
                    "twilio_send_failed",
                    to=phone,
                    status=resp.status,
                    body=text[:200],
                )
                return False
        except Exception:
            logger.exception("twilio_send_error", to=phone)
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
