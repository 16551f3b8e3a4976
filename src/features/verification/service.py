"""SMS verification provider (Twilio Verify v2 over HTTP)."""

import logging
from typing import Protocol

import httpx

from .exceptions import VerificationProviderError, VerificationSendFailed

logger = logging.getLogger(__name__)


class SmsVerifier(Protocol):
    """Sends and checks one-time codes for a phone number."""

    async def send_code(self, phone_number: str) -> None: ...

    async def check_code(self, phone_number: str, code: str) -> bool: ...


class TwilioVerificationService:
    """Twilio Verify client bound to a single Verify service SID.

    One instance per flow (registration, password recovery), each with its
    own service SID so codes from one flow cannot satisfy the other.
    """

    def __init__(
        self,
        *,
        account_sid: str,
        auth_token: str,
        service_sid: str,
        base_url: str = "https://verify.twilio.com/v2",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not (account_sid and auth_token and service_sid):
            raise ValueError("Twilio account SID, auth token and service SID are required")
        self._auth = httpx.BasicAuth(account_sid, auth_token)
        self._service_url = f"{base_url.rstrip('/')}/Services/{service_sid}"
        self._timeout = timeout
        self._transport = transport

    async def _post(self, path: str, data: dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(
            auth=self._auth, timeout=self._timeout, transport=self._transport, follow_redirects=False
        ) as client:
            try:
                return await client.post(f"{self._service_url}/{path}", data=data)
            except httpx.HTTPError as err:
                logger.error(f"Twilio request to {path} failed: {err}")
                raise VerificationProviderError(str(err)) from err

    @staticmethod
    def _status(response: httpx.Response) -> str | None:
        try:
            return response.json().get("status")
        except (ValueError, AttributeError) as err:
            logger.error(f"Twilio returned an unreadable body: HTTP {response.status_code}")
            raise VerificationProviderError("unreadable provider response") from err

    async def send_code(self, phone_number: str) -> None:
        response = await self._post("Verifications", {"To": phone_number, "Channel": "sms"})
        if response.is_error:
            logger.error(f"Twilio rejected verification for {phone_number}: HTTP {response.status_code}")
            raise VerificationProviderError(f"HTTP {response.status_code}")

        status = self._status(response)
        if status != "pending":
            raise VerificationSendFailed(f"Failed to send verification code to {phone_number}. Twilio status: {status}")

    async def check_code(self, phone_number: str, code: str) -> bool:
        response = await self._post("VerificationCheck", {"To": phone_number, "Code": code})
        # 404: no pending verification for this number (expired or already approved)
        if response.status_code == 404:
            return False
        if response.is_error:
            logger.error(f"Twilio verification check failed for {phone_number}: HTTP {response.status_code}")
            raise VerificationProviderError(f"HTTP {response.status_code}")

        return self._status(response) == "approved"
