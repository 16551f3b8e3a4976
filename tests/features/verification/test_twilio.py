"""Tests for the Twilio Verify client using a mocked HTTP transport."""

import httpx
import pytest

from src.features.auth.recovery import PasswordRecoveryService
from src.features.verification.exceptions import VerificationProviderError, VerificationSendFailed
from src.features.verification.service import TwilioVerificationService


def _service(handler) -> TwilioVerificationService:
    return TwilioVerificationService(
        account_sid="ACtest",
        auth_token="secret",
        service_sid="VAtest",
        transport=httpx.MockTransport(handler),
    )


class TestSendCode:
    async def test_pending_status_is_success(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"status": "pending"})

        await _service(handler).send_code("+56912345678")

        request = seen[0]
        assert request.url.path == "/v2/Services/VAtest/Verifications"
        assert request.headers["Authorization"].startswith("Basic ")
        assert b"To=%2B56912345678" in request.content
        assert b"Channel=sms" in request.content

    async def test_non_pending_status_raises_send_failed(self):
        service = _service(lambda request: httpx.Response(201, json={"status": "canceled"}))
        with pytest.raises(VerificationSendFailed):
            await service.send_code("+56912345678")

    async def test_http_error_raises_provider_error(self):
        service = _service(lambda request: httpx.Response(503))
        with pytest.raises(VerificationProviderError):
            await service.send_code("+56912345678")

    async def test_network_error_raises_provider_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(VerificationProviderError):
            await _service(handler).send_code("+56912345678")


class TestCheckCode:
    async def test_approved(self):
        service = _service(lambda request: httpx.Response(200, json={"status": "approved"}))
        assert await service.check_code("+56912345678", "123456") is True

    async def test_pending_means_wrong_code(self):
        service = _service(lambda request: httpx.Response(200, json={"status": "pending"}))
        assert await service.check_code("+56912345678", "000000") is False

    async def test_missing_verification_is_not_approved(self):
        service = _service(lambda request: httpx.Response(404, json={"code": 20404}))
        assert await service.check_code("+56912345678", "123456") is False

    async def test_server_error_raises_provider_error(self):
        service = _service(lambda request: httpx.Response(500))
        with pytest.raises(VerificationProviderError):
            await service.check_code("+56912345678", "123456")


class TestConfiguration:
    @pytest.mark.parametrize("missing", ["account_sid", "auth_token", "service_sid"])
    def test_missing_credentials_are_rejected(self, missing):
        options = {"account_sid": "ACtest", "auth_token": "secret", "service_sid": "VAtest"}
        options[missing] = ""
        with pytest.raises(ValueError):
            TwilioVerificationService(**options)


class TestUnreadableResponses:
    @pytest.mark.parametrize("body", [b"<html>gateway</html>", b'["not", "an", "object"]'])
    async def test_send_with_unreadable_body_raises_provider_error(self, body):
        service = _service(lambda request: httpx.Response(201, content=body))
        with pytest.raises(VerificationProviderError):
            await service.send_code("+56912345678")

    async def test_check_with_unreadable_body_raises_provider_error(self):
        service = _service(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(VerificationProviderError):
            await service.check_code("+56912345678", "123456")

    async def test_recovery_request_hides_unreadable_body(self, store, tokens, make_user):
        await make_user(phone_number="+56912345678")
        service = _service(lambda request: httpx.Response(201, content=b"not json"))
        recovery = PasswordRecoveryService(store, service, tokens)

        assert await recovery.request_reset("+56912345678") is None
