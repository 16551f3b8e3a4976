"""Verification provider dependencies."""

from functools import lru_cache

from src.config.settings import settings

from .service import SmsVerifier, TwilioVerificationService


def _twilio_service(service_sid: str | None) -> TwilioVerificationService:
    return TwilioVerificationService(
        account_sid=settings.twilio_account_sid or "",
        auth_token=settings.twilio_auth_token or "",
        service_sid=service_sid or "",
        base_url=settings.twilio_base_url,
        timeout=settings.twilio_timeout_seconds,
    )


@lru_cache
def get_register_verifier() -> SmsVerifier:
    """Verifier for the registration flow."""
    return _twilio_service(settings.twilio_register_verify_service_sid)


@lru_cache
def get_recovery_verifier() -> SmsVerifier:
    """Verifier for the password recovery flow."""
    return _twilio_service(settings.twilio_recover_password_verify_service_sid)
