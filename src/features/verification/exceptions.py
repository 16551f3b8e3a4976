"""Verification provider exceptions."""


class VerificationProviderError(Exception):
    """Raised when the SMS provider cannot be reached or answers with an error."""


class VerificationSendFailed(VerificationProviderError):
    """Raised when the provider does not accept a code for delivery."""
