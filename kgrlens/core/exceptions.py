"""Custom exception classes for the application."""

from typing import Any

RATE_LIMIT_MARKER = "rate_limit_exceeded"


class KGRLensError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# External API Errors
class ExternalAPIError(KGRLensError):
    """Error calling external API."""

    def __init__(self, api_name: str, message: str) -> None:
        self.api_name = api_name
        super().__init__(f"{api_name} API error: {message}")


class APIKeyMissingError(ExternalAPIError):
    """API key not configured."""

    def __init__(self, api_name: str, what: str = "API key") -> None:
        super().__init__(api_name, f"{what} not configured")


# LLM Errors
class LLMProviderError(ExternalAPIError):
    """Chat-completion or model-listing call rejected by the LLM provider."""

    def __init__(
        self,
        api_name: str,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        detail = f"{message} ({code})" if code else message
        if status_code is not None:
            detail = f"{status_code} - {detail}"
        super().__init__(api_name, detail)


class RateLimitExceededError(LLMProviderError):
    """Provider asked us to slow down (HTTP 429 or a rate-limit error code)."""

    def __init__(
        self,
        api_name: str,
        message: str = "Rate limit exceeded",
        *,
        status_code: int | None = 429,
        code: str | None = RATE_LIMIT_MARKER,
    ) -> None:
        super().__init__(api_name, message, status_code=status_code, code=code or RATE_LIMIT_MARKER)


class LLMResponseError(KGRLensError):
    """LLM returned an empty or malformed analysis payload."""

    pass


# SERP Errors
class SerpAPIError(KGRLensError):
    """SERP provider call failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = True,
    ) -> None:
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(
            message,
            details={"status_code": status_code, "retryable": retryable},
        )


class SerpQuotaExceededError(SerpAPIError):
    """Not enough SERP credits left to run the request."""

    def __init__(self, message: str = "No SERP API credits remaining") -> None:
        super().__init__(message, status_code=429, retryable=False)
