"""Typed failure taxonomy for image-provider calls.

Classification model:
    - Authentication failure: provider rejected the credentials. Aborts a batch.
    - Empty response: call finished without image data. Ordinary per-call failure.
    - Provider/transport failure: anything else. Ordinary per-call failure.

Boundary rule:
    Status-code and message inspection happens only in `classify_provider_failure`,
    called by the transport adapter (`image.client`). Orchestration code matches on
    exception types, never on message text.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ImageGenerationErrorCode(str, Enum):
    """Stable codes surfaced to adapters (CLI/HTTP)."""

    AUTH_ERROR = "AUTH_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    PROVIDER_ERROR = "PROVIDER_ERROR"


class ImageGenerationError(RuntimeError):
    """Base error for a failed image-provider call."""

    code = ImageGenerationErrorCode.PROVIDER_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.context = context or {}


class AuthenticationError(ImageGenerationError):
    """Provider rejected the call as unauthorized or forbidden."""

    code = ImageGenerationErrorCode.AUTH_ERROR


class EmptyResponseError(ImageGenerationError):
    """Provider answered without any image data."""

    code = ImageGenerationErrorCode.EMPTY_RESPONSE


class ProviderError(ImageGenerationError):
    """Transport failure or non-auth provider rejection."""

    code = ImageGenerationErrorCode.PROVIDER_ERROR


_AUTH_STATUS_CODES = (401, 403)
_AUTH_MARKERS = ("permission", "401", "403")


def classify_provider_failure(
    status_code: Optional[int],
    message: str,
) -> ImageGenerationError:
    """Map a raw provider failure onto the typed taxonomy.

    Args:
        status_code: HTTP status when one was received, else `None`.
        message: Provider error text or transport exception text.

    Returns:
        `AuthenticationError` for 401/403 statuses or permission-style messages,
        otherwise `ProviderError`. The error is returned, not raised.
    """
    context = {"status_code": status_code} if status_code is not None else {}

    if status_code in _AUTH_STATUS_CODES:
        return AuthenticationError(message or f"HTTP {status_code}", context)

    lowered = (message or "").lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AuthenticationError(message, context)

    if status_code is not None:
        return ProviderError(f"Image request failed with status {status_code}: {message}", context)

    return ProviderError(message or "Image request failed", context)
