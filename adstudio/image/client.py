"""Gemini image-provider HTTP client.

Processing flow:
    1. Resolve the Gemini API key from `adstudio.llm.provider_config`.
    2. Submit one JSON `generateContent` payload to the tier's model endpoint.
    3. Classify any failure into the typed taxonomy of `image.errors`.
    4. Return the first inline image of the first candidate as a data URL.

Base64 handling:
    - Outgoing payloads are data URLs; `split_data_url` strips the metadata prefix
      so only the base64 body and media type go on the wire.
    - Incoming inline data is wrapped back into a data URL.

Error handling strategy:
    - Missing key -> `AuthenticationError` (the provider would reject it anyway).
    - 401/403 or permission-style messages -> `AuthenticationError`.
    - 200 without image data -> `EmptyResponseError`.
    - Everything else -> `ProviderError`.
    No retry is attempted here; batch-level policy lives in `image.batch`.

Performance characteristics:
    - One `httpx.AsyncClient` per call; calls of one chunk run concurrently on the
      shared event loop.
    - The only timeout is the transport timeout (`IMAGE_TIMEOUT_SECONDS`).
"""

import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from adstudio.image.errors import (
    AuthenticationError,
    EmptyResponseError,
    ProviderError,
    classify_provider_failure,
)
from adstudio.llm.provider_config import (
    GEMINI_KEY_FILE,
    GEMINI_URL_TEMPLATE,
    IMAGE_TIMEOUT_SECONDS,
    load_gemini_key,
)


logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"


def split_data_url(payload: str) -> Tuple[str, str]:
    """Split a payload into `(mime_type, base64_body)`.

    Bare base64 strings (no `data:` header) are returned with the default media
    type.
    """
    if "," not in payload:
        return DEFAULT_MIME_TYPE, payload

    header, body = payload.split(",", 1)
    mime_type = DEFAULT_MIME_TYPE
    if header.startswith("data:"):
        declared = header[len("data:"):].split(";", 1)[0].strip()
        if declared:
            mime_type = declared
    return mime_type, body


def inline_part(payload: str) -> Dict[str, Any]:
    """Wrap one image payload as a `generateContent` inline-data part."""
    mime_type, data = split_data_url(payload)
    return {"inlineData": {"mimeType": mime_type, "data": data}}


def extract_image_data_url(data: Dict[str, Any]) -> Optional[str]:
    """Return the first inline image of the first candidate, or `None`."""
    candidates = data.get("candidates") or []
    if not candidates:
        return None

    content = candidates[0].get("content") or {}
    for part in content.get("parts") or []:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or DEFAULT_MIME_TYPE
            return f"data:{mime_type};base64,{inline['data']}"

    return None


def _error_message(response: httpx.Response) -> str:
    """Best-effort provider error text from a non-200 response."""
    try:
        body = response.json()
    except ValueError:
        return response.text

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text


async def send_image_request(
    payload: Dict[str, Any],
    model: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Send one image-generation request and return the produced image.

    Args:
        payload: `generateContent` JSON body built by `image.service`.
        model: Provider model name for the request tier.
        transport: Optional httpx transport override.

    Returns:
        Image payload as `data:<mime>;base64,<data>`.

    Raises:
        AuthenticationError: Missing key, 401/403, or permission rejection.
        EmptyResponseError: Provider answered without image data.
        ProviderError: Transport failure or other provider rejection.
    """
    api_key = load_gemini_key()
    if not api_key:
        raise AuthenticationError(f"Gemini API key missing or empty: {GEMINI_KEY_FILE}")

    url = GEMINI_URL_TEMPLATE.format(model=model)
    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient(
            timeout=IMAGE_TIMEOUT_SECONDS,
            transport=transport,
        ) as client:
            response = await client.post(url, headers=headers, json=payload)
    except httpx.RequestError as exc:
        raise classify_provider_failure(None, str(exc) or type(exc).__name__) from exc

    if response.status_code != 200:
        raise classify_provider_failure(response.status_code, _error_message(response))

    try:
        data = response.json()
    except ValueError as exc:
        raise ProviderError("Image provider returned a non-JSON body") from exc

    image = extract_image_data_url(data if isinstance(data, dict) else {})
    if not image:
        raise EmptyResponseError("EMPTY_RESPONSE", {"model": model})

    return image
