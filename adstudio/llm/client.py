"""Gemini text-model transport client.

Architectural role:
    Executes one synchronous `generateContent` request against the optimizer model
    and returns the first text part of the first candidate.

Model invocation flow:
    `service.optimize_prompt` -> `send_request(parts)` -> Gemini REST -> text.

Retry behavior:
    No retry loop is implemented. Each call is attempted once with
    `OPTIMIZER_TIMEOUT_SECONDS`.

Failure handling model:
    Failures raise `RuntimeError` carrying a sanitized, provider-labeled message
    (status code only, never the response body or key). The caller decides how to
    degrade.
"""

import requests

from adstudio.llm.provider_config import (
    GEMINI_URL_TEMPLATE,
    OPTIMIZER_MODEL,
    OPTIMIZER_TIMEOUT_SECONDS,
    load_gemini_key,
)


def _build_sanitized_http_error(err: requests.exceptions.RequestException) -> str:
    """Build provider-labeled HTTP error text without exposing raw internals."""
    status_code = None
    if getattr(err, "response", None) is not None:
        status_code = getattr(err.response, "status_code", None)

    if status_code:
        return f"GEMINI HTTP ERROR ({status_code})"
    return "GEMINI HTTP ERROR"


def send_request(parts: list, model: str = OPTIMIZER_MODEL) -> str:
    """Send one multimodal text-generation request.

    Args:
        parts: Ordered `generateContent` parts (inline images and text).
        model: Text model name.

    Returns:
        Trimmed response text; `""` when the model returned no text part.

    Raises:
        RuntimeError: Missing key or any HTTP/transport failure.
    """
    api_key = load_gemini_key()
    if not api_key:
        raise RuntimeError("GEMINI KEY FILE NOT FOUND")

    url = GEMINI_URL_TEMPLATE.format(model=model)
    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }
    payload = {
        "contents": [{"role": "user", "parts": parts}],
    }

    try:
        response = requests.post(
            url,
            headers=headers,
            json=payload,
            timeout=OPTIMIZER_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as err:
        raise RuntimeError(_build_sanitized_http_error(err)) from err

    candidates = data.get("candidates") or []
    if not candidates:
        return ""

    for part in (candidates[0].get("content") or {}).get("parts") or []:
        text = part.get("text")
        if text:
            return text.strip()

    return ""
