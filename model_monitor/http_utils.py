"""HTTP helpers for reading upstream API responses."""

import httpx


def upstream_error_message(resp: httpx.Response) -> str:
    """Return the structured ``{error: {message}}`` text, else a stable fallback."""
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"].strip():
            return error["message"].strip()
        if isinstance(error, str) and error.strip():
            return error.strip()
        if isinstance(payload.get("message"), str) and payload["message"].strip():
            return payload["message"].strip()
    text = resp.text.strip()
    if text:
        return text[:300]
    return resp.reason_phrase or "Unknown error"


def describe_error(exc: Exception) -> str:
    """Render a failure as text; httpx timeouts often stringify to ''."""
    if isinstance(exc, httpx.TimeoutException):
        detail = str(exc).strip()
        return f"Request timed out ({detail})" if detail else "Request timed out"
    return str(exc).strip() or type(exc).__name__
