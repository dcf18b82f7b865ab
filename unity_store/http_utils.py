"""http_utils.py — HTTP response building, body parsing, path/method extraction."""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict, Tuple

from unity_store import config
from unity_store.errors import ValidationError

__all__ = [
    "_cors_headers",
    "_error",
    "_json_body",
    "_path_method",
    "_query",
    "_response",
]

# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

_DEFAULT_CODES = {
    400: "invalid_input",
    401: "permission_denied",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


def _cors_headers() -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": config.CORS_ORIGIN,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Cookie, X-Unity-Internal-Key, X-Unity-Tenant",
        "Access-Control-Allow-Credentials": "true",
    }


def _response(status_code: int, payload: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {**_cors_headers(), "Content-Type": "application/json", "Cache-Control": "no-store"},
        "body": json.dumps(payload, default=str),
    }


def _error(status_code: int, message: str, **extra: Any) -> Dict[str, Any]:
    code = str(extra.pop("code", "") or "").strip()
    if not code:
        code = _DEFAULT_CODES.get(status_code, "internal_error")
    retryable = bool(extra.pop("retryable", status_code >= 500))
    details = dict(extra)
    body: Dict[str, Any] = {
        "success": False,
        "error": message,
        "error_envelope": {
            "code": code,
            "message": message,
            "retryable": retryable,
            "details": details,
        },
    }
    body.update(details)
    return _response(status_code, body)


def _json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Decoded JSON object body; ``{}`` when absent. Malformed bodies raise ``invalid_json``."""
    raw = event.get("body")
    if raw in (None, ""):
        return {}

    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValidationError("invalid_json", f"Invalid base64 body: {exc}") from exc

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("invalid_json", f"Invalid JSON body: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ValidationError("invalid_json", "JSON body must be an object")
    return parsed


def _path_method(event: Dict[str, Any]) -> Tuple[str, str]:
    method = (event.get("requestContext", {}).get("http", {}).get("method") or event.get("httpMethod") or "").upper()
    path = event.get("rawPath") or event.get("path") or "/"
    return method, path


def _query(event: Dict[str, Any]) -> Dict[str, str]:
    return dict(event.get("queryStringParameters") or {})
