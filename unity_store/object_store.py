"""object_store.py — Typed whole-object access to the S3 bucket.

Missing keys surface as ``NotFoundError`` (matched on the botocore error
code, never on message text); every other failure is a ``StoreError``.
There is no caching and no conditional write: concurrent writers to the
same key are last-writer-wins.
"""
from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from unity_store import config
from unity_store.aws_clients import _get_s3
from unity_store.errors import NotFoundError, StoreError
from unity_store.serialization import _emit_structured_observability, _json_dumps

__all__ = [
    "delete_object",
    "get_json",
    "get_object_bytes",
    "get_object_text",
    "list_objects",
    "put_json",
    "put_object",
]

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


def _bucket() -> str:
    if not config.S3_BUCKET:
        raise StoreError("Missing environment variable: AWS_BUCKET_NAME")
    return config.S3_BUCKET


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "") or "")


def _observe(event: str, key: str, started: float, error_code: str = "", **extra: Any) -> None:
    _emit_structured_observability(
        component="object_store",
        event=event,
        key=key,
        latency_ms=int((time.monotonic() - started) * 1000),
        error_code=error_code,
        extra=extra or None,
    )


def get_object_bytes(key: str) -> bytes:
    s3 = _get_s3()
    started = time.monotonic()
    try:
        resp = s3.get_object(Bucket=_bucket(), Key=key)
        body = resp["Body"].read()
    except ClientError as exc:
        code = _error_code(exc)
        _observe("get_object", key, started, error_code=code)
        if code in _NOT_FOUND_CODES:
            raise NotFoundError(key) from exc
        raise StoreError(str(exc), key=key, code=code) from exc
    except BotoCoreError as exc:
        _observe("get_object", key, started, error_code="BotoCoreError")
        raise StoreError(str(exc), key=key) from exc
    _observe("get_object", key, started, size=len(body))
    return body


def get_object_text(key: str) -> str:
    body = get_object_bytes(key)
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise StoreError(f"Stored object is not valid UTF-8: {exc}", key=key, code="InvalidEncoding") from exc


def get_json(key: str) -> Dict[str, Any]:
    """Read and decode a JSON object document. Empty body decodes to ``{}``."""
    text = get_object_text(key)
    if not text.strip():
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StoreError(f"Stored object is not valid JSON: {exc}", key=key, code="InvalidJson") from exc
    if not isinstance(parsed, dict):
        raise StoreError("Stored JSON document must be an object", key=key, code="InvalidJson")
    return parsed


def put_object(key: str, body: bytes, content_type: str) -> None:
    s3 = _get_s3()
    started = time.monotonic()
    try:
        s3.put_object(Bucket=_bucket(), Key=key, Body=body, ContentType=content_type)
    except ClientError as exc:
        code = _error_code(exc)
        _observe("put_object", key, started, error_code=code)
        raise StoreError(str(exc), key=key, code=code) from exc
    except BotoCoreError as exc:
        _observe("put_object", key, started, error_code="BotoCoreError")
        raise StoreError(str(exc), key=key) from exc
    _observe("put_object", key, started, size=len(body))


def put_json(key: str, value: Dict[str, Any]) -> None:
    put_object(key, _json_dumps(value).encode("utf-8"), JSON_CONTENT_TYPE)


def delete_object(key: str) -> None:
    """Delete ``key``. Deleting a key that does not exist is not an error."""
    s3 = _get_s3()
    started = time.monotonic()
    try:
        s3.delete_object(Bucket=_bucket(), Key=key)
    except ClientError as exc:
        code = _error_code(exc)
        _observe("delete_object", key, started, error_code=code)
        if code in _NOT_FOUND_CODES:
            return
        raise StoreError(str(exc), key=key, code=code) from exc
    except BotoCoreError as exc:
        _observe("delete_object", key, started, error_code="BotoCoreError")
        raise StoreError(str(exc), key=key) from exc
    _observe("delete_object", key, started)


def list_objects(prefix: str, delimiter: Optional[str] = None, max_keys: Optional[int] = None) -> Dict[str, Any]:
    """Single ``list_objects_v2`` page; continuation tokens are not followed."""
    s3 = _get_s3()
    kwargs: Dict[str, Any] = {
        "Bucket": _bucket(),
        "Prefix": prefix,
        "MaxKeys": int(max_keys or config.LIST_MAX_KEYS),
    }
    if delimiter:
        kwargs["Delimiter"] = delimiter
    started = time.monotonic()
    try:
        resp = s3.list_objects_v2(**kwargs)
    except ClientError as exc:
        code = _error_code(exc)
        _observe("list_objects", prefix, started, error_code=code)
        raise StoreError(str(exc), key=prefix, code=code) from exc
    except BotoCoreError as exc:
        _observe("list_objects", prefix, started, error_code="BotoCoreError")
        raise StoreError(str(exc), key=prefix) from exc
    _observe("list_objects", prefix, started, count=len(resp.get("Contents") or []))
    return resp
