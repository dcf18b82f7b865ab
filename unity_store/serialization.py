"""serialization.py — Timestamps, id generation, JSON encoding, observability lines."""
from __future__ import annotations

import datetime as dt
import json
import secrets
import time
from typing import Any, Dict, Optional

from unity_store.config import logger

__all__ = [
    "_emit_structured_observability",
    "_iso",
    "_json_dumps",
    "_new_id",
    "_now_z",
    "_parse_ts",
]

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _iso(value: dt.datetime) -> str:
    """Format an aware (or naive UTC) datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if value.tzinfo is not None:
        value = value.astimezone(dt.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _now_z() -> str:
    """Current UTC timestamp in ISO 8601 format with millisecond precision."""
    return _iso(dt.datetime.now(dt.timezone.utc))


def _parse_ts(value: Any) -> float:
    """Epoch seconds for an ISO timestamp string; 0.0 when missing or malformed."""
    if not isinstance(value, str) or not value.strip():
        return 0.0
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(raw)
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.timestamp()


def _to_base36(value: int) -> str:
    if value <= 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def _new_id() -> str:
    """Time-ordered, path-safe id: base36 epoch millis + random suffix."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return f"{_to_base36(int(time.time() * 1000))}-{suffix}"


def _json_dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def _emit_structured_observability(
    *,
    component: str,
    event: str,
    key: Optional[str] = None,
    latency_ms: Optional[int] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    payload: Dict[str, Any] = {
        "timestamp": _now_z(),
        "component": component,
        "event": event,
        "key": str(key or ""),
        "latency_ms": int(max(0, latency_ms or 0)),
        "error_code": str(error_code or ""),
    }
    if extra:
        payload.update(extra)
    logger.info("[OBSERVABILITY] %s", json.dumps(payload, sort_keys=True, default=str))
