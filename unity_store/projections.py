"""projections.py — Saved compound-interest calculator projections.

Key: ``[prefix/]projections/{tenant}/{projectionId}.json``
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from unity_store import config
from unity_store.config import logger
from unity_store.errors import NotFoundError, StoreError, ValidationError
from unity_store.keys import category_root, derive_key, id_from_key, is_safe_id, require_safe_id
from unity_store.listing import list_folder, sort_newest_first
from unity_store.object_store import get_json, put_json
from unity_store.serialization import _new_id, _now_z

__all__ = [
    "PROJECTION_KIND",
    "get_projection",
    "list_projections",
    "projection_key",
    "save_projection",
]

PROJECTION_KIND = "compound_interest_v1"

_INPUT_FIELDS = ("initialDeposit", "monthlyContribution", "annualRatePct", "years")
_RESULT_FIELDS = ("totalBalance", "totalPrincipal", "totalInterest")
_SERIES_FIELDS = ("month", "balance", "principal", "interest")


def projection_key(tenant: str, projection_id: str) -> str:
    require_safe_id(projection_id)
    return derive_key(config.CATEGORY_PROJECTIONS, tenant, f"{projection_id}.json")


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _numeric_block(raw: Any, fields) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    return {f: _number(raw.get(f)) for f in fields}


def _series(raw: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(raw, list):
        return None
    if len(raw) > config.MAX_PROJECTION_SERIES:
        raise ValidationError(
            "invalid_projection",
            f"Series exceeds {config.MAX_PROJECTION_SERIES} points.",
        )
    return [_numeric_block(point, _SERIES_FIELDS) for point in raw if isinstance(point, dict)]


def save_projection(tenant: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Store a projection; a supplied safe ``id`` updates that projection in place."""
    requested_id = payload.get("id") or None
    if requested_id is not None and not is_safe_id(requested_id):
        raise ValidationError("invalid_id", "Projection id is not a safe identifier.")
    projection_id = requested_id or _new_id()
    key = projection_key(tenant, projection_id)

    created_at: Optional[str] = None
    if requested_id:
        try:
            existing = get_json(key)
            value = existing.get("createdAt")
            created_at = value if isinstance(value, str) and value else None
        except NotFoundError:
            created_at = None
        except StoreError as exc:
            logger.warning("save_projection: existing projection unreadable at %s: %s", key, exc)

    now = _now_z()
    projection = {
        "id": projection_id,
        "userId": tenant,
        "kind": PROJECTION_KIND,
        "createdAt": created_at or now,
        "updatedAt": now,
        "inputs": _numeric_block(payload.get("inputs"), _INPUT_FIELDS),
        "results": _numeric_block(payload.get("results"), _RESULT_FIELDS),
        "series": _series(payload.get("series")),
    }
    put_json(key, projection)
    return {"id": projection_id, "key": key, "projection": projection}


def get_projection(tenant: str, projection_id: str) -> Dict[str, Any]:
    """Raises ``NotFoundError`` when the projection does not exist."""
    doc = get_json(projection_key(tenant, projection_id))
    doc["id"] = projection_id
    doc.setdefault("kind", PROJECTION_KIND)
    for field in ("inputs", "results", "series", "createdAt", "updatedAt"):
        doc.setdefault(field, None)
    return doc


def list_projections(tenant: str) -> Dict[str, Any]:
    """Projection keys under the tenant's prefix, newest object first (no bodies)."""
    listing = list_folder(category_root(config.CATEGORY_PROJECTIONS, tenant))
    items = []
    for obj in listing.files:
        projection_id = id_from_key(obj.key)
        if projection_id is None:
            continue
        items.append({
            "id": projection_id,
            "key": obj.key,
            "size": obj.size,
            "lastModified": obj.lastModified,
        })
    return {"projections": sort_newest_first(items), "truncated": listing.truncated}
