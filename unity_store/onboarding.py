"""onboarding.py — Welcome-tour completion state.

Key: ``[prefix/]onboarding/{tenant}/welcome-tour.json``
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from unity_store import config
from unity_store.config import logger
from unity_store.errors import NotFoundError, StoreError
from unity_store.keys import derive_key
from unity_store.object_store import get_json, put_json
from unity_store.serialization import _now_z

__all__ = [
    "TOUR_ACTIONS",
    "get_tour_status",
    "mark_tour",
    "tour_key",
]

TOUR_ACTIONS = ("completed", "skipped")


def tour_key(tenant: str) -> str:
    return derive_key(config.CATEGORY_ONBOARDING, tenant, config.TOUR_FILE_NAME)


def _read(key: str) -> Optional[Dict[str, Any]]:
    try:
        return get_json(key)
    except NotFoundError:
        return None
    except StoreError as exc:
        logger.warning("onboarding: tour state unreadable at %s, treating as unseen: %s", key, exc)
        return None


def get_tour_status(tenant: str) -> Dict[str, Any]:
    doc = _read(tour_key(tenant)) or {}
    version = doc.get("version")
    version = version if isinstance(version, int) and not isinstance(version, bool) else 0
    completed_at = doc.get("completedAt")
    completed_at = completed_at if isinstance(completed_at, str) and completed_at else None
    return {
        "seen": version >= config.TOUR_VERSION and completed_at is not None,
        "version": version,
        "requiredVersion": config.TOUR_VERSION,
        "completedAt": completed_at,
        "action": doc.get("action") if isinstance(doc.get("action"), str) else None,
    }


def mark_tour(tenant: str, action: Any = None) -> Dict[str, Any]:
    chosen = action if action in TOUR_ACTIONS else "completed"
    key = tour_key(tenant)
    existing = _read(key) or {}
    now = _now_z()
    created_at = existing.get("createdAt")
    doc = {
        "userId": tenant,
        "version": config.TOUR_VERSION,
        "action": chosen,
        "completedAt": now,
        "createdAt": created_at if isinstance(created_at, str) and created_at else now,
        "updatedAt": now,
    }
    put_json(key, doc)
    return {
        "seen": True,
        "version": config.TOUR_VERSION,
        "requiredVersion": config.TOUR_VERSION,
        "completedAt": now,
        "action": chosen,
    }
