"""contacts.py — Per-tenant contact list kept as a single aggregate document.

Key: ``[prefix/]contacts/{tenant}/contacts.json``
Shape (``kind: contacts_v1``)::

    {"userId", "kind", "contacts": [...], "createdAt", "updatedAt"}

A missing or unreadable document reads as an empty list. Each contact's
``createdAt`` is kept from the stored copy when the client omits it.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from unity_store import config
from unity_store.config import logger
from unity_store.errors import NotFoundError, StoreError, ValidationError
from unity_store.keys import derive_key, is_safe_id
from unity_store.object_store import get_json, put_json
from unity_store.serialization import _now_z

__all__ = [
    "CONTACTS_KIND",
    "contacts_key",
    "get_contacts",
    "normalize_contact",
    "save_contacts",
]

CONTACTS_KIND = "contacts_v1"

# field -> max length
_FIELD_LIMITS = {
    "fullName": 120,
    "role": 80,
    "phone": 60,
    "email": 254,
    "privateNotes": 8000,
}


def contacts_key(tenant: str) -> str:
    return derive_key(config.CATEGORY_CONTACTS, tenant, config.CONTACTS_FILE_NAME)


def _trim(value: Any, limit: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:limit]


def normalize_contact(
    raw: Any,
    now: str,
    previous: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Optional[Dict[str, Any]]:
    """Clean one client-supplied contact; ``None`` when its id is unusable."""
    if not isinstance(raw, dict):
        return None
    contact_id = _trim(raw.get("id"), config.MAX_ID_LENGTH)
    if not is_safe_id(contact_id):
        return None

    contact: Dict[str, Any] = {"id": contact_id}
    for field, limit in _FIELD_LIMITS.items():
        contact[field] = _trim(raw.get(field), limit)
    # Older documents used "name" / "notes".
    if not contact["fullName"]:
        contact["fullName"] = _trim(raw.get("name"), _FIELD_LIMITS["fullName"])
    if not contact["privateNotes"]:
        contact["privateNotes"] = _trim(raw.get("notes"), _FIELD_LIMITS["privateNotes"])

    prior = (previous or {}).get(contact_id) or {}
    contact["createdAt"] = (
        _trim(raw.get("createdAt"), 80)
        or _trim(prior.get("createdAt"), 80)
        or now
    )
    contact["updatedAt"] = now
    return contact


def _read_doc(key: str) -> Optional[Dict[str, Any]]:
    try:
        return get_json(key)
    except NotFoundError:
        return None
    except StoreError as exc:
        logger.warning("contacts: document unreadable at %s, using defaults: %s", key, exc)
        return None


def _stored_contacts(doc: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    items = (doc or {}).get("contacts")
    if not isinstance(items, list):
        return []
    return [c for c in items if isinstance(c, dict)]


def _read_contact(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    contact_id = raw.get("id")
    if not is_safe_id(contact_id):
        return None
    out: Dict[str, Any] = {"id": contact_id}
    for field in _FIELD_LIMITS:
        value = raw.get(field)
        out[field] = value if isinstance(value, str) else ""
    if not out["fullName"] and isinstance(raw.get("name"), str):
        out["fullName"] = raw["name"]
    for field in ("createdAt", "updatedAt"):
        value = raw.get(field)
        out[field] = value if isinstance(value, str) else None
    return out


def get_contacts(tenant: str) -> Dict[str, Any]:
    key = contacts_key(tenant)
    doc = _read_doc(key)
    contacts = [c for c in (_read_contact(raw) for raw in _stored_contacts(doc)) if c]
    updated_at = (doc or {}).get("updatedAt")
    return {
        "key": key,
        "kind": CONTACTS_KIND,
        "updatedAt": updated_at if isinstance(updated_at, str) else None,
        "contacts": contacts,
    }


def save_contacts(tenant: str, raw_contacts: Any) -> Dict[str, Any]:
    if not isinstance(raw_contacts, list):
        raise ValidationError("invalid_contacts", "Field 'contacts' must be an array.")
    if len(raw_contacts) > config.MAX_CONTACTS:
        raise ValidationError("too_many_contacts", f"At most {config.MAX_CONTACTS} contacts are allowed.")

    key = contacts_key(tenant)
    existing = _read_doc(key)
    previous = {c.get("id"): c for c in _stored_contacts(existing) if isinstance(c.get("id"), str)}
    now = _now_z()

    contacts = [
        c for c in (normalize_contact(raw, now, previous) for raw in raw_contacts) if c is not None
    ]
    created_at = (existing or {}).get("createdAt")
    doc = {
        "userId": tenant,
        "kind": CONTACTS_KIND,
        "contacts": contacts,
        "createdAt": created_at if isinstance(created_at, str) and created_at else now,
        "updatedAt": now,
    }
    put_json(key, doc)
    return {"key": key, "updatedAt": now, "count": len(contacts), "contacts": contacts}
