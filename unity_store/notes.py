"""notes.py — Per-tenant notes stored as one JSON object per note.

Key: ``[prefix/]notes/{tenant}/{noteId}.json``
Shape (``kind: note_v1``)::

    {"id", "title", "content", "createdAt", "updatedAt", "kind"}

``createdAt`` is carried forward from the stored note on every save;
``updatedAt`` is stamped on each write. Titles are derived from the first
non-blank content line when no explicit title is given.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional

from unity_store import config
from unity_store.config import logger
from unity_store.errors import NotFoundError, StoreError, ValidationError
from unity_store.keys import id_from_key, note_key, notes_prefix, require_safe_id
from unity_store.listing import ListedObject, list_folder, sort_newest_first
from unity_store.object_store import delete_object, get_json, put_json
from unity_store.serialization import _now_z
from unity_store.workers import bounded_map

__all__ = [
    "NOTE_KIND",
    "delete_note",
    "get_note",
    "list_notes",
    "note_title_from_content",
    "save_note",
]

NOTE_KIND = "note_v1"
_LINE_BREAK_RE = re.compile(r"\r?\n")


def note_title_from_content(content: Optional[str]) -> str:
    for line in _LINE_BREAK_RE.split(str(content or "")):
        stripped = line.strip()
        if stripped:
            return stripped[: config.MAX_TITLE_LENGTH].strip() or config.NOTE_PLACEHOLDER_TITLE
    return config.NOTE_PLACEHOLDER_TITLE


def _title_of(doc: Dict[str, Any]) -> str:
    title = doc.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()[: config.MAX_TITLE_LENGTH]
    return note_title_from_content(doc.get("content") if isinstance(doc.get("content"), str) else "")


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def get_note(tenant: str, note_id: str) -> Dict[str, Any]:
    """Raises ``NotFoundError`` when the note does not exist."""
    require_safe_id(note_id)
    doc = get_json(note_key(tenant, note_id))
    return {
        "id": note_id,
        "title": _title_of(doc),
        "content": doc.get("content") if isinstance(doc.get("content"), str) else "",
        "createdAt": _str_or_none(doc.get("createdAt")),
        "updatedAt": _str_or_none(doc.get("updatedAt")) or _now_z(),
    }


def _existing_created_at(key: str) -> Optional[str]:
    try:
        existing = get_json(key)
    except NotFoundError:
        return None
    except StoreError as exc:
        logger.warning("save_note: existing note unreadable at %s, treating as new: %s", key, exc)
        return None
    return _str_or_none(existing.get("createdAt"))


def save_note(
    tenant: str,
    note_id: str,
    content: Any,
    title: Any = None,
) -> Dict[str, Any]:
    require_safe_id(note_id)
    text = content if isinstance(content, str) else ""
    if len(text) > config.MAX_NOTE_CONTENT:
        raise ValidationError("notes_too_large", f"Note content exceeds {config.MAX_NOTE_CONTENT} characters.")

    key = note_key(tenant, note_id)
    created_at = _existing_created_at(key)
    now = _now_z()
    if isinstance(title, str) and title.strip():
        final_title = title.strip()[: config.MAX_TITLE_LENGTH]
    else:
        final_title = note_title_from_content(text)

    note = {
        "id": note_id,
        "title": final_title,
        "content": text,
        "createdAt": created_at or now,
        "updatedAt": now,
        "kind": NOTE_KIND,
    }
    put_json(key, note)
    return {"key": key, "note": note}


def delete_note(tenant: str, note_id: str) -> Dict[str, Any]:
    require_safe_id(note_id)
    key = note_key(tenant, note_id)
    delete_object(key)
    return {"id": note_id, "key": key}


def _summary(obj: ListedObject) -> Dict[str, Any]:
    doc = get_json(obj.key)
    return {
        "id": id_from_key(obj.key),
        "key": obj.key,
        "title": _title_of(doc),
        "size": obj.size,
        "createdAt": _str_or_none(doc.get("createdAt")) or obj.lastModified,
        "updatedAt": _str_or_none(doc.get("updatedAt")) or obj.lastModified,
        "lastModified": obj.lastModified,
    }


def _placeholder_summary(obj: ListedObject, _exc: Exception) -> Dict[str, Any]:
    return {
        "id": id_from_key(obj.key),
        "key": obj.key,
        "title": config.NOTE_PLACEHOLDER_TITLE,
        "size": obj.size,
        "createdAt": obj.lastModified,
        "updatedAt": obj.lastModified,
        "lastModified": obj.lastModified,
    }


def list_notes(tenant: str) -> Dict[str, Any]:
    """Summaries of every note under the tenant's prefix, newest first."""
    listing = list_folder(notes_prefix(tenant))
    objects = [f for f in listing.files if id_from_key(f.key) is not None]
    summaries = bounded_map(
        objects,
        _summary,
        _placeholder_summary,
        limit=config.TITLE_FETCH_CONCURRENCY,
    )
    return {"notes": sort_newest_first(summaries), "truncated": listing.truncated}
