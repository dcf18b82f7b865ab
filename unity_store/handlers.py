"""handlers.py — HTTP route handlers.

Each handler takes the API Gateway event and the authenticated tenant and
returns a response dict. Validation, not-found and store errors raised by
the services propagate to ``lambda_function`` where they are mapped to
responses; handlers only deal with request shape.
"""
from __future__ import annotations

from typing import Any, Dict

from unity_store import config
from unity_store.contacts import get_contacts, save_contacts
from unity_store.http_utils import _json_body, _query, _response
from unity_store.keys import files_root, require_safe_key
from unity_store.listing import list_tenant_files
from unity_store.notes import delete_note, get_note, list_notes, save_note
from unity_store.object_store import delete_object
from unity_store.onboarding import get_tour_status, mark_tour
from unity_store.presign import issue_download_url, issue_upload_url
from unity_store.projections import get_projection, list_projections, save_projection

__all__ = [
    "_handle_contacts_get",
    "_handle_contacts_save",
    "_handle_files_delete",
    "_handle_files_list",
    "_handle_files_presign",
    "_handle_files_presign_get",
    "_handle_notes_delete",
    "_handle_notes_get",
    "_handle_notes_list",
    "_handle_notes_save",
    "_handle_projections_get",
    "_handle_projections_list",
    "_handle_projections_save",
    "_handle_tour_get",
    "_handle_tour_post",
]


def _str_field(body: Dict[str, Any], name: str) -> str:
    value = body.get(name)
    return value.strip() if isinstance(value, str) else ""


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def _handle_files_list(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    folder = _query(event).get("folder")
    return _response(200, list_tenant_files(tenant, config.DEFAULT_FOLDER if folder is None else folder))


def _handle_files_presign(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    body = _json_body(event)
    issued = issue_upload_url(
        config.CATEGORY_FILES,
        tenant,
        _str_field(body, "fileName") or "file",
        _str_field(body, "contentType"),
        folder=_str_field(body, "folder") or config.DEFAULT_FOLDER,
    )
    return _response(200, issued)


def _handle_files_presign_get(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    body = _json_body(event)
    issued = issue_download_url(
        _str_field(body, "key"),
        _str_field(body, "disposition") or None,
        root=files_root(tenant),
    )
    return _response(200, issued)


def _handle_files_delete(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    body = _json_body(event)
    key = require_safe_key(_str_field(body, "key"), files_root(tenant))
    delete_object(key)
    return _response(200, {"ok": True, "key": key})


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


def _handle_notes_list(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    return _response(200, list_notes(tenant))


def _handle_notes_get(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    note_id = str(_query(event).get("id") or "").strip()
    return _response(200, {"note": get_note(tenant, note_id)})


def _handle_notes_save(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    body = _json_body(event)
    saved = save_note(tenant, _str_field(body, "id"), body.get("content"), body.get("title"))
    return _response(200, {"ok": True, **saved})


def _handle_notes_delete(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    body = _json_body(event)
    deleted = delete_note(tenant, _str_field(body, "id"))
    return _response(200, {"ok": True, **deleted})


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------


def _handle_contacts_get(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    return _response(200, {"ok": True, **get_contacts(tenant)})


def _handle_contacts_save(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    body = _json_body(event)
    saved = save_contacts(tenant, body.get("contacts"))
    return _response(200, {"ok": True, **saved})


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


def _handle_projections_save(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    saved = save_projection(tenant, _json_body(event))
    return _response(200, {"ok": True, "id": saved["id"], "key": saved["key"]})


def _handle_projections_list(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    return _response(200, list_projections(tenant))


def _handle_projections_get(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    projection_id = str(_query(event).get("id") or "").strip()
    return _response(200, {"projection": get_projection(tenant, projection_id)})


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------


def _handle_tour_get(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    return _response(200, {"ok": True, **get_tour_status(tenant)})


def _handle_tour_post(event: Dict[str, Any], tenant: str) -> Dict[str, Any]:
    body = _json_body(event)
    return _response(200, {"ok": True, **mark_tour(tenant, body.get("action"))})
