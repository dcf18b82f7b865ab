"""client.py — Blocking HTTP client for the document store API.

Mirrors the browser's API helpers: every call sends the session cookie,
decodes the JSON body, and turns a non-2xx response into ``ApiError``
carrying the server's error envelope code.
"""
from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import certifi

from unity_store.auth import TOKEN_COOKIE

__all__ = [
    "ApiError",
    "DocumentStoreClient",
]

_SSL_CONTEXT = ssl.create_default_context(cafile=certifi.where())


class ApiError(Exception):
    def __init__(self, status: int, message: str, code: str = ""):
        self.status = status
        self.code = code
        super().__init__(message)


class DocumentStoreClient:
    def __init__(self, base_url: str, id_token: Optional[str] = None, timeout: float = 15.0):
        self._base_url = base_url.rstrip("/")
        self._id_token = id_token
        self._timeout = timeout

    def _request(
        self,
        method: str,
        route: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}/{route}"
        if params:
            url = f"{url}?{urlencode(params)}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(url, data=data, method=method)
        req.add_header("Accept", "application/json")
        if data is not None:
            req.add_header("Content-Type", "application/json")
        if self._id_token:
            req.add_header("Cookie", f"{TOKEN_COOKIE}={quote(self._id_token)}")

        try:
            with urllib.request.urlopen(req, timeout=self._timeout, context=_SSL_CONTEXT) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="replace")
            message, code = raw or f"{method} {route} failed: {exc.code}", ""
            try:
                parsed = json.loads(raw)
                envelope = parsed.get("error_envelope") or {}
                message = parsed.get("error") or message
                code = envelope.get("code") or ""
            except (json.JSONDecodeError, AttributeError):
                pass
            raise ApiError(exc.code, message, code) from exc
        return json.loads(raw) if raw else {}

    # Files

    def list_folder(self, folder: str) -> Dict[str, Any]:
        return self._request("GET", "files/list", params={"folder": folder})

    def create_upload_url(self, folder: str, file_name: str, content_type: str = "") -> Dict[str, Any]:
        return self._request("POST", "files/presign", {
            "folder": folder,
            "fileName": file_name,
            "contentType": content_type or "application/octet-stream",
        })

    def presign_download(self, key: str, disposition: str = "inline") -> Dict[str, Any]:
        return self._request("POST", "files/presign-get", {"key": key, "disposition": disposition})

    def delete_file(self, key: str) -> Dict[str, Any]:
        return self._request("POST", "files/delete", {"key": key})

    # Notes

    def list_notes(self) -> List[Dict[str, Any]]:
        return self._request("GET", "notes/list").get("notes") or []

    def get_note(self, note_id: str) -> Dict[str, Any]:
        return self._request("GET", "notes/get", params={"id": note_id})["note"]

    def save_note(self, note_id: str, content: str) -> Dict[str, Any]:
        return self._request("POST", "notes/save", {"id": note_id, "content": content})

    def delete_note(self, note_id: str) -> Dict[str, Any]:
        return self._request("POST", "notes/delete", {"id": note_id})

    # Contacts

    def get_contacts(self) -> Dict[str, Any]:
        return self._request("GET", "contacts/get")

    def save_contacts(self, contacts: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._request("POST", "contacts/save", {"contacts": contacts})

    # Projections / onboarding

    def save_projection(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "projections/save", payload)

    def list_projections(self) -> List[Dict[str, Any]]:
        return self._request("GET", "projections/list").get("projections") or []

    def get_projection(self, projection_id: str) -> Dict[str, Any]:
        return self._request("GET", "projections/get", params={"id": projection_id})["projection"]

    def get_tour_status(self) -> Dict[str, Any]:
        return self._request("GET", "onboarding/tour")

    def mark_tour_seen(self, action: str = "completed") -> Dict[str, Any]:
        return self._request("POST", "onboarding/tour", {"action": action})
