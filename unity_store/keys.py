"""keys.py — Storage key derivation, parsing and validation.

Layout (global prefix optional via UNITY_S3_PREFIX):

    [prefix/]notes/{tenant}/{noteId}.json
    [prefix/]contacts/{tenant}/contacts.json
    [prefix/]projections/{tenant}/{projectionId}.json
    [prefix/]onboarding/{tenant}/welcome-tour.json
    [prefix/]files/{tenant}/{folder}/{fileName}

Every write, delete and presign path runs client-supplied identifiers
through ``is_safe_id`` / ``is_safe_key`` / ``derive_key`` before use.
"""
from __future__ import annotations

import re
from typing import Optional

from unity_store import config
from unity_store.errors import ValidationError

__all__ = [
    "category_root",
    "derive_key",
    "file_name_from_key",
    "files_root",
    "id_from_key",
    "is_safe_id",
    "is_safe_key",
    "normalize_folder",
    "normalize_prefix",
    "note_key",
    "notes_prefix",
    "object_key",
    "require_safe_id",
    "require_safe_key",
    "safe_file_name",
    "sanitize_tenant",
]

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_DOT_RUN_RE = re.compile(r"\.{2,}")


def normalize_prefix(raw: Optional[str]) -> str:
    return str(raw or "").strip().strip("/")


def _join(*parts: str) -> str:
    return "/".join(p for p in parts if p)


def _global_prefix() -> str:
    return normalize_prefix(config.S3_PREFIX)


def normalize_folder(folder: Optional[str]) -> str:
    cleaned = str(folder or "").replace("\\", "/").strip().strip("/")
    if not cleaned or ".." in cleaned:
        return config.DEFAULT_FOLDER
    # Collapse empty segments left by "a//b".
    return "/".join(seg.strip() for seg in cleaned.split("/") if seg.strip()) or config.DEFAULT_FOLDER


def sanitize_tenant(tenant: Optional[str]) -> str:
    """Tenant path segment. Identities outside ``[A-Za-z0-9_-]`` are rejected, never rewritten."""
    raw = str(tenant or "").strip()
    if not raw:
        raise ValidationError("invalid_tenant", "Tenant identity is required.")
    if len(raw) > config.MAX_TENANT_LENGTH or not _SAFE_ID_RE.match(raw):
        raise ValidationError("invalid_tenant", "Tenant identity contains unsupported characters.")
    return raw


def safe_file_name(name: Optional[str]) -> str:
    """Final path segment of ``name``, trimmed and bounded; ``file`` when empty."""
    base = str(name or "").replace("\\", "/").split("/")[-1].strip()
    base = _DOT_RUN_RE.sub(".", base)[: config.MAX_FILE_NAME_LENGTH].strip()
    if not base or base in {".", ".."}:
        return "file"
    return base


def category_root(category: str, tenant: str) -> str:
    """``[prefix/]category/tenant/`` with a trailing slash, ready for listing."""
    return _join(_global_prefix(), normalize_prefix(category), sanitize_tenant(tenant)) + "/"


def derive_key(category: str, tenant: str, name: str, folder: Optional[str] = None) -> str:
    root = category_root(category, tenant)
    if folder is not None:
        root = f"{root}{normalize_folder(folder)}/"
    return root + safe_file_name(name)


def files_root(tenant: str) -> str:
    return category_root(config.CATEGORY_FILES, tenant)


def object_key(tenant: str, folder: Optional[str], file_name: str) -> str:
    """Key for an uploaded file: ``[prefix/]files/{tenant}/{folder}/{fileName}``."""
    return derive_key(config.CATEGORY_FILES, tenant, file_name, folder=normalize_folder(folder))


def notes_prefix(tenant: str) -> str:
    return category_root(config.CATEGORY_NOTES, tenant)


def note_key(tenant: str, note_id: str) -> str:
    require_safe_id(note_id)
    return derive_key(config.CATEGORY_NOTES, tenant, f"{note_id}.json")


def is_safe_id(value: Optional[str]) -> bool:
    if not value or not isinstance(value, str):
        return False
    if len(value) > config.MAX_ID_LENGTH:
        return False
    return bool(_SAFE_ID_RE.match(value))


def is_safe_key(key: Optional[str], root: Optional[str] = None) -> bool:
    if not key or not isinstance(key, str):
        return False
    if ".." in key:
        return False
    if key.startswith("/") or key.startswith("\\"):
        return False
    if root is not None:
        if not key.startswith(root) or key == root:
            return False
    return True


def require_safe_id(value: Optional[str]) -> str:
    if not is_safe_id(value):
        raise ValidationError(
            "invalid_id",
            f"Id must be 1-{config.MAX_ID_LENGTH} characters of letters, digits, '_' or '-'.",
        )
    return str(value)


def require_safe_key(key: Optional[str], root: Optional[str] = None) -> str:
    if not is_safe_key(key, root):
        raise ValidationError("invalid_key", "Key is empty, absolute, escapes its folder, or is not yours.")
    return str(key)


def id_from_key(key: Optional[str], suffix: str = ".json") -> Optional[str]:
    """Inverse of ``derive_key`` for id-named documents; ``None`` for unrelated objects."""
    base = str(key or "").replace("\\", "/").split("/")[-1]
    if not base.endswith(suffix):
        return None
    doc_id = base[: -len(suffix)]
    return doc_id if is_safe_id(doc_id) else None


def file_name_from_key(key: Optional[str]) -> str:
    name = str(key or "").replace("\\", "/").split("/")[-1].strip()
    return name or "file"
