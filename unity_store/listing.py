"""listing.py — Folder views over the flat S3 key space.

A delimited listing folds CommonPrefixes into child folders and the
objects directly under the prefix into files. The "list all" scan returns
every object under a root flat, annotated with the folder path it came
from. Results are a single page of at most LIST_MAX_KEYS objects; when S3
reports more, ``truncated`` is set and the remainder is not fetched.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from unity_store import config
from unity_store.keys import files_root, normalize_folder
from unity_store.object_store import list_objects
from unity_store.serialization import _iso, _parse_ts

__all__ = [
    "FolderListing",
    "FolderNode",
    "ListedObject",
    "list_all",
    "list_folder",
    "list_tenant_files",
    "sort_newest_first",
]


@dataclass
class ListedObject:
    key: str
    name: str
    size: int
    lastModified: Optional[str]
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if self.path is None:
            out.pop("path")
        return out


@dataclass
class FolderNode:
    name: str
    prefix: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FolderListing:
    prefix: str
    files: List[ListedObject] = field(default_factory=list)
    folders: List[FolderNode] = field(default_factory=list)
    truncated: bool = False


def _last_modified(raw: Any) -> Optional[str]:
    if isinstance(raw, dt.datetime):
        return _iso(raw)
    if isinstance(raw, str) and raw:
        return raw
    return None


def _to_listed(obj: Dict[str, Any], path: Optional[str] = None) -> ListedObject:
    key = str(obj.get("Key") or "")
    return ListedObject(
        key=key,
        name=key.split("/")[-1] or key,
        size=int(obj.get("Size") or 0),
        lastModified=_last_modified(obj.get("LastModified")),
        path=path,
    )


def list_folder(prefix: str, delimiter: Optional[str] = "/") -> FolderListing:
    """List one level below ``prefix``; the directory marker itself is dropped."""
    resp = list_objects(prefix, delimiter=delimiter)
    listing = FolderListing(prefix=prefix, truncated=bool(resp.get("IsTruncated")))

    for common in resp.get("CommonPrefixes") or []:
        child = str(common.get("Prefix") or "")
        if not child.startswith(prefix) or child == prefix:
            continue
        name = child[len(prefix):].rstrip("/")
        if name:
            listing.folders.append(FolderNode(name=name, prefix=child))

    for obj in resp.get("Contents") or []:
        key = obj.get("Key")
        if not key or key == prefix:
            continue
        listing.files.append(_to_listed(obj))
    return listing


def list_all(root: str) -> FolderListing:
    """Flat scan of every object under ``root``, each tagged with its folder path."""
    resp = list_objects(root)
    listing = FolderListing(prefix=root, truncated=bool(resp.get("IsTruncated")))
    for obj in resp.get("Contents") or []:
        key = obj.get("Key")
        if not key or key == root:
            continue
        relative = key[len(root):] if key.startswith(root) else key
        if relative.endswith("/"):
            # Nested directory marker, not a file.
            continue
        path = "/".join(relative.split("/")[:-1])
        listing.files.append(_to_listed(obj, path=path))
    return listing


def list_tenant_files(tenant: str, folder: Optional[str]) -> Dict[str, Any]:
    """Response payload for ``GET /files/list``."""
    raw = str(folder if folder is not None else config.DEFAULT_FOLDER).strip()
    root = files_root(tenant)
    if raw in config.LIST_ALL_TOKENS:
        listing = list_all(root)
        return {
            "folder": "__all__",
            "prefix": root,
            "items": [f.to_dict() for f in listing.files],
            "truncated": listing.truncated,
        }

    name = normalize_folder(raw)
    listing = list_folder(f"{root}{name}/")
    return {
        "folder": name,
        "prefix": listing.prefix,
        "folders": [f.to_dict() for f in listing.folders],
        "items": [f.to_dict() for f in listing.files],
        "truncated": listing.truncated,
    }


def sort_newest_first(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort by ``updatedAt`` (falling back to ``lastModified``), newest first."""

    def _ts(item: Dict[str, Any]) -> float:
        return _parse_ts(item.get("updatedAt")) or _parse_ts(item.get("lastModified"))

    return sorted(items, key=_ts, reverse=True)
