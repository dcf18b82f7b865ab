"""presign.py — Short-lived, method-scoped transfer URLs.

Clients PUT/GET file bytes directly against S3; the Lambda only signs.
Expiry is enforced by S3. The Key Codec is the only gate in front of the
signer: a rejected key raises ``ValidationError("invalid_key")``.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from unity_store import config
from unity_store.aws_clients import _get_s3
from unity_store.errors import StoreError
from unity_store.keys import derive_key, file_name_from_key, object_key, require_safe_key

__all__ = [
    "DISPOSITIONS",
    "content_disposition",
    "issue_download_url",
    "issue_upload_url",
]

DISPOSITIONS = ("inline", "attachment")
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _sign(client_method: str, params: Dict[str, Any]) -> str:
    try:
        return _get_s3().generate_presigned_url(
            client_method,
            Params=params,
            ExpiresIn=config.PRESIGN_EXPIRES_SECONDS,
            HttpMethod="PUT" if client_method == "put_object" else "GET",
        )
    except (ClientError, BotoCoreError) as exc:
        raise StoreError(f"Failed to presign {client_method}: {exc}", key=params.get("Key", "")) from exc


def content_disposition(key: str, disposition: Optional[str]) -> str:
    mode = disposition if disposition in DISPOSITIONS else "inline"
    name = file_name_from_key(key).replace('"', "")
    return f'{mode}; filename="{name}"'


def issue_upload_url(
    category: str,
    tenant: str,
    file_name: str,
    content_type: Optional[str] = None,
    folder: Optional[str] = None,
) -> Dict[str, Any]:
    if category == config.CATEGORY_FILES:
        key = object_key(tenant, folder, file_name)
    else:
        key = derive_key(category, tenant, file_name, folder=folder)
    require_safe_key(key)
    ctype = (content_type or "").strip() or DEFAULT_CONTENT_TYPE
    url = _sign("put_object", {"Bucket": config.S3_BUCKET, "Key": key, "ContentType": ctype})
    return {
        "key": key,
        "url": url,
        "method": "PUT",
        "contentType": ctype,
        "expiresIn": config.PRESIGN_EXPIRES_SECONDS,
    }


def issue_download_url(
    key: str,
    disposition: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    key = require_safe_key(str(key or "").strip(), root)
    mode = disposition if disposition in DISPOSITIONS else "inline"
    url = _sign(
        "get_object",
        {
            "Bucket": config.S3_BUCKET,
            "Key": key,
            "ResponseContentDisposition": content_disposition(key, mode),
        },
    )
    return {
        "key": key,
        "url": url,
        "method": "GET",
        "disposition": mode,
        "expiresIn": config.PRESIGN_EXPIRES_SECONDS,
    }
