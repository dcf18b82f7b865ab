"""lambda_function.py — Lambda entry point for the per-user document store.

Routes (via API Gateway HTTP API proxy; any stage/base prefix is ignored):
    GET    .../files/list?folder=<name|__all__>     — folder or flat listing
    POST   .../files/presign                        — presigned PUT for upload
    POST   .../files/presign-get                    — presigned GET for download
    POST   .../files/delete                         — delete an uploaded file
    GET    .../notes/list                           — note summaries with titles
    GET    .../notes/get?id=                        — one note (404 when missing)
    POST   .../notes/save                           — create/overwrite a note
    POST   .../notes/delete                         — delete a note
    GET    .../contacts/get                         — contact list (defaults when empty)
    POST   .../contacts/save                        — replace contact list
    POST   .../projections/save                     — store a calculator projection
    GET    .../projections/list                     — projection keys
    GET    .../projections/get?id=                  — one projection
    GET    .../onboarding/tour                      — welcome tour status
    POST   .../onboarding/tour                      — mark tour completed/skipped
    OPTIONS *                                       — CORS preflight

Auth:
    Cognito id token from the ``unity_id_token`` cookie; the ``sub`` claim
    is the tenant. See auth.py.

Environment variables:
    AWS_BUCKET_NAME        required
    AWS_REGION             default: us-east-1
    UNITY_S3_PREFIX        optional global key prefix
    COGNITO_USER_POOL_ID   COGNITO_CLIENT_ID
    CORS_ORIGIN            default: http://localhost:3000
"""
from __future__ import annotations

import re
from typing import Any, Callable, Dict, Optional, Tuple

from unity_store.auth import _authenticate, _tenant_from_claims
from unity_store.config import logger
from unity_store.errors import NotFoundError, StoreError, ValidationError
from unity_store.handlers import (
    _handle_contacts_get,
    _handle_contacts_save,
    _handle_files_delete,
    _handle_files_list,
    _handle_files_presign,
    _handle_files_presign_get,
    _handle_notes_delete,
    _handle_notes_get,
    _handle_notes_list,
    _handle_notes_save,
    _handle_projections_get,
    _handle_projections_list,
    _handle_projections_save,
    _handle_tour_get,
    _handle_tour_post,
)
from unity_store.http_utils import _cors_headers, _error, _path_method, _query
from unity_store.keys import sanitize_tenant

Handler = Callable[[Dict[str, Any], str], Dict[str, Any]]

_ROUTES: Dict[Tuple[str, str], Handler] = {
    ("GET", "files/list"): _handle_files_list,
    ("POST", "files/presign"): _handle_files_presign,
    ("POST", "files/upload"): _handle_files_presign,
    ("POST", "files/presign-get"): _handle_files_presign_get,
    ("POST", "files/delete"): _handle_files_delete,
    ("GET", "notes/list"): _handle_notes_list,
    ("GET", "notes/get"): _handle_notes_get,
    ("POST", "notes/save"): _handle_notes_save,
    ("POST", "notes/delete"): _handle_notes_delete,
    ("GET", "contacts/get"): _handle_contacts_get,
    ("POST", "contacts/save"): _handle_contacts_save,
    ("POST", "projections/save"): _handle_projections_save,
    ("GET", "projections/list"): _handle_projections_list,
    ("GET", "projections/get"): _handle_projections_get,
    ("GET", "onboarding/tour"): _handle_tour_get,
    ("POST", "onboarding/tour"): _handle_tour_post,
}

_KNOWN_ROUTES = {route for _, route in _ROUTES}

_ROUTE_RE = re.compile(
    r"/(?P<route>(?:files|notes|contacts|projections|onboarding)/[A-Za-z-]+)/?$"
)


# ---------------------------------------------------------------------------
# Path parsing
# ---------------------------------------------------------------------------


def _parse_request(event: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    """Parse method and route tail (e.g. ``notes/save``) from the event."""
    method, raw_path = _path_method(event)
    match = _ROUTE_RE.search(raw_path)
    route = match.group("route") if match else None
    logger.info(
        "request parse: method=%s raw_path=%s route=%s qs_keys=%s",
        method, raw_path, route, sorted(_query(event).keys()),
    )
    return method, route


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


def _dispatch(handler: Handler, event: Dict[str, Any], tenant: str, route: str) -> Dict[str, Any]:
    try:
        return handler(event, tenant)
    except ValidationError as exc:
        return _error(400, exc.message, code=exc.code)
    except NotFoundError as exc:
        return _error(404, "not_found", key=exc.key)
    except StoreError as exc:
        logger.error("store error on %s: %s", route, exc)
        return _error(500, str(exc))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    method, route = _parse_request(event)

    # CORS preflight
    if method == "OPTIONS":
        return {"statusCode": 204, "headers": _cors_headers(), "body": ""}

    if route is None or route not in _KNOWN_ROUTES:
        return _error(404, "Route not found.")

    handler = _ROUTES.get((method, route))
    if handler is None:
        return _error(405, f"Method {method} not allowed.")

    claims, auth_err = _authenticate(event)
    if auth_err:
        return auth_err

    try:
        tenant = sanitize_tenant(_tenant_from_claims(claims or {}))
    except ValidationError as exc:
        return _error(401, exc.message, code=exc.code)

    return _dispatch(handler, event, tenant, route)
