"""auth.py — Cognito JWT authentication and tenant resolution.

Reads ``unity_id_token`` from the Cookie header / API Gateway v2 cookies
array, validates the RS256 JWT against the Cognito User Pool JWKS, and
resolves the tenant from the ``sub`` claim. Trusted callers may instead
present ``X-Unity-Internal-Key`` together with ``X-Unity-Tenant``.

Requires environment variables:
    COGNITO_USER_POOL_ID   — e.g. us-east-1_AbCdEfGhI
    COGNITO_CLIENT_ID      — app client id (token audience)

Optional:
    UNITY_INTERNAL_API_KEY[S|_PREVIOUS] — enables internal-key auth
"""
from __future__ import annotations

import json
import ssl
import time
import urllib.request
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

import certifi
import jwt
from jwt.algorithms import RSAAlgorithm

from unity_store import config
from unity_store.config import logger
from unity_store.http_utils import _error

__all__ = [
    "TOKEN_COOKIE",
    "_authenticate",
    "_extract_token",
    "_tenant_from_claims",
    "_verify_token",
]

TOKEN_COOKIE = "unity_id_token"

# ---------------------------------------------------------------------------
# JWKS cache
# ---------------------------------------------------------------------------

_jwks_cache: Dict[str, Any] = {}
_jwks_fetched_at: float = 0.0
_JWKS_TTL: float = 3600.0
_SSL_CONTEXT = ssl.create_default_context(cafile=certifi.where())


def _header(headers: Dict[str, Any], name: str) -> str:
    return str(headers.get(name.lower()) or headers.get(name) or "")


def _extract_token(event: Dict[str, Any]) -> Optional[str]:
    headers = event.get("headers") or {}
    cookie_header = _header(headers, "Cookie")
    cookie_parts: List[str] = []
    if cookie_header:
        cookie_parts.extend(part.strip() for part in cookie_header.split(";") if part.strip())

    # API Gateway HTTP API payload v2 may place cookies here instead of headers.cookie.
    event_cookies = event.get("cookies") or []
    if isinstance(event_cookies, list):
        cookie_parts.extend(part.strip() for part in event_cookies if isinstance(part, str) and part.strip())
    elif isinstance(event_cookies, str) and event_cookies.strip():
        cookie_parts.append(event_cookies.strip())

    marker = f"{TOKEN_COOKIE}="
    for part in cookie_parts:
        if part.startswith(marker):
            return unquote(part[len(marker):])
    return None


def _get_jwks() -> Dict[str, Any]:
    """Fetch (and cache) Cognito User Pool JWKS."""
    global _jwks_cache, _jwks_fetched_at
    now = time.time()
    if _jwks_cache and (now - _jwks_fetched_at) < _JWKS_TTL:
        return _jwks_cache
    if not config.COGNITO_USER_POOL_ID:
        raise ValueError("COGNITO_USER_POOL_ID not set")

    region = config.COGNITO_USER_POOL_ID.split("_")[0]
    url = (
        f"https://cognito-idp.{region}.amazonaws.com/"
        f"{config.COGNITO_USER_POOL_ID}/.well-known/jwks.json"
    )
    with urllib.request.urlopen(url, timeout=5, context=_SSL_CONTEXT) as resp:
        data = json.loads(resp.read())

    _jwks_cache = {
        key_data["kid"]: RSAAlgorithm.from_jwk(json.dumps(key_data))
        for key_data in data.get("keys", [])
    }
    _jwks_fetched_at = now
    return _jwks_cache


def _verify_token(token: str) -> Dict[str, Any]:
    """Verify a Cognito JWT (RS256). Returns decoded claims dict."""
    try:
        header = jwt.get_unverified_header(token)
    except jwt.PyJWTError as exc:
        raise ValueError(f"Invalid token header: {exc}") from exc

    alg = header.get("alg", "RS256")
    if alg != "RS256":
        raise ValueError(f"Unexpected token algorithm: {alg}")

    key = _get_jwks().get(header.get("kid"))
    if key is None:
        raise ValueError("Token key ID not found in JWKS")

    try:
        return jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            audience=config.COGNITO_CLIENT_ID,
            options={"verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Token has expired. Please sign in again.")
    except jwt.InvalidAudienceError:
        raise ValueError("Token audience mismatch.")
    except jwt.PyJWTError as exc:
        raise ValueError(f"Token validation failed: {exc}") from exc


def _tenant_from_claims(claims: Dict[str, Any]) -> Optional[str]:
    tenant = str(claims.get("sub") or "").strip()
    return tenant or None


def _authenticate(event: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """Authenticate request. Returns (claims, None) or (None, error_response)."""
    headers = event.get("headers") or {}
    if config.UNITY_INTERNAL_API_KEYS:
        internal_key = _header(headers, "X-Unity-Internal-Key")
        if internal_key and internal_key in config.UNITY_INTERNAL_API_KEYS:
            tenant = _header(headers, "X-Unity-Tenant").strip()
            if not tenant:
                return None, _error(400, "X-Unity-Tenant header is required with an internal key.",
                                    code="invalid_tenant")
            return {"auth_mode": "internal-key", "sub": tenant}, None

    token = _extract_token(event)
    if not token:
        return None, _error(401, "Authentication required. Please sign in.")
    try:
        claims = _verify_token(token)
    except ValueError as exc:
        logger.warning("auth failed: %s", exc)
        return None, _error(401, str(exc))
    if not _tenant_from_claims(claims):
        return None, _error(401, "Token has no subject.")
    return claims, None
