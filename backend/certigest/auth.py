from __future__ import annotations

import time
from typing import Any

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from certigest.config import settings


_bearer_scheme = HTTPBearer(auto_error=False)
_JWKS_CACHE_TTL_SECONDS = 300.0
_jwks_cache: dict[str, Any] = {
    "issuer": "",
    "expires_at": 0.0,
    "keys_by_kid": {},
}


def _auth_unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _auth_misconfigured(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


def _configured_issuer() -> str:
    issuer = str(settings.auth_issuer or "").strip().rstrip("/")
    if not issuer:
        raise _auth_misconfigured("Authentication is enabled but AUTH_ISSUER is not configured.")
    return issuer


def _get_jwks_keys_by_kid(issuer: str) -> dict[str, dict[str, Any]]:
    now = time.time()
    cached_keys = _jwks_cache.get("keys_by_kid")
    if (
        str(_jwks_cache.get("issuer") or "") == issuer
        and float(_jwks_cache.get("expires_at") or 0.0) > now
        and isinstance(cached_keys, dict)
        and cached_keys
    ):
        return cached_keys

    jwks_url = f"{issuer}/.well-known/jwks.json"
    try:
        response = httpx.get(jwks_url, timeout=5.0)
        response.raise_for_status()
        payload = response.json()
    except Exception as exc:
        raise _auth_misconfigured(f"Unable to fetch JWKS from '{jwks_url}': {exc}") from exc

    keys = payload.get("keys") if isinstance(payload, dict) else None
    if not isinstance(keys, list):
        raise _auth_misconfigured("Invalid JWKS payload: missing 'keys' list.")

    keys_by_kid: dict[str, dict[str, Any]] = {}
    for key in keys:
        if isinstance(key, dict):
            kid = key.get("kid")
            if isinstance(kid, str) and kid.strip():
                keys_by_kid[kid] = key

    if not keys_by_kid:
        raise _auth_misconfigured("JWKS payload did not include any usable signing keys.")

    _jwks_cache["issuer"] = issuer
    _jwks_cache["expires_at"] = now + _JWKS_CACHE_TTL_SECONDS
    _jwks_cache["keys_by_kid"] = keys_by_kid
    return keys_by_kid


def decode_and_validate_token(token: str) -> dict[str, Any]:
    issuer = _configured_issuer()
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise _auth_unauthorized("Malformed JWT header.") from exc

    kid = header.get("kid")
    if not isinstance(kid, str) or not kid.strip():
        raise _auth_unauthorized("JWT header does not include a valid key id (kid).")

    signing_key = _get_jwks_keys_by_kid(issuer).get(kid)
    if signing_key is None:
        raise _auth_unauthorized("JWT key id is not recognized by the issuer.")

    audience = str(settings.auth_audience or "").strip()
    try:
        return jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            issuer=issuer,
            audience=audience or None,
            options={"verify_aud": bool(audience)},
        )
    except JWTError as exc:
        raise _auth_unauthorized(f"Invalid or expired token: {exc}") from exc


def require_authenticated_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> dict[str, Any] | None:
    if not settings.auth_enabled:
        return None

    if credentials is None:
        raise _auth_unauthorized("Missing bearer token.")
    if credentials.scheme.lower() != "bearer":
        raise _auth_unauthorized("Unsupported authorization scheme.")

    token = credentials.credentials.strip()
    if not token:
        raise _auth_unauthorized("Missing bearer token.")

    return decode_and_validate_token(token)
