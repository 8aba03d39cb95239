from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt

from .config import get_settings

logger = logging.getLogger(__name__)

JWKS_TTL_SECONDS = 600

_http = httpx.Client(timeout=5)
_bearer = HTTPBearer(auto_error=False)


class JWKSCache:
    def __init__(self, ttl_seconds: float = JWKS_TTL_SECONDS) -> None:
        self._ttl = ttl_seconds
        self._jwks: Optional[Dict[str, Any]] = None
        self._url: Optional[str] = None
        self._exp_ts: float = 0.0

    def get(self, url: str) -> Dict[str, Any]:
        now = time.time()
        if self._jwks is None or url != self._url or now >= self._exp_ts:
            resp = _http.get(url)
            resp.raise_for_status()
            self._jwks = resp.json()
            self._url = url
            self._exp_ts = now + self._ttl
        return self._jwks  # type: ignore[return-value]


_jwks_cache = JWKSCache()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _verify_jwt(token: str) -> Dict[str, Any]:
    settings = get_settings()
    if settings.auth_disable_verification:
        # Dev only: claims are trusted without a signature check.
        try:
            return jwt.get_unverified_claims(token)
        except Exception as e:
            raise _unauthorized(f"Invalid token: {e}")

    if not settings.clerk_issuer:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Auth issuer not configured")

    jwks_url = settings.clerk_jwks_url or settings.clerk_issuer.rstrip("/") + "/.well-known/jwks.json"
    try:
        jwks = _jwks_cache.get(jwks_url)
    except httpx.HTTPError as e:
        logger.error("Fetching JWKS from %s failed: %s", jwks_url, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Auth keys unavailable")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
        key = next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
        if not key:
            raise _unauthorized("Signing key not found")
        return jwt.decode(
            token,
            key,
            algorithms=[key.get("alg", "RS256")],
            audience=settings.clerk_audience,
            issuer=settings.clerk_issuer,
            options={"verify_aud": bool(settings.clerk_audience)},
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _unauthorized(f"JWT verification failed: {e}")


def get_current_principal(creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Dict[str, Any]:
    if not creds or creds.scheme.lower() != "bearer":
        raise _unauthorized("Missing bearer token")
    claims = _verify_jwt(creds.credentials)
    principal = {
        "sub": claims.get("sub"),
        "email": claims.get("email") or claims.get("email_address"),
        "claims": claims,
    }
    if not principal["sub"]:
        raise _unauthorized("Invalid token: no sub")
    return principal
