"""
Supabase JWT authentication

Verifies bearer tokens against the Supabase JWKS endpoint and supplies the
user id that selects the caller's timer. Failures raise the timer's
NotAuthenticated (401) or IdentityUnavailable (503).
"""
import time
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Header
from jose import jwk, jwt

from app import config
from app.features.binge_timer.errors import IdentityUnavailable, NotAuthenticated

logger = logging.getLogger(__name__)

JWKS_CACHE_SECONDS = 60 * 60
JWT_AUDIENCE = "authenticated"
JWT_ALGORITHMS = ["ES256", "RS256"]

_jwks_cache: Optional[Dict[str, Any]] = None
_jwks_fetched_at: float = 0


def _auth_base_url() -> str:
    if not config.SUPABASE_URL:
        raise IdentityUnavailable("SUPABASE_URL must be set to verify tokens")
    return f"{config.SUPABASE_URL}/auth/v1"


def reset_jwks_cache() -> None:
    """Drop the cached JWKS (useful for testing)"""
    global _jwks_cache, _jwks_fetched_at
    _jwks_cache = None
    _jwks_fetched_at = 0


async def get_jwks() -> Dict[str, Any]:
    """
    Fetch the Supabase signing keys, cached for an hour.

    A stale cache is served when a refresh fails; with no cache at all the
    failure raises IdentityUnavailable.
    """
    global _jwks_cache, _jwks_fetched_at

    now = time.time()
    if _jwks_cache and (now - _jwks_fetched_at) < JWKS_CACHE_SECONDS:
        return _jwks_cache

    jwks_url = f"{_auth_base_url()}/.well-known/jwks.json"
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            _jwks_cache = response.json()
            _jwks_fetched_at = now
            logger.info(f"Fetched signing keys from {jwks_url}")
            return _jwks_cache
    except httpx.HTTPError as e:
        if _jwks_cache:
            logger.warning(f"Signing key refresh failed, serving stale keys: {e}")
            return _jwks_cache
        logger.error(f"Failed to fetch signing keys: {e}")
        raise IdentityUnavailable("Failed to fetch authentication keys")


def _signing_key(jwks: Dict[str, Any], token: str):
    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except jwt.JWTError as e:
        raise NotAuthenticated(f"Invalid token: {e}")

    if not kid:
        raise NotAuthenticated("Token missing key ID (kid)")

    for key_data in jwks.get("keys", []):
        if key_data.get("kid") == kid:
            return jwk.construct(key_data)
    raise NotAuthenticated(f"Key with ID '{kid}' not found in JWKS")


async def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify a Supabase access token and return its claims.

    Raises:
        NotAuthenticated: If the token is malformed, expired or not signed
            by a current Supabase key
        IdentityUnavailable: If the signing keys cannot be fetched
    """
    key = _signing_key(await get_jwks(), token)
    try:
        return jwt.decode(
            token,
            key,
            algorithms=JWT_ALGORITHMS,
            audience=JWT_AUDIENCE,
            issuer=_auth_base_url(),
        )
    except jwt.ExpiredSignatureError:
        raise NotAuthenticated("Token has expired")
    except jwt.JWTClaimsError as e:
        raise NotAuthenticated(f"Token validation failed: {e}")
    except jwt.JWTError as e:
        raise NotAuthenticated(f"Invalid token: {e}")


def user_id_from_claims(claims: Dict[str, Any]) -> str:
    user_id = claims.get("sub")
    if not user_id:
        raise NotAuthenticated("Invalid token: no user ID")
    return user_id


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an 'Authorization: Bearer <token>' value"""
    if not authorization:
        raise NotAuthenticated("Authorization header missing")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise NotAuthenticated("Expected 'Authorization: Bearer <token>'")
    return token.strip()


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """FastAPI dependency resolving the authenticated user's id"""
    claims = await verify_token(bearer_token(authorization))
    return user_id_from_claims(claims)
