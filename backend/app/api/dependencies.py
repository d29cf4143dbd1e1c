"""
API Dependencies

FastAPI dependency injection for authentication and common services.

Security: Supabase access tokens are verified cryptographically using the
project JWKS (ES256) with HS256 fallback via the JWT secret. Never decode
without verification.
"""

import logging
from functools import lru_cache
from typing import Optional

import jwt
from jwt import PyJWKClient
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config.settings import Settings, get_settings


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

_REQUIRED_CLAIMS = {"require": ["exp", "sub", "iss"]}


@lru_cache
def _get_jwks_client(supabase_url: str) -> PyJWKClient:
    """PyJWKClient for the project's JWKS endpoint; keys are cached by the client."""
    return PyJWKClient(f"{supabase_url}/auth/v1/.well-known/jwks.json", cache_keys=True)


def verify_access_token(token: str, settings: Settings) -> str:
    """
    Verify a Supabase access token and return its subject.

    Verification strategy (in order):
      1. JWKS (ES256), which follows key rotation.
      2. HS256 with ``SUPABASE_JWT_SECRET`` for legacy-signed projects.

    Raises:
        HTTPException 401: token expired, invalid or without a subject
    """
    issuer = f"{settings.supabase_url}/auth/v1"
    payload: Optional[dict] = None

    try:
        signing_key = _get_jwks_client(settings.supabase_url).get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            issuer=issuer,
            audience="authenticated",
            options=_REQUIRED_CLAIMS,
        )
    except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as jwks_err:
        logger.debug("JWKS verification failed, trying HS256 fallback: %s", jwks_err)

    if payload is None and settings.supabase_jwt_secret:
        try:
            payload = jwt.decode(
                token,
                settings.supabase_jwt_secret,
                algorithms=["HS256"],
                issuer=issuer,
                audience="authenticated",
                options=_REQUIRED_CLAIMS,
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
            )
        except jwt.InvalidTokenError as e:
            logger.warning("HS256 JWT verification also failed: %s", e)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )
    return user_id


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Authenticated user ID (``sub`` claim) of the bearer token.

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_access_token(credentials.credentials, settings)


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """
    User ID when a bearer token is sent, ``None`` for anonymous calls.

    A token that is present but invalid is still rejected with 401.
    """
    if not credentials:
        return None
    return verify_access_token(credentials.credentials, settings)
