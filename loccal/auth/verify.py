"""
verify.py
---------
Purpose:
    Session JWT verification (HS256) for API routes.

Notes:
    - Sessions are issued by the external auth layer and signed with
      SESSION_JWT_SECRET; claims carry sub, email, name and picture.
    - The Google OAuth access token used for calendar reads travels
      separately in the X-Google-Access-Token header.
    - Provides `auth_dependency` and `google_access_token` for routes.
"""

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from loccal.config import settings

SESSION_JWT_ALGORITHM = "HS256"

_security = HTTPBearer()


def verify_jwt(token: str) -> dict:
    secret = settings.SESSION_JWT_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session verification is not configured",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[SESSION_JWT_ALGORITHM],
            audience=settings.SESSION_JWT_AUDIENCE,
            options={"verify_exp": True, "verify_aud": bool(settings.SESSION_JWT_AUDIENCE)},
        )
    except jwt.PyJWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    if not decoded.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decoded


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def google_access_token(
    x_google_access_token: str | None = Header(default=None, alias="X-Google-Access-Token"),
) -> str:
    token = (x_google_access_token or "").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google access token is required",
        )
    return token
