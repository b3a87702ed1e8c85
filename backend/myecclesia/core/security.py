"""
Caller identity for the ticketing handlers.

Sign-in is handled by the hosted auth provider. It issues HS256 JWTs
signed with the project secret, audience "authenticated", and the user id in
`sub`. Handlers only verify those tokens; they never issue or refresh them.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from myecclesia.core.config import get_settings
from myecclesia.core.exceptions import AuthenticationError
from myecclesia.core.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a token shaped like the auth provider's access tokens."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": user_id,
        "aud": settings.JWT_AUDIENCE,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Verify the token and return the caller's user id."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        logger.info("auth_token_expired")
        raise AuthenticationError("Authentication token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("auth_token_invalid", error=str(e))
        raise AuthenticationError("Invalid authentication token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid authentication token")
    return str(user_id)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    user_id = decode_access_token(credentials.credentials)
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return user_id
