"""Bearer-token identity for route handlers.

Tokens are issued by the external auth service; this module only verifies
them and reads the caller's user id from the "sub" claim.
"""

import jwt
from datetime import datetime, timedelta, timezone
from fastapi import Request

from learnpath.config import settings
from learnpath.errors import Unauthorized

JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 72


def create_token(user_id: str, expires_in: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "exp": now + (expires_in or timedelta(hours=JWT_EXPIRY_HOURS)),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")


async def get_current_user(request: Request) -> dict:
    """Extract and validate the current user from the JWT token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.lower().startswith("bearer "):
        raise Unauthorized("Not authenticated")

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise Unauthorized("Empty token")

    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token")
    return {"id": str(user_id)}
