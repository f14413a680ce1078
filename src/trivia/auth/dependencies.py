"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from trivia.auth.jwt import verify_token

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    display_name: str | None = None


def _user_from_token(token: str) -> AuthenticatedUser:
    try:
        payload = verify_token(token)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return AuthenticatedUser(user_id=payload["sub"], display_name=payload.get("name"))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> AuthenticatedUser:
    """
    Verify the bearer token and return the caller.

    Raises 401 when the header is missing or the token does not verify.
    """
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _user_from_token(credentials.credentials)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> AuthenticatedUser | None:
    """Like get_current_user for public endpoints: None without a header, 401 on a bad token."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials)
