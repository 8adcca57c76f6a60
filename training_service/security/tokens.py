"""Verification of access tokens issued by the user service."""

from __future__ import annotations

from typing import Any, Callable

import jwt
from fastapi import Depends, Header

from ..config import get_settings
from ..domain.contracts import Caller
from ..domain.errors import ForbiddenError, InvalidTokenError, UnauthorizedError


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT returning its payload.

    Parameters
    ----------
    token:
        Encoded JWT issued by the user service.

    Returns
    -------
    dict[str, Any]
        The decoded payload if signature, issuer and audience checks succeed.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, or meant for another audience.
    """

    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )


def get_caller(authorization: str | None = Header(default=None)) -> Caller:
    """Resolve the authenticated caller from the ``Authorization`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError()
    token = authorization[len("Bearer "):]
    try:
        claims = decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise InvalidTokenError() from exc
    user_id = claims.get("id") or claims.get("sub")
    role = claims.get("role")
    if not user_id or not role:
        raise InvalidTokenError()
    return Caller(user_id=str(user_id), role=str(role), token=token)


def require_roles(*roles: str) -> Callable[..., Caller]:
    """Build a dependency that only admits callers holding one of ``roles``."""

    def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role not in roles:
            raise ForbiddenError()
        return caller

    return dependency
