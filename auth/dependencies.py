"""
auth/dependencies.py -- Bearer-token gate and FastAPI Depends() helpers.

The gate has one job: turn an Authorization header into an
AuthenticatedIdentity or refuse. It never reads the account store; every
decision is a pure function of the presented token and the current time.

  parse_bearer()   -- header shape only ("Bearer <token>", exactly two parts)
  authenticate()   -- parse + TokenService.verify_token(), keeps sub and role only
  get_identity()   -- FastAPI dependency; uses app.state.token_service
  require_elevated()         -- 403 unless the role is above client
  ensure_owner_or_elevated() -- a client may only act on its own account id

The identity is returned as a value and passed explicitly down the call chain;
nothing is stashed on the request.

Layer rule: may import from fastapi (Depends/Request) because this module is
part of the FastAPI dependency injection system. No imports from api/ or core/.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from auth.errors import (
    ForbiddenError,
    InvalidAuthorizationFormatError,
    MissingAuthorizationError,
    TokenError,
)
from auth.models import AuthenticatedIdentity, Role
from auth.tokens import TokenService

logger = logging.getLogger("storybook.auth")


def parse_bearer(header: str | None) -> str:
    """Return the token from 'Bearer <token>' or raise a header error."""
    if not header:
        raise MissingAuthorizationError()
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise InvalidAuthorizationFormatError()
    return parts[1]


def authenticate(header: str | None, token_service: TokenService) -> AuthenticatedIdentity:
    """Verify the bearer token in `header` and return who it belongs to.

    Token failures propagate as the precise TokenError subclass; the reason is
    logged here and collapsed to a generic 401 by the HTTP layer.
    """
    token = parse_bearer(header)
    try:
        claims = token_service.verify_token(token)
    except TokenError as exc:
        logger.info("Rejected bearer token: %s", type(exc).__name__)
        raise
    return AuthenticatedIdentity(subject=claims["sub"], role=Role(claims["role"]))


def get_identity(request: Request) -> AuthenticatedIdentity:
    """Require a valid bearer token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: AuthenticatedIdentity = Depends(get_identity)): ...
    """
    return authenticate(request.headers.get("Authorization"), request.app.state.token_service)


def require_elevated(identity: AuthenticatedIdentity = Depends(get_identity)) -> AuthenticatedIdentity:
    """Require a non-client role. Raises ForbiddenError (403) for clients.

    This is the guard for catalog mutation routes.
    """
    if not identity.role.is_elevated:
        raise ForbiddenError("Elevated role required.")
    return identity


def ensure_owner_or_elevated(identity: AuthenticatedIdentity, account_id: str) -> None:
    """Raise ForbiddenError if a client targets an account id other than its own."""
    if identity.role.is_elevated:
        return
    if identity.subject != account_id:
        raise ForbiddenError()
