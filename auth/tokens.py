"""
auth/tokens.py -- Signed, time-limited access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (account id), role and exp
       (Unix seconds). The service is the sole authority on expiry: any "exp"
       supplied by the caller is dropped before the real one is computed.

  Access vs refresh: both flavours are built by the same claim construction
       and differ only in lifetime. There is no token-type claim, so a refresh
       token verifies wherever an access token does. This matches the records
       and clients already in the field.

  Verification order:
       1. header alg must be an HMAC algorithm  -> UnexpectedSigningMethodError
       2. signature must validate under secret   -> InvalidSignatureError
       3. sub / role / exp must be well formed   -> InvalidClaimsError
       4. now must not be past exp               -> ExpiredError
       A token is still valid at exactly its expiry second ("now > exp" fails).

  Clock: injectable so tests can move time without sleeping. Expiry is checked
       here rather than inside jose.jwt.decode so the injected clock is the
       only source of "now".

SECRET and lifetimes are passed in at construction by api/main.py. This module
never reads settings itself.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError, JWTClaimsError

from auth.errors import (
    ExpiredError,
    InvalidClaimsError,
    InvalidSignatureError,
    TokenSigningError,
    UnexpectedSigningMethodError,
)
from auth.models import IssuedToken, Role, TokenPair

logger = logging.getLogger("storybook.auth")

_ALGORITHM = "HS256"
_HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies HMAC-signed JWTs.

    Usage:
        tokens = TokenService("x" * 32, timedelta(minutes=15), timedelta(days=7))
        issued = tokens.issue_access_token("8f0c...", Role.CLIENT)
        claims = tokens.verify_token(issued.token)   # {"sub": ..., "role": ..., "exp": ...}
    """

    def __init__(
        self,
        secret: str,
        access_lifetime: timedelta,
        refresh_lifetime: timedelta,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not secret:
            raise ValueError("secret must be non-empty")
        self._secret = secret
        self.access_lifetime = access_lifetime
        self.refresh_lifetime = refresh_lifetime
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access_token(
        self, subject: str, role: Role | str, extra_claims: Mapping[str, Any] | None = None
    ) -> IssuedToken:
        return self._issue(subject, role, self.access_lifetime, extra_claims)

    def issue_refresh_token(
        self, subject: str, role: Role | str, extra_claims: Mapping[str, Any] | None = None
    ) -> IssuedToken:
        return self._issue(subject, role, self.refresh_lifetime, extra_claims)

    def issue_pair(self, subject: str, role: Role | str) -> TokenPair:
        """Issue an access token and a refresh token for the same identity."""
        return TokenPair(
            access=self.issue_access_token(subject, role),
            refresh=self.issue_refresh_token(subject, role),
        )

    def _issue(
        self,
        subject: str,
        role: Role | str,
        lifetime: timedelta,
        extra_claims: Mapping[str, Any] | None,
    ) -> IssuedToken:
        claims: dict[str, Any] = dict(extra_claims or {})
        claims.pop("exp", None)
        exp = int((self._clock() + lifetime).timestamp())
        claims["sub"] = str(subject)
        claims["role"] = Role(role).value
        claims["exp"] = exp
        try:
            token = jwt.encode(claims, self._secret, algorithm=_ALGORITHM)
        except (JOSEError, TypeError, ValueError) as exc:
            raise TokenSigningError() from exc
        return IssuedToken(token=token, expires_at=datetime.fromtimestamp(exp, tz=timezone.utc))

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_token(self, token: str) -> dict[str, Any]:
        """Return the full claim mapping of a valid token or raise a TokenError subclass."""
        try:
            header = jwt.get_unverified_header(token)
        except JOSEError as exc:
            raise InvalidSignatureError() from exc
        alg = header.get("alg")
        if alg not in _HMAC_ALGORITHMS:
            raise UnexpectedSigningMethodError(f"Unexpected signing method: {alg!r}")

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=list(_HMAC_ALGORITHMS),
                options={"verify_exp": False},
            )
        except JWTClaimsError as exc:
            raise InvalidClaimsError(str(exc)) from exc
        except JOSEError as exc:
            raise InvalidSignatureError() from exc

        _check_claims(claims)

        if self._clock().timestamp() > claims["exp"]:
            raise ExpiredError()
        return claims


def _check_claims(claims: Any) -> None:
    if not isinstance(claims, dict):
        raise InvalidClaimsError("Claims must be a JSON object.")
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise InvalidClaimsError("Claim 'sub' is missing or not a string.")
    try:
        Role(claims.get("role"))
    except ValueError as exc:
        raise InvalidClaimsError("Claim 'role' is missing or unknown.") from exc
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise InvalidClaimsError("Claim 'exp' is missing or not a number.")
