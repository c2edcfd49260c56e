"""
auth/errors.py -- Exception taxonomy for the credential and token core.

Every failure that crosses a component boundary is one of these types. Each
class carries two class attributes:

  category -- which bucket of the taxonomy it belongs to. api/main.py maps the
              category to an HTTP status in a single exception handler, so
              route code never picks status codes for domain failures.
  code     -- stable machine-readable string placed in the error envelope.

Components raise; the orchestrator (auth/service.py) lets child failures
propagate unchanged or wraps them with `raise ... from exc`. Nothing here is
retried.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    validation = "validation"
    authentication = "authentication"
    authorization = "authorization"
    not_found = "not_found"
    conflict = "conflict"
    infrastructure = "infrastructure"


class AuthError(Exception):
    """Base class for every failure raised by the auth core."""

    category: ErrorCategory = ErrorCategory.infrastructure
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


# ---------------------------------------------------------------------------
# Input validation (caller-fixable)
# ---------------------------------------------------------------------------


class BadEmailError(AuthError):
    category = ErrorCategory.validation
    code = "bad_email"
    message = "Email address is not valid."


class BadPasswordError(AuthError):
    category = ErrorCategory.validation
    code = "bad_password"
    message = "Password does not meet the strength policy."


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class InvalidCredentialsError(AuthError):
    category = ErrorCategory.authentication
    code = "bad_credentials"
    message = "Invalid email or password."


class MissingAuthorizationError(AuthError):
    category = ErrorCategory.authentication
    code = "missing_authorization"
    message = "Missing authorization header."


class InvalidAuthorizationFormatError(AuthError):
    category = ErrorCategory.authentication
    code = "invalid_authorization_format"
    message = "Authorization header must be 'Bearer <token>'."


class TokenError(AuthError):
    """Any failure to verify a presented token.

    Subclasses record the precise reason for logs and tests. The HTTP layer
    collapses all of them into one "invalid_token" response.
    """

    category = ErrorCategory.authentication
    code = "invalid_token"
    message = "Token could not be verified."


class UnexpectedSigningMethodError(TokenError):
    message = "Token declares an unsupported signing algorithm."


class InvalidSignatureError(TokenError):
    message = "Token signature is invalid or the token is malformed."


class InvalidClaimsError(TokenError):
    message = "Token claims are malformed."


class ExpiredError(TokenError):
    message = "Token lifetime is over."


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class ForbiddenError(AuthError):
    category = ErrorCategory.authorization
    code = "forbidden"
    message = "Access denied."


class WrongAnswerError(AuthError):
    category = ErrorCategory.authorization
    code = "wrong_answer"
    message = "Security answer does not match."


# ---------------------------------------------------------------------------
# Not found / conflict
# ---------------------------------------------------------------------------


class AccountNotFoundError(AuthError):
    category = ErrorCategory.not_found
    code = "account_not_found"
    message = "Account not found."


class AccountAlreadyExistsError(AuthError):
    category = ErrorCategory.conflict
    code = "account_exists"
    message = "An account with that email already exists."


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class SaltGenerationError(AuthError):
    code = "salt_generation_failed"
    message = "Error generating salt."


class HashingError(AuthError):
    code = "hashing_failed"
    message = "Error hashing password."


class TokenSigningError(AuthError):
    code = "token_signing_failed"
    message = "Error signing token."


class StoreError(AuthError):
    code = "store_unavailable"
    message = "User store operation failed."
