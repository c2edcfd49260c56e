"""
API request and response models for the account service REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Credential shape rules (email pattern, password strength) are NOT repeated
here: they belong to auth.validation.CredentialPolicy so the CLI and the API
enforce the same policy. Fields here only bound sizes.

Responses never carry password_hash, salt or security_answer.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Account, Role, TokenPair

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class SignUpRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)
    name: str = Field(default="", max_length=255)
    surname: str = Field(default="", max_length=255)
    phone: str = Field(default="", max_length=50)
    question: str = Field(default="", max_length=1000)
    answer: str = Field(default="", max_length=1000)


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/users/me and /users/{id}.

    Omitted or empty fields are left unchanged. role and points are not
    accepted at all (extra="ignore" drops them silently).
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, max_length=255)
    surname: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    question: Optional[str] = Field(default=None, max_length=1000)
    answer: Optional[str] = Field(default=None, max_length=1000)

    def to_fields(self) -> dict:
        """Map wire names onto Account field names."""
        return {
            "name": self.name,
            "surname": self.surname,
            "email": self.email,
            "phone": self.phone,
            "security_question": self.question,
            "security_answer": self.answer,
        }


class PasswordChange(BaseModel):
    """Request body for PATCH /api/v1/users/me/password."""

    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    surname: str
    email: str
    phone: str
    role: Role
    question: str
    points: int

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            name=account.name,
            surname=account.surname,
            email=account.email,
            phone=account.phone,
            role=account.role,
            question=account.security_question,
            points=account.points,
        )


class TokenResponse(BaseModel):
    """Access + refresh pair returned by login and refresh."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    access_expires_at: int
    refresh_expires_at: int

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(
            access_token=pair.access.token,
            refresh_token=pair.refresh.token,
            access_expires_at=int(pair.access.expires_at.timestamp()),
            refresh_expires_at=int(pair.refresh.expires_at.timestamp()),
        )


class SignUpResponse(TokenResponse):
    """Response for POST /api/v1/auth/signup: the new account plus its tokens."""

    user: AccountResponse


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
