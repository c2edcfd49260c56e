"""
auth/models.py -- Domain dataclasses for accounts, identities and tokens.

Pattern: Data class (pure data container, zero logic). The store maps rows to
Account; the token service produces IssuedToken / TokenPair; the gate produces
AuthenticatedIdentity. Routes map these to the pydantic models in api/models.py.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Values are the strings stored and signed into tokens."""

    CLIENT = "client"
    ADMIN = "admin"

    @property
    def is_elevated(self) -> bool:
        return self is not Role.CLIENT


@dataclass
class Account:
    """A user account as held by the user store.

    password_hash is the bcrypt output over salt + password; salt is the random
    string generated for that hash. The cleartext password never lands here.

    security_answer is stored and compared in plaintext. This is a known
    weakness kept for compatibility with existing records.

    deleted_at is set by a soft delete; the store never returns such rows.
    """

    id: str
    email: str
    password_hash: str
    salt: str
    role: Role = Role.CLIENT
    name: str = ""
    surname: str = ""
    phone: str = ""
    security_question: str = ""
    security_answer: str = ""
    points: int = 0
    created_at: str | None = None
    deleted_at: str | None = None


@dataclass
class SignUpProfile:
    """Everything a new user supplies at sign-up. Role and points are not here."""

    email: str
    password: str
    name: str = ""
    surname: str = ""
    phone: str = ""
    security_question: str = ""
    security_answer: str = ""


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The only facts the gate extracts from a verified token."""

    subject: str
    role: Role


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access: IssuedToken
    refresh: IssuedToken


@dataclass(frozen=True)
class SignUpResult:
    account: Account
    tokens: TokenPair
