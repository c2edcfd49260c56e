"""
auth/encryption.py -- Salted one-way password hashing.

Security design decisions:
  Salt: `salt_length` bytes from the OS CSPRNG (secrets.token_bytes), base64
       encoded and cut to `salt_length` printable characters. A fresh salt is
       generated for every hash and stored next to it.

  Hash: bcrypt over salt + password. bcrypt embeds its own internal salt and
       cost factor, so the stored hash is self-describing; the outer salt is
       kept for compatibility with existing records. The cost is fixed by
       configuration (BCRYPT_ROUNDS).

  Verify: never decrypts. Recomputes salt + password and lets bcrypt.checkpw
       compare in constant time. Any mismatch -- wrong password, wrong salt,
       unusable stored hash -- raises the same InvalidCredentialsError.

  bcrypt reads at most 72 bytes of input. salt + password longer than that is
  refused, never cut. CredentialPolicy rejects such passwords before they
  reach this module.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import base64
import logging
import secrets

import bcrypt

from auth.errors import HashingError, InvalidCredentialsError, SaltGenerationError

logger = logging.getLogger("storybook.auth")

BCRYPT_MAX_BYTES = 72


def _material(salt: str, password: str) -> bytes:
    return (salt + password).encode("utf-8")


class PasswordEncryptor:
    """Generates salts, hashes passwords and verifies them.

    Holds only immutable configuration, so one instance is shared by every
    request thread.

    Usage:
        enc = PasswordEncryptor(salt_length=16, rounds=12)
        hashed, salt = enc.hash_password("Valid123")
        enc.verify_password(hashed, "Valid123", salt)   # returns None
        enc.verify_password(hashed, "wrong", salt)      # raises InvalidCredentialsError
    """

    def __init__(self, salt_length: int = 16, rounds: int = 12) -> None:
        if salt_length < 1:
            raise ValueError("salt_length must be at least 1")
        self.salt_length = salt_length
        self.rounds = rounds
        self._dummy_hash: bytes | None = None

    def generate_salt(self, length: int | None = None) -> str:
        """Return `length` printable characters derived from CSPRNG bytes."""
        n = length if length is not None else self.salt_length
        try:
            raw = secrets.token_bytes(n)
        except (OSError, NotImplementedError) as exc:
            raise SaltGenerationError() from exc
        return base64.b64encode(raw).decode("ascii")[:n]

    def hash_password(self, password: str) -> tuple[str, str]:
        """Return (hash, salt). The salt is generated for this hash only."""
        salt = self.generate_salt()
        material = _material(salt, password)
        if len(material) > BCRYPT_MAX_BYTES:
            raise HashingError(f"Password too long: salt + password exceeds {BCRYPT_MAX_BYTES} bytes.")
        try:
            hashed = bcrypt.hashpw(material, bcrypt.gensalt(rounds=self.rounds))
        except (ValueError, TypeError) as exc:
            raise HashingError(f"Error hashing password: {exc}") from exc
        return hashed.decode("utf-8"), salt

    def verify_password(self, hashed: str, password: str, salt: str) -> None:
        """Raise InvalidCredentialsError unless salt + password matches hashed."""
        material = _material(salt, password)
        if len(material) > BCRYPT_MAX_BYTES:
            # Nothing this long was ever hashed.
            raise InvalidCredentialsError()
        try:
            ok = bcrypt.checkpw(material, hashed.encode("utf-8"))
        except (ValueError, TypeError) as exc:
            # Corrupt or foreign stored hash; indistinguishable from a mismatch.
            raise InvalidCredentialsError() from exc
        if not ok:
            raise InvalidCredentialsError()

    def burn_time(self, password: str) -> None:
        """Spend one bcrypt verification on a dummy hash.

        Called when the account does not exist so the response time matches a
        wrong-password attempt. The dummy is computed lazily once per instance
        so the first unknown-email login is not measurably slower than the rest.
        """
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"storybook_timing_dummy", bcrypt.gensalt(rounds=self.rounds))
        bcrypt.checkpw(_material("", password)[:BCRYPT_MAX_BYTES], self._dummy_hash)
