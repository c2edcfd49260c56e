"""
auth/validation.py -- Stateless credential shape checks.

Both checks are pure functions of their input and the configured limits. No
DNS or mailbox verification is done for emails.

Password length is bounded on both sides: at least `min_password_length`
characters, and at most what bcrypt can read once the salt is prepended
(72 bytes of UTF-8 in total).
"""

from __future__ import annotations

import re

from auth.encryption import BCRYPT_MAX_BYTES
from auth.errors import BadEmailError, BadPasswordError

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@([a-zA-Z0-9-]+\.)+[a-zA-Z]{2,}$"

_EMAIL_RE = re.compile(EMAIL_PATTERN)


class CredentialPolicy:
    def __init__(self, min_password_length: int = 8, salt_length: int = 16) -> None:
        self.min_password_length = min_password_length
        self.max_password_bytes = BCRYPT_MAX_BYTES - salt_length

    def validate_email(self, email: str) -> None:
        # fullmatch: "$" alone would accept a trailing newline
        if not isinstance(email, str) or not _EMAIL_RE.fullmatch(email):
            raise BadEmailError()

    def validate_password_strength(self, password: str) -> None:
        """Require the length bounds plus one uppercase, one lowercase and one decimal digit.

        Special characters are allowed but not required.
        """
        if not isinstance(password, str) or len(password) < self.min_password_length:
            raise BadPasswordError(f"Password must be at least {self.min_password_length} characters.")
        if len(password.encode("utf-8")) > self.max_password_bytes:
            raise BadPasswordError(f"Password must be at most {self.max_password_bytes} bytes.")
        has_upper = any(c.isupper() for c in password)
        has_lower = any(c.islower() for c in password)
        has_digit = any(c.isdecimal() for c in password)
        if not (has_upper and has_lower and has_digit):
            raise BadPasswordError("Password must contain an uppercase letter, a lowercase letter and a digit.")
