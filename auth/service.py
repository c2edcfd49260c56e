"""
auth/service.py -- Account lifecycle orchestration.

AccountService wires the credential policy, the password encryptor, the token
service and the account store into the operations the API exposes: login,
sign-up, token refresh, security-question reset, password change, profile
read/update and deletion.

Error policy: every child failure propagates unchanged. The orchestrator adds
no retries and swallows nothing; the HTTP layer maps AuthError categories to
status codes.

Authorization (who may act on which account id) is NOT checked here. The caller
holds the AuthenticatedIdentity and applies ensure_owner_or_elevated() before
calling in; see auth/dependencies.py.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Mapping
from typing import Any

from auth.encryption import PasswordEncryptor
from auth.errors import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    InvalidCredentialsError,
    WrongAnswerError,
)
from auth.models import Account, AuthenticatedIdentity, Role, SignUpProfile, SignUpResult, TokenPair
from auth.store import AccountStore
from auth.tokens import TokenService
from auth.validation import CredentialPolicy

logger = logging.getLogger("storybook.accounts")

# Fields an account owner may change through update_profile(). role, points and
# credentials have their own paths (or none at all).
PROFILE_FIELDS = ("name", "surname", "email", "phone", "security_question", "security_answer")


class AccountService:
    def __init__(
        self,
        store: AccountStore,
        encryptor: PasswordEncryptor,
        policy: CredentialPolicy,
        tokens: TokenService,
    ) -> None:
        self.store = store
        self.encryptor = encryptor
        self.policy = policy
        self.tokens = tokens

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> TokenPair:
        """Verify email + password and issue an access/refresh pair.

        An unknown email still costs one bcrypt verification before
        AccountNotFoundError is raised, so timing does not separate the two
        failure modes.
        """
        try:
            account = self.store.read_by_email(email)
        except AccountNotFoundError:
            self.encryptor.burn_time(password)
            logger.info("Login failed: unknown email")
            raise
        try:
            self.encryptor.verify_password(account.password_hash, password, account.salt)
        except InvalidCredentialsError:
            logger.info("Login failed: bad password for account %s", account.id)
            raise
        return self.tokens.issue_pair(account.id, account.role)

    def sign_up(self, profile: SignUpProfile) -> SignUpResult:
        """Create a client account and log it in.

        Order: duplicate check, email shape, password strength, hash, persist,
        issue tokens. No tokens exist unless the account was committed.
        """
        try:
            self.store.read_by_email(profile.email)
        except AccountNotFoundError:
            pass
        else:
            raise AccountAlreadyExistsError()

        self.policy.validate_email(profile.email)
        self.policy.validate_password_strength(profile.password)
        password_hash, salt = self.encryptor.hash_password(profile.password)

        account = Account(
            id=str(uuid.uuid4()),
            email=profile.email,
            password_hash=password_hash,
            salt=salt,
            role=Role.CLIENT,
            name=profile.name,
            surname=profile.surname,
            phone=profile.phone,
            security_question=profile.security_question,
            security_answer=profile.security_answer,
            points=0,
        )
        self.store.create(account)
        created = self.store.read_by_id(account.id)
        logger.info("Account %s created", created.id)
        return SignUpResult(account=created, tokens=self.tokens.issue_pair(created.id, created.role))

    def refresh_tokens(self, identity: AuthenticatedIdentity) -> TokenPair:
        """Re-issue tokens for an identity the gate already verified. No store access."""
        return self.tokens.issue_pair(identity.subject, identity.role)

    # ------------------------------------------------------------------
    # Password recovery and change
    # ------------------------------------------------------------------

    def reset_password(self, account_id: str, answer: str) -> None:
        """Check the security answer. Success authorizes a following change_password().

        Plain equality against the stored answer; nothing is mutated.
        """
        # TODO: hash security answers like passwords once existing rows are migrated.
        account = self.store.read_by_id(account_id)
        if answer != account.security_answer:
            logger.warning("Wrong security answer for account %s", account_id)
            raise WrongAnswerError()

    def change_password(self, account_id: str, new_password: str) -> None:
        self.policy.validate_password_strength(new_password)
        password_hash, salt = self.encryptor.hash_password(new_password)
        account = self.store.read_by_id(account_id)
        self.store.update(dataclasses.replace(account, password_hash=password_hash, salt=salt))
        logger.info("Password changed for account %s", account_id)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_account(self, account_id: str) -> Account:
        return self.store.read_by_id(account_id)

    def update_profile(self, account_id: str, fields: Mapping[str, Any]) -> Account:
        """Apply the non-empty allowed fields; everything else is ignored.

        A new email must pass the email policy; uniqueness is enforced by the
        store and surfaces as AccountAlreadyExistsError.
        """
        changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS and v not in (None, "")}
        account = self.store.read_by_id(account_id)
        if "email" in changes and changes["email"] != account.email:
            self.policy.validate_email(changes["email"])
        if not changes:
            return account
        return self.store.update(dataclasses.replace(account, **changes))

    def delete_account(self, account_id: str) -> None:
        self.store.delete(account_id)
        logger.info("Account %s deleted", account_id)
