#!/usr/bin/env python3
"""
Storybook accounts -- administrative command line.

Sign-up always creates client accounts, so the first elevated account has to
be created out of band. This tool does that against the configured store,
using the same credential policy and hashing as the API.

Usage:
  python main.py create-admin --email admin@example.com --password 'Str0ngPass'
  python main.py create-admin --email admin@example.com --password 'Str0ngPass' --name Ada --surname Lovelace

Environment variables:
  DATABASE_URL          Store location (default: storybook_accounts.db next to the code)
  SECRET_KEY / DEBUG    Required by Settings; see core/config.py
"""

import argparse
import sys
import uuid

from auth.encryption import PasswordEncryptor
from auth.errors import AuthError
from auth.models import Account, Role
from auth.store import AccountStore
from auth.validation import CredentialPolicy
from core.config import get_settings


def create_admin(store: AccountStore, encryptor: PasswordEncryptor, policy: CredentialPolicy, args) -> Account:
    """Validate, hash and persist an admin account. Raises AuthError on any failure."""
    policy.validate_email(args.email)
    policy.validate_password_strength(args.password)
    password_hash, salt = encryptor.hash_password(args.password)
    account = Account(
        id=str(uuid.uuid4()),
        email=args.email,
        password_hash=password_hash,
        salt=salt,
        role=Role.ADMIN,
        name=args.name,
        surname=args.surname,
    )
    store.create(account)
    return account


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Storybook accounts administration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    admin = sub.add_parser("create-admin", help="Create an account with the admin role.")
    admin.add_argument("--email", required=True, help="Login email for the new admin")
    admin.add_argument("--password", required=True, help="Must satisfy the password policy")
    admin.add_argument("--name", default="", help="Optional first name")
    admin.add_argument("--surname", default="", help="Optional surname")

    args = parser.parse_args(argv)
    settings = get_settings()

    store = AccountStore(settings.database_url, timeout=settings.store_timeout_seconds)
    try:
        account = create_admin(
            store,
            PasswordEncryptor(salt_length=settings.salt_length, rounds=settings.bcrypt_rounds),
            CredentialPolicy(min_password_length=settings.min_password_length, salt_length=settings.salt_length),
            args,
        )
    except AuthError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()

    print(f"  Created admin {account.email} (id {account.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
