from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from application.errors import Failure
from application.passwords import (
    MAX_PASSWORD_LENGTH,
    hash_password,
    matches_plaintext,
    verify_password,
)
from application.tokens import TokenIssuer
from domain.models import Account
from domain.repositories import AccountRepository

logger = logging.getLogger(__name__)


@dataclass
class AccountResult:
    """Result of an account operation. `account` is set on success."""

    success: bool
    failure: Optional[Failure] = None
    error_message: Optional[str] = None
    account: Optional[Account] = None


@dataclass
class LoginResult:
    success: bool
    failure: Optional[Failure] = None
    error_message: Optional[str] = None
    account: Optional[Account] = None
    token: Optional[str] = None


def _password_too_long() -> AccountResult:
    return AccountResult(
        success=False,
        failure=Failure.INVALID_FIELDS,
        error_message=f"password must be at most {MAX_PASSWORD_LENGTH} characters.",
    )


def register_account(
    account_id: str,
    raw_password: str,
    account_repo: AccountRepository,
    name: Optional[str] = None,
    icon: Optional[int] = None,
) -> AccountResult:
    """
    Create a new account with a hashed password.

    The display name defaults to the account ID and the icon to 0. The
    uniqueness check is the store's insert, so two concurrent registrations
    of the same ID cannot both succeed.
    """

    if not account_id or not raw_password:
        return AccountResult(
            success=False,
            failure=Failure.MISSING_FIELDS,
            error_message="accountId and password are required.",
        )

    if len(raw_password) > MAX_PASSWORD_LENGTH:
        return _password_too_long()

    account = Account(
        account_id=account_id,
        password=hash_password(raw_password),
        name=name if name is not None else account_id,
        icon=icon if icon is not None else 0,
    )
    if not account_repo.create(account):
        return AccountResult(
            success=False,
            failure=Failure.DUPLICATE_ACCOUNT,
            error_message="Account ID already exists.",
        )

    logger.info("Registered account %s", account_id)
    return AccountResult(success=True, account=account)


def authenticate(
    account_id: str,
    raw_password: Optional[str],
    account_repo: AccountRepository,
) -> AccountResult:
    """
    Check an account ID / password pair.

    Banned accounts are refused before the password is looked at. A
    credential stored as plaintext by the old system is accepted once by
    direct comparison and immediately replaced by its hash.
    """

    account = account_repo.get(account_id) if account_id else None
    if account is None:
        return AccountResult(
            success=False,
            failure=Failure.ACCOUNT_NOT_FOUND,
            error_message="Account not found.",
        )

    if account.banned:
        return AccountResult(
            success=False,
            failure=Failure.BANNED,
            error_message="This account has been banned.",
        )

    if not isinstance(raw_password, str) or len(raw_password) > MAX_PASSWORD_LENGTH:
        logger.warning("Rejected malformed password input for %s", account_id)
        return AccountResult(
            success=False,
            failure=Failure.INVALID_CREDENTIAL,
            error_message="Invalid password.",
        )

    try:
        is_match = verify_password(raw_password, account.password)
    except ValueError:
        # Not a recognised hash: a legacy plaintext credential.
        is_match = False
        if matches_plaintext(raw_password, account.password):
            _migrate_plaintext_password(account, raw_password, account_repo)
            is_match = True

    if not is_match:
        return AccountResult(
            success=False,
            failure=Failure.INVALID_CREDENTIAL,
            error_message="Wrong password.",
        )

    return AccountResult(success=True, account=account)


def _migrate_plaintext_password(
    account: Account,
    raw_password: str,
    account_repo: AccountRepository,
) -> None:
    new_hash = hash_password(raw_password)
    if account_repo.replace_password(account.account_id, account.password, new_hash):
        account.password = new_hash
        logger.info("Migrated plaintext password of %s to a hash", account.account_id)
        return

    # A concurrent login migrated it first; report what is stored now.
    stored = account_repo.get(account.account_id)
    if stored is not None:
        account.password = stored.password


def login(
    account_id: str,
    raw_password: Optional[str],
    account_repo: AccountRepository,
    token_issuer: TokenIssuer,
) -> LoginResult:
    """Authenticate and issue a fresh token, replacing any previous one."""

    result = authenticate(account_id, raw_password, account_repo)
    if not result.success:
        logger.info("Login failed for %s: %s", account_id, result.failure.code)
        return LoginResult(
            success=False,
            failure=result.failure,
            error_message=result.error_message,
        )

    token = token_issuer.issue(result.account)
    logger.info("Login succeeded for %s", account_id)
    return LoginResult(success=True, account=result.account, token=token)


def update_account(
    account_id: str,
    token: str,
    account_repo: AccountRepository,
    name: Optional[str] = None,
    icon: Optional[int] = None,
    raw_password: Optional[str] = None,
) -> AccountResult:
    """
    Change the profile fields that were provided, given the current token.

    An unknown account and a wrong token produce the same failure so the
    response does not reveal which account IDs exist.
    """

    if not account_id or not token:
        return AccountResult(
            success=False,
            failure=Failure.MISSING_FIELDS,
            error_message="accountId and token are required.",
        )

    if raw_password is not None and len(raw_password) > MAX_PASSWORD_LENGTH:
        return _password_too_long()

    password = hash_password(raw_password) if raw_password is not None else None
    updated = account_repo.update_profile(
        account_id,
        token,
        name=name,
        icon=icon,
        password=password,
    )
    if not updated:
        return AccountResult(
            success=False,
            failure=Failure.NOT_FOUND_OR_UNAUTHORIZED,
            error_message="Account not found or invalid token.",
        )

    return AccountResult(success=True, account=account_repo.get(account_id))
