from __future__ import annotations

import hmac
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from application.errors import Failure
from domain.models import Account
from domain.repositories import AccountRepository

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(hours=24)


@dataclass
class AuthorizationResult:
    success: bool
    failure: Optional[Failure] = None
    error_message: Optional[str] = None
    account: Optional[Account] = None


class TokenIssuer:
    """
    Mints login tokens and checks them before ledger writes.

    Each account stores exactly one current token. Issuing a new one
    replaces the previous token, so only the latest login can submit
    scores. Expiry is carried in the signed `exp` claim; write
    authorisation compares against the stored token only.
    """

    def __init__(
        self,
        secret: str,
        account_repo: AccountRepository,
        lifetime: timedelta = TOKEN_LIFETIME,
    ) -> None:
        self._secret = secret
        self._account_repo = account_repo
        self._lifetime = lifetime

    def issue(self, account: Account) -> str:
        now = datetime.now(timezone.utc)
        # `jti` keeps two logins within the same second from sharing a token.
        claims = {
            "aid": account.account_id,
            "iat": now,
            "exp": now + self._lifetime,
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(
            claims,
            self._secret,
            algorithm=ALGORITHM,
        )
        self._account_repo.set_token(account.account_id, token)
        account.token = token
        return token

    def authorize_for_write(
        self,
        account_id: str,
        presented_token: Optional[str],
    ) -> AuthorizationResult:
        account = self._account_repo.get(account_id) if account_id else None
        if (
            account is None
            or not account.token
            or not presented_token
            or not hmac.compare_digest(
                account.token.encode("utf-8"), presented_token.encode("utf-8")
            )
        ):
            logger.info("Rejected write for %s: invalid token", account_id)
            return AuthorizationResult(
                success=False,
                failure=Failure.INVALID_TOKEN,
                error_message="Your account login token is invalid.",
            )

        if account.banned:
            logger.info("Rejected write for %s: account is banned", account_id)
            return AuthorizationResult(
                success=False,
                failure=Failure.BANNED,
                error_message="You cannot perform this action because your account is banned.",
            )

        return AuthorizationResult(success=True, account=account)
