from __future__ import annotations

from enum import Enum


class ErrorCategory(Enum):
    """Broad failure classes; the interface layer maps these to status codes."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"


class Failure(Enum):
    """
    Expected, user-facing reasons an operation can fail.

    Unexpected problems (database unreachable, driver errors) are not listed
    here: they are raised as exceptions and handled by the interface layer.
    """

    MISSING_FIELDS = ("missing_fields", ErrorCategory.VALIDATION)
    MISSING_PARAMETERS = ("missing_parameters", ErrorCategory.VALIDATION)
    INVALID_FIELDS = ("invalid_fields", ErrorCategory.VALIDATION)
    ACCOUNT_NOT_FOUND = ("account_not_found", ErrorCategory.NOT_FOUND)
    NOT_FOUND_OR_UNAUTHORIZED = ("not_found_or_unauthorized", ErrorCategory.NOT_FOUND)
    VOTE_NOT_FOUND = ("vote_not_found", ErrorCategory.NOT_FOUND)
    INVALID_CREDENTIAL = ("invalid_credential", ErrorCategory.AUTHENTICATION)
    INVALID_TOKEN = ("invalid_token", ErrorCategory.AUTHORIZATION)
    BANNED = ("banned", ErrorCategory.AUTHORIZATION)
    DUPLICATE_ACCOUNT = ("duplicate_account", ErrorCategory.CONFLICT)

    def __init__(self, code: str, category: ErrorCategory) -> None:
        self.code = code
        self.category = category
