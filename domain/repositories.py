from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from .models import Account, Content, Like, ScoreEntry, ScoreIdentity, Vote


class SequenceRepository(Protocol):
    """Named integer counters used to hand out identifiers."""

    def next(self, name: str) -> int:
        """
        Atomically increment the counter `name` and return the new value.

        A missing counter starts at 0, so the first call returns 1. Two
        concurrent calls for the same name never return the same value.
        """

        ...


class AccountRepository(Protocol):
    """
    Persistence abstraction for player accounts.

    Every mutating method is a single conditional write so that callers
    never need a separate read to enforce an invariant.
    """

    def get(self, account_id: str) -> Optional[Account]:
        ...

    def get_many(self, account_ids: Iterable[str]) -> Dict[str, Account]:
        """Return the accounts that exist among `account_ids`, keyed by ID."""

        ...

    def create(self, account: Account) -> bool:
        """Insert `account`. Returns False if the account ID is already taken."""

        ...

    def replace_password(
        self,
        account_id: str,
        expected_password: str,
        new_password: str,
    ) -> bool:
        """
        Swap the stored credential only if it still equals `expected_password`.
        """

        ...

    def set_token(self, account_id: str, token: str) -> None:
        ...

    def update_profile(
        self,
        account_id: str,
        token: str,
        name: Optional[str] = None,
        icon: Optional[int] = None,
        password: Optional[str] = None,
    ) -> bool:
        """
        Apply the given (non-None) fields if `token` matches the stored token.

        Returns False when no account has this ID and token.
        """

        ...

    def set_banned(self, account_id: str, banned: bool) -> bool:
        ...


class ScoreRepository(Protocol):
    """
    Storage for leaderboard rows.

    Writes are expressed as insert-if-absent and compare-and-swap so the
    ledger never loses an update when two submissions race.
    """

    def get(self, identity: ScoreIdentity) -> Optional[ScoreEntry]:
        ...

    def add_if_absent(self, entry: ScoreEntry) -> bool:
        """Insert `entry`. Returns False if a row for its identity already exists."""

        ...

    def replace_if_unchanged(self, expected: ScoreEntry, updated: ScoreEntry) -> bool:
        """
        Overwrite the row of `expected.identity` with `updated` only if the
        stored best score and perfect-clear count still equal `expected`'s.
        """

        ...

    def list_for_chart(self, chart_hash: str, difficulty: int) -> List[ScoreEntry]:
        ...


class ContentRepository(Protocol):
    def list_all(self) -> List[Content]:
        ...

    def get(self, content_id: int) -> Optional[Content]:
        ...

    def increment_download_count(self, content_id: int) -> bool:
        ...

    def set_vote_average(self, content_id: int, average: float) -> None:
        ...


class VoteRepository(Protocol):
    def list_all(self) -> List[Vote]:
        ...

    def list_for_content(self, content_id: int) -> List[Vote]:
        ...

    def upsert(self, vote: Vote) -> Vote:
        """
        Insert `vote`, or overwrite the existing vote of the same user on the
        same content. An existing vote keeps its ID. Returns the stored vote.
        """

        ...

    def update_owned(self, vote: Vote) -> bool:
        """
        Overwrite vote `vote.id` if it belongs to `vote.user_id` and is a vote
        on `vote.content_id`. A vote never moves to another content item.

        Returns False when there is no such vote.
        """

        ...

    def increment_like_count(self, vote_id: int) -> bool:
        ...


class LikeRepository(Protocol):
    def list_for_user(self, user_id: str) -> List[Like]:
        ...

    def add(self, like: Like) -> None:
        ...

    def delete_for_vote(self, vote_id: int) -> int:
        """Delete every like of `vote_id`, returning how many were removed."""

        ...


@dataclass
class Repositories:
    """All storage collaborators of the service, built once at startup."""

    accounts: AccountRepository
    scores: ScoreRepository
    sequences: SequenceRepository
    contents: ContentRepository
    votes: VoteRepository
    likes: LikeRepository
