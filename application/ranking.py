from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from application.errors import Failure
from application.tokens import TokenIssuer
from domain.models import AccountProfile, RankedEntry, ScoreEntry, ScoreIdentity
from domain.repositories import AccountRepository, ScoreRepository

logger = logging.getLogger(__name__)

DEFAULT_RANKING_LIMIT = 200


class SubmissionOutcome(Enum):
    CREATED = "created"
    CREATED_PERFECT = "created_perfect"
    UPDATED = "updated"
    UPDATED_PERFECT = "updated_perfect"
    NO_CHANGE = "no_change"

    @property
    def created(self) -> bool:
        return self in (SubmissionOutcome.CREATED, SubmissionOutcome.CREATED_PERFECT)

    @property
    def perfect(self) -> bool:
        return self in (
            SubmissionOutcome.CREATED_PERFECT,
            SubmissionOutcome.UPDATED_PERFECT,
        )


@dataclass
class SubmissionResult:
    success: bool
    failure: Optional[Failure] = None
    error_message: Optional[str] = None
    outcome: Optional[SubmissionOutcome] = None
    entry: Optional[ScoreEntry] = None


@dataclass
class RankingResult:
    success: bool
    failure: Optional[Failure] = None
    error_message: Optional[str] = None
    entries: List[RankedEntry] = field(default_factory=list)


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def apply_submission(
    existing: ScoreEntry,
    score: int,
    max_score: int,
    today: str,
) -> Tuple[ScoreEntry, SubmissionOutcome]:
    """
    Apply one submission to an existing row without touching storage.

    Two independent rules, both of which may fire:
    - a higher score replaces the best score;
    - a score equal to `max_score` adds one perfect clear.
    Either rule moves the last-played date to `today`.
    """

    updated = replace(existing)
    changed = False
    perfect = False

    if score > existing.best_score:
        updated.best_score = score
        updated.last_played_date = today
        changed = True

    if score == max_score:
        updated.perfect_clear_count = existing.perfect_clear_count + 1
        updated.last_played_date = today
        changed = True
        perfect = True

    if not changed:
        return existing, SubmissionOutcome.NO_CHANGE
    if perfect:
        return updated, SubmissionOutcome.UPDATED_PERFECT
    return updated, SubmissionOutcome.UPDATED


def submit_score(
    song_title: str,
    difficulty: Optional[int],
    chart_hash: str,
    account_id: str,
    account_token: str,
    score: Optional[int],
    max_score: Optional[int],
    score_repo: ScoreRepository,
    token_issuer: TokenIssuer,
    today: Optional[str] = None,
) -> SubmissionResult:
    """
    Record a play on the leaderboard.

    The caller's token is checked before the submission is even validated.
    The row update is an optimistic compare-and-swap: if another submission
    for the same player and chart lands between our read and our write,
    the write is refused and the rules are applied again to the fresh row.
    """

    authorization = token_issuer.authorize_for_write(account_id, account_token)
    if not authorization.success:
        return SubmissionResult(
            success=False,
            failure=authorization.failure,
            error_message=authorization.error_message,
        )

    if (
        not song_title
        or not chart_hash
        or difficulty is None
        or score is None
        or max_score is None
    ):
        return SubmissionResult(
            success=False,
            failure=Failure.MISSING_FIELDS,
            error_message=(
                "songTitle, difficulty, chartHash, score, and maxScore are required."
            ),
        )

    if score < 0 or max_score < 0:
        return SubmissionResult(
            success=False,
            failure=Failure.INVALID_FIELDS,
            error_message="score and maxScore must not be negative.",
        )

    today = today or _today()
    identity = ScoreIdentity(
        song_title=song_title,
        difficulty=difficulty,
        chart_hash=chart_hash,
        account_id=account_id,
    )
    is_perfect = score == max_score

    while True:
        existing = score_repo.get(identity)

        if existing is None:
            entry = ScoreEntry(
                identity=identity,
                best_score=score,
                perfect_clear_count=1 if is_perfect else 0,
                last_played_date=today,
            )
            if score_repo.add_if_absent(entry):
                outcome = (
                    SubmissionOutcome.CREATED_PERFECT
                    if is_perfect
                    else SubmissionOutcome.CREATED
                )
                logger.info("New score %s for %s: %s", score, identity, outcome.value)
                return SubmissionResult(success=True, outcome=outcome, entry=entry)
            continue

        updated, outcome = apply_submission(existing, score, max_score, today)
        if outcome is SubmissionOutcome.NO_CHANGE:
            return SubmissionResult(success=True, outcome=outcome, entry=existing)

        if score_repo.replace_if_unchanged(existing, updated):
            logger.info("Updated score for %s: %s", identity, outcome.value)
            return SubmissionResult(success=True, outcome=outcome, entry=updated)

        logger.debug("Concurrent update on %s, retrying", identity)


def _ranking_key(entry: ScoreEntry):
    return (
        -entry.best_score,
        -entry.perfect_clear_count,
        entry.identity.account_id,
        entry.identity.song_title,
    )


def top_entries(
    chart_hash: Optional[str],
    difficulty: Optional[int],
    score_repo: ScoreRepository,
    account_repo: AccountRepository,
    limit: int = DEFAULT_RANKING_LIMIT,
) -> RankingResult:
    """
    Build the public leaderboard of one chart.

    Rows are ordered by best score, then perfect clears, both descending,
    and cut to `limit` before banned players are removed. Rows whose
    account no longer exists stay in the list without profile data.
    """

    chart_hash = chart_hash.strip() if chart_hash else chart_hash
    if not chart_hash or difficulty is None:
        return RankingResult(
            success=False,
            failure=Failure.MISSING_PARAMETERS,
            error_message="chartHash and difficulty are required.",
        )

    rows = sorted(score_repo.list_for_chart(chart_hash, difficulty), key=_ranking_key)
    rows = rows[:limit]

    accounts = account_repo.get_many({row.identity.account_id for row in rows})

    entries: List[RankedEntry] = []
    for row in rows:
        account = accounts.get(row.identity.account_id)
        if account is not None and account.banned:
            continue

        profile = (
            AccountProfile(name=account.name, icon=account.icon)
            if account is not None
            else None
        )
        entries.append(
            RankedEntry(
                score=row.best_score,
                perfect_clear_count=row.perfect_clear_count,
                date=row.last_played_date,
                account=profile,
            )
        )

    return RankingResult(success=True, entries=entries)
