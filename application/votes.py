from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from application.errors import Failure
from domain.models import Like, Vote
from domain.repositories import (
    ContentRepository,
    LikeRepository,
    SequenceRepository,
    VoteRepository,
)

logger = logging.getLogger(__name__)

VOTE_SEQUENCE = "voteId"


@dataclass
class VoteResult:
    success: bool
    failure: Optional[Failure] = None
    error_message: Optional[str] = None
    vote: Optional[Vote] = None


@dataclass
class OperationResult:
    """Generic result type for simple operations."""

    success: bool
    failure: Optional[Failure] = None
    error_message: Optional[str] = None


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def post_vote(
    content_id: int,
    user_id: str,
    score: Optional[float],
    vote_repo: VoteRepository,
    sequence_repo: SequenceRepository,
    name: Optional[str] = None,
    comment: Optional[str] = None,
    like_count: int = 0,
    date: Optional[str] = None,
) -> VoteResult:
    """
    Rate a content item.

    A user has one vote per content item: voting again overwrites the
    previous rating and comment but keeps the vote's ID.
    """

    if not user_id or score is None:
        return VoteResult(
            success=False,
            failure=Failure.MISSING_FIELDS,
            error_message="userId and score are required.",
        )

    vote = Vote(
        id=sequence_repo.next(VOTE_SEQUENCE),
        content_id=content_id,
        user_id=user_id,
        name=name,
        score=score,
        comment=comment,
        like_count=like_count,
        date=date or _today(),
    )
    stored = vote_repo.upsert(vote)
    return VoteResult(success=True, vote=stored)


def edit_vote(
    content_id: int,
    vote_id: Optional[int],
    user_id: str,
    score: Optional[float],
    vote_repo: VoteRepository,
    like_repo: LikeRepository,
    name: Optional[str] = None,
    comment: Optional[str] = None,
    date: Optional[str] = None,
) -> VoteResult:
    """
    Edit an existing vote owned by `user_id`.

    Editing resets the vote's like count to 0 and forgets who liked it.
    """

    if vote_id is None or not user_id or score is None:
        return VoteResult(
            success=False,
            failure=Failure.MISSING_FIELDS,
            error_message="id, userId and score are required.",
        )

    vote = Vote(
        id=vote_id,
        content_id=content_id,
        user_id=user_id,
        name=name,
        score=score,
        comment=comment,
        like_count=0,
        date=date or _today(),
    )
    if not vote_repo.update_owned(vote):
        return VoteResult(
            success=False,
            failure=Failure.VOTE_NOT_FOUND,
            error_message="Vote not found.",
        )

    removed = like_repo.delete_for_vote(vote_id)
    logger.debug("Removed %d likes of edited vote %d", removed, vote_id)
    return VoteResult(success=True, vote=vote)


def like_vote(
    user_id: str,
    vote_id: Optional[int],
    vote_repo: VoteRepository,
    like_repo: LikeRepository,
) -> OperationResult:
    """Record that `user_id` liked a vote. Likes are not deduplicated."""

    if not user_id or vote_id is None:
        return OperationResult(
            success=False,
            failure=Failure.MISSING_FIELDS,
            error_message="userId and voteId are required.",
        )

    if not vote_repo.increment_like_count(vote_id):
        return OperationResult(
            success=False,
            failure=Failure.VOTE_NOT_FOUND,
            error_message="Vote not found.",
        )

    like_repo.add(Like(user_id=user_id, vote_id=vote_id))
    return OperationResult(success=True)


def recompute_vote_average(
    content_id: int,
    vote_repo: VoteRepository,
    content_repo: ContentRepository,
) -> Optional[float]:
    """
    Store the mean vote score on the content item and return it.

    With no votes the stored average is left as it is and None is returned.
    """

    votes = vote_repo.list_for_content(content_id)
    if not votes:
        return None

    average = sum(float(v.score) for v in votes) / len(votes)
    content_repo.set_vote_average(content_id, average)
    return average


def recompute_vote_average_in_background(
    content_id: int,
    vote_repo: VoteRepository,
    content_repo: ContentRepository,
) -> None:
    """
    Best-effort variant run after the response has been sent.

    Nobody waits on it, so failures are only logged.
    """

    try:
        recompute_vote_average(content_id, vote_repo, content_repo)
    except Exception:
        logger.exception("Failed to recompute vote average of content %s", content_id)
