import unittest

from application.errors import Failure
from application.votes import (
    edit_vote,
    like_vote,
    post_vote,
    recompute_vote_average,
    recompute_vote_average_in_background,
)
from domain.models import Content
from in_memory_repositories import (
    InMemoryContentRepository,
    InMemoryLikeRepository,
    InMemorySequenceRepository,
    InMemoryVoteRepository,
)


class FailingVoteRepository(InMemoryVoteRepository):
    def list_for_content(self, content_id: int):
        raise RuntimeError("database unavailable")


class VoteServicesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.vote_repo = InMemoryVoteRepository()
        self.like_repo = InMemoryLikeRepository()
        self.sequence_repo = InMemorySequenceRepository()
        self.content_repo = InMemoryContentRepository()
        self.content_repo.add(Content(id=1, content_type=0, date="2024-01-01"))
        self.content_repo.add(Content(id=2, content_type=0, date="2024-01-01"))

    def vote(self, content_id, user_id, score, **kwargs):
        return post_vote(
            content_id,
            user_id,
            score,
            self.vote_repo,
            self.sequence_repo,
            **kwargs,
        )

    def test_post_vote_assigns_sequential_ids(self):
        first = self.vote(1, "alice", 4)
        second = self.vote(1, "bob", 2)
        self.assertEqual(first.vote.id, 1)
        self.assertEqual(second.vote.id, 2)

    def test_revote_overwrites_same_content_only(self):
        original = self.vote(1, "alice", 4, comment="nice")
        self.vote(2, "alice", 1)
        revote = self.vote(1, "alice", 5, comment="even better")

        self.assertEqual(revote.vote.id, original.vote.id)
        self.assertEqual([v.score for v in self.vote_repo.list_for_content(1)], [5])
        self.assertEqual([v.score for v in self.vote_repo.list_for_content(2)], [1])

    def test_post_vote_requires_user_and_score(self):
        self.assertIs(self.vote(1, "", 3).failure, Failure.MISSING_FIELDS)
        self.assertIs(self.vote(1, "alice", None).failure, Failure.MISSING_FIELDS)
        self.assertEqual(self.vote_repo.votes, {})

    def test_recompute_average(self):
        self.vote(1, "alice", 4)
        self.vote(1, "bob", 3)
        self.vote(1, "carol", 3)

        average = recompute_vote_average(1, self.vote_repo, self.content_repo)

        self.assertAlmostEqual(average, 10 / 3)
        self.assertAlmostEqual(self.content_repo.get(1).vote_average_score, 10 / 3)

    def test_recompute_without_votes_keeps_previous_average(self):
        self.content_repo.get(2).vote_average_score = 4.5
        self.assertIsNone(recompute_vote_average(2, self.vote_repo, self.content_repo))
        self.assertEqual(self.content_repo.get(2).vote_average_score, 4.5)

    def test_background_recompute_swallows_errors(self):
        with self.assertLogs("application.votes", level="ERROR"):
            recompute_vote_average_in_background(1, FailingVoteRepository(), self.content_repo)
        self.assertIsNone(self.content_repo.get(1).vote_average_score)

    def test_like_increments_count_and_records_like(self):
        vote = self.vote(1, "alice", 4).vote
        self.assertTrue(like_vote("bob", vote.id, self.vote_repo, self.like_repo).success)
        self.assertTrue(like_vote("bob", vote.id, self.vote_repo, self.like_repo).success)

        self.assertEqual(self.vote_repo.votes[vote.id].like_count, 2)
        self.assertEqual(len(self.like_repo.list_for_user("bob")), 2)

    def test_like_unknown_vote(self):
        result = like_vote("bob", 99, self.vote_repo, self.like_repo)
        self.assertIs(result.failure, Failure.VOTE_NOT_FOUND)
        self.assertEqual(self.like_repo.likes, [])

    def test_edit_vote_resets_likes(self):
        vote = self.vote(1, "alice", 4).vote
        like_vote("bob", vote.id, self.vote_repo, self.like_repo)

        result = edit_vote(1, vote.id, "alice", 2, self.vote_repo, self.like_repo, comment="meh")

        self.assertTrue(result.success)
        stored = self.vote_repo.votes[vote.id]
        self.assertEqual(stored.score, 2)
        self.assertEqual(stored.comment, "meh")
        self.assertEqual(stored.like_count, 0)
        self.assertEqual(self.like_repo.list_for_user("bob"), [])

    def test_edit_vote_of_another_user_fails(self):
        vote = self.vote(1, "alice", 4).vote
        like_vote("bob", vote.id, self.vote_repo, self.like_repo)

        result = edit_vote(1, vote.id, "mallory", 1, self.vote_repo, self.like_repo)

        self.assertIs(result.failure, Failure.VOTE_NOT_FOUND)
        self.assertEqual(self.vote_repo.votes[vote.id].score, 4)
        self.assertEqual(len(self.like_repo.likes), 1)

    def test_edit_vote_under_other_content_fails(self):
        first = self.vote(1, "alice", 4).vote
        self.vote(2, "alice", 3)

        result = edit_vote(2, first.id, "alice", 5, self.vote_repo, self.like_repo)

        self.assertIs(result.failure, Failure.VOTE_NOT_FOUND)
        self.assertEqual([v.score for v in self.vote_repo.list_for_content(1)], [4])
        self.assertEqual([v.score for v in self.vote_repo.list_for_content(2)], [3])


if __name__ == "__main__":
    unittest.main()
