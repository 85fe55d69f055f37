import os
import tempfile
import unittest

from fastapi.testclient import TestClient

from application.tokens import TokenIssuer
from domain.models import Content, SongInfo
from domain.repositories import Repositories
from in_memory_repositories import (
    InMemoryAccountRepository,
    InMemoryContentRepository,
    InMemoryLikeRepository,
    InMemoryScoreRepository,
    InMemorySequenceRepository,
    InMemoryVoteRepository,
)
from infrastructure.db.backends import SQLITE, build_repositories
from interfaces.http.app import create_app


class BrokenScoreRepository(InMemoryScoreRepository):
    def list_for_chart(self, chart_hash, difficulty):
        raise RuntimeError("connection refused to db.internal:5432")


class HttpApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.repos = Repositories(
            accounts=InMemoryAccountRepository(),
            scores=InMemoryScoreRepository(),
            sequences=InMemorySequenceRepository(),
            contents=InMemoryContentRepository(),
            votes=InMemoryVoteRepository(),
            likes=InMemoryLikeRepository(),
        )
        self.issuer = TokenIssuer("secret", self.repos.accounts)
        self.client = TestClient(create_app(self.repos, self.issuer))

    def register_and_login(self, account_id="u1", password="pw"):
        self.client.post("/accounts", json={"accountId": account_id, "password": password})
        response = self.client.post(
            "/accounts/login", json={"accountId": account_id, "password": password}
        )
        return response.json()["token"]


class AccountEndpointTests(HttpApiTestCase):
    def test_register(self):
        response = self.client.post(
            "/accounts", json={"accountId": "u1", "password": "pw", "email": "a@b.c"}
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["account"], {"accountId": "u1", "name": "u1", "icon": 0})
        self.assertNotIn("password", body["account"])

    def test_register_duplicate(self):
        self.client.post("/accounts", json={"accountId": "u1", "password": "pw"})
        response = self.client.post("/accounts", json={"accountId": "u1", "password": "pw2"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_register_rejects_password_that_could_never_log_in(self):
        response = self.client.post("/accounts", json={"accountId": "u1", "password": "x" * 21})
        self.assertEqual(response.status_code, 400)
        self.assertIsNone(self.repos.accounts.get("u1"))

    def test_login_success_and_failures(self):
        self.client.post("/accounts", json={"accountId": "u1", "password": "pw"})

        ok = self.client.post("/accounts/login", json={"accountId": "u1", "password": "pw"})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["account"]["accountId"], "u1")
        self.assertEqual(ok.json()["token"], self.repos.accounts.get("u1").token)

        for payload in (
            {"accountId": "nobody", "password": "pw"},
            {"accountId": "u1", "password": "wrong"},
            {"accountId": "u1", "password": "x" * 30},
            {"accountId": "u1", "password": 42},
            {"accountId": "u1"},
        ):
            response = self.client.post("/accounts/login", json=payload)
            self.assertEqual(response.status_code, 401, payload)

    def test_login_banned(self):
        self.client.post("/accounts", json={"accountId": "u1", "password": "pw"})
        self.repos.accounts.set_banned("u1", True)
        response = self.client.post("/accounts/login", json={"accountId": "u1", "password": "pw"})
        self.assertEqual(response.status_code, 403)

    def test_update_account(self):
        token = self.register_and_login()

        response = self.client.put(
            "/accounts", json={"accountId": "u1", "token": token, "name": "Neo", "icon": 7}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["account"], {"accountId": "u1", "name": "Neo", "icon": 7})

        wrong = self.client.put("/accounts", json={"accountId": "u1", "token": "bad", "name": "X"})
        self.assertEqual(wrong.status_code, 404)
        missing = self.client.put("/accounts", json={"accountId": "u1", "name": "X"})
        self.assertEqual(missing.status_code, 400)

    def test_password_reset_request_is_acknowledged(self):
        response = self.client.post(
            "/accounts/request-password-reset", json={"email": "a@b.c"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])


class RankingEndpointTests(HttpApiTestCase):
    def submission(self, token, **overrides):
        body = {
            "songTitle": "Foo",
            "difficulty": 5,
            "chartHash": "abc",
            "accountId": "u1",
            "accountToken": token,
            "score": 800000,
            "maxScore": 1000000,
        }
        body.update(overrides)
        return body

    def test_submission_flow(self):
        token = self.register_and_login()

        created = self.client.post("/ranking", json=self.submission(token))
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["outcome"], "created")

        perfect = self.client.post("/ranking", json=self.submission(token, score=1000000))
        self.assertEqual(perfect.status_code, 200)
        self.assertEqual(perfect.json()["outcome"], "updated_perfect")

        unchanged = self.client.post("/ranking", json=self.submission(token, score=10))
        self.assertEqual(unchanged.status_code, 200)
        self.assertEqual(unchanged.json()["outcome"], "no_change")

        ranking = self.client.get("/ranking", params={"chartHash": "abc", "difficulty": 5})
        self.assertEqual(ranking.status_code, 200)
        rows = ranking.json()["ranking"]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["score"], 1000000)
        self.assertEqual(rows[0]["abCount"], 1)
        self.assertEqual(rows[0]["account"], {"name": "u1", "icon": 0})
        self.assertNotIn("accountId", rows[0])

    def test_submission_rejections(self):
        token = self.register_and_login()

        forged = self.client.post("/ranking", json=self.submission("forged"))
        self.assertEqual(forged.status_code, 403)

        missing = self.client.post("/ranking", json=self.submission(token, songTitle=None))
        self.assertEqual(missing.status_code, 400)

        self.repos.accounts.set_banned("u1", True)
        banned = self.client.post("/ranking", json=self.submission(token))
        self.assertEqual(banned.status_code, 403)

        self.assertEqual(self.repos.scores.entries, {})

    def test_ranking_requires_parameters(self):
        self.assertEqual(self.client.get("/ranking").status_code, 400)
        self.assertEqual(self.client.get("/ranking", params={"chartHash": "abc"}).status_code, 400)
        self.assertEqual(self.client.get("/ranking", params={"difficulty": 1}).status_code, 400)

    def test_ranking_hides_banned_accounts(self):
        token = self.register_and_login()
        self.client.post("/ranking", json=self.submission(token))
        self.repos.accounts.set_banned("u1", True)

        response = self.client.get("/ranking", params={"chartHash": "abc", "difficulty": 5})
        self.assertEqual(response.json()["ranking"], [])

    def test_store_failure_is_a_generic_500(self):
        self.repos.scores = BrokenScoreRepository()
        client = TestClient(create_app(self.repos, self.issuer), raise_server_exceptions=False)

        response = client.get("/ranking", params={"chartHash": "abc", "difficulty": 5})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["message"], "Internal server error.")
        self.assertNotIn("db.internal", response.text)


class ContentVoteEndpointTests(HttpApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.repos.contents.add(
            Content(
                id=1,
                content_type=0,
                date="2024-01-01",
                title="Song",
                description="A song",
                download_url="https://example.com/song.zip",
                song_info=SongInfo(difficulties=[3, 7], has_lua=False),
            )
        )

    def test_support(self):
        body = self.client.get("/support").json()
        self.assertTrue(body["ranking"])
        self.assertFalse(body["options"]["requireAccountEmail"])

    def test_contents(self):
        listing = self.client.get("/contents").json()["contents"]
        self.assertEqual(listing[0]["title"], "Song")
        self.assertEqual(listing[0]["songInfo"], {"difficulties": [3, 7], "hasLua": False})
        self.assertNotIn("description", listing[0])

        detail = self.client.get("/contents/1").json()["contents"]
        self.assertEqual(detail[0]["downloadUrl"], "https://example.com/song.zip")
        self.assertEqual(self.client.get("/contents/2").json()["contents"], [])

        description = self.client.get("/contents/1/description").json()
        self.assertEqual(description["description"], "A song")

    def test_download_counter(self):
        self.assertEqual(self.client.put("/contents/1/downloaded").status_code, 200)
        self.assertEqual(self.repos.contents.get(1).download_count, 1)
        self.assertEqual(self.client.put("/contents/9/downloaded").status_code, 404)

    def test_votes_update_average_after_response(self):
        self.client.post("/contents/1/vote", json={"userId": "a", "score": 5})
        self.client.post("/contents/1/vote", json={"userId": "b", "score": 2})

        self.assertAlmostEqual(self.repos.contents.get(1).vote_average_score, 3.5)
        votes = self.client.get("/contents/1/vote").json()["votes"]
        self.assertEqual({v["userId"] for v in votes}, {"a", "b"})
        self.assertEqual(len(self.client.get("/votes").json()["votes"]), 2)

    def test_edit_vote_and_likes(self):
        vote = self.client.post("/contents/1/vote", json={"userId": "a", "score": 5}).json()["vote"]

        liked = self.client.put("/likes/b", json={"voteId": vote["id"]})
        self.assertEqual(liked.status_code, 200)
        self.assertEqual(len(self.client.get("/likes/b").json()["likes"]), 1)

        edited = self.client.put(
            "/contents/1/vote", json={"id": vote["id"], "userId": "a", "score": 1}
        )
        self.assertEqual(edited.status_code, 200)
        self.assertEqual(edited.json()["vote"]["like"], 0)
        self.assertEqual(self.client.get("/likes/b").json()["likes"], [])
        self.assertAlmostEqual(self.repos.contents.get(1).vote_average_score, 1.0)

        not_owner = self.client.put(
            "/contents/1/vote", json={"id": vote["id"], "userId": "z", "score": 3}
        )
        self.assertEqual(not_owner.status_code, 404)
        self.assertEqual(self.client.put("/likes/b", json={"voteId": 999}).status_code, 404)

    def test_edit_vote_through_other_content_is_not_found(self):
        self.repos.contents.add(Content(id=2, content_type=0, date="2024-01-01"))
        first = self.client.post("/contents/1/vote", json={"userId": "a", "score": 5}).json()
        self.client.post("/contents/2/vote", json={"userId": "a", "score": 2})

        response = self.client.put(
            "/contents/2/vote", json={"id": first["vote"]["id"], "userId": "a", "score": 1}
        )

        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()["success"])
        self.assertAlmostEqual(self.repos.contents.get(1).vote_average_score, 5.0)
        self.assertAlmostEqual(self.repos.contents.get(2).vote_average_score, 2.0)


class SqliteBackedApiTests(unittest.TestCase):
    def setUp(self) -> None:
        handle, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(handle)
        repos = build_repositories(SQLITE, db_path=self.db_path)
        self.client = TestClient(
            create_app(repos, TokenIssuer("secret", repos.accounts)),
            raise_server_exceptions=False,
        )

    def tearDown(self) -> None:
        os.remove(self.db_path)

    def test_vote_edit_cannot_collide_with_existing_vote(self):
        first = self.client.post("/contents/1/vote", json={"userId": "a", "score": 5}).json()
        self.client.post("/contents/2/vote", json={"userId": "a", "score": 2})

        response = self.client.put(
            "/contents/2/vote", json={"id": first["vote"]["id"], "userId": "a", "score": 1}
        )

        self.assertEqual(response.status_code, 404)
        votes = self.client.get("/votes").json()["votes"]
        self.assertEqual(
            sorted((v["contentId"], v["score"]) for v in votes),
            [(1, 5.0), (2, 2.0)],
        )


if __name__ == "__main__":
    unittest.main()
