from __future__ import annotations

import logging
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from application.accounts import login, register_account, update_account
from application.errors import ErrorCategory, Failure
from application.ranking import SubmissionOutcome, submit_score, top_entries
from application.tokens import TokenIssuer
from application.votes import (
    edit_vote,
    like_vote,
    post_vote,
    recompute_vote_average_in_background,
)
from domain.models import Account, Content, Vote
from domain.repositories import Repositories
from interfaces.http.schemas import (
    AccountResponse,
    AccountView,
    ContentList,
    ContentSummary,
    ContentSummaryList,
    ContentView,
    DescriptionResponse,
    LikeList,
    LikeRequest,
    LikeView,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetRequest,
    ProfileView,
    RankingResponse,
    RankingRow,
    RegisterRequest,
    ScoreSubmissionRequest,
    SongInfoView,
    SubmissionResponse,
    SupportResponse,
    UpdateAccountRequest,
    VoteList,
    VoteRequest,
    VoteResponse,
    VoteView,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Operation was successful."

_CATEGORY_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.CONFLICT: 400,
}

_SUBMISSION_MESSAGES = {
    SubmissionOutcome.CREATED: "Ranking created successfully.",
    SubmissionOutcome.CREATED_PERFECT: "Ranking created successfully. First take all brilliant!",
    SubmissionOutcome.UPDATED: "Ranking updated successfully.",
    SubmissionOutcome.UPDATED_PERFECT: "Ranking updated successfully. All brilliant!",
    SubmissionOutcome.NO_CHANGE: "No ranking update needed.",
}


def _error_response(
    failure: Optional[Failure],
    message: Optional[str],
    status_code: Optional[int] = None,
) -> JSONResponse:
    if status_code is None:
        status_code = _CATEGORY_STATUS[failure.category] if failure else 500
    return JSONResponse(
        {"success": False, "message": message or "Request failed."},
        status_code=status_code,
    )


def _account_view(account: Account) -> AccountView:
    # Never expose the credential or the token here.
    return AccountView(account_id=account.account_id, name=account.name, icon=account.icon)


def _content_summary(content: Content) -> ContentSummary:
    return ContentSummary(**_content_fields(content))


def _content_view(content: Content) -> ContentView:
    return ContentView(
        **_content_fields(content),
        description=content.description,
        download_url=content.download_url,
        image_url=content.image_url,
    )


def _content_fields(content: Content) -> dict:
    song_info = None
    if content.song_info is not None:
        song_info = SongInfoView(
            difficulties=content.song_info.difficulties,
            has_lua=content.song_info.has_lua,
        )
    return {
        "id": content.id,
        "content_type": content.content_type,
        "title": content.title,
        "publisher": content.publisher,
        "date": content.date,
        "download_count": content.download_count,
        "vote_average_score": content.vote_average_score,
        "song_info": song_info,
    }


def _vote_view(vote: Vote) -> VoteView:
    return VoteView(
        id=vote.id,
        content_id=vote.content_id,
        user_id=vote.user_id,
        name=vote.name,
        score=vote.score,
        comment=vote.comment,
        like=vote.like_count,
        date=vote.date,
    )


def create_app(repos: Repositories, token_issuer: TokenIssuer) -> FastAPI:
    """
    Configure and return the FastAPI application wired to the application layer.

    This module contains only HTTP concerns: parsing request bodies,
    calling application services and mapping their results to status
    codes and response schemas.
    """

    app = FastAPI(title="Chart Ranking API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "PUT", "POST", "DELETE"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        logger.info("Malformed request to %s: %s", request.url.path, exc.errors())
        return _error_response(None, "Malformed request.", status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(None, "Internal server error.", status_code=500)

    # Support

    @app.get("/support", response_model=SupportResponse)
    def support():
        return SupportResponse()

    # Contents

    @app.get("/contents", response_model=ContentSummaryList)
    def list_contents():
        contents = repos.contents.list_all()
        return ContentSummaryList(contents=[_content_summary(c) for c in contents])

    @app.get("/contents/{content_id}", response_model=ContentList)
    def get_content(content_id: int):
        content = repos.contents.get(content_id)
        contents = [_content_view(content)] if content is not None else []
        return ContentList(contents=contents)

    @app.get("/contents/{content_id}/description", response_model=DescriptionResponse)
    def get_content_description(content_id: int):
        content = repos.contents.get(content_id)
        if content is None:
            return DescriptionResponse()
        return DescriptionResponse(
            description=content.description,
            download_url=content.download_url,
            image_url=content.image_url,
        )

    @app.put("/contents/{content_id}/downloaded", response_model=MessageResponse)
    def mark_downloaded(content_id: int):
        if not repos.contents.increment_download_count(content_id):
            return _error_response(None, "Content not found.", status_code=404)
        return MessageResponse(message=SUCCESS_MESSAGE)

    # Votes and likes

    @app.get("/votes", response_model=VoteList)
    def list_votes():
        return VoteList(votes=[_vote_view(v) for v in repos.votes.list_all()])

    @app.get("/contents/{content_id}/vote", response_model=VoteList)
    def list_content_votes(content_id: int):
        votes = repos.votes.list_for_content(content_id)
        return VoteList(votes=[_vote_view(v) for v in votes])

    @app.post("/contents/{content_id}/vote", response_model=VoteResponse)
    def create_vote(content_id: int, payload: VoteRequest, background_tasks: BackgroundTasks):
        result = post_vote(
            content_id,
            payload.user_id,
            payload.score,
            repos.votes,
            repos.sequences,
            name=payload.name,
            comment=payload.comment,
            like_count=payload.like or 0,
            date=payload.date,
        )
        if not result.success:
            return _error_response(result.failure, result.error_message)

        background_tasks.add_task(
            recompute_vote_average_in_background,
            content_id,
            repos.votes,
            repos.contents,
        )
        return VoteResponse(message=SUCCESS_MESSAGE, vote=_vote_view(result.vote))

    @app.put("/contents/{content_id}/vote", response_model=VoteResponse)
    def change_vote(content_id: int, payload: VoteRequest, background_tasks: BackgroundTasks):
        result = edit_vote(
            content_id,
            payload.id,
            payload.user_id,
            payload.score,
            repos.votes,
            repos.likes,
            name=payload.name,
            comment=payload.comment,
            date=payload.date,
        )
        if not result.success:
            return _error_response(result.failure, result.error_message)

        background_tasks.add_task(
            recompute_vote_average_in_background,
            content_id,
            repos.votes,
            repos.contents,
        )
        return VoteResponse(message=SUCCESS_MESSAGE, vote=_vote_view(result.vote))

    @app.get("/likes/{user_id}", response_model=LikeList)
    def list_likes(user_id: str):
        likes = repos.likes.list_for_user(user_id)
        return LikeList(
            likes=[LikeView(user_id=like.user_id, vote_id=like.vote_id) for like in likes]
        )

    @app.put("/likes/{user_id}", response_model=MessageResponse)
    def add_like(user_id: str, payload: LikeRequest):
        result = like_vote(user_id, payload.vote_id, repos.votes, repos.likes)
        if not result.success:
            return _error_response(result.failure, result.error_message)
        return MessageResponse(message=SUCCESS_MESSAGE)

    # Accounts

    @app.post("/accounts", response_model=AccountResponse, status_code=201)
    def create_account(payload: RegisterRequest):
        result = register_account(
            payload.account_id,
            payload.password,
            repos.accounts,
            name=payload.name,
            icon=payload.icon,
        )
        if not result.success:
            return _error_response(result.failure, result.error_message)
        return AccountResponse(
            message="Account successfully created.",
            account=_account_view(result.account),
        )

    @app.put("/accounts", response_model=AccountResponse)
    def change_account(payload: UpdateAccountRequest):
        result = update_account(
            payload.account_id,
            payload.token,
            repos.accounts,
            name=payload.name,
            icon=payload.icon,
            raw_password=payload.password,
        )
        if not result.success:
            return _error_response(result.failure, result.error_message)
        return AccountResponse(
            message="Account updated successfully.",
            account=_account_view(result.account),
        )

    @app.post("/accounts/login", response_model=LoginResponse)
    def login_account(payload: LoginRequest):
        result = login(payload.account_id, payload.password, repos.accounts, token_issuer)
        if not result.success:
            # An unknown account is an authentication failure on this route.
            status_code = 401 if result.failure is Failure.ACCOUNT_NOT_FOUND else None
            return _error_response(result.failure, result.error_message, status_code)
        return LoginResponse(
            message="Authentication successful.",
            account=_account_view(result.account),
            token=result.token,
        )

    @app.post("/accounts/request-password-reset", response_model=MessageResponse)
    def request_password_reset(payload: PasswordResetRequest):
        # No mail is sent; the answer is identical for known and unknown addresses.
        return MessageResponse(
            message="If the email is registered, a password reset link has been sent.",
        )

    # Ranking

    @app.get("/ranking", response_model=RankingResponse)
    def get_ranking(
        chart_hash: Optional[str] = Query(None, alias="chartHash"),
        difficulty: Optional[int] = None,
    ):
        result = top_entries(chart_hash, difficulty, repos.scores, repos.accounts)
        if not result.success:
            return _error_response(result.failure, result.error_message)

        rows = [
            RankingRow(
                score=entry.score,
                ab_count=entry.perfect_clear_count,
                date=entry.date,
                account=(
                    ProfileView(name=entry.account.name, icon=entry.account.icon)
                    if entry.account is not None
                    else None
                ),
            )
            for entry in result.entries
        ]
        return RankingResponse(ranking=rows)

    @app.post("/ranking", response_model=SubmissionResponse)
    def post_ranking(payload: ScoreSubmissionRequest):
        result = submit_score(
            payload.song_title,
            payload.difficulty,
            payload.chart_hash,
            payload.account_id,
            payload.account_token,
            payload.score,
            payload.max_score,
            repos.scores,
            token_issuer,
        )
        if not result.success:
            return _error_response(result.failure, result.error_message)

        body = SubmissionResponse(
            message=_SUBMISSION_MESSAGES[result.outcome],
            outcome=result.outcome.value,
        )
        status_code = 201 if result.outcome.created else 200
        return JSONResponse(body.model_dump(by_alias=True), status_code=status_code)

    return app
