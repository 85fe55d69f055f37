"""
Request and response bodies of the HTTP API.

Field names are snake_case in Python and camelCase on the wire
(`account_id` <-> `accountId`). Request fields are mostly optional here:
presence checks live in the application layer so that every endpoint
reports missing data with the same error envelope.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests


class RegisterRequest(CamelModel):
    account_id: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    icon: Optional[int] = None
    # Accepted for client compatibility; not stored.
    email: Optional[str] = None


class UpdateAccountRequest(CamelModel):
    account_id: Optional[str] = None
    token: Optional[str] = None
    name: Optional[str] = None
    icon: Optional[int] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    account_id: Optional[str] = None
    # Left untyped: a non-string password is a failed login, not a bad request.
    password: Any = None


class PasswordResetRequest(CamelModel):
    email: Optional[str] = None


class ScoreSubmissionRequest(CamelModel):
    song_title: Optional[str] = None
    difficulty: Optional[int] = None
    chart_hash: Optional[str] = None
    account_id: Optional[str] = None
    account_token: Optional[str] = None
    score: Optional[int] = None
    max_score: Optional[int] = None


class VoteRequest(CamelModel):
    id: Optional[int] = None
    user_id: Optional[str] = None
    name: Optional[str] = None
    score: Optional[float] = None
    comment: Optional[str] = None
    like: Optional[int] = None
    date: Optional[str] = None


class LikeRequest(CamelModel):
    vote_id: Optional[int] = None


# Responses


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class AccountView(CamelModel):
    account_id: str
    name: str
    icon: int


class AccountResponse(CamelModel):
    success: bool = True
    message: str
    account: AccountView


class LoginResponse(CamelModel):
    success: bool = True
    message: str
    account: AccountView
    token: str


class ProfileView(CamelModel):
    name: str
    icon: int


class RankingRow(CamelModel):
    score: int
    ab_count: int
    date: str
    account: Optional[ProfileView] = None


class RankingResponse(CamelModel):
    ranking: List[RankingRow]


class SubmissionResponse(CamelModel):
    success: bool = True
    message: str
    outcome: str


class SongInfoView(CamelModel):
    difficulties: List[int]
    has_lua: bool


class ContentSummary(CamelModel):
    id: int
    content_type: int
    title: Optional[str] = None
    publisher: Optional[str] = None
    date: str
    download_count: int
    vote_average_score: Optional[float] = None
    song_info: Optional[SongInfoView] = None


class ContentView(ContentSummary):
    description: Optional[str] = None
    download_url: Optional[str] = None
    image_url: Optional[str] = None


class ContentSummaryList(CamelModel):
    contents: List[ContentSummary]


class ContentList(CamelModel):
    contents: List[ContentView]


class DescriptionResponse(CamelModel):
    description: Optional[str] = None
    download_url: Optional[str] = None
    image_url: Optional[str] = None


class VoteView(CamelModel):
    id: int
    content_id: int
    user_id: str
    name: Optional[str] = None
    score: float
    comment: Optional[str] = None
    like: int
    date: str


class VoteList(CamelModel):
    votes: List[VoteView]


class VoteResponse(CamelModel):
    success: bool = True
    message: str
    vote: VoteView


class LikeView(CamelModel):
    user_id: str
    vote_id: int


class LikeList(CamelModel):
    likes: List[LikeView]


class SupportOptions(CamelModel):
    require_account_email: bool = False


class SupportResponse(CamelModel):
    contents: bool = True
    accounts: bool = True
    ranking: bool = True
    options: SupportOptions = SupportOptions()
