from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Account:
    """
    Player account used to log in and to own leaderboard entries.

    `password` normally holds an Argon2 hash. Accounts imported from the
    old system may still carry a plaintext value until their next
    successful login, which re-hashes it.
    """

    account_id: str
    password: str
    name: str
    icon: int = 0
    token: Optional[str] = None
    banned: bool = False


@dataclass(frozen=True)
class ScoreIdentity:
    """One player on one chart variant. There is at most one entry per identity."""

    song_title: str
    difficulty: int
    chart_hash: str
    account_id: str


@dataclass
class ScoreEntry:
    identity: ScoreIdentity
    best_score: int
    perfect_clear_count: int
    last_played_date: str  # YYYY-MM-DD


@dataclass
class AccountProfile:
    """Public projection of an account shown next to a ranking row."""

    name: str
    icon: int


@dataclass
class RankedEntry:
    score: int
    perfect_clear_count: int
    date: str
    account: Optional[AccountProfile]


@dataclass
class SongInfo:
    difficulties: List[int] = field(default_factory=list)
    has_lua: bool = False


@dataclass
class Content:
    """A downloadable item (song pack, skin, ...) listed by the platform."""

    id: int
    content_type: int
    date: str
    title: Optional[str] = None
    publisher: Optional[str] = None
    description: Optional[str] = None
    download_url: Optional[str] = None
    image_url: Optional[str] = None
    download_count: int = 0
    vote_average_score: Optional[float] = None
    song_info: Optional[SongInfo] = None


@dataclass
class Vote:
    """A user's rating and comment on one content item."""

    id: int
    content_id: int
    user_id: str
    score: float
    date: str
    name: Optional[str] = None
    comment: Optional[str] = None
    like_count: int = 0


@dataclass
class Like:
    user_id: str
    vote_id: int
