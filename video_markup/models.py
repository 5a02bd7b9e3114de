from dataclasses import asdict, dataclass
from typing import Literal

Role = Literal["creator", "helper"]

CREATOR: Role = "creator"
HELPER: Role = "helper"


@dataclass
class Session:
    id: str
    youtube_url: str
    youtube_title: str | None
    youtube_thumbnail: str | None
    creator_token: str
    helper_token: str
    created_at: str

    @classmethod
    def from_row(cls, row) -> "Session":
        return cls(
            id=row["id"],
            youtube_url=row["youtube_url"],
            youtube_title=row["youtube_title"],
            youtube_thumbnail=row["youtube_thumbnail"],
            creator_token=row["creator_token"],
            helper_token=row["helper_token"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Marker:
    id: int
    session_id: str
    start_time: float
    end_time: float | None  # None for point markers
    created_at: str

    @property
    def is_range(self) -> bool:
        return self.end_time is not None

    @classmethod
    def from_row(cls, row) -> "Marker":
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Post:
    id: int
    marker_id: int
    author_type: Role
    text_content: str | None
    audio_filename: str | None
    created_at: str

    @classmethod
    def from_row(cls, row) -> "Post":
        return cls(
            id=row["id"],
            marker_id=row["marker_id"],
            author_type=row["author_type"],
            text_content=row["text_content"],
            audio_filename=row["audio_filename"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class VideoMetadata:
    title: str | None
    thumbnail_url: str | None
