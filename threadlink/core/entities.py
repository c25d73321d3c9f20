import hashlib
import posixpath
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlsplit

DEFAULT_PLATFORM_HOST = "www.threads.net"


class MediaKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    THUMBNAIL = "thumbnail"


def generate_filename(url: str) -> str:
    """Build a naming hint: <epoch-millis>-<md5 prefix><extension>."""
    extension = posixpath.splitext(urlsplit(url).path)[1]
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:8]
    return f"{int(time.time() * 1000)}-{digest}{extension}"


@dataclass(frozen=True)
class PostReference:
    account: str
    post_id: str
    platform_host: str = DEFAULT_PLATFORM_HOST

    @property
    def url(self) -> str:
        return f"https://{self.platform_host}/{self.account}/post/{self.post_id}"


@dataclass(frozen=True)
class Engagement:
    like_count: int = 0
    reply_count: int = 0
    repost_count: int = 0
    share_count: int = 0


@dataclass(frozen=True)
class MediaItem:
    kind: MediaKind
    remote_url: str
    alt_text: Optional[str] = None
    filename: str = ""

    @classmethod
    def from_url(cls, kind: MediaKind, remote_url: str, alt_text: Optional[str] = None) -> 'MediaItem':
        return cls(
            kind=kind,
            remote_url=remote_url,
            alt_text=alt_text,
            filename=generate_filename(remote_url)
        )


@dataclass(frozen=True)
class ExtractedPost:
    """
    Structured data read from a rendered post page.

    Every field except `request_url` may be absent: markup varies between
    posts and a failed extraction yields an instance with nothing set.
    """
    request_url: str
    description: Optional[str] = None
    author_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Optional[str] = None
    engagement: Engagement = field(default_factory=Engagement)
    media: Tuple[MediaItem, ...] = ()

    @property
    def first_video(self) -> Optional[MediaItem]:
        return next((m for m in self.media if m.kind == MediaKind.VIDEO), None)

    @property
    def first_photo(self) -> Optional[MediaItem]:
        """First still image. A video thumbnail counts when no standalone photo exists."""
        photo = next((m for m in self.media if m.kind == MediaKind.PHOTO), None)
        if photo:
            return photo
        return next((m for m in self.media if m.kind == MediaKind.THUMBNAIL), None)

    @property
    def video_poster(self) -> Optional[MediaItem]:
        """Still shown for the video: its own adjacent thumbnail, else the first photo."""
        thumbnail = next((m for m in self.media if m.kind == MediaKind.THUMBNAIL), None)
        return thumbnail or self.first_photo

    @property
    def is_empty(self) -> bool:
        return not self.description and not self.media and not self.author_name

    def to_dict(self) -> dict:
        data = asdict(self)
        data["media"] = [dict(m, kind=m["kind"].value) for m in data["media"]]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ExtractedPost':
        return cls(
            request_url=data["request_url"],
            description=data.get("description"),
            author_name=data.get("author_name"),
            profile_image_url=data.get("profile_image_url"),
            created_at=data.get("created_at"),
            engagement=Engagement(**(data.get("engagement") or {})),
            media=tuple(
                MediaItem(
                    kind=MediaKind(m["kind"]),
                    remote_url=m["remote_url"],
                    alt_text=m.get("alt_text"),
                    filename=m.get("filename", "")
                )
                for m in data.get("media", [])
            )
        )
