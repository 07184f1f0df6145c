from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

COMBINED = "combined"
VIDEO_ONLY = "video only"
AUDIO_ONLY = "audio only"
OTHER = "other"

KIND_ORDER = {COMBINED: 0, VIDEO_ONLY: 1, AUDIO_ONLY: 2, OTHER: 3}

_UNSAFE_CHARS_RE = re.compile(r"[^\w\s-]")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_title(title: str) -> str:
    """Strip everything but word characters, whitespace and dashes; collapse whitespace to ``_``."""
    cleaned = _UNSAFE_CHARS_RE.sub("", title or "")
    return _WHITESPACE_RE.sub("_", cleaned)


@dataclass(frozen=True)
class MediaSource:
    url: str
    video_id: str
    title: str

    @property
    def safe_title(self) -> str:
        return sanitize_title(self.title)

    @property
    def filename(self) -> str:
        return f"{self.video_id}_{self.safe_title}.mp4"

    def storage_key(self, prefix: str) -> str:
        name = f"{self.safe_title}_{self.video_id}.mp4"
        return f"{prefix}/{name}" if prefix else name


@dataclass(frozen=True)
class EncodingCandidate:
    format_id: str
    url: str
    has_video: bool
    has_audio: bool
    height: Optional[int] = None
    audio_bitrate: Optional[int] = None
    total_bitrate: float = 0.0
    ext: Optional[str] = None
    http_headers: Tuple[Tuple[str, str], ...] = ()

    @property
    def kind(self) -> str:
        if self.has_video and self.has_audio:
            return COMBINED
        if self.has_video:
            return VIDEO_ONLY
        if self.has_audio:
            return AUDIO_ONLY
        return OTHER

    @property
    def label(self) -> Optional[str]:
        kind = self.kind
        if kind in (COMBINED, VIDEO_ONLY) and self.height:
            return f"{self.height}p ({kind})"
        if kind == AUDIO_ONLY and self.audio_bitrate:
            return f"{self.audio_bitrate}kbps ({kind})"
        return None

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self.http_headers)

    def rank_key(self) -> Tuple[Any, ...]:
        """Ordering key for "best first" sorting; independent of list position."""
        return (
            -(self.height or 0),
            -(self.audio_bitrate or 0),
            0 if self.ext == "mp4" else 1,
            -self.total_bitrate,
            self.format_id,
        )


@dataclass(frozen=True)
class Combined:
    candidate: EncodingCandidate


@dataclass(frozen=True)
class SeparateMerge:
    video: EncodingCandidate
    audio: EncodingCandidate


AssemblyPlan = Union[Combined, SeparateMerge]


@dataclass
class VideoMetadata:
    source: MediaSource
    thumbnail_url: Optional[str] = None
    description: Optional[str] = None
    length_seconds: int = 0
    views: int = 0
    author: Optional[str] = None
    publish_date: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    candidates: List[EncodingCandidate] = field(default_factory=list)


@dataclass(frozen=True)
class PublishedObject:
    bucket: str
    key: str
    download_url: str
    expires_in: int
    content_type: str = "video/mp4"
