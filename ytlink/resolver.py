"""Source resolution: metadata, candidate encodings and the assembly decision."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import yt_dlp
from yt_dlp.utils import DownloadError, ExtractorError

from .errors import NoSuitableStreamError, ResolutionError
from .models import (
    AUDIO_ONLY,
    COMBINED,
    KIND_ORDER,
    VIDEO_ONLY,
    AssemblyPlan,
    Combined,
    EncodingCandidate,
    MediaSource,
    SeparateMerge,
    VideoMetadata,
)
from .retry import is_retryable_message, retrying

logger = logging.getLogger("ytlink.resolver")

YOUTUBE_URL_RE = re.compile(r"^https?://(www\.)?(youtube|youtu|youtube-nocookie)\.(com|be)/.+")

# Manifest and storyboard formats are not a single downloadable media file.
_DIRECT_PROTOCOLS = {"http", "https"}

_BASE_YDL_OPTS: Dict[str, Any] = {
    "quiet": True,
    "noprogress": True,
    "skip_download": True,
    "noplaylist": True,
}


def validate_url(url: Any) -> bool:
    return isinstance(url, str) and bool(YOUTUBE_URL_RE.match(url))


def _codec_present(value: Optional[str]) -> bool:
    return bool(value) and value != "none"


def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def parse_candidate(fmt: Dict[str, Any]) -> Optional[EncodingCandidate]:
    url = fmt.get("url")
    protocol = (fmt.get("protocol") or "https").split("+")[0]
    if not url or protocol not in _DIRECT_PROTOCOLS:
        return None
    vcodec = fmt.get("vcodec")
    acodec = fmt.get("acodec")
    height = _as_int(fmt.get("height"))
    abr = _as_int(fmt.get("abr"))
    has_video = _codec_present(vcodec) or (vcodec is None and bool(height))
    has_audio = _codec_present(acodec) or (acodec is None and bool(abr))
    headers = fmt.get("http_headers") or {}
    return EncodingCandidate(
        format_id=str(fmt.get("format_id") or ""),
        url=url,
        has_video=has_video,
        has_audio=has_audio,
        height=height if has_video else None,
        audio_bitrate=abr if has_audio else None,
        total_bitrate=float(fmt.get("tbr") or 0.0),
        ext=fmt.get("ext"),
        http_headers=tuple(sorted((str(k), str(v)) for k, v in headers.items())),
    )


def parse_candidates(formats: Iterable[Dict[str, Any]]) -> List[EncodingCandidate]:
    candidates = []
    for fmt in formats or []:
        candidate = parse_candidate(fmt)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def _best(candidates: Iterable[EncodingCandidate], kind: str) -> Optional[EncodingCandidate]:
    matching = sorted((c for c in candidates if c.kind == kind), key=EncodingCandidate.rank_key)
    return matching[0] if matching else None


def select_plan(candidates: List[EncodingCandidate], min_height: int = 360) -> AssemblyPlan:
    """Prefer one combined encoding at or above ``min_height``; otherwise merge best video with best audio."""
    combined = _best(candidates, COMBINED)
    if combined is not None and (combined.height or 0) >= min_height:
        return Combined(combined)
    video = _best(candidates, VIDEO_ONLY)
    audio = _best(candidates, AUDIO_ONLY)
    if video is None or audio is None:
        raise NoSuitableStreamError(
            "Could not find suitable high-quality video or audio stream for merging. "
            "Try a lower quality or a different video."
        )
    return SeparateMerge(video=video, audio=audio)


def available_qualities(candidates: Iterable[EncodingCandidate]) -> List[str]:
    ranked: Dict[str, tuple] = {}
    for candidate in candidates:
        label = candidate.label
        if label is None or label in ranked:
            continue
        ranked[label] = (
            -(candidate.height or 0),
            KIND_ORDER[candidate.kind],
            -(candidate.audio_bitrate or 0),
            label,
        )
    return sorted(ranked, key=ranked.__getitem__)


def _format_upload_date(value: Optional[str]) -> Optional[str]:
    if value and len(value) == 8 and value.isdigit():
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"
    return value


def _thumbnail(info: Dict[str, Any]) -> Optional[str]:
    thumbs = [t for t in info.get("thumbnails") or [] if isinstance(t, dict) and t.get("url")]
    if thumbs:
        return thumbs[-1]["url"]
    return info.get("thumbnail")


def build_metadata(url: str, info: Dict[str, Any]) -> VideoMetadata:
    video_id = info.get("id")
    if not video_id:
        raise ResolutionError(f"yt_dlp returned no video id for {url}")
    source = MediaSource(url=url, video_id=str(video_id), title=info.get("title") or str(video_id))
    return VideoMetadata(
        source=source,
        thumbnail_url=_thumbnail(info),
        description=info.get("description"),
        length_seconds=_as_int(info.get("duration")) or 0,
        views=_as_int(info.get("view_count")) or 0,
        author=info.get("uploader") or info.get("channel"),
        publish_date=_format_upload_date(info.get("upload_date")),
        keywords=list(info.get("tags") or []),
        candidates=parse_candidates(info.get("formats") or []),
    )


class SourceResolver:
    """Looks a video up through yt_dlp without downloading anything."""

    def __init__(self, retry_max: int = 3, ydl_options: Optional[Dict[str, Any]] = None) -> None:
        self.retry_max = retry_max
        self.ydl_options = {**_BASE_YDL_OPTS, **(ydl_options or {})}

    def _extract(self, url: str) -> Dict[str, Any]:
        try:
            with yt_dlp.YoutubeDL(dict(self.ydl_options)) as ydl:
                info = ydl.extract_info(url, download=False)
        except (DownloadError, ExtractorError) as err:
            message = str(err)
            raise ResolutionError(f"yt-dlp error: {message}", transient=is_retryable_message(message)) from err
        if not info:
            raise ResolutionError(f"yt_dlp returned no info for {url}")
        return info

    async def fetch(self, url: str) -> VideoMetadata:
        def _should_retry(exc: BaseException) -> bool:
            return isinstance(exc, ResolutionError) and exc.transient

        async for attempt in retrying(self.retry_max, _should_retry):
            with attempt:
                info = await asyncio.to_thread(self._extract, url)
        metadata = build_metadata(url, info)
        logger.info(
            "source_resolved",
            extra={
                "event": "source_resolved",
                "video_id": metadata.source.video_id,
                "formats": len(metadata.candidates),
            },
        )
        return metadata
