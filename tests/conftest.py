from __future__ import annotations

from pathlib import Path
import sys
from typing import Any, Dict, List, Optional

import pytest
from tenacity import wait_none

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ytlink import retry  # noqa: E402
from ytlink.models import EncodingCandidate  # noqa: E402


@pytest.fixture(autouse=True)
def _no_retry_wait(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(retry, "RETRY_WAIT", wait_none())


def combined(height: int, format_id: Optional[str] = None, ext: str = "mp4", **kwargs: Any) -> EncodingCandidate:
    return EncodingCandidate(
        format_id=format_id or f"c{height}",
        url=f"https://media.example/{format_id or f'c{height}'}",
        has_video=True,
        has_audio=True,
        height=height,
        ext=ext,
        **kwargs,
    )


def video_only(height: int, format_id: Optional[str] = None, ext: str = "mp4", **kwargs: Any) -> EncodingCandidate:
    return EncodingCandidate(
        format_id=format_id or f"v{height}",
        url=f"https://media.example/{format_id or f'v{height}'}",
        has_video=True,
        has_audio=False,
        height=height,
        ext=ext,
        **kwargs,
    )


def audio_only(kbps: int, format_id: Optional[str] = None, ext: str = "m4a", **kwargs: Any) -> EncodingCandidate:
    return EncodingCandidate(
        format_id=format_id or f"a{kbps}",
        url=f"https://media.example/{format_id or f'a{kbps}'}",
        has_video=False,
        has_audio=True,
        audio_bitrate=kbps,
        ext=ext,
        **kwargs,
    )


class DummyYDL:
    """Stand-in for ``yt_dlp.YoutubeDL`` returning a canned info dict."""

    info: Dict[str, Any] = {}
    calls: List[str] = []

    def __init__(self, opts: Dict[str, Any]):
        self.opts = opts

    def __enter__(self) -> "DummyYDL":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False

    def extract_info(self, url: str, download: bool) -> Dict[str, Any]:
        assert download is False
        type(self).calls.append(url)
        return type(self).info


def make_info(formats: List[Dict[str, Any]], **overrides: Any) -> Dict[str, Any]:
    info = {
        "id": "abc123",
        "title": "My Video: Part #1",
        "description": "A description",
        "duration": 321.0,
        "view_count": 1000,
        "uploader": "Channel Name",
        "upload_date": "20240102",
        "tags": ["tag1", "tag2"],
        "thumbnails": [
            {"url": "https://i.ytimg.com/vi/abc123/default.jpg"},
            {"url": "https://i.ytimg.com/vi/abc123/maxresdefault.jpg"},
        ],
        "formats": formats,
    }
    info.update(overrides)
    return info


def fmt(format_id: str, **kwargs: Any) -> Dict[str, Any]:
    entry = {
        "format_id": format_id,
        "url": f"https://media.example/{format_id}",
        "protocol": "https",
        "vcodec": "none",
        "acodec": "none",
        "ext": "mp4",
    }
    entry.update(kwargs)
    return entry
