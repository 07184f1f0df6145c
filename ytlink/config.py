from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger("ytlink.config")


def _coerce_float(value: Optional[str], default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid numeric value '%s'; falling back to %s", value, default)
        return default


def _coerce_int(value: Optional[str], default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer value '%s'; falling back to %s", value, default)
        return default


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup."""

    api_key: Optional[str] = None
    bucket: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    key_prefix: str = "youtube_downloads"
    link_expires: int = 3600
    min_combined_height: int = 360
    temp_root: str = field(default_factory=tempfile.gettempdir)
    http_timeout: float = 60.0
    merge_timeout: float = 1800.0
    retry_max: int = 3
    ffmpeg_bin: str = "ffmpeg"
    port: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=_env("API_KEY"),
            bucket=_env("S3_BUCKET_NAME"),
            region=_env("AWS_DEFAULT_REGION"),
            access_key_id=_env("AWS_ACCESS_KEY_ID"),
            secret_access_key=_env("AWS_SECRET_ACCESS_KEY"),
            endpoint_url=_env("S3_ENDPOINT") or _env("MINIO_ENDPOINT"),
            key_prefix=(_env("YT_KEY_PREFIX") or "youtube_downloads").strip("/"),
            link_expires=max(1, _coerce_int(_env("YT_LINK_EXPIRES"), 3600)),
            min_combined_height=_coerce_int(_env("YT_MIN_COMBINED_HEIGHT"), 360),
            temp_root=_env("YT_TEMP_ROOT") or tempfile.gettempdir(),
            http_timeout=_coerce_float(_env("YT_HTTP_TIMEOUT"), 60.0),
            merge_timeout=_coerce_float(_env("YT_MERGE_TIMEOUT"), 1800.0),
            retry_max=max(1, _coerce_int(_env("YT_RETRY_MAX"), 3)),
            ffmpeg_bin=_env("FFMPEG_BIN") or "ffmpeg",
            port=_coerce_int(_env("PORT"), 5000),
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def storage_configured(self) -> bool:
        return bool(self.bucket and self.region and self.access_key_id and self.secret_access_key)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_key)
