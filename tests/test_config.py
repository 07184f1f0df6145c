from __future__ import annotations

import pytest

from ytlink.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("API_KEY", "S3_BUCKET_NAME", "AWS_DEFAULT_REGION", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY",
                 "YT_LINK_EXPIRES", "YT_MIN_COMBINED_HEIGHT", "YT_RETRY_MAX", "PORT", "YT_KEY_PREFIX"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.api_key is None
    assert not settings.auth_enabled
    assert not settings.storage_configured
    assert settings.link_expires == 3600
    assert settings.min_combined_height == 360
    assert settings.key_prefix == "youtube_downloads"
    assert settings.port == 5000


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_KEY", "s3cret")
    monkeypatch.setenv("S3_BUCKET_NAME", "bkt")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIA")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("YT_LINK_EXPIRES", "600")
    monkeypatch.setenv("YT_KEY_PREFIX", "/videos/")
    monkeypatch.setenv("PORT", "8080")
    settings = Settings.from_env()
    assert settings.auth_enabled
    assert settings.storage_configured
    assert settings.link_expires == 600
    assert settings.key_prefix == "videos"
    assert settings.port == 8080


def test_invalid_numbers_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("YT_RETRY_MAX", "lots")
    monkeypatch.setenv("YT_MERGE_TIMEOUT", "soon")
    settings = Settings.from_env()
    assert settings.retry_max == 3
    assert settings.merge_timeout == 1800.0
