from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .assembly import Assembler
from .config import Settings
from .errors import AuthError, ValidationError, YTLinkError
from .muxer import FFmpegMuxer
from .pipeline import Pipeline, PipelineResult
from .publisher import S3Publisher, s3_client
from .resolver import SourceResolver, available_qualities, validate_url

logger = logging.getLogger("ytlink")

SUCCESS_MESSAGE = "Video downloaded, uploaded to S3, and pre-signed URL generated."


class DownloadResponse(BaseModel):
    status: str = "success"
    video_title: str
    video_thumbnail_url: Optional[str] = None
    video_description: Optional[str] = None
    video_length_seconds: int = 0
    video_views: int = 0
    author: Optional[str] = None
    publish_date: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    available_qualities: List[str] = Field(default_factory=list)
    download_link: str
    message: str = SUCCESS_MESSAGE


def build_response(result: PipelineResult) -> DownloadResponse:
    meta = result.metadata
    return DownloadResponse(
        video_title=meta.source.title,
        video_thumbnail_url=meta.thumbnail_url,
        video_description=meta.description,
        video_length_seconds=meta.length_seconds,
        video_views=meta.views,
        author=meta.author,
        publish_date=meta.publish_date,
        keywords=meta.keywords,
        available_qualities=available_qualities(meta.candidates),
        download_link=result.published.download_url,
    )


def build_pipeline(settings: Settings) -> Pipeline:
    publisher: Optional[S3Publisher] = None
    if settings.storage_configured:
        publisher = S3Publisher(
            s3_client(settings),
            settings.bucket,
            expires_in=settings.link_expires,
            retry_max=settings.retry_max,
        )
        logger.info("S3 client initialized for bucket: %s in region: %s", settings.bucket, settings.region)
    else:
        logger.error("Missing AWS S3 environment variables! S3 operations will be disabled.")
    assembler = Assembler(
        FFmpegMuxer(settings.ffmpeg_bin, timeout=settings.merge_timeout),
        http_timeout=settings.http_timeout,
        retry_max=settings.retry_max,
    )
    return Pipeline(
        SourceResolver(retry_max=settings.retry_max),
        assembler,
        publisher,
        key_prefix=settings.key_prefix,
        min_combined_height=settings.min_combined_height,
        temp_root=settings.temp_root,
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")
    logger.setLevel(level)


def _secret_matches(supplied: Optional[str], expected: str) -> bool:
    # Header values arrive latin-1 decoded; compare_digest rejects non-ASCII str.
    return hmac.compare_digest((supplied or "").encode("utf-8"), expected.encode("utf-8"))


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"status": "error", "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def create_app(settings: Optional[Settings] = None, pipeline: Optional[Pipeline] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    if not settings.auth_enabled:
        logger.warning("API_KEY not set; requests will not be authenticated")

    app = FastAPI(title="YT Link", version=__version__)
    app.state.settings = settings
    app.state.pipeline = pipeline or build_pipeline(settings)

    @app.exception_handler(YTLinkError)
    async def _ytlink_error(request: Request, exc: YTLinkError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.get("/healthz")
    def healthz() -> Dict[str, bool]:
        return {"ok": True}

    @app.post("/api/download_youtube_data", response_model=DownloadResponse)
    async def download_youtube_data(
        request: Request,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    ):
        if settings.api_key and not _secret_matches(x_api_key, settings.api_key):
            logger.warning("Unauthorized access attempt due to invalid API Key.")
            raise AuthError("Unauthorized: Invalid API Key")

        try:
            body = await request.json()
        except ValueError as exc:
            raise ValidationError("Request body must be valid JSON.") from exc
        youtube_url = body.get("youtube_url") if isinstance(body, dict) else None
        if not youtube_url:
            logger.warning("Bad request: Missing 'youtube_url' in request body.")
            raise ValidationError("Missing 'youtube_url' in request body.")
        if not validate_url(youtube_url):
            logger.warning("Invalid YouTube URL format received: %s", youtube_url)
            raise ValidationError("Invalid YouTube URL format.")

        logger.info("Processing request for YouTube URL: %s", youtube_url)
        try:
            result = await request.app.state.pipeline.run(youtube_url)
        except Exception as exc:
            logger.exception("Caught error in POST handler")
            detail = exc.message if isinstance(exc, YTLinkError) else str(exc)
            return _error(
                500,
                f"Failed to process YouTube link: {detail}. Check server logs for details.",
                youtube_url=youtube_url,
            )
        return build_response(result)

    return app


app = create_app()
