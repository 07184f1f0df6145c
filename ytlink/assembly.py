"""Materialises the playable file for an assembly plan inside a per-request scratch directory."""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx

from .errors import MergeError, TransferError
from .models import AssemblyPlan, Combined, EncodingCandidate, MediaSource, SeparateMerge
from .muxer import FFmpegMuxer
from .retry import is_transient_http, retrying

logger = logging.getLogger("ytlink.assembly")

CHUNK_SIZE = 1024 * 1024


@asynccontextmanager
async def scratch_directory(root: Optional[str] = None) -> AsyncIterator[Path]:
    """Create a uniquely named temp dir and remove it on every exit path."""
    if root:
        Path(root).mkdir(parents=True, exist_ok=True)
    path = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="yt-dl-", dir=root))
    try:
        yield path
    finally:
        logger.info("Cleaning up temporary directory: %s", path)
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Error removing temp dir %s: %s", path, exc)


class Assembler:
    def __init__(
        self,
        muxer: FFmpegMuxer,
        http_client: Optional[httpx.AsyncClient] = None,
        http_timeout: float = 60.0,
        retry_max: int = 3,
    ) -> None:
        self.muxer = muxer
        self.http_client = http_client
        self.http_timeout = http_timeout
        self.retry_max = retry_max

    async def _download(self, client: httpx.AsyncClient, candidate: EncodingCandidate, dest: Path) -> int:
        written = 0
        async with client.stream("GET", candidate.url, headers=candidate.headers) as resp:
            resp.raise_for_status()
            with dest.open("wb") as handle:
                async for chunk in resp.aiter_bytes(CHUNK_SIZE):
                    handle.write(chunk)
                    written += len(chunk)
        return written

    async def fetch_stream(self, candidate: EncodingCandidate, dest: Path) -> Path:
        """Copy one remote stream verbatim to ``dest``."""
        client = self.http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.http_timeout), follow_redirects=True
        )
        try:
            async for attempt in retrying(self.retry_max, is_transient_http):
                with attempt:
                    written = await self._download(client, candidate, dest)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, OSError) as exc:
            raise TransferError(f"stream {candidate.format_id} transfer failed: {exc}") from exc
        finally:
            if self.http_client is None:
                await client.aclose()
        if written <= 0:
            raise TransferError(f"stream {candidate.format_id} returned no data")
        logger.info(
            "stream_saved",
            extra={"event": "stream_saved", "format_id": candidate.format_id, "bytes": written},
        )
        return dest

    async def _fetch_inputs(self, plan: SeparateMerge, video_path: Path, audio_path: Path) -> None:
        tasks = [
            asyncio.ensure_future(self.fetch_stream(plan.video, video_path)),
            asyncio.ensure_future(self.fetch_stream(plan.audio, audio_path)),
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def assemble(self, plan: AssemblyPlan, source: MediaSource, scratch: Path) -> Path:
        output = scratch / source.filename
        if isinstance(plan, Combined):
            logger.info("Saving combined stream %s to: %s", plan.candidate.label, output.name)
            return await self.fetch_stream(plan.candidate, output)

        if isinstance(plan, SeparateMerge):
            logger.info(
                "Merging %s with %s to: %s", plan.video.label, plan.audio.label, output.name
            )
            video_path = scratch / f"{source.video_id}.video.{plan.video.ext or 'bin'}"
            audio_path = scratch / f"{source.video_id}.audio.{plan.audio.ext or 'bin'}"
            try:
                await self._fetch_inputs(plan, video_path, audio_path)
            except TransferError as exc:
                raise MergeError(f"FFmpeg input stream failed: {exc.message}") from exc
            return await self.muxer.merge(
                video_path,
                audio_path,
                output,
                video_codec="copy",
                audio_codec="aac",
                container="mp4",
            )

        raise TypeError(f"unknown assembly plan: {plan!r}")
