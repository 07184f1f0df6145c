from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List

from .errors import MergeError

logger = logging.getLogger("ytlink.muxer")

STDERR_TAIL = 2000


class FFmpegMuxer:
    """Muxes one video and one audio input into a single container with ffmpeg."""

    def __init__(self, ffmpeg_bin: str = "ffmpeg", timeout: float = 1800.0) -> None:
        self.ffmpeg_bin = ffmpeg_bin
        self.timeout = timeout

    def build_command(
        self,
        video: Path,
        audio: Path,
        output: Path,
        video_codec: str = "copy",
        audio_codec: str = "aac",
        container: str = "mp4",
    ) -> List[str]:
        cmd = [
            self.ffmpeg_bin,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i",
            str(video),
            "-i",
            str(audio),
            "-map",
            "0:v:0",
            "-map",
            "1:a:0",
            "-c:v",
            video_codec,
            "-c:a",
            audio_codec,
            "-f",
            container,
        ]
        if container == "mp4":
            cmd += ["-movflags", "+faststart"]
        cmd.append(str(output))
        return cmd

    async def merge(
        self,
        video: Path,
        audio: Path,
        output: Path,
        video_codec: str = "copy",
        audio_codec: str = "aac",
        container: str = "mp4",
    ) -> Path:
        cmd = self.build_command(video, audio, output, video_codec, audio_codec, container)
        logger.debug("ffmpeg exec: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise MergeError(f"FFmpeg processing failed: {exc}") from exc

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise MergeError(f"FFmpeg processing failed: timed out after {self.timeout:g}s")
        except asyncio.CancelledError:
            proc.kill()
            await proc.wait()
            raise

        diagnostic = (stderr or b"").decode("utf-8", errors="replace").strip()[-STDERR_TAIL:]
        if proc.returncode != 0:
            logger.error("ffmpeg exited with %s: %s", proc.returncode, diagnostic)
            raise MergeError(f"FFmpeg processing failed: {diagnostic or f'exit status {proc.returncode}'}")
        if not output.exists() or output.stat().st_size <= 0:
            raise MergeError(f"FFmpeg processing failed: no output written to {output.name}")
        logger.info("ffmpeg processing finished", extra={"event": "merge_complete", "output": output.name})
        return output
