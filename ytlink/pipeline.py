from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .assembly import Assembler, scratch_directory
from .errors import PublishError
from .models import AssemblyPlan, Combined, PublishedObject, VideoMetadata
from .publisher import S3Publisher
from .resolver import SourceResolver, select_plan

logger = logging.getLogger("ytlink.pipeline")


@dataclass(frozen=True)
class PipelineResult:
    metadata: VideoMetadata
    plan: AssemblyPlan
    published: PublishedObject


class Pipeline:
    """Resolve, assemble and publish one video; the scratch directory never outlives ``run``."""

    def __init__(
        self,
        resolver: SourceResolver,
        assembler: Assembler,
        publisher: Optional[S3Publisher],
        key_prefix: str = "youtube_downloads",
        min_combined_height: int = 360,
        temp_root: Optional[str] = None,
    ) -> None:
        self.resolver = resolver
        self.assembler = assembler
        self.publisher = publisher
        self.key_prefix = key_prefix
        self.min_combined_height = min_combined_height
        self.temp_root = temp_root

    async def run(self, url: str) -> PipelineResult:
        if self.publisher is None:
            raise PublishError("S3 client not initialized. Cannot upload video.")

        metadata = await self.resolver.fetch(url)
        source = metadata.source
        plan = select_plan(metadata.candidates, self.min_combined_height)
        key = source.storage_key(self.key_prefix)
        logger.info(
            "plan_selected",
            extra={
                "event": "plan_selected",
                "video_id": source.video_id,
                "strategy": "combined" if isinstance(plan, Combined) else "separate_merge",
            },
        )

        async with scratch_directory(self.temp_root) as scratch:
            path = await self.assembler.assemble(plan, source, scratch)
            published = await self.publisher.publish(path, key)

        logger.info(
            "download_complete",
            extra={"event": "download_complete", "video_id": source.video_id, "key": published.key},
        )
        return PipelineResult(metadata=metadata, plan=plan, published=published)
