"""Invocation entry point for S3 object-created notifications."""

from functools import lru_cache
from typing import Any, Dict

from .core.factories import ThumbnailPipelineFactory
from .core.services import ThumbnailOrchestrator


@lru_cache(maxsize=None)
def get_pipeline() -> ThumbnailOrchestrator:
    """Build the pipeline once per process from the environment."""
    return ThumbnailPipelineFactory.create_pipeline()


def handler(event: Dict[str, Any], context: Any = None) -> str:
    """Generate thumbnails for every record in ``event``."""
    count = get_pipeline().process_event(event)
    return f"{count} records processed"
