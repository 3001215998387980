"""Factory classes for creating configured service instances."""

from typing import TYPE_CHECKING, Any, Optional
import boto3

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client

from .models import PipelineConfig
from .observability import StructuredLogger
from .protocols import S3ClientProtocol, LoggerProtocol
from .services import ImageCodecService, ObjectStoreClient, ThumbnailOrchestrator


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, debug: bool = False) -> StructuredLogger:
        """Create a structured logger writing to stdout."""
        return StructuredLogger(name, debug=debug)


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> "S3Client":
        """Create S3 client with optional configuration."""
        session = boto3.Session()
        return session.client("s3", **kwargs)


class ThumbnailPipelineFactory:
    """Factory for creating the complete thumbnail pipeline."""

    @staticmethod
    def create_pipeline(
        s3_client: Optional[S3ClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        config: Optional[PipelineConfig] = None,
    ) -> ThumbnailOrchestrator:
        """Create a fully configured pipeline; missing dependencies get defaults."""
        if config is None:
            config = PipelineConfig.from_env()

        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client()

        if logger is None:
            logger = LoggerFactory.create_logger("thumbnail_pipeline", debug=config.debug)

        object_store = ObjectStoreClient(s3_client, logger, config)
        codec = ImageCodecService(jpeg_quality=config.jpeg_quality)

        return ThumbnailOrchestrator(
            object_store=object_store,
            codec=codec,
            logger=logger,
            config=config,
        )
