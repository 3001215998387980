"""Service implementations for the thumbnail pipeline."""

import shutil
import time
from typing import Any, Iterable, List, Mapping

from PIL import Image

from .error_handling import BatchOperationContextManager
from .exceptions import (
    DecodeError,
    FetchError,
    InvalidEventError,
    StagingError,
    StoreError,
    ThumbnailPipelineError,
    error_boundary,
)
from .image_utils import (
    content_type_for_key,
    decode_image,
    encode_image,
    format_for_key,
    resample,
)
from .keys import derive_thumbnail_key, is_thumbnail_key
from .models import (
    ChangeNotification,
    DecodedImage,
    OnDecodeError,
    PipelineConfig,
    ThumbnailResult,
)
from .observability import LogContext
from .protocols import (
    ImageCodecProtocol,
    LoggerProtocol,
    ObjectStoreProtocol,
    S3ClientProtocol,
)
from .staging import staged_file


class ImageCodecService:
    """Pure image service with no I/O dependencies."""

    def __init__(self, jpeg_quality: int = 95):
        self._jpeg_quality = jpeg_quality

    def decode(self, image_bytes: bytes) -> DecodedImage:
        return decode_image(image_bytes)

    def resample(self, image: Image.Image, size: int) -> Image.Image:
        return resample(image, size)

    def encode(self, image: Image.Image, key: str, source_format: str) -> bytes:
        """Encode ``image`` in the format named by the extension of ``key``."""
        image_format = format_for_key(key, fallback=source_format)
        return encode_image(image, image_format, quality=self._jpeg_quality)


class ObjectStoreClient:
    """Fetches and stores whole objects through a local scratch file."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        logger: LoggerProtocol,
        config: PipelineConfig,
    ):
        self._s3_client = s3_client
        self._logger = logger
        self._config = config

    def fetch(self, bucket: str, key: str) -> bytes:
        """
        Retrieve the full content of ``bucket``/``key``.

        Raises:
            StagingError: If the scratch file cannot be created
            FetchError: If the object cannot be downloaded
        """
        context = LogContext(operation="fetch", component="object_store").with_metadata(
            bucket=bucket, key=key
        )

        with staged_file(
            self._config.scratch_dir, bucket, key, keep=self._config.keep_scratch_files
        ) as scratch:
            with error_boundary(
                FetchError, "Failed to download object", bucket=bucket, key=key, path=scratch.name
            ):
                response = self._s3_client.get_object(Bucket=bucket, Key=key)
                body = response["Body"]
                try:
                    shutil.copyfileobj(body, scratch)
                finally:
                    close = getattr(body, "close", None)
                    if close is not None:
                        close()

            scratch.seek(0)
            data = scratch.read()

        self._logger.info(
            "Object downloaded", context, filename=scratch.name, bytes=len(data)
        )
        return data

    def store(self, bucket: str, key: str, data: bytes) -> str:
        """
        Upload ``data`` to ``bucket``/``key``, overwriting any existing object.

        Returns:
            Location of the stored object (``s3://bucket/key``)

        Raises:
            StagingError: If the scratch file cannot be created
            StoreError: If the upload fails
        """
        context = LogContext(operation="store", component="object_store").with_metadata(
            bucket=bucket, key=key
        )

        with staged_file(
            self._config.scratch_dir, bucket, key, keep=self._config.keep_scratch_files
        ) as scratch:
            with error_boundary(
                StagingError, "Failed to write scratch file", bucket=bucket, key=key, path=scratch.name
            ):
                scratch.write(data)
                scratch.flush()
                scratch.seek(0)

            with error_boundary(StoreError, "Failed to upload object", bucket=bucket, key=key):
                self._s3_client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=scratch,
                    ContentType=content_type_for_key(key),
                )

        location = f"s3://{bucket}/{key}"
        self._logger.info("Object uploaded", context, location=location, bytes=len(data))
        return location


class ThumbnailOrchestrator:
    """Runs the thumbnail pipeline for a batch of change notifications."""

    def __init__(
        self,
        object_store: ObjectStoreProtocol,
        codec: ImageCodecProtocol,
        logger: LoggerProtocol,
        config: PipelineConfig,
    ):
        self._object_store = object_store
        self._codec = codec
        self._logger = logger
        self._config = config

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def process_event(self, event: Mapping[str, Any]) -> int:
        """
        Process every record of an S3-style event.

        Malformed records are logged and skipped but still counted.

        Returns:
            Number of records in the event

        Raises:
            InvalidEventError: If the event has no ``Records`` list
        """
        records = event.get("Records") if isinstance(event, Mapping) else None
        if not isinstance(records, list):
            raise InvalidEventError("Event has no 'Records' list")

        self._logger.info(f"Received event with {len(records)} record(s)")

        for index, record in enumerate(records):
            try:
                notification = ChangeNotification.from_s3_record(
                    record, unquote=self._config.unquote_keys
                )
            except InvalidEventError as e:
                self._logger.error(
                    "Skipping malformed record",
                    LogContext(operation="parse_record").with_error(e),
                    record_index=index,
                )
                continue

            self.process_record(notification)

        return len(records)

    def process_notifications(self, notifications: Iterable[ChangeNotification]) -> int:
        """Process notifications one after another and return how many were processed."""
        count = 0
        for notification in notifications:
            self.process_record(notification)
            count += 1
        return count

    def process_record(self, notification: ChangeNotification) -> List[ThumbnailResult]:
        """
        Produce every configured thumbnail for one source object.

        A failed fetch or decode abandons the record. A failure on one size
        is logged and the remaining sizes are still attempted. Objects
        already under the thumbnail prefix are skipped with a warning.

        Raises:
            DecodeError: Only when ``on_decode_error`` is ``abort_batch``
        """
        bucket, key = notification.bucket, notification.key
        log_context = LogContext(
            operation="process_record", component="thumbnail_orchestrator"
        ).with_metadata(bucket=bucket, key=key)

        if is_thumbnail_key(key):
            self._logger.warning("Skipping generated thumbnail", log_context)
            return []

        try:
            source_bytes = self._object_store.fetch(bucket, key)
        except (StagingError, FetchError) as e:
            self._logger.error("Failed to fetch source image", log_context.with_error(e))
            return []

        try:
            source = self._codec.decode(source_bytes)
        except DecodeError as e:
            self._logger.error("Failed to decode source image", log_context.with_error(e))
            if self._config.on_decode_error is OnDecodeError.ABORT_BATCH:
                raise
            return []

        self._logger.debug(
            f"Decoded {source.format} image {source.width}x{source.height}", log_context
        )

        results = []
        with BatchOperationContextManager(
            self._logger, f"Thumbnails for s3://{bucket}/{key}", log_context
        ) as batch:
            for size in self._config.sizes:
                result = self._process_variant(notification, source, size, log_context)
                if result.success:
                    batch.add_success()
                else:
                    batch.add_error(result.error, size)
                results.append(result)

        return results

    def _process_variant(
        self,
        notification: ChangeNotification,
        source: DecodedImage,
        size: int,
        log_context: LogContext,
    ) -> ThumbnailResult:
        start_time = time.time()
        context = log_context.with_operation("process_variant").with_metadata(size=size)
        result = ThumbnailResult(source_key=notification.key, size=size)

        try:
            thumb = self._codec.resample(source.image, size)
            body = self._codec.encode(thumb, notification.key, source.format)
            result.dest_key = derive_thumbnail_key(notification.key, size)
            result.location = self._object_store.store(
                notification.bucket, result.dest_key, body
            )
            result.success = True
        except ThumbnailPipelineError as e:
            result.error = str(e)
            result.error_type = type(e).__name__
            if result.dest_key:
                context = context.with_metadata(dest_key=result.dest_key)
            self._logger.error("Failed to generate thumbnail", context.with_error(e))
        finally:
            result.processing_time = time.time() - start_time

        if result.success:
            self._logger.info(
                "Thumbnail stored",
                context,
                location=result.location,
                processing_time_ms=round(result.processing_time * 1000, 2),
            )
        return result
