"""Protocol definitions for dependency injection and testability."""

from typing import Any, Dict, Optional, Protocol

from PIL import Image

from .models import DecodedImage
from .observability import LogContext


class S3ClientProtocol(Protocol):
    """Protocol for the S3 client operations the pipeline uses."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(
        self, Bucket: str, Key: str, Body: Any, ContentType: str
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...


class ObjectStoreProtocol(Protocol):
    """Protocol for fetching and storing whole objects."""

    def fetch(self, bucket: str, key: str) -> bytes:
        """Retrieve the full content of an object."""
        ...

    def store(self, bucket: str, key: str, data: bytes) -> str:
        """Upload content and return its location."""
        ...


class ImageCodecProtocol(Protocol):
    """Protocol for image decode, resample and encode operations."""

    def decode(self, image_bytes: bytes) -> DecodedImage:
        """Decode bytes into a raster."""
        ...

    def resample(self, image: Image.Image, size: int) -> Image.Image:
        """Fit a raster into a transparent square."""
        ...

    def encode(self, image: Image.Image, key: str, source_format: str) -> bytes:
        """Encode a raster in the format implied by ``key``."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
