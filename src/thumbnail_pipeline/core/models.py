"""Shared data models for the thumbnail pipeline."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import unquote_plus

from PIL import Image
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigurationError, InvalidEventError

DEFAULT_SIZES: Tuple[int, ...] = (200, 400, 800)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


class OnDecodeError(str, Enum):
    """What to do when a source object is not a decodable image."""

    SKIP_RECORD = "skip_record"
    ABORT_BATCH = "abort_batch"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def parse_sizes(value: str) -> Tuple[int, ...]:
    """Parse a comma separated list of square sizes, e.g. ``"200,400,800"``."""
    try:
        return tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid thumbnail sizes {value!r}: {exc}") from exc


class PipelineConfig(BaseModel):
    """Configuration for the thumbnail pipeline, fixed for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    sizes: Tuple[int, ...] = DEFAULT_SIZES
    on_decode_error: OnDecodeError = OnDecodeError.SKIP_RECORD
    scratch_dir: str = "/tmp"
    keep_scratch_files: bool = False
    unquote_keys: bool = True
    jpeg_quality: int = 95
    debug: bool = False

    @field_validator("sizes")
    @classmethod
    def _validate_sizes(cls, sizes: Tuple[int, ...]) -> Tuple[int, ...]:
        if not sizes:
            raise ValueError("at least one thumbnail size is required")
        for size in sizes:
            if size <= 0:
                raise ValueError(f"thumbnail sizes must be positive, got {size}")
        # drop duplicates, keep configured order
        return tuple(dict.fromkeys(sizes))

    @field_validator("jpeg_quality")
    @classmethod
    def _validate_quality(cls, quality: int) -> int:
        if not 1 <= quality <= 100:
            raise ValueError(f"jpeg_quality must be between 1 and 100, got {quality}")
        return quality

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """
        Build a configuration from environment variables.

        Environment Variables:
            THUMBNAIL_SIZES: Comma separated square sizes (default "200,400,800")
            ON_DECODE_ERROR: "skip_record" or "abort_batch"
            SCRATCH_DIR: Local staging directory (default "/tmp")
            KEEP_SCRATCH_FILES: Keep staged files after use
            UNQUOTE_KEYS: URL-decode notification keys (default true)
            JPEG_QUALITY: JPEG encoder quality (default 95)
            DEBUG: Enable debug logging

        Raises:
            ConfigurationError: If any value is malformed
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        if "THUMBNAIL_SIZES" in env:
            values["sizes"] = parse_sizes(env["THUMBNAIL_SIZES"])
        if "ON_DECODE_ERROR" in env:
            values["on_decode_error"] = env["ON_DECODE_ERROR"].strip().lower()
        if "SCRATCH_DIR" in env:
            values["scratch_dir"] = env["SCRATCH_DIR"]
        if "JPEG_QUALITY" in env:
            values["jpeg_quality"] = env["JPEG_QUALITY"]
        for name, attr in (
            ("KEEP_SCRATCH_FILES", "keep_scratch_files"),
            ("UNQUOTE_KEYS", "unquote_keys"),
            ("DEBUG", "debug"),
        ):
            if name in env:
                values[attr] = _parse_bool(name, env[name])

        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid pipeline configuration: {exc}") from exc


class ChangeNotification(BaseModel):
    """One object-write event: the object at ``key`` in ``bucket`` changed."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    key: str

    @classmethod
    def from_s3_record(
        cls, record: Mapping[str, Any], unquote: bool = True
    ) -> "ChangeNotification":
        """Build a notification from one S3 event record.

        Object keys arrive percent-encoded (spaces as ``+``) and are decoded
        unless ``unquote`` is false.
        """
        try:
            s3 = record["s3"]
            bucket = s3["bucket"]["name"]
            key = s3["object"]["key"]
        except (KeyError, TypeError) as exc:
            raise InvalidEventError(f"Malformed S3 event record: missing {exc}") from exc

        if not isinstance(bucket, str) or not isinstance(key, str) or not bucket or not key:
            raise InvalidEventError("S3 event record has an empty or invalid bucket or key")

        return cls(bucket=bucket, key=unquote_plus(key) if unquote else key)


@dataclass
class DecodedImage:
    """A decoded RGBA raster together with the format it was read from."""

    image: Image.Image
    format: str

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


class ThumbnailResult(BaseModel):
    """Result of producing a single thumbnail variant."""

    source_key: str
    size: int
    dest_key: str = ""
    location: str = ""
    success: bool = False
    error: str = ""
    error_type: str = ""
    processing_time: float = 0.0
