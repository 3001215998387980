"""Core utilities and shared components for the thumbnail pipeline."""

from .image_utils import (
    decode_image,
    encode_image,
    format_for_key,
    resample,
)
from .keys import derive_thumbnail_key
from .exceptions import (
    ThumbnailPipelineError,
    ConfigurationError,
    InvalidEventError,
    StagingError,
    FetchError,
    DecodeError,
    InvalidKeyError,
    EncodeError,
    StoreError,
    error_boundary,
)
from .models import (
    ChangeNotification,
    DecodedImage,
    OnDecodeError,
    PipelineConfig,
    ThumbnailResult,
)

__all__ = [
    "ChangeNotification",
    "DecodedImage",
    "OnDecodeError",
    "PipelineConfig",
    "ThumbnailResult",
    "decode_image",
    "encode_image",
    "format_for_key",
    "resample",
    "derive_thumbnail_key",
    "ThumbnailPipelineError",
    "ConfigurationError",
    "InvalidEventError",
    "StagingError",
    "FetchError",
    "DecodeError",
    "InvalidKeyError",
    "EncodeError",
    "StoreError",
    "error_boundary",
]
