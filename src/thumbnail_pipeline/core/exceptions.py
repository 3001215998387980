"""Custom exceptions and error handling utilities for the thumbnail pipeline."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Type


class ThumbnailPipelineError(Exception):
    """Base exception for all thumbnail pipeline errors.

    Keyword arguments are kept in ``context`` so callers can log the
    bucket, key, path or size the failure relates to.
    """

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message)
        self.context = {k: v for k, v in context.items() if v is not None}


class ConfigurationError(ThumbnailPipelineError):
    """Error raised for invalid configuration options."""


class InvalidEventError(ThumbnailPipelineError):
    """Error raised when a change notification cannot be parsed."""


class StagingError(ThumbnailPipelineError):
    """Error raised when a local scratch file cannot be created or written."""


class FetchError(ThumbnailPipelineError):
    """Error raised when a source object cannot be retrieved."""


class DecodeError(ThumbnailPipelineError):
    """Error raised for unsupported or corrupt image bytes."""


class InvalidKeyError(ThumbnailPipelineError):
    """Error raised when a source key has too few segments for derivation."""


class EncodeError(ThumbnailPipelineError):
    """Error raised when a thumbnail cannot be encoded."""


class StoreError(ThumbnailPipelineError):
    """Error raised when a thumbnail cannot be uploaded."""


@contextmanager
def error_boundary(
    error_cls: Type[ThumbnailPipelineError], message: str, **context: Any
) -> Iterator[None]:
    """Wrap foreign exceptions raised in the block into ``error_cls``.

    Pipeline errors pass through untouched.
    """
    try:
        yield
    except ThumbnailPipelineError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise error_cls(f"{message}: {exc}", **context) from exc
