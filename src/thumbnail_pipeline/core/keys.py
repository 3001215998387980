"""Destination key naming for thumbnail variants."""

from .exceptions import InvalidKeyError

THUMB_PREFIX = "thumb"
MIN_KEY_SEGMENTS = 3


def derive_thumbnail_key(source_key: str, size: int) -> str:
    """
    Calculate the thumbnail key for ``source_key`` at ``size``.

    The first two path segments (``<category>/<subcategory>``) are replaced
    by ``thumb/<size>``; the rest of the key is kept as is, so
    ``image/png/ea/eg/ad/photo.png`` becomes ``thumb/200/ea/eg/ad/photo.png``.
    Thumbnails are written back to the source bucket.

    Args:
        source_key: Source object key
        size: Square thumbnail dimension in pixels

    Returns:
        Destination object key

    Raises:
        InvalidKeyError: If the key has fewer than three segments
    """
    segments = source_key.split("/")
    if len(segments) < MIN_KEY_SEGMENTS:
        raise InvalidKeyError(
            f"Key {source_key!r} has {len(segments)} segment(s), "
            f"at least {MIN_KEY_SEGMENTS} are required",
            key=source_key,
            size=size,
        )

    return "/".join([THUMB_PREFIX, str(size), *segments[2:]])


def is_thumbnail_key(key: str) -> bool:
    """Return True if ``key`` lies under the thumbnail prefix."""
    return key.startswith(f"{THUMB_PREFIX}/")
