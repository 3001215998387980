"""Local scratch files used to stage objects between store calls."""

import os
from contextlib import contextmanager
from typing import BinaryIO, Iterator

from .exceptions import StagingError


def scratch_path(scratch_dir: str, bucket: str, key: str) -> str:
    """
    Return the local staging path for ``bucket``/``key`` under ``scratch_dir``.

    Raises:
        StagingError: If the key would resolve outside the scratch directory
    """
    root = os.path.realpath(scratch_dir)
    path = os.path.realpath(os.path.join(root, bucket, key.lstrip("/")))
    if os.path.commonpath([root, path]) != root or path == root:
        raise StagingError(
            f"Key {key!r} resolves outside the scratch directory",
            bucket=bucket,
            key=key,
            path=path,
        )
    return path


@contextmanager
def staged_file(
    scratch_dir: str, bucket: str, key: str, keep: bool = False
) -> Iterator[BinaryIO]:
    """
    Open a read/write scratch file for ``bucket``/``key``.

    Parent directories are created as needed. The file is closed however
    the block exits; unless ``keep`` is set it is removed, along with any
    parent directories left empty, up to the bucket directory.

    Raises:
        StagingError: If the directory or file cannot be created
    """
    path = scratch_path(scratch_dir, bucket, key)

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handle = open(path, "w+b")
    except OSError as exc:
        raise StagingError(
            f"Failed to create scratch file: {exc}", bucket=bucket, key=key, path=path
        ) from exc

    try:
        yield handle
    finally:
        handle.close()
        if not keep:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            _prune_empty_dirs(os.path.dirname(path), scratch_dir, bucket)


def _prune_empty_dirs(directory: str, scratch_dir: str, bucket: str) -> None:
    bucket_dir = os.path.join(os.path.realpath(scratch_dir), bucket)
    while (
        directory != bucket_dir
        and os.path.commonpath([bucket_dir, directory]) == bucket_dir
    ):
        try:
            os.rmdir(directory)
        except OSError:
            return
        directory = os.path.dirname(directory)
