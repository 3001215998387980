"""Main module for the thumbnail pipeline CLI."""

import sys
import argparse
from typing import List, Optional

from . import __version__
from .core import (
    ChangeNotification,
    ConfigurationError,
    OnDecodeError,
    PipelineConfig,
    ThumbnailPipelineError,
)
from .core.factories import LoggerFactory, ThumbnailPipelineFactory
from .core.models import parse_sizes
from .core.observability import LogContext


def build_parser() -> argparse.ArgumentParser:
    """
    Build the ``thumbnail-pipeline`` argument parser.

    ``process`` regenerates thumbnails for objects that are already in a
    bucket, the same way an object-created notification would.
    """
    parser = argparse.ArgumentParser(
        prog="thumbnail-pipeline",
        description="Thumbnail Pipeline - square thumbnails for images stored in S3",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Regenerate the configured thumbnails for one object
  thumbnail-pipeline process --bucket uploads --key image/png/ea/photo.png

  # Only the 200px variant, abort on the first undecodable image
  thumbnail-pipeline process --bucket uploads --key a/b/c.jpg --key a/b/d.jpg \\
                             --sizes 200 --on-decode-error abort_batch

  # Show version
  thumbnail-pipeline version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser(
        "process", help="Generate thumbnails for objects in an S3 bucket"
    )
    process_parser.add_argument("--bucket", required=True, help="Source S3 bucket")
    process_parser.add_argument(
        "--key",
        dest="keys",
        action="append",
        required=True,
        help="Source object key (repeatable)",
    )
    process_parser.add_argument(
        "--sizes",
        default=None,
        help="Comma separated square sizes, e.g. 200,400,800 (default: THUMBNAIL_SIZES or 200,400,800)",
    )
    process_parser.add_argument(
        "--on-decode-error",
        default=None,
        choices=[policy.value for policy in OnDecodeError],
        help="What to do with undecodable images (default: skip_record)",
    )
    process_parser.add_argument(
        "--scratch-dir", default=None, help="Local staging directory (default: /tmp)"
    )
    process_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    subparsers.add_parser("version", help="Show version information")

    return parser


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Merge command-line overrides into the environment configuration."""
    config = PipelineConfig.from_env()
    overrides = {}
    if args.sizes:
        overrides["sizes"] = parse_sizes(args.sizes)
    if args.on_decode_error:
        overrides["on_decode_error"] = OnDecodeError(args.on_decode_error)
    if args.scratch_dir:
        overrides["scratch_dir"] = args.scratch_dir
    if args.debug:
        overrides["debug"] = True

    try:
        return PipelineConfig(**{**config.model_dump(), **overrides})
    except ValueError as exc:
        raise ConfigurationError(f"Invalid pipeline configuration: {exc}") from exc


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the command-line interface of the Thumbnail Pipeline.

    Exits with status 1 when the configuration is invalid or the batch is
    aborted by an undecodable image.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print("Thumbnail Pipeline CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    if args.command != "process":
        parser.print_help()
        sys.exit(1)

    logger = LoggerFactory.create_logger("thumbnail_pipeline.cli", debug=args.debug)
    try:
        config = build_config(args)
        pipeline = ThumbnailPipelineFactory.create_pipeline(config=config)
        notifications = [
            ChangeNotification(bucket=args.bucket, key=key) for key in args.keys
        ]
        count = pipeline.process_notifications(notifications)
    except KeyboardInterrupt:
        logger.warning("Processing interrupted by user.")
        sys.exit(130)
    except ThumbnailPipelineError as e:
        logger.error("Processing failed", LogContext(operation="process").with_error(e))
        sys.exit(1)

    print(f"{count} records processed")


if __name__ == "__main__":
    main()
