"""Command-line interface for the image storage engine."""

import argparse
import mimetypes
import os
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .core.exceptions import ImageStorageError
from .core.logging_config import setup_logger
from .core.models import IncomingFile, StoredFile
from .engine import ImageStorageEngine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-storage-engine",
        description="Transform images and stream them into Google Cloud Storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload a file unchanged
  image-storage-engine upload photo.png --bucket my-bucket \\
                       --project-id my-project --key-filename key.json

  # Resize to 100x100, convert to JPEG and store under public/img
  image-storage-engine upload photo.png --bucket my-bucket --width 100 --height 100 \\
                       --format jpeg --destination public/img

  # Remove a stored file
  image-storage-engine remove 3f2a... --bucket my-bucket --destination public/img
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--bucket", help="GCS bucket")
    common.add_argument("--project-id", help="GCP project id")
    common.add_argument("--key-filename", help="Service account key file")
    common.add_argument("--destination", default="", help="Object key prefix")
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    upload_parser = subparsers.add_parser(
        "upload", parents=[common], help="Transform and upload a local image"
    )
    upload_parser.add_argument("path", help="Local image file")
    upload_parser.add_argument(
        "--acl", default="private", choices=["private", "publicRead"], help="Object ACL"
    )
    upload_parser.add_argument("--format", default=None, help="Output format")
    upload_parser.add_argument("--width", type=int, default=None, help="Resize width")
    upload_parser.add_argument("--height", type=int, default=None, help="Resize height")
    upload_parser.add_argument(
        "--rotate", type=int, default=None, help="Rotate clockwise (0, 90, 180, 270)"
    )
    upload_parser.add_argument("--greyscale", action="store_true", help="Greyscale")

    remove_parser = subparsers.add_parser(
        "remove", parents=[common], help="Delete a stored object"
    )
    remove_parser.add_argument("filename", help="Stored filename")

    subparsers.add_parser("version", help="Show version information")
    return parser


def options_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "bucket": args.bucket,
        "project_id": args.project_id,
        "key_filename": args.key_filename,
        "destination": args.destination,
    }
    if args.command == "upload":
        options["acl"] = args.acl
        if args.format:
            options["format"] = args.format
        if args.width or args.height:
            options["size"] = {"width": args.width, "height": args.height}
        if args.rotate is not None:
            options["rotate"] = args.rotate
        options["greyscale"] = args.greyscale
    return options


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print("Image Storage Engine")
        print(f"Version {__version__}")
        return 0
    if args.command not in ("upload", "remove"):
        parser.print_help()
        return 1

    logger = setup_logger(level="DEBUG" if args.debug else None)

    try:
        engine = ImageStorageEngine(options_from_args(args))
        if args.command == "upload":
            mimetype = mimetypes.guess_type(args.path)[0] or "application/octet-stream"
            with open(args.path, "rb") as stream:
                result = engine.handle_file(
                    None,
                    IncomingFile(
                        fieldname="file",
                        originalname=os.path.basename(args.path),
                        mimetype=mimetype,
                        stream=stream,
                    ),
                )
            print(result.model_dump_json(indent=2))
        else:
            engine.remove(None, StoredFile(fieldname="file", filename=args.filename))
            print(f"Removed {args.filename}")
    except (ImageStorageError, OSError) as exc:
        logger.error(f"{args.command} failed: {exc}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
