"""Main module for the catalog media CLI."""

import sys
import asyncio
import argparse
from pathlib import Path
from typing import List, Optional

import aiohttp

from . import __version__
from .api.files import FilesApi
from .core.exceptions import CatalogMediaError
from .core.factories import UploadPipelineFactory
from .core.image_utils import format_file_size
from .core.logging_config import get_logger, set_debug
from .core.models import ProcessingOptions, SourceFile, TargetFormat
from .core.settings import ClientSettings, get_settings
from .core.transcoder import ImageTranscoder
from .upload.validation import UploadConstraints


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="catalog-media",
        description="Catalog Media - image transcoding and presigned uploads for the catalog admin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Shrink and convert an image locally
  catalog-media transcode photo.jpg -o photo.webp --max-width 1280

  # Upload product images and move them to the permanent folder
  catalog-media upload a.jpg b.png --permanent products

  # Show version
  catalog-media version
        """,
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    transcode_parser = subparsers.add_parser(
        "transcode", parents=[common], help="Resize and re-encode an image locally"
    )
    transcode_parser.add_argument("source", help="Image file to transcode")
    transcode_parser.add_argument(
        "-o", "--output", default=None, help="Output path (defaults next to the source)"
    )
    _add_processing_arguments(transcode_parser)

    upload_parser = subparsers.add_parser(
        "upload", parents=[common], help="Upload files through presigned URLs"
    )
    upload_parser.add_argument("files", nargs="+", help="Files to upload")
    destination = upload_parser.add_mutually_exclusive_group()
    destination.add_argument(
        "--folder", default=None, help="Staging folder (default from settings)"
    )
    destination.add_argument(
        "--permanent",
        metavar="FOLDER",
        default=None,
        help="Move uploaded files to this permanent folder",
    )
    upload_parser.add_argument(
        "--no-processing", action="store_true", help="Upload images without transcoding"
    )
    upload_parser.add_argument(
        "--accept", default=None, help="Accepted MIME patterns, e.g. 'image/*'"
    )
    upload_parser.add_argument(
        "--max-size", type=int, default=None, help="Maximum size per file in bytes"
    )

    promote_parser = subparsers.add_parser(
        "promote", parents=[common], help="Move uploaded objects to a permanent folder"
    )
    promote_parser.add_argument("keys", nargs="+", help="Temporary object keys")
    promote_parser.add_argument(
        "--folder", default=None, help="Permanent folder (default from settings)"
    )

    delete_parser = subparsers.add_parser(
        "delete", parents=[common], help="Delete a stored object"
    )
    delete_parser.add_argument("key", help="Object key")

    info_parser = subparsers.add_parser(
        "info", parents=[common], help="Show the public URL of a stored object"
    )
    info_parser.add_argument("key", help="Object key")

    login_parser = subparsers.add_parser(
        "login", parents=[common], help="Store access and refresh tokens"
    )
    login_parser.add_argument("--access-token", required=True)
    login_parser.add_argument("--refresh-token", default=None)

    subparsers.add_parser("version", help="Show version information")

    return parser


def _add_processing_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--max-width", type=int, default=None)
    parser.add_argument("--max-height", type=int, default=None)
    parser.add_argument(
        "--quality", type=float, default=None, help="Encoder quality between 0 and 1"
    )
    parser.add_argument(
        "--format",
        dest="target_format",
        choices=[f.value for f in TargetFormat],
        default=None,
    )
    parser.add_argument(
        "--no-aspect",
        action="store_true",
        help="Clamp width and height independently",
    )


def processing_options_from_args(
    args: argparse.Namespace, settings: ClientSettings
) -> ProcessingOptions:
    """Merge command-line overrides into the configured processing options."""
    defaults = settings.processing_options()
    overrides = {
        "max_width": args.max_width,
        "max_height": args.max_height,
        "quality": args.quality,
        "target_format": args.target_format,
    }
    values = defaults.model_dump()
    values.update({k: v for k, v in overrides.items() if v is not None})
    if args.no_aspect:
        values["maintain_aspect_ratio"] = False
    return ProcessingOptions(**values)


def run_transcode(args: argparse.Namespace, settings: ClientSettings) -> None:
    logger = get_logger("catalog-media.cli")
    options = processing_options_from_args(args, settings)
    source = SourceFile.from_path(args.source)

    result = ImageTranscoder().transcode(source, options)

    output = Path(args.output) if args.output else Path(args.source).with_name(result.file.name)
    output.write_bytes(result.file.data)
    logger.info(
        f"Wrote {output} ({result.width}x{result.height}): "
        f"{format_file_size(result.original_size)} -> "
        f"{format_file_size(result.processed_size)} ({result.compression_ratio}%)"
    )


async def run_upload(args: argparse.Namespace, settings: ClientSettings) -> List[str]:
    logger = get_logger("catalog-media.cli")
    files = [SourceFile.from_path(path) for path in args.files]

    constraints = UploadConstraints(
        accept=args.accept or settings.accept,
        max_size=args.max_size or settings.max_upload_size,
        max_count=settings.max_count,
    )
    constraints.validate_files(files)

    async with aiohttp.ClientSession() as session:
        orchestrator = UploadPipelineFactory.create_orchestrator(
            settings,
            session=session,
            enable_image_processing=not args.no_processing,
        )
        if args.permanent:
            if len(files) == 1:
                refs = [await orchestrator.upload_and_promote(files[0], args.permanent)]
            else:
                refs = await orchestrator.upload_multiple_and_move_to_permanent(
                    files, args.permanent
                )
            urls = [ref.public_url for ref in refs]
        else:
            folder = args.folder or settings.staging_folder
            if len(files) == 1:
                grants = [await orchestrator.upload_file(files[0], folder=folder)]
            else:
                grants = await orchestrator.upload_multiple_files(files, folder)
            urls = [grant.public_url for grant in grants]

    for url in urls:
        print(url)
    logger.info(f"Uploaded {len(urls)} file(s)")
    return urls


async def run_promote(args: argparse.Namespace, settings: ClientSettings) -> None:
    folder = args.folder or settings.permanent_folder
    async with aiohttp.ClientSession() as session:
        client = UploadPipelineFactory.create_api_client(settings, session=session)
        files_api = FilesApi(client)
        if len(args.keys) == 1:
            refs = [await files_api.move_to_permanent(args.keys[0], folder)]
        else:
            refs = await files_api.move_multiple_to_permanent(args.keys, folder)
    for ref in refs:
        print(f"{ref.key}\t{ref.public_url}")


async def run_delete(args: argparse.Namespace, settings: ClientSettings) -> None:
    async with aiohttp.ClientSession() as session:
        orchestrator = UploadPipelineFactory.create_orchestrator(
            settings, session=session, enable_image_processing=False
        )
        print(await orchestrator.delete_file(args.key))


async def run_info(args: argparse.Namespace, settings: ClientSettings) -> None:
    async with aiohttp.ClientSession() as session:
        orchestrator = UploadPipelineFactory.create_orchestrator(
            settings, session=session, enable_image_processing=False
        )
        info = await orchestrator.get_file_info(args.key)
    print(f"{info.file_key}\t{info.public_url}")


def run_login(args: argparse.Namespace, settings: ClientSettings) -> None:
    auth = UploadPipelineFactory.create_auth(settings)
    auth.set_tokens(args.access_token, args.refresh_token)
    get_logger("catalog-media.cli").info(f"Tokens stored in {settings.token_path}")


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the catalog media command-line interface.

    Dispatches to one handler per subcommand. Library errors are logged and
    turn into exit status 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print("Catalog Media CLI")
        print(f"Version {__version__}")
        print("Image transcoding and presigned uploads for the catalog admin")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logger = get_logger("catalog-media.cli")
    set_debug(args.debug)
    settings = get_settings()

    try:
        if args.command == "transcode":
            run_transcode(args, settings)
        elif args.command == "upload":
            asyncio.run(run_upload(args, settings))
        elif args.command == "promote":
            asyncio.run(run_promote(args, settings))
        elif args.command == "delete":
            asyncio.run(run_delete(args, settings))
        elif args.command == "info":
            asyncio.run(run_info(args, settings))
        elif args.command == "login":
            run_login(args, settings)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
    except (CatalogMediaError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
