"""Command-line interface for s3opts.

Provides argument parsing and the main entry point for inspecting the
effective options and presigning object URLs from the command line.
"""

import argparse
import sys
from datetime import timedelta
from typing import Optional

from botocore.exceptions import BotoCoreError
from rich import box
from rich.console import Console
from rich.table import Table

from s3opts.adapter import (
    ClientSettings,
    PresignClient,
    PresignSettings,
    new_presign_client,
    to_s3_options,
)
from s3opts.config import load_options
from s3opts.models import S3OptionsError
from s3opts.options import DEFAULT_EXPIRE, Options

PRESIGN_METHODS = ["get", "put", "head", "delete"]


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="s3opts",
        description="Inspect S3 client options and presign object URLs",
    )

    parser.add_argument(
        "-c", "--config",
        default="config.json",
        help="Path to configuration file (default: config.json)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser(
        "check",
        help="Validate and print the effective options",
    )

    presign = commands.add_parser(
        "presign",
        help="Print a presigned URL for an object",
    )
    presign.add_argument("method", choices=PRESIGN_METHODS)
    presign.add_argument("bucket")
    presign.add_argument("key")
    presign.add_argument(
        "-e", "--expires",
        type=int,
        metavar="SECONDS",
        help="URL lifetime in seconds (default: configured expiry)",
    )
    presign.add_argument(
        "--filename",
        help="Download as an attachment with this filename (get only)",
    )
    presign.add_argument(
        "--content-type",
        help="Content type the upload must use (put only)",
    )

    return parser.parse_args(argv)


def _show(value) -> str:
    if value is None or value == "" or value == ():
        return "[dim]-[/dim]"
    if isinstance(value, tuple):
        return ", ".join(value)
    return str(value)


def print_options(opts: Options, console: Optional[Console] = None) -> None:
    """Print the effective options as a table."""
    console = console or Console(legacy_windows=True)

    table = Table(title="Effective S3 options", box=box.ROUNDED)
    table.add_column("Option", style="bold")
    table.add_column("Value")

    credentials = "[dim]-[/dim]"
    if opts.credentials is not None:
        credentials = f"static ({opts.credentials.key})"
    expire = opts.default_expire
    if expire is None:
        expire = f"{DEFAULT_EXPIRE} (default)"
    transport = "default (TLS)"
    if opts.transport is not None:
        transport = type(opts.transport).__name__

    table.add_row("credentials", credentials)
    table.add_row("region", _show(opts.region))
    table.add_row("uri", _show(opts.uri))
    table.add_row("external_uri", _show(opts.external_uri))
    table.add_row("force_path_style", _show(opts.force_path_style))
    table.add_row("use_accelerate", _show(opts.use_accelerate))
    table.add_row("default_expire", _show(expire))
    table.add_row("buffer_size", _show(opts.buffer_size))
    table.add_row("unsigned_headers", _show(opts.unsigned_headers))
    table.add_row("content_type", _show(opts.content_type))
    table.add_row("filename_suffix", _show(opts.filename_suffix))
    table.add_row("transport", transport)

    console.print(table)


def build_presign_client(opts: Options) -> PresignClient:
    """Build a presign client from validated effective options."""
    client_opts, presign_opts = to_s3_options(opts)
    return new_presign_client(
        client_opts(ClientSettings()), presign_opts(PresignSettings())
    )


def presign(presigner: PresignClient, args: argparse.Namespace) -> str:
    """Presign the object named by the command-line arguments."""
    if args.expires is not None:
        presigner.settings.expires = timedelta(seconds=args.expires)
    if args.method == "get":
        return presigner.presign_get_object(args.bucket, args.key, args.filename)
    if args.method == "put":
        return presigner.presign_put_object(args.bucket, args.key, args.content_type)
    if args.method == "head":
        return presigner.presign_head_object(args.bucket, args.key)
    return presigner.presign_delete_object(args.bucket, args.key)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 for success, 2 for configuration errors
    """
    args = parse_args(argv)

    # Load and validate configuration
    try:
        opts = load_options(args.config)
        opts.validate()
    except S3OptionsError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.command == "check":
        print_options(opts)
        return 0

    if args.expires is not None and args.expires <= 0:
        print("Expiry must be a positive number of seconds", file=sys.stderr)
        return 2

    try:
        presigner = build_presign_client(opts)
    except S3OptionsError as e:
        print(f"Client error: {e}", file=sys.stderr)
        return 2

    try:
        url = presign(presigner, args)
    except BotoCoreError as e:
        print(f"Presign error: {e}", file=sys.stderr)
        return 2

    print(url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
