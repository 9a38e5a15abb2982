"""Extcast CLI — extcast dev / extcast specs.

Entry point for the ``extcast`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the extcast CLI."""
    parser = argparse.ArgumentParser(
        prog="extcast",
        description="Live extension development server.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # extcast dev
    dev_parser = subparsers.add_parser(
        "dev",
        help="Start the extension development server",
    )
    dev_parser.add_argument("root", nargs="?", default=".", help="App root directory")
    dev_parser.add_argument("--host", default=None, help="Bind address")
    dev_parser.add_argument("--port", type=int, default=None, help="Bind port")
    dev_parser.add_argument(
        "--endpoint", default=None, help="WebSocket and JSON endpoint path",
    )

    # extcast specs
    specs_parser = subparsers.add_parser(
        "specs",
        help="List registered extension specifications",
    )
    specs_parser.add_argument("root", nargs="?", default=".", help="App root directory")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from extcast import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from extcast._errors import ExtcastError
    from extcast.app import dev, list_specs

    try:
        if args.command == "dev":
            dev(root=args.root, host=args.host, port=args.port, endpoint=args.endpoint)
        elif args.command == "specs":
            list_specs(root=args.root)
    except ExtcastError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
