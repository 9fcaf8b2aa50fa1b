"""Entry point for the linesh CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from linesh.errors import ConfigurationError, InputError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="linesh: interactive line-editing shell")
    parser.add_argument("--prompt", default="{pwd}> ", help="Prompt template; {pwd}, {whoami}, {hostname} are expanded")
    parser.add_argument(
        "--trusted", action="append", default=[], metavar="NAME", help="Trusted external command (repeatable)"
    )
    parser.add_argument(
        "--allow-cmd",
        action="append",
        default=[],
        metavar="PERMISSION",
        help='Grant a command permission, e.g. "git log" (repeatable)',
    )
    parser.add_argument("--builtin", action="append", default=[], metavar="NAME", help="Enable a builtin command")
    parser.add_argument("--light", action="store_true", help="Colours for a light terminal background")
    parser.add_argument("--no-signals", action="store_true", help="Do not install signal handlers")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    parser.add_argument(
        "--log-file",
        default=os.environ.get("LINESH_LOG_FILE"),
        help="Log file (default: $LINESH_LOG_FILE); nothing is logged without one",
    )
    return parser


def configure_logging(level: str, log_file: str | None) -> None:
    # The terminal is in raw mode while the session runs: never log to it.
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=getattr(logging, level.upper()),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    else:
        logging.getLogger().addHandler(logging.NullHandler())


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    from linesh.config import ReplConfig
    from linesh.lang import CommandPermission
    from linesh.repl import Repl

    try:
        config = ReplConfig(
            prompt=args.prompt,
            builtin_commands=args.builtin,
            trusted_commands=args.trusted,
            permissions=[CommandPermission.parse(p) for p in args.allow_cmd],
            handle_signals=not args.no_signals,
            light_theme=args.light,
        )
        repl = Repl(config)
    except (ConfigurationError, ValueError) as exc:
        print(f"linesh: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        asyncio.run(repl.run())
    except InputError as exc:
        print(f"linesh: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
