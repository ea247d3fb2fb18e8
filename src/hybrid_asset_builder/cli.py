"""Command line front end for the lifecycle hooks."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from .exceptions import BuildError
from .hooks import HookContext, after_plugin_add, before_prepare

logger = logging.getLogger(__name__)

# (option strings, raw flag name)
BOOLEAN_FLAGS: list[tuple[tuple[str, ...], str]] = [
    (("-p", "--prod", "--production"), "production"),
    (("-d", "--debug"), "debug"),
    (("-ad", "--angular-debug"), "angular-debug"),
    (("-sl", "--skip-lint"), "skip-lint"),
    (("-nf", "--no-fail-lint"), "no-fail-lint"),
    (("-sc", "--skip-comp"), "skip-comp"),
    (("-vb", "--verb", "--verbose"), "verbose"),
    (("-xr", "--extended-report"), "extended-report"),
    (("-sa", "--skip-all"), "skip-all"),
    (("-ppr", "--preprocess-resources"), "preprocess-resources"),
    (("--skipHtmlCompression",), "skipHtmlCompression"),
    (("--skipResCompression",), "skipResCompression"),
]


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hybrid-asset-builder",
        description="Build a web app source tree into a deployable asset bundle.",
        add_help=False,
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["prepare", "add"],
        default="prepare",
        help="prepare: build or serve src into www. add: move www to src.",
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help.")
    parser.add_argument(
        "--project-root", type=Path, default=Path("."), help="Project directory."
    )
    parser.add_argument(
        "--plugin-dir",
        type=Path,
        default=None,
        help="Where the serve marker lives (defaults to the project directory).",
    )
    parser.add_argument(
        "-w",
        "--watch",
        "--serve",
        dest="serve",
        action="store_true",
        help="Mirror src to www and watch for changes instead of building.",
    )
    parser.add_argument("--dest", default=None, help="Destination directory name.")
    for option_strings, name in BOOLEAN_FLAGS:
        parser.add_argument(
            *option_strings,
            dest=name,
            action="store_const",
            const=True,
            default=None,
        )
    return parser


def raw_flags(args: argparse.Namespace) -> dict[str, Any]:
    raw: dict[str, Any] = {name: getattr(args, name) for _, name in BOOLEAN_FLAGS}
    raw["help"] = args.help or None
    raw["dest"] = args.dest
    return raw


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="%Y-%m-%d %H:%M",
        handlers=[RichHandler(show_path=False, log_time_format="%Y-%m-%d %H:%M")],
    )


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    if args.help:
        parser.print_help()
        return 0

    configure_logging(bool(args.verbose))
    context = HookContext(
        project_root=args.project_root,
        plugin_dir=args.plugin_dir or args.project_root,
        options=raw_flags(args),
        cmd_line=f"{args.command} serve" if args.serve else args.command,
    )

    try:
        if args.command == "add":
            after_plugin_add(context)
        else:
            asyncio.run(before_prepare(context))
    except BuildError as e:
        logger.error("Build failed: %s", e)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0
