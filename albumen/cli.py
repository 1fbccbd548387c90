"""Command line entry point: `albumen new` and `albumen build`."""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from albumen import __version__
from albumen.config import CONFIG_FILENAME, load_config, write_default_config
from albumen.errors import GalleryError
from albumen.pipeline import build

logger = logging.getLogger("albumen")


def setup_logger(level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """Console logging for the build, plus an optional DEBUG-level log file."""
    root = logging.getLogger("albumen")
    root.setLevel(logging.DEBUG)
    for handler in root.handlers:
        handler.close()
    root.handlers = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(getattr(logging, level.upper()))
    console.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(file_handler)

    return root


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="albumen",
        description="Build a static photo gallery from a directory of images",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-c", "--config", type=Path, default=Path(CONFIG_FILENAME),
        help=f"configuration file (default: {CONFIG_FILENAME})",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="show debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="only show warnings and errors")
    parser.add_argument("--log-file", type=Path, help="also write a debug log to this file")

    commands = parser.add_subparsers(dest="command", required=True)

    new = commands.add_parser("new", help=f"create a default {CONFIG_FILENAME}")
    new.add_argument("--force", action="store_true", help="overwrite an existing configuration")

    build_cmd = commands.add_parser("build", help="build the static gallery")
    build_cmd.add_argument("--strict", action="store_true", help="fail the build if any page fails to render")
    build_cmd.add_argument("--force", action="store_true", help="regenerate thumbnails even if up to date")
    build_cmd.add_argument("-j", "--workers", type=int, help="number of worker threads")

    return parser


def run_build(args) -> int:
    config = load_config(args.config)
    overrides = {}
    if args.strict:
        overrides["strict"] = True
    if args.force:
        overrides["force"] = True
    if args.workers:
        overrides["workers"] = max(1, args.workers)
    if overrides:
        config = dataclasses.replace(config, **overrides)

    report = build(config)
    if not report.ok:
        logger.error("Build failed with %d fatal error(s)", len(report.fatal_issues))
    return report.exit_code


def main(argv=None) -> int:
    args = make_parser().parse_args(argv)
    level = "DEBUG" if args.verbose else "WARNING" if args.quiet else "INFO"
    setup_logger(level, args.log_file)

    try:
        if args.command == "new":
            write_default_config(args.config, overwrite=args.force)
            return 0
        return run_build(args)
    except GalleryError as err:
        logger.error("Error: %s", err)
        return 1
