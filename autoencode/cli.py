"""CLI entrypoint for autoencode."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import requests

from .config import (
    Settings,
    ensure_config_exists,
    load_config,
    save_default_config,
    save_default_secrets,
    validate_config,
)
from .daemon import AutoEncodeDaemon, build_context
from .errors import AutoencodeError, ConfigError
from .files import is_media
from .lookup import MediaLookup
from .step_metadata import STEP_METADATA
from .steps.builtin import BUILTINS
from .util import classify_exception, move_file, redact_payload, write_json

logger = logging.getLogger("autoencode")

EXIT_CONFIG = 2


def configure_logging(config: dict[str, Any], quiet: bool = False, verbose: bool = False) -> None:
    opts = config.get("logging", {}) or {}
    if quiet:
        level = logging.ERROR
    elif verbose or opts.get("silly"):
        level = logging.DEBUG
    elif opts.get("verbose", True):
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # urllib3 is chatty at DEBUG and echoes query strings.
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def _load(args: argparse.Namespace) -> dict[str, Any]:
    config = load_config(ensure_config_exists(args.config))
    configure_logging(config, quiet=args.quiet, verbose=args.verbose)
    return config


def _report_failure(exc: Exception) -> None:
    code, hint = classify_exception(exc)
    sys.stderr.write(f"error [{code}]: {redact_payload(str(exc))}\n")
    if hint:
        sys.stderr.write(f"hint: {hint}\n")


def cmd_init(args: argparse.Namespace) -> int:
    cfg_path = save_default_config(path=Path(args.config).expanduser() if args.config else None, overwrite=args.force)
    save_default_secrets(overwrite=False)
    sys.stdout.write(f"Initialized config at {cfg_path}\n")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    config = _load(args)
    daemon = AutoEncodeDaemon(config)
    try:
        asyncio.run(daemon.run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


def cmd_process(args: argparse.Namespace) -> int:
    config = _load(args)
    daemon = AutoEncodeDaemon(config)
    paths = [Path(p).expanduser() for p in args.paths]
    missing = [p for p in paths if not p.exists()]
    for path in missing:
        sys.stderr.write(f"warning: {path} does not exist\n")
    asyncio.run(daemon.process([p for p in paths if p.exists()]))
    return 0


def cmd_sort(args: argparse.Namespace) -> int:
    """Place already-encoded files from DIR into the library without re-encoding."""
    config = _load(args)
    context = build_context(config)
    directory = Path(args.directory).expanduser()
    if not directory.is_dir():
        sys.stderr.write(f"error: {directory} is not a directory\n")
        return 1
    moved = 0
    for path in sorted(directory.iterdir()):
        if not path.is_file() or not is_media(path):
            continue
        target = context.placement.resolve(path)
        if target == context.placement.fallback_path(path):
            sys.stderr.write(f"skipped: {path.name} (no confident match)\n")
            continue
        if args.dry_run:
            sys.stdout.write(f"{path} -> {target}\n")
            continue
        try:
            move_file(path, target)
        except OSError as exc:
            _report_failure(exc)
            continue
        moved += 1
        sys.stdout.write(f"{path.name} -> {target}\n")
    logger.info("Sorted %d file(s) from %s", moved, directory)
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    config = _load(args)
    lookup = MediaLookup.from_config(config)
    try:
        if args.tv:
            options = lookup.tv_series_options(args.title, args.year)
        else:
            options = lookup.movie_options(args.title, args.year)
    except (AutoencodeError, requests.RequestException) as exc:
        _report_failure(exc)
        return 1
    if args.limit:
        options = options[: args.limit]
    write_json([option.to_dict() for option in options])
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    config = load_config(ensure_config_exists(args.config))
    if args.kind == "steps":
        active = set(config.get("pipeline") or [])
        for name in BUILTINS:
            meta = STEP_METADATA.get(name, {})
            marker = "*" if name in active else " "
            sys.stdout.write(f"{marker} {name}: {meta.get('description', '')}\n")
        return 0
    if args.kind == "pipeline":
        sys.stdout.write(" -> ".join(config.get("pipeline") or []) + "\n")
        return 0
    sys.stderr.write("unknown list kind\n")
    return 1


def cmd_validate(args: argparse.Namespace) -> int:
    config = load_config(ensure_config_exists(args.config))
    errors, warnings = validate_config(config, list(BUILTINS.keys()))
    if not errors:
        try:
            Settings.from_config(config)
        except ConfigError as exc:
            errors.append(str(exc))
    for warning in warnings:
        sys.stderr.write(f"warning: {warning}\n")
    for error in errors:
        sys.stderr.write(f"error: {error}\n")
    return 1 if errors else 0


def build_parser() -> argparse.ArgumentParser:
    epilog = (
        "Examples:\n"
        "  autoencode init\n"
        "  autoencode run\n"
        "  autoencode process ~/Downloads/complete/Show.Name.S01E02.mkv\n"
        "  autoencode sort ~/Videos/encoded --dry-run\n"
        "  autoencode lookup \"The Wire\" --tv\n"
        "  autoencode list steps\n"
    )
    parser = argparse.ArgumentParser(
        prog="autoencode",
        description="Watch a download folder, transcode media and file it into a library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to config file (or set AUTOENCODE_CONFIG)")
    common.add_argument("--quiet", action="store_true", help="Only log errors")
    common.add_argument("--verbose", action="store_true", help="Log debug output")

    init_cmd = sub.add_parser("init", parents=[common], help="Initialize default config")
    init_cmd.add_argument("--force", action="store_true", help="Overwrite config if it exists")
    init_cmd.set_defaults(func=cmd_init)

    run_cmd = sub.add_parser("run", parents=[common], help="Watch paths.watch and process new files")
    run_cmd.set_defaults(func=cmd_run)

    process_cmd = sub.add_parser("process", parents=[common], help="Process the given files once and exit")
    process_cmd.add_argument("paths", nargs="+", help="Files or archives to process")
    process_cmd.set_defaults(func=cmd_process)

    sort_cmd = sub.add_parser("sort", parents=[common], help="Move encoded files into the library")
    sort_cmd.add_argument("directory", help="Directory holding encoded files")
    sort_cmd.add_argument("--dry-run", action="store_true", help="Print targets without moving")
    sort_cmd.set_defaults(func=cmd_sort)

    lookup_cmd = sub.add_parser("lookup", parents=[common], help="Show ranked catalog candidates for a title")
    lookup_cmd.add_argument("title", help="Title to search for")
    lookup_cmd.add_argument("--year", type=int, help="Release year")
    lookup_cmd.add_argument("--tv", action="store_true", help="Search TV series instead of movies")
    lookup_cmd.add_argument("--limit", type=int, default=10, help="Maximum candidates to print (0 for all)")
    lookup_cmd.set_defaults(func=cmd_lookup)

    list_cmd = sub.add_parser("list", parents=[common], help="List steps or the configured pipeline")
    list_cmd.add_argument("kind", choices=["steps", "pipeline"])
    list_cmd.set_defaults(func=cmd_list)

    validate_cmd = sub.add_parser("validate", parents=[common], help="Validate config")
    validate_cmd.set_defaults(func=cmd_validate)

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    try:
        code = args.func(args)
    except ConfigError as exc:
        _report_failure(exc)
        code = EXIT_CONFIG
    except FileNotFoundError as exc:
        _report_failure(exc)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
