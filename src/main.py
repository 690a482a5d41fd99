# src/main.py - v1
"""CLI entry point: scan, show, status commands.

Usage:
    bucketscan scan <directory> [--fresh] [--state-dir DIR]
    bucketscan show [--group KEY] [--state-dir DIR]
    bucketscan status [--state-dir DIR]
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from bucketscan.logging.logger import get_logger, setup_logging
from bucketscan.version import __version__

logger = get_logger("cli")

EXIT_DENIED = 2
EXIT_CANCELLED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from bucketscan.config.settings import ConfigurationError, load_settings

    overrides: dict[str, object] = {}
    if args.state_dir is not None:
        overrides["state_dir"] = args.state_dir
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    try:
        settings = load_settings(**overrides)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_CANCELLED
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="bucketscan",
        description=f"bucketscan v{__version__}: resumable bucket classification",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    # Shared by every subcommand so it can follow the subcommand name.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--state-dir", type=Path, default=None,
        help="Directory holding checkpoint/result records (default: settings)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- scan ---
    p_scan = subparsers.add_parser(
        "scan", parents=[common], help="Classify the files of a directory",
    )
    p_scan.add_argument("directory", type=Path, help="Directory to scan")
    p_scan.add_argument(
        "--fresh", action="store_true",
        help="Ignore pending progress and cached results; rescan from scratch",
    )
    p_scan.set_defaults(func=_cmd_scan)

    # --- show ---
    p_show = subparsers.add_parser(
        "show", parents=[common], help="Show the last completed result",
    )
    p_show.add_argument(
        "--group", default=None,
        help="List the identifiers of one group (e.g. 'a' or 'other')",
    )
    p_show.set_defaults(func=_cmd_show)

    # --- status ---
    p_status = subparsers.add_parser(
        "status", parents=[common], help="Show pending scan progress",
    )
    p_status.set_defaults(func=_cmd_status)

    return parser


async def _cmd_scan(args: argparse.Namespace, settings) -> int:
    """Scan a directory: resume, reuse the cached result, or start fresh."""
    from bucketscan.api.facade import ScanService
    from bucketscan.scan.events import ScanObserver
    from bucketscan.sources.directory_source import DirectoryItemSource

    source = DirectoryItemSource(
        args.directory,
        extensions=settings.scan_extensions_list,
        recursive=settings.scan_recursive,
    )
    service = ScanService.from_settings(source, settings=settings)

    if not await service.request_access():
        print(f"Permission denied: {args.directory}", file=sys.stderr)
        return EXIT_DENIED

    cancel_event = asyncio.Event()
    _install_cancel_handler(cancel_event)

    cancelled: list[int] = []
    observer = ScanObserver(
        on_progress=_print_progress,
        on_cancelled=lambda processed, total: cancelled.append(processed),
    )

    if args.fresh:
        result = await service.run_classification(
            False,
            on_progress=observer.on_progress,
            on_cancelled=observer.on_cancelled,
            cancel_event=cancel_event,
        )
    else:
        result = await service.load_or_scan(observer, cancel_event=cancel_event)

    if result is None:
        if cancelled:
            print(f"\nScan cancelled after {cancelled[0]} items; run again to resume.")
            return EXIT_CANCELLED
        print("A scan is already in progress.", file=sys.stderr)
        return 1

    _print_group_counts(result)
    return 0


async def _cmd_show(args: argparse.Namespace, settings) -> int:
    """Print the persisted result of the last completed run."""
    from bucketscan.store.checkpoint_store import CheckpointStore
    from bucketscan.store.store_factory import create_record_store

    store = CheckpointStore(create_record_store(settings))
    result = await store.load_persisted_result()
    if result is None:
        print("No completed scan result found.")
        return 1

    if args.group:
        try:
            ids = result.ids_for(args.group)
        except KeyError as exc:
            logger.error("%s", exc.args[0])
            return 1
        for item_id in ids:
            print(item_id)
        return 0

    _print_group_counts(result)
    return 0


async def _cmd_status(args: argparse.Namespace, settings) -> int:
    """Print the pending checkpoint, if any."""
    from bucketscan.store.checkpoint_store import CheckpointStore
    from bucketscan.store.store_factory import create_record_store

    store = CheckpointStore(create_record_store(settings))
    if not await store.has_pending_checkpoint():
        print("No pending scan.")
        return 0

    checkpoint = await store.load_checkpoint()
    if checkpoint is None:
        print("Pending scan record is unreadable; the next scan starts fresh.")
        return 0

    total = checkpoint.total_count
    pct = int(checkpoint.processed_count / total * 100) if total else 100
    print(f"Pending scan: {pct}% ({checkpoint.processed_count}/{total})")
    return 0


def _install_cancel_handler(cancel_event: asyncio.Event) -> None:
    """Turn Ctrl-C into a graceful cancellation of the running scan."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        # Windows event loops: fall back to KeyboardInterrupt handling.
        pass


def _print_progress(processed: int, total: int) -> None:
    pct = int(processed / total * 100) if total else 100
    print(f"\rScanning: {pct}% ({processed}/{total})", end="", flush=True)


def _print_group_counts(result: object) -> None:
    """Print non-empty groups as 'NAME - N items'."""
    counts = result.group_counts()  # type: ignore[attr-defined]
    print()
    if not counts:
        print("No items found.")
        return
    for name, count in counts:
        print(f"{name} - {count} items")


if __name__ == "__main__":
    sys.exit(main())
