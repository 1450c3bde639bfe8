"""CLI tools for setup, incremental sync, sync status and workout splits."""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Any

import structlog
from pydantic import TypeAdapter
from prometheus_client import start_http_server as start_metrics_server

from . import __version__
from .config import Settings, get_settings
from .errors import ExportInProgressError, NotReadyError
from .exporter import CancellationToken, ExportEvent, ExportOrchestrator, ExportResult
from .freshness import FreshnessTracker, SQLiteStateStore
from .github import create_client
from .logging import setup_logging
from .metrics import SERVICE_INFO
from .models import PauseInterval, Sample
from .readers import JsonExportReader
from .splits import build_splits
from .tracing import setup_tracing, shutdown_tracing

logger = structlog.get_logger(__name__)

_SAMPLES = TypeAdapter(list[Sample])
_PAUSES = TypeAdapter(list[PauseInterval])


def _print_event(event: ExportEvent) -> None:
    if event.kind == "stage_changed":
        print(f"[{event.stage.value}]")
    elif event.kind == "file_written":
        print(f"  wrote  {event.detail['path']}")
    elif event.kind == "file_failed":
        print(f"  failed {event.detail['path']}: {event.detail.get('error', '')}")


def _print_result(result: ExportResult) -> None:
    state = "stopped" if result.stopped else "finished"
    print(
        f"\nExport {state}: {len(result.files_written)} files written, "
        f"{len(result.files_failed)} failed"
    )
    for stage in result.stages:
        if stage.skipped_records:
            print(f"  {stage.kind.value}: {stage.skipped_records} records without a usable date")
    if result.mode == "setup" and result.setup_finished:
        print("Setup finished")


async def _run_export(
    settings: Settings, data_dir: Path, mode: str, format_json: bool = False
) -> int:
    """Run a setup or incremental export; returns the process exit code."""
    tracker = FreshnessTracker(SQLiteStateStore(settings.state.db_path))
    reader = JsonExportReader(data_dir)
    token = CancellationToken()

    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        logger.info("stop_signal_received")
        token.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    async with create_client(settings.github) as client:
        orchestrator = ExportOrchestrator(
            reader=reader,
            remote=client,
            tracker=tracker,
            settings=settings.export,
            listener=None if format_json else _print_event,
        )
        try:
            if mode == "setup":
                result = await orchestrator.run_setup(token)
            else:
                result = await orchestrator.run_incremental(token)
        except (NotReadyError, ExportInProgressError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if format_json:
        print(json.dumps([stage.summary() for stage in result.stages], indent=2))
    else:
        _print_result(result)
    return 2 if result.files_failed else 0


def _show_status(settings: Settings, format_json: bool) -> None:
    tracker = FreshnessTracker(SQLiteStateStore(settings.state.db_path))
    status = tracker.status()

    if format_json:
        print(json.dumps(status, indent=2))
        return

    print("Sync Status:")
    print(f"  Setup finished:      {'yes' if status['setup_finished'] else 'no'}")
    print(f"  Last workout:        {status['last_workout'] or '-'}")
    print(f"  Last activity day:   {status['last_activity_sync_date'] or '-'}")
    print(f"  Last sync:           {status['last_sync_date'] or '-'}")
    print(f"  Activity data fresh: {'yes' if tracker.is_activity_data_fresh() else 'no'}")


def _load_splits_input(path: Path) -> tuple[list[Sample], list[PauseInterval]]:
    """Read ``{"samples": [...], "pauses": [...]}`` from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data: Any = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("expected an object with samples and pauses")
    samples = _SAMPLES.validate_python(data.get("samples", []))
    pauses = _PAUSES.validate_python(data.get("pauses", []))
    return samples, pauses


def _show_splits(path: Path, split_distance: float, format_json: bool) -> int:
    try:
        samples, pauses = _load_splits_input(path)
    except (OSError, ValueError) as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return 1

    splits = build_splits(samples, pauses, split_distance=split_distance)

    if format_json:
        output = [
            {
                "index": s.index,
                "distance": round(s.distance, 2),
                "duration": round(s.duration, 3),
                "formatted": s.formatted_duration,
            }
            for s in splits
        ]
        print(json.dumps(output, indent=2))
        return 0

    if not splits:
        print("No splits")
        return 0

    for split in splits:
        print(f"{split.index:>3}  {split.distance:>9.2f} m  {split.formatted_duration}")
    return 0


def main() -> None:
    """CLI entry point.

    Usage:
        health-export setup [--data-dir ./export]
        health-export sync [--data-dir ./export]
        health-export status [--json]
        health-export splits samples.json [--split-distance 1000]
    """
    parser = argparse.ArgumentParser(
        description="Export Apple Health data to yearly CSV files on GitHub"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("setup", "Create the repository and export the full history"),
        ("sync", "Export data added since the last sync"),
    ):
        export_parser = subparsers.add_parser(name, help=help_text)
        export_parser.add_argument(
            "--data-dir",
            type=Path,
            default=None,
            help="Directory with exported JSON files (default: EXPORT_DATA_DIR)",
        )
        export_parser.add_argument(
            "--metrics-port",
            type=int,
            default=None,
            help="Expose Prometheus metrics on this port while running",
        )
        export_parser.add_argument(
            "--json",
            action="store_true",
            dest="format_json",
            help="Print a JSON summary per stage instead of progress",
        )

    status_parser = subparsers.add_parser("status", help="Show persisted sync markers")
    status_parser.add_argument(
        "--json",
        action="store_true",
        dest="format_json",
        help="Output as JSON",
    )

    splits_parser = subparsers.add_parser("splits", help="Compute splits for workout samples")
    splits_parser.add_argument("input", type=Path, help="JSON file with samples and pauses")
    splits_parser.add_argument(
        "--split-distance",
        type=float,
        default=1000.0,
        help="Split length in meters (default: 1000)",
    )
    splits_parser.add_argument(
        "--json",
        action="store_true",
        dest="format_json",
        help="Output as JSON",
    )

    args = parser.parse_args()

    if args.command == "splits":
        if args.split_distance <= 0:
            print("Error: split distance must be positive", file=sys.stderr)
            sys.exit(1)
        sys.exit(_show_splits(args.input, args.split_distance, args.format_json))

    settings = get_settings()
    setup_logging(settings.app)

    if args.command == "status":
        _show_status(settings, args.format_json)
        return

    provider = setup_tracing(settings.tracing)
    SERVICE_INFO.info({"version": __version__, "mode": args.command})
    if args.metrics_port:
        start_metrics_server(args.metrics_port)
        logger.info("metrics_server_started", port=args.metrics_port)

    data_dir = args.data_dir or Path(settings.export.data_dir)
    mode = "setup" if args.command == "setup" else "incremental"
    try:
        exit_code = asyncio.run(_run_export(settings, data_dir, mode, args.format_json))
    finally:
        shutdown_tracing(provider)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
