"""Export orchestration: setup and incremental runs over yearly files."""

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from opentelemetry import trace

from .config import ExportSettings
from .csv_renderer import render_csv
from .errors import ExportInProgressError, NotReadyError, RemoteSyncError
from .freshness import FreshnessTracker
from .github import RemoteFileStore
from .metrics import (
    EXPORT_RUN_DURATION,
    EXPORT_RUNS,
    FILES_FAILED,
    FILES_WRITTEN,
    RECORDS_SKIPPED,
)
from .models import RecordKind
from .partition import (
    MIN_YEAR,
    Partition,
    activity_year,
    distance_year,
    partition_by_year,
    workout_year,
)
from .readers import RecordReader
from .types import StageSummary

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

README_PATH = "README.md"
README_MESSAGE = "Update README"

DEFAULT_README = """# Health

This repository is updated automatically with data exported from Apple Health.

| Directory | Contents |
| --- | --- |
| `workouts/` | One CSV per year with every recorded workout |
| `activity/` | One CSV per year with daily activity ring summaries |
| `distances/` | One CSV per year with daily distances and step counts |

Files are rewritten in full on every sync. Do not edit them by hand.
"""

# Workouts have no lower bound: the whole history is exported.
HISTORY_START = date(MIN_YEAR, 1, 1)


class ExportStage(str, Enum):
    """Stages of an export run."""

    IDLE = "idle"
    FETCHING_REPOSITORY = "fetching_repository"
    UPDATING_README = "updating_readme"
    EXPORTING_WORKOUTS = "exporting_workouts"
    EXPORTING_ACTIVITY = "exporting_activity"
    EXPORTING_DISTANCES = "exporting_distances"
    FINISHED = "finished"
    STOPPED = "stopped"


STAGE_FOR_KIND = {
    RecordKind.WORKOUTS: ExportStage.EXPORTING_WORKOUTS,
    RecordKind.ACTIVITY: ExportStage.EXPORTING_ACTIVITY,
    RecordKind.DISTANCES: ExportStage.EXPORTING_DISTANCES,
}

YEAR_EXTRACTORS: dict[RecordKind, Callable[[Any], int | None]] = {
    RecordKind.WORKOUTS: workout_year,
    RecordKind.ACTIVITY: activity_year,
    RecordKind.DISTANCES: distance_year,
}


class CancellationToken:
    """Cooperative stop request, checked before each yearly file."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class ExportEvent:
    """Progress notification sent to the listener."""

    kind: str
    stage: ExportStage
    detail: dict[str, Any] = field(default_factory=dict)


ExportListener = Callable[[ExportEvent], None]


@dataclass
class StageResult:
    """Outcome of exporting one record kind."""

    kind: RecordKind
    written: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped_records: int = 0
    stopped: bool = False

    @property
    def succeeded(self) -> bool:
        """All years were written and the stage was not stopped."""
        return not self.stopped and not self.failed

    def summary(self) -> StageSummary:
        return {
            "kind": self.kind.value,
            "written": list(self.written),
            "failed": list(self.failed),
            "skipped_records": self.skipped_records,
            "stopped": self.stopped,
        }


@dataclass
class ExportResult:
    """Outcome of a setup or incremental run."""

    mode: str
    stages: list[StageResult] = field(default_factory=list)
    readme_written: bool = False
    stopped: bool = False
    setup_finished: bool = False

    @property
    def files_written(self) -> list[str]:
        return [path for stage in self.stages for path in stage.written]

    @property
    def files_failed(self) -> list[str]:
        return [path for stage in self.stages for path in stage.failed]

    @property
    def stage(self) -> ExportStage:
        return ExportStage.STOPPED if self.stopped else ExportStage.FINISHED


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _commit_message(path: str) -> str:
    return f"Update {path}"


class ExportOrchestrator:
    """Runs export stages against a remote file store.

    Stages run one after another and each writes one CSV file per year, in
    ascending year order. A failed file is logged and skipped; the run goes
    on with the next year. Markers advance only for stages that wrote every
    year without being stopped, so failed years are picked up by the next
    incremental run.
    """

    def __init__(
        self,
        reader: RecordReader,
        remote: RemoteFileStore,
        tracker: FreshnessTracker,
        settings: ExportSettings,
        clock: Callable[[], datetime] = _local_now,
        listener: ExportListener | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            reader: Source of health records.
            remote: Destination repository.
            tracker: Persisted sync markers.
            settings: Export window settings.
            clock: Returns the current time; its date defines "today".
            listener: Receives progress events.
        """
        self._reader = reader
        self._remote = remote
        self._tracker = tracker
        self._settings = settings
        self._clock = clock
        self._listener = listener
        self._stage = ExportStage.IDLE
        self._running = False

    @property
    def stage(self) -> ExportStage:
        return self._stage

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def epoch(self) -> date:
        return date(self._settings.epoch_year, 1, 1)

    # -- Events --

    def _emit(self, kind: str, **detail: Any) -> None:
        if self._listener is None:
            return
        self._listener(ExportEvent(kind=kind, stage=self._stage, detail=detail))

    def _enter_stage(self, stage: ExportStage) -> None:
        self._stage = stage
        logger.info("export_stage_changed", stage=stage.value)
        self._emit("stage_changed")

    # -- Run lifecycle --

    def _begin(self, mode: str) -> None:
        if self._running:
            raise ExportInProgressError(f"An export is already running ({self._stage.value})")
        if not self._remote.is_ready():
            EXPORT_RUNS.labels(mode=mode, outcome="not_ready").inc()
            raise NotReadyError("Remote repository is not configured")
        self._running = True
        self._stage = ExportStage.IDLE
        logger.info("export_started", mode=mode)

    def _finish(self, result: ExportResult, started: float) -> ExportResult:
        self._enter_stage(result.stage)
        outcome = "stopped" if result.stopped else "finished"
        if result.files_failed:
            outcome = "partial"
        EXPORT_RUNS.labels(mode=result.mode, outcome=outcome).inc()
        EXPORT_RUN_DURATION.labels(mode=result.mode).observe(time.perf_counter() - started)
        logger.info(
            "export_finished",
            mode=result.mode,
            outcome=outcome,
            written=len(result.files_written),
            failed=len(result.files_failed),
        )
        self._emit(
            "finished",
            mode=result.mode,
            stopped=result.stopped,
            written=result.files_written,
            failed=result.files_failed,
        )
        return result

    async def run_setup(self, token: CancellationToken | None = None) -> ExportResult:
        """First-time export of the whole history.

        Ensures the repository exists, writes the README and exports all
        three record kinds. Setup is marked finished only when no stage was
        stopped.

        Raises:
            NotReadyError: If credentials or the repository are unavailable.
            ExportInProgressError: If another run is in progress.
        """
        self._begin("setup")
        token = token or CancellationToken()
        started = time.perf_counter()
        result = ExportResult(mode="setup")
        try:
            self._enter_stage(ExportStage.FETCHING_REPOSITORY)
            try:
                repository_id = await self._remote.get_repository()
            except RemoteSyncError as e:
                raise NotReadyError(f"Repository lookup failed: {e}") from e
            if repository_id is None:
                raise NotReadyError("Repository is not available")
            logger.info("export_repository_ready", repository_id=repository_id)

            if token.cancelled:
                result.stopped = True
                return self._finish(result, started)

            self._enter_stage(ExportStage.UPDATING_README)
            result.readme_written = await self._write_readme()

            today = self._clock().date()
            plan = [
                (RecordKind.WORKOUTS, HISTORY_START, today),
                (RecordKind.ACTIVITY, self.epoch, today - timedelta(days=1)),
                (RecordKind.DISTANCES, self.epoch, today),
            ]
            for kind, start, end in plan:
                if token.cancelled:
                    result.stopped = True
                    break
                stage = await self._run_stage(kind, start, end, None, token)
                result.stages.append(stage)
                if stage.stopped:
                    result.stopped = True
                    break

            if not result.stopped:
                self._tracker.mark_setup_finished()
                result.setup_finished = True
            return self._finish(result, started)
        finally:
            self._running = False

    async def run_incremental(self, token: CancellationToken | None = None) -> ExportResult:
        """Export only new data.

        Workouts run when a newer workout exists; activity and distances run
        unless they were exported through yesterday. Only years at or after
        the stored marker's year are rewritten.

        Raises:
            NotReadyError: If credentials or the repository are unavailable.
            ExportInProgressError: If another run is in progress.
        """
        self._begin("incremental")
        token = token or CancellationToken()
        started = time.perf_counter()
        result = ExportResult(mode="incremental")
        try:
            today = self._clock().date()
            # Activity and distances share one marker; decide both before either runs.
            activity_fresh = self._tracker.is_activity_data_fresh()
            distances_fresh = self._tracker.is_distance_data_fresh()
            activity_start = self._tracker.sync_window_start(RecordKind.ACTIVITY, self.epoch)
            distance_start = self._tracker.sync_window_start(RecordKind.DISTANCES, self.epoch)

            workouts = await self._reader.fetch_workouts(None, None)
            if self._tracker.is_workout_data_fresh(workouts):
                first_year = self._tracker.sync_window_start(
                    RecordKind.WORKOUTS, HISTORY_START
                ).year
                stage = await self._run_stage(
                    RecordKind.WORKOUTS, HISTORY_START, today, first_year, token, workouts
                )
                result.stages.append(stage)
                result.stopped = stage.stopped
            else:
                logger.info("export_stage_not_fresh", kind=RecordKind.WORKOUTS.value)

            plan = [
                (RecordKind.ACTIVITY, activity_fresh, activity_start, today - timedelta(days=1)),
                (RecordKind.DISTANCES, distances_fresh, distance_start, today),
            ]
            for kind, fresh, start, end in plan:
                if result.stopped:
                    break
                if not fresh:
                    logger.info("export_stage_not_fresh", kind=kind.value)
                    continue
                if token.cancelled:
                    result.stopped = True
                    break
                stage = await self._run_stage(kind, start, end, start.year, token)
                result.stages.append(stage)
                result.stopped = stage.stopped

            return self._finish(result, started)
        finally:
            self._running = False

    # -- Stages --

    async def _write_readme(self) -> bool:
        content = self._readme_content()
        try:
            await self._remote.update_file(README_PATH, content, README_MESSAGE)
        except RemoteSyncError as e:
            logger.warning("readme_update_failed", error=str(e), status=e.status)
            FILES_FAILED.labels(kind="readme").inc()
            self._emit("file_failed", path=README_PATH, error=str(e))
            return False
        self._emit("file_written", path=README_PATH)
        return True

    def _readme_content(self) -> str:
        if self._settings.readme_path:
            path = Path(self._settings.readme_path)
            try:
                return path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning("readme_template_unreadable", path=str(path), error=str(e))
        return DEFAULT_README

    async def _fetch(self, kind: RecordKind, start: date, end: date) -> list[Any]:
        if kind is RecordKind.WORKOUTS:
            return await self._reader.fetch_workouts(None if start <= HISTORY_START else start, end)
        if kind is RecordKind.ACTIVITY:
            return await self._reader.fetch_activity(start, end)
        return await self._reader.fetch_distances(start, end)

    async def _run_stage(
        self,
        kind: RecordKind,
        start: date,
        end: date,
        first_year: int | None,
        token: CancellationToken,
        records: Sequence[Any] | None = None,
    ) -> StageResult:
        """Fetch, partition and export one kind, then advance its marker."""
        self._enter_stage(STAGE_FOR_KIND[kind])
        if records is None:
            records = await self._fetch(kind, start, end)
        partition = partition_by_year(records, YEAR_EXTRACTORS[kind])
        if first_year is not None:
            partition = partition.since(first_year)
        logger.info(
            "export_stage_records",
            kind=kind.value,
            records=len(records),
            years=partition.years(),
        )

        with tracer.start_as_current_span("export.stage") as span:
            span.set_attribute("export.kind", kind.value)
            span.set_attribute("export.years", len(partition))
            stage = await self.export_years(kind, partition, token)
            span.set_attribute("export.failed", len(stage.failed))
            span.set_attribute("export.stopped", stage.stopped)
        if stage.succeeded:
            self._advance_marker(kind, records)
        else:
            logger.info(
                "export_marker_unchanged",
                kind=kind.value,
                stopped=stage.stopped,
                failed=len(stage.failed),
            )
        return stage

    def _advance_marker(self, kind: RecordKind, records: Sequence[Any]) -> None:
        if kind is RecordKind.WORKOUTS:
            self._tracker.mark_last_workout(records)
        elif kind is RecordKind.ACTIVITY:
            self._tracker.mark_last_activity(records)
        else:
            self._tracker.mark_last_distance(records)

    async def export_years(
        self,
        kind: RecordKind,
        partition: Partition[Any],
        token: CancellationToken,
    ) -> StageResult:
        """Write one CSV per year to ``<kind>/<year>.csv``.

        Years are written one at a time in ascending order. The token is
        checked before each year; once cancelled, no further file is written.
        A failed write is recorded and the next year is attempted.

        Args:
            kind: Record kind being exported.
            partition: Records grouped by year.
            token: Cancellation token.

        Returns:
            Paths written and failed, and whether the stage was stopped.
        """
        result = StageResult(kind=kind, skipped_records=partition.skipped)
        if partition.skipped:
            RECORDS_SKIPPED.labels(kind=kind.value).inc(partition.skipped)

        for year, records in partition.items():
            if token.cancelled:
                result.stopped = True
                logger.info("export_stopped", kind=kind.value, next_year=year)
                break

            path = f"{kind.value}/{year}.csv"
            content = render_csv(kind, records)
            try:
                await self._remote.update_file(path, content, _commit_message(path))
            except RemoteSyncError as e:
                result.failed.append(path)
                FILES_FAILED.labels(kind=kind.value).inc()
                logger.warning(
                    "file_export_failed",
                    path=path,
                    status=e.status,
                    error=str(e),
                )
                self._emit("file_failed", path=path, year=year, error=str(e))
                continue

            result.written.append(path)
            FILES_WRITTEN.labels(kind=kind.value).inc()
            logger.debug("file_exported", path=path, records=len(records))
            self._emit("file_written", path=path, year=year, records=len(records))

        return result
