"""Exception hierarchy for the export engine."""


class HealthExportError(Exception):
    """Base class for export errors."""


class RemoteSyncError(HealthExportError):
    """Raised when a remote file could not be read or written.

    Covers transport failures and non-2xx responses. The orchestrator treats
    it as a per-file failure and moves on to the next year.
    """

    def __init__(self, path: str, message: str, status: int | None = None) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.status = status


class NotReadyError(HealthExportError):
    """Raised when an export run cannot start (no credentials or repository)."""


class ExportInProgressError(HealthExportError):
    """Raised when a second export run is started while one is running."""
