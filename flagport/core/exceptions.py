"""Exception hierarchy shared across flagport.

Fatal errors abort a whole orchestrator pass; per-file errors are
recovered by skipping the file and recording it as a failed item.
"""


class FlagportError(Exception):
    """Base class for all flagport errors."""


# ── Fatal ────────────────────────────────────────────────────────────


class CatalogLoadError(FlagportError):
    """The pattern catalog (migration lane) could not be loaded or validated."""


class OutputWriteError(FlagportError):
    """The migration-summary artifact or output location cannot be written."""


class GateFailedError(FlagportError):
    """A blocking quality gate rejected the pass before anything was written."""

    def __init__(self, gate_name: str, details: dict):
        super().__init__(f"Quality gate '{gate_name}' failed: {details}")
        self.gate_name = gate_name
        self.details = details


# ── Per-file (recoverable-local) ─────────────────────────────────────


class SourceReadError(FlagportError):
    """A source file cannot be read or is not valid UTF-8."""

    def __init__(self, file_path: str, message: str):
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path


class FileScanError(FlagportError):
    """Parsing or scanning a single file failed."""

    def __init__(self, file_path: str, message: str):
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path
