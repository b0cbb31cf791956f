from __future__ import annotations


class ScraperError(Exception):
    """Base class for pipeline errors."""


class AttemptFailedError(ScraperError):
    """A single navigate + extract attempt failed; the job may retry."""


class EmptyResultError(AttemptFailedError):
    """Extraction completed but produced no records where some were required."""


class SinkWriteError(ScraperError):
    """A batch could not be written; the batch stays pending in the sink."""

    def __init__(self, path: str, pending: int, cause: BaseException):
        super().__init__(f"failed to write {pending} rows to {path}: {cause}")
        self.path = path
        self.pending = pending
        self.cause = cause


class SinkClosedError(ScraperError):
    """Records were admitted after the sink was closed."""


class ConfigError(ScraperError, ValueError):
    """Configuration is inconsistent or incomplete."""
