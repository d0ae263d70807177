"""Exception taxonomy shared by the search controller and the CLI."""

from __future__ import annotations

from cellsearch.util.exit_codes import ExitCode


class CellSearchError(Exception):
    """Base class for fatal cellsearch errors."""

    exit_code: int = ExitCode.GENERAL_ERROR


class ConfigurationError(CellSearchError, ValueError):
    """Invalid frequency range, conflicting flags or an unusable backend."""

    exit_code = ExitCode.INVALID_ARGS


class CaptureError(CellSearchError, RuntimeError):
    """A capture buffer could not be produced for a center frequency."""

    exit_code = ExitCode.CAPTURE_FAILED


class DeviceUnavailableError(CaptureError):
    """The SDR device could not be opened."""

    exit_code = ExitCode.DEVICE_UNAVAILABLE
