"""Documented exit codes for the cellsearch CLI.

Exit codes follow UNIX conventions:
- 0: Search completed (whether or not any cell was found)
- 1: General/unspecified error
- 2: Invalid command-line arguments or configuration
- 3-5: Application-specific errors

Usage:
    from cellsearch.util.exit_codes import ExitCode
    sys.exit(ExitCode.CAPTURE_FAILED)
"""

from __future__ import annotations


class ExitCode:
    """Exit code constants for cellsearch processes.

    Attributes:
        SUCCESS: Search ran to completion.
        GENERAL_ERROR: Unspecified runtime error.
        INVALID_ARGS: Command-line or configuration validation failed.
        CAPTURE_FAILED: A capture buffer could not be produced (e.g. replay file missing).
        DEVICE_UNAVAILABLE: SDR device could not be opened or is busy.
        HELP: Usage text was requested and printed; no search was run.
    """

    SUCCESS: int = 0
    GENERAL_ERROR: int = 1
    INVALID_ARGS: int = 2
    CAPTURE_FAILED: int = 3
    DEVICE_UNAVAILABLE: int = 4
    HELP: int = 5

    @classmethod
    def message(cls, code: int) -> str:
        """Return a human-readable message for an exit code."""
        messages = {
            cls.SUCCESS: "Success",
            cls.GENERAL_ERROR: "General error",
            cls.INVALID_ARGS: "Invalid arguments",
            cls.CAPTURE_FAILED: "Capture failed",
            cls.DEVICE_UNAVAILABLE: "SDR device unavailable",
            cls.HELP: "Help requested",
        }
        return messages.get(code, f"Unknown exit code {code}")
