"""Exception taxonomy for the PNRF data source.

File-level errors carry the offending path so the read loop can log and skip
the file while the binary search lets them propagate.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PnrfSourceError(Exception):
    """Base class for all errors raised by this package."""


class OpenError(PnrfSourceError):
    """The decoder could not open or parse a recording file."""

    def __init__(self, path: str | Path, reason: Optional[str] = None) -> None:
        self.path = Path(path)
        msg = f"Unable to open recording '{self.path}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class FileTimeError(PnrfSourceError):
    """The begin timestamp of a recording file cannot be determined."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{message} ({self.path})")


class NoChannelsError(FileTimeError):
    def __init__(self, path: str | Path) -> None:
        super().__init__(path, "No channels found")


class InvalidTimeError(FileTimeError):
    def __init__(self, path: str | Path) -> None:
        super().__init__(path, "No valid UTC time available")


class ConfigurationError(PnrfSourceError):
    """Settings descriptor missing, unparseable or incomplete."""


class ReadCancelledError(PnrfSourceError):
    """A read call observed its cancellation signal between iterations."""
