"""Exception types for riffwav."""

from __future__ import annotations

from typing import Optional


class WavError(Exception):
    """Base exception for riffwav errors."""

    exit_code: int = 1


class WavIOError(WavError, OSError):
    """Raised when opening, reading, creating or writing a file fails."""

    exit_code = 2


class InvalidContainerError(WavError, ValueError):
    """Raised when the RIFF or WAVE magic is missing."""

    exit_code = 3


class MissingChunkError(WavError, ValueError):
    """Raised when a required chunk is not found before end of file."""

    exit_code = 4

    def __init__(self, chunk_id: bytes, path: Optional[str] = None) -> None:
        self.chunk_id = chunk_id
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"Missing {chunk_id.decode('ascii')!r} chunk{where}")


class UnsupportedFormatError(WavError, ValueError):
    """Raised when the encoding does not resolve to a supported sample kind."""

    exit_code = 5


class MalformedChunkError(WavError, ValueError):
    """Raised when a chunk size does not match the declared frame layout."""

    exit_code = 6
