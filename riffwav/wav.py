"""
riffwav.wav

WAV file handle: header-only open, explicit payload read, and writing.

Opening a Wav parses the container header and keeps the file open; no
sample bytes are read until read() is called. The handle owns its file
object and releases it on close() or when used as a context manager.
"""

from __future__ import annotations

import io
import logging
import os
from typing import BinaryIO, NamedTuple, Optional, Union

import numpy as np

from .errors import MalformedChunkError, WavIOError
from .header import WavHeader, read_header
from .samples import KindLike, SampleKind, Samples

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class WavSpec(NamedTuple):
    sample_rate: int
    n_channels: int
    duration: float
    encoding: SampleKind


def _io_error(exc: OSError) -> WavIOError:
    return WavIOError(exc.errno, exc.strerror or str(exc), exc.filename)


class Wav:
    """
    Open WAV file with a working sample kind.

    `kind` is the type samples are returned as by read(); the file's own
    encoding is available as `encoding`.

    Usage:

        with Wav.from_path("speech.wav", SampleKind.F32) as wav:
            samples = wav.read()
            print(wav.sample_rate, wav.n_channels, wav.duration)
    """

    def __init__(
        self,
        f: BinaryIO,
        header: WavHeader,
        kind: KindLike = SampleKind.I16,
        path: Optional[str] = None,
    ) -> None:
        self._file: Optional[BinaryIO] = f
        self.header = header
        self.kind = SampleKind.coerce(kind)
        self.path = path

    @classmethod
    def from_path(cls, path: PathLike, kind: KindLike = SampleKind.I16) -> "Wav":
        """
        Open `path` and parse its header. The payload is not read.

        The file is closed again if the header cannot be parsed.
        """
        kind = SampleKind.coerce(kind)
        path = os.fspath(path)
        try:
            f = open(path, "rb")
        except OSError as exc:
            raise _io_error(exc) from exc

        try:
            header = read_header(f, path)
        except OSError as exc:
            f.close()
            raise _io_error(exc) from exc
        except BaseException:
            f.close()
            raise

        logger.debug(
            "Opened %s: %s, %d ch, %d Hz, %d frames",
            path,
            header.kind.short_name,
            header.fmt.channels,
            header.fmt.sample_rate,
            header.n_frames,
        )
        return cls(f, header, kind, path)

    # ----------------------------------------------------------------- lifecycle

    @property
    def closed(self) -> bool:
        return self._file is None

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "Wav":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Wav(path={self.path!r}, encoding={self.encoding.short_name}, kind={self.kind.short_name}, "
            f"sample_rate={self.sample_rate}, n_channels={self.n_channels})"
        )

    # ----------------------------------------------------------------- header accessors

    @property
    def sample_rate(self) -> int:
        return self.header.fmt.sample_rate

    @property
    def n_channels(self) -> int:
        return self.header.fmt.channels

    @property
    def n_samples(self) -> int:
        return self.header.n_samples

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.header.duration

    @property
    def encoding(self) -> SampleKind:
        """Sample kind stored in the file."""
        return self.header.kind

    def spec(self) -> WavSpec:
        return WavSpec(self.sample_rate, self.n_channels, self.duration, self.encoding)

    # ----------------------------------------------------------------- payload

    def read_raw(self) -> bytearray:
        """Read the data chunk payload as raw bytes in the file's encoding."""
        if self._file is None:
            raise ValueError("I/O operation on closed Wav")
        size = self.header.data_size
        offset = self.header.data_offset
        try:
            file_size = self._file.seek(0, io.SEEK_END)
            if offset + size > file_size:
                raise MalformedChunkError(
                    f"Data chunk of {size} bytes at offset {offset} runs past the end of the file ({file_size} bytes)"
                )
            buf = bytearray(size)
            self._file.seek(offset)
            n = self._file.readinto(buf)
        except OSError as exc:
            raise _io_error(exc) from exc
        if n is None or n < size:
            raise MalformedChunkError(
                f"Data chunk truncated: expected {size} bytes at offset {offset}, got {n or 0}"
            )
        return buf

    def read(self) -> Samples:
        """
        Read all samples, converted to this handle's kind.

        The payload is reinterpreted in place when the file is already
        encoded as `kind`; otherwise it is converted. Each call re-reads.
        """
        native = Samples.from_bytes(self.read_raw(), self.encoding)
        logger.debug("Read %d %s samples from %s", len(native), native.kind.short_name, self.path)
        return native.convert(self.kind)

    def write(self, path: PathLike, kind: Optional[KindLike] = None) -> None:
        """
        Write this file's samples to `path`, encoded as `kind`
        (default: the handle's working kind).
        """
        samples = self.read()
        if kind is not None:
            samples = samples.convert(kind)
        write_samples(path, samples, self.sample_rate, self.n_channels)


def write_samples(path: PathLike, samples, sample_rate: int, n_channels: int) -> None:
    """
    Write interleaved samples as a WAV file, truncating any existing file.

    `samples` is a Samples buffer or an array-like whose dtype selects the
    encoding (int16, int32, float32, float64).
    """
    if not isinstance(samples, Samples):
        samples = Samples(np.asarray(samples))

    header = WavHeader.new(samples.kind, sample_rate, n_channels, len(samples))
    path = os.fspath(path)
    try:
        with open(path, "wb") as f:
            f.write(header.as_bytes())
            f.write(samples.as_bytes())
    except OSError as exc:
        raise _io_error(exc) from exc

    logger.debug(
        "Wrote %s: %d %s samples, %d ch, %d Hz",
        path,
        len(samples),
        samples.kind.short_name,
        n_channels,
        sample_rate,
    )


def wav_spec(path: PathLike) -> WavSpec:
    """(sample_rate, n_channels, duration, encoding) from the header alone."""
    with Wav.from_path(path) as wav:
        return wav.spec()
