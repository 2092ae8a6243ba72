"""
riffwav.header

RIFF/WAVE container parsing and header serialization.

A WAV file is a RIFF container:

    "RIFF" size[u32] "WAVE"
    chunk*                       each: id[4] size[u32] body[size] (+1 pad byte if size is odd)

Only two chunks matter for decoding: "fmt " (how samples are encoded) and
"data" (the interleaved samples). Every other chunk (LIST, fact, bext, ...)
is skipped by its declared size. The data payload is never read here; the
scan only records where it lives.

All integers are little-endian.
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from .errors import (
    InvalidContainerError,
    MalformedChunkError,
    MissingChunkError,
    UnsupportedFormatError,
)
from .samples import WAVE_FORMAT_EXTENSIBLE, SampleKind, KindLike

logger = logging.getLogger(__name__)


RIFF_ID = b"RIFF"
WAVE_ID = b"WAVE"
FMT_ID = b"fmt "
DATA_ID = b"data"

# "RIFF" riff_size "WAVE"
RIFF_HEADER = struct.Struct("<4sI4s")
# chunk_id chunk_size
CHUNK_HEADER = struct.Struct("<4sI")
# format_code, channels, sample_rate, byte_rate, block_align, bits_per_sample
FMT_BODY = struct.Struct("<HHIIHH")
# cb_size, valid_bits, channel_mask, sub_format GUID (WAVE_FORMAT_EXTENSIBLE only)
FMT_EXTENSIBLE = struct.Struct("<HHI16s")

FMT_SIZE = FMT_BODY.size  # 16
FMT_EX_SIZE = FMT_SIZE + 2  # 18, adds cb_size
FMT_EXTENSIBLE_SIZE = FMT_SIZE + FMT_EXTENSIBLE.size  # 40

# Size of the header emitted by WavHeader.as_bytes(): RIFF + fmt chunk + data chunk header.
CANONICAL_HEADER_SIZE = RIFF_HEADER.size + CHUNK_HEADER.size + FMT_SIZE + CHUNK_HEADER.size  # 44

# KSDATAFORMAT_SUBTYPE_* GUIDs share this tail; the first two bytes hold the format code.
SUBFORMAT_GUID_TAIL = b"\x00\x00\x00\x00\x10\x00\x80\x00\x00\xaa\x00\x38\x9b\x71"


@dataclass(frozen=True)
class FmtChunk:
    """
    Parsed "fmt " chunk.

    The first six fields are always present. cb_size exists for 18- and
    40-byte chunks; valid_bits, channel_mask and sub_format only for the
    40-byte WAVE_FORMAT_EXTENSIBLE layout.
    """

    format_code: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    cb_size: Optional[int] = None
    valid_bits: Optional[int] = None
    channel_mask: Optional[int] = None
    sub_format: Optional[bytes] = None

    @classmethod
    def from_bytes(cls, body: bytes) -> "FmtChunk":
        if len(body) < FMT_SIZE:
            raise MalformedChunkError(f"'fmt ' chunk is {len(body)} bytes, need at least {FMT_SIZE}")

        code, channels, sr, byte_rate, block_align, bits = FMT_BODY.unpack_from(body, 0)
        cb_size = valid_bits = channel_mask = sub_format = None
        if len(body) >= FMT_EXTENSIBLE_SIZE:
            cb_size, valid_bits, channel_mask, sub_format = FMT_EXTENSIBLE.unpack_from(body, FMT_SIZE)
        elif len(body) >= FMT_EX_SIZE:
            (cb_size,) = struct.unpack_from("<H", body, FMT_SIZE)

        if channels < 1:
            raise MalformedChunkError("'fmt ' chunk declares zero channels")
        if sr < 1:
            raise MalformedChunkError("'fmt ' chunk declares a zero sample rate")

        return cls(
            format_code=code,
            channels=channels,
            sample_rate=sr,
            byte_rate=byte_rate,
            block_align=block_align,
            bits_per_sample=bits,
            cb_size=cb_size,
            valid_bits=valid_bits,
            channel_mask=channel_mask,
            sub_format=sub_format,
        )

    @classmethod
    def for_kind(cls, kind: KindLike, sample_rate: int, channels: int) -> "FmtChunk":
        kind = SampleKind.coerce(kind)
        if channels < 1:
            raise ValueError("channels must be >= 1")
        if sample_rate < 1:
            raise ValueError("sample_rate must be > 0")
        block_align = channels * kind.width
        return cls(
            format_code=kind.format_code,
            channels=int(channels),
            sample_rate=int(sample_rate),
            byte_rate=int(sample_rate) * block_align,
            block_align=block_align,
            bits_per_sample=kind.bits,
        )

    @property
    def effective_format_code(self) -> int:
        """Format code with WAVE_FORMAT_EXTENSIBLE resolved through the sub-format GUID."""
        if self.format_code != WAVE_FORMAT_EXTENSIBLE:
            return self.format_code
        if self.sub_format is None:
            raise UnsupportedFormatError("WAVE_FORMAT_EXTENSIBLE without a 40-byte 'fmt ' chunk")
        if self.sub_format[2:] != SUBFORMAT_GUID_TAIL:
            raise UnsupportedFormatError(f"Unknown sub-format GUID {self.sub_format.hex()}")
        return struct.unpack_from("<H", self.sub_format, 0)[0]

    @property
    def kind(self) -> SampleKind:
        return SampleKind.from_format(self.effective_format_code, self.bits_per_sample)

    def validate(self) -> SampleKind:
        """
        Resolve the sample kind and check the frame layout.

        Raises UnsupportedFormatError or MalformedChunkError.
        """
        kind = self.kind
        expected_align = self.channels * kind.width
        if self.block_align != expected_align:
            raise MalformedChunkError(
                f"Block align {self.block_align} does not match {self.channels} x {kind.width}-byte samples"
            )
        if self.byte_rate != self.sample_rate * self.block_align:
            logger.warning(
                "Byte rate %d disagrees with sample rate %d x block align %d; ignoring",
                self.byte_rate,
                self.sample_rate,
                self.block_align,
            )
        return kind

    def as_bytes(self) -> bytes:
        """Canonical 16-byte chunk body (extension fields are not written)."""
        return FMT_BODY.pack(
            self.format_code,
            self.channels,
            self.sample_rate,
            self.byte_rate,
            self.block_align,
            self.bits_per_sample,
        )


@dataclass
class WavHeader:
    """
    Format description plus the location of the data payload.

    data_offset is the absolute file offset of the first sample byte and
    data_size its length in bytes (always a whole number of frames).
    """

    fmt: FmtChunk
    data_offset: int
    data_size: int
    riff_size: int = 0
    chunk_ids: List[bytes] = field(default_factory=list)

    @classmethod
    def new(cls, kind: KindLike, sample_rate: int, channels: int, n_samples: int) -> "WavHeader":
        """Header for writing `n_samples` interleaved samples of `kind`."""
        fmt = FmtChunk.for_kind(kind, sample_rate, channels)
        if n_samples % fmt.channels != 0:
            raise MalformedChunkError(
                f"{n_samples} samples do not divide into frames of {fmt.channels} channels"
            )
        data_size = int(n_samples) * SampleKind.coerce(kind).width
        return cls(
            fmt=fmt,
            data_offset=CANONICAL_HEADER_SIZE,
            data_size=data_size,
            riff_size=CANONICAL_HEADER_SIZE - 8 + data_size,
            chunk_ids=[FMT_ID, DATA_ID],
        )

    @property
    def kind(self) -> SampleKind:
        return self.fmt.kind

    @property
    def n_frames(self) -> int:
        return self.data_size // self.fmt.block_align

    @property
    def n_samples(self) -> int:
        return self.n_frames * self.fmt.channels

    @property
    def duration(self) -> float:
        return self.n_frames / float(self.fmt.sample_rate)

    def as_bytes(self) -> bytes:
        """
        Serialize RIFF header, fmt chunk and data chunk header (44 bytes).

        The payload itself follows directly after these bytes.
        """
        fmt_body = self.fmt.as_bytes()
        riff_size = RIFF_HEADER.size - 8 + CHUNK_HEADER.size + len(fmt_body) + CHUNK_HEADER.size + self.data_size
        return b"".join(
            (
                RIFF_HEADER.pack(RIFF_ID, riff_size, WAVE_ID),
                CHUNK_HEADER.pack(FMT_ID, len(fmt_body)),
                fmt_body,
                CHUNK_HEADER.pack(DATA_ID, self.data_size),
            )
        )


def read_header(f: BinaryIO, path: Optional[str] = None) -> WavHeader:
    """
    Scan a RIFF/WAVE stream and return its header.

    `f` must be a seekable binary file positioned anywhere; scanning starts
    at offset 0. The "fmt " and "data" chunks may appear in either order and
    with any other chunks between them; the scan stops once both are found.

    Raises
    ------
    InvalidContainerError
        Missing RIFF or WAVE magic (including empty files).
    MissingChunkError
        End of file reached before both chunks were found.
    UnsupportedFormatError
        Encoding is not 16/32-bit PCM or 32/64-bit float.
    MalformedChunkError
        Short fmt chunk, inconsistent block align, or a data size that is
        not a whole number of frames.
    """
    file_size = f.seek(0, io.SEEK_END)
    f.seek(0)
    head = f.read(RIFF_HEADER.size)
    if len(head) < RIFF_HEADER.size:
        raise InvalidContainerError(f"Too short for a RIFF/WAVE header ({len(head)} bytes)")

    riff_id, riff_size, wave_id = RIFF_HEADER.unpack(head)
    if riff_id != RIFF_ID:
        raise InvalidContainerError(f"Bad RIFF magic {riff_id!r}")
    if wave_id != WAVE_ID:
        raise InvalidContainerError(f"Bad WAVE magic {wave_id!r}")

    fmt: Optional[FmtChunk] = None
    data_offset: Optional[int] = None
    data_size = 0
    chunk_ids: List[bytes] = []
    offset = RIFF_HEADER.size

    while fmt is None or data_offset is None:
        raw = f.read(CHUNK_HEADER.size)
        if len(raw) < CHUNK_HEADER.size:
            break
        chunk_id, size = CHUNK_HEADER.unpack(raw)
        offset += CHUNK_HEADER.size
        chunk_ids.append(chunk_id)
        logger.debug("Chunk %r: %d bytes at offset %d", chunk_id, size, offset)

        if chunk_id == FMT_ID:
            if fmt is None:
                if offset + size > file_size:
                    raise MalformedChunkError(
                        f"'fmt ' chunk of {size} bytes runs past the end of the file ({file_size} bytes)"
                    )
                # Bytes past the extensible layout carry nothing we decode.
                body = f.read(min(size, FMT_EXTENSIBLE_SIZE))
                fmt = FmtChunk.from_bytes(body)
            else:
                logger.warning("Ignoring duplicate 'fmt ' chunk at offset %d", offset)
        elif chunk_id == DATA_ID and data_offset is None:
            data_offset = offset
            data_size = size

        if fmt is not None and data_offset is not None:
            break

        # Chunks are word aligned: odd sizes carry one pad byte.
        offset += size + (size & 1)
        f.seek(offset)

    if fmt is None:
        raise MissingChunkError(FMT_ID, path)
    if data_offset is None:
        raise MissingChunkError(DATA_ID, path)

    fmt.validate()
    if data_size % fmt.block_align != 0:
        raise MalformedChunkError(
            f"Data chunk of {data_size} bytes is not a multiple of block align {fmt.block_align}"
        )

    if riff_size + 8 != file_size:
        logger.warning("RIFF size %d disagrees with file size %d", riff_size + 8, file_size)

    return WavHeader(
        fmt=fmt,
        data_offset=data_offset,
        data_size=data_size,
        riff_size=riff_size,
        chunk_ids=chunk_ids,
    )


def parse_header(data: bytes) -> WavHeader:
    """Parse a header from an in-memory WAV image."""
    return read_header(io.BytesIO(data))
