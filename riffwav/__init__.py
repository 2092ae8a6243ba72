"""
riffwav

Read and write WAV files as 16-bit / 32-bit integer or 32-bit / 64-bit
float samples, converting between encodings on the way in or out.

    import riffwav

    samples, sr = riffwav.read("speech.wav", "f32")     # any encoding in, float32 out
    riffwav.write("speech_i16.wav", samples.convert("i16"), sr, 1)

    with riffwav.open("speech.wav") as wav:             # header only
        print(wav.sample_rate, wav.n_channels, wav.duration, wav.encoding)

    sr, n_channels, duration, encoding = riffwav.wav_spec("speech.wav")
"""

from __future__ import annotations

from typing import Tuple

from .array import as_ndarray, frames_to_samples, into_ndarray, samples_to_frames
from .errors import (
    InvalidContainerError,
    MalformedChunkError,
    MissingChunkError,
    UnsupportedFormatError,
    WavError,
    WavIOError,
)
from .header import FmtChunk, WavHeader, parse_header, read_header
from .samples import (
    CONVERSIONS,
    SampleKind,
    Samples,
    convert_array,
    convert_sample,
)
from .wav import PathLike, Wav, WavSpec, wav_spec, write_samples

__version__ = "0.1.0"

__all__ = [
    "read",
    "write",
    "open",
    "wav_spec",
    "Wav",
    "WavSpec",
    "WavHeader",
    "FmtChunk",
    "SampleKind",
    "Samples",
    "CONVERSIONS",
    "convert_array",
    "convert_sample",
    "read_header",
    "parse_header",
    "as_ndarray",
    "into_ndarray",
    "samples_to_frames",
    "frames_to_samples",
    "WavError",
    "WavIOError",
    "InvalidContainerError",
    "MissingChunkError",
    "UnsupportedFormatError",
    "MalformedChunkError",
]


def read(path: PathLike, kind=SampleKind.I16) -> Tuple[Samples, int]:
    """Read all samples of `path` as `kind`; returns (samples, sample_rate)."""
    with Wav.from_path(path, kind) as wav:
        return wav.read(), wav.sample_rate


def write(path: PathLike, samples, sample_rate: int, n_channels: int) -> None:
    """Write interleaved `samples` to `path` in their own encoding."""
    write_samples(path, samples, sample_rate, n_channels)


def open(path: PathLike, kind=SampleKind.I16) -> Wav:
    """Open `path` and parse its header without reading samples."""
    return Wav.from_path(path, kind)
