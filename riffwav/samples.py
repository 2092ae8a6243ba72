"""
riffwav.samples

Sample type system: the four supported sample kinds, the pairwise
conversion table between them, and the owned sample buffer.

Every kind is stored little-endian, exactly as it appears in a WAV data
chunk, so a buffer can be handed to the writer as raw bytes and raw
payload bytes of the same kind can be viewed as a buffer without copying.

Conversion rules
----------------
  int   -> int    : scale by the ratio of the full-scale ranges (2**16
                    between 16 and 32 bit). Narrowing truncates toward zero.
  int   -> float  : divide by the integer maximum (32767 or 2147483647).
  float -> int    : multiply by the integer maximum, clamp to the integer
                    range, round half away from zero. NaN becomes 0.
  float -> float  : plain cast.
  same  -> same   : returned unchanged.

Conversions are total: they never raise, out-of-range values saturate.
"""

from __future__ import annotations

import enum
from typing import Callable, Dict, Iterator, Optional, Tuple, Union

import numpy as np

from .errors import MalformedChunkError, UnsupportedFormatError


# WAV format codes (wFormatTag)
WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_IEEE_FLOAT = 0x0003
WAVE_FORMAT_EXTENSIBLE = 0xFFFE


class SampleKind(enum.Enum):
    """
    The closed set of sample encodings.

    Each member's value is the little-endian numpy dtype string.
    """

    I16 = "<i2"
    I32 = "<i4"
    F32 = "<f4"
    F64 = "<f8"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def width(self) -> int:
        """Bytes per sample."""
        return self.dtype.itemsize

    @property
    def bits(self) -> int:
        return self.width * 8

    @property
    def is_float(self) -> bool:
        return self.dtype.kind == "f"

    @property
    def format_code(self) -> int:
        return WAVE_FORMAT_IEEE_FLOAT if self.is_float else WAVE_FORMAT_PCM

    @property
    def max_value(self) -> int:
        """Largest representable value; the normalization divisor for integer kinds."""
        if self.is_float:
            raise TypeError(f"{self.name} has no integer maximum")
        return int(np.iinfo(self.dtype).max)

    @property
    def min_value(self) -> int:
        if self.is_float:
            raise TypeError(f"{self.name} has no integer minimum")
        return int(np.iinfo(self.dtype).min)

    @property
    def short_name(self) -> str:
        return self.name.lower()

    @classmethod
    def from_format(cls, format_code: int, bits_per_sample: int) -> "SampleKind":
        """
        Resolve a WAV (format code, bits per sample) pair.

        Raises UnsupportedFormatError for anything that is not 16/32-bit
        PCM or 32/64-bit IEEE float.
        """
        kind = _FORMAT_TABLE.get((int(format_code), int(bits_per_sample)))
        if kind is None:
            raise UnsupportedFormatError(
                f"Unsupported encoding: format code 0x{format_code:04X}, {bits_per_sample} bits per sample"
            )
        return kind

    @classmethod
    def coerce(cls, value: "KindLike") -> "SampleKind":
        """
        Turn a member, a name such as "i16" / "int16" / "float32", or a
        numpy dtype into a SampleKind.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            kind = _NAME_TABLE.get(value.strip().lower())
            if kind is not None:
                return kind
        try:
            dt = np.dtype(value)
        except TypeError:
            raise UnsupportedFormatError(f"Not a sample kind: {value!r}") from None
        for kind in cls:
            if dt.kind == kind.dtype.kind and dt.itemsize == kind.width:
                return kind
        raise UnsupportedFormatError(f"Unsupported sample dtype: {dt}")


KindLike = Union[SampleKind, str, np.dtype, type]

_FORMAT_TABLE: Dict[Tuple[int, int], SampleKind] = {
    (WAVE_FORMAT_PCM, 16): SampleKind.I16,
    (WAVE_FORMAT_PCM, 32): SampleKind.I32,
    (WAVE_FORMAT_IEEE_FLOAT, 32): SampleKind.F32,
    (WAVE_FORMAT_IEEE_FLOAT, 64): SampleKind.F64,
}

_NAME_TABLE: Dict[str, SampleKind] = {
    "i16": SampleKind.I16,
    "int16": SampleKind.I16,
    "i32": SampleKind.I32,
    "int32": SampleKind.I32,
    "f32": SampleKind.F32,
    "float32": SampleKind.F32,
    "f64": SampleKind.F64,
    "float64": SampleKind.F64,
}


# ===================== Pairwise conversions =====================

def _identity(data: np.ndarray, src: SampleKind, dst: SampleKind) -> np.ndarray:
    return data


def _int_to_int(data: np.ndarray, src: SampleKind, dst: SampleKind) -> np.ndarray:
    shift = dst.bits - src.bits
    wide = data.astype(np.int64)
    if shift > 0:
        return (wide << shift).astype(dst.dtype)
    shift = -shift
    # Arithmetic shift floors; mirror negatives so the quotient truncates toward zero.
    out = np.where(wide < 0, -((-wide) >> shift), wide >> shift)
    return out.astype(dst.dtype)


def _int_to_float(data: np.ndarray, src: SampleKind, dst: SampleKind) -> np.ndarray:
    return (data.astype(np.float64) / float(src.max_value)).astype(dst.dtype)


def _float_to_int(data: np.ndarray, src: SampleKind, dst: SampleKind) -> np.ndarray:
    lo, hi = float(dst.min_value), float(dst.max_value)
    scaled = np.nan_to_num(data.astype(np.float64) * hi, nan=0.0, posinf=hi, neginf=lo)
    scaled = np.clip(scaled, lo, hi)
    rounded = np.trunc(scaled + np.copysign(0.5, scaled))
    return np.clip(rounded, lo, hi).astype(dst.dtype)


def _float_to_float(data: np.ndarray, src: SampleKind, dst: SampleKind) -> np.ndarray:
    return data.astype(dst.dtype)


Converter = Callable[[np.ndarray, SampleKind, SampleKind], np.ndarray]


def _pick(src: SampleKind, dst: SampleKind) -> Converter:
    if src is dst:
        return _identity
    if src.is_float:
        return _float_to_float if dst.is_float else _float_to_int
    return _int_to_float if dst.is_float else _int_to_int


# Explicit 4x4 dispatch table over the closed kind set.
CONVERSIONS: Dict[Tuple[SampleKind, SampleKind], Converter] = {
    (src, dst): _pick(src, dst) for src in SampleKind for dst in SampleKind
}


def convert_array(data: np.ndarray, src: KindLike, dst: KindLike) -> np.ndarray:
    """
    Convert a 1-D array of `src` samples into a new array of `dst` samples.

    The input is first viewed as `src` (no copy when it already is).
    Identity conversions return the input array itself.
    """
    src = SampleKind.coerce(src)
    dst = SampleKind.coerce(dst)
    arr = np.asarray(data, dtype=src.dtype)
    return CONVERSIONS[(src, dst)](arr, src, dst)


def convert_sample(value, src: KindLike, dst: KindLike):
    """Convert a single sample value; returns a numpy scalar of the destination kind."""
    src = SampleKind.coerce(src)
    dst = SampleKind.coerce(dst)
    return convert_array(np.array([value], dtype=src.dtype), src, dst)[0]


# ===================== Sample buffer =====================

class Samples:
    """
    Owned, contiguous buffer of samples of one SampleKind.

    Wraps a 1-D little-endian numpy array. Multi-channel audio is stored
    interleaved (frame-major, channel-minor), as in the WAV data chunk.
    """

    __slots__ = ("_data", "_kind")

    def __init__(self, data, kind: Optional[KindLike] = None) -> None:
        """
        Build a buffer from `data`.

        A Samples or numpy array whose dtype is one of the four kinds (or any
        float dtype) carries its own kind; when it differs from `kind` the
        values go through the conversion rules. Other array-likes, such as
        Python lists, are taken as values already in `kind` units.
        """
        src = _source_kind(data)
        if kind is None:
            kind = src if src is not None else _infer_kind(data)
        self._kind = SampleKind.coerce(kind)
        if src is not None and src is not self._kind:
            arr = convert_array(np.asarray(data).astype(src.dtype, copy=False), src, self._kind)
        else:
            arr = np.asarray(data)
            if arr.dtype != self._kind.dtype:
                arr = arr.astype(self._kind.dtype)
        self._data = np.ascontiguousarray(arr).reshape(-1)

    @classmethod
    def from_bytes(cls, raw, kind: KindLike) -> "Samples":
        """
        Reinterpret raw little-endian bytes known to be of `kind`.

        The returned buffer shares memory with `raw` (pass a bytearray for a
        writable buffer). Bytes of a different kind must be decoded and then
        converted with `convert`, never reinterpreted.
        """
        kind = SampleKind.coerce(kind)
        nbytes = memoryview(raw).nbytes
        if nbytes % kind.width != 0:
            raise MalformedChunkError(
                f"{nbytes} bytes is not a whole number of {kind.width}-byte {kind.short_name} samples"
            )
        return cls(np.frombuffer(raw, dtype=kind.dtype), kind)

    @property
    def kind(self) -> SampleKind:
        return self._kind

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def nbytes(self) -> int:
        return int(self._data.nbytes)

    def as_bytes(self) -> memoryview:
        """Zero-copy byte view of the buffer."""
        return memoryview(self._data).cast("B")

    def convert(self, kind: KindLike) -> "Samples":
        """Return this buffer converted to `kind` (self when the kind is unchanged)."""
        kind = SampleKind.coerce(kind)
        if kind is self._kind:
            return self
        return Samples(convert_array(self._data, self._kind, kind), kind)

    def copy(self) -> "Samples":
        return Samples(self._data.copy(), self._kind)

    def __len__(self) -> int:
        return int(self._data.shape[0])

    def __iter__(self) -> Iterator:
        return iter(self._data)

    def __getitem__(self, index):
        return self._data[index]

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._data
        return self._data.astype(dtype)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Samples):
            return NotImplemented
        return self._kind is other._kind and np.array_equal(self._data, other._data)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Samples(kind={self._kind.short_name}, len={len(self)})"


def _infer_kind(data) -> SampleKind:
    if isinstance(data, Samples):
        return data.kind
    arr = np.asarray(data)
    if arr.dtype.kind == "f":
        return SampleKind.F32 if arr.dtype.itemsize == 4 else SampleKind.F64
    return SampleKind.coerce(arr.dtype)


def _source_kind(data) -> Optional[SampleKind]:
    """Kind carried by `data` itself, or None for plain Python sequences."""
    if isinstance(data, Samples):
        return data.kind
    if not isinstance(data, np.ndarray):
        return None
    if data.dtype.kind == "f":
        return SampleKind.F32 if data.dtype.itemsize == 4 else SampleKind.F64
    try:
        return SampleKind.coerce(data.dtype)
    except UnsupportedFormatError:
        return None
