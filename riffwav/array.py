"""
riffwav.array

Two-dimensional views of interleaved samples: shape (n_frames, n_channels).

Values are never altered; only the flat interleaved buffer is reshaped.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .errors import MalformedChunkError
from .samples import Samples
from .wav import Wav


def samples_to_frames(samples, n_channels: int) -> np.ndarray:
    """Reshape a flat interleaved buffer to (n_frames, n_channels)."""
    data = np.asarray(samples).reshape(-1)
    if n_channels < 1:
        raise ValueError("n_channels must be >= 1")
    if data.shape[0] % n_channels != 0:
        raise MalformedChunkError(
            f"{data.shape[0]} samples do not divide into frames of {n_channels} channels"
        )
    return data.reshape(-1, n_channels)


def frames_to_samples(frames: np.ndarray, kind=None) -> Samples:
    """
    Flatten a (n_frames, n_channels) array back into an interleaved buffer.

    A `kind` different from the array's own dtype is reached through the
    sample conversion rules, as in Samples.
    """
    frames = np.asarray(frames)
    if frames.ndim == 1:
        frames = frames.reshape(-1, 1)
    return Samples(np.ascontiguousarray(frames).reshape(-1), kind)


def as_ndarray(wav: Wav) -> Tuple[np.ndarray, int]:
    """Read `wav` as a (n_frames, n_channels) array; the handle stays open."""
    samples = wav.read()
    return samples_to_frames(samples, wav.n_channels), wav.sample_rate


def into_ndarray(wav: Wav) -> Tuple[np.ndarray, int]:
    """Like as_ndarray, then close the handle."""
    with wav:
        return as_ndarray(wav)
