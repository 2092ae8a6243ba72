"""
SNR of every encoding conversion.

Writes a sine tone in each sample kind, reads it back as every other kind,
and reports the SNR of the round trip against the float64 original.

Usage:
    python3 examples/conversion_snr.py --seconds 2 --freq 440
"""

import argparse
import math
import sys
import tempfile
from pathlib import Path

import numpy as np

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import riffwav  # noqa: E402
from riffwav import SampleKind  # noqa: E402


def snr_db(ref: np.ndarray, test: np.ndarray) -> float:
    ref_f = ref.astype(np.float64)
    test_f = test.astype(np.float64)
    noise = ref_f - test_f
    p_signal = np.mean(ref_f ** 2)
    p_noise = np.mean(noise ** 2)
    if p_noise == 0.0:
        return float("inf")
    return 10.0 * math.log10(p_signal / p_noise)


def main() -> int:
    p = argparse.ArgumentParser(description="Round-trip SNR across riffwav sample kinds.")
    p.add_argument("--seconds", type=float, default=2.0)
    p.add_argument("--freq", type=float, default=440.0)
    p.add_argument("--sr", type=int, default=16000)
    p.add_argument("--amplitude", type=float, default=0.8)
    args = p.parse_args()

    t = np.arange(int(args.sr * args.seconds), dtype=np.float64) / args.sr
    tone = args.amplitude * np.sin(2.0 * math.pi * args.freq * t)

    kinds = list(SampleKind)
    print("stored\\read " + " ".join(f"{k.short_name:>8}" for k in kinds))
    with tempfile.TemporaryDirectory() as td:
        for stored in kinds:
            path = Path(td) / f"tone_{stored.short_name}.wav"
            riffwav.write(path, riffwav.Samples(tone, SampleKind.F64).convert(stored), args.sr, 1)

            row = []
            for read_as in kinds:
                samples, _ = riffwav.read(path, read_as)
                back = samples.convert(SampleKind.F64)
                row.append(f"{snr_db(tone, np.asarray(back)):8.1f}")
            print(f"{stored.short_name:>11} " + " ".join(row))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
