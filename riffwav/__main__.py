"""
riffwav.__main__

Command line front end: `info` prints header details, `convert` rewrites a
file in another sample encoding. Both go through the public functions in
riffwav; failures exit with the error class's exit_code.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

import riffwav
from riffwav.samples import SampleKind

logger = logging.getLogger(__name__)

KIND_CHOICES = [k.short_name for k in SampleKind]


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m riffwav",
        description="Inspect WAV headers and convert WAV files between i16, i32, f32 and f64 encodings.",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    sub = p.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="Print sample rate, channels, duration and encoding (header only).")
    info.add_argument("paths", nargs="+", help="WAV files to inspect.")

    conv = sub.add_parser("convert", help="Rewrite a WAV file in another sample encoding.")
    conv.add_argument("src", help="Input WAV file.")
    conv.add_argument("dst", help="Output WAV file (overwritten).")
    conv.add_argument("--to", dest="kind", choices=KIND_CHOICES, default="i16", help="Target encoding.")

    return p.parse_args(argv)


def _info(paths: list[str]) -> int:
    for path in paths:
        with riffwav.open(path) as wav:
            chunks = " ".join(c.decode("ascii", "replace").strip() for c in wav.header.chunk_ids)
            print(
                f"{path}: {wav.sample_rate} Hz, {wav.n_channels} ch, {wav.duration:.3f} s, "
                f"{wav.encoding.short_name} [{chunks}]"
            )
    return 0


def _convert(src: str, dst: str, kind: str) -> int:
    with riffwav.open(src, kind) as wav:
        logger.info("Converting %s (%s) -> %s (%s)", src, wav.encoding.short_name, dst, kind)
        wav.write(dst)
    print(dst)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    try:
        if args.command == "info":
            return _info(args.paths)
        return _convert(args.src, args.dst, args.kind)
    except riffwav.WavError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
