import contextlib
import io
import math
import os
import struct
import tempfile
import unittest
from pathlib import Path

import numpy as np

import riffwav
from riffwav import (
    InvalidContainerError,
    MalformedChunkError,
    SampleKind,
    Samples,
    Wav,
    WavIOError,
    as_ndarray,
    into_ndarray,
    wav_spec,
)
from riffwav.__main__ import main as cli_main

RESOURCES = Path(__file__).parent / "resources"
FIXTURE_I16 = RESOURCES / "one_channel_i16.wav"
FIXTURE_STEREO = RESOURCES / "pluck_pcm16.wav"


def _reference_values(name: str) -> list[int]:
    text = (RESOURCES / name).read_text()
    return [int(v) for v in text.split()]


class TestFixture(unittest.TestCase):
    def test_read_fixture(self) -> None:
        samples, sr = riffwav.read(FIXTURE_I16)
        expected = _reference_values("one_channel_i16.txt")
        self.assertEqual(sr, 16000)
        self.assertIs(samples.kind, SampleKind.I16)
        self.assertEqual(len(samples), len(expected))
        self.assertEqual([int(v) for v in samples], expected)

    def test_fixture_header(self) -> None:
        with riffwav.open(FIXTURE_I16) as wav:
            self.assertEqual(wav.sample_rate, 16000)
            self.assertEqual(wav.n_channels, 1)
            self.assertIs(wav.encoding, SampleKind.I16)
            self.assertEqual(wav.n_samples, 32)
            self.assertAlmostEqual(wav.duration, 32 / 16000)
            self.assertIn(b"LIST", wav.header.chunk_ids)

    def test_read_fixture_as_float(self) -> None:
        samples, sr = riffwav.read(FIXTURE_I16, SampleKind.F32)
        expected = np.array(_reference_values("one_channel_i16.txt"), dtype=np.float64) / 32767.0
        self.assertIs(samples.kind, SampleKind.F32)
        np.testing.assert_allclose(np.asarray(samples), expected, rtol=1e-6, atol=1e-7)

    def test_wav_spec(self) -> None:
        spec = wav_spec(FIXTURE_I16)
        self.assertEqual(spec, (16000, 1, 32 / 16000, SampleKind.I16))
        self.assertEqual(spec.encoding, SampleKind.I16)

    def test_read_recorded_stereo(self) -> None:
        expected = _reference_values("pluck_pcm16.txt")
        with riffwav.open(FIXTURE_STEREO) as wav:
            self.assertEqual(wav.sample_rate, 11025)
            self.assertEqual(wav.n_channels, 2)
            self.assertIs(wav.encoding, SampleKind.I16)
            self.assertEqual(wav.header.data_offset, 142)
            self.assertIn(b"LIST", wav.header.chunk_ids)
            self.assertEqual(wav.n_samples, len(expected))
            arr, sr = as_ndarray(wav)
        self.assertEqual(sr, 11025)
        self.assertEqual(arr.shape, (len(expected) // 2, 2))
        self.assertEqual(arr.reshape(-1).tolist(), expected)


class TestRoundTrip(unittest.TestCase):
    def _data(self, kind: SampleKind, n: int) -> np.ndarray:
        rng = np.random.default_rng(11)
        if kind.is_float:
            return rng.uniform(-1.0, 1.0, size=n).astype(kind.dtype)
        return rng.integers(kind.min_value, kind.max_value, size=n, endpoint=True).astype(kind.dtype)

    def test_same_kind_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            for kind in SampleKind:
                path = Path(td) / f"two_channel_{kind.short_name}.wav"
                data = self._data(kind, 2 * 300)
                riffwav.write(path, Samples(data, kind), 8000, 2)

                samples, sr = riffwav.read(path, kind)
                self.assertEqual(sr, 8000)
                self.assertIs(samples.kind, kind)
                np.testing.assert_array_equal(np.asarray(samples), data)

    def test_write_accepts_arrays(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "plain.wav"
            data = np.array([0.25, -0.25, 0.5], dtype=np.float32)
            riffwav.write(path, data, 44100, 1)
            self.assertIs(wav_spec(path).encoding, SampleKind.F32)
            samples, _ = riffwav.read(path, "f32")
            np.testing.assert_array_equal(np.asarray(samples), data)

    def test_cross_kind_read(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "f64.wav"
            data = np.array([0.0, 0.5, -0.5, 1.0, -1.0, 1.5], dtype=np.float64)
            riffwav.write(path, data, 16000, 1)

            i16, _ = riffwav.read(path, SampleKind.I16)
            np.testing.assert_array_equal(np.asarray(i16), [0, 16384, -16384, 32767, -32767, 32767])

            i32, _ = riffwav.read(path, SampleKind.I32)
            np.testing.assert_array_equal(
                np.asarray(i32),
                [0, 1073741824, -1073741824, 2147483647, -2147483647, 2147483647],
            )

    def test_handle_write_converts(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            out = Path(td) / "fixture_f64.wav"
            with riffwav.open(FIXTURE_I16) as wav:
                wav.write(out, "f64")
            self.assertEqual(wav_spec(out), (16000, 1, 32 / 16000, SampleKind.F64))

            back, _ = riffwav.read(out, SampleKind.I16)
            self.assertEqual([int(v) for v in back], _reference_values("one_channel_i16.txt"))

    def test_sine_written_as_float_read_as_i16(self) -> None:
        sr = 16000
        t = np.arange(sr * 10, dtype=np.float64) / sr
        sine = np.sin(2.0 * math.pi * 440.0 * t)

        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "sine.wav"
            riffwav.write(path, sine.astype(np.float32), sr, 1)

            samples, out_sr = riffwav.read(path, SampleKind.I16)
            self.assertEqual(out_sr, sr)
            self.assertEqual(len(samples), 160000)
            expected = np.round(sine * 32767.0)
            diff = np.abs(np.asarray(samples).astype(np.float64) - expected)
            self.assertLessEqual(float(diff.max()), 1.0)


class TestHeaderConsistency(unittest.TestCase):
    def test_spec_matches_full_read(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            for kind, channels in [(SampleKind.I16, 1), (SampleKind.I32, 2), (SampleKind.F32, 3), (SampleKind.F64, 2)]:
                path = Path(td) / f"{kind.short_name}.wav"
                n_frames = 1234
                data = np.zeros(n_frames * channels, dtype=kind.dtype)
                riffwav.write(path, data, 22050, channels)

                spec = wav_spec(path)
                with riffwav.open(path, kind) as wav:
                    samples = wav.read()
                    derived = (wav.sample_rate, channels, len(samples) / channels / wav.sample_rate, kind)
                self.assertEqual(spec.sample_rate, derived[0])
                self.assertEqual(spec.n_channels, derived[1])
                self.assertAlmostEqual(spec.duration, derived[2])
                self.assertIs(spec.encoding, derived[3])

    def test_payload_is_frame_aligned(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            for kind in SampleKind:
                path = Path(td) / f"{kind.short_name}.wav"
                n_samples = 2 * 101
                riffwav.write(path, np.zeros(n_samples, dtype=kind.dtype), 8000, 2)
                with riffwav.open(path, kind) as wav:
                    self.assertEqual(wav.header.data_size, n_samples * kind.width)
                    self.assertEqual(wav.header.n_frames * wav.n_channels, n_samples)
                    self.assertEqual(wav.header.data_offset, 44)
                self.assertEqual(os.path.getsize(path), 44 + n_samples * kind.width)

    def test_write_rejects_partial_frames(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(MalformedChunkError):
                riffwav.write(Path(td) / "bad.wav", np.zeros(5, dtype=np.int16), 8000, 2)


class TestErrors(unittest.TestCase):
    def test_zero_length_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "empty.wav"
            path.write_bytes(b"")
            with self.assertRaises(InvalidContainerError):
                riffwav.open(path)

    def test_not_a_wav_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "notes.wav"
            path.write_text("hello, world\n" * 4)
            with self.assertRaises(InvalidContainerError):
                riffwav.read(path)

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(WavIOError) as cm:
                riffwav.open(Path(td) / "missing.wav")
            self.assertIsInstance(cm.exception, OSError)

    def test_unwritable_destination(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(WavIOError):
                riffwav.write(Path(td) / "no" / "such" / "dir.wav", np.zeros(2, dtype=np.int16), 8000, 1)

    def test_truncated_payload(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "cut.wav"
            riffwav.write(path, np.arange(100, dtype=np.int16), 8000, 1)
            raw = path.read_bytes()
            path.write_bytes(raw[:-20])

            with self.assertLogs("riffwav.header", level="WARNING"):
                wav = riffwav.open(path)
            with wav:
                with self.assertRaises(MalformedChunkError):
                    wav.read()

    def test_fmt_size_past_end_of_file(self) -> None:
        fmt = struct.pack("<HHIIHH", 1, 1, 8000, 16000, 2, 16)
        body = b"WAVE" + struct.pack("<4sI", b"fmt ", 0xFFFFFFF0) + fmt
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "huge_fmt.wav"
            path.write_bytes(b"RIFF" + struct.pack("<I", len(body)) + body)
            with self.assertRaises(MalformedChunkError):
                riffwav.open(path)

    def test_data_size_past_end_of_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "huge_data.wav"
            riffwav.write(path, np.arange(4, dtype=np.int16), 8000, 1)
            raw = bytearray(path.read_bytes())
            struct.pack_into("<I", raw, 40, 0xFFFFFFF0)
            path.write_bytes(bytes(raw))

            with riffwav.open(path) as wav:
                self.assertEqual(wav.n_samples, 0xFFFFFFF0 // 2)
                with self.assertRaises(MalformedChunkError):
                    wav.read()


class TestHandle(unittest.TestCase):
    def test_open_is_header_only_and_closes(self) -> None:
        wav = Wav.from_path(FIXTURE_I16, SampleKind.F64)
        self.assertFalse(wav.closed)
        self.assertIs(wav.kind, SampleKind.F64)
        with wav:
            first = wav.read()
            second = wav.read()
            self.assertEqual(first, second)
        self.assertTrue(wav.closed)
        with self.assertRaises(ValueError):
            wav.read()
        wav.close()

    def test_read_same_kind_is_writable_buffer(self) -> None:
        with riffwav.open(FIXTURE_I16, "i16") as wav:
            samples = wav.read()
        samples.data[0] = 5
        self.assertEqual(int(samples[0]), 5)


class TestArrayAdapter(unittest.TestCase):
    def test_frames_by_channels(self) -> None:
        frames = np.array([[1, -1], [2, -2], [3, -3]], dtype=np.int16)
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "stereo.wav"
            riffwav.write(path, riffwav.frames_to_samples(frames), 8000, 2)

            wav = riffwav.open(path)
            arr, sr = as_ndarray(wav)
            self.assertFalse(wav.closed)
            self.assertEqual(sr, 8000)
            np.testing.assert_array_equal(arr, frames)

            arr2, _ = into_ndarray(wav)
            self.assertTrue(wav.closed)
            np.testing.assert_array_equal(arr2, frames)

    def test_samples_to_frames_checks_length(self) -> None:
        with self.assertRaises(MalformedChunkError):
            riffwav.samples_to_frames(np.zeros(7, dtype=np.int16), 2)
        self.assertEqual(riffwav.samples_to_frames(np.zeros(8, dtype=np.int16), 2).shape, (4, 2))

    def test_frames_to_samples_converts_kind(self) -> None:
        frames = np.array([[0.5, -0.5], [1.0, -1.0]], dtype=np.float64)
        s = riffwav.frames_to_samples(frames, "i16")
        self.assertIs(s.kind, SampleKind.I16)
        self.assertEqual(list(s), [16384, -16384, 32767, -32767])


class TestCli(unittest.TestCase):
    def test_info(self) -> None:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = cli_main(["info", str(FIXTURE_I16)])
        self.assertEqual(code, 0)
        self.assertIn("16000 Hz", out.getvalue())
        self.assertIn("i16", out.getvalue())

    def test_convert(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            dst = Path(td) / "converted.wav"
            with contextlib.redirect_stdout(io.StringIO()):
                code = cli_main(["convert", str(FIXTURE_I16), str(dst), "--to", "f32"])
            self.assertEqual(code, 0)
            self.assertIs(wav_spec(dst).encoding, SampleKind.F32)

    def test_error_exit_code(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "bad.wav"
            path.write_bytes(b"RIFF")
            with contextlib.redirect_stderr(io.StringIO()):
                code = cli_main(["info", str(path)])
            self.assertEqual(code, InvalidContainerError.exit_code)


if __name__ == "__main__":
    unittest.main()
