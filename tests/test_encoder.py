import os
import tempfile
import time
import unittest
from pathlib import Path
from unittest import TestCase

from autoencode.encoder import HandBrakeEncoder, build_arguments, parse_progress
from autoencode.errors import EncodeError


class ArgumentTests(TestCase):
    def test_build_arguments(self) -> None:
        args = build_arguments(
            {"quality": 22, "optimize": True, "markers": False, "subtitle": None, "audio-lang-list": ["eng", "und"]}
        )
        self.assertEqual(args, ["--quality", "22", "--optimize", "--audio-lang-list", "eng,und"])

    def test_parse_progress(self) -> None:
        self.assertEqual(parse_progress("Encoding: task 1 of 1, 42.50 %"), 42.5)
        self.assertEqual(parse_progress("Encoding: task 2 of 2, 50.00 % (31.2 fps)"), 75.0)
        self.assertIsNone(parse_progress("x264 [info]: profile High"))


class EncoderTests(TestCase):
    def test_missing_binary(self) -> None:
        encoder = HandBrakeEncoder(binary="/nonexistent/HandBrakeCLI")
        with self.assertRaises(EncodeError):
            encoder.encode(Path("in.mkv"), Path("out.mp4"), {})

    @unittest.skipUnless(os.name == "posix", "needs a POSIX shell")
    def test_silent_encoder_times_out(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            stalled = Path(tmp) / "HandBrakeCLI"
            stalled.write_text("#!/bin/sh\nexec sleep 30\n")
            stalled.chmod(0o755)
            encoder = HandBrakeEncoder(binary=str(stalled), timeout=0.5)
            started = time.monotonic()
            with self.assertRaises(EncodeError) as ctx:
                encoder.encode(Path(tmp) / "in.mkv", Path(tmp) / "out.mp4", {})
            self.assertEqual(ctx.exception.code, "TIMEOUT")
            self.assertLess(time.monotonic() - started, 10)
