# File: tests/conftest.py

import os
import sys
import shutil
import subprocess

import pytest

# 1. Add project root to path
sys.path.append(os.getcwd())

from vox.core.common.enums import TranscriptionEngine
from vox.features.audio_format.domain.models import AudioFile, AudioFormat
from vox.features.transcription.domain.models import TranscriptionResult, TranscriptionSegment
from vox.features.transcription.domain.segmentation import finalize_segments

HAS_FFMPEG = shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None

DEFAULT_SEGMENTS = (
    ("Hello world.", 0.0, 1.0, 0.9),
    ("This is a test.", 1.2, 2.5, 0.8),
)


@pytest.fixture
def audio_format():
    """AAC stereo at 44.1kHz / 128kbps: valid and transcription-ready."""
    return AudioFormat.validated("aac", 44100, 2, 12.5, bit_rate=128000, file_size=200_000)


@pytest.fixture
def audio_file(tmp_path, audio_format):
    path = tmp_path / "speech.m4a"
    path.write_bytes(b"\x00" * 64)
    return AudioFile(path=path, format=audio_format, temporary_path=path)


@pytest.fixture
def make_result(audio_format):
    """
    Factory for TranscriptionResult objects.
    `segments` is a sequence of (text, start, end, confidence) tuples.
    """
    def _make(segments=DEFAULT_SEGMENTS, text=None, confidence=0.9,
              engine=TranscriptionEngine.ON_DEVICE, processing_time=1.5,
              fmt=None, finalize=True):
        built = [
            TranscriptionSegment(text=t, start_time=s, end_time=e, confidence=c)
            for t, s, e, c in segments
        ]
        if finalize:
            built = finalize_segments(built)
        return TranscriptionResult(
            text=text if text is not None else " ".join(t for t, *_ in segments),
            language="en",
            confidence=confidence,
            duration=max((e for _, _, e, _ in segments), default=0.0),
            segments=built,
            engine=engine,
            processing_time=processing_time,
            audio_format=fmt or audio_format,
        )
    return _make


@pytest.fixture(scope="session")
def media_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("media")


def _ffmpeg(*args):
    # Test setup goes straight to ffmpeg, independent of the code under test
    subprocess.run(["ffmpeg", "-y", *args], check=True, capture_output=True)


@pytest.fixture(scope="session")
def sine_video(media_dir):
    """A 2-second test video with a sine wave audio track."""
    if not HAS_FFMPEG:
        pytest.skip("ffmpeg/ffprobe not installed")
    path = media_dir / "src_audio_test.mp4"
    _ffmpeg(
        "-f", "lavfi", "-i", "testsrc=duration=2:size=320x240:rate=30",
        "-f", "lavfi", "-i", "sine=frequency=1000:duration=2",
        "-c:v", "libx264", "-c:a", "aac",
        str(path),
    )
    return path


@pytest.fixture(scope="session")
def silent_video(media_dir):
    """Video only, no audio stream at all."""
    if not HAS_FFMPEG:
        pytest.skip("ffmpeg/ffprobe not installed")
    path = media_dir / "video_only.mp4"
    _ffmpeg(
        "-f", "lavfi", "-i", "testsrc=duration=1:size=160x120:rate=15",
        "-c:v", "libx264", "-an",
        str(path),
    )
    return path
