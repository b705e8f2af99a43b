# File: vox/features/audio_extraction/data/ffmpeg_parser.py
"""
Parsers for ffmpeg's stderr progress stream and ffprobe's JSON report.
"""
import re
from typing import Any, Dict, Optional

from vox.features.audio_format.domain.models import AudioFormat

_CLOCK = r"(\d+):(\d{2}):(\d{2}(?:\.\d+)?)"
DURATION_PATTERN = re.compile(r"Duration:\s*" + _CLOCK)
TIME_PATTERN = re.compile(r"time=\s*" + _CLOCK)

# ffprobe codec names -> policy codec names
CODEC_ALIASES = {
    "alac": "m4a",
    "mp3float": "mp3",
}


def parse_clock(hours: str, minutes: str, seconds: str) -> float:
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_duration(line: str) -> Optional[float]:
    match = DURATION_PATTERN.search(line)
    return parse_clock(*match.groups()) if match else None


def parse_progress_time(line: str) -> Optional[float]:
    match = TIME_PATTERN.search(line)
    return parse_clock(*match.groups()) if match else None


def normalize_codec(codec_name: str) -> str:
    codec_name = (codec_name or "").lower()
    if codec_name.startswith("pcm_"):
        return "wav"
    return CODEC_ALIASES.get(codec_name, codec_name)


def find_audio_stream(probe: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for stream in probe.get("streams", []):
        if stream.get("codec_type") == "audio":
            return stream
    return None


def _to_int(value) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def audio_format_from_probe(probe: Dict[str, Any], file_size: Optional[int] = None) -> Optional[AudioFormat]:
    """
    Builds a validated AudioFormat from `ffprobe -show_streams -show_format` output.
    Returns None when the report has no audio stream.
    """
    stream = find_audio_stream(probe)
    if stream is None:
        return None

    container = probe.get("format", {})
    duration = _to_float(stream.get("duration")) or _to_float(container.get("duration")) or 0.0
    bit_rate = _to_int(stream.get("bit_rate")) or _to_int(container.get("bit_rate"))
    if file_size is None:
        file_size = _to_int(container.get("size"))

    return AudioFormat.validated(
        codec=normalize_codec(stream.get("codec_name", "")),
        sample_rate=_to_int(stream.get("sample_rate")) or 0,
        channels=_to_int(stream.get("channels")) or 0,
        duration=max(0.0, duration),
        bit_rate=bit_rate,
        file_size=file_size,
    )
