# File: vox/features/audio_format/domain/validator.py
"""
Audio format policy. Pure functions over codec / sample rate / channels / bit rate.
No I/O and no state: the thresholds all live in settings.
"""
from dataclasses import dataclass
from typing import Optional

from vox.core.config.settings import settings
from vox.core.common.enums import TranscriptionEngine


@dataclass(frozen=True)
class FormatValidation:
    is_valid: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class EngineRecommendation:
    """`engine` is None when the audio should not be transcribed at all."""
    engine: Optional[TranscriptionEngine]
    confidence: float

    @property
    def engine_name(self) -> str:
        return self.engine.value if self.engine else "none"


def _normalize(codec: str) -> str:
    return (codec or "").strip().lower()


def is_supported(codec: str, sample_rate: int, channels: int) -> bool:
    return (
        _normalize(codec) in settings.SUPPORTED_CODECS
        and sample_rate in settings.SUPPORTED_SAMPLE_RATES
        and channels in settings.SUPPORTED_CHANNEL_COUNTS
    )


def validate(codec: str, sample_rate: int, channels: int, bit_rate: Optional[int] = None) -> FormatValidation:
    """Checks each dimension in turn and reports the first one that fails."""
    if _normalize(codec) not in settings.SUPPORTED_CODECS:
        return FormatValidation(
            False,
            f"Unsupported codec: {codec}. Supported codecs: {', '.join(settings.SUPPORTED_CODECS)}",
        )

    if sample_rate not in settings.SUPPORTED_SAMPLE_RATES:
        rates = ", ".join(str(r) for r in settings.SUPPORTED_SAMPLE_RATES)
        return FormatValidation(False, f"Unsupported sample rate: {sample_rate}Hz. Supported rates: {rates}")

    if channels not in settings.SUPPORTED_CHANNEL_COUNTS:
        counts = ", ".join(str(c) for c in settings.SUPPORTED_CHANNEL_COUNTS)
        return FormatValidation(False, f"Unsupported channel count: {channels}. Supported counts: {counts}")

    if bit_rate is not None:
        if bit_rate < settings.MIN_BITRATE_BPS:
            return FormatValidation(
                False, f"Bitrate too low: {bit_rate} bps. Minimum: {settings.MIN_BITRATE_BPS} bps"
            )
        if bit_rate > settings.MAX_BITRATE_BPS:
            return FormatValidation(
                False, f"Bitrate too high: {bit_rate} bps. Maximum: {settings.MAX_BITRATE_BPS} bps"
            )

    return FormatValidation(True)


def calculate_quality_score(sample_rate: int, bit_rate: Optional[int], channels: int) -> float:
    if bit_rate is None:
        return 0.5

    score = (sample_rate / 192000.0) * 0.4 + (bit_rate / 1_000_000.0) * 0.5
    if channels > 2:
        score += 0.1
    return max(0.0, min(1.0, score))


def is_transcription_compatible(codec: str) -> bool:
    codec = _normalize(codec)
    return codec in settings.SUPPORTED_CODECS and codec not in settings.TRANSCRIPTION_INCOMPATIBLE_CODECS


def detect_optimal_transcription_settings(audio_format) -> EngineRecommendation:
    """
    Tiered engine hint for an AudioFormat. Only a heuristic: the transcription
    manager makes the real choice.
    """
    if not audio_format.is_transcription_ready:
        return EngineRecommendation(None, 0.0)

    score = calculate_quality_score(audio_format.sample_rate, audio_format.bit_rate, audio_format.channels)

    min_rate, min_score, confidence = settings.ON_DEVICE_RECOMMENDATION
    if audio_format.sample_rate >= min_rate and score > min_score:
        return EngineRecommendation(TranscriptionEngine.ON_DEVICE, confidence)

    min_rate, min_score, confidence = settings.PRIMARY_CLOUD_RECOMMENDATION
    if audio_format.sample_rate >= min_rate and score > min_score:
        return EngineRecommendation(TranscriptionEngine.OPENAI, confidence)

    return EngineRecommendation(TranscriptionEngine.REVAI, settings.SECONDARY_CLOUD_CONFIDENCE)
