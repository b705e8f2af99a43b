# File: vox/features/audio_format/domain/models.py
from dataclasses import dataclass
from enum import Enum, unique
from pathlib import Path
from typing import Optional

from vox.core.config.settings import settings
from . import validator


@unique
class AudioQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    LOSSLESS = "lossless"

    @classmethod
    def determine(cls, sample_rate: int, bit_rate: Optional[int], channels: int) -> "AudioQuality":
        if bit_rate is None:
            return cls.MEDIUM

        per_channel = bit_rate / max(channels, 1)
        tiers = (
            (settings.LOSSLESS_TIER, cls.LOSSLESS),
            (settings.HIGH_TIER, cls.HIGH),
            (settings.MEDIUM_TIER, cls.MEDIUM),
        )
        for (min_rate, min_bits), quality in tiers:
            if sample_rate >= min_rate and per_channel >= min_bits:
                return quality
        return cls.LOW


def _format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("bytes", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} bytes" if unit == "bytes" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} bytes"


@dataclass(frozen=True)
class AudioFormat:
    """
    Decoded audio properties as reported by an extraction backend.
    """
    codec: str
    sample_rate: int
    channels: int
    duration: float
    bit_rate: Optional[int] = None
    file_size: Optional[int] = None
    is_valid: bool = True
    validation_error: Optional[str] = None

    def __post_init__(self):
        if self.channels < 0:
            raise ValueError(f"Channel count cannot be negative: {self.channels}")
        if self.duration < 0:
            raise ValueError(f"Duration cannot be negative: {self.duration}")

    @classmethod
    def validated(cls, codec: str, sample_rate: int, channels: int, duration: float,
                  bit_rate: Optional[int] = None, file_size: Optional[int] = None) -> "AudioFormat":
        """Builds a format with `is_valid`/`validation_error` filled in by the policy."""
        check = validator.validate(codec, sample_rate, channels, bit_rate)
        return cls(
            codec=codec.lower(),
            sample_rate=sample_rate,
            channels=channels,
            duration=duration,
            bit_rate=bit_rate,
            file_size=file_size,
            is_valid=check.is_valid,
            validation_error=check.error,
        )

    @property
    def quality(self) -> AudioQuality:
        return AudioQuality.determine(self.sample_rate, self.bit_rate, self.channels)

    @property
    def is_compatible(self) -> bool:
        return self.is_valid and self.codec.lower() in settings.SUPPORTED_CODECS

    @property
    def is_transcription_ready(self) -> bool:
        return self.is_valid and validator.is_transcription_compatible(self.codec)

    @property
    def description(self) -> str:
        parts = [f"{self.codec.upper()} - {self.sample_rate}Hz", f"{self.channels}ch"]
        if self.bit_rate is not None:
            parts.append(f"{self.bit_rate // 1000} kbps")
        parts.append(f"{self.duration:.1f}s")
        if self.file_size is not None:
            parts.append(_format_bytes(self.file_size))
        return ", ".join(parts)


@dataclass(frozen=True)
class AudioFile:
    """
    An extracted audio stream. `temporary_path` is only set when extraction
    wrote a scratch file; that file belongs to the TempFileManager.
    """
    path: Path
    format: AudioFormat
    temporary_path: Optional[Path] = None

    @property
    def readable_path(self) -> Path:
        """The file a transcription engine should read."""
        return self.temporary_path or self.path
