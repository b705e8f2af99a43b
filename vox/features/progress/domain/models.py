# File: vox/features/progress/domain/models.py
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from vox.core.common.enums import ProcessingPhase


def _format_duration(seconds: float) -> str:
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


@dataclass(frozen=True)
class TranscriptionProgress:
    """
    A snapshot of how far a pipeline stage has got.
    `current_progress` is clamped to [0, 1] on construction.
    """
    current_progress: float
    current_status: str
    current_phase: ProcessingPhase
    start_time: float = field(default_factory=time.time)
    processing_speed: Optional[float] = None  # progress units per second

    def __post_init__(self):
        object.__setattr__(self, "current_progress", max(0.0, min(1.0, float(self.current_progress))))

    @property
    def is_complete(self) -> bool:
        return self.current_progress >= 1.0

    @property
    def elapsed_time(self) -> float:
        return max(0.0, time.time() - self.start_time)

    @property
    def estimated_time_remaining(self) -> Optional[float]:
        speed = self.processing_speed
        if not speed or speed <= 0 or not 0 < self.current_progress < 1:
            return None
        return (1.0 - self.current_progress) / speed

    @property
    def formatted_progress(self) -> str:
        return f"{self.current_progress * 100:.1f}%"

    @property
    def formatted_time_remaining(self) -> str:
        remaining = self.estimated_time_remaining
        if remaining is None:
            return "calculating..."
        return _format_duration(remaining)


ProgressCallback = Callable[[TranscriptionProgress], None]


@dataclass(frozen=True)
class MemoryUsage:
    current_bytes: int
    peak_bytes: int
    available_bytes: int
    total_system_bytes: int

    def __post_init__(self):
        if self.peak_bytes < self.current_bytes:
            object.__setattr__(self, "peak_bytes", self.current_bytes)

    @property
    def current_mb(self) -> float:
        return self.current_bytes / (1024 * 1024)

    @property
    def peak_mb(self) -> float:
        return self.peak_bytes / (1024 * 1024)

    @property
    def available_mb(self) -> float:
        return self.available_bytes / (1024 * 1024)

    @property
    def usage_percentage(self) -> float:
        if self.total_system_bytes <= 0:
            return 0.0
        return max(0.0, min(100.0, self.current_bytes / self.total_system_bytes * 100.0))


@dataclass
class ProcessingStats:
    segments_processed: int = 0
    words_processed: int = 0
    average_confidence: float = 0.0
    processing_rate: float = 0.0  # audio seconds per wall-clock second
    audio_processed: float = 0.0
    audio_remaining: float = 0.0

    @property
    def estimated_completion(self) -> Optional[float]:
        if self.processing_rate <= 0:
            return None
        return self.audio_remaining / self.processing_rate
