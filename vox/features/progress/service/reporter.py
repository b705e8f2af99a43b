# File: vox/features/progress/service/reporter.py
import time
import logging
from threading import Lock
from typing import Optional

from vox.core.common.enums import ProcessingPhase
from ..domain.models import ProcessingStats, TranscriptionProgress

logger = logging.getLogger(__name__)

STATUS_PREVIEW_CHARS = 30

class ProgressReporter:
    """
    Tracks per-segment progress for one transcription run.
    One reporter per run; it is not shared between pipelines.
    """
    def __init__(self, total_audio_duration: float = 0.0):
        self.total_audio_duration = max(0.0, total_audio_duration)
        self.start_time = time.time()
        self.stats = ProcessingStats(audio_remaining=self.total_audio_duration)

        self.current_segment_index = 0
        self.total_segments = 0
        self.current_segment_text = ""

        self._confidence_sum = 0.0
        self._lock = Lock()

    def update_progress(self, segment_index: int, total_segments: int, segment_text: str,
                        segment_confidence: float, audio_time_processed: float) -> ProcessingStats:
        with self._lock:
            self.current_segment_index = segment_index
            self.total_segments = total_segments
            self.current_segment_text = segment_text

            # str.split() with no separator collapses whitespace runs
            self.stats.words_processed += len(segment_text.split())
            self.stats.segments_processed = segment_index + 1

            self._confidence_sum += segment_confidence
            self.stats.average_confidence = self._confidence_sum / self.stats.segments_processed

            self.stats.audio_processed = audio_time_processed
            self.stats.audio_remaining = max(0.0, self.total_audio_duration - audio_time_processed)

            elapsed = time.time() - self.start_time
            self.stats.processing_rate = audio_time_processed / elapsed if elapsed > 0 else 0.0
            return self.stats

    @property
    def current_status(self) -> str:
        text = self.current_segment_text.strip()
        if text:
            if len(text) > STATUS_PREVIEW_CHARS:
                return f'Processing: "{text[:STATUS_PREVIEW_CHARS]}..."'
            return f'Processing: "{text}"'
        return f"Processing audio segment {self.current_segment_index + 1}/{max(self.total_segments, 1)}"

    def generate_detailed_progress_report(self) -> TranscriptionProgress:
        with self._lock:
            if self.total_segments > 0:
                progress = self.current_segment_index / self.total_segments
            else:
                progress = 0.0

            elapsed = time.time() - self.start_time
            speed: Optional[float] = progress / elapsed if elapsed > 0 and progress > 0 else None

            phase = ProcessingPhase.COMPLETE if progress >= 1.0 else ProcessingPhase.EXTRACTING
            return TranscriptionProgress(
                current_progress=progress,
                current_status=self.current_status,
                current_phase=phase,
                start_time=self.start_time,
                processing_speed=speed,
            )
