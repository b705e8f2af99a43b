# File: vox/features/progress/service/tracker.py
import logging
from threading import Lock
from typing import Optional

from vox.core.common.enums import ProcessingPhase
from ..domain.models import ProgressCallback, TranscriptionProgress

logger = logging.getLogger(__name__)

class MonotonicProgress:
    """
    Merges the progress of sequential stages into one stream for a single sink.
    Each stage reports 0..1 locally; `stage(start, end)` maps that into its slice
    of the overall run. Values that would move backwards are held at the high-water mark.
    """
    def __init__(self, sink: Optional[ProgressCallback] = None):
        self.sink = sink
        self._high_water = 0.0
        self._lock = Lock()

    @property
    def current(self) -> float:
        return self._high_water

    def stage(self, start: float, end: float) -> ProgressCallback:
        span = end - start

        def forward(progress: TranscriptionProgress):
            self.emit(start + span * progress.current_progress, progress.current_status,
                      progress.current_phase, progress.processing_speed)
        return forward

    def emit(self, value: float, status: str, phase: ProcessingPhase, speed: Optional[float] = None):
        with self._lock:
            self._high_water = max(self._high_water, min(1.0, value))
            snapshot = TranscriptionProgress(
                current_progress=self._high_water,
                current_status=status,
                current_phase=phase,
                processing_speed=speed,
            )

        if self.sink is None:
            return
        try:
            self.sink(snapshot)
        except Exception as e:
            # sink errors are logged, never propagated
            logger.warning(f"Progress sink raised {type(e).__name__}: {e}")
