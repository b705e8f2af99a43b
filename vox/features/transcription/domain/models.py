# File: vox/features/transcription/domain/models.py
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import List, Optional

from vox.core.common.enums import TranscriptionEngine
from vox.features.audio_format.domain.models import AudioFormat

SIGNIFICANT_PAUSE_SECONDS = 1.0
PARAGRAPH_PAUSE_SECONDS = 1.5
SPEAKER_CHANGE_PAUSE_SECONDS = 2.0

@unique
class SegmentType(str, Enum):
    SPEECH = "speech"
    SILENCE = "silence"
    SENTENCE_BOUNDARY = "sentence_boundary"
    PARAGRAPH_BOUNDARY = "paragraph_boundary"
    SPEAKER_CHANGE = "speaker_change"
    BACKGROUND_NOISE = "background_noise"

@dataclass(frozen=True)
class WordTiming:
    """
    A single recognized word with its own timing.
    """
    word: str
    start_time: float
    end_time: float
    confidence: float = 1.0

    def __post_init__(self):
        if self.end_time < self.start_time:
            raise ValueError(f"Word '{self.word}' ends ({self.end_time}) before it starts ({self.start_time})")

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

@dataclass(frozen=True)
class TranscriptionSegment:
    """
    A time-bounded span of transcribed text.
    """
    text: str
    start_time: float
    end_time: float
    confidence: float = 1.0
    speaker_id: Optional[str] = None
    words: List[WordTiming] = field(default_factory=list)
    segment_type: SegmentType = SegmentType.SPEECH
    pause_duration: Optional[float] = None  # silence before this segment

    def __post_init__(self):
        if self.end_time < self.start_time:
            raise ValueError(f"Segment ends ({self.end_time}) before it starts ({self.start_time})")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def is_sentence_boundary(self) -> bool:
        return self.segment_type in (SegmentType.SENTENCE_BOUNDARY, SegmentType.PARAGRAPH_BOUNDARY)

    @property
    def is_paragraph_boundary(self) -> bool:
        return self.segment_type == SegmentType.PARAGRAPH_BOUNDARY

    @property
    def has_speaker_change(self) -> bool:
        return self.segment_type == SegmentType.SPEAKER_CHANGE

    @property
    def has_silence_gap(self) -> bool:
        return self.segment_type == SegmentType.SILENCE or (self.pause_duration or 0.0) > SIGNIFICANT_PAUSE_SECONDS

    @property
    def word_count(self) -> int:
        return len(self.text.split())

@dataclass(frozen=True)
class TranscriptionResult:
    """
    The complete output of one successful engine run.
    """
    text: str
    language: str
    confidence: float
    duration: float
    segments: List[TranscriptionSegment]
    engine: TranscriptionEngine
    processing_time: float
    audio_format: AudioFormat

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    @property
    def speakers(self) -> List[str]:
        seen = []
        for segment in self.segments:
            if segment.speaker_id and segment.speaker_id not in seen:
                seen.append(segment.speaker_id)
        return seen

    @property
    def average_segment_confidence(self) -> float:
        if not self.segments:
            return 0.0
        return sum(s.confidence for s in self.segments) / len(self.segments)

def base_language_code(language: Optional[str]) -> Optional[str]:
    """'en-US' / 'en_GB' -> 'en'. Recognizers here take the base language only."""
    if not language:
        return None
    return language.replace("_", "-").split("-")[0].lower()
