# File: vox/features/transcription/domain/segmentation.py
"""
Turns raw engine segments into the canonical ordered, annotated sequence.
Engines that do not diarize get speaker ids from long pauses.
"""
from dataclasses import replace
from typing import Iterable, List, Optional

from .models import (
    PARAGRAPH_PAUSE_SECONDS,
    SPEAKER_CHANGE_PAUSE_SECONDS,
    SegmentType,
    TranscriptionSegment,
)

SENTENCE_TERMINATORS = (".", "!", "?")


def ends_sentence(text: Optional[str]) -> bool:
    return bool(text) and text.rstrip().endswith(SENTENCE_TERMINATORS)


def classify_segment_type(text: str, pause_before: float, previous_text: Optional[str] = None) -> SegmentType:
    if pause_before > SPEAKER_CHANGE_PAUSE_SECONDS:
        return SegmentType.SPEAKER_CHANGE

    if not text.strip():
        return SegmentType.SILENCE

    if ends_sentence(text):
        if pause_before > PARAGRAPH_PAUSE_SECONDS and ends_sentence(previous_text):
            return SegmentType.PARAGRAPH_BOUNDARY
        return SegmentType.SENTENCE_BOUNDARY

    return SegmentType.SPEECH


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def finalize_segments(segments: Iterable[TranscriptionSegment], assign_speakers: bool = True) -> List[TranscriptionSegment]:
    """
    Orders segments by start time, clamps times and confidences, fills in
    pause durations and segment types, and optionally labels speakers.
    Segments that already carry a speaker id keep it.
    """
    ordered = sorted(segments, key=lambda s: (s.start_time, s.end_time))
    finalized = []
    previous = None
    speaker_number = 1

    for segment in ordered:
        start = max(0.0, segment.start_time)
        end = max(start, segment.end_time)
        pause = max(0.0, start - previous.end_time) if previous else 0.0

        segment_type = classify_segment_type(segment.text, pause, previous.text if previous else None)
        if segment_type == SegmentType.SPEAKER_CHANGE and previous is not None:
            speaker_number += 1

        speaker_id = segment.speaker_id
        if speaker_id is None and assign_speakers:
            speaker_id = f"Speaker{speaker_number}"

        current = replace(
            segment,
            text=segment.text.strip(),
            start_time=start,
            end_time=end,
            confidence=clamp_confidence(segment.confidence),
            speaker_id=speaker_id,
            segment_type=segment_type,
            pause_duration=pause if previous else None,
        )
        finalized.append(current)
        previous = current

    return finalized
