# File: vox/features/output/data/srt_formatter.py
from typing import List, Optional, Tuple

from vox.features.transcription.domain.models import TranscriptionResult, TranscriptionSegment
from ..domain.interfaces import IOutputFormatter
from ..domain.models import SRTFormattingOptions
from .text_formatter import collapse_whitespace

Cue = Tuple[float, float, str]


def format_srt_time(seconds: float) -> str:
    """HH:MM:SS,mmm rounded to the nearest millisecond."""
    millis = int(round(max(0.0, seconds) * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


class SRTFormatter(IOutputFormatter):
    """
    SubRip subtitles. One block per segment, or per sentence when `merge_sentences` is set.
    Blocks are numbered from 1 without gaps.
    """
    def __init__(self, options: Optional[SRTFormattingOptions] = None):
        self.options = options or SRTFormattingOptions()

    def format(self, result: TranscriptionResult) -> str:
        if result.segments:
            cues = self._merged_cues(result.segments) if self.options.merge_sentences else self._cues(result.segments)
        elif result.text.strip():
            cues = [(0.0, result.duration, collapse_whitespace(result.text))]
        else:
            cues = []

        return "".join(
            f"{index}\n{format_srt_time(start)} --> {format_srt_time(end)}\n{text}\n\n"
            for index, (start, end, text) in enumerate(cues, start=1)
        )

    @staticmethod
    def _cues(segments: List[TranscriptionSegment]) -> List[Cue]:
        return [
            (s.start_time, s.end_time, collapse_whitespace(s.text))
            for s in segments
            if s.text.strip()
        ]

    def _merged_cues(self, segments: List[TranscriptionSegment]) -> List[Cue]:
        cues: List[Cue] = []
        group: List[TranscriptionSegment] = []

        def flush():
            if group:
                text = collapse_whitespace(" ".join(s.text for s in group))
                if text:
                    cues.append((group[0].start_time, group[-1].end_time, text))
                group.clear()

        for segment in segments:
            if not segment.text.strip():
                continue
            if group and (
                segment.has_speaker_change
                or segment.speaker_id != group[-1].speaker_id
                or segment.end_time - group[0].start_time > self.options.max_block_duration
            ):
                flush()
            group.append(segment)
            if segment.is_sentence_boundary:
                flush()
        flush()
        return cues
