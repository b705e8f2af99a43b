# File: vox/features/output/data/text_formatter.py
import textwrap
from typing import List, Optional

from vox.features.transcription.domain.models import TranscriptionResult, TranscriptionSegment
from ..domain.interfaces import IOutputFormatter
from ..domain.models import TextFormattingOptions, TimestampFormat

REPORT_RULE = "=" * 50


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def format_clock(seconds: float) -> str:
    """MM:SS, or HH:MM:SS once the hour mark is passed."""
    total = int(max(0.0, seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class TextFormatter(IOutputFormatter):
    """
    Plain-text paragraphs with optional timestamp, speaker and confidence annotations.
    """
    def __init__(self, options: Optional[TextFormattingOptions] = None):
        self.options = options or TextFormattingOptions()

    def format(self, result: TranscriptionResult) -> str:
        if not result.segments:
            return self._wrap(collapse_whitespace(result.text))

        paragraphs = [self._render_paragraph(p) for p in self._paragraphs(result.segments)]
        return "\n\n".join(p for p in paragraphs if p)

    def format_detailed(self, result: TranscriptionResult) -> str:
        """The same body framed by a report header and a statistics footer."""
        speakers = ", ".join(result.speakers) or "n/a"
        header = [
            "TRANSCRIPTION REPORT",
            REPORT_RULE,
            f"Duration: {format_clock(result.duration)}",
            f"Language: {result.language}",
            f"Engine: {result.engine.value}",
            f"Overall Confidence: {result.confidence * 100:.1f}%",
            f"Processing Time: {result.processing_time:.2f}s",
            f"Segments: {len(result.segments)}",
            f"Speakers: {speakers}",
        ]

        segment_count = len(result.segments)
        average_length = sum(s.duration for s in result.segments) / segment_count if segment_count else 0.0
        low_confidence = sum(1 for s in result.segments if s.confidence < self.options.confidence_threshold)
        footer = [
            "STATISTICS",
            REPORT_RULE,
            f"Words: {result.word_count}",
            f"Average Segment Length: {average_length:.1f}s",
            f"Low Confidence Segments: {low_confidence}",
        ]
        return "\n".join(header) + "\n\n" + self.format(result) + "\n\n" + "\n".join(footer)

    def _paragraphs(self, segments: List[TranscriptionSegment]) -> List[List[TranscriptionSegment]]:
        paragraphs: List[List[TranscriptionSegment]] = []
        current: List[TranscriptionSegment] = []

        for segment in segments:
            if current and self._starts_paragraph(current[-1], segment):
                paragraphs.append(current)
                current = []
            current.append(segment)

        if current:
            paragraphs.append(current)
        return paragraphs

    def _starts_paragraph(self, previous: TranscriptionSegment, segment: TranscriptionSegment) -> bool:
        gap = segment.start_time - previous.end_time
        return (
            segment.is_paragraph_boundary
            or segment.has_speaker_change
            or segment.speaker_id != previous.speaker_id
            or gap > self.options.paragraph_break_threshold
        )

    def _render_paragraph(self, segments: List[TranscriptionSegment]) -> str:
        opts = self.options
        prefix = ""
        if opts.include_speaker_ids and segments[0].speaker_id:
            prefix += f"{segments[0].speaker_id}: "
        if opts.include_timestamps:
            prefix += f"{self._timestamp(segments[0].start_time)} "

        pieces = []
        for segment in segments:
            piece = collapse_whitespace(segment.text)
            if not piece:
                continue
            if opts.include_confidence_scores and segment.confidence < opts.confidence_threshold:
                piece += f" [confidence: {segment.confidence * 100:.1f}%]"
            pieces.append(piece)

        if not pieces:
            return ""
        return self._wrap(prefix + " ".join(pieces))

    def _timestamp(self, seconds: float) -> str:
        fmt = self.options.timestamp_format
        if fmt == TimestampFormat.SECONDS:
            return f"[{seconds:.1f}s]"
        if fmt == TimestampFormat.MILLISECONDS:
            return f"[{int(round(seconds * 1000))}ms]"
        return f"[{format_clock(seconds)}]"

    def _wrap(self, text: str) -> str:
        if not self.options.line_width or self.options.line_width <= 0:
            return text
        return textwrap.fill(
            text,
            width=self.options.line_width,
            break_long_words=False,
            break_on_hyphens=False,
        )
