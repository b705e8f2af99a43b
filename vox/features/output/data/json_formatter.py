# File: vox/features/output/data/json_formatter.py
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from vox.core.config.settings import settings
from vox.features.audio_format.domain.models import AudioFormat, AudioQuality
from vox.features.transcription.domain.models import TranscriptionResult, TranscriptionSegment, WordTiming
from ..domain.interfaces import IOutputFormatter
from ..domain.models import DateFormat, JSONFormattingOptions

FORMAT_NAME = "vox-json"
FORMAT_VERSION = "1.0.0"

_QUALITY_WEIGHT = {
    AudioQuality.LOSSLESS: 0.3,
    AudioQuality.HIGH: 0.3,
    AudioQuality.MEDIUM: 0.2,
    AudioQuality.LOW: 0.1,
}


def quality_score(result: TranscriptionResult) -> float:
    """40% engine confidence, 30% audio quality, 30% for having any segments at all."""
    score = result.confidence * 0.4
    score += _QUALITY_WEIGHT[result.audio_format.quality]
    score += 0.3 if result.segments else 0.0
    return max(0.0, min(1.0, score))


class JSONFormatter(IOutputFormatter):
    """
    The vox-json document. Every optional value is emitted as null rather than omitted.
    """
    def __init__(self, options: Optional[JSONFormattingOptions] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.options = options or JSONFormattingOptions()
        self.clock = clock

    def format(self, result: TranscriptionResult) -> str:
        return json.dumps(
            self.to_dict(result),
            indent=2 if self.options.pretty_print else None,
            ensure_ascii=False,
            sort_keys=self.options.pretty_print,
        )

    def to_dict(self, result: TranscriptionResult) -> Dict[str, Any]:
        opts = self.options
        generated_at = self._date(self.clock())

        document: Dict[str, Any] = {
            "format": FORMAT_NAME,
            "version": FORMAT_VERSION,
            "generatedAt": generated_at,
            "transcription": {
                "text": result.text,
                "language": result.language,
                "confidence": result.confidence,
                "duration": result.duration,
                "wordCount": result.word_count,
                "segmentCount": len(result.segments),
            },
            "segments": [self._segment(s) for s in result.segments],
        }
        if opts.include_metadata:
            document["metadata"] = self._metadata(result, generated_at)
        if opts.include_audio_information:
            document["audioInformation"] = self._audio_information(result.audio_format)
        if opts.include_processing_stats:
            document["processingStats"] = self._processing_stats(result)
        return document

    def _metadata(self, result: TranscriptionResult, generated_at) -> Dict[str, Any]:
        low_confidence = sum(1 for s in result.segments if s.confidence < settings.LOW_CONFIDENCE_THRESHOLD)
        return {
            "engine": result.engine.value,
            "engineVersion": None,
            "processingTime": result.processing_time,
            "generatedAt": generated_at,
            "speakerCount": len(result.speakers),
            "speakers": result.speakers,
            "averageConfidence": result.average_segment_confidence,
            "lowConfidenceSegmentCount": low_confidence,
            "qualityScore": quality_score(result),
        }

    @staticmethod
    def _audio_information(audio_format: AudioFormat) -> Dict[str, Any]:
        return {
            "codec": audio_format.codec,
            "sampleRate": audio_format.sample_rate,
            "channels": audio_format.channels,
            "bitRate": audio_format.bit_rate,
            "duration": audio_format.duration,
            "fileSize": audio_format.file_size,
            "isValid": audio_format.is_valid,
            "validationError": audio_format.validation_error,
            "quality": audio_format.quality.value,
            "isCompatible": audio_format.is_compatible,
            "isTranscriptionReady": audio_format.is_transcription_ready,
            "formatDescription": audio_format.description,
        }

    @staticmethod
    def _processing_stats(result: TranscriptionResult) -> Dict[str, Any]:
        segments = result.segments
        total_words = sum(s.word_count for s in segments)
        has_time = result.processing_time > 0
        return {
            "processingTime": result.processing_time,
            "processingRate": result.duration / result.processing_time if has_time else 0.0,
            "totalSegments": len(segments),
            "totalWords": total_words,
            "averageSegmentLength": sum(s.duration for s in segments) / len(segments) if segments else 0.0,
            "processingEfficiency": total_words / result.processing_time if has_time else 0.0,
        }

    def _segment(self, segment: TranscriptionSegment) -> Dict[str, Any]:
        opts = self.options
        entry: Dict[str, Any] = {
            "text": segment.text,
            "startTime": segment.start_time,
            "endTime": segment.end_time,
            "speakerID": segment.speaker_id,
        }
        if opts.include_confidence_scores:
            entry["confidence"] = segment.confidence
        if opts.include_segment_details:
            entry.update({
                "duration": segment.duration,
                "segmentType": segment.segment_type.value,
                "pauseDuration": segment.pause_duration,
                "isSentenceBoundary": segment.is_sentence_boundary,
                "isParagraphBoundary": segment.is_paragraph_boundary,
                "hasSpeakerChange": segment.has_speaker_change,
                "hasSilenceGap": segment.has_silence_gap,
                "wordCount": segment.word_count,
            })
        if opts.include_word_timings:
            entry["words"] = [self._word(w) for w in segment.words] if segment.words else None
        return entry

    def _word(self, word: WordTiming) -> Dict[str, Any]:
        entry = {
            "word": word.word,
            "startTime": word.start_time,
            "endTime": word.end_time,
            "duration": word.duration,
        }
        if self.options.include_confidence_scores:
            entry["confidence"] = word.confidence
        return entry

    def _date(self, moment: datetime):
        if self.options.date_format == DateFormat.TIMESTAMP:
            return moment.timestamp()
        if self.options.date_format == DateFormat.MILLISECONDS:
            return int(moment.timestamp() * 1000)
        return moment.isoformat()
