# File: vox/features/pipeline/service/orchestrator.py
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from vox.core.common.enums import OutputFormat, ProcessingPhase
from vox.core.errors import ErrorKind, VoxError
from vox.core.temp_files.manager import TempFileManager
from vox.features.audio_extraction.domain.interfaces import IAudioExtractor
from vox.features.audio_extraction.domain.models import validate_input_path
from vox.features.audio_format.domain.models import AudioFile
from vox.features.audio_format.domain.validator import detect_optimal_transcription_settings
from vox.features.output.domain.models import (
    JSONFormattingOptions,
    SRTFormattingOptions,
    SuccessConfirmation,
    TextFormattingOptions,
)
from vox.features.output.service.writer import OutputWriter
from vox.features.progress.data.memory_monitor import MemoryMonitor
from vox.features.progress.domain.models import MemoryUsage, ProcessingStats, ProgressCallback
from vox.features.progress.service.reporter import ProgressReporter
from vox.features.progress.service.tracker import MonotonicProgress
from vox.features.transcription.domain.models import TranscriptionResult
from vox.features.transcription.service.manager import TranscriptionManager

logger = logging.getLogger(__name__)

# Slices of the overall progress bar owned by each stage
EXTRACTION_SLICE = (0.0, 0.3)
TRANSCRIPTION_SLICE = (0.3, 0.9)

@dataclass(frozen=True)
class PipelineOutcome:
    result: TranscriptionResult
    confirmation: SuccessConfirmation
    stats: ProcessingStats
    extractor: str


class TranscriptionPipeline:
    """
    One media file in, one validated transcript out.
    Stages run strictly in sequence: extract -> transcribe -> render/write -> validate.
    Scratch audio is released on every exit path.
    """

    def __init__(self, manager: TranscriptionManager, extractors: List[IAudioExtractor],
                 writer: Optional[OutputWriter] = None, temp_files: Optional[TempFileManager] = None,
                 progress_callback: Optional[ProgressCallback] = None,
                 memory_monitor: Optional[MemoryMonitor] = None, memory_sample_interval: float = 5.0):
        self.manager = manager
        self.extractors = extractors
        self.writer = writer or OutputWriter()
        self.temp_files = temp_files or TempFileManager()
        self.progress_callback = progress_callback
        self.memory_monitor = memory_monitor
        self.memory_sample_interval = memory_sample_interval

    def run(self, input_path: Union[str, Path], output_path: Union[str, Path],
            output_format: OutputFormat = OutputFormat.TXT,
            text_options: Optional[TextFormattingOptions] = None,
            srt_options: Optional[SRTFormattingOptions] = None,
            json_options: Optional[JSONFormattingOptions] = None) -> PipelineOutcome:
        progress = MonotonicProgress(self.progress_callback)
        progress.emit(0.0, "Validating input", ProcessingPhase.INITIALIZING)

        # Caller mistakes surface here, before any backend runs
        source = validate_input_path(input_path)
        logger.info(f"Pipeline: {source.name} -> {output_path} ({output_format.value})")

        if self.memory_monitor:
            self.memory_monitor.start_sampling(self.memory_sample_interval, self._log_memory)

        audio_file: Optional[AudioFile] = None
        try:
            audio_file, extractor_name = self._extract(source, progress)

            recommendation = detect_optimal_transcription_settings(audio_file.format)
            logger.info(
                f"Audio {audio_file.format.description}; recommended engine "
                f"{recommendation.engine_name} ({recommendation.confidence:.2f})"
            )

            result = self.manager.transcribe(audio_file, progress.stage(*TRANSCRIPTION_SLICE))
            stats = self._collect_stats(result)

            progress.emit(TRANSCRIPTION_SLICE[1], "Formatting output", ProcessingPhase.FORMATTING)
            confirmation = self.writer.write_transcription_result(
                result, output_path, output_format, text_options, srt_options, json_options
            )
            if not confirmation.succeeded:
                raise VoxError(
                    ErrorKind.OUTPUT_WRITE_FAILED,
                    f"{output_path} failed validation: {'; '.join(confirmation.report.issues)}",
                )

            progress.emit(1.0, "Transcription complete", ProcessingPhase.COMPLETE)
            return PipelineOutcome(result, confirmation, stats, extractor_name)
        finally:
            if audio_file is not None and audio_file.temporary_path is not None:
                self.temp_files.cleanup_file(audio_file.temporary_path)
            if self.memory_monitor:
                self.memory_monitor.stop_sampling()
                self._log_memory(self.memory_monitor.get_current_usage())

    def _extract(self, source: Path, progress: MonotonicProgress):
        """
        Tries each backend in order. Any extraction failure moves on to the next
        backend; the most specific error is raised if all of them fail.
        """
        callback = progress.stage(*EXTRACTION_SLICE)
        last_error: Optional[VoxError] = None

        for extractor in self.extractors:
            if not extractor.is_available():
                logger.info(f"Extraction backend '{extractor.name}' unavailable, skipping")
                continue
            try:
                audio_file = extractor.extract_audio(source, callback).result()
            except VoxError as e:
                if e.kind == ErrorKind.INVALID_INPUT_FILE:
                    raise
                logger.warning(f"Extraction backend '{extractor.name}' failed: {e}")
                last_error = e
                continue
            return audio_file, extractor.name

        raise last_error or VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, f"no extraction backend available for {source}")

    @staticmethod
    def _collect_stats(result: TranscriptionResult) -> ProcessingStats:
        reporter = ProgressReporter(result.duration)
        total = len(result.segments)
        for index, segment in enumerate(result.segments):
            reporter.update_progress(index, total, segment.text, segment.confidence, segment.end_time)
        logger.info(
            f"Transcribed {reporter.stats.segments_processed} segments, "
            f"{reporter.stats.words_processed} words, avg confidence {reporter.stats.average_confidence:.2f}"
        )
        return reporter.stats

    @staticmethod
    def _log_memory(usage: MemoryUsage):
        logger.debug(
            f"Memory: {usage.current_mb:.1f} MB (peak {usage.peak_mb:.1f} MB, {usage.usage_percentage:.1f}% of system)"
        )
