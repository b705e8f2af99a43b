# File: vox/features/transcription/data/whisper_adapter.py
import math
import time
import logging
from typing import Optional

import whisper

from vox.core.config.settings import settings
from vox.core.common.enums import ProcessingPhase, TranscriptionEngine
from vox.core.errors import ErrorKind, VoxError
from vox.core.model_lifecycle.orchestrator import ModelOrchestrator
from vox.core.model_lifecycle.types import ModelKey, ModelType
from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback, TranscriptionProgress
from ..domain.interfaces import ITranscriber
from ..domain.models import TranscriptionResult, TranscriptionSegment, WordTiming, base_language_code
from ..domain.segmentation import clamp_confidence, finalize_segments

logger = logging.getLogger(__name__)


class WhisperAdapter(ITranscriber):
    """
    On-device engine: OpenAI Whisper running locally through the shared model orchestrator.
    """
    engine = TranscriptionEngine.ON_DEVICE

    def __init__(self, model_size: Optional[str] = None, device: Optional[str] = None):
        self.orchestrator = ModelOrchestrator()
        self.model_size = model_size or settings.WHISPER_MODEL_NAME
        self.device = device or settings.WHISPER_DEVICE

    def is_available(self) -> bool:
        return self.model_size in whisper.available_models()

    def transcribe(self, audio_file: AudioFile, language: Optional[str] = None,
                   progress_callback: Optional[ProgressCallback] = None) -> TranscriptionResult:
        started = time.time()

        def report(value: float, status: str):
            if progress_callback:
                progress_callback(TranscriptionProgress(value, status, ProcessingPhase.TRANSCRIBING, start_time=started))

        if not audio_file.format.is_transcription_ready:
            raise VoxError(
                ErrorKind.TRANSCRIPTION_FAILED,
                f"on-device recognizer cannot read {audio_file.format.codec} audio ({audio_file.path})",
            )

        audio_path = str(audio_file.readable_path)
        logger.info(f"Requesting Whisper ({self.model_size}) for {audio_path}...")
        report(0.0, f"Loading Whisper {self.model_size}")

        def loader():
            return whisper.load_model(self.model_size, device=self.device)

        key = ModelKey(ModelType.WHISPER, self.model_size, self.device)
        try:
            model = self.orchestrator.request_model(key, loader)
        except (RuntimeError, OSError, ValueError) as e:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"could not load Whisper {self.model_size}: {e}") from e

        report(0.1, "Recognizing speech")
        try:
            raw = model.transcribe(
                audio_path,
                fp16=(self.device == "cuda"),
                word_timestamps=True,
                language=base_language_code(language),
                verbose=None,
            )
        except ValueError as e:
            # whisper raises ValueError for languages it does not know
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"unsupported locale '{language}': {e}") from e
        except (RuntimeError, OSError) as e:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"on-device recognition failed for {audio_path}: {e}") from e

        segments = finalize_segments(self._segment(seg) for seg in raw.get("segments", []))
        text = raw.get("text", "").strip()
        if not text or not segments:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"no speech detected in {audio_file.path}")

        confidence = sum(s.confidence for s in segments) / len(segments)
        duration = audio_file.format.duration or segments[-1].end_time
        report(1.0, "Recognition complete")

        return TranscriptionResult(
            text=text,
            language=raw.get("language") or base_language_code(language) or "unknown",
            confidence=confidence,
            duration=duration,
            segments=segments,
            engine=self.engine,
            processing_time=time.time() - started,
            audio_format=audio_file.format,
        )

    @staticmethod
    def _segment(seg: dict) -> TranscriptionSegment:
        words = [
            WordTiming(
                word=w["word"].strip(),
                start_time=float(w["start"]),
                end_time=max(float(w["start"]), float(w["end"])),
                confidence=clamp_confidence(w.get("probability", 1.0)),
            )
            for w in seg.get("words", [])
        ]
        start = max(0.0, float(seg["start"]))
        return TranscriptionSegment(
            text=seg["text"].strip(),
            start_time=start,
            end_time=max(start, float(seg["end"])),
            # avg_logprob is a mean log-probability; exp() maps it back onto [0, 1]
            confidence=clamp_confidence(math.exp(seg.get("avg_logprob", 0.0))),
            words=words,
        )
