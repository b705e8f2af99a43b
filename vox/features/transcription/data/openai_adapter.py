# File: vox/features/transcription/data/openai_adapter.py
import math
import time
import logging
from typing import List, Optional

import httpx

from vox.core.config.settings import settings
from vox.core.common.enums import ProcessingPhase, TranscriptionEngine
from vox.core.errors import ErrorKind, VoxError
from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback, TranscriptionProgress
from ..domain.models import TranscriptionResult, TranscriptionSegment, WordTiming, base_language_code
from ..domain.segmentation import clamp_confidence, finalize_segments
from .cloud_base import CloudTranscriber, mime_type_for

logger = logging.getLogger(__name__)

class OpenAIWhisperAdapter(CloudTranscriber):
    """
    Cloud engine backed by the OpenAI audio transcription endpoint.
    """
    engine = TranscriptionEngine.OPENAI
    provider_name = "OpenAI"

    def __init__(self, api_key: Optional[str], client: Optional[httpx.Client] = None,
                 timeout: Optional[float] = None, endpoint: Optional[str] = None):
        super().__init__(api_key, client, timeout)
        self.endpoint = endpoint or settings.OPENAI_API_URL

    def key_is_well_formed(self, api_key: str) -> bool:
        return api_key.startswith("sk-") and len(api_key) > 3 and not any(c.isspace() for c in api_key)

    def transcribe(self, audio_file: AudioFile, language: Optional[str] = None,
                   progress_callback: Optional[ProgressCallback] = None) -> TranscriptionResult:
        started = time.time()
        api_key = self.validate_api_key()

        def report(value: float, status: str):
            if progress_callback:
                progress_callback(TranscriptionProgress(value, status, ProcessingPhase.TRANSCRIBING, start_time=started))

        path = audio_file.readable_path
        try:
            size = path.stat().st_size
        except OSError as e:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"cannot read audio for upload: {path}") from e
        if size > settings.OPENAI_MAX_FILE_BYTES:
            raise VoxError(
                ErrorKind.TRANSCRIPTION_FAILED,
                f"OpenAI: {path.name} is {size} bytes; the upload limit is {settings.OPENAI_MAX_FILE_BYTES} bytes",
            )

        data = {
            "model": settings.OPENAI_MODEL,
            "response_format": "verbose_json",
            "timestamp_granularities[]": ["segment", "word"],
        }
        code = base_language_code(language)
        if code:
            data["language"] = code

        logger.info(f"Uploading {path.name} ({size} bytes) to OpenAI")
        report(0.1, "Uploading audio to OpenAI")

        with open(path, "rb") as f:
            files = {"file": (path.name, f, mime_type_for(path))}
            response = self.send(lambda client: client.post(
                self.endpoint,
                headers={"Authorization": f"Bearer {api_key}"},
                data=data,
                files=files,
            ))

        report(0.9, "Processing OpenAI response")
        payload = self.parse_json(response)
        result = self._to_result(payload, audio_file, language, started)
        report(1.0, "OpenAI transcription complete")
        return result

    def _to_result(self, payload: dict, audio_file: AudioFile, language: Optional[str], started: float) -> TranscriptionResult:
        text = (payload.get("text") or "").strip()
        duration = float(payload.get("duration") or audio_file.format.duration or 0.0)
        words = [
            WordTiming(
                word=str(w.get("word", "")).strip(),
                start_time=float(w.get("start", 0.0)),
                end_time=max(float(w.get("start", 0.0)), float(w.get("end", 0.0))),
            )
            for w in payload.get("words") or []
        ]

        raw_segments = payload.get("segments") or []
        if raw_segments:
            segments = [self._segment(seg, words) for seg in raw_segments]
        elif text:
            segments = [TranscriptionSegment(text=text, start_time=0.0, end_time=duration, confidence=1.0, words=words)]
        else:
            segments = []

        segments = finalize_segments(segments)
        if not text and not segments:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"OpenAI returned no speech for {audio_file.path}")

        confidence = sum(s.confidence for s in segments) / len(segments) if segments else 0.0
        return TranscriptionResult(
            text=text or " ".join(s.text for s in segments),
            language=payload.get("language") or base_language_code(language) or "unknown",
            confidence=confidence,
            duration=duration,
            segments=segments,
            engine=self.engine,
            processing_time=time.time() - started,
            audio_format=audio_file.format,
        )

    @staticmethod
    def _segment(seg: dict, words: List[WordTiming]) -> TranscriptionSegment:
        start = max(0.0, float(seg.get("start", 0.0)))
        end = max(start, float(seg.get("end", start)))
        logprob = seg.get("avg_logprob")
        confidence = clamp_confidence(math.exp(logprob)) if logprob is not None else 1.0
        return TranscriptionSegment(
            text=str(seg.get("text", "")).strip(),
            start_time=start,
            end_time=end,
            confidence=confidence,
            words=[w for w in words if start <= w.start_time < end],
        )
