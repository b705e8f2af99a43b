# File: vox/features/transcription/data/revai_adapter.py
import json
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
from ..domain.segmentation import SENTENCE_TERMINATORS, clamp_confidence, finalize_segments
from .cloud_base import CloudTranscriber, mime_type_for

logger = logging.getLogger(__name__)

TRANSCRIPT_MEDIA_TYPE = "application/vnd.rev.transcript.v1.0+json"
MIN_KEY_LENGTH = 20

class RevAIAdapter(CloudTranscriber):
    """
    Cloud engine backed by Rev.ai's asynchronous job API:
    submit the media, poll the job, then fetch the JSON transcript.
    """
    engine = TranscriptionEngine.REVAI
    provider_name = "Rev.ai"

    def __init__(self, api_key: Optional[str], client: Optional[httpx.Client] = None,
                 timeout: Optional[float] = None, base_url: Optional[str] = None,
                 poll_interval: Optional[float] = None, max_polls: Optional[int] = None):
        super().__init__(api_key, client, timeout)
        self.base_url = (base_url or settings.REVAI_API_URL).rstrip("/")
        self.poll_interval = settings.REVAI_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_polls = max_polls or settings.REVAI_MAX_POLLS

    def key_is_well_formed(self, api_key: str) -> bool:
        return len(api_key) >= MIN_KEY_LENGTH and not any(c.isspace() for c in api_key)

    def transcribe(self, audio_file: AudioFile, language: Optional[str] = None,
                   progress_callback: Optional[ProgressCallback] = None) -> TranscriptionResult:
        started = time.time()
        api_key = self.validate_api_key()
        headers = {"Authorization": f"Bearer {api_key}"}

        def report(value: float, status: str):
            if progress_callback:
                progress_callback(TranscriptionProgress(value, status, ProcessingPhase.TRANSCRIBING, start_time=started))

        report(0.05, "Submitting audio to Rev.ai")
        job_id = self._submit(audio_file, language, headers)
        logger.info(f"Rev.ai job {job_id} submitted for {audio_file.path}")

        self._wait_for_job(job_id, headers, report)

        report(0.9, "Downloading Rev.ai transcript")
        response = self.send(lambda client: client.get(
            f"{self.base_url}/jobs/{job_id}/transcript",
            headers={**headers, "Accept": TRANSCRIPT_MEDIA_TYPE},
        ))
        transcript = self.parse_json(response)

        segments = finalize_segments(self._segments(transcript))
        if not segments:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"Rev.ai returned no speech for {audio_file.path}")

        report(1.0, "Rev.ai transcription complete")
        return TranscriptionResult(
            text=" ".join(s.text for s in segments),
            language=base_language_code(language) or "en",
            confidence=sum(s.confidence for s in segments) / len(segments),
            duration=audio_file.format.duration or segments[-1].end_time,
            segments=segments,
            engine=self.engine,
            processing_time=time.time() - started,
            audio_format=audio_file.format,
        )

    def _submit(self, audio_file: AudioFile, language: Optional[str], headers: dict) -> str:
        path = audio_file.readable_path
        options = {}
        code = base_language_code(language)
        if code:
            options["language"] = code

        try:
            media = open(path, "rb")
        except OSError as e:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"cannot read audio for upload: {path}") from e

        with media:
            response = self.send(lambda client: client.post(
                f"{self.base_url}/jobs",
                headers=headers,
                data={"options": json.dumps(options)},
                files={"media": (path.name, media, mime_type_for(path))},
            ))

        job = self.parse_json(response)
        if not job.get("id"):
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, "Rev.ai: job submission returned no job id")
        return str(job["id"])

    def _wait_for_job(self, job_id: str, headers: dict, report):
        for poll in range(self.max_polls):
            response = self.send(lambda client: client.get(f"{self.base_url}/jobs/{job_id}", headers=headers))
            job = self.parse_json(response)
            status = job.get("status")

            if status == "transcribed":
                return
            if status == "failed":
                detail = job.get("failure_detail") or job.get("failure") or "unknown failure"
                raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"Rev.ai job {job_id} failed: {detail}")

            report(min(0.85, 0.1 + 0.75 * (poll + 1) / self.max_polls), f"Rev.ai job {status or 'pending'}")
            time.sleep(self.poll_interval)

        raise VoxError(
            ErrorKind.TRANSCRIPTION_FAILED,
            f"Rev.ai job {job_id} did not finish after {self.max_polls} status checks",
        )

    @staticmethod
    def _segments(transcript: dict) -> List[TranscriptionSegment]:
        """Groups each monologue's words into sentence-sized segments."""
        segments = []
        for monologue in transcript.get("monologues") or []:
            speaker_id = f"Speaker{int(monologue.get('speaker', 0)) + 1}"
            parts, words = [], []

            def flush():
                text = "".join(parts).strip()
                if words and text:
                    segments.append(TranscriptionSegment(
                        text=text,
                        start_time=words[0].start_time,
                        end_time=words[-1].end_time,
                        confidence=sum(w.confidence for w in words) / len(words),
                        speaker_id=speaker_id,
                        words=list(words),
                    ))
                parts.clear()
                words.clear()

            for element in monologue.get("elements") or []:
                value = element.get("value", "")
                parts.append(value)
                if element.get("type") == "text":
                    start = max(0.0, float(element.get("ts", 0.0)))
                    words.append(WordTiming(
                        word=value.strip(),
                        start_time=start,
                        end_time=max(start, float(element.get("end_ts", start))),
                        confidence=clamp_confidence(element.get("confidence", 1.0)),
                    ))
                elif value.strip() in SENTENCE_TERMINATORS:
                    flush()
            flush()

        return segments
