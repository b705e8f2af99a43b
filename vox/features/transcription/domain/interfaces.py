from abc import ABC, abstractmethod
from typing import Optional

from vox.core.common.enums import TranscriptionEngine
from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback
from .models import TranscriptionResult

class ITranscriber(ABC):
    """
    Contract for a speech-to-text engine.
    """
    engine: TranscriptionEngine

    @abstractmethod
    def transcribe(self, audio_file: AudioFile, language: Optional[str] = None,
                   progress_callback: Optional[ProgressCallback] = None) -> TranscriptionResult:
        """
        Transcribes the audio file.

        Args:
            audio_file: Extracted audio; engines read `audio_file.readable_path`.
            language: Optional BCP-47 / ISO-639 hint, e.g. "en" or "en-US".
            progress_callback: Receives snapshots in the `transcribing` phase.

        Returns:
            TranscriptionResult with segments ordered by start time.

        Raises:
            VoxError: transcription_failed, api_key_missing, network_error or rate_limit_error.
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this engine can be attempted at all (model present, credential shaped right)."""
        pass
