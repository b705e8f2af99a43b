from typing import Optional

from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback
from ..domain.models import TranscriptionResult
from ..data.whisper_adapter import WhisperAdapter
from .manager import TranscriptionConfig, TranscriptionManager

def build_manager(config: Optional[TranscriptionConfig] = None,
                  model_size: Optional[str] = None) -> TranscriptionManager:
    """
    A manager wired with the local Whisper engine and the default cloud adapters.
    """
    return TranscriptionManager(config=config, on_device=WhisperAdapter(model_size=model_size))

def transcribe_audio(audio_file: AudioFile, config: Optional[TranscriptionConfig] = None,
                     progress_callback: Optional[ProgressCallback] = None) -> TranscriptionResult:
    """
    Standalone API: transcribes already-extracted audio with the fallback chain.
    """
    return build_manager(config).transcribe(audio_file, progress_callback)
