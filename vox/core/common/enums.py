# File: vox/core/common/enums.py

from enum import Enum, unique

@unique
class TranscriptionEngine(str, Enum):
    ON_DEVICE = "on-device-whisper"
    OPENAI = "openai-whisper"
    REVAI = "rev-ai"

@unique
class FallbackAPI(str, Enum):
    OPENAI = "openai"
    REVAI = "revai"

    @property
    def engine(self) -> TranscriptionEngine:
        return TranscriptionEngine.OPENAI if self is FallbackAPI.OPENAI else TranscriptionEngine.REVAI

@unique
class OutputFormat(str, Enum):
    TXT = "txt"
    SRT = "srt"
    JSON = "json"

@unique
class ProcessingPhase(str, Enum):
    INITIALIZING = "initializing"
    EXTRACTING = "extracting"
    TRANSCRIBING = "transcribing"
    FORMATTING = "formatting"
    COMPLETE = "complete"
