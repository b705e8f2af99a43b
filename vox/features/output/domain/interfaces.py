from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from vox.features.transcription.domain.models import TranscriptionResult

class IOutputFormatter(ABC):
    @abstractmethod
    def format(self, result: TranscriptionResult) -> str:
        """Renders the result. Pure: no I/O, same input gives the same output."""
        pass

class IFileWriter(ABC):
    @abstractmethod
    def write_content_safely(self, content: str, path: Union[str, Path]) -> int:
        """
        Replaces `path` with `content` atomically.
        Returns: bytes written.
        """
        pass

class IHasher(ABC):
    @abstractmethod
    def calculate_sha256(self, file_path: Path) -> str:
        """Calculates the SHA256 hash of a file."""
        pass
