# File: vox/features/audio_extraction/domain/models.py
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from vox.core.errors import ErrorKind, VoxError

SUPPORTED_CONTAINERS = (
    "mp4", "m4v", "mov", "mkv", "avi", "webm",
    "m4a", "mp3", "wav", "flac", "aac", "ogg", "opus",
)

@dataclass(frozen=True)
class ExtractionConfig:
    """
    Encoding parameters for the external-process backend.
    AAC in an MP4 container with faststart, the layout every engine accepts.
    """
    codec: str = "aac"
    container: str = "mp4"
    extension: str = "m4a"
    probe_timeout_seconds: float = 30.0


def validate_input_path(input_path: Union[str, Path]) -> Path:
    """
    Input checks shared by every backend, run in order and stopping at the first failure:
    existence, regular file, supported container extension.
    """
    if input_path is None or str(input_path).strip() == "":
        raise VoxError(ErrorKind.INVALID_INPUT_FILE, "'' does not exist (empty path)")

    path = Path(input_path).expanduser()
    if not path.exists():
        raise VoxError(ErrorKind.INVALID_INPUT_FILE, f"{path} does not exist")

    if not path.is_file():
        raise VoxError(ErrorKind.INVALID_INPUT_FILE, f"{path} is not a regular file")

    extension = path.suffix.lower().lstrip(".")
    if extension not in SUPPORTED_CONTAINERS:
        raise VoxError(
            ErrorKind.UNSUPPORTED_FORMAT,
            f"{path} has extension '.{extension}'; expected one of: {', '.join(SUPPORTED_CONTAINERS)}",
        )
    return path
