# File: vox/core/errors.py

from enum import Enum, unique
from typing import Optional


@unique
class ErrorKind(str, Enum):
    INVALID_INPUT_FILE = "invalid_input_file"
    INVALID_OUTPUT_PATH = "invalid_output_path"
    UNSUPPORTED_FORMAT = "unsupported_format"
    AUDIO_EXTRACTION_FAILED = "audio_extraction_failed"
    AUDIO_FORMAT_VALIDATION_FAILED = "audio_format_validation_failed"
    INCOMPATIBLE_AUDIO_PROPERTIES = "incompatible_audio_properties"
    TRANSCRIPTION_FAILED = "transcription_failed"
    API_KEY_MISSING = "api_key_missing"
    NETWORK_ERROR = "network_error"
    RATE_LIMIT_ERROR = "rate_limit_error"
    OUTPUT_WRITE_FAILED = "output_write_failed"
    TEMPORARY_FILE_CREATION_FAILED = "temporary_file_creation_failed"
    PERMISSION_DENIED = "permission_denied"
    INSUFFICIENT_DISK_SPACE = "insufficient_disk_space"


_PREFIXES = {
    ErrorKind.INVALID_INPUT_FILE: "Invalid input file",
    ErrorKind.INVALID_OUTPUT_PATH: "Invalid output path",
    ErrorKind.UNSUPPORTED_FORMAT: "Unsupported format",
    ErrorKind.AUDIO_EXTRACTION_FAILED: "Audio extraction failed",
    ErrorKind.AUDIO_FORMAT_VALIDATION_FAILED: "Audio format validation failed",
    ErrorKind.INCOMPATIBLE_AUDIO_PROPERTIES: "Incompatible audio properties",
    ErrorKind.TRANSCRIPTION_FAILED: "Transcription failed",
    ErrorKind.API_KEY_MISSING: "API key missing",
    ErrorKind.NETWORK_ERROR: "Network error",
    ErrorKind.RATE_LIMIT_ERROR: "Rate limit exceeded",
    ErrorKind.OUTPUT_WRITE_FAILED: "Failed to write output",
    ErrorKind.TEMPORARY_FILE_CREATION_FAILED: "Failed to create temporary file",
    ErrorKind.PERMISSION_DENIED: "Permission denied",
    ErrorKind.INSUFFICIENT_DISK_SPACE: "Insufficient disk space",
}

TRANSIENT_KINDS = frozenset({ErrorKind.NETWORK_ERROR, ErrorKind.RATE_LIMIT_ERROR})


class VoxError(Exception):
    """
    The single error type raised across the pipeline.
    `kind` drives fallback and retry decisions; `context` names the offending
    path, provider or failing dimension.
    """

    def __init__(self, kind: ErrorKind, context: str, retry_after: Optional[float] = None):
        self.kind = kind
        self.context = context
        self.retry_after = retry_after
        super().__init__(self.message)

    @property
    def message(self) -> str:
        prefix = _PREFIXES[self.kind]
        if self.kind == ErrorKind.RATE_LIMIT_ERROR and self.retry_after is not None:
            prefix = f"{prefix} (retry after {self.retry_after:.1f}s)"
        return f"{prefix}: {self.context}"

    @property
    def is_transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS

    def __repr__(self) -> str:
        return f"VoxError(kind={self.kind.value!r}, context={self.context!r})"
