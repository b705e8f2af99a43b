# File: vox/features/output/domain/models.py
from dataclasses import dataclass, field
from enum import Enum, unique
from pathlib import Path
from typing import Any, Dict, List

from vox.core.config.settings import settings
from vox.core.common.enums import OutputFormat

@unique
class TimestampFormat(str, Enum):
    HMS = "hms"                  # [01:23] or [01:02:03]
    SECONDS = "seconds"          # [83.5s]
    MILLISECONDS = "milliseconds"  # [83500ms]

@unique
class DateFormat(str, Enum):
    ISO8601 = "iso8601"
    TIMESTAMP = "timestamp"
    MILLISECONDS = "milliseconds"

@unique
class ValidationStatus(str, Enum):
    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"

    @property
    def severity(self) -> int:
        return {"passed": 0, "warning": 1, "failed": 2}[self.value]

@dataclass(frozen=True)
class TextFormattingOptions:
    include_timestamps: bool = False
    include_speaker_ids: bool = False
    include_confidence_scores: bool = False
    paragraph_break_threshold: float = 2.0
    timestamp_format: TimestampFormat = TimestampFormat.HMS
    confidence_threshold: float = settings.LOW_CONFIDENCE_THRESHOLD
    line_width: int = 80

@dataclass(frozen=True)
class SRTFormattingOptions:
    merge_sentences: bool = False
    max_block_duration: float = 7.0

@dataclass(frozen=True)
class JSONFormattingOptions:
    include_metadata: bool = True
    include_processing_stats: bool = True
    include_segment_details: bool = True
    include_audio_information: bool = True
    include_word_timings: bool = True
    include_confidence_scores: bool = True
    pretty_print: bool = True
    date_format: DateFormat = DateFormat.ISO8601

@dataclass
class DimensionResult:
    """Outcome of one validation dimension (format, encoding or integrity)."""
    status: ValidationStatus = ValidationStatus.PASSED
    issues: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def warn(self, issue: str):
        self.issues.append(issue)
        if self.status == ValidationStatus.PASSED:
            self.status = ValidationStatus.WARNING

    def fail(self, issue: str):
        self.issues.append(issue)
        self.status = ValidationStatus.FAILED

@dataclass(frozen=True)
class ValidationReport:
    path: Path
    format: OutputFormat
    format_compliance: DimensionResult
    encoding: DimensionResult
    integrity: DimensionResult

    @property
    def overall_status(self) -> ValidationStatus:
        dimensions = (self.format_compliance, self.encoding, self.integrity)
        return max((d.status for d in dimensions), key=lambda s: s.severity)

    @property
    def issues(self) -> List[str]:
        return self.format_compliance.issues + self.encoding.issues + self.integrity.issues

    @property
    def message(self) -> str:
        return {
            ValidationStatus.PASSED: "Output file passed all validation checks",
            ValidationStatus.WARNING: "Output file has warnings but is usable",
            ValidationStatus.FAILED: "Output file failed validation",
        }[self.overall_status]

@dataclass(frozen=True)
class SuccessConfirmation:
    path: Path
    format: OutputFormat
    bytes_written: int
    report: ValidationReport

    @property
    def succeeded(self) -> bool:
        return self.report.overall_status != ValidationStatus.FAILED

    @property
    def message(self) -> str:
        return f"{self.report.message}: {self.path} ({self.bytes_written} bytes, {self.format.value})"
