# File: vox/features/output/service/validator.py
import re
import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from vox.core.config.settings import settings
from vox.core.common.enums import OutputFormat
from vox.features.transcription.domain.models import TranscriptionResult
from ..domain.interfaces import IHasher
from ..domain.models import DimensionResult, ValidationReport
from ..data.hasher import SHA256Hasher

logger = logging.getLogger(__name__)

SRT_TIMESTAMP_LINE = re.compile(r"^\d{2}:\d{2}:\d{2},\d{3} --> \d{2}:\d{2}:\d{2},\d{3}$")
EXPECTED_JSON_KEYS = ("transcription", "metadata", "audioInformation", "processingStats", "segments")
ALLOWED_CONTROL_CHARACTERS = {"\n", "\r", "\t"}
INTEGRITY_SAMPLE_WORDS = 20
_NON_WORD = re.compile(r"[^\w]+", re.UNICODE)


def _tokens(text: str) -> List[str]:
    """Lower-cased word tokens with punctuation, quotes and escapes stripped."""
    tokens = (_NON_WORD.sub("", t).lower() for t in text.split())
    return [t for t in tokens if t]


def _searchable_text(content: str, output_format: OutputFormat) -> str:
    """JSON is searched through its decoded strings so escapes like \\t never glue words together."""
    if output_format != OutputFormat.JSON:
        return content
    try:
        document = json.loads(content)
    except ValueError:
        return content
    if not isinstance(document, dict):
        return content

    parts = []
    transcription = document.get("transcription")
    if isinstance(transcription, dict) and isinstance(transcription.get("text"), str):
        parts.append(transcription["text"])
    for segment in document.get("segments") or []:
        if isinstance(segment, dict) and isinstance(segment.get("text"), str):
            parts.append(segment["text"])
    return "\n".join(parts)


def _contains_in_order(haystack: List[str], needle: List[str]) -> bool:
    remaining = iter(haystack)
    return all(word in remaining for word in needle)


class OutputValidator:
    """
    Reads a written transcript back and grades it on format compliance,
    encoding and integrity. The overall status is the worst of the three.
    """
    def __init__(self, hasher: Optional[IHasher] = None):
        self.hasher = hasher or SHA256Hasher()

    def validate_output(self, result: TranscriptionResult, path: Union[str, Path],
                        output_format: OutputFormat) -> ValidationReport:
        path = Path(path)
        raw = path.read_bytes()

        encoding = DimensionResult()
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            encoding.fail(f"Invalid UTF-8 encoding at byte {e.start}")
            content = raw.decode("utf-8", errors="replace")
        else:
            if any(ord(c) < 32 and c not in ALLOWED_CONTROL_CHARACTERS for c in content):
                encoding.warn("Invalid control characters detected")

        checks = {
            OutputFormat.TXT: self._check_text,
            OutputFormat.SRT: self._check_srt,
            OutputFormat.JSON: self._check_json,
        }
        format_compliance = checks[output_format](content)
        integrity = self._check_integrity(result, path, raw, _searchable_text(content, output_format))

        report = ValidationReport(path, output_format, format_compliance, encoding, integrity)
        logger.info(f"Validated {path}: {report.overall_status.value}")
        for issue in report.issues:
            logger.debug(f"  {issue}")
        return report

    def _check_text(self, content: str) -> DimensionResult:
        check = DimensionResult()
        lines = content.splitlines()
        check.details = {"lineCount": len(lines), "characterCount": len(content)}

        if not content.strip():
            check.fail("Text content is empty")
            return check

        long_lines = [i for i, line in enumerate(lines, start=1) if len(line) > settings.MAX_TEXT_LINE_LENGTH]
        if long_lines:
            check.warn(f"{len(long_lines)} lines exceed {settings.MAX_TEXT_LINE_LENGTH} characters")
        return check

    def _check_srt(self, content: str) -> DimensionResult:
        check = DimensionResult()
        if not content.strip():
            check.fail("SRT content is empty")
            return check

        normalized = content.replace("\r\n", "\n").strip()
        blocks = [b for b in normalized.split("\n\n") if b.strip()]
        check.details = {"blockCount": len(blocks)}
        if not blocks:
            check.fail("No SRT blocks found")
            return check

        for expected, block in enumerate(blocks, start=1):
            lines = block.split("\n")
            if len(lines) < 3:
                check.warn(f"Block {expected} has fewer than 3 lines")
                continue
            if not lines[0].strip().isdigit():
                check.warn(f"Block {expected} has an invalid sequence number: {lines[0]!r}")
            elif int(lines[0]) != expected:
                check.warn(f"Block {expected} is numbered {int(lines[0])}; numbering must be sequential from 1")
            if not SRT_TIMESTAMP_LINE.match(lines[1].strip()):
                check.warn(f"Block {expected} has an invalid timestamp line: {lines[1]!r}")
        return check

    def _check_json(self, content: str) -> DimensionResult:
        check = DimensionResult()
        try:
            document = json.loads(content)
        except ValueError as e:
            check.fail(f"Invalid JSON: {e}")
            return check

        if not isinstance(document, dict):
            check.fail("JSON root is not an object")
            return check

        missing = [key for key in EXPECTED_JSON_KEYS if key not in document]
        check.details = {"keys": sorted(document.keys())}
        if missing:
            check.warn(f"Missing expected keys: {', '.join(missing)}")
        return check

    def _check_integrity(self, result: TranscriptionResult, path: Path, raw: bytes, content: str) -> DimensionResult:
        check = DimensionResult()
        size = len(raw)
        check.details = {"fileSize": size, "sha256": self.hasher.calculate_sha256(path)}

        if size == 0:
            check.fail("File is empty")
            return check
        if size < settings.MIN_PLAUSIBLE_OUTPUT_BYTES:
            check.warn(f"File size is suspiciously small: {size} bytes")

        # Word order survives wrapping, timestamps and SRT numbering
        expected = _tokens(result.text)[:INTEGRITY_SAMPLE_WORDS]
        if expected and not _contains_in_order(_tokens(content), expected):
            check.fail("Content appears corrupted - original text not found")
        return check
