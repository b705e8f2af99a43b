import logging
from pathlib import Path
from typing import Optional, Union

from vox.core.common.enums import OutputFormat
from vox.features.transcription.domain.models import TranscriptionResult
from ..domain.interfaces import IFileWriter
from ..domain.models import (
    JSONFormattingOptions,
    SRTFormattingOptions,
    SuccessConfirmation,
    TextFormattingOptions,
)
from ..data.atomic_writer import AtomicFileWriter
from ..data.json_formatter import JSONFormatter
from ..data.srt_formatter import SRTFormatter
from ..data.text_formatter import TextFormatter
from .validator import OutputValidator

logger = logging.getLogger(__name__)

class OutputWriter:
    """
    Facade for the Output Feature.
    Renders a result, writes it atomically and reads it back for validation.
    """
    def __init__(self, file_writer: Optional[IFileWriter] = None, validator: Optional[OutputValidator] = None):
        self.file_writer = file_writer or AtomicFileWriter()
        self.validator = validator or OutputValidator()

    def render(self, result: TranscriptionResult, output_format: OutputFormat,
               text_options: Optional[TextFormattingOptions] = None,
               srt_options: Optional[SRTFormattingOptions] = None,
               json_options: Optional[JSONFormattingOptions] = None) -> str:
        if output_format == OutputFormat.SRT:
            return SRTFormatter(srt_options).format(result)
        if output_format == OutputFormat.JSON:
            return JSONFormatter(json_options).format(result)
        return TextFormatter(text_options).format(result)

    def write_content_safely(self, content: str, path: Union[str, Path]) -> int:
        return self.file_writer.write_content_safely(content, path)

    def write_transcription_result(self, result: TranscriptionResult, path: Union[str, Path],
                                   output_format: OutputFormat = OutputFormat.TXT,
                                   text_options: Optional[TextFormattingOptions] = None,
                                   srt_options: Optional[SRTFormattingOptions] = None,
                                   json_options: Optional[JSONFormattingOptions] = None) -> SuccessConfirmation:
        """
        Returns a confirmation carrying the validation report. A FAILED report
        means the bytes are on disk but must not be presented as a success.
        """
        content = self.render(result, output_format, text_options, srt_options, json_options)
        bytes_written = self.write_content_safely(content, path)

        target = Path(path).expanduser()
        report = self.validator.validate_output(result, target, output_format)
        confirmation = SuccessConfirmation(target, output_format, bytes_written, report)
        if confirmation.succeeded:
            logger.info(confirmation.message)
        else:
            logger.error(f"{confirmation.message}: {'; '.join(report.issues)}")
        return confirmation
