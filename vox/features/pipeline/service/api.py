from pathlib import Path
from typing import Optional, Union

from vox.core.common.enums import OutputFormat
from vox.core.temp_files.manager import TempFileManager
from vox.features.audio_extraction.service.api import default_extractors
from vox.features.output.domain.models import TextFormattingOptions
from vox.features.progress.data.memory_monitor import MemoryMonitor
from vox.features.progress.domain.models import ProgressCallback
from vox.features.transcription.service.api import build_manager
from vox.features.transcription.service.manager import TranscriptionConfig
from .orchestrator import PipelineOutcome, TranscriptionPipeline

def transcribe_file(input_path: Union[str, Path], output_path: Union[str, Path],
                    output_format: Union[OutputFormat, str] = OutputFormat.TXT,
                    config: Optional[TranscriptionConfig] = None,
                    progress_callback: Optional[ProgressCallback] = None) -> PipelineOutcome:
    """
    Standalone API: media file in, validated transcript on disk.
    Raises VoxError with the most specific failure encountered.
    """
    config = config or TranscriptionConfig()
    temp_files = TempFileManager()

    pipeline = TranscriptionPipeline(
        manager=build_manager(config),
        extractors=default_extractors(temp_files),
        temp_files=temp_files,
        progress_callback=progress_callback,
        memory_monitor=MemoryMonitor(),
    )
    text_options = TextFormattingOptions(include_timestamps=config.include_timestamps)
    return pipeline.run(input_path, output_path, OutputFormat(output_format), text_options=text_options)
