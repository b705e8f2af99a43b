from pathlib import Path
from typing import List, Optional, Union

from vox.core.temp_files.manager import TempFileManager
from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback
from ..domain.interfaces import IAudioExtractor
from ..data.ffmpeg_adapter import FFmpegAdapter
from ..data.native_adapter import NativeAudioAdapter

def default_extractors(temp_files: Optional[TempFileManager] = None) -> List[IAudioExtractor]:
    """
    Backends in preference order: in-process decoder first, ffmpeg second.
    """
    temp_files = temp_files or TempFileManager()
    return [NativeAudioAdapter(temp_files), FFmpegAdapter(temp_files)]

def run_extraction(input_path: Union[str, Path], backend: str = "ffmpeg",
                   progress_callback: Optional[ProgressCallback] = None) -> AudioFile:
    """
    Standalone API: extracts audio with one named backend, no fallback.
    The caller owns `temporary_path` on the returned AudioFile.
    """
    extractors = {e.name: e for e in default_extractors()}
    if backend not in extractors:
        raise ValueError(f"Unknown extraction backend '{backend}'. Choose from: {', '.join(extractors)}")

    return extractors[backend].extract(input_path, progress_callback)
