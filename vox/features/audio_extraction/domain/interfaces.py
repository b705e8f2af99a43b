from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Callable, Optional, Union

from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback

ExtractionCompletion = Callable[[Optional[AudioFile], Optional[BaseException]], None]

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = Lock()


def _background_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="vox-extract")
        return _executor


class IAudioExtractor(ABC):
    """
    Contract for turning a media file into a decoded audio scratch file.
    """
    name: str = "extractor"

    @abstractmethod
    def extract(self, input_path: Union[str, Path],
                progress_callback: Optional[ProgressCallback] = None) -> AudioFile:
        """
        Validates the input, decodes its audio track and writes it to a scratch file.

        Args:
            input_path: Source media file.
            progress_callback: Receives non-decreasing progress snapshots.

        Returns:
            AudioFile with `temporary_path` set.

        Raises:
            VoxError: invalid_input_file, unsupported_format, audio_extraction_failed
            or audio_format_validation_failed.
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backend can run on this host at all."""
        pass

    def extract_audio(self, input_path: Union[str, Path],
                      progress_callback: Optional[ProgressCallback] = None,
                      completion: Optional[ExtractionCompletion] = None) -> Future:
        """
        Runs `extract` on a background worker.
        `completion(audio_file, error)` fires exactly once, on success or failure.
        """
        future = _background_executor().submit(self.extract, input_path, progress_callback)

        if completion is not None:
            def _finish(done: Future):
                error = done.exception()
                completion(None if error else done.result(), error)
            future.add_done_callback(_finish)

        return future
