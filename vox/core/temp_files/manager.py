# File: vox/core/temp_files/manager.py

import os
import atexit
import logging
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Iterable, Iterator, List, Set
from uuid import uuid4

from vox.core.config.settings import settings
from vox.core.errors import ErrorKind, VoxError

logger = logging.getLogger(__name__)

class TempFileManager:
    """
    Process-wide registry of scratch audio files.
    Every constructor call returns the same instance so that all extractors
    share one authoritative record of what needs deleting.
    """
    _instance = None
    _lock = Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super(TempFileManager, cls).__new__(cls)
                cls._instance._files = set()
                cls._instance._registry_lock = Lock()
                cls._instance._exit_hook_installed = False
        return cls._instance

    def create_temporary_audio_file(self, extension: str = "m4a") -> Path:
        """
        Reserves a unique scratch path and registers it.
        The file is created empty (mode 0600) so no other caller can claim it.
        """
        directory = settings.TEMP_DIR
        path = directory / f"{settings.TEMP_FILE_PREFIX}{uuid4().hex}.{extension.lstrip('.')}"

        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            os.close(fd)
        except OSError as e:
            logger.error(f"Could not create temporary file {path}: {e}")
            raise VoxError(ErrorKind.TEMPORARY_FILE_CREATION_FAILED, f"{path}: {e}") from e

        self.register_temporary_file(path)
        logger.debug(f"Created temporary file: {path}")
        return path

    def register_temporary_file(self, path) -> None:
        with self._registry_lock:
            self._files.add(Path(path))
            if not self._exit_hook_installed:
                atexit.register(self.cleanup_all_files)
                self._exit_hook_installed = True

    def cleanup_file(self, path) -> bool:
        """
        Deletes a scratch file. A file that is already gone counts as cleaned up;
        only a failed removal returns False (and stays registered).
        """
        path = Path(path)
        with self._registry_lock:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to remove temporary file {path}: {e}")
                return False
            self._files.discard(path)
        return True

    def cleanup_files(self, paths: Iterable) -> List[Path]:
        """Best-effort bulk cleanup. Returns the paths that could not be removed."""
        return [Path(p) for p in paths if not self.cleanup_file(p)]

    def cleanup_all_files(self) -> List[Path]:
        failed = self.cleanup_files(self.managed_files())
        if failed:
            logger.warning(f"Failed to clean up {len(failed)} temporary files")
        else:
            logger.debug("All temporary files cleaned up")
        return failed

    def managed_files(self) -> Set[Path]:
        with self._registry_lock:
            return set(self._files)

    def managed_file_count(self) -> int:
        with self._registry_lock:
            return len(self._files)

    @contextmanager
    def temporary_file(self, extension: str = "m4a") -> Iterator[Path]:
        path = self.create_temporary_audio_file(extension)
        try:
            yield path
        finally:
            self.cleanup_file(path)
