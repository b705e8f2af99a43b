import os
import shutil
import logging
from pathlib import Path
from typing import Union
from uuid import uuid4

from vox.core.config.settings import settings
from vox.core.errors import ErrorKind, VoxError
from ..domain.interfaces import IFileWriter

logger = logging.getLogger(__name__)

INVALID_FILENAME_CHARACTERS = set('<>:"|?*')

class AtomicFileWriter(IFileWriter):
    def write_content_safely(self, content: str, path: Union[str, Path]) -> int:
        """
        Writes to `.{name}.tmp.{hex}` beside the target, fsyncs, then renames over it.
        The target is either fully replaced or untouched; the temp file never survives.
        """
        target = self._validate_path(path)
        payload = content.encode("utf-8")
        directory = target.parent

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise VoxError(ErrorKind.OUTPUT_WRITE_FAILED, f"could not create directory {directory}: {e}") from e

        if not os.access(directory, os.W_OK):
            raise VoxError(ErrorKind.PERMISSION_DENIED, f"{directory} is not writable")

        free_bytes = shutil.disk_usage(directory).free
        required = len(payload) * settings.DISK_SPACE_SAFETY_FACTOR
        if free_bytes < required:
            raise VoxError(
                ErrorKind.INSUFFICIENT_DISK_SPACE,
                f"{directory}: need {required} bytes, {free_bytes} available",
            )

        temp_path = directory / f".{target.name}.tmp.{uuid4().hex}"
        try:
            with open(temp_path, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, target)
        except OSError as e:
            logger.error(f"Atomic write to {target} failed: {e}")
            raise VoxError(ErrorKind.OUTPUT_WRITE_FAILED, f"{target}: {e}") from e
        finally:
            if temp_path.exists():
                temp_path.unlink()

        logger.info(f"Wrote {len(payload)} bytes to {target}")
        return len(payload)

    @staticmethod
    def _validate_path(path: Union[str, Path]) -> Path:
        if path is None or str(path).strip() == "":
            raise VoxError(ErrorKind.INVALID_OUTPUT_PATH, "Empty path provided")

        target = Path(path).expanduser()
        if not target.name or target.name in (".", ".."):
            raise VoxError(ErrorKind.INVALID_OUTPUT_PATH, f"{path} does not name a file")

        bad = INVALID_FILENAME_CHARACTERS.intersection(target.name)
        if bad:
            raise VoxError(
                ErrorKind.INVALID_OUTPUT_PATH,
                f"{target.name} contains invalid characters: {''.join(sorted(bad))}",
            )

        if target.is_dir():
            raise VoxError(ErrorKind.INVALID_OUTPUT_PATH, f"{target} is a directory")
        return target
