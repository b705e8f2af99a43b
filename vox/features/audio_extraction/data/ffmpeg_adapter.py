import json
import shutil
import subprocess
import logging
import time
from collections import deque
from pathlib import Path
from typing import Optional, Union

from vox.core.config.settings import settings
from vox.core.common.enums import ProcessingPhase
from vox.core.errors import ErrorKind, VoxError
from vox.core.temp_files.manager import TempFileManager
from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback, TranscriptionProgress
from ..domain.interfaces import IAudioExtractor
from ..domain.models import ExtractionConfig, validate_input_path
from . import ffmpeg_parser

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20

class FFmpegAdapter(IAudioExtractor):
    """
    External-process backend: probes with ffprobe, transcodes with ffmpeg and
    follows the `time=` markers on ffmpeg's stderr for progress.
    """
    name = "ffmpeg"

    def __init__(self, temp_files: Optional[TempFileManager] = None, config: Optional[ExtractionConfig] = None):
        self.temp_files = temp_files or TempFileManager()
        self.config = config or ExtractionConfig()

    def is_available(self) -> bool:
        return shutil.which(settings.FFMPEG_BINARY) is not None and shutil.which(settings.FFPROBE_BINARY) is not None

    def extract(self, input_path: Union[str, Path],
                progress_callback: Optional[ProgressCallback] = None) -> AudioFile:
        path = validate_input_path(input_path)
        started = time.time()

        def report(value: float, phase: ProcessingPhase, status: str):
            if progress_callback:
                progress_callback(TranscriptionProgress(value, status, phase, start_time=started))

        if not self.is_available():
            raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, "ffmpeg is not available on this system")

        report(0.0, ProcessingPhase.INITIALIZING, "Initializing FFmpeg extraction")

        probe = self._probe(path)
        if ffmpeg_parser.find_audio_stream(probe) is None:
            raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, f"{path} contains no audio track")
        report(0.05, ProcessingPhase.EXTRACTING, "Analyzing input file")

        output_path = self.temp_files.create_temporary_audio_file(self.config.extension)
        try:
            self._transcode(path, output_path, report)

            report(0.95, ProcessingPhase.EXTRACTING, "Finalizing audio file")
            audio_format = ffmpeg_parser.audio_format_from_probe(
                self._probe(output_path), file_size=output_path.stat().st_size
            )
            if audio_format is None:
                raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, f"ffmpeg produced no audio stream for {path}")
            if not audio_format.is_valid:
                raise VoxError(ErrorKind.AUDIO_FORMAT_VALIDATION_FAILED, f"{path}: {audio_format.validation_error}")
        except VoxError:
            self.temp_files.cleanup_file(output_path)
            raise
        except OSError as e:
            self.temp_files.cleanup_file(output_path)
            raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, f"{path}: {e}") from e
        except BaseException:
            # Raising progress sinks and interrupts still release the scratch file
            self.temp_files.cleanup_file(output_path)
            raise

        report(1.0, ProcessingPhase.EXTRACTING, "Audio extraction complete")
        logger.info(f"Extracted audio from {path.name}: {audio_format.description}")
        return AudioFile(path=path, format=audio_format, temporary_path=output_path)

    def _probe(self, path: Path) -> dict:
        cmd = [
            settings.FFPROBE_BINARY,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            "-show_format",
            str(path),
        ]
        try:
            completed = subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.config.probe_timeout_seconds,
            )
            return json.loads(completed.stdout or "{}")
        except subprocess.CalledProcessError as e:
            error_msg = (e.stderr or str(e)).strip()
            logger.error(f"ffprobe could not read {path}: {error_msg}")
            raise VoxError(ErrorKind.UNSUPPORTED_FORMAT, f"{path} could not be opened: {error_msg}") from e
        except subprocess.TimeoutExpired as e:
            raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, f"ffprobe timed out reading {path}") from e
        except json.JSONDecodeError as e:
            raise VoxError(ErrorKind.UNSUPPORTED_FORMAT, f"{path}: unreadable probe report") from e

    def _transcode(self, source: Path, output_path: Path, report):
        # -vn: drop video, -y: overwrite the reserved scratch file
        cmd = [
            settings.FFMPEG_BINARY,
            "-i", str(source),
            "-vn",
            "-acodec", self.config.codec,
            "-f", self.config.container,
            "-movflags", "+faststart",
            "-y",
            str(output_path),
        ]
        logger.info(f"Extracting audio: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except FileNotFoundError as e:
            raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, "ffmpeg is not available on this system") from e

        duration = None
        last_progress = 0.1
        tail = deque(maxlen=STDERR_TAIL_LINES)

        with process:
            try:
                report(last_progress, ProcessingPhase.EXTRACTING, "Extracting audio")

                # Text mode turns ffmpeg's carriage-return progress updates into separate lines
                for line in process.stderr:
                    line = line.strip()
                    if not line:
                        continue
                    tail.append(line)

                    if duration is None:
                        duration = ffmpeg_parser.parse_duration(line)
                        continue

                    position = ffmpeg_parser.parse_progress_time(line)
                    if position is not None and duration > 0:
                        value = 0.1 + min(1.0, position / duration) * 0.8
                        if value > last_progress:
                            last_progress = value
                            report(value, ProcessingPhase.EXTRACTING, f"Extracting audio ({value * 100:.0f}%)")

                return_code = process.wait()
            except BaseException:
                logger.warning(f"Stopping ffmpeg (pid {process.pid}) after an interrupted extraction")
                process.kill()
                raise

        if return_code != 0:
            error_msg = "\n".join(tail)
            logger.error(f"FFmpeg failed: {error_msg}")
            raise VoxError(
                ErrorKind.AUDIO_EXTRACTION_FAILED,
                f"FFmpeg extraction failed (exit code: {return_code}): {error_msg}",
            )
