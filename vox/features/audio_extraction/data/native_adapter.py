import logging
import time
from pathlib import Path
from typing import Optional, Union

import librosa
import numpy as np
import soundfile as sf

from vox.core.config.settings import settings
from vox.core.common.enums import ProcessingPhase
from vox.core.errors import ErrorKind, VoxError
from vox.core.temp_files.manager import TempFileManager
from vox.features.audio_format.domain.models import AudioFile, AudioFormat
from vox.features.progress.domain.models import ProgressCallback, TranscriptionProgress
from ..domain.interfaces import IAudioExtractor
from ..domain.models import validate_input_path

logger = logging.getLogger(__name__)

# Containers libsndfile decodes in-process; anything else goes to the ffmpeg backend
NATIVE_CONTAINERS = ("wav", "flac", "ogg", "mp3")
PCM_BITS = 16
PCM_FALLBACK_SAMPLE_RATE = 48000

class NativeAudioAdapter(IAudioExtractor):
    """
    In-process backend: decodes with librosa at the source sample rate,
    keeps the channel layout where the PCM bit rate allows it and writes
    16-bit PCM WAV.
    """
    name = "native"

    def __init__(self, temp_files: Optional[TempFileManager] = None):
        self.temp_files = temp_files or TempFileManager()

    def is_available(self) -> bool:
        return True

    def extract(self, input_path: Union[str, Path],
                progress_callback: Optional[ProgressCallback] = None) -> AudioFile:
        path = validate_input_path(input_path)
        started = time.time()

        def report(value: float, phase: ProcessingPhase, status: str):
            if progress_callback:
                progress_callback(TranscriptionProgress(value, status, phase, start_time=started))

        extension = path.suffix.lower().lstrip(".")
        if extension not in NATIVE_CONTAINERS:
            raise VoxError(
                ErrorKind.UNSUPPORTED_FORMAT,
                f"{path}: native decoder cannot open .{extension} containers (expected {', '.join(NATIVE_CONTAINERS)})",
            )

        report(0.0, ProcessingPhase.INITIALIZING, "Opening audio file")
        samples, sample_rate = self._decode(path)
        channels = 1 if samples.ndim == 1 else samples.shape[0]
        frame_count = samples.shape[-1]
        if frame_count == 0:
            raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, f"{path} contains no decodable audio track")
        report(0.6, ProcessingPhase.EXTRACTING, "Audio decoded")

        samples, sample_rate, channels = self._fit_pcm_bit_rate(samples, int(sample_rate), int(channels))
        frame_count = samples.shape[-1]

        output_path = self.temp_files.create_temporary_audio_file("wav")
        try:
            # soundfile expects (frames, channels)
            sf.write(str(output_path), samples.T if samples.ndim > 1 else samples,
                     sample_rate, subtype="PCM_16", format="WAV")
            report(0.9, ProcessingPhase.EXTRACTING, "Audio written")

            audio_format = AudioFormat.validated(
                codec="wav",
                sample_rate=int(sample_rate),
                channels=int(channels),
                duration=frame_count / float(sample_rate),
                bit_rate=int(sample_rate) * int(channels) * PCM_BITS,
                file_size=output_path.stat().st_size,
            )
            if not audio_format.is_valid:
                raise VoxError(ErrorKind.AUDIO_FORMAT_VALIDATION_FAILED, f"{path}: {audio_format.validation_error}")
        except VoxError:
            self.temp_files.cleanup_file(output_path)
            raise
        except (OSError, RuntimeError) as e:
            self.temp_files.cleanup_file(output_path)
            raise VoxError(ErrorKind.AUDIO_EXTRACTION_FAILED, f"{path}: could not write decoded audio: {e}") from e
        except BaseException:
            self.temp_files.cleanup_file(output_path)
            raise

        report(1.0, ProcessingPhase.EXTRACTING, "Audio extraction complete")
        logger.info(f"Decoded {path.name} natively: {audio_format.description}")
        return AudioFile(path=path, format=audio_format, temporary_path=output_path)

    def _decode(self, path: Path):
        try:
            samples, sample_rate = librosa.load(str(path), sr=None, mono=False)
        except Exception as e:
            logger.error(f"Native decode failed for {path}: {e}")
            raise VoxError(ErrorKind.UNSUPPORTED_FORMAT, f"{path} could not be decoded: {e}") from e
        return np.asarray(samples), sample_rate

    def _fit_pcm_bit_rate(self, samples, sample_rate: int, channels: int):
        """
        16-bit PCM of hi-res or multichannel sources exceeds the bit rate ceiling.
        Resample down to 48kHz first, then fold to mono if that is still not enough.
        """
        if sample_rate * channels * PCM_BITS <= settings.MAX_BITRATE_BPS:
            return samples, sample_rate, channels

        if sample_rate > PCM_FALLBACK_SAMPLE_RATE:
            logger.info(f"Resampling {sample_rate}Hz to {PCM_FALLBACK_SAMPLE_RATE}Hz to fit the PCM bit rate ceiling")
            samples = librosa.resample(samples, orig_sr=sample_rate, target_sr=PCM_FALLBACK_SAMPLE_RATE)
            sample_rate = PCM_FALLBACK_SAMPLE_RATE

        if sample_rate * channels * PCM_BITS > settings.MAX_BITRATE_BPS:
            logger.info(f"Downmixing {channels} channels to mono to fit the PCM bit rate ceiling")
            samples = librosa.to_mono(samples)
            channels = 1
        return samples, sample_rate, channels
