# File: vox/features/transcription/service/manager.py
import time
import logging
from dataclasses import dataclass
from enum import Enum, unique
from typing import Callable, List, Optional

from vox.core.config.settings import settings
from vox.core.common.enums import FallbackAPI, TranscriptionEngine
from vox.core.errors import ErrorKind, VoxError
from vox.features.audio_format.domain.models import AudioFile
from vox.features.progress.domain.models import ProgressCallback
from ..domain.interfaces import ITranscriber
from ..domain.models import TranscriptionResult
from ..data.openai_adapter import OpenAIWhisperAdapter
from ..data.revai_adapter import RevAIAdapter

logger = logging.getLogger(__name__)

CloudFactory = Callable[[FallbackAPI, str], ITranscriber]

@unique
class ManagerState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

@dataclass(frozen=True)
class TranscriptionConfig:
    """
    Per-run options. `include_timestamps` only affects rendering.
    """
    force_cloud: bool = False
    language: Optional[str] = None
    fallback_api: Optional[FallbackAPI] = None
    api_key: Optional[str] = None
    include_timestamps: bool = False

@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = settings.MAX_RETRIES
    base_delay: float = settings.RETRY_DELAY_SECONDS
    multiplier: float = settings.RETRY_BACKOFF_MULTIPLIER
    max_delay: float = settings.MAX_RETRY_DELAY_SECONDS

    def delay_for(self, error: VoxError, retry_number: int) -> float:
        """Provider-suggested delay when present, otherwise exponential from `base_delay`."""
        if error.retry_after is not None:
            return min(self.max_delay, max(0.0, error.retry_after))
        return min(self.max_delay, self.base_delay * (self.multiplier ** (retry_number - 1)))

@dataclass(frozen=True)
class EngineAttempt:
    engine: TranscriptionEngine
    attempt: int
    error: Optional[VoxError] = None
    delay: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def default_cloud_factory(provider: FallbackAPI, api_key: str) -> ITranscriber:
    if provider == FallbackAPI.OPENAI:
        return OpenAIWhisperAdapter(api_key)
    return RevAIAdapter(api_key)


class TranscriptionManager:
    """
    Chooses and sequences transcription engines for one run.

    Idle -> Attempting(engine) -> Retrying(engine, n) -> Succeeded | Failed.
    The on-device engine gets one attempt. The designated cloud provider gets
    one attempt plus bounded retries for transient errors. No other provider
    is ever contacted.
    """
    def __init__(self, config: Optional[TranscriptionConfig] = None,
                 on_device: Optional[ITranscriber] = None,
                 cloud_factory: CloudFactory = default_cloud_factory,
                 retry_policy: Optional[RetryPolicy] = None):
        self.config = config or TranscriptionConfig()
        self.on_device = on_device
        self.cloud_factory = cloud_factory
        self.retry_policy = retry_policy or RetryPolicy()

        self.state = ManagerState.IDLE
        self.history: List[ManagerState] = [ManagerState.IDLE]
        self.attempts: List[EngineAttempt] = []

    @property
    def cloud_provider(self) -> Optional[FallbackAPI]:
        if self.config.fallback_api is not None:
            return self.config.fallback_api
        return FallbackAPI.OPENAI if self.config.force_cloud else None

    def transcribe(self, audio_file: AudioFile,
                   progress_callback: Optional[ProgressCallback] = None) -> TranscriptionResult:
        self._reset()
        last_error: Optional[VoxError] = None

        if not self.config.force_cloud:
            if self._on_device_usable(audio_file):
                try:
                    return self._run(self.on_device, audio_file, progress_callback, retry_transient=False)
                except VoxError as e:
                    logger.warning(f"On-device transcription failed: {e}")
                    last_error = e

        provider = self.cloud_provider
        if provider is not None:
            api_key = settings.api_key_for(provider.value, self.config.api_key)
            if api_key:
                engine = self.cloud_factory(provider, api_key)
                try:
                    return self._run(engine, audio_file, progress_callback, retry_transient=True)
                except VoxError as e:
                    logger.error(f"{provider.value} transcription failed: {e}")
                    last_error = e
            elif last_error is None:
                last_error = VoxError(
                    ErrorKind.API_KEY_MISSING,
                    f"no API key configured for {provider.value}",
                )

        self._transition(ManagerState.FAILED)
        raise last_error or self._nothing_attempted_error(audio_file)

    def _on_device_usable(self, audio_file: AudioFile) -> bool:
        if self.on_device is None:
            logger.info("No on-device engine configured")
            return False
        if not audio_file.format.is_transcription_ready:
            logger.info(f"Skipping on-device engine: {audio_file.format.codec} audio is not transcription-ready")
            return False
        if not self.on_device.is_available():
            logger.info("On-device engine is not available on this host")
            return False
        return True

    def _nothing_attempted_error(self, audio_file: AudioFile) -> VoxError:
        if not audio_file.format.is_transcription_ready:
            return VoxError(
                ErrorKind.INCOMPATIBLE_AUDIO_PROPERTIES,
                f"{audio_file.format.description} cannot be transcribed and no cloud fallback is configured",
            )
        return VoxError(
            ErrorKind.TRANSCRIPTION_FAILED,
            "no transcription engine available (on-device unavailable and no cloud fallback configured)",
        )

    def _run(self, engine: ITranscriber, audio_file: AudioFile,
             progress_callback: Optional[ProgressCallback], retry_transient: bool) -> TranscriptionResult:
        attempt = 0
        while True:
            attempt += 1
            self._transition(ManagerState.ATTEMPTING if attempt == 1 else ManagerState.RETRYING)
            logger.info(f"Transcribing with {engine.engine.value} (attempt {attempt})")

            try:
                result = engine.transcribe(audio_file, self.config.language, progress_callback)
            except VoxError as e:
                retries_used = attempt - 1
                if retry_transient and e.is_transient and retries_used < self.retry_policy.max_retries:
                    delay = self.retry_policy.delay_for(e, attempt)
                    self.attempts.append(EngineAttempt(engine.engine, attempt, e, delay))
                    logger.warning(f"{engine.engine.value} attempt {attempt} failed ({e}); retrying in {delay:.1f}s")
                    time.sleep(delay)
                    continue

                self.attempts.append(EngineAttempt(engine.engine, attempt, e))
                raise

            self.attempts.append(EngineAttempt(engine.engine, attempt))
            self._transition(ManagerState.SUCCEEDED)
            logger.info(f"Transcription succeeded with {engine.engine.value} in {result.processing_time:.2f}s")
            return result

    def _transition(self, state: ManagerState):
        self.state = state
        self.history.append(state)

    def _reset(self):
        self.state = ManagerState.IDLE
        self.history = [ManagerState.IDLE]
        self.attempts = []
