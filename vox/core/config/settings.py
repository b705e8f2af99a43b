# File: vox/core/config/settings.py

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional


class Settings:
    # --- Paths ---
    # vox/core/config/settings.py -> vox/core/config -> vox/core -> vox -> ROOT
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent.parent
    TEMP_DIR: Path = Path(os.getenv("VOX_TEMP_DIR", tempfile.gettempdir()))
    TEMP_FILE_PREFIX: str = "vox_audio_"

    # --- External Tools ---
    # Auto-detect ffmpeg/ffprobe or use env var
    FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY_PATH", shutil.which("ffmpeg") or "ffmpeg")
    FFPROBE_BINARY: str = os.getenv("FFPROBE_BINARY_PATH", shutil.which("ffprobe") or "ffprobe")

    # --- On-device Model ---
    WHISPER_MODEL_NAME: str = os.getenv("VOX_WHISPER_MODEL", "base")
    WHISPER_DEVICE: str = "cuda" if os.getenv("USE_CUDA", "false").lower() == "true" else "cpu"

    # --- Cloud Providers ---
    OPENAI_API_URL: str = os.getenv("VOX_OPENAI_API_URL", "https://api.openai.com/v1/audio/transcriptions")
    OPENAI_MODEL: str = "whisper-1"
    OPENAI_MAX_FILE_BYTES: int = 25 * 1024 * 1024

    REVAI_API_URL: str = os.getenv("VOX_REVAI_API_URL", "https://api.rev.ai/speechtotext/v1")
    REVAI_POLL_INTERVAL_SECONDS: float = 2.0
    REVAI_MAX_POLLS: int = 300

    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("VOX_HTTP_TIMEOUT", "120"))

    # --- Retry Policy ---
    MAX_RETRIES: int = int(os.getenv("VOX_MAX_RETRIES", "3"))
    RETRY_DELAY_SECONDS: float = 1.0
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    MAX_RETRY_DELAY_SECONDS: float = 60.0

    # --- Audio Format Policy ---
    SUPPORTED_CODECS = ("aac", "m4a", "mp4", "wav", "flac", "mp3", "opus", "vorbis")
    TRANSCRIPTION_INCOMPATIBLE_CODECS = ("opus", "vorbis")
    SUPPORTED_SAMPLE_RATES = (8000, 11025, 16000, 22050, 32000, 44100, 48000, 88200, 96000, 176400, 192000)
    SUPPORTED_CHANNEL_COUNTS = (1, 2, 4, 6, 8)
    MIN_BITRATE_BPS: int = 1000
    MAX_BITRATE_BPS: int = 2_000_000

    # Quality tiers: (min sample rate, min bit rate per channel)
    LOSSLESS_TIER = (96000, 256000)
    HIGH_TIER = (44100, 128000)
    MEDIUM_TIER = (22050, 64000)

    # Engine recommendation: (min sample rate, min quality score, confidence)
    ON_DEVICE_RECOMMENDATION = (44100, 0.7, 0.95)
    PRIMARY_CLOUD_RECOMMENDATION = (16000, 0.3, 0.85)
    SECONDARY_CLOUD_CONFIDENCE: float = 0.75

    # --- Output ---
    MAX_TEXT_LINE_LENGTH: int = 1000
    MIN_PLAUSIBLE_OUTPUT_BYTES: int = 10
    LOW_CONFIDENCE_THRESHOLD: float = 0.5
    DISK_SPACE_SAFETY_FACTOR: int = 2

    def api_key_for(self, provider: str, explicit: Optional[str] = None) -> Optional[str]:
        """
        Resolves a provider credential. An explicit key wins over the environment,
        and an empty string is treated the same as a missing one.
        """
        if explicit:
            return explicit

        env_names = {
            "openai": ("OPENAI_API_KEY", "VOX_OPENAI_API_KEY"),
            "revai": ("REVAI_API_KEY", "VOX_REVAI_API_KEY"),
        }.get(provider, ())

        for name in env_names:
            value = os.getenv(name)
            if value:
                return value
        return None

    def ensure_dirs(self):
        """Creates the scratch directory if it doesn't exist."""
        self.TEMP_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
