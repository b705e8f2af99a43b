# File: vox/features/transcription/data/cloud_base.py
import logging
from abc import abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

import httpx

from vox.core.config.settings import settings
from vox.core.errors import ErrorKind, VoxError
from ..domain.interfaces import ITranscriber

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 1.0
ERROR_BODY_LIMIT = 500

MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "aac": "audio/mp4",
    "mp4": "audio/mp4",
    "flac": "audio/flac",
}


def mime_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower().lstrip("."), "application/octet-stream")


def parse_retry_after(value: Optional[str]) -> float:
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_SECONDS


class CloudTranscriber(ITranscriber):
    """
    Shared plumbing for HTTP speech APIs: credential shape checks and
    mapping of transport failures and HTTP statuses onto VoxError kinds.
    A single call is one attempt; retries belong to the TranscriptionManager.
    """
    provider_name: str = "cloud"

    def __init__(self, api_key: Optional[str], client: Optional[httpx.Client] = None,
                 timeout: Optional[float] = None):
        self.api_key = api_key
        self._client = client
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

    @abstractmethod
    def key_is_well_formed(self, api_key: str) -> bool:
        pass

    def is_available(self) -> bool:
        return bool(self.api_key) and self.key_is_well_formed(self.api_key)

    def validate_api_key(self) -> str:
        if not self.api_key:
            raise VoxError(ErrorKind.API_KEY_MISSING, f"{self.provider_name} API key not provided")
        if not self.key_is_well_formed(self.api_key):
            raise VoxError(ErrorKind.API_KEY_MISSING, f"{self.provider_name} API key is malformed")
        return self.api_key

    @contextmanager
    def client(self) -> Iterator[httpx.Client]:
        """Yields the injected client, or a short-lived one closed on exit."""
        if self._client is not None:
            yield self._client
            return
        with httpx.Client(timeout=self.timeout) as client:
            yield client

    def send(self, call: Callable[[httpx.Client], httpx.Response]) -> httpx.Response:
        with self.client() as client:
            try:
                response = call(client)
            except httpx.TimeoutException as e:
                raise VoxError(ErrorKind.NETWORK_ERROR, f"{self.provider_name}: request timed out") from e
            except httpx.TransportError as e:
                raise VoxError(ErrorKind.NETWORK_ERROR, f"{self.provider_name}: {e}") from e

        self.check_status(response)
        return response

    def check_status(self, response: httpx.Response):
        status = response.status_code
        if 200 <= status < 300:
            return

        body = response.text[:ERROR_BODY_LIMIT]
        logger.warning(f"{self.provider_name} returned HTTP {status}: {body}")

        if status == 429:
            raise VoxError(
                ErrorKind.RATE_LIMIT_ERROR,
                self.provider_name,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if status in (401, 403):
            raise VoxError(ErrorKind.API_KEY_MISSING, f"Invalid {self.provider_name} API key")
        if status == 413:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"{self.provider_name}: audio file too large for upload")
        raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"{self.provider_name} API error ({status}): {body}")

    def parse_json(self, response: httpx.Response) -> dict:
        try:
            payload = response.json()
        except ValueError as e:
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"{self.provider_name}: malformed response") from e
        if not isinstance(payload, dict):
            raise VoxError(ErrorKind.TRANSCRIPTION_FAILED, f"{self.provider_name}: unexpected response shape")
        return payload
