from unittest.mock import patch

import pytest

from vox.core.common.enums import FallbackAPI, TranscriptionEngine
from vox.core.errors import ErrorKind, VoxError
from vox.features.audio_format.domain.models import AudioFile, AudioFormat
from vox.features.transcription.domain.interfaces import ITranscriber
from vox.features.transcription.service.manager import (
    ManagerState,
    RetryPolicy,
    TranscriptionConfig,
    TranscriptionManager,
)

SLEEP = "vox.features.transcription.service.manager.time.sleep"


class FakeEngine(ITranscriber):
    """Plays back a script of outcomes: VoxError instances are raised, anything else returned."""

    def __init__(self, engine, outcomes, available=True):
        self.engine = engine
        self.outcomes = list(outcomes)
        self.available = available
        self.calls = []

    def is_available(self):
        return self.available

    def transcribe(self, audio_file, language=None, progress_callback=None):
        self.calls.append(language)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, VoxError):
            raise outcome
        return outcome


class CloudFactory:
    def __init__(self, engines):
        self.engines = engines
        self.requested = []

    def __call__(self, provider, api_key):
        self.requested.append((provider, api_key))
        return self.engines[provider]


@pytest.fixture(autouse=True)
def no_env_keys(monkeypatch):
    for name in ("OPENAI_API_KEY", "VOX_OPENAI_API_KEY", "REVAI_API_KEY", "VOX_REVAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def opus_audio(tmp_path):
    path = tmp_path / "voice.opus"
    path.write_bytes(b"\x00" * 16)
    return AudioFile(path=path, format=AudioFormat.validated("opus", 48000, 1, 3.0, 64000), temporary_path=path)


def network_error():
    return VoxError(ErrorKind.NETWORK_ERROR, "connection reset")


def test_on_device_success_never_touches_cloud(audio_file, make_result):
    """
    1. On-device engine succeeds on the first call.
    2. A fallback provider with a key is configured.
    3. The factory must never be asked for a cloud engine.
    """
    # 1. Arrange
    result = make_result()
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [result])
    factory = CloudFactory({})
    config = TranscriptionConfig(fallback_api=FallbackAPI.OPENAI, api_key="sk-test", language="en-US")
    manager = TranscriptionManager(config, on_device=local, cloud_factory=factory)

    # 2. Act
    returned = manager.transcribe(audio_file)

    # 3. Assert
    assert returned is result
    assert factory.requested == []
    assert local.calls == ["en-US"]
    assert manager.state == ManagerState.SUCCEEDED
    assert manager.history == [ManagerState.IDLE, ManagerState.ATTEMPTING, ManagerState.SUCCEEDED]


def test_on_device_failure_falls_back_to_designated_provider(audio_file, make_result):
    result = make_result(engine=TranscriptionEngine.REVAI)
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [VoxError(ErrorKind.TRANSCRIPTION_FAILED, "oom")])
    revai = FakeEngine(TranscriptionEngine.REVAI, [result])
    factory = CloudFactory({FallbackAPI.REVAI: revai})
    config = TranscriptionConfig(fallback_api=FallbackAPI.REVAI, api_key="r" * 24)

    returned = TranscriptionManager(config, on_device=local, cloud_factory=factory).transcribe(audio_file)

    assert returned.engine == TranscriptionEngine.REVAI
    assert factory.requested == [(FallbackAPI.REVAI, "r" * 24)]
    assert len(local.calls) == 1


def test_on_device_failure_is_not_retried(audio_file):
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [network_error(), network_error()])
    manager = TranscriptionManager(TranscriptionConfig(), on_device=local, cloud_factory=CloudFactory({}))

    with patch(SLEEP) as sleep, pytest.raises(VoxError) as exc:
        manager.transcribe(audio_file)

    assert exc.value.kind == ErrorKind.NETWORK_ERROR
    assert len(local.calls) == 1
    sleep.assert_not_called()
    assert manager.state == ManagerState.FAILED


def test_transient_cloud_errors_are_retried_with_backoff(audio_file, make_result):
    """
    Two network errors then success: two sleeps following the exponential schedule.
    """
    # 1. Arrange
    result = make_result(engine=TranscriptionEngine.OPENAI)
    cloud = FakeEngine(TranscriptionEngine.OPENAI, [network_error(), network_error(), result])
    config = TranscriptionConfig(force_cloud=True, api_key="sk-test")
    policy = RetryPolicy(max_retries=3, base_delay=1.0, multiplier=2.0, max_delay=60.0)
    manager = TranscriptionManager(config, cloud_factory=CloudFactory({FallbackAPI.OPENAI: cloud}),
                                   retry_policy=policy)

    # 2. Act
    with patch(SLEEP) as sleep:
        returned = manager.transcribe(audio_file)

    # 3. Assert
    assert returned is result
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]
    assert manager.history == [
        ManagerState.IDLE,
        ManagerState.ATTEMPTING,
        ManagerState.RETRYING,
        ManagerState.RETRYING,
        ManagerState.SUCCEEDED,
    ]
    assert [a.succeeded for a in manager.attempts] == [False, False, True]


def test_retries_are_bounded(audio_file):
    cloud = FakeEngine(TranscriptionEngine.OPENAI, [network_error() for _ in range(10)])
    config = TranscriptionConfig(force_cloud=True, api_key="sk-test")
    manager = TranscriptionManager(config, cloud_factory=CloudFactory({FallbackAPI.OPENAI: cloud}),
                                   retry_policy=RetryPolicy(max_retries=2, base_delay=0.5))

    with patch(SLEEP) as sleep, pytest.raises(VoxError) as exc:
        manager.transcribe(audio_file)

    assert exc.value.kind == ErrorKind.NETWORK_ERROR
    assert len(cloud.calls) == 3
    assert sleep.call_count == 2
    assert manager.state == ManagerState.FAILED


def test_rate_limit_honours_retry_after(audio_file, make_result):
    limited = VoxError(ErrorKind.RATE_LIMIT_ERROR, "OpenAI", retry_after=7.0)
    cloud = FakeEngine(TranscriptionEngine.OPENAI, [limited, make_result()])
    config = TranscriptionConfig(force_cloud=True, api_key="sk-test")
    manager = TranscriptionManager(config, cloud_factory=CloudFactory({FallbackAPI.OPENAI: cloud}))

    with patch(SLEEP) as sleep:
        manager.transcribe(audio_file)

    sleep.assert_called_once_with(7.0)


def test_permanent_cloud_errors_are_not_retried(audio_file):
    cloud = FakeEngine(TranscriptionEngine.OPENAI, [VoxError(ErrorKind.API_KEY_MISSING, "Invalid OpenAI API key")])
    config = TranscriptionConfig(force_cloud=True, api_key="sk-test")
    manager = TranscriptionManager(config, cloud_factory=CloudFactory({FallbackAPI.OPENAI: cloud}))

    with patch(SLEEP) as sleep, pytest.raises(VoxError) as exc:
        manager.transcribe(audio_file)

    assert exc.value.kind == ErrorKind.API_KEY_MISSING
    sleep.assert_not_called()


def test_force_cloud_skips_on_device(audio_file, make_result):
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [make_result()])
    cloud = FakeEngine(TranscriptionEngine.OPENAI, [make_result(engine=TranscriptionEngine.OPENAI)])
    config = TranscriptionConfig(force_cloud=True, api_key="sk-test")
    manager = TranscriptionManager(config, on_device=local, cloud_factory=CloudFactory({FallbackAPI.OPENAI: cloud}))

    returned = manager.transcribe(audio_file)

    assert returned.engine == TranscriptionEngine.OPENAI
    assert local.calls == []


def test_force_cloud_without_key_is_api_key_missing(audio_file):
    factory = CloudFactory({})
    manager = TranscriptionManager(TranscriptionConfig(force_cloud=True), cloud_factory=factory)

    with pytest.raises(VoxError) as exc:
        manager.transcribe(audio_file)

    assert exc.value.kind == ErrorKind.API_KEY_MISSING
    assert "openai" in str(exc.value)
    assert factory.requested == []


def test_key_is_read_from_environment(audio_file, make_result, monkeypatch):
    monkeypatch.setenv("REVAI_API_KEY", "r" * 30)
    revai = FakeEngine(TranscriptionEngine.REVAI, [make_result()])
    factory = CloudFactory({FallbackAPI.REVAI: revai})
    config = TranscriptionConfig(force_cloud=True, fallback_api=FallbackAPI.REVAI)

    TranscriptionManager(config, cloud_factory=factory).transcribe(audio_file)

    assert factory.requested == [(FallbackAPI.REVAI, "r" * 30)]


def test_only_the_designated_provider_is_contacted(audio_file):
    openai = FakeEngine(TranscriptionEngine.OPENAI, [VoxError(ErrorKind.TRANSCRIPTION_FAILED, "boom")])
    revai = FakeEngine(TranscriptionEngine.REVAI, [])
    factory = CloudFactory({FallbackAPI.OPENAI: openai, FallbackAPI.REVAI: revai})
    config = TranscriptionConfig(fallback_api=FallbackAPI.OPENAI, api_key="sk-test")

    with pytest.raises(VoxError):
        TranscriptionManager(config, cloud_factory=factory).transcribe(audio_file)

    assert [p for p, _ in factory.requested] == [FallbackAPI.OPENAI]
    assert revai.calls == []


def test_on_device_error_surfaces_when_no_key_for_fallback(audio_file):
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [VoxError(ErrorKind.TRANSCRIPTION_FAILED, "model crashed")])
    config = TranscriptionConfig(fallback_api=FallbackAPI.OPENAI)

    with pytest.raises(VoxError) as exc:
        TranscriptionManager(config, on_device=local, cloud_factory=CloudFactory({})).transcribe(audio_file)

    assert exc.value.kind == ErrorKind.TRANSCRIPTION_FAILED
    assert "model crashed" in str(exc.value)


def test_unavailable_on_device_without_fallback(audio_file):
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [], available=False)

    with pytest.raises(VoxError) as exc:
        TranscriptionManager(TranscriptionConfig(), on_device=local, cloud_factory=CloudFactory({})).transcribe(audio_file)

    assert exc.value.kind == ErrorKind.TRANSCRIPTION_FAILED
    assert "no transcription engine available" in str(exc.value)


def test_incompatible_audio_without_fallback(opus_audio):
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [])

    with pytest.raises(VoxError) as exc:
        TranscriptionManager(TranscriptionConfig(), on_device=local, cloud_factory=CloudFactory({})).transcribe(opus_audio)

    assert exc.value.kind == ErrorKind.INCOMPATIBLE_AUDIO_PROPERTIES
    assert local.calls == []


def test_incompatible_audio_goes_straight_to_cloud(opus_audio, make_result):
    local = FakeEngine(TranscriptionEngine.ON_DEVICE, [])
    cloud = FakeEngine(TranscriptionEngine.OPENAI, [make_result(engine=TranscriptionEngine.OPENAI)])
    config = TranscriptionConfig(fallback_api=FallbackAPI.OPENAI, api_key="sk-test")

    returned = TranscriptionManager(
        config, on_device=local, cloud_factory=CloudFactory({FallbackAPI.OPENAI: cloud})
    ).transcribe(opus_audio)

    assert returned.engine == TranscriptionEngine.OPENAI
    assert local.calls == []


def test_delay_schedule_is_capped():
    policy = RetryPolicy(max_retries=5, base_delay=10.0, multiplier=3.0, max_delay=60.0)
    error = network_error()
    assert policy.delay_for(error, 1) == 10.0
    assert policy.delay_for(error, 2) == 30.0
    assert policy.delay_for(error, 3) == 60.0
    assert policy.delay_for(VoxError(ErrorKind.RATE_LIMIT_ERROR, "x", retry_after=500), 1) == 60.0
