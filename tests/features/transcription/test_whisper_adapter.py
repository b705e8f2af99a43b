from unittest.mock import MagicMock, patch

import pytest

from vox.core.common.enums import TranscriptionEngine
from vox.core.errors import ErrorKind, VoxError
from vox.core.model_lifecycle.types import ModelKey, ModelType
from vox.features.audio_format.domain.models import AudioFile, AudioFormat
from vox.features.transcription.data.whisper_adapter import WhisperAdapter

WHISPER_OUTPUT = {
    "text": " Hello world. Second part.",
    "language": "en",
    "segments": [
        {
            "start": 0.0, "end": 1.0, "text": " Hello world.", "avg_logprob": -0.2,
            "words": [
                {"word": " Hello", "start": 0.0, "end": 0.4, "probability": 0.95},
                {"word": " world.", "start": 0.5, "end": 1.0, "probability": 0.85},
            ],
        },
        {"start": 3.5, "end": 4.5, "text": " Second part.", "avg_logprob": 0.0, "words": []},
    ],
}


@pytest.fixture
def model():
    fake = MagicMock()
    fake.transcribe.return_value = WHISPER_OUTPUT
    return fake


@pytest.fixture
def adapter(model):
    adapter = WhisperAdapter(model_size="tiny", device="cpu")
    adapter.orchestrator = MagicMock()
    adapter.orchestrator.request_model.return_value = model
    return adapter


def test_maps_whisper_output_to_result(adapter, model, audio_file):
    """
    1. The orchestrator hands back a fake model with canned output.
    2. Transcribe with a regional language tag.
    3. Base language code is passed down and segments are normalized.
    """
    # 1. Arrange
    updates = []

    # 2. Act
    result = adapter.transcribe(audio_file, language="en-US", progress_callback=updates.append)

    # 3. Assert
    key = adapter.orchestrator.request_model.call_args.args[0]
    assert key == ModelKey(ModelType.WHISPER, "tiny", "cpu")

    _, kwargs = model.transcribe.call_args
    assert kwargs["language"] == "en"
    assert kwargs["fp16"] is False
    assert kwargs["word_timestamps"] is True

    assert result.engine == TranscriptionEngine.ON_DEVICE
    assert result.text == "Hello world. Second part."
    assert [s.text for s in result.segments] == ["Hello world.", "Second part."]
    assert [w.word for w in result.segments[0].words] == ["Hello", "world."]
    assert result.segments[0].confidence == pytest.approx(0.8187, abs=0.001)
    assert result.segments[1].confidence == 1.0
    assert result.segments[1].speaker_id == "Speaker2"
    assert result.duration == audio_file.format.duration
    assert updates[-1].current_progress == 1.0


def test_silence_is_transcription_failure(adapter, model, audio_file):
    model.transcribe.return_value = {"text": "", "segments": []}

    with pytest.raises(VoxError) as exc:
        adapter.transcribe(audio_file)

    assert exc.value.kind == ErrorKind.TRANSCRIPTION_FAILED
    assert "no speech detected" in str(exc.value)


def test_unknown_language_is_transcription_failure(adapter, model, audio_file):
    model.transcribe.side_effect = ValueError("Unsupported language: xx")

    with pytest.raises(VoxError) as exc:
        adapter.transcribe(audio_file, language="xx-YY")

    assert "unsupported locale" in str(exc.value)


def test_model_load_failure_is_transcription_failure(adapter, audio_file):
    adapter.orchestrator.request_model.side_effect = RuntimeError("CUDA out of memory")

    with pytest.raises(VoxError) as exc:
        adapter.transcribe(audio_file)

    assert exc.value.kind == ErrorKind.TRANSCRIPTION_FAILED
    assert "could not load Whisper" in str(exc.value)


def test_incompatible_audio_never_loads_model(adapter, tmp_path):
    path = tmp_path / "voice.opus"
    path.write_bytes(b"\x00")
    opus = AudioFile(path=path, format=AudioFormat.validated("opus", 48000, 1, 1.0, 64000))

    with pytest.raises(VoxError):
        adapter.transcribe(opus)

    adapter.orchestrator.request_model.assert_not_called()


def test_availability_follows_known_model_names():
    with patch("vox.features.transcription.data.whisper_adapter.whisper.available_models",
               return_value=["tiny", "base"]):
        assert WhisperAdapter(model_size="tiny", device="cpu").is_available()
        assert not WhisperAdapter(model_size="gigantic", device="cpu").is_available()
