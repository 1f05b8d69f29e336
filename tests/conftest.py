"""
Pytest Configuration and Shared Fixtures

Copyright (c) 2024 Cleansheet LLC
License: CC BY 4.0
"""

from pathlib import Path
from typing import Any, Callable

import numpy as np
import pytest
from google.cloud import speech

from clinical_transcriber.audit.audit_log import AuditLog
from clinical_transcriber.capture.audio_utils import AudioArtifact, write_wav
from clinical_transcriber.pipeline.config import PipelineConfig
from clinical_transcriber.transcription.gcloud_client import CloudConfig


# =============================================================================
# AUDIO FIXTURES
# =============================================================================


@pytest.fixture
def sample_rate() -> int:
    """Standard sample rate for tests."""
    return 16000


@pytest.fixture
def sample_frames(sample_rate: int) -> np.ndarray:
    """One second of a 440 Hz tone as int16 samples."""
    t = np.linspace(0, 1.0, sample_rate, endpoint=False)
    return (np.sin(2 * np.pi * 440 * t) * 8000).astype(np.int16)


@pytest.fixture
def make_wav(tmp_path: Path, sample_frames: np.ndarray, sample_rate: int) -> Callable[..., AudioArtifact]:
    """Factory writing a WAV file and returning its artifact."""

    def _make(name: str = "recording_20240101_120000.wav", frames: np.ndarray | None = None) -> AudioArtifact:
        path = tmp_path / "recordings" / name
        write_wav(path, sample_frames if frames is None else frames, sample_rate)
        return AudioArtifact.from_file(path)

    return _make


@pytest.fixture
def wav_artifact(make_wav) -> AudioArtifact:
    """A finished one-second recording."""
    return make_wav()


# =============================================================================
# AUDIT FIXTURES
# =============================================================================


@pytest.fixture
def audit_log(tmp_path: Path) -> AuditLog:
    """Audit ledger in a temporary directory."""
    return AuditLog(tmp_path / "audit_logs")


# =============================================================================
# TRANSCRIPT FIXTURES
# =============================================================================


@pytest.fixture
def sample_transcript_text() -> str:
    """Sample dictated transcript with disfluencies."""
    return (
        "Um, the patient, like, reported chest pain for two hours.\n"
        "Uh she you know denies shortness of breath.\n"
        "\n"
        "Plan: basically start aspirin."
    )


def make_response(*segments: Any) -> speech.LongRunningRecognizeResponse:
    """Build a recognition response.

    Each segment is a transcript string, a list of alternative strings, or
    None for a result with no alternatives.
    """
    results = []
    for segment in segments:
        if segment is None:
            alternatives = []
        elif isinstance(segment, str):
            alternatives = [speech.SpeechRecognitionAlternative(transcript=segment)]
        else:
            alternatives = [speech.SpeechRecognitionAlternative(transcript=s) for s in segment]
        results.append(speech.SpeechRecognitionResult(alternatives=alternatives))
    return speech.LongRunningRecognizeResponse(results=results)


@pytest.fixture
def recognition_response() -> speech.LongRunningRecognizeResponse:
    """Two-segment recognition response."""
    return make_response(
        " Patient reports chest pain. ",
        "No known drug allergies.",
    )


# =============================================================================
# GOOGLE CLOUD FAKES
# =============================================================================


class FakeBlob:
    def __init__(self, name: str, fail_upload: Exception | None = None, fail_delete: Exception | None = None):
        self.name = name
        self.data: bytes | None = None
        self.content_type: str | None = None
        self.deleted = False
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete

    def upload_from_filename(self, filename: str, content_type: str | None = None) -> None:
        if self.fail_upload:
            raise self.fail_upload
        self.data = Path(filename).read_bytes()
        self.content_type = content_type

    def delete(self) -> None:
        if self.fail_delete:
            raise self.fail_delete
        self.deleted = True


class FakeBucket:
    def __init__(self, name: str, **blob_kwargs):
        self.name = name
        self.blobs: dict[str, FakeBlob] = {}
        self._blob_kwargs = blob_kwargs

    def blob(self, name: str) -> FakeBlob:
        return self.blobs.setdefault(name, FakeBlob(name, **self._blob_kwargs))


class FakeStorageClient:
    def __init__(self, **blob_kwargs):
        self.buckets: dict[str, FakeBucket] = {}
        self._blob_kwargs = blob_kwargs

    def bucket(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket(name, **self._blob_kwargs))


class FakeOperation:
    """Long-running operation that reports done after ``polls_until_done`` checks."""

    def __init__(self, response=None, polls_until_done: int | None = 0, error: Exception | None = None):
        self.response = response
        self.polls_until_done = polls_until_done
        self.error = error
        self.done_calls = 0
        self.cancelled = False

    def done(self) -> bool:
        self.done_calls += 1
        if self.polls_until_done is None:
            return False
        return self.done_calls > self.polls_until_done

    def result(self, timeout=None):
        if self.error:
            raise self.error
        return self.response

    def cancel(self) -> bool:
        self.cancelled = True
        return True


class FakeSpeechClient:
    def __init__(self, operation: FakeOperation | None = None, submit_error: Exception | None = None):
        self.operation = operation or FakeOperation()
        self.submit_error = submit_error
        self.requests: list[dict[str, Any]] = []

    def long_running_recognize(self, config=None, audio=None):
        self.requests.append({"config": config, "audio": audio})
        if self.submit_error:
            raise self.submit_error
        return self.operation


@pytest.fixture
def storage_client() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def cloud_config() -> CloudConfig:
    """Cloud settings with a fast poll interval."""
    return CloudConfig(bucket="test-bucket", poll_interval_seconds=0.01)


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================


@pytest.fixture
def sample_config_dict(tmp_path: Path) -> dict[str, Any]:
    """Sample pipeline configuration dictionary."""
    return {
        "name": "test-pipeline",
        "version": "1.0.0",
        "paths": {
            "transcriptions_dir": str(tmp_path / "out"),
            "recordings_dir": str(tmp_path / "rec"),
            "audit_log_dir": str(tmp_path / "audit"),
            "templates_dir": str(tmp_path / "tpl"),
        },
        "capture": {
            "sample_rate": 8000,
            "chunk_duration_ms": 50,
        },
        "cloud": {
            "bucket": "my-bucket",
            "language_code": "en-GB",
            "poll_interval_seconds": 1.5,
        },
        "security": {
            "overwrite_passes": 5,
        },
        "cleaning": {
            "filler_words": ["um", "uh"],
        },
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, sample_config_dict: dict) -> Path:
    """Create a temporary config file."""
    import yaml

    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return config_path


@pytest.fixture
def pipeline_config(tmp_path: Path, cloud_config: CloudConfig) -> PipelineConfig:
    """Pipeline configuration rooted in a temporary directory."""
    config = PipelineConfig.from_base_dir(tmp_path)
    config.cloud = cloud_config
    return config
