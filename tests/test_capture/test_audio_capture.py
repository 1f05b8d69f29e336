"""
Tests for audio capture functionality.

Copyright (c) 2024 Cleansheet LLC
License: CC BY 4.0
"""

import threading
import time
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from clinical_transcriber.audit.audit_log import AuditLog
from clinical_transcriber.capture import audio_capture
from clinical_transcriber.capture.audio_capture import AudioCapture, CaptureConfig
from clinical_transcriber.exceptions import AlreadyActiveError, ResourceUnavailableError


class FakePortAudioError(Exception):
    pass


class FakeStream:
    """Input stream yielding constant blocks until stopped."""

    def __init__(
        self,
        fail_after: int | None = None,
        hang: bool = False,
        stuck: bool = False,
        start_error: Exception | None = None,
        **kwargs,
    ):
        self.kwargs = kwargs
        self.fail_after = fail_after
        self.hang = hang
        self.stuck = stuck
        self.start_error = start_error
        self.reads = 0
        self.started = False
        self.stopped = False
        self.closed = False
        self.aborted = threading.Event()
        self.released = threading.Event()

    def start(self):
        if self.start_error:
            raise self.start_error
        self.started = True

    def read(self, frames):
        if self.stuck:
            # Ignores abort; only the test can let it go
            self.released.wait(5)
            raise FakePortAudioError("Stream released")
        if self.hang:
            self.aborted.wait(5)
            raise FakePortAudioError("Stream aborted")
        if self.fail_after is not None and self.reads >= self.fail_after:
            raise FakePortAudioError("Device unplugged")
        self.reads += 1
        time.sleep(0.005)
        channels = self.kwargs.get("channels", 1)
        return np.full((frames, channels), 100, dtype=np.int16), False

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True

    def abort(self):
        self.aborted.set()


class FakeSoundDevice:
    """Stand-in for the sounddevice module."""

    PortAudioError = FakePortAudioError

    def __init__(self, check_error: Exception | None = None, **stream_kwargs):
        self.check_error = check_error
        self.stream_kwargs = stream_kwargs
        self.streams: list[FakeStream] = []

    def check_input_settings(self, **kwargs):
        if self.check_error:
            raise self.check_error

    def InputStream(self, **kwargs):
        stream = FakeStream(**self.stream_kwargs, **kwargs)
        self.streams.append(stream)
        return stream

    def query_devices(self):
        return [
            {"name": "Built-in Mic", "max_input_channels": 2, "default_samplerate": 48000.0},
            {"name": "Speakers", "max_input_channels": 0, "default_samplerate": 48000.0},
            {"name": "USB Mic", "max_input_channels": 1, "default_samplerate": 16000.0},
        ]


@pytest.fixture
def fake_sd(monkeypatch) -> FakeSoundDevice:
    sd = FakeSoundDevice()
    monkeypatch.setattr(audio_capture, "_sounddevice", lambda: sd)
    return sd


@pytest.fixture
def capture(tmp_path: Path, audit_log: AuditLog) -> AudioCapture:
    config = CaptureConfig(chunk_duration_ms=10, stop_timeout_seconds=1.0)
    return AudioCapture(config, audit=audit_log, recordings_dir=tmp_path / "recordings")


class TestCaptureConfig:
    """Tests for CaptureConfig class."""

    def test_default_config(self):
        """Test default capture configuration."""
        config = CaptureConfig()

        assert config.sample_rate == 16000
        assert config.channels == 1
        assert config.bits_per_sample == 16
        assert config.chunk_duration_ms == 100
        assert config.stop_timeout_seconds == 2.0
        assert config.device is None

    def test_chunk_samples_calculation(self):
        """Test calculation of samples per chunk."""
        config = CaptureConfig(sample_rate=16000, chunk_duration_ms=100)

        # 100ms at 16kHz = 1600 samples
        assert config.chunk_samples == 1600

    def test_unsupported_bit_depth(self):
        """Test only 16-bit capture is accepted."""
        with pytest.raises(ValueError):
            AudioCapture(CaptureConfig(bits_per_sample=24))


class TestAudioCapture:
    """Tests for AudioCapture class."""

    def test_initial_state(self, capture: AudioCapture):
        """Test capture is idle after construction."""
        assert capture.is_recording is False
        assert capture.current_session is None
        assert capture.last_artifact is None

    def test_stop_without_start(self, capture: AudioCapture, audit_log: AuditLog):
        """Test stop with nothing recorded returns None and audits nothing."""
        assert capture.stop() is None
        assert audit_log.entries() == []

    def test_start_stop_writes_wav(self, capture: AudioCapture, fake_sd: FakeSoundDevice):
        """Test a recording produces a 16-bit mono WAV file."""
        session = capture.start()
        assert capture.is_recording is True
        time.sleep(0.05)

        artifact = capture.stop()

        assert capture.is_recording is False
        assert artifact is not None
        assert artifact.path == session.file_path
        assert artifact.path.exists()
        assert artifact.sample_rate == 16000
        assert artifact.channels == 1
        assert artifact.bits_per_sample == 16
        assert artifact.byte_length == artifact.path.stat().st_size

        data, rate = sf.read(str(artifact.path), dtype="int16")
        assert rate == 16000
        assert len(data) > 0
        assert np.all(data == 100)

    def test_stream_opened_with_config(self, capture: AudioCapture, fake_sd: FakeSoundDevice):
        """Test the input stream is opened with the configured format."""
        capture.start()
        time.sleep(0.03)
        capture.stop()

        stream = fake_sd.streams[0]
        assert stream.kwargs["samplerate"] == 16000
        assert stream.kwargs["channels"] == 1
        assert stream.kwargs["dtype"] == "int16"
        assert stream.kwargs["blocksize"] == 160
        assert stream.started
        assert stream.stopped
        assert stream.closed

    def test_file_name_pattern(self, capture: AudioCapture, fake_sd: FakeSoundDevice):
        """Test recordings are named recording_<timestamp>.wav."""
        session = capture.start()
        time.sleep(0.03)
        capture.stop()

        assert session.file_path.name.startswith("recording_")
        assert session.file_path.suffix == ".wav"

    def test_start_twice_rejected(self, capture: AudioCapture, fake_sd: FakeSoundDevice):
        """Test a second start fails and leaves the first session running."""
        first = capture.start()

        with pytest.raises(AlreadyActiveError):
            capture.start()

        assert capture.is_recording is True
        assert capture.current_session is first
        assert len(fake_sd.streams) == 1

        artifact = capture.stop()
        assert artifact.path == first.file_path

    def test_stop_twice_returns_last(self, capture: AudioCapture, fake_sd: FakeSoundDevice):
        """Test repeated stop calls are harmless."""
        capture.start()
        artifact = capture.stop()

        assert capture.stop() == artifact
        assert capture.last_artifact == artifact

    def test_audit_entries(self, capture: AudioCapture, fake_sd: FakeSoundDevice, audit_log: AuditLog):
        """Test start and stop are audited."""
        session = capture.start()
        capture.stop()

        entries = audit_log.entries()
        assert [e.action for e in entries] == ["record_start", "record_stop"]
        assert entries[0].subject_path == str(session.file_path)

    def test_consecutive_sessions_get_distinct_files(
        self, capture: AudioCapture, fake_sd: FakeSoundDevice
    ):
        """Test two recordings in the same second do not overwrite each other."""
        first = capture.start()
        capture.stop()
        second = capture.start()
        capture.stop()

        assert first.file_path != second.file_path
        assert first.file_path.exists()
        assert second.file_path.exists()

    def test_context_manager(self, capture: AudioCapture, fake_sd: FakeSoundDevice):
        """Test with-statement starts and stops capture."""
        with capture:
            assert capture.is_recording is True

        assert capture.is_recording is False
        assert capture.last_artifact is not None

    def test_unsupported_format(self, capture: AudioCapture, monkeypatch):
        """Test a rejected device format raises ResourceUnavailableError."""
        sd = FakeSoundDevice(check_error=FakePortAudioError("Invalid sample rate"))
        monkeypatch.setattr(audio_capture, "_sounddevice", lambda: sd)

        with pytest.raises(ResourceUnavailableError, match="not supported"):
            capture.start()

        assert capture.is_recording is False
        assert sd.streams == []

    def test_stream_closed_when_start_fails(self, capture: AudioCapture, monkeypatch, audit_log: AuditLog):
        """Test a stream that cannot start is closed before the error is raised."""
        sd = FakeSoundDevice(start_error=FakePortAudioError("Device busy"))
        monkeypatch.setattr(audio_capture, "_sounddevice", lambda: sd)

        with pytest.raises(ResourceUnavailableError):
            capture.start()

        assert len(sd.streams) == 1
        assert sd.streams[0].closed is True
        assert capture.is_recording is False
        assert audit_log.entries() == []

    def test_backend_missing(self, capture: AudioCapture, monkeypatch):
        """Test a missing PortAudio library raises ResourceUnavailableError."""

        def missing():
            raise OSError("PortAudio library not found")

        monkeypatch.setattr(audio_capture, "_sounddevice", missing)

        with pytest.raises(ResourceUnavailableError):
            capture.start()
        assert capture.is_recording is False

    def test_device_error_keeps_captured_audio(self, capture: AudioCapture, monkeypatch):
        """Test a mid-recording device error still finalizes the file."""
        sd = FakeSoundDevice(fail_after=3)
        monkeypatch.setattr(audio_capture, "_sounddevice", lambda: sd)

        capture.start()
        time.sleep(0.1)
        artifact = capture.stop()

        assert artifact is not None
        data, _ = sf.read(str(artifact.path), dtype="int16")
        assert len(data) == 3 * capture.config.chunk_samples

    def test_stop_bounded_when_read_blocks(self, tmp_path: Path, monkeypatch):
        """Test stop aborts a blocked stream after the timeout."""
        sd = FakeSoundDevice(hang=True)
        monkeypatch.setattr(audio_capture, "_sounddevice", lambda: sd)
        capture = AudioCapture(
            CaptureConfig(stop_timeout_seconds=0.5), recordings_dir=tmp_path
        )

        capture.start()
        started = time.monotonic()
        artifact = capture.stop()
        elapsed = time.monotonic() - started

        assert elapsed < 3.0
        assert sd.streams[0].aborted.is_set()
        assert artifact is not None
        assert artifact.path.exists()

    def test_save_failure_audited(self, capture: AudioCapture, fake_sd: FakeSoundDevice, monkeypatch, audit_log: AuditLog):
        """Test a WAV write error returns None and is written to the ledger."""

        def disk_full(*args, **kwargs):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(audio_capture, "write_wav", disk_full)

        session = capture.start()
        time.sleep(0.03)
        artifact = capture.stop()

        assert artifact is None
        assert capture.last_artifact is None
        assert capture.is_recording is False

        entries = audit_log.entries()
        assert [e.action for e in entries] == ["record_start", "record_failed", "record_stop"]
        assert entries[1].subject_path == str(session.file_path)
        assert "No space left on device" in entries[1].details
        assert "audio not saved" in entries[2].details
        assert "No space left on device" in entries[2].details

    def test_thread_outliving_abort_logged(self, tmp_path: Path, monkeypatch, audit_log: AuditLog, caplog):
        """Test a capture thread that survives abort is reported at ERROR level."""
        sd = FakeSoundDevice(stuck=True)
        monkeypatch.setattr(audio_capture, "_sounddevice", lambda: sd)
        capture = AudioCapture(
            CaptureConfig(stop_timeout_seconds=0.1), audit=audit_log, recordings_dir=tmp_path
        )

        session = capture.start()
        try:
            with caplog.at_level("ERROR", logger=audio_capture.__name__):
                artifact = capture.stop()
        finally:
            sd.streams[0].released.set()

        assert artifact is None
        assert capture.is_recording is False
        errors = [r.getMessage() for r in caplog.records if r.levelname == "ERROR"]
        assert any("did not exit" in m and str(session.file_path) in m for m in errors)
        assert audit_log.actions() == ["record_start", "record_failed", "record_stop"]


class TestListDevices:
    """Tests for device listing."""

    def test_only_input_devices(self, fake_sd: FakeSoundDevice):
        """Test output-only devices are filtered out."""
        devices = AudioCapture.list_devices()

        assert [d["name"] for d in devices] == ["Built-in Mic", "USB Mic"]
        assert devices[0]["index"] == 0
        assert devices[1]["index"] == 2
        assert devices[1]["channels"] == 1
        assert devices[1]["sample_rate"] == 16000.0
