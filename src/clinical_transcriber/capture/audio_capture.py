"""
Audio Capture

Threaded microphone recorder that writes a 16-bit PCM WAV file on stop.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import logging
import threading

import numpy as np

from clinical_transcriber.audit.audit_log import AuditLog
from clinical_transcriber.capture.audio_utils import (
    AudioArtifact,
    RecordingSession,
    concatenate_blocks,
    write_wav,
)
from clinical_transcriber.exceptions import AlreadyActiveError, ResourceUnavailableError

logger = logging.getLogger(__name__)

SAMPLE_DTYPE = "int16"


def _sounddevice():
    """Import sounddevice on demand; it needs the PortAudio shared library."""
    import sounddevice as sd

    return sd


@dataclass
class CaptureConfig:
    """Configuration for audio capture."""

    sample_rate: int = 16000
    channels: int = 1
    bits_per_sample: int = 16
    chunk_duration_ms: int = 100
    stop_timeout_seconds: float = 2.0
    device: int | str | None = None  # None = default device

    @property
    def chunk_samples(self) -> int:
        """Number of frames read per block."""
        return int(self.sample_rate * self.chunk_duration_ms / 1000)


class AudioCapture:
    """Single-session microphone recorder.

    ``start`` opens the input device and hands it to a background thread
    that reads fixed-size blocks until the stop event is set. The thread
    owns the stream and the block buffer; when it exits it closes the
    device and writes the WAV file, so a device error mid-recording still
    leaves whatever was captured on disk.
    """

    def __init__(
        self,
        config: CaptureConfig | None = None,
        audit: AuditLog | None = None,
        recordings_dir: str | Path = "recordings",
    ):
        """Initialize audio capture."""
        self.config = config or CaptureConfig()
        if self.config.bits_per_sample != 16:
            raise ValueError("Only 16-bit PCM capture is supported")
        self.audit = audit
        self.recordings_dir = Path(recordings_dir)

        self._lock = threading.Lock()
        self._session: RecordingSession | None = None
        self._stream = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._last_artifact: AudioArtifact | None = None
        self._finalized_path: Path | None = None
        self._finalize_error: Exception | None = None

    @property
    def is_recording(self) -> bool:
        """Whether a session is active."""
        return self._session is not None

    @property
    def current_session(self) -> RecordingSession | None:
        return self._session

    @property
    def last_artifact(self) -> AudioArtifact | None:
        return self._last_artifact

    def _next_path(self) -> Path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = self.recordings_dir / f"recording_{timestamp}.wav"
        suffix = 1
        while path.exists():
            path = self.recordings_dir / f"recording_{timestamp}_{suffix}.wav"
            suffix += 1
        return path

    def _open_stream(self):
        try:
            sd = _sounddevice()
        except OSError as e:
            raise ResourceUnavailableError("Audio backend unavailable", e) from e

        try:
            sd.check_input_settings(
                device=self.config.device,
                channels=self.config.channels,
                dtype=SAMPLE_DTYPE,
                samplerate=self.config.sample_rate,
            )
            stream = sd.InputStream(
                samplerate=self.config.sample_rate,
                channels=self.config.channels,
                dtype=SAMPLE_DTYPE,
                blocksize=self.config.chunk_samples,
                device=self.config.device,
            )
        except (sd.PortAudioError, ValueError) as e:
            raise self._unsupported(e) from e

        try:
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            try:
                stream.close()
            except Exception as close_error:
                logger.warning("Failed to close input stream: %s", close_error)
            raise self._unsupported(e) from e
        return stream

    def _unsupported(self, cause: Exception) -> ResourceUnavailableError:
        return ResourceUnavailableError(
            f"Audio format not supported: {self.config.sample_rate} Hz, "
            f"{self.config.channels} ch, {SAMPLE_DTYPE}",
            cause,
        )

    def start(self) -> RecordingSession:
        """Start recording from the input device."""
        with self._lock:
            if self._session is not None:
                raise AlreadyActiveError("Recording already in progress")

            self.recordings_dir.mkdir(parents=True, exist_ok=True)
            stream = self._open_stream()

            session = RecordingSession(
                file_path=self._next_path(),
                sample_rate=self.config.sample_rate,
                channels=self.config.channels,
                bits_per_sample=self.config.bits_per_sample,
            )
            self._session = session
            self._stream = stream
            self._finalized_path = None
            self._finalize_error = None
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._record_loop,
                args=(stream, session, self._stop_event),
                name="AudioCapture",
                daemon=True,
            )
            self._thread.start()

        logger.info("Recording started: %s", session.file_path)
        if self.audit:
            self.audit.record("record_start", session.file_path, "", "Recording started")
        return session

    def _record_loop(
        self, stream, session: RecordingSession, stop_event: threading.Event
    ) -> None:
        """Read blocks until stopped, then close the device and write the file."""
        blocks: list[np.ndarray] = []
        frames = self.config.chunk_samples
        try:
            while not stop_event.is_set():
                data, overflowed = stream.read(frames)
                if overflowed:
                    logger.debug("Input overflow while recording %s", session.file_path)
                if len(data):
                    blocks.append(np.array(data, dtype=np.int16, copy=True))
        except Exception as e:
            logger.error("Error during recording: %s", e)
        finally:
            try:
                stream.stop()
                stream.close()
            except Exception as e:
                logger.warning("Failed to close input stream: %s", e)
            self._save_recording(blocks, session)

    def _save_recording(self, blocks: list[np.ndarray], session: RecordingSession) -> None:
        try:
            audio = concatenate_blocks(blocks, session.channels)
            write_wav(session.file_path, audio, session.sample_rate, session.channels)
            self._finalized_path = session.file_path
            logger.info(
                "Saved %d frames to %s", len(audio), session.file_path
            )
        except Exception as e:
            self._finalize_error = e
            logger.error("Failed to save recording %s: %s", session.file_path, e)

    def stop(self) -> AudioArtifact | None:
        """Stop recording and return the finalized audio file.

        With no active session this returns the previous artifact (or None
        if nothing was ever recorded), so repeated calls are harmless.
        """
        with self._lock:
            session = self._session
            if session is None:
                return self._last_artifact

            self._stop_event.set()
            thread = self._thread
            if thread is not None:
                thread.join(self.config.stop_timeout_seconds)
                if thread.is_alive():
                    logger.warning(
                        "Capture loop did not exit within %.1fs; aborting stream",
                        self.config.stop_timeout_seconds,
                    )
                    try:
                        self._stream.abort()
                    except Exception as e:
                        logger.warning("Failed to abort input stream: %s", e)
                    thread.join(self.config.stop_timeout_seconds)

            artifact = None
            failure = None
            if thread is not None and thread.is_alive():
                failure = "capture thread did not exit"
                logger.error(
                    "Capture thread for %s did not exit after abort; "
                    "the file may be incomplete and must be removed manually",
                    session.file_path,
                )
            elif self._finalized_path is not None and self._finalized_path.exists():
                artifact = AudioArtifact.from_file(self._finalized_path)
            else:
                failure = str(self._finalize_error or "recording was not finalized")
                logger.error("Recording %s was not finalized: %s", session.file_path, failure)

            self._session = None
            self._stream = None
            self._thread = None
            if artifact is not None:
                self._last_artifact = artifact

        logger.info("Recording stopped: %s", session.file_path)
        if self.audit:
            if failure is None:
                self.audit.record("record_stop", session.file_path, "", "Recording stopped")
            else:
                self.audit.record("record_failed", session.file_path, "", f"Error: {failure}")
                self.audit.record(
                    "record_stop", session.file_path, "", f"Recording stopped; audio not saved: {failure}"
                )
        return artifact

    def __enter__(self) -> "AudioCapture":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        sd = _sounddevice()

        devices = sd.query_devices()
        input_devices = []

        for i, device in enumerate(devices):
            if device["max_input_channels"] > 0:
                input_devices.append(
                    {
                        "index": i,
                        "name": device["name"],
                        "channels": device["max_input_channels"],
                        "sample_rate": device["default_samplerate"],
                    }
                )

        return input_devices
