"""
Google Cloud Transcriber

Cloud Storage upload + Speech-to-Text long-running recognition.

The audio file is uploaded to a bucket, recognized as a long-running
operation that is polled on a fixed interval, and the uploaded object is
deleted afterwards whether recognition succeeded or not.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
import logging
import os
import threading

from google.cloud import speech
from google.cloud import storage

from clinical_transcriber.audit.audit_log import AuditLog
from clinical_transcriber.capture.audio_utils import AudioArtifact
from clinical_transcriber.exceptions import (
    AlreadyActiveError,
    NotFoundError,
    RemoteJobFailedError,
    ResourceUnavailableError,
)
from clinical_transcriber.transcription.transcript_types import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    STATUS_TRANSCRIBING,
    STATUS_UPLOADING,
    JobStatus,
    TranscriptionJob,
)

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]


@dataclass
class CloudConfig:
    """Google Cloud Storage + Speech-to-Text configuration."""

    bucket: str = "transcribe_bucket9788"
    language_code: str = "en-US"
    model: str = "medical_conversation"
    poll_interval_seconds: float = 5.0
    credentials_path: str | None = None

    @classmethod
    def from_env(cls) -> "CloudConfig":
        """Create configuration from environment variables."""
        defaults = cls()
        return cls(
            bucket=os.environ.get("TRANSCRIBER_GCS_BUCKET", defaults.bucket),
            language_code=os.environ.get("TRANSCRIBER_LANGUAGE_CODE", defaults.language_code),
            model=os.environ.get("TRANSCRIBER_MODEL", defaults.model),
            poll_interval_seconds=float(
                os.environ.get("TRANSCRIBER_POLL_INTERVAL", defaults.poll_interval_seconds)
            ),
            credentials_path=os.environ.get("GOOGLE_APPLICATION_CREDENTIALS"),
        )


def extract_transcript(response) -> str:
    """Join the top alternative of every result, one per line.

    Results with no alternatives or blank text are skipped.
    """
    try:
        results = list(response.results)
    except (AttributeError, TypeError) as e:
        raise RemoteJobFailedError("Malformed recognition response", e) from e

    lines = []
    for result in results:
        if not result.alternatives:
            continue
        text = result.alternatives[0].transcript.strip()
        if text:
            lines.append(text)
    return "\n".join(lines)


class TranscriptionTask:
    """Handle on a transcription running in a background thread."""

    def __init__(self, future: Future, cancel_event: threading.Event):
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Ask the poll loop to stop; the task then fails with RemoteJobFailedError."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> str:
        """Block for the transcript; re-raises the job's failure."""
        return self._future.result(timeout)

    def add_done_callback(self, fn: Callable[["TranscriptionTask"], None]) -> None:
        self._future.add_done_callback(lambda _: fn(self))


class GCloudTranscriber:
    """Upload, recognize, poll, and clean up one audio file at a time.

    Status text is pushed to ``on_status`` from the thread running the job.
    Every step that touches patient audio is written to the audit ledger.
    """

    def __init__(
        self,
        config: CloudConfig | None = None,
        audit: AuditLog | None = None,
        speech_client=None,
        storage_client=None,
    ):
        """Initialize the transcriber; clients are created lazily if not given."""
        self.config = config or CloudConfig()
        self.audit = audit
        self._speech_client = speech_client
        self._storage_client = storage_client
        self._busy = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._task: TranscriptionTask | None = None
        self.last_job: TranscriptionJob | None = None

    @property
    def speech_client(self):
        """Get or create the Speech-to-Text client."""
        if self._speech_client is None:
            try:
                if self.config.credentials_path:
                    self._speech_client = speech.SpeechClient.from_service_account_json(
                        self.config.credentials_path
                    )
                else:
                    self._speech_client = speech.SpeechClient()
            except Exception as e:
                raise ResourceUnavailableError("Failed to initialize Speech-to-Text client", e) from e
        return self._speech_client

    @property
    def storage_client(self):
        """Get or create the Cloud Storage client."""
        if self._storage_client is None:
            try:
                if self.config.credentials_path:
                    self._storage_client = storage.Client.from_service_account_json(
                        self.config.credentials_path
                    )
                else:
                    self._storage_client = storage.Client()
            except Exception as e:
                raise ResourceUnavailableError("Failed to initialize Cloud Storage client", e) from e
        return self._storage_client

    def _audit(self, action: str, subject, patient_ref: str, details: str) -> None:
        if self.audit:
            self.audit.record(action, subject, patient_ref, details)

    @staticmethod
    def _notifier(on_status: StatusCallback | None) -> StatusCallback:
        def notify(message: str) -> None:
            if on_status is None:
                return
            try:
                on_status(message)
            except Exception as e:
                logger.warning("Status callback failed: %s", e)

        return notify

    def build_recognition_config(self, artifact: AudioArtifact) -> speech.RecognitionConfig:
        """Recognition request parameters for ``artifact``."""
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=artifact.sample_rate,
            audio_channel_count=artifact.channels,
            language_code=self.config.language_code,
            model=self.config.model,
            enable_automatic_punctuation=True,
        )

    def transcribe(
        self,
        artifact: AudioArtifact | str | Path,
        patient_ref: str = "",
        on_status: StatusCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> str:
        """Transcribe a local audio file and return the transcript text.

        Raises:
            AlreadyActiveError: another job is running on this transcriber.
            NotFoundError: the audio file no longer exists.
            ResourceUnavailableError: the upload could not be performed.
            RemoteJobFailedError: the audio file is unreadable, or
                submission, polling, cancellation or result retrieval failed.
        """
        if not self._busy.acquire(blocking=False):
            raise AlreadyActiveError("A transcription job is already running")
        try:
            return self._transcribe(artifact, patient_ref, on_status, cancel_event)
        finally:
            self._busy.release()

    def _transcribe(self, artifact, patient_ref, on_status, cancel_event) -> str:
        notify = self._notifier(on_status)
        cancel_event = cancel_event or threading.Event()
        path = artifact.path if isinstance(artifact, AudioArtifact) else Path(artifact)

        job = TranscriptionJob(
            remote_object_id=path.name,
            local_audio_ref=path,
            bucket=self.config.bucket,
        )
        self.last_job = job

        # Uploading
        if not path.exists():
            error = NotFoundError(path)
            job.fail(error)
            self._audit("transcription_failed", path, patient_ref, f"Error: {error}")
            notify(STATUS_FAILED)
            raise error
        if not isinstance(artifact, AudioArtifact):
            try:
                artifact = AudioArtifact.from_file(path)
            except (RuntimeError, OSError) as e:
                job.fail(e)
                self._audit("transcription_failed", path, patient_ref, f"Unreadable audio: {e}")
                notify(STATUS_FAILED)
                raise RemoteJobFailedError(f"Cannot read audio file {path.name}", e) from e

        notify(STATUS_UPLOADING)
        try:
            blob = self._upload(job, artifact)
        except Exception as e:
            job.fail(e)
            self._audit("transcription_failed", path, patient_ref, f"Upload failed: {e}")
            notify(STATUS_FAILED)
            raise ResourceUnavailableError(
                f"Failed to upload {path.name} to gs://{self.config.bucket}", e
            ) from e
        self._audit("gcs_upload", path, patient_ref, "Uploaded to GCS")

        # Submitted -> Polling -> Completed | Failed
        try:
            text = self._recognize(job, artifact, notify, cancel_event)
        except BaseException as e:
            self._delete_remote(job, blob, patient_ref)
            job.fail(e)
            self._audit("transcription_failed", path, patient_ref, f"Error: {e}")
            notify(STATUS_FAILED)
            if isinstance(e, RemoteJobFailedError) or not isinstance(e, Exception):
                raise
            raise RemoteJobFailedError("Transcription failed", e) from e

        self._delete_remote(job, blob, patient_ref)
        job.complete(text)
        notify(STATUS_COMPLETED)
        logger.info("Transcribed %s (%d chars)", path.name, len(text))
        return text

    def _upload(self, job: TranscriptionJob, artifact: AudioArtifact):
        bucket = self.storage_client.bucket(self.config.bucket)
        blob = bucket.blob(job.remote_object_id)
        logger.info("Uploading %s to %s", artifact.path, job.remote_uri)
        blob.upload_from_filename(str(artifact.path), content_type="audio/wav")
        job.uploaded = True
        return blob

    def _recognize(
        self,
        job: TranscriptionJob,
        artifact: AudioArtifact,
        notify: StatusCallback,
        cancel_event: threading.Event,
    ) -> str:
        config = self.build_recognition_config(artifact)
        audio = speech.RecognitionAudio(uri=job.remote_uri)

        job.advance(JobStatus.SUBMITTED)
        notify(STATUS_TRANSCRIBING)
        logger.info("Starting STT job for %s", job.remote_uri)
        operation = self.speech_client.long_running_recognize(config=config, audio=audio)

        job.advance(JobStatus.POLLING)
        while not operation.done():
            if cancel_event.wait(self.config.poll_interval_seconds):
                self._cancel_operation(operation)
                raise RemoteJobFailedError("Transcription cancelled")
            notify(STATUS_TRANSCRIBING)

        notify(STATUS_PROCESSING)
        try:
            response = operation.result()
        except Exception as e:
            raise RemoteJobFailedError("Failed to get transcription result", e) from e
        logger.info("STT job complete for %s", job.remote_uri)
        return extract_transcript(response)

    @staticmethod
    def _cancel_operation(operation) -> None:
        try:
            operation.cancel()
        except Exception as e:
            logger.warning("Failed to cancel recognition operation: %s", e)

    def _delete_remote(self, job: TranscriptionJob, blob, patient_ref: str) -> None:
        """Best-effort delete of the uploaded object; outcome goes to the ledger."""
        try:
            blob.delete()
        except Exception as e:
            logger.error("Failed to delete %s: %s", job.remote_uri, e)
            self._audit(
                "gcs_delete_failed", job.remote_object_id, patient_ref, f"Error: {e}"
            )
            return
        job.remote_deleted = True
        self._audit(
            "gcs_delete", job.remote_object_id, patient_ref, "Deleted blob after transcription"
        )

    def transcribe_async(
        self,
        artifact: AudioArtifact | str | Path,
        patient_ref: str = "",
        on_status: StatusCallback | None = None,
    ) -> TranscriptionTask:
        """Run ``transcribe`` on a worker thread and return a cancellable handle."""
        if self._task is not None and not self._task.done():
            raise AlreadyActiveError("A transcription job is already running")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="Transcription")

        cancel_event = threading.Event()
        future = self._executor.submit(
            self.transcribe, artifact, patient_ref, on_status, cancel_event
        )
        self._task = TranscriptionTask(future, cancel_event)
        return self._task

    def shutdown(self) -> None:
        """Cancel any running task and stop the worker thread."""
        if self._task is not None:
            self._task.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
