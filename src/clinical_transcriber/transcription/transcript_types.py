"""
Transcription Job Types

State model for a remote recognition job.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


STATUS_UPLOADING = "Uploading…"
STATUS_TRANSCRIBING = "Transcribing…"
STATUS_PROCESSING = "Processing result…"
STATUS_COMPLETED = "Completed"
STATUS_FAILED = "Failed"


class JobStatus(str, Enum):
    """Lifecycle of a TranscriptionJob."""

    UPLOADING = "uploading"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.UPLOADING: {JobStatus.SUBMITTED, JobStatus.FAILED},
    JobStatus.SUBMITTED: {JobStatus.POLLING, JobStatus.FAILED},
    JobStatus.POLLING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


@dataclass
class TranscriptionJob:
    """One upload/recognize/delete cycle for a local audio file."""

    remote_object_id: str
    local_audio_ref: Path
    bucket: str = ""
    status: JobStatus = JobStatus.UPLOADING
    transcript_text: str | None = None
    error: str | None = None
    uploaded: bool = False
    remote_deleted: bool = False
    history: list[JobStatus] = field(default_factory=lambda: [JobStatus.UPLOADING])

    @property
    def remote_uri(self) -> str:
        """gs:// URI of the uploaded object."""
        return f"gs://{self.bucket}/{self.remote_object_id}"

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def is_closed(self) -> bool:
        """Terminal, and the remote copy (if any) has been deleted."""
        return self.is_terminal and (self.remote_deleted or not self.uploaded)

    def advance(self, status: JobStatus) -> None:
        """Move to ``status``; rejects transitions the state machine forbids."""
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(f"Invalid job transition {self.status.value} -> {status.value}")
        self.status = status
        self.history.append(status)

    def complete(self, text: str) -> None:
        self.advance(JobStatus.COMPLETED)
        self.transcript_text = text

    def fail(self, error: BaseException | str) -> None:
        if not self.is_terminal:
            self.advance(JobStatus.FAILED)
        self.error = str(error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "remote_object_id": self.remote_object_id,
            "local_audio_ref": str(self.local_audio_ref),
            "bucket": self.bucket,
            "status": self.status.value,
            "transcript_text": self.transcript_text,
            "error": self.error,
            "uploaded": self.uploaded,
            "remote_deleted": self.remote_deleted,
        }
