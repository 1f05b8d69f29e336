"""
Transcription Module

Google Cloud Speech-to-Text orchestration.
"""

from clinical_transcriber.transcription.transcript_types import JobStatus, TranscriptionJob
from clinical_transcriber.transcription.gcloud_client import (
    CloudConfig,
    GCloudTranscriber,
    TranscriptionTask,
    extract_transcript,
)

__all__ = [
    "JobStatus",
    "TranscriptionJob",
    "CloudConfig",
    "GCloudTranscriber",
    "TranscriptionTask",
    "extract_transcript",
]
