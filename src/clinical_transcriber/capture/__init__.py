"""
Audio Capture Module

Microphone recording to 16-bit PCM WAV files.
"""

from clinical_transcriber.capture.audio_capture import AudioCapture, CaptureConfig
from clinical_transcriber.capture.audio_utils import AudioArtifact, RecordingSession

__all__ = [
    "AudioCapture",
    "CaptureConfig",
    "AudioArtifact",
    "RecordingSession",
]
