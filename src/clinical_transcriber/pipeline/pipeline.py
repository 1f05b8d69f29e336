"""
Transcription Pipeline

End-to-end orchestration of recording, transcription, document rendering,
saving and secure disposal of the source audio.
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
import logging
import threading

from clinical_transcriber.audit.audit_log import AuditLog
from clinical_transcriber.capture.audio_capture import AudioCapture
from clinical_transcriber.capture.audio_utils import AudioArtifact, RecordingSession
from clinical_transcriber.disposal.secure_delete import SecureDisposal
from clinical_transcriber.documents.cleaner import FillerWordCleaner
from clinical_transcriber.documents.store import TranscriptionStore
from clinical_transcriber.documents.templates import TemplateLibrary, render
from clinical_transcriber.pipeline.config import PipelineConfig, load_config
from clinical_transcriber.transcription.gcloud_client import GCloudTranscriber, StatusCallback

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one transcription run."""

    transcript: str
    document: str
    document_path: Path
    audio_disposed: bool


class Pipeline:
    """Record -> transcribe -> template -> clean -> save -> dispose.

    Components are created lazily and share one audit ledger.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        transcriber: GCloudTranscriber | None = None,
    ):
        """Initialize pipeline with configuration."""
        self.config = config or PipelineConfig()
        self.audit = AuditLog(self.config.paths.audit_log_dir)

        self._capture: AudioCapture | None = None
        self._transcriber = transcriber
        self._disposal: SecureDisposal | None = None
        self._store: TranscriptionStore | None = None
        self._templates: TemplateLibrary | None = None
        self._cleaner: FillerWordCleaner | None = None

    @classmethod
    def from_config(cls, config_path: str | Path) -> "Pipeline":
        """Create pipeline from config file."""
        return cls(load_config(config_path))

    @property
    def capture(self) -> AudioCapture:
        """Get or create audio capture component."""
        if self._capture is None:
            self._capture = AudioCapture(
                self.config.capture,
                audit=self.audit,
                recordings_dir=self.config.paths.recordings_dir,
            )
        return self._capture

    @property
    def transcriber(self) -> GCloudTranscriber:
        """Get or create the cloud transcriber."""
        if self._transcriber is None:
            self._transcriber = GCloudTranscriber(self.config.cloud, audit=self.audit)
        return self._transcriber

    @property
    def disposal(self) -> SecureDisposal:
        if self._disposal is None:
            self._disposal = SecureDisposal(self.audit, self.config.security)
        return self._disposal

    @property
    def store(self) -> TranscriptionStore:
        if self._store is None:
            self._store = TranscriptionStore(
                self.config.paths.transcriptions_dir, self.audit, self.disposal
            )
        return self._store

    @property
    def templates(self) -> TemplateLibrary:
        if self._templates is None:
            self._templates = TemplateLibrary(self.config.paths.templates_dir)
        return self._templates

    @property
    def cleaner(self) -> FillerWordCleaner:
        if self._cleaner is None:
            self._cleaner = FillerWordCleaner(self.config.cleaning.filler_words)
        return self._cleaner

    def start_recording(self) -> RecordingSession:
        """Start microphone capture."""
        return self.capture.start()

    def stop_recording(self) -> AudioArtifact | None:
        """Stop capture and return the finished audio file."""
        return self.capture.stop()

    def compose(
        self,
        transcript: str,
        patient: str,
        dob: str,
        template_name: str | None = None,
        clean: bool = False,
    ) -> str:
        """Build the document text for a transcript."""
        text = self.cleaner.clean(transcript) if clean else transcript
        if template_name is None:
            return text

        context = {
            "PATIENT": patient,
            "DOB": dob,
            "DATE": date.today().strftime("%m/%d/%Y"),
        }
        return render(self.templates.get(template_name).raw_text, text, context)

    def transcribe_recording(
        self,
        audio: AudioArtifact | str | Path,
        patient: str,
        dob: str,
        template_name: str | None = None,
        clean: bool = False,
        on_status: StatusCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PipelineResult:
        """Transcribe a recording, save the document, then dispose of the audio.

        If transcription fails the error propagates and the audio is kept so
        the caller can retry or discard it. An unknown ``template_name``
        raises KeyError before anything is uploaded.
        """
        patient = (patient or "").strip()
        dob = (dob or "").strip()
        if not patient:
            raise ValueError("Patient name is required before transcription")
        if not dob:
            raise ValueError("DOB is required before transcription")
        if template_name is not None:
            # Raises KeyError before any audio leaves the machine
            self.templates.get(template_name)

        audio_path = audio.path if isinstance(audio, AudioArtifact) else Path(audio)

        transcript = self.transcriber.transcribe(
            audio, patient, on_status=on_status, cancel_event=cancel_event
        )
        document = self.compose(transcript, patient, dob, template_name, clean)
        document_path = self.store.save_new(document, patient, dob)

        disposed = self.disposal.dispose(audio_path, patient)
        if not disposed and audio_path.exists():
            logger.warning("Audio %s was not securely disposed; see audit log", audio_path)

        return PipelineResult(
            transcript=transcript,
            document=document,
            document_path=document_path,
            audio_disposed=disposed,
        )

    def discard_recording(self, audio: AudioArtifact | str | Path, patient: str = "") -> bool:
        """Securely delete a recording without transcribing it."""
        path = audio.path if isinstance(audio, AudioArtifact) else Path(audio)
        return self.disposal.dispose(path, patient)

    def clean_text(self, text: str) -> str:
        return self.cleaner.clean(text)
