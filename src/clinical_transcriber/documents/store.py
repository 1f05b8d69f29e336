"""
Transcription Store

Directory-backed storage for finished transcription documents.
"""

from datetime import datetime
from pathlib import Path
import logging
import re

from clinical_transcriber.audit.audit_log import AuditLog
from clinical_transcriber.disposal.secure_delete import SecureDisposal

logger = logging.getLogger(__name__)

SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9_-]+")


def sanitize_component(value: str | None) -> str:
    """Make a patient name or DOB safe for use in a file name."""
    if value is None or not value.strip():
        return "unknown"
    cleaned = SANITIZE_PATTERN.sub("_", value.strip())
    return cleaned or "unknown"


class TranscriptionStore:
    """Create, list, read and securely delete ``*.txt`` transcriptions."""

    def __init__(
        self,
        transcriptions_dir: str | Path,
        audit: AuditLog,
        disposal: SecureDisposal,
    ):
        self.directory = Path(transcriptions_dir)
        self.audit = audit
        self.disposal = disposal

    def generate_path(self, patient: str | None, dob: str | None) -> Path:
        """``<patient>_<dob>_<YYYYMMDD_HHMMSS>.txt`` in the store directory."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        name = f"{sanitize_component(patient)}_{sanitize_component(dob)}_{timestamp}"
        path = self.directory / f"{name}.txt"
        suffix = 1
        while path.exists():
            path = self.directory / f"{name}_{suffix}.txt"
            suffix += 1
        return path

    def save(self, path: str | Path, content: str, patient_ref: str = "") -> Path:
        """Write ``content`` (UTF-8), replacing any existing file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info("Saved transcription %s", path)
        self.audit.record("save_transcription", path, patient_ref, "Saved transcription")
        return path

    def save_new(self, content: str, patient: str, dob: str) -> Path:
        """Save under a freshly generated name."""
        return self.save(self.generate_path(patient, dob), content, patient)

    def load(self, path: str | Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def list_transcriptions(self) -> list[Path]:
        """Transcriptions, newest first."""
        if not self.directory.exists():
            return []
        files = [p for p in self.directory.glob("*.txt") if p.is_file()]
        files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        return files

    def delete(self, path: str | Path, patient_ref: str = "") -> bool:
        """Securely delete a transcription."""
        return self.disposal.dispose(path, patient_ref or "unknown")
