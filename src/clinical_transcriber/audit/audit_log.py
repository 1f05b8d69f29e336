"""
Audit Log

Append-only CSV ledger of actions that touch patient audio and documents.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
import csv
import io
import logging
import threading

logger = logging.getLogger(__name__)

AUDIT_LOG_FILENAME = "audit_log.csv"
AUDIT_COLUMNS = ("timestamp", "action", "file", "patient", "details")


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def format_row(values) -> str:
    """Encode one ledger row.

    Fields containing a comma, quote, CR or LF are quoted with inner quotes
    doubled; everything else is written bare.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(["" if v is None else str(v) for v in values])
    return buffer.getvalue()


@dataclass(frozen=True)
class AuditEntry:
    """A single ledger row."""

    timestamp: str
    action: str
    subject_path: str = ""
    patient_ref: str = ""
    details: str = ""

    def to_row(self) -> str:
        """Encode as one CSV line (newline terminated)."""
        return format_row(
            (self.timestamp, self.action, self.subject_path, self.patient_ref, self.details)
        )

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> "AuditEntry":
        """Create from a csv.DictReader row."""
        return cls(
            timestamp=data.get("timestamp", ""),
            action=data.get("action", ""),
            subject_path=data.get("file", ""),
            patient_ref=data.get("patient", ""),
            details=data.get("details", ""),
        )


class AuditLog:
    """Thread-safe, append-only audit ledger.

    The file and its header are created on first use. Each record is
    written with a single ``write`` on a file opened in append mode while
    holding a lock, so concurrent callers never interleave partial rows.
    Write failures are logged and swallowed; auditing must never break the
    operation being audited.
    """

    def __init__(self, log_dir: str | Path, filename: str = AUDIT_LOG_FILENAME):
        self.log_dir = Path(log_dir)
        self.path = self.log_dir / filename
        self._lock = threading.Lock()

    def record(
        self,
        action: str,
        subject_path: str | Path | None = None,
        patient_ref: str | None = None,
        details: str | None = None,
    ) -> AuditEntry:
        """Append an entry stamped with the current UTC time."""
        entry = AuditEntry(
            timestamp=utc_timestamp(),
            action=action,
            subject_path="" if subject_path is None else str(subject_path),
            patient_ref=patient_ref or "",
            details=details or "",
        )
        self.append(entry)
        return entry

    def append(self, entry: AuditEntry) -> None:
        """Append a pre-built entry."""
        row = entry.to_row()
        with self._lock:
            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8", newline="") as f:
                    if f.tell() == 0:
                        row = format_row(AUDIT_COLUMNS) + row
                    f.write(row)
                    f.flush()
            except OSError as e:
                logger.error("Failed to write audit log %s: %s", self.path, e)

    def entries(self) -> list[AuditEntry]:
        """Read back every entry in the ledger, oldest first."""
        if not self.path.exists():
            return []
        with self._lock:
            with open(self.path, encoding="utf-8", newline="") as f:
                return [AuditEntry.from_dict(row) for row in csv.DictReader(f)]

    def actions(self) -> list[str]:
        """Action names in ledger order."""
        return [entry.action for entry in self.entries()]
