"""
Secure Disposal

Multi-pass random overwrite followed by deletion.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
import logging
import os
import secrets

from clinical_transcriber.audit.audit_log import AuditLog
from clinical_transcriber.exceptions import DisposalFailedError

logger = logging.getLogger(__name__)


@dataclass
class SecurityConfig:
    """Secure deletion settings."""

    overwrite_passes: int = 3
    chunk_size: int = 8192


class SecureDisposal:
    """Overwrite a file's bytes in place several times, then unlink it.

    Each pass rewrites the whole byte range from offset zero using fresh
    random chunks of at most ``chunk_size`` bytes and is fsynced before the
    next pass starts. Failures are audited, never raised.
    """

    def __init__(self, audit: AuditLog, config: SecurityConfig | None = None):
        self.audit = audit
        self.config = config or SecurityConfig()
        if self.config.overwrite_passes < 1:
            raise ValueError("overwrite_passes must be at least 1")
        if self.config.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

    @property
    def passes(self) -> int:
        return self.config.overwrite_passes

    def dispose(self, path: str | Path | None, patient_ref: str = "") -> bool:
        """Scrub and delete ``path``.

        Returns True when the file was overwritten and removed, False when
        there was nothing to delete or disposal failed (the failure is in
        the audit ledger).
        """
        if path is None:
            return False
        path = Path(path)
        if not path.exists():
            return False

        try:
            self._scrub(path)
        except DisposalFailedError as e:
            logger.error("%s", e)
            self.audit.record(
                "secure_delete_failed", path, patient_ref, f"Error: {e.cause or e}"
            )
            return False

        logger.info("Securely deleted %s (%d passes)", path, self.passes)
        self.audit.record(
            "secure_delete",
            path,
            patient_ref,
            f"Overwritten {self.passes} passes and deleted",
        )
        return True

    def _scrub(self, path: Path) -> None:
        try:
            size = path.stat().st_size
            for pass_number in range(self.passes):
                with self._open_for_overwrite(path) as f:
                    self._overwrite_pass(f, size)
                    self._sync(f)
                logger.debug("Overwrite pass %d/%d done for %s", pass_number + 1, self.passes, path)
            path.unlink()
        except OSError as e:
            raise DisposalFailedError(path, e) from e

    def _overwrite_pass(self, f: BinaryIO, size: int) -> None:
        f.seek(0)
        written = 0
        while written < size:
            chunk = secrets.token_bytes(min(self.config.chunk_size, size - written))
            f.write(chunk)
            written += len(chunk)

    def _open_for_overwrite(self, path: Path) -> BinaryIO:
        # r+b keeps the existing blocks instead of truncating to new ones
        return open(path, "r+b")

    def _sync(self, f: BinaryIO) -> None:
        f.flush()
        os.fsync(f.fileno())
