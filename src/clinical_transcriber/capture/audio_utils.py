"""
Audio Utilities

Data types and WAV helpers for recorded audio.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
import uuid

import numpy as np


PCM_SUBTYPE_BITS = {
    "PCM_S8": 8,
    "PCM_U8": 8,
    "PCM_16": 16,
    "PCM_24": 24,
    "PCM_32": 32,
}


@dataclass
class RecordingSession:
    """An in-progress recording owned by AudioCapture."""

    file_path: Path
    sample_rate: int
    channels: int = 1
    bits_per_sample: int = 16
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class AudioArtifact:
    """Reference to a finalized audio file.

    Format fields come from the file header, not from configuration.
    """

    path: Path
    byte_length: int
    sample_rate: int
    channels: int = 1
    bits_per_sample: int = 16

    @property
    def name(self) -> str:
        """File name, used to derive the remote object name."""
        return self.path.name

    def exists(self) -> bool:
        return self.path.exists()

    @property
    def duration_seconds(self) -> float:
        """Approximate duration from the byte length (ignores header size)."""
        bytes_per_second = self.sample_rate * self.channels * self.bits_per_sample // 8
        if bytes_per_second == 0:
            return 0.0
        return max(self.byte_length - 44, 0) / bytes_per_second

    @classmethod
    def from_file(cls, filepath: str | Path) -> "AudioArtifact":
        """Build an artifact by reading the file's header."""
        import soundfile as sf

        path = Path(filepath)
        info = sf.info(str(path))
        return cls(
            path=path,
            byte_length=path.stat().st_size,
            sample_rate=int(info.samplerate),
            channels=int(info.channels),
            bits_per_sample=PCM_SUBTYPE_BITS.get(info.subtype, 16),
        )


def write_wav(
    filepath: str | Path,
    frames: np.ndarray,
    sample_rate: int,
    channels: int = 1,
) -> Path:
    """Write int16 frames as a 16-bit little-endian PCM WAV file."""
    import soundfile as sf

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = np.asarray(frames, dtype=np.int16).reshape(-1, channels)
    if channels == 1:
        data = data[:, 0]

    sf.write(str(path), data, sample_rate, subtype="PCM_16", format="WAV")
    return path


def concatenate_blocks(blocks: list[np.ndarray], channels: int = 1) -> np.ndarray:
    """Join captured int16 blocks into one (frames, channels) array."""
    if not blocks:
        return np.zeros((0, channels), dtype=np.int16)
    return np.concatenate([b.reshape(-1, channels) for b in blocks]).astype(np.int16)
