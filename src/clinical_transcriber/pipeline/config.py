"""
Pipeline Configuration

Configuration management for the clinical transcription pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from clinical_transcriber.capture.audio_capture import CaptureConfig
from clinical_transcriber.disposal.secure_delete import SecurityConfig
from clinical_transcriber.documents.cleaner import DEFAULT_FILLER_WORDS
from clinical_transcriber.transcription.gcloud_client import CloudConfig


@dataclass
class PathsConfig:
    """Directories used by the pipeline."""

    transcriptions_dir: Path = Path("transcriptions")
    recordings_dir: Path = Path("recordings")
    audit_log_dir: Path = Path("audit_logs")
    templates_dir: Path = Path("templates")

    def __post_init__(self):
        self.transcriptions_dir = Path(self.transcriptions_dir)
        self.recordings_dir = Path(self.recordings_dir)
        self.audit_log_dir = Path(self.audit_log_dir)
        self.templates_dir = Path(self.templates_dir)


@dataclass
class CleaningConfig:
    """Filler-word cleaning settings."""

    filler_words: list[str] = field(default_factory=lambda: list(DEFAULT_FILLER_WORDS))


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""

    name: str = "clinical-transcriber"
    version: str = "0.1.0"

    paths: PathsConfig = field(default_factory=PathsConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    cloud: CloudConfig = field(default_factory=CloudConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    cleaning: CleaningConfig = field(default_factory=CleaningConfig)

    @classmethod
    def from_base_dir(cls, base_dir: str | Path) -> "PipelineConfig":
        """Default configuration with every directory rooted at base_dir."""
        base = Path(base_dir)
        config = cls()
        config.paths = PathsConfig(
            transcriptions_dir=base / "transcriptions",
            recordings_dir=base / "recordings",
            audit_log_dir=base / "audit_logs",
            templates_dir=base / "templates",
        )
        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineConfig":
        """Create config from dictionary."""
        config = cls()

        if "name" in data:
            config.name = data["name"]
        if "version" in data:
            config.version = data["version"]

        # Paths config
        if "paths" in data:
            paths = data["paths"]
            config.paths = PathsConfig(
                transcriptions_dir=paths.get("transcriptions_dir", "transcriptions"),
                recordings_dir=paths.get("recordings_dir", "recordings"),
                audit_log_dir=paths.get("audit_log_dir", "audit_logs"),
                templates_dir=paths.get("templates_dir", "templates"),
            )

        # Capture config
        if "capture" in data:
            cap = data["capture"]
            config.capture = CaptureConfig(
                sample_rate=cap.get("sample_rate", 16000),
                channels=cap.get("channels", 1),
                bits_per_sample=cap.get("bits_per_sample", 16),
                chunk_duration_ms=cap.get("chunk_duration_ms", 100),
                stop_timeout_seconds=cap.get("stop_timeout_seconds", 2.0),
                device=cap.get("device"),
            )

        # Cloud config
        if "cloud" in data:
            cloud = data["cloud"]
            defaults = CloudConfig()
            config.cloud = CloudConfig(
                bucket=cloud.get("bucket", defaults.bucket),
                language_code=cloud.get("language_code", defaults.language_code),
                model=cloud.get("model", defaults.model),
                poll_interval_seconds=cloud.get(
                    "poll_interval_seconds", defaults.poll_interval_seconds
                ),
                credentials_path=cloud.get("credentials_path"),
            )

        # Security config
        if "security" in data:
            sec = data["security"]
            config.security = SecurityConfig(
                overwrite_passes=sec.get("overwrite_passes", 3),
                chunk_size=sec.get("chunk_size", 8192),
            )

        # Cleaning config
        if "cleaning" in data:
            words = data["cleaning"].get("filler_words")
            if words is not None:
                config.cleaning = CleaningConfig(filler_words=list(words))

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "name": self.name,
            "version": self.version,
            "paths": {
                "transcriptions_dir": str(self.paths.transcriptions_dir),
                "recordings_dir": str(self.paths.recordings_dir),
                "audit_log_dir": str(self.paths.audit_log_dir),
                "templates_dir": str(self.paths.templates_dir),
            },
            "capture": {
                "sample_rate": self.capture.sample_rate,
                "channels": self.capture.channels,
                "bits_per_sample": self.capture.bits_per_sample,
                "chunk_duration_ms": self.capture.chunk_duration_ms,
                "stop_timeout_seconds": self.capture.stop_timeout_seconds,
                "device": self.capture.device,
            },
            "cloud": {
                "bucket": self.cloud.bucket,
                "language_code": self.cloud.language_code,
                "model": self.cloud.model,
                "poll_interval_seconds": self.cloud.poll_interval_seconds,
                "credentials_path": self.cloud.credentials_path,
            },
            "security": {
                "overwrite_passes": self.security.overwrite_passes,
                "chunk_size": self.security.chunk_size,
            },
            "cleaning": {
                "filler_words": list(self.cleaning.filler_words),
            },
        }


def load_config(config_path: str | Path) -> PipelineConfig:
    """Load configuration from YAML file."""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    return PipelineConfig.from_dict(data)


def save_config(config: PipelineConfig, config_path: str | Path) -> None:
    """Write configuration to a YAML file."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
