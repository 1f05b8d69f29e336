"""
Pipeline Module

End-to-end clinical dictation orchestration.
"""

from clinical_transcriber.pipeline.pipeline import Pipeline, PipelineResult
from clinical_transcriber.pipeline.config import PipelineConfig, load_config, save_config

__all__ = [
    "Pipeline",
    "PipelineResult",
    "PipelineConfig",
    "load_config",
    "save_config",
]
