"""
Clinical Transcriber

Clinical dictation pipeline: record, transcribe with Google Cloud
Speech-to-Text, fill a document template, clean filler words, and securely
dispose of the source audio, with a CSV audit trail.

Usage:
    from clinical_transcriber import Pipeline

    pipeline = Pipeline.from_config("config.yaml")
    pipeline.start_recording()
    ...
    audio = pipeline.stop_recording()
    result = pipeline.transcribe_recording(audio, "Jane Doe", "01/02/1980", "default_template")
    print(result.document_path)

Author: Cleansheet LLC
License: CC BY 4.0
"""

from clinical_transcriber.pipeline.pipeline import Pipeline, PipelineResult
from clinical_transcriber.pipeline.config import PipelineConfig

__version__ = "0.1.0"
__author__ = "Cleansheet LLC"
__license__ = "CC BY 4.0"

__all__ = [
    "Pipeline",
    "PipelineResult",
    "PipelineConfig",
    "__version__",
]
