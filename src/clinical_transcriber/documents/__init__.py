"""
Documents Module

Templating, filler-word cleaning and storage of transcription documents.
"""

from clinical_transcriber.documents.cleaner import FillerWordCleaner, clean, DEFAULT_FILLER_WORDS
from clinical_transcriber.documents.templates import Template, TemplateLibrary, render, placeholders
from clinical_transcriber.documents.store import TranscriptionStore, sanitize_component

__all__ = [
    "FillerWordCleaner",
    "clean",
    "DEFAULT_FILLER_WORDS",
    "Template",
    "TemplateLibrary",
    "render",
    "placeholders",
    "TranscriptionStore",
    "sanitize_component",
]
