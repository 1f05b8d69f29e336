"""
Disposal Module

Secure overwrite-then-delete of patient audio and documents.
"""

from clinical_transcriber.disposal.secure_delete import SecureDisposal, SecurityConfig

__all__ = [
    "SecureDisposal",
    "SecurityConfig",
]
