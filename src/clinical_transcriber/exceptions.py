"""
Exceptions

Error taxonomy shared by the transcription pipeline components.
"""


class TranscriberError(Exception):
    """Base class for pipeline errors."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class AlreadyActiveError(TranscriberError):
    """Raised when a capture session or job is already running."""


class ResourceUnavailableError(TranscriberError):
    """Raised when the audio device or a remote service cannot be reached."""


class NotFoundError(TranscriberError):
    """Raised when an expected local file is missing."""

    def __init__(self, path, cause: BaseException | None = None):
        self.path = path
        super().__init__(f"File not found: {path}", cause)


class RemoteJobFailedError(TranscriberError):
    """Raised when the recognition job errors, is cancelled, or returns garbage."""


class DisposalFailedError(TranscriberError):
    """Raised inside secure disposal when an overwrite or delete fails.

    Never propagated out of SecureDisposal.dispose; it is recorded in the
    audit ledger instead.
    """

    def __init__(self, path, cause: BaseException | None = None):
        self.path = path
        super().__init__(f"Failed to securely delete {path}", cause)
