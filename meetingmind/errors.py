"""Exception hierarchy shared by the capture, transcription and insight layers."""


class MeetingMindError(Exception):
    """Base class for all MeetingMind errors."""


class InvalidStateError(MeetingMindError):
    """Raised when a session operation is not valid in the current state."""


class CaptureError(MeetingMindError):
    """Audio device could not be opened or failed while recording."""


AudioError = CaptureError


class TranscriptionError(MeetingMindError):
    """A transcription call failed. Recoverable: the chunk resolves with no text."""


class TranscriptionTimeout(TranscriptionError):
    """A transcription call exceeded its deadline and was abandoned."""


class TranscriptionAuthError(TranscriptionError):
    """The remote speech service rejected our credentials."""


class ModelAssetUnavailableError(TranscriptionError):
    """Local model files are missing and every download source failed."""

    def __init__(self, model_name: str, attempts=None):
        self.model_name = model_name
        self.attempts = list(attempts or [])
        detail = "; ".join(self.attempts) if self.attempts else "no sources configured"
        super().__init__(f"Model '{model_name}' is unavailable: {detail}")


class InsightError(MeetingMindError):
    """The LLM backend returned an error or an unusable response."""


class InsightTimeout(InsightError):
    """The LLM call did not finish before its deadline."""


class InsightAuthError(InsightError):
    """The LLM backend rejected the API key."""
