"""Custom exceptions for the dictation pipeline."""


class PipelineError(Exception):
    """Base class for errors raised by the pipeline."""


class ConfigurationError(PipelineError):
    """Raised when a required setting is missing or invalid."""

    def __init__(self, setting: str, reason: str = "missing required setting"):
        self.setting = setting
        self.reason = reason
        super().__init__(f"{reason}: {setting}")


class MalformedResultError(PipelineError):
    """Raised when a recognition result cannot be parsed."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Malformed recognition result '{object_name}'")


class ObjectExistsError(PipelineError):
    """Raised when a create-only write finds the target already present."""

    def __init__(self, object_name: str):
        self.object_name = object_name
        super().__init__(f"Object '{object_name}' already exists")


class TranscodeError(PipelineError):
    """Raised when the audio file cannot be decoded or re-encoded."""

    def __init__(self, file_name: str, cause: Exception | None = None):
        self.file_name = file_name
        self.cause = cause
        super().__init__(f"Failed to transcode audio file '{file_name}'")
