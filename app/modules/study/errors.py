"""Error types shared by the study-aid generator, coordinator and API."""

from __future__ import annotations


class StudyError(Exception):
    """Base class for study-aid errors."""


class DocumentRejected(StudyError):
    """Uploaded file failed the PDF / size / single-file checks."""

    def __init__(self, message: str, *, reason: str = "invalid") -> None:
        super().__init__(message)
        self.reason = reason


class GenerationFailed(StudyError):
    """The model stream errored or its final array failed set validation."""

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind


class InvalidTransition(StudyError):
    """A session action was requested from a phase that does not allow it."""
