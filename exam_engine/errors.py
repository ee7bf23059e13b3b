"""Error taxonomy shared by every exam engine component."""
from typing import List, Optional


class ExamError(Exception):
    """Base class for errors surfaced to the UI layer."""


class NotFound(ExamError):
    """Certification or session is missing, inactive, or owned by someone else."""


class NotReady(ExamError):
    """Question bank failed validation. Carries the issue list for display."""

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        self.issues = list(issues or [])
        if self.issues:
            message = message + "\n" + "\n".join(self.issues)
        super().__init__(message)


class InvalidState(ExamError):
    """Operation is not allowed in the session's current lifecycle state."""


class StoreFailure(ExamError):
    """The record store reported an error. Message is passed through as-is."""


class CertificateError(StoreFailure):
    """Certificate could not be issued (generation collision or insert failure)."""
