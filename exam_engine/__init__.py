"""Exam session engine: bank validation, question selection, session lifecycle, answers and scoring."""
from .errors import CertificateError, ExamError, InvalidState, NotFound, NotReady, StoreFailure
from .service import ExamService
from .store import MemoryStore, RecordStore, SupabaseStore

__all__ = [
    "CertificateError",
    "ExamError",
    "ExamService",
    "InvalidState",
    "MemoryStore",
    "NotFound",
    "NotReady",
    "RecordStore",
    "StoreFailure",
    "SupabaseStore",
]
