"""
ExamService: the operations the UI layer calls.
Wires validator, selector, session manager, answer recorder, scoring engine and
certificate registry over one RecordStore.
"""
import random
from typing import Callable, Iterable, List, Optional

from .answers import AnswerRecorder
from .certificates import CertificateRegistry, random_suffix
from .models import Certificate, Certification, ExamAnswer, ExamSession, utc_now
from .scoring import ExamResult, ScoringEngine
from .session import ResumedExam, SessionManager, StartedExam
from .store import CERTIFICATIONS, RecordStore
from .validator import QuestionBankValidator, ValidationReport


class ExamService:
    def __init__(
        self,
        store: RecordStore,
        rng: Optional[random.Random] = None,
        now: Callable = utc_now,
        suffix_factory: Callable[[], str] = random_suffix,
    ):
        self.store = store
        self.validator = QuestionBankValidator(store)
        self.certificates = CertificateRegistry(store, now=now, suffix_factory=suffix_factory)
        self.scoring = ScoringEngine(store, certificates=self.certificates, now=now)
        self.sessions = SessionManager(store, validator=self.validator, scoring=self.scoring, rng=rng, now=now)
        self.answers = AnswerRecorder(store)

    # Exam taker

    def start_exam(self, certification_id: str, user_id: str) -> StartedExam:
        return self.sessions.start(certification_id, user_id)

    def resume_exam(self, session_id: str, user_id: str) -> ResumedExam:
        return self.sessions.resume(session_id, user_id)

    def submit_answer(self, session_id: str, question_id: str, selected_option_ids: Iterable) -> ExamAnswer:
        return self.answers.record(session_id, question_id, selected_option_ids)

    def update_timer(self, session_id: str, time_remaining: int) -> ExamSession:
        return self.sessions.tick(session_id, time_remaining)

    def complete_exam(self, session_id: str) -> ExamResult:
        return self.sessions.complete(session_id)

    def exam_history(self, user_id: str) -> List[ExamSession]:
        return self.sessions.list_sessions(user_id)

    def active_certifications(self) -> List[Certification]:
        rows = self.store.find(CERTIFICATIONS, {"is_active": True}, order_by="name")
        return [Certification.from_row(r) for r in rows]

    # Certificates

    def issue_certificate(self, session_id: str) -> Certificate:
        return self.scoring.issue_certificate(session_id)

    def user_certificates(self, user_id: str) -> List[Certificate]:
        return self.certificates.list_for_user(user_id)

    def verify_certificate(self, verification_hash: str) -> Certificate:
        return self.certificates.verify(verification_hash)

    def revoke_certificate(self, certificate_id: str) -> Certificate:
        return self.certificates.revoke(certificate_id)

    # Admin tooling

    def validate_bank(self, certification_id: str) -> ValidationReport:
        return self.validator.validate(certification_id)
