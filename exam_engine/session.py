"""
Exam session lifecycle: start, resume, timer bookkeeping and completion.

States: in_progress -> passed | failed. in_progress is the only non-terminal
state. The question assignment is chosen once in start() and never re-selected.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, List, Optional

from engine import STALE_SESSION_HOURS

from .errors import InvalidState, NotFound, NotReady, StoreFailure
from .models import (
    IN_PROGRESS,
    Certification,
    ExamAnswer,
    ExamQuestion,
    ExamSession,
    Question,
    parse_timestamp,
    utc_now,
)
from .scoring import ScoringEngine
from .selector import select_questions
from .store import (
    CERTIFICATIONS,
    EXAM_ANSWERS,
    EXAM_QUESTIONS,
    EXAM_SESSIONS,
    QUESTIONS,
    RecordStore,
)
from .validator import QuestionBankValidator, check_question, load_questions

logger = logging.getLogger(__name__)


@dataclass
class StartedExam:
    session: ExamSession
    questions: List[Question]
    certification: Certification


@dataclass
class ResumedExam:
    session: ExamSession
    questions: List[Question]
    answers: Dict[str, List[str]] = field(default_factory=dict)
    certification: Optional[Certification] = None


class SessionManager:
    """Creates, resumes and terminates exam attempts. Every call re-reads the store."""

    def __init__(
        self,
        store: RecordStore,
        validator: Optional[QuestionBankValidator] = None,
        scoring: Optional[ScoringEngine] = None,
        rng: Optional[random.Random] = None,
        now: Callable = utc_now,
    ):
        self.store = store
        self.validator = validator or QuestionBankValidator(store)
        self.scoring = scoring or ScoringEngine(store, now=now)
        self.rng = rng
        self.now = now

    # ============= Lookups =============

    def get_certification(self, certification_id: str, active_only: bool = True) -> Certification:
        row = self.store.find_one(CERTIFICATIONS, {"id": certification_id})
        if not row:
            raise NotFound(f"Certification not found: {certification_id}")
        certification = Certification.from_row(row)
        if active_only and not certification.is_active:
            raise NotFound(f"Certification not found or not active: {certification_id}")
        return certification

    def get_session(self, session_id: str) -> ExamSession:
        row = self.store.find_one(EXAM_SESSIONS, {"id": session_id})
        if not row:
            raise NotFound(f"Exam session not found: {session_id}")
        return ExamSession.from_row(row)

    def get_assignment(self, session_id: str) -> List[ExamQuestion]:
        rows = self.store.find(EXAM_QUESTIONS, {"exam_session_id": session_id}, order_by="order_num")
        return sorted((ExamQuestion.from_row(r) for r in rows), key=lambda a: a.order_num)

    def load_assigned_questions(self, session_id: str) -> List[Question]:
        """Questions of the session in order_num order, with their answer options."""
        assignment = self.get_assignment(session_id)
        if not assignment:
            return []
        rows = self.store.find(QUESTIONS, {"id": [a.question_id for a in assignment]})
        by_id = {q.id: q for q in load_questions(self.store, rows)}
        missing = [a.question_id for a in assignment if a.question_id not in by_id]
        if missing:
            logger.warning(f"Session {session_id}: {len(missing)} assigned question(s) no longer exist")
        return [by_id[a.question_id] for a in assignment if a.question_id in by_id]

    def load_answers(self, session_id: str) -> List[ExamAnswer]:
        return [ExamAnswer.from_row(r) for r in self.store.find(EXAM_ANSWERS, {"exam_session_id": session_id})]

    # ============= Lifecycle =============

    def start(self, certification_id: str, user_id: str) -> StartedExam:
        """
        Validate the bank, pick the questions and persist session + assignment.

        Raises:
            NotFound: certification missing or inactive
            NotReady: no valid questions (issues attached)
            StoreFailure: session or assignment could not be written
        """
        certification = self.get_certification(certification_id)
        logger.info(f"Starting exam for certification {certification.name!r}, user {user_id}")

        report = self.validator.validate(certification_id)
        if not report.is_valid:
            raise NotReady(f'Cannot start exam for "{certification.name}". Issues found:', report.issues)

        valid = report.valid_questions
        requested = certification.total_questions if certification.total_questions > 0 else len(valid)
        needed = min(requested, len(valid))
        if len(valid) < requested:
            logger.warning(f"Only {len(valid)} questions available, {requested} requested. Using {needed}.")
        selected = select_questions(valid, needed, self.rng)

        rows = self.store.insert(
            EXAM_SESSIONS,
            [
                {
                    "user_id": str(user_id),
                    "certification_id": certification.id,
                    "status": IN_PROGRESS,
                    "time_remaining": certification.duration_seconds,
                    "start_time": self.now().isoformat(),
                }
            ],
        )
        if not rows:
            raise StoreFailure("Failed to create exam session")
        session = ExamSession.from_row(rows[0])

        assignment = [
            {"exam_session_id": session.id, "question_id": q.id, "order_num": i + 1}
            for i, q in enumerate(selected)
        ]
        try:
            self.store.insert(EXAM_QUESTIONS, assignment)
        except StoreFailure as e:
            logger.error(f"Exam questions creation failed, removing session {session.id}: {e}")
            try:
                self.store.delete(EXAM_SESSIONS, session.id)
            except StoreFailure as cleanup_error:
                logger.error(f"Could not remove orphaned session {session.id}: {cleanup_error}")
            raise StoreFailure(f"Failed to create exam questions: {e}") from e

        logger.info(f"Session {session.id}: created with {len(selected)} questions")
        return StartedExam(session=session, questions=selected, certification=certification)

    def resume(self, session_id: str, user_id: str) -> ResumedExam:
        """
        Reload an in-progress session exactly as the user left it.

        Raises:
            NotFound: no such session for this user
            InvalidState: session already finished, or its questions are unusable
        """
        session = self.get_session(session_id)
        if session.user_id != str(user_id):
            raise NotFound(f"Exam session not found: {session_id}")
        if session.is_terminal:
            raise InvalidState(f"Exam session {session_id} is already {session.status}")

        questions = self.load_assigned_questions(session_id)
        if not questions:
            raise InvalidState("No questions found for this exam session")

        invalid = [q for q in questions if check_question(q)]
        if len(invalid) == len(questions):
            logger.error(f"Session {session_id}: all {len(invalid)} questions are invalid")
            raise InvalidState("The questions in this exam session are invalid. Please contact the administrator.")
        if invalid:
            logger.warning(f"Session {session_id}: {len(invalid)} question(s) became invalid after assignment")

        answers = {a.question_id: a.selected_options for a in self.load_answers(session_id)}
        try:
            certification = self.get_certification(session.certification_id, active_only=False)
        except NotFound:
            certification = None
        return ResumedExam(session=session, questions=questions, answers=answers, certification=certification)

    def tick(self, session_id: str, time_remaining: int) -> ExamSession:
        """Persist the client countdown. Never completes the session."""
        remaining = max(0, int(time_remaining))
        rows = self.store.update(
            EXAM_SESSIONS, session_id, {"time_remaining": remaining}, match={"status": IN_PROGRESS}
        )
        if not rows:
            session = self.get_session(session_id)
            raise InvalidState(f"Exam session {session_id} is already {session.status}")
        return ExamSession.from_row(rows[0])

    def complete(self, session_id: str):
        return self.scoring.complete(session_id)

    # ============= History / operators =============

    def list_sessions(self, user_id: str) -> List[ExamSession]:
        rows = self.store.find(EXAM_SESSIONS, {"user_id": user_id}, order_by="start_time", desc=True)
        return [ExamSession.from_row(r) for r in rows]

    def stale_sessions(self, older_than: timedelta = timedelta(hours=STALE_SESSION_HOURS)) -> List[ExamSession]:
        """In-progress sessions started before now - older_than (nobody called complete)."""
        cutoff = self.now() - older_than
        stale = []
        for row in self.store.find(EXAM_SESSIONS, {"status": IN_PROGRESS}, order_by="start_time"):
            started = parse_timestamp(row.get("start_time"))
            if started is not None and started < cutoff:
                stale.append(ExamSession.from_row(row))
        return stale
