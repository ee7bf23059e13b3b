"""
Scoring Engine: weighted score, pass/fail decision and certificate hand-off.

Scoring rules:
  - only answered questions count towards total points
  - a question earns its points iff the selected option set equals the correct set
    (no partial credit; an extra wrong option fails the question)
  - score = round(earned / total * 100), 0 when nothing was answered
  - passed = score >= certification passing score (DEFAULT_PASSING_SCORE if unset)

complete() is single-shot: the terminal transition is a conditional update on
status='in_progress', and a second call returns the stored result.
"""
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from engine import DEFAULT_PASSING_SCORE

from .certificates import CertificateRegistry
from .errors import NotFound, StoreFailure
from .models import (
    FAILED,
    IN_PROGRESS,
    PASSED,
    Certificate,
    Certification,
    ExamAnswer,
    ExamSession,
    Question,
    utc_now,
)
from .store import CERTIFICATIONS, EXAM_ANSWERS, EXAM_SESSIONS, QUESTIONS, RecordStore
from .validator import load_questions

logger = logging.getLogger(__name__)


@dataclass
class ExamResult:
    session: ExamSession
    score: int
    passed: bool
    certificate: Optional[Certificate] = None
    certificate_error: Optional[str] = None
    earned_points: int = 0
    total_points: int = 0
    correctness: Dict[str, bool] = field(default_factory=dict)


def is_answer_correct(question: Question, selected_options: Iterable) -> bool:
    return {str(o) for o in selected_options} == question.correct_option_ids


def grade_answers(answers: List[ExamAnswer], questions: Dict[str, Question]) -> Tuple[int, int, Dict[str, bool]]:
    """Return (earned_points, total_points, {question_id: is_correct}) over answered questions."""
    earned = 0
    total = 0
    correctness = {}
    for answer in answers:
        question = questions.get(answer.question_id)
        if question is None:
            logger.warning(f"Answer for unknown question {answer.question_id} ignored")
            continue
        points = question.points or 1
        total += points
        correct = is_answer_correct(question, answer.selected_options)
        if correct:
            earned += points
        correctness[answer.question_id] = correct
    return earned, total, correctness


def compute_score(earned_points: int, total_points: int) -> int:
    """Percentage rounded half-up; 0 when total_points is 0."""
    if total_points <= 0:
        return 0
    percentage = Decimal(earned_points) * 100 / Decimal(total_points)
    return int(percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ScoringEngine:
    def __init__(
        self,
        store: RecordStore,
        certificates: Optional[CertificateRegistry] = None,
        now: Callable = utc_now,
    ):
        self.store = store
        self.certificates = certificates or CertificateRegistry(store, now=now)
        self.now = now

    def _load_session(self, session_id: str) -> ExamSession:
        row = self.store.find_one(EXAM_SESSIONS, {"id": session_id})
        if not row:
            raise NotFound(f"Exam session not found: {session_id}")
        return ExamSession.from_row(row)

    def _passing_score(self, certification_id: str) -> int:
        row = self.store.find_one(CERTIFICATIONS, {"id": certification_id})
        if not row:
            logger.warning(f"Certification {certification_id} not found; using default passing score")
            return DEFAULT_PASSING_SCORE
        return Certification.from_row(row).passing_score

    def complete(self, session_id: str) -> ExamResult:
        """
        Score the session and move it to passed/failed.

        Raises:
            NotFound: session does not exist
            StoreFailure: answers could not be read or the session could not be updated
        """
        session = self._load_session(session_id)
        if session.is_terminal:
            logger.info(f"Session {session_id} already {session.status}; returning stored result")
            return self._stored_result(session)

        answers = [ExamAnswer.from_row(r) for r in self.store.find(EXAM_ANSWERS, {"exam_session_id": session_id})]
        question_rows = self.store.find(QUESTIONS, {"id": [a.question_id for a in answers]}) if answers else []
        questions = {q.id: q for q in load_questions(self.store, question_rows)} if question_rows else {}

        earned, total, correctness = grade_answers(answers, questions)
        score = compute_score(earned, total)
        passing_score = self._passing_score(session.certification_id)
        passed = score >= passing_score
        logger.info(f"Final score: {score}% ({earned}/{total} points), passing {passing_score}%")

        rows = self.store.update(
            EXAM_SESSIONS,
            session_id,
            {
                "status": PASSED if passed else FAILED,
                "score": score,
                "passed": passed,
                "end_time": self.now().isoformat(),
                "time_remaining": 0,
            },
            match={"status": IN_PROGRESS},
        )
        if not rows:
            # Lost the race against a concurrent completion; that one's result stands
            logger.info(f"Session {session_id} was completed concurrently; returning stored result")
            return self._stored_result(self._load_session(session_id))
        session = ExamSession.from_row(rows[0])
        logger.info(f"Session {session_id} {'PASSED' if passed else 'FAILED'} with {score}%")

        self._mark_answers(answers, correctness)
        result = ExamResult(
            session=session,
            score=score,
            passed=passed,
            earned_points=earned,
            total_points=total,
            correctness=correctness,
        )
        return self._attach_certificate(result)

    def issue_certificate(self, session_id: str) -> Certificate:
        """Retry hook for a passed session whose certificate insert failed."""
        return self.certificates.issue(self._load_session(session_id))

    def _stored_result(self, session: ExamSession) -> ExamResult:
        result = ExamResult(
            session=session,
            score=session.score or 0,
            passed=session.status == PASSED,
        )
        return self._attach_certificate(result)

    def _attach_certificate(self, result: ExamResult) -> ExamResult:
        if not result.passed:
            return result
        try:
            result.certificate = self.certificates.issue(result.session)
        except StoreFailure as e:
            logger.warning(f"Session {result.session.id} passed but certificate issuance failed: {e}")
            result.certificate_error = str(e)
        return result

    def _mark_answers(self, answers: List[ExamAnswer], correctness: Dict[str, bool]) -> None:
        """Best-effort is_correct audit flag; failures are logged only."""
        for answer in answers:
            if answer.id is None or answer.question_id not in correctness:
                continue
            try:
                self.store.update(EXAM_ANSWERS, answer.id, {"is_correct": correctness[answer.question_id]})
            except StoreFailure as e:
                logger.warning(f"Could not mark answer {answer.id} is_correct: {e}")
