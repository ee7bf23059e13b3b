"""
Question bank validation: decides whether a certification's active questions
are structurally sound enough to build an exam from.

Rules per question:
  - at least MIN_ANSWER_OPTIONS options
  - every option has non-blank text
  - at least one option marked correct
  - single-answer types (multiple_choice, true_false) have exactly one correct option

The bank is valid when at least one question passes; the selector works with
whatever valid subset exists.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from engine import MIN_ANSWER_OPTIONS, QUESTION_EXCERPT_LENGTH

from .errors import StoreFailure
from .models import Question
from .store import ANSWER_OPTIONS, QUESTIONS, RecordStore

logger = logging.getLogger(__name__)

NO_ACTIVE_QUESTIONS = "No active questions found for this certification"


@dataclass
class QuestionCheck:
    question: Question
    issues: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


@dataclass
class ValidationReport:
    is_valid: bool
    valid_questions: List[Question] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    total_questions: int = 0
    results: List[QuestionCheck] = field(default_factory=list)


def check_question(question: Question) -> List[str]:
    """Return the list of structural problems with one question (empty = valid)."""
    options = question.answer_options
    if not options:
        return ["No answer options found"]

    issues = []
    if len(options) < MIN_ANSWER_OPTIONS:
        issues.append(f"Less than {MIN_ANSWER_OPTIONS} answer options")

    correct = [o for o in options if o.is_correct]
    if not correct:
        issues.append("No correct answer marked")
    elif question.is_single_answer and len(correct) > 1:
        issues.append("Single choice question should have exactly one correct answer")

    if any(not (o.option_text or "").strip() for o in options):
        issues.append("Some answer options have empty text")
    return issues


def describe_issue(question: Question, issue: str) -> str:
    excerpt = (question.question_text or "")[:QUESTION_EXCERPT_LENGTH]
    return f"{excerpt}...: {issue}"


def check_questions(questions: List[Question]) -> ValidationReport:
    """Pure validation over already-loaded questions."""
    if not questions:
        return ValidationReport(is_valid=False, issues=[NO_ACTIVE_QUESTIONS])

    results = [QuestionCheck(q, check_question(q)) for q in questions]
    valid = [r.question for r in results if r.is_valid]
    issues = [describe_issue(r.question, issue) for r in results for issue in r.issues]
    return ValidationReport(
        is_valid=bool(valid),
        valid_questions=valid,
        issues=issues,
        total_questions=len(questions),
        results=results,
    )


def load_questions(store: RecordStore, question_rows: List[Dict]) -> List[Question]:
    """Attach answer options to question rows, preserving row order."""
    ids = [row["id"] for row in question_rows]
    by_question: Dict[str, List[Dict]] = {str(i): [] for i in ids}
    for option in store.find(ANSWER_OPTIONS, {"question_id": ids}):
        by_question.setdefault(str(option["question_id"]), []).append(option)
    return [Question.from_row(row, by_question[str(row["id"])]) for row in question_rows]


class QuestionBankValidator:
    def __init__(self, store: RecordStore):
        self.store = store

    def validate(self, certification_id: str) -> ValidationReport:
        try:
            rows = self.store.find(QUESTIONS, {"certification_id": certification_id, "is_active": True})
            questions = load_questions(self.store, rows) if rows else []
        except StoreFailure as e:
            logger.error(f"Question validation for {certification_id} failed: {e}")
            return ValidationReport(is_valid=False, issues=[str(e) or "Failed to validate questions"])

        report = check_questions(questions)
        if report.is_valid:
            logger.info(
                f"Certification {certification_id}: {len(report.valid_questions)}/{report.total_questions} questions valid"
            )
        else:
            logger.warning(f"Certification {certification_id} not exam-ready: {len(report.issues)} issue(s)")
        return report
