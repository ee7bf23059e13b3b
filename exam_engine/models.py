"""
Typed records for certifications, questions, sessions, answers and certificates.
Rows come back from the store as plain dicts; from_row() maps them onto these
dataclasses and fills defaults for optional columns.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from engine import DEFAULT_PASSING_SCORE, SECONDS_PER_MINUTE


# Session statuses
IN_PROGRESS = "in_progress"
PASSED = "passed"
FAILED = "failed"
TERMINAL_STATUSES = (PASSED, FAILED)

# Question types as stored in the questions table
SINGLE_CHOICE = "multiple_choice"
MULTI_CHOICE = "multiple_answer"
TRUE_FALSE = "true_false"
SINGLE_ANSWER_TYPES = (SINGLE_CHOICE, TRUE_FALSE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Postgres trims trailing zeros from fractional seconds; fromisoformat before 3.11 wants 3 or 6 digits
_FRACTION = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 column value; naive values are taken as UTC."""
    if not value:
        return None
    value = value.replace("Z", "+00:00")
    value = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Certification:
    id: str
    name: str
    provider: str = ""
    duration: int = 0  # minutes
    passing_score: int = DEFAULT_PASSING_SCORE
    total_questions: int = 0
    access_code: Optional[str] = None
    is_active: bool = True
    description: str = ""

    @classmethod
    def from_row(cls, row: Dict) -> "Certification":
        passing = row.get("passing_score")
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            provider=row.get("provider") or "",
            duration=int(row.get("duration") or 0),
            passing_score=int(passing) if passing else DEFAULT_PASSING_SCORE,
            total_questions=int(row.get("total_questions") or 0),
            access_code=row.get("access_code"),
            is_active=bool(row.get("is_active", True)),
            description=row.get("description") or "",
        )

    @property
    def duration_seconds(self) -> int:
        return self.duration * SECONDS_PER_MINUTE


@dataclass
class AnswerOption:
    id: str
    question_id: str
    option_text: str
    is_correct: bool = False

    @classmethod
    def from_row(cls, row: Dict) -> "AnswerOption":
        return cls(
            id=str(row["id"]),
            question_id=str(row.get("question_id") or ""),
            option_text=row.get("option_text") or "",
            is_correct=bool(row.get("is_correct")),
        )


@dataclass
class Question:
    id: str
    certification_id: str
    question_text: str
    question_type: str = SINGLE_CHOICE
    points: int = 1
    is_active: bool = True
    answer_options: List[AnswerOption] = field(default_factory=list)
    explanation: Optional[str] = None
    difficulty: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict, options: Optional[List[Dict]] = None) -> "Question":
        opts = options if options is not None else (row.get("answer_options") or [])
        return cls(
            id=str(row["id"]),
            certification_id=str(row.get("certification_id") or ""),
            question_text=row.get("question_text") or "",
            question_type=row.get("question_type") or SINGLE_CHOICE,
            points=int(row.get("points") or 1),
            is_active=bool(row.get("is_active", True)),
            answer_options=[AnswerOption.from_row(o) for o in opts],
            explanation=row.get("explanation"),
            difficulty=row.get("difficulty"),
        )

    @property
    def is_single_answer(self) -> bool:
        return self.question_type in SINGLE_ANSWER_TYPES

    @property
    def correct_option_ids(self) -> set:
        return {o.id for o in self.answer_options if o.is_correct}


@dataclass
class ExamSession:
    id: str
    user_id: str
    certification_id: str
    status: str = IN_PROGRESS
    time_remaining: int = 0
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    score: Optional[int] = None
    passed: Optional[bool] = None

    @classmethod
    def from_row(cls, row: Dict) -> "ExamSession":
        score = row.get("score")
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id") or ""),
            certification_id=str(row.get("certification_id") or ""),
            status=row.get("status") or IN_PROGRESS,
            time_remaining=int(row.get("time_remaining") or 0),
            start_time=row.get("start_time"),
            end_time=row.get("end_time"),
            score=int(score) if score is not None else None,
            passed=row.get("passed"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class ExamQuestion:
    exam_session_id: str
    question_id: str
    order_num: int

    @classmethod
    def from_row(cls, row: Dict) -> "ExamQuestion":
        return cls(
            exam_session_id=str(row["exam_session_id"]),
            question_id=str(row["question_id"]),
            order_num=int(row["order_num"]),
        )


@dataclass
class ExamAnswer:
    exam_session_id: str
    question_id: str
    selected_options: List[str] = field(default_factory=list)
    is_correct: Optional[bool] = None
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "ExamAnswer":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            exam_session_id=str(row["exam_session_id"]),
            question_id=str(row["question_id"]),
            selected_options=[str(o) for o in (row.get("selected_options") or [])],
            is_correct=row.get("is_correct"),
        )


@dataclass
class Certificate:
    id: str
    certificate_number: str
    user_id: str
    certification_id: str
    exam_session_id: str
    verification_hash: str
    issued_date: Optional[str] = None
    revoked: bool = False
    expiry_date: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "Certificate":
        return cls(
            id=str(row["id"]),
            certificate_number=row["certificate_number"],
            user_id=str(row.get("user_id") or ""),
            certification_id=str(row.get("certification_id") or ""),
            exam_session_id=str(row.get("exam_session_id") or ""),
            verification_hash=row["verification_hash"],
            issued_date=row.get("issued_date"),
            revoked=bool(row.get("revoked")),
            expiry_date=row.get("expiry_date"),
        )
