"""Answer recording during an attempt. Correctness is left to the scoring engine."""
import logging
from typing import Iterable

from .errors import InvalidState, NotFound
from .models import ExamAnswer, ExamSession
from .store import ANSWER_KEY, EXAM_ANSWERS, EXAM_QUESTIONS, EXAM_SESSIONS, RecordStore

logger = logging.getLogger(__name__)


def normalize_selection(selected_option_ids: Iterable) -> list:
    """Deduplicate and sort option ids so identical selections give identical rows."""
    return sorted({str(o) for o in selected_option_ids or []})


class AnswerRecorder:
    def __init__(self, store: RecordStore):
        self.store = store

    def record(self, session_id: str, question_id: str, selected_option_ids: Iterable) -> ExamAnswer:
        """
        Upsert the selection for (session, question); last write wins.

        The status check and the upsert are separate store calls. A completion
        landing between them has already scored the old answers, so the session
        is re-read afterwards and the late write is reported as InvalidState.

        Raises:
            NotFound: session does not exist
            InvalidState: session is finished, or the question is not part of it
        """
        row = self.store.find_one(EXAM_SESSIONS, {"id": session_id})
        if not row:
            raise NotFound(f"Exam session not found: {session_id}")
        session = ExamSession.from_row(row)
        if session.is_terminal:
            raise InvalidState(f"Cannot record answers: exam session {session_id} is already {session.status}")

        assigned = self.store.find_one(EXAM_QUESTIONS, {"exam_session_id": session_id, "question_id": question_id})
        if not assigned:
            raise InvalidState(f"Question {question_id} is not part of exam session {session_id}")

        saved = self.store.upsert(
            EXAM_ANSWERS,
            {
                "exam_session_id": str(session_id),
                "question_id": str(question_id),
                "selected_options": normalize_selection(selected_option_ids),
                "is_correct": None,
            },
            on_conflict=ANSWER_KEY,
        )
        current = self.store.find_one(EXAM_SESSIONS, {"id": session_id})
        if current and ExamSession.from_row(current).is_terminal:
            logger.warning(f"Session {session_id} finished while answer for {question_id} was being saved")
            raise InvalidState(f"Cannot record answers: exam session {session_id} finished before the answer was saved")

        logger.debug(f"Answer recorded: session={session_id} question={question_id}")
        return ExamAnswer.from_row(saved)
