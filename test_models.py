"""Row mapping helpers."""
from datetime import datetime, timezone

import pytest

from exam_engine.models import Certification, ExamSession, parse_timestamp


@pytest.mark.parametrize("value,expected", [
    ("2025-03-01T09:00:00.12345+00:00", datetime(2025, 3, 1, 9, 0, 0, 123450, tzinfo=timezone.utc)),
    ("2025-03-01T09:00:00.1+00:00", datetime(2025, 3, 1, 9, 0, 0, 100000, tzinfo=timezone.utc)),
    ("2025-03-01T09:00:00.1234567+00:00", datetime(2025, 3, 1, 9, 0, 0, 123456, tzinfo=timezone.utc)),
    ("2025-03-01 09:00:00.12+00:00", datetime(2025, 3, 1, 9, 0, 0, 120000, tzinfo=timezone.utc)),
    ("2025-03-01T09:00:00Z", datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)),
    ("2025-03-01T09:00:00", datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)),
])
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


def test_parse_timestamp_empty():
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None


def test_stale_sessions_read_trimmed_fractions(service, store, clock, certification):
    started = service.start_exam(certification["id"], "user-1")
    store.update("exam_sessions", started.session.id, {"start_time": "2025-02-27T09:00:00.12345+00:00"})

    assert [s.id for s in service.sessions.stale_sessions()] == [started.session.id]


def test_unset_passing_score_falls_back_to_default():
    certification = Certification.from_row({"id": "c1", "name": "Cert", "passing_score": None, "duration": 45})
    assert certification.passing_score == 70
    assert certification.duration_seconds == 45 * 60


def test_session_row_defaults():
    session = ExamSession.from_row({"id": "s1", "user_id": "u1", "certification_id": "c1"})
    assert session.status == "in_progress"
    assert session.score is None
    assert not session.is_terminal
