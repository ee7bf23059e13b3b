"""
Shared pytest fixtures. Everything runs on MemoryStore; no Supabase credentials needed.
"""
import random
from datetime import datetime, timedelta, timezone
from functools import partial
from uuid import uuid4

import pytest

from exam_engine.errors import StoreFailure
from exam_engine.models import SINGLE_CHOICE
from exam_engine.service import ExamService
from exam_engine.store import ANSWER_OPTIONS, CERTIFICATIONS, QUESTIONS, MemoryStore


class Clock:
    """Fixed, manually advanced clock."""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class FlakyStore(MemoryStore):
    """MemoryStore that raises StoreFailure for chosen (operation, table) pairs."""

    def __init__(self):
        super().__init__()
        self.fail_on = set()

    def _maybe_fail(self, operation, table):
        if (operation, table) in self.fail_on:
            raise StoreFailure(f"simulated {operation} failure on {table}")

    def find(self, table, filters=None, order_by=None, desc=False):
        self._maybe_fail("find", table)
        return super().find(table, filters, order_by, desc)

    def insert(self, table, rows):
        self._maybe_fail("insert", table)
        return super().insert(table, rows)

    def update(self, table, row_id, changes, match=None):
        self._maybe_fail("update", table)
        return super().update(table, row_id, changes, match)

    def upsert(self, table, row, on_conflict):
        self._maybe_fail("upsert", table)
        return super().upsert(table, row, on_conflict)

    def delete(self, table, row_id):
        self._maybe_fail("delete", table)
        return super().delete(table, row_id)


def add_certification(store, **overrides):
    row = {
        "id": str(uuid4()),
        "name": "Cloud Practitioner",
        "provider": "Acme",
        "duration": 30,
        "passing_score": 70,
        "total_questions": 5,
        "access_code": None,
        "is_active": True,
    }
    row.update(overrides)
    return store.insert(CERTIFICATIONS, [row])[0]


def add_question(
    store,
    certification_id,
    text="Which service stores objects?",
    options=(("Object storage", True), ("Block storage", False), ("Queue", False), ("DNS", False)),
    question_type=SINGLE_CHOICE,
    points=1,
    is_active=True,
):
    """Insert a question and its options. Returns {"id", "correct", "wrong"} option id lists."""
    question = store.insert(
        QUESTIONS,
        [
            {
                "id": str(uuid4()),
                "certification_id": certification_id,
                "question_text": text,
                "question_type": question_type,
                "points": points,
                "is_active": is_active,
            }
        ],
    )[0]
    option_rows = store.insert(
        ANSWER_OPTIONS,
        [{"question_id": question["id"], "option_text": t, "is_correct": c} for t, c in options],
    )
    return {
        "id": question["id"],
        "correct": [o["id"] for o in option_rows if o["is_correct"]],
        "wrong": [o["id"] for o in option_rows if not o["is_correct"]],
    }


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def flaky_store():
    return FlakyStore()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def service(store, clock, rng):
    return ExamService(store, rng=rng, now=clock)


@pytest.fixture
def make_certification(store):
    return partial(add_certification, store)


@pytest.fixture
def make_question(store):
    return partial(add_question, store)


@pytest.fixture
def certification(make_certification, make_question):
    """Active certification with 8 valid single-choice questions, exam size 5."""
    cert = make_certification()
    for i in range(8):
        make_question(cert["id"], text=f"Question number {i + 1}: which option is right?")
    return cert
