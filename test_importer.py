"""JSON question bank import into a MemoryStore."""
import json

import pytest

from exam_engine.service import ExamService
from exam_engine.store import ANSWER_OPTIONS, CERTIFICATIONS, QUESTIONS, MemoryStore
from importer import run_import, stable_id


def _bank(questions, **certification):
    cert = {"key": "aws-ccp", "name": "AWS Cloud Practitioner", "duration": 90, "total_questions": 2}
    cert.update(certification)
    return {"certification": cert, "questions": questions}


def _question(key, text, options, question_type="multiple_choice", **extra):
    entry = {
        "key": key,
        "question_text": text,
        "question_type": question_type,
        "options": [{"text": t, "correct": c} for t, c in options],
    }
    entry.update(extra)
    return entry


GOOD = [
    _question("q1", "Which service stores objects?", [("S3", True), ("EBS", False), ("SQS", False)]),
    _question("q2", "Pick the managed databases", [("RDS", True), ("DynamoDB", True), ("EC2", False)],
              question_type="multiple_answer", points=2),
]
BROKEN = _question("q3", "Two answers on a single choice question", [("A", True), ("B", True)])


@pytest.fixture
def bank_file(tmp_path):
    def write(data, name="bank.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return write


def test_import_writes_certification_questions_and_options(bank_file):
    store = MemoryStore()

    count = run_import(bank_file(_bank(GOOD)), store=store)

    assert count == 2
    cert = store.find_one(CERTIFICATIONS, {"id": stable_id("certification", "aws-ccp")})
    assert cert["duration"] == 90
    assert cert["passing_score"] == 70
    assert len(store.find(QUESTIONS, {"certification_id": cert["id"]})) == 2
    assert len(store.find(ANSWER_OPTIONS)) == 6
    multi = store.find_one(QUESTIONS, {"question_text": "Pick the managed databases"})
    assert multi["points"] == 2


def test_imported_bank_is_exam_ready(bank_file):
    store = MemoryStore()
    run_import(bank_file(_bank(GOOD)), store=store)
    service = ExamService(store)

    cert_id = stable_id("certification", "aws-ccp")
    assert service.validate_bank(cert_id).is_valid
    started = service.start_exam(cert_id, "user-1")
    assert len(started.questions) == 2


def test_invalid_questions_are_skipped(bank_file):
    store = MemoryStore()

    count = run_import(bank_file(_bank(GOOD + [BROKEN])), store=store)

    assert count == 2
    assert store.find(QUESTIONS, {"question_text": BROKEN["question_text"]}) == []


def test_allow_invalid_imports_everything(bank_file):
    store = MemoryStore()

    count = run_import(bank_file(_bank(GOOD + [BROKEN])), store=store, allow_invalid=True)

    assert count == 3
    report = ExamService(store).validate_bank(stable_id("certification", "aws-ccp"))
    assert report.total_questions == 3
    assert len(report.valid_questions) == 2


def test_entries_without_text_or_with_unknown_type_are_dropped(bank_file):
    store = MemoryStore()
    entries = GOOD + [
        _question("blank", "   ", [("A", True), ("B", False)]),
        _question("odd", "Essay question", [("A", True), ("B", False)], question_type="essay"),
    ]

    assert run_import(bank_file(_bank(entries)), store=store) == 2


def test_dry_run_writes_nothing(bank_file, capsys):
    store = MemoryStore()

    count = run_import(bank_file(_bank(GOOD + [BROKEN])), store=store, dry_run=True)

    assert count == 2
    assert store.tables == {}
    assert "would be skipped" in capsys.readouterr().out


def test_reimport_is_idempotent(bank_file):
    store = MemoryStore()
    path = bank_file(_bank(GOOD))

    run_import(path, store=store)
    run_import(path, store=store)

    assert len(store.find(CERTIFICATIONS)) == 1
    assert len(store.find(QUESTIONS)) == 2
    assert len(store.find(ANSWER_OPTIONS)) == 6


def test_reimport_drops_removed_options(bank_file):
    store = MemoryStore()
    run_import(bank_file(_bank(GOOD)), store=store)
    trimmed = [_question("q1", "Which service stores objects?", [("S3", True), ("EBS", False)]), GOOD[1]]

    run_import(bank_file(_bank(trimmed), name="trimmed.json"), store=store)

    question_id = store.find_one(QUESTIONS, {"question_text": "Which service stores objects?"})["id"]
    assert [o["option_text"] for o in store.find(ANSWER_OPTIONS, {"question_id": question_id})] == ["S3", "EBS"]


def test_replace_deactivates_questions_missing_from_file(bank_file):
    store = MemoryStore()
    run_import(bank_file(_bank(GOOD)), store=store)

    run_import(bank_file(_bank(GOOD[:1]), name="smaller.json"), store=store, replace=True)

    active = store.find(QUESTIONS, {"is_active": True})
    assert [q["question_text"] for q in active] == ["Which service stores objects?"]
    assert len(store.find(QUESTIONS)) == 2


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        run_import(tmp_path / "nope.json", store=MemoryStore())


def test_certification_needs_a_key(bank_file):
    with pytest.raises(ValueError):
        run_import(bank_file({"certification": {}, "questions": GOOD}), store=MemoryStore())
