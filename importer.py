"""
Import a certification question bank from JSON into the exam store.

File layout:
    {
      "certification": {"key": "aws-saa", "name": "...", "provider": "...", "duration": 90,
                        "passing_score": 72, "total_questions": 65, "access_code": null},
      "questions": [
        {"key": "q-001", "question_text": "...", "question_type": "multiple_choice",
         "points": 1, "explanation": "...",
         "options": [{"text": "...", "correct": true}, {"text": "...", "correct": false}]}
      ]
    }

Ids are uuid5 of the keys, so re-importing the same file upserts in place.
Questions that fail bank validation are skipped unless --allow-invalid is given.
"""
import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from uuid import NAMESPACE_DNS, uuid5

from db import get_store
from engine import DEFAULT_PASSING_SCORE
from exam_engine.models import SINGLE_CHOICE, Question
from exam_engine.store import ANSWER_OPTIONS, CERTIFICATIONS, QUESTIONS, RecordStore
from exam_engine.validator import check_question, describe_issue

logger = logging.getLogger(__name__)

QUESTION_TYPES = {"multiple_choice", "multiple_answer", "true_false"}


def stable_id(*parts: str) -> str:
    return str(uuid5(NAMESPACE_DNS, ":".join(parts)))


def parse_certification(raw: Dict) -> Dict:
    key = raw.get("key") or raw.get("name")
    if not key:
        raise ValueError("certification needs a 'key' or 'name'")
    return {
        "id": stable_id("certification", key),
        "name": raw.get("name") or key,
        "description": raw.get("description") or "",
        "provider": raw.get("provider") or "",
        "duration": int(raw.get("duration") or 60),
        "passing_score": int(raw.get("passing_score") or DEFAULT_PASSING_SCORE),
        "total_questions": int(raw.get("total_questions") or 0),
        "access_code": raw.get("access_code"),
        "is_active": bool(raw.get("is_active", True)),
    }


def parse_question(raw: Dict, certification_id: str, index: int) -> Optional[Tuple[Dict, List[Dict]]]:
    """Map one question entry to (question row, option rows). Returns None if unusable."""
    text = (raw.get("question_text") or raw.get("text") or "").strip()
    if not text:
        logger.warning("Question #%d has no text, skipped", index + 1)
        return None
    question_type = raw.get("question_type") or SINGLE_CHOICE
    if question_type not in QUESTION_TYPES:
        logger.warning("Question #%d has unknown type %r, skipped", index + 1, question_type)
        return None

    key = str(raw.get("key") or index + 1)
    question_id = stable_id(certification_id, "question", key)
    question = {
        "id": question_id,
        "certification_id": certification_id,
        "question_text": text,
        "question_type": question_type,
        "points": max(1, int(raw.get("points") or 1)),
        "explanation": raw.get("explanation"),
        "difficulty": raw.get("difficulty"),
        "is_active": bool(raw.get("is_active", True)),
    }
    options = [
        {
            "id": stable_id(question_id, "option", str(i)),
            "question_id": question_id,
            "option_text": (opt.get("text") or opt.get("option_text") or "").strip(),
            "is_correct": bool(opt.get("correct", opt.get("is_correct", False))),
        }
        for i, opt in enumerate(raw.get("options") or [])
    ]
    return question, options


def load_bank(path: Path) -> Tuple[Dict, List[Tuple[Dict, List[Dict]]]]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    certification = parse_certification(raw.get("certification") or {})
    parsed = [parse_question(q, certification["id"], i) for i, q in enumerate(raw.get("questions") or [])]
    return certification, [p for p in parsed if p]


def filter_valid(entries: List[Tuple[Dict, List[Dict]]], allow_invalid: bool = False):
    """Split entries by bank validation rules. Returns (kept, issues)."""
    kept = []
    issues = []
    for question_row, option_rows in entries:
        question = Question.from_row(question_row, option_rows)
        problems = check_question(question)
        issues.extend(describe_issue(question, p) for p in problems)
        if not problems or allow_invalid:
            kept.append((question_row, option_rows))
    return kept, issues


def write_bank(store: RecordStore, certification: Dict, entries, replace: bool = False) -> int:
    store.upsert(CERTIFICATIONS, certification, on_conflict="id")
    for question_row, option_rows in entries:
        store.upsert(QUESTIONS, question_row, on_conflict="id")
        for option in option_rows:
            store.upsert(ANSWER_OPTIONS, option, on_conflict="id")
        keep = {o["id"] for o in option_rows}
        for stale in store.find(ANSWER_OPTIONS, {"question_id": question_row["id"]}):
            if stale["id"] not in keep:
                store.delete(ANSWER_OPTIONS, stale["id"])

    if replace:
        # Deactivate rather than delete: past sessions still reference old questions
        imported = {q["id"] for q, _ in entries}
        for row in store.find(QUESTIONS, {"certification_id": certification["id"], "is_active": True}):
            if row["id"] not in imported:
                store.update(QUESTIONS, row["id"], {"is_active": False})
                logger.info("Deactivated question %s", row["id"])
    return len(entries)


def run_import(
    path: Path,
    store: Optional[RecordStore] = None,
    dry_run: bool = False,
    replace: bool = False,
    allow_invalid: bool = False,
) -> int:
    if not path.exists():
        raise FileNotFoundError(f"Question bank not found: {path}")
    certification, entries = load_bank(path)
    kept, issues = filter_valid(entries, allow_invalid=allow_invalid)
    for issue in issues:
        logger.warning(issue)

    if dry_run:
        print(f"Dry run: would upsert {len(kept)} questions for {certification['name']!r} from {path}")
        if issues:
            print(f"{len(issues)} validation issue(s); {len(entries) - len(kept)} question(s) would be skipped")
        return len(kept)

    if store is None:
        store = get_store(cached=False)
    count = write_bank(store, certification, kept, replace=replace)
    print(f"Upserted {count} questions for {certification['name']!r} (certification id {certification['id']})")
    return count


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Import a certification question bank (JSON) into Supabase.")
    parser.add_argument("bank", help="Path to the question bank .json")
    parser.add_argument("--dry-run", action="store_true", help="Parse and validate only, do not upsert")
    parser.add_argument(
        "--replace", action="store_true", help="Deactivate questions of this certification that are not in the file"
    )
    parser.add_argument("--allow-invalid", action="store_true", help="Import questions that fail validation too")
    args = parser.parse_args()
    run_import(Path(args.bank), dry_run=args.dry_run, replace=args.replace, allow_invalid=args.allow_invalid)
