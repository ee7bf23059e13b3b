"""
Operator report: exam-readiness of each certification's question bank and
sessions stuck in_progress (no completion call ever arrived).

Run: python ops_report.py
      python ops_report.py --certification <id>     # one certification only
      python ops_report.py --stale-hours 6          # flag sessions older than 6h
"""
import argparse
import logging
import sys
from datetime import timedelta
from typing import Dict, Optional

from db import get_exam_service
from engine import STALE_SESSION_HOURS
from exam_engine.errors import NotFound
from exam_engine.service import ExamService


def build_report(service: ExamService, certification_id: Optional[str] = None, stale_hours: int = STALE_SESSION_HOURS) -> Dict:
    if certification_id:
        certifications = [service.sessions.get_certification(certification_id, active_only=False)]
    else:
        certifications = service.active_certifications()

    banks = []
    for certification in certifications:
        report = service.validate_bank(certification.id)
        banks.append(
            {
                "id": certification.id,
                "name": certification.name,
                "is_valid": report.is_valid,
                "valid_questions": len(report.valid_questions),
                "total_questions": report.total_questions,
                "target_questions": certification.total_questions,
                "issues": report.issues,
            }
        )

    stale = service.sessions.stale_sessions(older_than=timedelta(hours=stale_hours))
    return {"banks": banks, "stale_sessions": stale}


def print_report(report: Dict, stale_hours: int) -> None:
    print()
    print("=" * 60)
    print("QUESTION BANKS")
    print("=" * 60)
    for bank in report["banks"]:
        status = "READY" if bank["is_valid"] else "NOT READY"
        print(f"  [{status}] {bank['name']!r}  {bank['valid_questions']}/{bank['total_questions']} valid"
              f"  (exam size {bank['target_questions']})")
        if bank["valid_questions"] < bank["target_questions"]:
            print(f"         only {bank['valid_questions']} valid questions for a {bank['target_questions']}-question exam")
        for issue in bank["issues"][:10]:
            print(f"         - {issue}")
        if len(bank["issues"]) > 10:
            print(f"         ... and {len(bank['issues']) - 10} more")

    print()
    print("=" * 60)
    print(f"SESSIONS IN PROGRESS FOR MORE THAN {stale_hours}h")
    print("=" * 60)
    if not report["stale_sessions"]:
        print("  none")
    for session in report["stale_sessions"]:
        print(f"  {session.id}  user={session.user_id}  certification={session.certification_id}"
              f"  started={session.start_time}  time_remaining={session.time_remaining}s")
    print()


def main():
    parser = argparse.ArgumentParser(description="Question bank readiness and stale exam sessions.")
    parser.add_argument("--certification", default=None, help="Only check this certification id")
    parser.add_argument("--stale-hours", type=int, default=STALE_SESSION_HOURS,
                        help=f"Report in-progress sessions older than N hours (default {STALE_SESSION_HOURS})")
    args = parser.parse_args()

    try:
        service = get_exam_service(cached=False)
    except ValueError as e:
        print(f"{e} (check .env)")
        sys.exit(1)
    try:
        report = build_report(service, args.certification, args.stale_hours)
    except NotFound as e:
        print(e)
        sys.exit(1)
    print_report(report, args.stale_hours)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    main()
