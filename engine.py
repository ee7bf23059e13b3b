"""Exam constants: pass threshold, certificate format, validator excerpt. No logic."""
# Passing threshold used when a certification has no passing_score set
DEFAULT_PASSING_SCORE = 70
SECONDS_PER_MINUTE = 60

# Validator issue prefix: first N chars of question text
QUESTION_EXCERPT_LENGTH = 50
MIN_ANSWER_OPTIONS = 2

# Certificate number: CERT-<epoch ms>-<random base36 suffix>
CERTIFICATE_PREFIX = "CERT"
CERTIFICATE_SUFFIX_LENGTH = 9

# Sessions left in_progress longer than this are reported by ops_report.py
STALE_SESSION_HOURS = 24
