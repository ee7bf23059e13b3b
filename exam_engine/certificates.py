"""
Certificate issuance and lookup.

A certificate exists only for a passed session, at most one per session
(exam_session_id is a unique key). Number and verification hash are unique per
issuance; a unique-key collision is a generation fault and is raised, not
retried into another row.
"""
import hashlib
import logging
import secrets
import string
from typing import Callable, List, Optional

from engine import CERTIFICATE_PREFIX, CERTIFICATE_SUFFIX_LENGTH

from .errors import CertificateError, InvalidState, NotFound, StoreFailure
from .models import PASSED, Certificate, ExamSession, utc_now
from .store import CERTIFICATES, RecordStore

logger = logging.getLogger(__name__)

BASE36 = string.digits + string.ascii_uppercase


def random_suffix(length: int = CERTIFICATE_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(BASE36) for _ in range(length))


def generate_certificate_number(issued_at, suffix: Optional[str] = None) -> str:
    """CERT-<epoch millis>-<random base36>."""
    millis = int(issued_at.timestamp() * 1000)
    return f"{CERTIFICATE_PREFIX}-{millis}-{suffix or random_suffix()}"


def generate_verification_hash(session_id: str, issued_at, token: Optional[str] = None) -> str:
    token = token or secrets.token_hex(16)
    return hashlib.sha256(f"{session_id}:{issued_at.isoformat()}:{token}".encode("utf-8")).hexdigest()


class CertificateRegistry:
    def __init__(self, store: RecordStore, now: Callable = utc_now, suffix_factory: Callable[[], str] = random_suffix):
        self.store = store
        self.now = now
        self.suffix_factory = suffix_factory

    def for_session(self, session_id: str) -> Optional[Certificate]:
        row = self.store.find_one(CERTIFICATES, {"exam_session_id": session_id})
        return Certificate.from_row(row) if row else None

    def issue(self, session: ExamSession) -> Certificate:
        """Issue the certificate for a passed session; returns the existing one if already issued."""
        if session.status != PASSED:
            raise InvalidState(f"Exam session {session.id} did not pass; no certificate can be issued")

        existing = self.for_session(session.id)
        if existing:
            return existing

        issued_at = self.now()
        number = generate_certificate_number(issued_at, self.suffix_factory())
        row = {
            "certificate_number": number,
            "user_id": session.user_id,
            "certification_id": session.certification_id,
            "exam_session_id": session.id,
            "verification_hash": generate_verification_hash(session.id, issued_at),
            "issued_date": issued_at.isoformat(),
            "revoked": False,
        }
        try:
            rows = self.store.insert(CERTIFICATES, [row])
        except StoreFailure as e:
            # Another completion may have issued it between the lookup and the insert
            existing = self.for_session(session.id)
            if existing:
                return existing
            logger.error(f"Error creating certificate for session {session.id}: {e}")
            raise CertificateError(f"Failed to create certificate: {e}") from e
        if not rows:
            raise CertificateError("Failed to create certificate: no row returned")

        logger.info(f"Certificate generated: {number}")
        return Certificate.from_row(rows[0])

    def list_for_user(self, user_id: str) -> List[Certificate]:
        """Non-revoked certificates of a user, newest first."""
        rows = self.store.find(CERTIFICATES, {"user_id": user_id, "revoked": False}, order_by="issued_date", desc=True)
        return [Certificate.from_row(r) for r in rows]

    def revoke(self, certificate_id: str) -> Certificate:
        rows = self.store.update(CERTIFICATES, certificate_id, {"revoked": True})
        if not rows:
            raise NotFound(f"Certificate not found: {certificate_id}")
        logger.info(f"Certificate {certificate_id} revoked")
        return Certificate.from_row(rows[0])

    def verify(self, verification_hash: str) -> Certificate:
        row = self.store.find_one(CERTIFICATES, {"verification_hash": verification_hash})
        if not row or row.get("revoked"):
            raise NotFound("Certificate not found or revoked")
        return Certificate.from_row(row)
