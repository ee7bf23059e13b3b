"""
Record store used by the exam engine.
RecordStore is the query/mutation interface the engine depends on; SupabaseStore
talks to Supabase tables, MemoryStore keeps rows in process for local runs and tests.
Every backend error is raised as StoreFailure with the backend's message.
"""
import logging
import threading
from copy import deepcopy
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from .errors import StoreFailure

logger = logging.getLogger(__name__)


# Table names
CERTIFICATIONS = "certifications"
QUESTIONS = "questions"
ANSWER_OPTIONS = "answer_options"
EXAM_SESSIONS = "exam_sessions"
EXAM_QUESTIONS = "exam_questions"
EXAM_ANSWERS = "exam_answers"
CERTIFICATES = "certificates"

# Unique keys the engine relies on (mirrored in init_db.py)
UNIQUE_KEYS: Dict[str, List[Tuple[str, ...]]] = {
    EXAM_QUESTIONS: [("exam_session_id", "question_id"), ("exam_session_id", "order_num")],
    EXAM_ANSWERS: [("exam_session_id", "question_id")],
    CERTIFICATES: [("certificate_number",), ("verification_hash",), ("exam_session_id",)],
}

ANSWER_KEY = "exam_session_id,question_id"

# PostgREST default max-rows; find() pages until a short page comes back
PAGE_SIZE = 1000
IN_CHUNK_SIZE = 200


class RecordStore:
    """
    Query/mutation interface over the tables in this module.

    Filters map column -> value; a list, tuple or set value means "column in values".
    """

    def find(
        self,
        table: str,
        filters: Optional[Dict] = None,
        order_by: Optional[str] = None,
        desc: bool = False,
    ) -> List[Dict]:
        raise NotImplementedError

    def find_one(self, table: str, filters: Dict) -> Optional[Dict]:
        rows = self.find(table, filters)
        return rows[0] if rows else None

    def insert(self, table: str, rows: Sequence[Dict]) -> List[Dict]:
        raise NotImplementedError

    def update(self, table: str, row_id: str, changes: Dict, match: Optional[Dict] = None) -> List[Dict]:
        """Update one row by id. `match` adds extra equality conditions; returns updated rows (may be empty)."""
        raise NotImplementedError

    def upsert(self, table: str, row: Dict, on_conflict: str) -> Dict:
        raise NotImplementedError

    def delete(self, table: str, row_id: str) -> None:
        raise NotImplementedError


def _is_many(value) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


class SupabaseStore(RecordStore):
    """RecordStore backed by a supabase-py Client."""

    def __init__(self, client):
        self.client = client

    def _filtered(self, query, filters: Optional[Dict]):
        for column, value in (filters or {}).items():
            if _is_many(value):
                query = query.in_(column, [str(v) for v in value])
            elif isinstance(value, bool) or value is None:
                query = query.is_(column, "null") if value is None else query.eq(column, value)
            else:
                query = query.eq(column, str(value))
        return query

    def find(self, table, filters=None, order_by=None, desc=False):
        filters = filters or {}
        if any(_is_many(v) and not v for v in filters.values()):
            return []

        # Membership lists longer than IN_CHUNK_SIZE go out in chunks
        chunked = next((c for c, v in filters.items() if _is_many(v) and len(v) > IN_CHUNK_SIZE), None)
        if chunked is None:
            return self._find_pages(table, filters, order_by, desc)
        values = list(filters[chunked])
        rows = []
        for i in range(0, len(values), IN_CHUNK_SIZE):
            chunk_filters = {**filters, chunked: values[i : i + IN_CHUNK_SIZE]}
            rows.extend(self._find_pages(table, chunk_filters, order_by, desc))
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=desc)
        return rows

    def _find_pages(self, table, filters, order_by, desc):
        """Read every page; the server caps each response at its max-rows setting."""
        rows = []
        offset = 0
        try:
            while True:
                query = self._filtered(self.client.table(table).select("*"), filters)
                if order_by:
                    query = query.order(order_by, desc=desc)
                # Stable order across pages
                query = query.order("id")
                response = query.range(offset, offset + PAGE_SIZE - 1).execute()
                data = response.data or []
                rows.extend(data)
                if len(data) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE
        except Exception as e:
            logger.error(f"Error reading {table}: {e}")
            raise StoreFailure(str(e)) from e
        return rows

    def insert(self, table, rows):
        rows = list(rows)
        if not rows:
            return []
        try:
            response = self.client.table(table).insert(rows).execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error inserting into {table}: {e}")
            raise StoreFailure(str(e)) from e

    def update(self, table, row_id, changes, match=None):
        try:
            query = self.client.table(table).update(changes).eq("id", str(row_id))
            query = self._filtered(query, match)
            response = query.execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error updating {table} {row_id}: {e}")
            raise StoreFailure(str(e)) from e

    def upsert(self, table, row, on_conflict):
        try:
            response = self.client.table(table).upsert(row, on_conflict=on_conflict).execute()
        except Exception as e:
            logger.error(f"Error upserting into {table}: {e}")
            raise StoreFailure(str(e)) from e
        if not response.data:
            raise StoreFailure(f"Upsert into {table} returned no row")
        return response.data[0]

    def delete(self, table, row_id):
        try:
            self.client.table(table).delete().eq("id", str(row_id)).execute()
        except Exception as e:
            logger.error(f"Error deleting from {table} {row_id}: {e}")
            raise StoreFailure(str(e)) from e


class MemoryStore(RecordStore):
    """In-process RecordStore. Enforces UNIQUE_KEYS the way the Postgres tables do."""

    def __init__(self, unique_keys: Optional[Dict[str, List[Tuple[str, ...]]]] = None):
        self.tables: Dict[str, List[Dict]] = {}
        self.unique_keys = UNIQUE_KEYS if unique_keys is None else unique_keys
        self._lock = threading.Lock()

    @staticmethod
    def _matches(row: Dict, filters: Optional[Dict]) -> bool:
        for column, value in (filters or {}).items():
            current = row.get(column)
            if _is_many(value):
                if str(current) not in {str(v) for v in value}:
                    return False
            elif isinstance(value, bool) or value is None:
                if current != value:
                    return False
            elif str(current) != str(value):
                return False
        return True

    def _check_unique(self, table: str, candidate: Dict, existing: Iterable[Dict]) -> None:
        for key in self.unique_keys.get(table, []):
            wanted = tuple(str(candidate.get(c)) for c in key)
            for row in existing:
                if row is candidate or row.get("id") == candidate.get("id"):
                    continue
                if tuple(str(row.get(c)) for c in key) == wanted:
                    raise StoreFailure(
                        f'duplicate key value violates unique constraint "{table}_{"_".join(key)}_key"'
                    )

    def find(self, table, filters=None, order_by=None, desc=False):
        with self._lock:
            rows = [deepcopy(r) for r in self.tables.get(table, []) if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=desc)
        return rows

    def insert(self, table, rows):
        new_rows = [deepcopy(r) for r in rows]
        for row in new_rows:
            row.setdefault("id", str(uuid4()))
        with self._lock:
            existing = self.tables.setdefault(table, [])
            for i, row in enumerate(new_rows):
                self._check_unique(table, row, existing + new_rows[:i])
            existing.extend(new_rows)
        return deepcopy(new_rows)

    def update(self, table, row_id, changes, match=None):
        updated = []
        with self._lock:
            existing = self.tables.get(table, [])
            for row in existing:
                if str(row.get("id")) == str(row_id) and self._matches(row, match):
                    candidate = {**row, **deepcopy(changes)}
                    self._check_unique(table, candidate, existing)
                    row.update(deepcopy(changes))
                    updated.append(deepcopy(row))
        return updated

    def upsert(self, table, row, on_conflict):
        key = [c.strip() for c in on_conflict.split(",")]
        with self._lock:
            existing = self.tables.setdefault(table, [])
            for current in existing:
                if all(str(current.get(c)) == str(row.get(c)) for c in key):
                    candidate = {**current, **deepcopy(row), "id": current["id"]}
                    self._check_unique(table, candidate, existing)
                    current.update(candidate)
                    return deepcopy(current)
            new_row = deepcopy(row)
            new_row.setdefault("id", str(uuid4()))
            self._check_unique(table, new_row, existing)
            existing.append(new_row)
            return deepcopy(new_row)

    def delete(self, table, row_id):
        with self._lock:
            rows = self.tables.get(table, [])
            self.tables[table] = [r for r in rows if str(r.get("id")) != str(row_id)]
