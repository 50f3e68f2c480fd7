from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.ledger import AttendanceLedger
from .attendance.service import AttendanceService
from .classes.repository import ClassSessionRepository
from .classes.service import ClassSessionService
from .core.constants import DEFAULT_MAX_BATCH_WRITES
from .docstore.connection import DatabaseConnection, DBConfig
from .docstore.memory_store import InMemoryDocumentStore
from .docstore.mysql_store import MySQLDocumentStore
from .docstore.store import DocumentStore
from .recap.service import RecapService
from .roster.repository import RosterRepository
from .roster.service import RosterService


@dataclass(frozen=True)
class Container:
    store: DocumentStore

    roster_repo: RosterRepository
    sessions_repo: ClassSessionRepository
    ledger: AttendanceLedger

    roster_service: RosterService
    class_session_service: ClassSessionService
    attendance_service: AttendanceService
    recap_service: RecapService


def build_store(
    *,
    kind: str,
    db_config: Optional[dict] = None,
    max_batch_writes: int = DEFAULT_MAX_BATCH_WRITES,
) -> DocumentStore:
    if kind == "memory":
        return InMemoryDocumentStore(max_batch_writes=max_batch_writes)
    if kind == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config or {}))
        return MySQLDocumentStore(conn, max_batch_writes=max_batch_writes)
    raise ValueError(f"Unknown DOCUMENT_STORE: {kind!r}")


def build_container(*, store: DocumentStore) -> Container:
    roster_repo = RosterRepository(store)
    sessions_repo = ClassSessionRepository(store)
    ledger = AttendanceLedger(store)

    roster_service = RosterService(roster_repo)
    class_session_service = ClassSessionService(sessions_repo, roster_repo)
    attendance_service = AttendanceService(ledger, sessions_repo, roster_repo)
    recap_service = RecapService(attendance_service, sessions_repo, roster_repo)

    return Container(
        store=store,
        roster_repo=roster_repo,
        sessions_repo=sessions_repo,
        ledger=ledger,
        roster_service=roster_service,
        class_session_service=class_session_service,
        attendance_service=attendance_service,
        recap_service=recap_service,
    )
