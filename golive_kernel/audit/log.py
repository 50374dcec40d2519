"""
Audit Log — append-only, hash-chained record of every decision and action.

Behavioral Contract:
- Append-only. No event is ever modified or deleted through this API.
- Each event is hashed and chained to the previous event (tamper-evident).
- Reads return fresh copies; callers cannot alter stored entries.
- Activity summaries are recomputed from the log on every call.
"""

import hashlib
import json
import logging
import sqlite3
import threading
from datetime import datetime, timedelta
from typing import List, Optional, Union
from uuid import uuid4

from golive_kernel.models.audit import ActivitySummary, AuditAction, AuditEvent

logger = logging.getLogger(__name__)


def _sign(event: AuditEvent) -> str:
    event_dict = event.model_dump(mode="json")
    event_dict["signature"] = ""
    event_bytes = json.dumps(event_dict, sort_keys=True, default=str).encode()
    return hashlib.sha256(event_bytes).hexdigest()


class AuditLog:
    """
    Append-only audit store.
    Prototype: SQLite. Production: PostgreSQL with an insert-only role.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS audit_log (
                id TEXT PRIMARY KEY,
                action TEXT NOT NULL,
                actor TEXT NOT NULL,
                success INTEGER NOT NULL,
                timestamp TEXT NOT NULL,
                signature TEXT NOT NULL,
                prior_event_hash TEXT,
                event_json TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_log(action)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp)
        """)
        self._conn.commit()

    def log_audit_event(
        self,
        action: Union[AuditAction, str],
        description: str,
        actor: str,
        success: bool,
        metadata: Optional[dict] = None,
        timestamp: Optional[datetime] = None,
    ) -> AuditEvent:
        """Append one event, chained to the previous one."""
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        with self._lock:
            event = AuditEvent(
                id=f"aud_{uuid4().hex[:12]}",
                action=action_value,
                description=description,
                actor=actor,
                success=success,
                timestamp=timestamp or datetime.utcnow(),
                metadata=metadata or {},
                prior_event_hash=self._get_latest_hash(),
            )
            event.signature = _sign(event)

            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO audit_log (
                        id, action, actor, success, timestamp,
                        signature, prior_event_hash, event_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event.id,
                        event.action,
                        event.actor,
                        int(event.success),
                        event.timestamp.isoformat(),
                        event.signature,
                        event.prior_event_hash,
                        json.dumps(event.model_dump(mode="json"), default=str),
                    ),
                )
        if not success:
            logger.warning("Audit %s by %s failed: %s", action_value, actor, description)
        return event.model_copy(deep=True)

    def _get_latest_hash(self) -> Optional[str]:
        row = self._conn.execute(
            "SELECT signature FROM audit_log ORDER BY rowid DESC LIMIT 1"
        ).fetchone()
        return row["signature"] if row else None

    def _deserialize(self, row: sqlite3.Row) -> AuditEvent:
        return AuditEvent.model_validate_json(row["event_json"])

    def get_audit_log(
        self,
        action: Optional[Union[AuditAction, str]] = None,
        actor: Optional[str] = None,
        success_only: bool = False,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditEvent]:
        """Filtered events, oldest first."""
        clauses, params = [], []
        if action is not None:
            clauses.append("action = ?")
            params.append(action.value if isinstance(action, AuditAction) else action)
        if actor is not None:
            clauses.append("actor = ?")
            params.append(actor)
        if success_only:
            clauses.append("success = 1")
        if since is not None:
            clauses.append("timestamp >= ?")
            params.append(since.isoformat())
        if until is not None:
            clauses.append("timestamp <= ?")
            params.append(until.isoformat())

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT event_json FROM audit_log {where} ORDER BY rowid LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()
        return [self._deserialize(r) for r in rows]

    def get_activity_summary(
        self,
        window_hours: float = 24,
        now: Optional[datetime] = None,
    ) -> ActivitySummary:
        """Counts over the trailing window, derived from the log each time."""
        now = now or datetime.utcnow()
        since = now - timedelta(hours=window_hours)
        with self._lock:
            rows = self._conn.execute(
                "SELECT action, actor, success FROM audit_log "
                "WHERE timestamp >= ? AND timestamp <= ?",
                (since.isoformat(), now.isoformat()),
            ).fetchall()

        by_action, by_actor = {}, {}
        successful = 0
        for row in rows:
            by_action[row["action"]] = by_action.get(row["action"], 0) + 1
            by_actor[row["actor"]] = by_actor.get(row["actor"], 0) + 1
            successful += row["success"]

        return ActivitySummary(
            window_hours=window_hours,
            total_events=len(rows),
            successful_events=successful,
            failed_events=len(rows) - successful,
            by_action=by_action,
            by_actor=by_actor,
        )

    def verify_chain_integrity(self) -> bool:
        """Verify no events have been tampered with."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT event_json, signature FROM audit_log ORDER BY rowid"
            ).fetchall()

        prior = None
        for row in rows:
            event = AuditEvent.model_validate_json(row["event_json"])
            if event.signature != row["signature"] or _sign(event) != event.signature:
                return False
            if event.prior_event_hash != prior:
                return False
            prior = event.signature
        return True

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS cnt FROM audit_log").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._conn.close()
