"""
Checkpoint Store — enablement snapshots written after each applied step.

Behavioral Contract:
- One row per (execution_id, step_index), written in a single atomic INSERT
- Read only for rollback; the simulator never looks here
- Discarded once the owning execution completes successfully

Prototype: SQLite. Production: any store with atomic single-row writes.
"""

import json
import sqlite3
import threading
from datetime import datetime
from typing import Dict, List, Optional

from golive_kernel.models.execution import Checkpoint


class CheckpointStore:

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS checkpoints (
                execution_id TEXT NOT NULL,
                step_index INTEGER NOT NULL,
                captured_state TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (execution_id, step_index)
            )
        """)
        self._conn.commit()

    def write(self, execution_id: str, step_index: int, state: Dict[str, bool]) -> Checkpoint:
        """Persist one checkpoint. Raises sqlite3.Error if the write fails."""
        checkpoint = Checkpoint(
            execution_id=execution_id,
            step_index=step_index,
            captured_state=dict(state),
            created_at=datetime.utcnow(),
        )
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO checkpoints "
                "(execution_id, step_index, captured_state, created_at) VALUES (?, ?, ?, ?)",
                (
                    execution_id,
                    step_index,
                    json.dumps(checkpoint.captured_state, sort_keys=True),
                    checkpoint.created_at.isoformat(),
                ),
            )
        return checkpoint

    def _deserialize(self, row: sqlite3.Row) -> Checkpoint:
        return Checkpoint(
            execution_id=row["execution_id"],
            step_index=row["step_index"],
            captured_state=json.loads(row["captured_state"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def latest(self, execution_id: str) -> Optional[Checkpoint]:
        """The most recent checkpoint (highest step index) for an execution."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM checkpoints WHERE execution_id = ? "
                "ORDER BY step_index DESC LIMIT 1",
                (execution_id,),
            ).fetchone()
        return self._deserialize(row) if row else None

    def get(self, execution_id: str, step_index: int) -> Optional[Checkpoint]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM checkpoints WHERE execution_id = ? AND step_index = ?",
                (execution_id, step_index),
            ).fetchone()
        return self._deserialize(row) if row else None

    def list(self, execution_id: str) -> List[Checkpoint]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM checkpoints WHERE execution_id = ? ORDER BY step_index",
                (execution_id,),
            ).fetchall()
        return [self._deserialize(r) for r in rows]

    def discard(self, execution_id: str) -> int:
        """Drop every checkpoint of an execution. Returns how many were removed."""
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "DELETE FROM checkpoints WHERE execution_id = ?", (execution_id,)
            )
        return cursor.rowcount

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS cnt FROM checkpoints").fetchone()
        return row["cnt"]

    def clear(self) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM checkpoints")

    def close(self) -> None:
        self._conn.close()
