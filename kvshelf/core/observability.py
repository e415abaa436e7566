"""
Journal - SQLite operation log for kvshelf.

Every mutating operation records one row with structured data, so the
history of what happened to the store can be inspected after the fact.
"""

import json
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class LogEntry:
    """A row from the journal database."""

    id: int
    ts: str
    session: str
    phase: str
    data: Dict[str, Any] = field(default_factory=dict)


class Journal:
    """Phase-based operation log.

    Phases:
    - set: a value was written
    - delete: a key was removed from the index
    - push: a value was appended to a list
    - pop: the last element of a list was removed
    - reset: the index was cleared
    - error: an operation failed
    """

    PHASES = ["set", "delete", "push", "pop", "reset", "error"]

    def __init__(self, db_path: Path):
        """Initialize journal with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        self.session_id = self._new_session()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ts TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
                    session TEXT NOT NULL,
                    phase TEXT NOT NULL,
                    data JSON NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_session ON logs(session);
                CREATE INDEX IF NOT EXISTS idx_phase ON logs(phase);

                CREATE VIEW IF NOT EXISTS errors AS
                SELECT id, ts, session,
                       json_extract(data, '$.error_type') as error_type,
                       json_extract(data, '$.key') as key,
                       json_extract(data, '$.message') as message,
                       data
                FROM logs WHERE phase = 'error';
            """)

    def _new_session(self) -> str:
        return f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"

    def new_session(self) -> str:
        """Start a new session and return its ID."""
        self.session_id = self._new_session()
        return self.session_id

    def log(self, phase: str, data: Dict[str, Any]) -> None:
        """Log a phase with structured data.

        Args:
            phase: One of PHASES
            data: Structured data for the log entry
        """
        if phase not in self.PHASES:
            raise ValueError(f"Invalid phase: {phase}. Must be one of {self.PHASES}")

        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO logs (session, phase, data) VALUES (?, ?, ?)",
                (self.session_id, phase, json.dumps(data, default=str)),
            )

    # Convenience methods

    def log_write(self, phase: str, key: str, filename: str, fmt: str) -> None:
        """Log a write that produced a new Value File (set, push or pop)."""
        self.log(phase, {"key": key, "filename": filename, "format": fmt})

    def log_delete(self, key: str, filename: str) -> None:
        self.log("delete", {"key": key, "filename": filename})

    def log_reset(self, cleared: int) -> None:
        self.log("reset", {"cleared": cleared})

    def log_error(
        self,
        operation: str,
        error: BaseException,
        key: Optional[str] = None,
    ) -> None:
        """Log a failed operation.

        Args:
            operation: Operation name (set, get, push, ...)
            error: The exception that is about to propagate
            key: Key involved, if any
        """
        data: Dict[str, Any] = {
            "operation": operation,
            "error_type": type(error).__name__,
            "message": str(error),
        }
        if key is not None:
            data["key"] = key
        self.log("error", data)

    # Query methods

    def _entries(self, sql: str, params: tuple) -> List[LogEntry]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(sql, params).fetchall()
            return [
                LogEntry(
                    id=row["id"],
                    ts=row["ts"],
                    session=row["session"],
                    phase=row["phase"],
                    data=json.loads(row["data"]),
                )
                for row in rows
            ]

    def get_session(self, session_id: Optional[str] = None) -> List[LogEntry]:
        """Get all logs for a session (defaults to the current one)."""
        session_id = session_id or self.session_id
        return self._entries(
            "SELECT * FROM logs WHERE session = ? ORDER BY id",
            (session_id,),
        )

    def get_errors(self, limit: int = 100) -> List[LogEntry]:
        """Get the most recent error logs."""
        return self._entries(
            "SELECT * FROM logs WHERE phase = 'error' ORDER BY id DESC LIMIT ?",
            (limit,),
        )

    def get_key_activity(self, key: str, limit: int = 100) -> List[LogEntry]:
        """Get logs that mention ``key``, oldest first."""
        return self._entries(
            """
            SELECT * FROM (
                SELECT * FROM logs
                WHERE json_extract(data, '$.key') = ?
                ORDER BY id DESC LIMIT ?
            ) ORDER BY id
            """,
            (key, limit),
        )

    def last_session(self) -> Optional[str]:
        """ID of the session with the most recent log row."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT session FROM logs ORDER BY id DESC LIMIT 1").fetchone()
            return row[0] if row else None

    def get_session_summary(self, session_id: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for a session.

        Returns:
            Dictionary with phase counts, touched keys and error count
        """
        session_id = session_id or self.session_id

        with sqlite3.connect(self.db_path) as conn:
            phase_counts = {}
            for row in conn.execute(
                """
                SELECT phase, COUNT(*) as count
                FROM logs WHERE session = ?
                GROUP BY phase
                """,
                (session_id,),
            ):
                phase_counts[row[0]] = row[1]

            keys = [
                row[0]
                for row in conn.execute(
                    """
                    SELECT DISTINCT json_extract(data, '$.key')
                    FROM logs
                    WHERE session = ? AND json_extract(data, '$.key') IS NOT NULL
                    ORDER BY 1
                    """,
                    (session_id,),
                )
            ]

        return {
            "session_id": session_id,
            "phase_counts": phase_counts,
            "keys": keys,
            "error_count": phase_counts.get("error", 0),
            "total_logs": sum(phase_counts.values()),
        }


__all__ = ["Journal", "LogEntry"]
