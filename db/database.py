#!/usr/bin/env python3
"""
Database manager for the negotiation tracker.
Stores negotiations, moves, bracket proposals and mediator proposals.
"""
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Dict, Optional, Any, Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).parent / "negotiations.db"

SCHEMA = """
create table if not exists negotiations (
  id integer primary key autoincrement,
  name text not null,
  settlement_goal real,
  medical_specials real,
  economic_damages real,
  non_economic_damages real,
  policy_limits real,
  liability_percentage real,
  jury_damages_likelihood real,
  status text default 'active',
  created_date text,
  updated_date text
);
create table if not exists moves (
  id integer primary key autoincrement,
  negotiation_id integer not null references negotiations(id) on delete cascade,
  timestamp text,
  party text,
  type text,
  amount real,
  notes text
);
create table if not exists brackets (
  id integer primary key autoincrement,
  negotiation_id integer not null references negotiations(id) on delete cascade,
  created_at text not null,
  plaintiff_amount real not null,
  defendant_amount real not null,
  notes text,
  status text default 'active' check(status in ('active', 'accepted', 'rejected')),
  proposed_by text default 'plaintiff' check(proposed_by in ('plaintiff', 'defendant'))
);
create table if not exists mediator_proposals (
  id integer primary key autoincrement,
  negotiation_id integer not null unique references negotiations(id) on delete cascade,
  created_at text not null,
  amount real not null,
  deadline text not null,
  notes text,
  status text default 'pending',
  plaintiff_response text,
  defendant_response text
);
create index if not exists idx_moves_negotiation_id on moves(negotiation_id);
create index if not exists idx_brackets_negotiation_id on brackets(negotiation_id);
"""

NEGOTIATION_FIELDS = [
    "name", "settlement_goal", "medical_specials", "economic_damages",
    "non_economic_damages", "policy_limits", "liability_percentage",
    "jury_damages_likelihood", "status",
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: str = None):
        self.db_path = str(db_path or DB_PATH)
        self._init_db()

    def _init_db(self):
        """Initialize database with schema."""
        conn = self._get_conn()
        try:
            conn.executescript(SCHEMA)
            logger.debug(f"Schema ready at {self.db_path}")
        finally:
            conn.close()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection in autocommit mode; transactions are explicit."""
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a read-modify-write under one write lock.

        BEGIN IMMEDIATE takes the reserved lock up front, so a second writer
        waits until this one commits instead of reading stale state.
        """
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    @contextmanager
    def _using(self, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return
        own = self._get_conn()
        try:
            yield own
        finally:
            own.close()

    # === Negotiations ===

    def create_negotiation(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a minimal negotiation row and return it."""
        now = utc_now().isoformat(timespec='microseconds')
        fields = [f for f in NEGOTIATION_FIELDS if data.get(f) is not None]
        values = [data[f] for f in fields]
        columns = ",".join(fields + ["created_date", "updated_date"])
        placeholders = ",".join(["?"] * (len(fields) + 2))
        with self._using(None) as conn:
            cur = conn.execute(
                f"insert into negotiations({columns}) values({placeholders})",
                values + [now, now],
            )
            negotiation_id = cur.lastrowid
        return self.get_negotiation(negotiation_id)

    def get_negotiation(self, negotiation_id: int) -> Optional[Dict[str, Any]]:
        with self._using(None) as conn:
            row = conn.execute("select * from negotiations where id=?", (negotiation_id,)).fetchone()
        return dict(row) if row else None

    # === Moves ===

    def add_move(self, negotiation_id: int, party: str, move_type: str, amount: float,
                 notes: Optional[str] = None, timestamp: Optional[str] = None) -> Dict[str, Any]:
        timestamp = timestamp or utc_now().isoformat(timespec='microseconds')
        with self._using(None) as conn:
            cur = conn.execute(
                "insert into moves(negotiation_id, timestamp, party, type, amount, notes) "
                "values(?,?,?,?,?,?)",
                (negotiation_id, timestamp, party, move_type, amount, notes),
            )
            move_id = cur.lastrowid
        return {
            "id": move_id,
            "negotiation_id": negotiation_id,
            "timestamp": timestamp,
            "party": party,
            "type": move_type,
            "amount": amount,
            "notes": notes,
        }

    def get_moves(self, negotiation_id: int) -> List[Dict[str, Any]]:
        """Moves in chronological order."""
        with self._using(None) as conn:
            rows = conn.execute(
                "select * from moves where negotiation_id=? order by timestamp asc, id asc",
                (negotiation_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def delete_move(self, move_id: int) -> bool:
        with self._using(None) as conn:
            cur = conn.execute("delete from moves where id=?", (move_id,))
        return cur.rowcount > 0

    # === Brackets ===

    def create_bracket(self, negotiation_id: int, plaintiff_amount: float, defendant_amount: float,
                       proposed_by: str, notes: Optional[str] = None,
                       created_at: Optional[str] = None) -> Dict[str, Any]:
        created_at = created_at or utc_now().isoformat(timespec='microseconds')
        with self._using(None) as conn:
            cur = conn.execute(
                "insert into brackets(negotiation_id, created_at, plaintiff_amount, defendant_amount, "
                "notes, status, proposed_by) values(?,?,?,?,?,'active',?)",
                (negotiation_id, created_at, plaintiff_amount, defendant_amount, notes, proposed_by),
            )
            bracket_id = cur.lastrowid
        return self.get_bracket(bracket_id)

    def get_bracket(self, bracket_id: int) -> Optional[Dict[str, Any]]:
        with self._using(None) as conn:
            row = conn.execute("select * from brackets where id=?", (bracket_id,)).fetchone()
        return dict(row) if row else None

    def get_brackets(self, negotiation_id: int) -> List[Dict[str, Any]]:
        """Brackets for a negotiation, most recent first."""
        with self._using(None) as conn:
            rows = conn.execute(
                "select * from brackets where negotiation_id=? order by created_at desc, id desc",
                (negotiation_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def resolve_bracket(self, bracket_id: int, status: str, notes: Optional[str] = None) -> bool:
        """
        Move an active bracket to a terminal status.

        Returns False when the bracket is missing or no longer active; the
        status guard in the WHERE clause keeps concurrent responses from both
        succeeding.
        """
        with self._using(None) as conn:
            if notes is None:
                cur = conn.execute(
                    "update brackets set status=? where id=? and status='active'",
                    (status, bracket_id),
                )
            else:
                cur = conn.execute(
                    "update brackets set status=?, notes=? where id=? and status='active'",
                    (status, notes, bracket_id),
                )
        return cur.rowcount == 1

    # === Mediator proposals ===

    def replace_mediator_proposal(self, conn: sqlite3.Connection, negotiation_id: int, amount: float,
                                  deadline: str, notes: Optional[str], created_at: str) -> Dict[str, Any]:
        """Delete any existing proposal for the negotiation and insert a fresh one."""
        conn.execute("delete from mediator_proposals where negotiation_id=?", (negotiation_id,))
        conn.execute(
            "insert into mediator_proposals(negotiation_id, created_at, amount, deadline, notes, status) "
            "values(?,?,?,?,?,'pending')",
            (negotiation_id, created_at, amount, deadline, notes),
        )
        return self.get_mediator_proposal(negotiation_id, conn=conn)

    def get_mediator_proposal(self, negotiation_id: int,
                              conn: Optional[sqlite3.Connection] = None) -> Optional[Dict[str, Any]]:
        with self._using(conn) as c:
            row = c.execute(
                "select * from mediator_proposals where negotiation_id=?", (negotiation_id,)
            ).fetchone()
        return dict(row) if row else None

    def update_mediator_proposal(self, negotiation_id: int, updates: Dict[str, Any],
                                 conn: Optional[sqlite3.Connection] = None,
                                 expected_status: Optional[str] = None) -> int:
        """Update response/status columns; returns the number of rows changed."""
        allowed = ("plaintiff_response", "defendant_response", "status")
        sets = [f"{k}=?" for k in allowed if k in updates]
        if not sets:
            return 0
        params = [updates[k] for k in allowed if k in updates]
        sql = f"update mediator_proposals set {', '.join(sets)} where negotiation_id=?"
        params.append(negotiation_id)
        if expected_status is not None:
            sql += " and status=?"
            params.append(expected_status)
        with self._using(conn) as c:
            cur = c.execute(sql, params)
        return cur.rowcount

    def expire_mediator_proposals(self, now: str) -> int:
        """Mark every pending proposal whose deadline has passed as expired."""
        with self._using(None) as conn:
            cur = conn.execute(
                "update mediator_proposals set status='expired' where deadline < ? and status='pending'",
                (now,),
            )
        return cur.rowcount


def get_db(db_path: str = None) -> Database:
    """Get database instance."""
    return Database(db_path)
