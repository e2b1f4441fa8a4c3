from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import Credential


SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS credentials (
  credential_id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  login TEXT NOT NULL UNIQUE,
  password TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_credentials_name ON credentials(name);
"""


class CredentialStoreError(RuntimeError):
    pass


class DuplicateKeyError(CredentialStoreError):
    pass


class CredentialNotFound(CredentialStoreError):
    pass


def _now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()


def _from_row(row: sqlite3.Row) -> Credential:
    return Credential(
        credential_id=int(row["credential_id"]),
        name=row["name"],
        login=row["login"],
        password=row["password"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def create_credential(conn: sqlite3.Connection, *, name: str, login: str, password: str) -> Credential:
    """
    Insert a credential. Login is the unique key; a clash raises DuplicateKeyError
    and leaves the table untouched. Values are stored as received.
    """
    if not name or not login or not password:
        raise ValueError("name, login and password must be non-empty")
    now = _now_iso()
    try:
        cur = conn.execute(
            """
            INSERT INTO credentials (name, login, password, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (name, login, password, now, now),
        )
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise DuplicateKeyError(f"credential with login {login!r} already exists") from e
    conn.commit()
    return Credential(
        credential_id=int(cur.lastrowid),
        name=name,
        login=login,
        password=password,
        created_at=now,
        updated_at=now,
    )


def find_all(conn: sqlite3.Connection) -> List[Credential]:
    rows = conn.execute(
        """
        SELECT *
        FROM credentials
        ORDER BY name ASC, credential_id ASC
        """
    ).fetchall()
    return [_from_row(r) for r in rows]


def find_by_name_or_login(conn: sqlite3.Connection, query: str) -> Credential:
    row = conn.execute(
        """
        SELECT *
        FROM credentials
        WHERE name = ? OR login = ?
        ORDER BY credential_id ASC
        LIMIT 1
        """,
        (query, query),
    ).fetchone()
    if row is None:
        raise CredentialNotFound(f"no credential with name or login {query!r}")
    return _from_row(row)


def get_by_login(conn: sqlite3.Connection, login: str) -> Optional[Credential]:
    row = conn.execute(
        """
        SELECT *
        FROM credentials
        WHERE login = ?
        LIMIT 1
        """,
        (login,),
    ).fetchone()
    return _from_row(row) if row is not None else None


def delete_by_login(conn: sqlite3.Connection, login: str) -> bool:
    cur = conn.execute("DELETE FROM credentials WHERE login = ?", (login,))
    conn.commit()
    return cur.rowcount > 0


def delete_by_id(conn: sqlite3.Connection, credential_id: int) -> bool:
    cur = conn.execute("DELETE FROM credentials WHERE credential_id = ?", (int(credential_id),))
    conn.commit()
    return cur.rowcount > 0


def count_credentials(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) AS c FROM credentials").fetchone()
    return int((row or {"c": 0})["c"])
