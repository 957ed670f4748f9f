from __future__ import annotations

from typing import Any, Dict, Optional

from blog_platform.db import insert_returning_id
from blog_platform.util.time import utcnow_iso


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    return {
        "id": int(d["id"]),
        "name": d["name"],
        "email": d["email"],
        "createdAt": d["created_at"],
        "updatedAt": d["updated_at"],
    }


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE id=?",
        (int(user_id),),
    ).fetchone()


def insert_user(conn: Any, *, name: str, email: str, password_hash: str) -> Any:
    """Insert a user row and return it. Callers check email uniqueness first."""
    now = utcnow_iso()
    user_id = insert_returning_id(
        conn,
        """
        INSERT INTO users (name, email, password, created_at, updated_at)
        VALUES (?,?,?,?,?)
        """,
        (name, normalize_email(email), password_hash, now, now),
    )
    row = get_user_by_id(conn, user_id)
    assert row is not None
    return row
