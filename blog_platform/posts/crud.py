from __future__ import annotations

from typing import Any, Dict, List, Optional

from blog_platform.db import insert_returning_id
from blog_platform.util.time import utcnow_iso


# Columns a partial update may touch (request field -> column).
UPDATABLE_COLUMNS = ("title", "content", "image", "category_id", "published")


def public_post(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    category_id = d.get("category_id")
    return {
        "id": int(d["id"]),
        "userId": int(d["user_id"]),
        "title": d["title"],
        "content": d["content"],
        "image": d.get("image") or "",
        "categoryId": int(category_id) if category_id is not None else None,
        "published": bool(d.get("published") or 0),
        "createdAt": d["created_at"],
        "updatedAt": d["updated_at"],
    }


def list_posts_for_user(conn: Any, user_id: int) -> List[Dict[str, Any]]:
    """All posts owned by `user_id`, newest first, with user/category summaries."""
    rows = conn.execute(
        """
        SELECT p.*,
               u.name AS user_name, u.email AS user_email,
               c.name AS category_name
        FROM posts p
        JOIN users u ON u.id = p.user_id
        LEFT JOIN categories c ON c.id = p.category_id
        WHERE p.user_id=?
        ORDER BY p.id DESC
        """,
        (int(user_id),),
    ).fetchall()

    out: List[Dict[str, Any]] = []
    for r in rows:
        d = dict(r)
        post = public_post(d)
        post["user"] = {"id": post["userId"], "name": d["user_name"], "email": d["user_email"]}
        post["category"] = (
            {"id": post["categoryId"], "name": d["category_name"]}
            if post["categoryId"] is not None
            else None
        )
        out.append(post)
    return out


def get_post(conn: Any, *, post_id: int, user_id: int) -> Optional[Any]:
    # Always filter by owner as well as id.
    return conn.execute(
        "SELECT * FROM posts WHERE id=? AND user_id=?",
        (int(post_id), int(user_id)),
    ).fetchone()


def insert_post(
    conn: Any,
    *,
    user_id: int,
    title: str,
    content: str,
    image: str = "",
    category_id: int | None = None,
    published: bool = False,
) -> Any:
    now = utcnow_iso()
    post_id = insert_returning_id(
        conn,
        """
        INSERT INTO posts (user_id, title, content, image, category_id, published, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?)
        """,
        (int(user_id), title, content, image or "", category_id, 1 if published else 0, now, now),
    )
    row = get_post(conn, post_id=post_id, user_id=user_id)
    assert row is not None
    return row


def update_post(conn: Any, *, post_id: int, user_id: int, fields: Dict[str, Any]) -> Optional[Any]:
    """Apply a partial update. Only keys present in `fields` are written."""
    # Build dynamic SQL so we only touch provided fields.
    sets: list[tuple[str, Any]] = []
    for col in UPDATABLE_COLUMNS:
        if col not in fields:
            continue
        v = fields[col]
        if col == "published":
            v = 1 if v else 0
        sets.append((col, v))

    if sets:
        sets.append(("updated_at", utcnow_iso()))
        sql = ", ".join([f"{k}=?" for k, _ in sets])
        params = [v for _, v in sets] + [int(post_id), int(user_id)]
        conn.execute(f"UPDATE posts SET {sql} WHERE id=? AND user_id=?", params)

    return get_post(conn, post_id=post_id, user_id=user_id)


def delete_post(conn: Any, *, post_id: int, user_id: int) -> int:
    cur = conn.execute(
        "DELETE FROM posts WHERE id=? AND user_id=?",
        (int(post_id), int(user_id)),
    )
    return int(cur.rowcount or 0)


def get_category(conn: Any, category_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT id, name FROM categories WHERE id=?",
        (int(category_id),),
    ).fetchone()


def list_categories(conn: Any) -> List[Dict[str, Any]]:
    rows = conn.execute("SELECT id, name FROM categories ORDER BY id").fetchall()
    return [{"id": int(r["id"]), "name": r["name"]} for r in rows]


def insert_category(conn: Any, name: str) -> Dict[str, Any]:
    category_id = insert_returning_id(conn, "INSERT INTO categories (name) VALUES (?)", (name,))
    return {"id": category_id, "name": name}
