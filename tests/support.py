"""Shared fixtures for the unittest suites."""

from __future__ import annotations

import tempfile
from pathlib import Path

from blog_platform.config import Config
from blog_platform.db import connect, init_db
from blog_platform.posts.crud import insert_category


TEST_SECRET = "test-secret"

# Smallest byte strings that look like the real formats.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


def make_config(tmp: str | Path, **overrides) -> Config:
    tmp = Path(tmp)
    values = dict(
        DB_DSN=str(tmp / "blog.sqlite"),
        UPLOAD_DIR=str(tmp / "uploads"),
        UPLOAD_MAX_BYTES=5 * 1024 * 1024,
        UPLOAD_ALLOWED_TYPES=("image/jpeg", "image/png", "image/gif"),
        AUTH_JWT_SECRET=TEST_SECRET,
        AUTH_TOKEN_EXPIRE_MINUTES=7 * 24 * 60,
        AUTH_COOKIE_NAME="auth",
        AUTH_COOKIE_SECURE=False,
        CORS_ALLOW_ORIGINS="",
    )
    values.update(overrides)
    return Config(**values)


class TempWorkspace:
    """A temporary directory holding a fresh SQLite DB and upload dir."""

    def __init__(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name)
        self.cfg = make_config(self.path)

    def init_db(self) -> None:
        init_db(self.cfg.DB_DSN)

    def add_category(self, name: str) -> int:
        with connect(self.cfg.DB_DSN) as conn:
            return int(insert_category(conn, name)["id"])

    def count_rows(self, table: str) -> int:
        with connect(self.cfg.DB_DSN) as conn:
            return int(conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()["n"])

    def cleanup(self) -> None:
        self._tmp.cleanup()
