"""Image intake for post attachments.

Uploads are stored flat under one managed directory as `{random_id}-{original_name}`
and exposed to clients as `/uploads/{random_id}-{original_name}`.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple

from blog_platform.result import ErrorKind, ServiceResult


PUBLIC_PREFIX = "/uploads/"

# Longest original name kept in a stored filename (filesystems cap names at 255 bytes).
MAX_NAME_CHARS = 200

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

_TYPE_LABELS = {
    "image/jpeg": "jpeg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def _debug(msg: str) -> None:
    print(f"[images] {msg}")


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded file, already read into memory by the API layer."""

    filename: str
    content_type: str
    data: bytes


def safe_filename(filename: str) -> str:
    """Reduce a client filename to a URL- and filesystem-safe name.

    Directory components are dropped, characters outside [A-Za-z0-9._-] become "_",
    and long stems are cut so the result stays within MAX_NAME_CHARS (extension kept).
    """
    name = _UNSAFE_NAME_CHARS.sub("_", Path(filename or "").name).strip("._") or "upload"
    if len(name) <= MAX_NAME_CHARS:
        return name
    suffix = Path(name).suffix
    if len(suffix) > 16:
        suffix = ""
    return name[: MAX_NAME_CHARS - len(suffix)] + suffix


def _allowed_types_message(allowed: Tuple[str, ...]) -> str:
    labels = [_TYPE_LABELS.get(t, t) for t in allowed]
    if len(labels) == 1:
        return f"Image must be a {labels[0]} file"
    return f"Image must be a {', '.join(labels[:-1])} or {labels[-1]} file"


def _max_size_message(max_bytes: int) -> str:
    mib = max_bytes / (1024 * 1024)
    size = f"{mib:g}MB" if mib >= 1 else f"{max_bytes} bytes"
    return f"Image must be at most {size}"


class ImageIntake:
    """Validates uploaded images and writes them to the upload directory."""

    def __init__(self, *, upload_dir: str | Path, max_bytes: int, allowed_types: Iterable[str]):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = int(max_bytes)
        self.allowed_types = tuple(t.lower() for t in allowed_types)

    def ensure_dir(self) -> None:
        """Create the upload directory if missing. Called once at startup."""
        if not self.upload_dir.exists():
            _debug(f"Creating upload dir {self.upload_dir}")
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def validate(self, upload: ImageUpload) -> Optional[str]:
        """Return a rejection message, or None if the upload is acceptable."""
        ctype = (upload.content_type or "").split(";")[0].strip().lower()
        if ctype not in self.allowed_types:
            return _allowed_types_message(self.allowed_types)
        if len(upload.data) > self.max_bytes:
            return _max_size_message(self.max_bytes)
        return None

    def accept(self, upload: ImageUpload) -> ServiceResult:
        """Validate and persist an upload. On success `data` is the public path."""
        rejection = self.validate(upload)
        if rejection is not None:
            return ServiceResult.fail(ErrorKind.VALIDATION, rejection)

        stored_name = f"{secrets.token_urlsafe(15)}-{safe_filename(upload.filename)}"
        (self.upload_dir / stored_name).write_bytes(upload.data)
        return ServiceResult.ok("Image stored", f"{PUBLIC_PREFIX}{stored_name}")

    def resolve(self, filename: str) -> Optional[Path]:
        """Map a public filename back to a stored file, or None if absent."""
        name = Path(filename or "").name
        if not name or name != filename:
            return None
        path = self.upload_dir / name
        if not path.is_file():
            return None
        return path
