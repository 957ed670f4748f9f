from __future__ import annotations

from typing import Any, Dict, Optional

from blog_platform.auth.security import SessionClaims
from blog_platform.db import connect
from blog_platform.result import ErrorKind, ServiceResult, service_operation

from .crud import (
    delete_post,
    get_category,
    get_post,
    insert_post,
    list_categories,
    list_posts_for_user,
    public_post,
    update_post,
)
from .images import ImageIntake, ImageUpload


NOT_FOUND_MESSAGE = "Data not found!"
CATEGORY_NOT_FOUND_MESSAGE = "Category not found"


def _debug(msg: str) -> None:
    print(f"[posts] {msg}")


def parse_post_id(raw: Any) -> Optional[int]:
    """Parse a path id; anything that is not a plain integer is treated as absent."""
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


class PostService:
    """CRUD over posts, always scoped to the session user.

    The owner id comes from the verified session claims, never from the request body.
    """

    def __init__(self, *, db_dsn: str, images: ImageIntake):
        self._db_dsn = db_dsn
        self._images = images

    @property
    def max_upload_bytes(self) -> int:
        return self._images.max_bytes

    @service_operation("posts")
    def list(self, session: SessionClaims) -> ServiceResult:
        with connect(self._db_dsn) as conn:
            posts = list_posts_for_user(conn, session.id)
        return ServiceResult.ok("List Data Posts!", posts)

    @service_operation("posts")
    def get(self, session: SessionClaims, post_id: Any) -> ServiceResult:
        pid = parse_post_id(post_id)
        if pid is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)

        with connect(self._db_dsn) as conn:
            row = get_post(conn, post_id=pid, user_id=session.id)

        if row is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)
        return ServiceResult.ok("Get Data Post!", public_post(row))

    @service_operation("posts")
    def create(
        self,
        session: SessionClaims,
        *,
        title: str,
        content: str,
        image: ImageUpload | None = None,
        category_id: int | None = None,
        published: bool | None = None,
    ) -> ServiceResult:
        with connect(self._db_dsn) as conn:
            if category_id is not None and get_category(conn, category_id) is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, CATEGORY_NOT_FOUND_MESSAGE)

            image_url = ""
            if image is not None:
                stored = self._images.accept(image)
                if not stored.success:
                    return stored
                image_url = stored.data

            row = insert_post(
                conn,
                user_id=session.id,
                title=title,
                content=content,
                image=image_url,
                category_id=category_id,
                published=bool(published),
            )

        post = public_post(row)
        _debug(f"created post id={post['id']} user_id={session.id}")
        return ServiceResult.ok("Create Data Post!", post)

    @service_operation("posts")
    def update(
        self,
        session: SessionClaims,
        post_id: Any,
        *,
        title: str | None = None,
        content: str | None = None,
        image: ImageUpload | None = None,
        category_id: int | None = None,
        published: bool | None = None,
    ) -> ServiceResult:
        """Partial update: arguments left as None keep their stored value.

        A replaced image file is left on disk.
        """
        pid = parse_post_id(post_id)
        if pid is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)

        with connect(self._db_dsn) as conn:
            if get_post(conn, post_id=pid, user_id=session.id) is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)

            if category_id is not None and get_category(conn, category_id) is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, CATEGORY_NOT_FOUND_MESSAGE)

            fields: Dict[str, Any] = {}
            if title is not None:
                fields["title"] = title
            if content is not None:
                fields["content"] = content
            if category_id is not None:
                fields["category_id"] = category_id
            if published is not None:
                fields["published"] = published
            if image is not None:
                stored = self._images.accept(image)
                if not stored.success:
                    return stored
                fields["image"] = stored.data

            row = update_post(conn, post_id=pid, user_id=session.id, fields=fields)

        if row is None:
            # Deleted between the ownership check and the write.
            return ServiceResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)
        return ServiceResult.ok("Update Data Post!", public_post(row))

    @service_operation("posts")
    def delete(self, session: SessionClaims, post_id: Any) -> ServiceResult:
        pid = parse_post_id(post_id)
        if pid is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)

        with connect(self._db_dsn) as conn:
            row = get_post(conn, post_id=pid, user_id=session.id)
            if row is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)
            delete_post(conn, post_id=pid, user_id=session.id)

        _debug(f"deleted post id={pid} user_id={session.id}")
        return ServiceResult.ok("Delete Data Post!", public_post(row))

    @service_operation("posts")
    def categories(self) -> ServiceResult:
        with connect(self._db_dsn) as conn:
            cats = list_categories(conn)
        return ServiceResult.ok("List Data Categories!", cats)
