"""
SQLite repositories.

sqlite3 is synchronous; every public method runs its statement on a worker
thread via asyncio.to_thread and opens a short-lived connection, so callers on
the event loop never block. sqlite3 errors surface as UpstreamStoreError.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar

from src.core.ports.db import LayoutUpdate, PostQuery
from src.domain.entities import (
    Comment,
    CommentLike,
    Post,
    PostImage,
    Profile,
    Tag,
)
from src.domain.errors import BulkUpsertUnsupported, UpstreamStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _ts(value: datetime | None) -> str | None:
    """Fixed-width UTC ISO text so lexical order matches time order."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class _SQLiteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    async def _call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            logger.error("SQLite %s failed: %s", operation, e)
            raise UpstreamStoreError(operation, str(e)) from e

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        conn = self._get_conn()
        try:
            return conn.execute(sql, tuple(params)).fetchall()
        finally:
            conn.close()

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        conn = self._get_conn()
        try:
            return conn.execute(sql, tuple(params)).fetchone()
        finally:
            conn.close()

    def _write(self, sql: str, params: Sequence[Any] = ()) -> tuple[int, int]:
        """Run one statement in its own transaction; returns (lastrowid, rowcount)."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(sql, tuple(params))
            conn.commit()
            return cursor.lastrowid or 0, cursor.rowcount
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _write_many(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        conn = self._get_conn()
        try:
            conn.executemany(sql, [tuple(r) for r in rows])
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------

_POST_COLUMNS = (
    "title, description, category, image_url, status, scheduled_for, "
    "published_at, author_id, layout_variant, grid_class, created_at"
)


def _post_params(post: Post) -> tuple[Any, ...]:
    return (
        post.title,
        post.description,
        post.category,
        post.image_url,
        post.status,
        _ts(post.scheduled_for),
        _ts(post.published_at),
        post.author_id,
        post.layout_variant,
        post.grid_class,
        _ts(post.created_at),
    )


class SQLitePostRepo(_SQLiteRepo):
    async def get_by_id(self, post_id: int) -> Post | None:
        row = await self._call(
            "get_post", self._fetch_one, "SELECT * FROM posts WHERE id = ?", (post_id,)
        )
        return Post.model_validate(row) if row else None

    async def insert(self, post: Post) -> Post:
        new_id, _ = await self._call(
            "insert_post",
            self._write,
            f"INSERT INTO posts ({_POST_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            _post_params(post),
        )
        return post.model_copy(update={"id": new_id})

    async def update(self, post: Post) -> Post:
        await self._call(
            "update_post",
            self._write,
            """
            UPDATE posts SET
                title = ?, description = ?, category = ?, image_url = ?, status = ?,
                scheduled_for = ?, published_at = ?, author_id = ?,
                layout_variant = ?, grid_class = ?, created_at = ?
            WHERE id = ?
            """,
            (*_post_params(post), post.id),
        )
        return post

    async def delete(self, post_id: int) -> None:
        await self._call("delete_post", self._write, "DELETE FROM posts WHERE id = ?", (post_id,))

    async def count(self) -> int:
        row = await self._call("count_posts", self._fetch_one, "SELECT COUNT(*) AS n FROM posts")
        return int(row["n"]) if row else 0

    async def list(self, query: PostQuery) -> tuple[list[Post], int]:
        clauses: list[str] = []
        params: list[Any] = []

        search = query.search.strip()
        if search:
            pattern = f"%{_escape_like(search)}%"
            clauses.append(
                "(title LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\' "
                "OR category LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern, pattern])
        if query.statuses is not None:
            if not query.statuses:
                return [], 0
            clauses.append(f"status IN ({', '.join('?' for _ in query.statuses)})")
            params.extend(query.statuses)
        if query.category:
            clauses.append("category = ?")
            params.append(query.category)
        if query.tag_slug:
            clauses.append(
                "id IN (SELECT pt.post_id FROM post_tags pt "
                "JOIN tags t ON t.id = pt.tag_id WHERE t.slug = ?)"
            )
            params.append(query.tag_slug)
        if query.author_id:
            clauses.append("author_id = ?")
            params.append(query.author_id)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        def _list() -> tuple[list[dict[str, Any]], int]:
            conn = self._get_conn()
            try:
                total = conn.execute(
                    f"SELECT COUNT(*) AS n FROM posts {where}", tuple(params)
                ).fetchone()["n"]
                rows = conn.execute(
                    f"SELECT * FROM posts {where} "
                    "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                    (*params, query.limit, query.offset),
                ).fetchall()
                return rows, int(total)
            finally:
                conn.close()

        rows, total = await self._call("list_posts", _list)
        return [Post.model_validate(r) for r in rows], total

    async def list_all_newest_first(self) -> list[Post]:
        rows = await self._call(
            "list_all_posts",
            self._fetch_all,
            "SELECT * FROM posts ORDER BY created_at DESC, id DESC",
        )
        return [Post.model_validate(r) for r in rows]

    async def list_due(self, now: datetime, limit: int) -> list[Post]:
        rows = await self._call(
            "list_due_posts",
            self._fetch_all,
            """
            SELECT * FROM posts
            WHERE status = 'scheduled' AND scheduled_for IS NOT NULL AND scheduled_for <= ?
            ORDER BY scheduled_for ASC LIMIT ?
            """,
            (_ts(now), limit),
        )
        return [Post.model_validate(r) for r in rows]

    async def promote_if_scheduled(self, post_id: int, now: datetime) -> Post | None:
        _, changed = await self._call(
            "promote_post",
            self._write,
            """
            UPDATE posts SET status = 'published', published_at = ?, scheduled_for = NULL
            WHERE id = ? AND status = 'scheduled'
              AND scheduled_for IS NOT NULL AND scheduled_for <= ?
            """,
            (_ts(now), post_id, _ts(now)),
        )
        if changed == 0:
            return None
        return await self.get_by_id(post_id)

    async def bulk_upsert_layouts(self, updates: Sequence[LayoutUpdate]) -> None:
        rows = [(u.layout_variant, u.grid_class, u.post_id) for u in updates]
        try:
            await asyncio.to_thread(
                self._write_many,
                "UPDATE posts SET layout_variant = ?, grid_class = ? WHERE id = ?",
                rows,
            )
        except sqlite3.Error as e:
            raise BulkUpsertUnsupported(str(e)) from e

    async def update_layout(self, update: LayoutUpdate) -> None:
        await self._call(
            "update_layout",
            self._write,
            "UPDATE posts SET layout_variant = ?, grid_class = ? WHERE id = ?",
            (update.layout_variant, update.grid_class, update.post_id),
        )

    async def set_cover(self, post_id: int, image_url: str | None) -> None:
        await self._call(
            "set_cover",
            self._write,
            "UPDATE posts SET image_url = ? WHERE id = ?",
            (image_url, post_id),
        )

    async def list_cover_urls(self) -> list[str]:
        rows = await self._call(
            "list_cover_urls",
            self._fetch_all,
            "SELECT image_url FROM posts WHERE image_url IS NOT NULL",
        )
        return [r["image_url"] for r in rows]


# -----------------------------------------------------------------------------
# Gallery images
# -----------------------------------------------------------------------------


class SQLiteImageRepo(_SQLiteRepo):
    async def list_for_post(self, post_id: int) -> list[PostImage]:
        rows = await self._call(
            "list_images",
            self._fetch_all,
            "SELECT * FROM post_images WHERE post_id = ? ORDER BY sort_order ASC, id ASC",
            (post_id,),
        )
        return [PostImage.model_validate(r) for r in rows]

    async def get(self, image_id: int) -> PostImage | None:
        row = await self._call(
            "get_image", self._fetch_one, "SELECT * FROM post_images WHERE id = ?", (image_id,)
        )
        return PostImage.model_validate(row) if row else None

    async def insert(self, image: PostImage) -> PostImage:
        new_id, _ = await self._call(
            "insert_image",
            self._write,
            """
            INSERT INTO post_images
            (post_id, image_url, sort_order, focal_point, alt_text, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                image.post_id,
                image.image_url,
                image.sort_order,
                image.focal_point,
                image.alt_text,
                _ts(image.created_at),
            ),
        )
        return image.model_copy(update={"id": new_id})

    async def update(self, image: PostImage) -> PostImage:
        await self._call(
            "update_image",
            self._write,
            """
            UPDATE post_images SET image_url = ?, sort_order = ?, focal_point = ?, alt_text = ?
            WHERE id = ?
            """,
            (image.image_url, image.sort_order, image.focal_point, image.alt_text, image.id),
        )
        return image

    async def set_sort_orders(self, orders: Sequence[tuple[int, int]]) -> None:
        if not orders:
            return
        await self._call(
            "reorder_images",
            self._write_many,
            "UPDATE post_images SET sort_order = ? WHERE id = ?",
            [(order, image_id) for image_id, order in orders],
        )

    async def delete(self, image_id: int) -> None:
        await self._call(
            "delete_image", self._write, "DELETE FROM post_images WHERE id = ?", (image_id,)
        )

    async def list_all_urls(self) -> list[str]:
        rows = await self._call(
            "list_image_urls", self._fetch_all, "SELECT image_url FROM post_images"
        )
        return [r["image_url"] for r in rows]


# -----------------------------------------------------------------------------
# Tags
# -----------------------------------------------------------------------------


class SQLiteTagRepo(_SQLiteRepo):
    async def list_all(self) -> list[Tag]:
        rows = await self._call(
            "list_tags", self._fetch_all, "SELECT * FROM tags ORDER BY name COLLATE NOCASE ASC"
        )
        return [Tag.model_validate(r) for r in rows]

    async def get_by_slug(self, slug: str) -> Tag | None:
        row = await self._call(
            "get_tag", self._fetch_one, "SELECT * FROM tags WHERE slug = ?", (slug,)
        )
        return Tag.model_validate(row) if row else None

    async def get_many(self, tag_ids: Sequence[int]) -> list[Tag]:
        if not tag_ids:
            return []
        placeholders = ", ".join("?" for _ in tag_ids)
        rows = await self._call(
            "get_tags",
            self._fetch_all,
            f"SELECT * FROM tags WHERE id IN ({placeholders})",
            tuple(tag_ids),
        )
        return [Tag.model_validate(r) for r in rows]

    async def insert(self, tag: Tag) -> Tag:
        new_id, _ = await self._call(
            "insert_tag",
            self._write,
            "INSERT INTO tags (name, slug, created_at) VALUES (?, ?, ?)",
            (tag.name, tag.slug, _ts(tag.created_at)),
        )
        return tag.model_copy(update={"id": new_id})

    async def list_for_post(self, post_id: int) -> list[Tag]:
        rows = await self._call(
            "list_post_tags",
            self._fetch_all,
            """
            SELECT t.* FROM tags t JOIN post_tags pt ON pt.tag_id = t.id
            WHERE pt.post_id = ? ORDER BY t.name COLLATE NOCASE ASC
            """,
            (post_id,),
        )
        return [Tag.model_validate(r) for r in rows]

    async def delete_post_tags(self, post_id: int) -> None:
        await self._call(
            "delete_post_tags", self._write, "DELETE FROM post_tags WHERE post_id = ?", (post_id,)
        )

    async def insert_post_tags(self, post_id: int, tag_ids: Sequence[int]) -> None:
        if not tag_ids:
            return
        await self._call(
            "insert_post_tags",
            self._write_many,
            "INSERT OR IGNORE INTO post_tags (post_id, tag_id) VALUES (?, ?)",
            [(post_id, tag_id) for tag_id in tag_ids],
        )


# -----------------------------------------------------------------------------
# Comments
# -----------------------------------------------------------------------------


class SQLiteCommentRepo(_SQLiteRepo):
    async def list_for_post(self, post_id: int) -> list[Comment]:
        rows = await self._call(
            "list_comments",
            self._fetch_all,
            "SELECT * FROM comments WHERE post_id = ? ORDER BY created_at DESC, id DESC",
            (post_id,),
        )
        return [Comment.model_validate(r) for r in rows]

    async def get(self, comment_id: int) -> Comment | None:
        row = await self._call(
            "get_comment", self._fetch_one, "SELECT * FROM comments WHERE id = ?", (comment_id,)
        )
        return Comment.model_validate(row) if row else None

    async def insert(self, comment: Comment) -> Comment:
        new_id, _ = await self._call(
            "insert_comment",
            self._write,
            """
            INSERT INTO comments (post_id, user_id, content, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                comment.post_id,
                comment.user_id,
                comment.content,
                _ts(comment.created_at),
                _ts(comment.updated_at),
            ),
        )
        return comment.model_copy(update={"id": new_id})

    async def delete(self, comment_id: int) -> None:
        await self._call(
            "delete_comment", self._write, "DELETE FROM comments WHERE id = ?", (comment_id,)
        )

    async def like_counts(self, comment_ids: Sequence[int]) -> dict[int, int]:
        if not comment_ids:
            return {}
        placeholders = ", ".join("?" for _ in comment_ids)
        rows = await self._call(
            "count_likes",
            self._fetch_all,
            f"""
            SELECT comment_id, COUNT(*) AS n FROM comment_likes
            WHERE comment_id IN ({placeholders}) GROUP BY comment_id
            """,
            tuple(comment_ids),
        )
        return {r["comment_id"]: int(r["n"]) for r in rows}

    async def liked_by(self, user_id: str, comment_ids: Sequence[int]) -> set[int]:
        if not comment_ids:
            return set()
        placeholders = ", ".join("?" for _ in comment_ids)
        rows = await self._call(
            "list_user_likes",
            self._fetch_all,
            f"SELECT comment_id FROM comment_likes WHERE user_id = ? "
            f"AND comment_id IN ({placeholders})",
            (user_id, *comment_ids),
        )
        return {r["comment_id"] for r in rows}

    async def get_like(self, comment_id: int, user_id: str) -> CommentLike | None:
        row = await self._call(
            "get_like",
            self._fetch_one,
            "SELECT * FROM comment_likes WHERE comment_id = ? AND user_id = ?",
            (comment_id, user_id),
        )
        return CommentLike.model_validate(row) if row else None

    async def insert_like(self, like: CommentLike) -> CommentLike:
        new_id, _ = await self._call(
            "insert_like",
            self._write,
            "INSERT INTO comment_likes (comment_id, user_id, created_at) VALUES (?, ?, ?)",
            (like.comment_id, like.user_id, _ts(like.created_at)),
        )
        return like.model_copy(update={"id": new_id})

    async def delete_like(self, like_id: int) -> None:
        await self._call(
            "delete_like", self._write, "DELETE FROM comment_likes WHERE id = ?", (like_id,)
        )


# -----------------------------------------------------------------------------
# Profiles
# -----------------------------------------------------------------------------


class SQLiteProfileRepo(_SQLiteRepo):
    async def get(self, user_id: str) -> Profile | None:
        row = await self._call(
            "get_profile", self._fetch_one, "SELECT * FROM profiles WHERE id = ?", (user_id,)
        )
        return Profile.model_validate(row) if row else None

    async def save(self, profile: Profile) -> Profile:
        await self._call(
            "save_profile",
            self._write,
            """
            INSERT INTO profiles (id, username, avatar_url, role) VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                username=excluded.username,
                avatar_url=excluded.avatar_url,
                role=excluded.role
            """,
            (profile.id, profile.username, profile.avatar_url, profile.role),
        )
        return profile

    async def list_avatar_urls(self) -> list[str]:
        rows = await self._call(
            "list_avatar_urls",
            self._fetch_all,
            "SELECT avatar_url FROM profiles WHERE avatar_url IS NOT NULL",
        )
        return [r["avatar_url"] for r in rows]
