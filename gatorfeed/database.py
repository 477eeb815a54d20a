"""Storage for users, feeds, follows and posts in SQLite."""

from __future__ import annotations

import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Sequence

from .models import Feed, FeedFollow, FeedFollowRow, Post, PostWithFeed, User

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT NOT NULL,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "users.id, users.created_at, users.updated_at, users.name"
_FEED_COLUMNS = (
    "feeds.id, feeds.created_at, feeds.updated_at, feeds.name, feeds.url, "
    "feeds.user_id, feeds.last_fetched_at"
)
_FOLLOW_ROW_QUERY = """
SELECT feed_follows.id, feed_follows.created_at, feed_follows.updated_at,
       feed_follows.user_id, feed_follows.feed_id,
       feeds.name, users.name
FROM feed_follows
INNER JOIN feeds ON feed_follows.feed_id = feeds.id
INNER JOIN users ON feed_follows.user_id = users.id
"""


class DatabaseError(Exception):
    """A database operation failed."""


class NotFoundError(DatabaseError):
    """A lookup matched no row."""


def _to_text(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="microseconds")


def _from_text(text: str) -> datetime:
    return datetime.fromisoformat(text)


def _user(row: Sequence) -> User:
    return User(uuid.UUID(row[0]), _from_text(row[1]), _from_text(row[2]), row[3])


def _feed(row: Sequence) -> Feed:
    return Feed(
        id=uuid.UUID(row[0]),
        created_at=_from_text(row[1]),
        updated_at=_from_text(row[2]),
        name=row[3],
        url=row[4],
        user_id=uuid.UUID(row[5]),
        last_fetched_at=_from_text(row[6]) if row[6] is not None else None,
    )


def _follow_row(row: Sequence) -> FeedFollowRow:
    return FeedFollowRow(
        id=uuid.UUID(row[0]),
        created_at=_from_text(row[1]),
        updated_at=_from_text(row[2]),
        user_id=uuid.UUID(row[3]),
        feed_id=uuid.UUID(row[4]),
        feed_name=row[5],
        user_name=row[6],
    )


def _post_with_feed(row: Sequence) -> PostWithFeed:
    return PostWithFeed(
        id=uuid.UUID(row[0]),
        created_at=_from_text(row[1]),
        updated_at=_from_text(row[2]),
        title=row[3],
        url=row[4],
        description=row[5],
        published_at=_from_text(row[6]),
        feed_id=uuid.UUID(row[7]),
        feed_name=row[8],
    )


def _check_limit(limit: int) -> None:
    if limit < 0:
        raise ValueError(f"limit must not be negative: {limit}")


class Database:
    """Queries over an open SQLite connection; safe to share between threads."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._lock = threading.RLock()
        with self._guard():
            self._conn.execute("PRAGMA foreign_keys = ON")

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise DatabaseError(str(exc)) from exc

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock, self._guard(), self._conn:
            yield self._conn

    def _rows(self, sql: str, params: Sequence = ()) -> list:
        with self._lock, self._guard():
            return self._conn.execute(sql, params).fetchall()

    def _one(self, sql: str, params: Sequence, missing: str):
        rows = self._rows(sql, params)
        if not rows:
            raise NotFoundError(missing)
        return rows[0]

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        with self._lock, self._guard():
            self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        with self._lock, self._guard():
            self._conn.close()

    # users

    def create_user(self, user: User) -> User:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
                (str(user.id), _to_text(user.created_at), _to_text(user.updated_at), user.name),
            )
        return self.get_user_by_id(user.id)

    def get_user(self, name: str) -> User:
        row = self._one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?",
            (name,),
            f"no user named {name!r}",
        )
        return _user(row)

    def get_user_by_id(self, user_id: uuid.UUID) -> User:
        row = self._one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?",
            (str(user_id),),
            f"no user with id {user_id}",
        )
        return _user(row)

    def list_users(self) -> list[User]:
        return [_user(row) for row in self._rows(f"SELECT {_USER_COLUMNS} FROM users")]

    def delete_all_users(self) -> None:
        """Delete every user, and with them their feeds, follows and posts."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM users")

    # feeds

    def create_feed(self, feed: Feed) -> Feed:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id, last_fetched_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    str(feed.id),
                    _to_text(feed.created_at),
                    _to_text(feed.updated_at),
                    feed.name,
                    feed.url,
                    str(feed.user_id),
                    _to_text(feed.last_fetched_at) if feed.last_fetched_at else None,
                ),
            )
        row = self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed.id),), "feed vanished"
        )
        return _feed(row)

    def get_feed_by_url(self, url: str) -> Feed:
        row = self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?",
            (url,),
            f"no feed with url {url!r}",
        )
        return _feed(row)

    def list_feeds(self) -> list[Feed]:
        return [_feed(row) for row in self._rows(f"SELECT {_FEED_COLUMNS} FROM feeds")]

    def get_next_feeds_to_fetch(self, limit: int) -> list[Feed]:
        """Return up to ``limit`` feeds, never-fetched first, then oldest fetch first."""
        _check_limit(limit)
        rows = self._rows(
            f"SELECT {_FEED_COLUMNS} FROM feeds"
            " ORDER BY last_fetched_at IS NOT NULL, last_fetched_at LIMIT ?",
            (limit,),
        )
        return [_feed(row) for row in rows]

    def mark_feed_fetched(self, feed_id: uuid.UUID, fetched_at: datetime) -> None:
        stamp = _to_text(fetched_at)
        with self._transaction() as conn:
            conn.execute(
                "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
                (stamp, stamp, str(feed_id)),
            )

    # follows

    def create_feed_follow(self, follow: FeedFollow) -> FeedFollowRow:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id)"
                " VALUES (?, ?, ?, ?, ?)",
                (
                    str(follow.id),
                    _to_text(follow.created_at),
                    _to_text(follow.updated_at),
                    str(follow.user_id),
                    str(follow.feed_id),
                ),
            )
            row = conn.execute(
                _FOLLOW_ROW_QUERY + " WHERE feed_follows.id = ?", (str(follow.id),)
            ).fetchone()
        return _follow_row(row)

    def delete_feed_follow(self, user_id: uuid.UUID, feed_id: uuid.UUID) -> None:
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM feed_follows WHERE user_id = ? AND feed_id = ?",
                (str(user_id), str(feed_id)),
            )

    def get_feed_follows_for_user(self, user_id: uuid.UUID) -> list[FeedFollowRow]:
        rows = self._rows(
            _FOLLOW_ROW_QUERY + " WHERE feed_follows.user_id = ?", (str(user_id),)
        )
        return [_follow_row(row) for row in rows]

    # posts

    def create_post(self, post: Post) -> Post | None:
        """Store ``post``; return ``None`` if a post with its URL already exists."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO posts (id, created_at, updated_at, title, url, description,"
                " published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
                " ON CONFLICT (url) DO NOTHING",
                (
                    str(post.id),
                    _to_text(post.created_at),
                    _to_text(post.updated_at),
                    post.title,
                    post.url,
                    post.description,
                    _to_text(post.published_at),
                    str(post.feed_id),
                ),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                "SELECT id, created_at, updated_at, title, url, description, published_at,"
                " feed_id FROM posts WHERE id = ?",
                (str(post.id),),
            ).fetchone()
        return Post(
            id=uuid.UUID(row[0]),
            created_at=_from_text(row[1]),
            updated_at=_from_text(row[2]),
            title=row[3],
            url=row[4],
            description=row[5],
            published_at=_from_text(row[6]),
            feed_id=uuid.UUID(row[7]),
        )

    def get_posts_for_user(self, user_id: uuid.UUID, limit: int) -> list[PostWithFeed]:
        """Return the newest posts from feeds the user created, newest first."""
        _check_limit(limit)
        rows = self._rows(
            "SELECT posts.id, posts.created_at, posts.updated_at, posts.title, posts.url,"
            " posts.description, posts.published_at, posts.feed_id, feeds.name"
            " FROM posts"
            " INNER JOIN feeds ON feeds.id = posts.feed_id"
            " INNER JOIN users ON feeds.user_id = users.id"
            " WHERE users.id = ?"
            " ORDER BY posts.published_at DESC"
            " LIMIT ?",
            (str(user_id), limit),
        )
        return [_post_with_feed(row) for row in rows]


def connect(url: str) -> Database:
    """Open the database named by ``url`` and make sure its tables exist.

    Accepted forms: ``""``, ``":memory:"`` or ``"sqlite://"`` for an in-memory
    database, ``"sqlite:///path"``, ``"file:..."`` URIs and plain file paths.
    """
    uri = False
    if url in ("", ":memory:", "sqlite://", "sqlite:///:memory:"):
        target = ":memory:"
    elif url.startswith("sqlite:///"):
        target = url[len("sqlite:///"):]
    elif url.startswith("file:"):
        target, uri = url, True
    elif "://" in url:
        raise DatabaseError(f"unsupported database url: {url}")
    else:
        target = url
    try:
        connection = sqlite3.connect(target, uri=uri, check_same_thread=False)
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc
    database = Database(connection)
    database.create_schema()
    return database