"""Pulling feeds into the database as posts."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterable

from .database import DatabaseError
from .models import Feed, Post, new_id, utc_now
from .rss import FeedFetchError, RSSFeed, fetch_feed

if TYPE_CHECKING:
    from .commands import State

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], RSSFeed]

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_RFC1123 = re.compile(
    r"([A-Za-z]{3}), (\d{2}) ([A-Za-z]{3}) (\d{4}) (\d{1,2}):(\d{2}):(\d{2}) ([A-Z]{3,5})"
)


def _parse_rfc1123(value: str) -> datetime:
    match = _RFC1123.fullmatch(value)
    if match is None:
        raise ValueError("does not match 'Mon, 02 Jan 2006 15:04:05 MST'")
    weekday, day, month, year, hour, minute, second, _zone = match.groups()
    if weekday.title() not in _WEEKDAYS:
        raise ValueError(f"unknown day name {weekday!r}")
    if month.title() not in _MONTHS:
        raise ValueError(f"unknown month name {month!r}")
    return datetime(
        int(year),
        _MONTHS.index(month.title()) + 1,
        int(day),
        int(hour),
        int(minute),
        int(second),
        tzinfo=timezone.utc,
    )


def parse_pub_date(value: str, now: datetime | None = None) -> datetime:
    """Parse an RFC 1123 date with a zone name; fall back to ``now`` (or the current time)."""
    try:
        return _parse_rfc1123(value)
    except ValueError as exc:
        logger.warning("error parsing pubDate: %s, error: %s", value, exc)
        return now if now is not None else utc_now()


def scrape_feed(state: State, feed: Feed, fetch: Fetcher = fetch_feed) -> list[Post]:
    """Mark ``feed`` fetched, download it and store its items; return the new posts."""
    try:
        state.db.mark_feed_fetched(feed.id, utc_now())
    except DatabaseError as exc:
        logger.error("error marking feed fetched: %s", exc)
        return []

    try:
        rss = fetch(feed.url)
    except FeedFetchError as exc:
        logger.error("error fetching feed: %s", exc)
        return []

    created: list[Post] = []
    for item in rss.items:
        stamp = utc_now()
        post = Post(
            id=new_id(),
            created_at=stamp,
            updated_at=stamp,
            title=item.title,
            url=item.link,
            description=item.description or None,
            published_at=parse_pub_date(item.pub_date),
            feed_id=feed.id,
        )
        try:
            stored = state.db.create_post(post)
        except DatabaseError as exc:
            logger.error("error creating post: %s", exc)
            continue
        if stored is None:
            logger.info("Duplicate post URL, skipping: %s", item.link)
            continue
        logger.info("Created post: ID: %s, Title: %s, URL: %s", stored.id, stored.title, stored.url)
        created.append(stored)
    return created


def scrape_feeds(state: State, feeds: Iterable[Feed], fetch: Fetcher = fetch_feed) -> list[Post]:
    """Scrape ``feeds`` concurrently, one worker each, and wait for all of them."""
    feeds = list(feeds)
    if not feeds:
        return []
    with ThreadPoolExecutor(max_workers=len(feeds)) as pool:
        results = list(pool.map(lambda feed: scrape_feed(state, feed, fetch), feeds))
    return [post for posts in results for post in posts]