"""Handlers for every command the program understands."""

from __future__ import annotations

import functools
import logging
import re
import time
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from .commands import Command, CommandError, State
from .database import DatabaseError
from .models import Feed, FeedFollow, User, new_id, utc_now
from .scraper import scrape_feeds

logger = logging.getLogger(__name__)

CONCURRENT_SCRAPERS = 3
DEFAULT_BROWSE_LIMIT = 2

UserHandler = Callable[[State, Command, User], Any]

_NS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_MAX_DURATION_NS = 2**63 - 1
_NUMBER = re.compile(r"[0-9]*(?:\.[0-9]*)?")
_UNIT = re.compile(r"[^0-9.]*")
_INTEGER = re.compile(r"[+-]?[0-9]+")


def logged_in(handler: UserHandler) -> Callable[[State, Command], Any]:
    """Wrap ``handler`` so that it receives the currently logged-in user."""

    @functools.wraps(handler)
    def wrapper(state: State, command: Command) -> Any:
        user = state.db.get_user(state.config.current_user_name)
        return handler(state, command, user)

    return wrapper


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1s"``, ``"1.5h"`` or ``"2h45m"``."""
    quoted = f'"{text}"'
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"time: invalid duration {quoted}")

    total = Decimal(0)
    while rest:
        number = _NUMBER.match(rest).group()
        if number in ("", "."):
            raise ValueError(f"time: invalid duration {quoted}")
        rest = rest[len(number):]
        unit = _UNIT.match(rest).group()
        if not unit:
            raise ValueError(f"time: missing unit in duration {quoted}")
        if unit not in _NS_PER_UNIT:
            raise ValueError(f'time: unknown unit "{unit}" in duration {quoted}')
        rest = rest[len(unit):]
        try:
            total += Decimal(number) * _NS_PER_UNIT[unit]
        except InvalidOperation as exc:
            raise ValueError(f"time: invalid duration {quoted}") from exc
        if total > _MAX_DURATION_NS:
            raise ValueError(f"time: invalid duration {quoted}")

    micros = float(total / 1000)
    return timedelta(microseconds=-micros if negative else micros)


def handle_login(state: State, command: Command) -> None:
    if not command.args:
        raise CommandError("you should provide username argument")
    name = command.args[0]
    try:
        state.db.get_user(name)
    except DatabaseError as exc:
        raise CommandError(f"user doesn't exist: {exc}") from exc
    state.config.set_user(name)
    print("user has been set to:", name)


def handle_register(state: State, command: Command) -> None:
    if not command.args:
        raise CommandError("you should provide username argument")
    name = command.args[0]
    stamp = utc_now()
    try:
        user = state.db.create_user(User(id=new_id(), created_at=stamp, updated_at=stamp, name=name))
    except DatabaseError as exc:
        raise CommandError(f"error creating user: {exc}") from exc
    state.config.set_user(name)
    print(f"user was created\n{user}")


def handle_reset(state: State, command: Command) -> None:
    try:
        state.db.delete_all_users()
    except DatabaseError as exc:
        raise CommandError(f"error deleting users: {exc}") from exc


def handle_users(state: State, command: Command) -> None:
    try:
        users = state.db.list_users()
    except DatabaseError as exc:
        raise CommandError(f"error retrieving users: {exc}") from exc
    for user in users:
        if user.name == state.config.current_user_name:
            print(f"* {user.name} (current)")
        else:
            print(f"* {user.name}")


def handle_agg(state: State, command: Command) -> None:
    """Scrape the stalest feeds forever, one round per interval."""
    if len(command.args) != 1:
        raise CommandError("you must provide duration string like 1s, 1m, 1h")
    try:
        interval = parse_duration(command.args[0])
    except ValueError as exc:
        raise CommandError(f"error parsing duration string: {exc}") from exc
    seconds = interval.total_seconds()
    if seconds <= 0:
        raise CommandError(f"non-positive interval for ticker: {command.args[0]}")

    logger.info("Scraping on %d workers every %s", CONCURRENT_SCRAPERS, command.args[0])
    next_tick = time.monotonic()
    while True:
        try:
            feeds = state.db.get_next_feeds_to_fetch(CONCURRENT_SCRAPERS)
        except DatabaseError as exc:
            logger.error("error getting next feed to fetch: %s", exc)
            feeds = []
        scrape_feeds(state, feeds)
        next_tick += seconds
        now = time.monotonic()
        if next_tick < now:
            next_tick = now
        time.sleep(next_tick - now)


def handle_add_feed(state: State, command: Command, user: User) -> None:
    if len(command.args) != 2:
        raise CommandError("you should provide name and url of the feed")
    name, url = command.args
    stamp = utc_now()
    feed = state.db.create_feed(
        Feed(id=new_id(), created_at=stamp, updated_at=stamp, name=name, url=url, user_id=user.id)
    )
    stamp = utc_now()
    state.db.create_feed_follow(
        FeedFollow(id=new_id(), created_at=stamp, updated_at=stamp, user_id=user.id, feed_id=feed.id)
    )
    print(f"Feed record: {feed}")


def handle_feeds(state: State, command: Command) -> None:
    try:
        feeds = state.db.list_feeds()
    except DatabaseError as exc:
        raise CommandError(f"error retrieving feeds from Db: {exc}") from exc
    for feed in feeds:
        print("Name:", feed.name)
        print("URL:", feed.url)
        try:
            creator = state.db.get_user_by_id(feed.user_id)
        except DatabaseError as exc:
            raise CommandError(f"error retrieving user that created the feed: {exc}") from exc
        print("Username:", creator.name)


def handle_follow(state: State, command: Command, user: User) -> None:
    if len(command.args) != 1:
        raise CommandError("you must provide url as argument")
    feed = state.db.get_feed_by_url(command.args[0])
    stamp = utc_now()
    follow = state.db.create_feed_follow(
        FeedFollow(id=new_id(), created_at=stamp, updated_at=stamp, user_id=user.id, feed_id=feed.id)
    )
    print("Name of the feed:", follow.feed_name)
    print("Name of current user:", follow.user_name)


def handle_following(state: State, command: Command, user: User) -> None:
    try:
        follows = state.db.get_feed_follows_for_user(user.id)
    except DatabaseError as exc:
        raise CommandError(f"error getting feed follows for current user: {exc}") from exc
    for follow in follows:
        print("Feed name:", follow.feed_name)


def handle_unfollow(state: State, command: Command, user: User) -> None:
    if len(command.args) != 1:
        raise CommandError("you must provide feed url as argument")
    try:
        feed = state.db.get_feed_by_url(command.args[0])
    except DatabaseError as exc:
        raise CommandError(f"error retrieving feed with given url: {exc}") from exc
    try:
        state.db.delete_feed_follow(user.id, feed.id)
    except DatabaseError as exc:
        raise CommandError(f"error unfollowing feed: {exc}") from exc


def handle_browse(state: State, command: Command, user: User) -> None:
    limit = DEFAULT_BROWSE_LIMIT
    if len(command.args) == 1:
        text = command.args[0]
        if _INTEGER.fullmatch(text) is None:
            raise CommandError(f"invalid limit: {text}")
        limit = int(text)
    try:
        posts = state.db.get_posts_for_user(user.id, limit)
    except (DatabaseError, ValueError) as exc:
        raise CommandError(f"error retrieving posts: {exc}") from exc
    for post in posts:
        print(f' ---"{post.title}" ({post.feed_name})---')
        print(f"\t{post.description or ''}")
        print(f" Link: {post.url}")
        print("---------------------------------")