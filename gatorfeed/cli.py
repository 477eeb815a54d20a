"""Command-line entry point."""

from __future__ import annotations

import logging
import sys
from typing import Sequence

from .commands import Command, CommandError, Commands, State
from .config import read_config
from .database import DatabaseError, connect
from .handlers import (
    handle_add_feed,
    handle_agg,
    handle_browse,
    handle_feeds,
    handle_follow,
    handle_following,
    handle_login,
    handle_register,
    handle_reset,
    handle_unfollow,
    handle_users,
    logged_in,
)
from .rss import FeedFetchError


def build_commands() -> Commands:
    """Return the registry of every command the program offers."""
    commands = Commands()
    commands.register("login", handle_login)
    commands.register("register", handle_register)
    commands.register("reset", handle_reset)
    commands.register("users", handle_users)
    commands.register("agg", handle_agg)
    commands.register("addfeed", logged_in(handle_add_feed))
    commands.register("feeds", handle_feeds)
    commands.register("follow", logged_in(handle_follow))
    commands.register("following", logged_in(handle_following))
    commands.register("unfollow", logged_in(handle_unfollow))
    commands.register("browse", logged_in(handle_browse))
    return commands


def _fail(message: object) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run one command; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        config = read_config()
    except OSError as exc:
        return _fail(f"error opening file: {exc}")
    except ValueError as exc:
        return _fail(exc)

    try:
        database = connect(config.db_url)
    except DatabaseError as exc:
        return _fail(exc)

    with database:
        if not args:
            return _fail("not enough arguments provided")
        state = State(db=database, config=config)
        command = Command(name=args[0], args=tuple(args[1:]))
        try:
            build_commands().run(state, command)
        except (CommandError, DatabaseError, FeedFetchError, OSError, ValueError) as exc:
            return _fail(exc)
        except KeyboardInterrupt:
            return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())