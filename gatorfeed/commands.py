"""Named commands and the state they run against."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator

from .config import Config
from .database import Database


@dataclass
class State:
    """What every command handler works with."""

    db: Database
    config: Config


@dataclass(frozen=True)
class Command:
    """A command name and its arguments."""

    name: str
    args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))


class CommandError(Exception):
    """A command could not be run as given."""


Handler = Callable[[State, Command], Any]


class Commands:
    """A registry of command handlers by name."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        """Bind ``handler`` to ``name``, replacing any earlier handler."""
        self._handlers[name] = handler

    def run(self, state: State, command: Command) -> Any:
        """Run the handler registered for ``command.name``."""
        try:
            handler = self._handlers[command.name]
        except KeyError:
            raise CommandError(f"given command does not exist: {command.name}") from None
        return handler(state, command)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)