import pytest

from gatorfeed.commands import Command, CommandError, Commands, State
from gatorfeed.config import Config
from gatorfeed.database import connect


@pytest.fixture
def state():
    db = connect(":memory:")
    yield State(db=db, config=Config(current_user_name="alice"))
    db.close()


def test_command_args_become_tuple():
    command = Command("login", ["alice", "bob"])
    assert command.args == ("alice", "bob")
    assert command == Command("login", ("alice", "bob"))


def test_command_default_args_empty():
    assert Command("users").args == ()


def test_run_calls_registered_handler(state):
    seen = []

    def handler(s, command):
        seen.append((s, command))
        return command.args[0]

    commands = Commands()
    commands.register("login", handler)
    command = Command("login", ["alice"])

    assert commands.run(state, command) == "alice"
    assert seen == [(state, command)]


def test_handler_sees_state(state):
    commands = Commands()
    commands.register("who", lambda s, c: s.config.current_user_name)
    assert commands.run(state, Command("who")) == "alice"


def test_unknown_command_raises(state):
    commands = Commands()
    commands.register("login", lambda s, c: None)
    with pytest.raises(CommandError, match="does not exist"):
        commands.run(state, Command("nope"))


def test_handler_errors_propagate(state):
    def handler(s, command):
        raise ValueError("bad input")

    commands = Commands()
    commands.register("fail", handler)
    with pytest.raises(ValueError, match="bad input"):
        commands.run(state, Command("fail"))


def test_register_replaces_handler(state):
    commands = Commands()
    commands.register("x", lambda s, c: 1)
    commands.register("x", lambda s, c: 2)
    assert commands.run(state, Command("x")) == 2
    assert len(commands) == 1


def test_registry_membership_and_order():
    commands = Commands()
    for name in ("login", "register", "reset"):
        commands.register(name, lambda s, c: None)
    assert "login" in commands
    assert "agg" not in commands
    assert list(commands) == ["login", "register", "reset"]