import pytest

from gatorfeed.cli import build_commands, main
from gatorfeed.config import Config, config_file_path, read_config, write_config


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return tmp_path


@pytest.fixture
def configured(home):
    write_config(Config(db_url=str(home / "gator.db")), config_file_path())
    return home


def test_build_commands_names():
    assert set(build_commands()) == {
        "login",
        "register",
        "reset",
        "users",
        "agg",
        "addfeed",
        "feeds",
        "follow",
        "following",
        "unfollow",
        "browse",
    }


def test_register_then_users(configured, capsys):
    assert main(["register", "kahya"]) == 0
    assert read_config(config_file_path()).current_user_name == "kahya"
    capsys.readouterr()
    assert main(["users"]) == 0
    assert capsys.readouterr().out == "* kahya (current)\n"


def test_addfeed_and_following(configured, capsys):
    assert main(["register", "kahya"]) == 0
    assert main(["addfeed", "Tech", "https://example.com/rss"]) == 0
    capsys.readouterr()
    assert main(["following"]) == 0
    assert capsys.readouterr().out == "Feed name: Tech\n"


def test_reset_clears_users(configured, capsys):
    assert main(["register", "kahya"]) == 0
    assert main(["reset"]) == 0
    capsys.readouterr()
    assert main(["users"]) == 0
    assert capsys.readouterr().out == ""


def test_no_arguments(configured, capsys):
    assert main([]) == 1
    assert "not enough arguments provided" in capsys.readouterr().err


def test_unknown_command(configured, capsys):
    assert main(["bogus"]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_logged_in_command_without_user(configured, capsys):
    assert main(["addfeed", "Tech", "https://example.com/rss"]) == 1
    assert capsys.readouterr().err.strip() != ""


def test_missing_config(home, capsys):
    assert main(["users"]) == 1
    assert "error opening file" in capsys.readouterr().err


def test_invalid_config(home, capsys):
    config_file_path().write_text("not json", encoding="utf-8")
    assert main(["users"]) == 1
    assert "error decoding json" in capsys.readouterr().err