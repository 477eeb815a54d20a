"""Reading and writing the user's JSON configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"


def config_file_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


@dataclass
class Config:
    """Connection settings and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, repr=False, compare=False)

    def set_user(self, name: str) -> None:
        """Make ``name`` the current user and save the configuration."""
        self.current_user_name = name
        write_config(self, self.path)


def _string_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"error decoding json: field {key!r} must be a string")
    return value


def read_config(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path`` (the home file by default).

    Raises ``OSError`` if the file cannot be opened and ``ValueError`` if it
    does not hold a valid configuration object.
    """
    target = Path(path) if path is not None else config_file_path()
    with target.open(encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"error decoding json: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("error decoding json: expected an object")
    return Config(
        db_url=_string_field(data, "db_url"),
        current_user_name=_string_field(data, "current_user_name"),
        path=target,
    )


def write_config(config: Config, path: str | Path | None = None) -> None:
    """Write ``config`` as indented JSON to ``path`` (the home file by default)."""
    target = Path(path) if path is not None else config_file_path()
    payload = {
        "db_url": config.db_url,
        "current_user_name": config.current_user_name,
    }
    target.write_text(json.dumps(payload, indent=4) + "\n", encoding="utf-8")