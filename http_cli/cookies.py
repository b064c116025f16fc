"""Cookie file loading and Cookie header serialization."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable

from .models import ConfigError


@dataclass(frozen=True)
class Cookie:
    """Cookie representation.

    Attributes:
        name: Cookie name.
        value: Cookie value.
    """

    name: str
    value: str

    def render(self) -> str:
        """Render as a ``name=value`` pair."""
        return f"{self.name}={self.value}"


def parse_cookies(raw: str, source: str = "<cookies>") -> list[Cookie]:
    """Parse a JSON array of ``{"name": ..., "value": ...}`` objects.

    Args:
        raw: JSON text.
        source: Where the text came from, used in error messages.

    Returns:
        Cookies in array order.

    Raises:
        ConfigError: If the text is not a JSON array of name/value objects.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"cookie file {source} is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ConfigError(f"cookie file {source} must contain a JSON array")

    cookies: list[Cookie] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConfigError(f"cookie #{index} in {source} must be an object")
        name = entry.get("name")
        value = entry.get("value")
        if not isinstance(name, str) or not name:
            raise ConfigError(f"cookie #{index} in {source} has no name")
        if not isinstance(value, str):
            raise ConfigError(f"cookie {name!r} in {source} must have a string value")
        cookies.append(Cookie(name=name, value=value))
    return cookies


def load_cookies(path: str) -> list[Cookie]:
    """Load cookies from a JSON file.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            raw = fh.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read cookie file {path}: {e}") from e
    return parse_cookies(raw, source=path)


def cookie_header(cookies: Iterable[Cookie]) -> str:
    """Fold cookies into a single Cookie header value, preserving order."""
    return "; ".join(cookie.render() for cookie in cookies)
