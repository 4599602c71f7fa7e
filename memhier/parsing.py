"""Line-oriented readers for ``key: value`` configuration and trace text."""

from __future__ import annotations

import re
from typing import TextIO

_U64_LIMIT = 1 << 64
_DECIMAL = re.compile(r"\+?[0-9]+")
_HEXADECIMAL = re.compile(r"\+?[0-9a-fA-F]+")


class ConfigFormatError(ValueError):
    """Raised when a line of input does not have the expected form."""


def _next_line(stream: TextIO) -> str | None:
    """Return the next non-blank line, stripped, or None at end of input."""
    for line in iter(stream.readline, ""):
        stripped = line.strip()
        if stripped:
            return stripped
    return None


def _read_pair(stream: TextIO, key: str | None) -> tuple[str, str] | None:
    line = _next_line(stream)
    if line is None:
        return None
    parts = line.split(":")
    first = parts[0].strip()
    if key is not None:
        if len(parts) != 2:
            raise ConfigFormatError(f'Expected "{key}: {{value}}", got "{line}"')
        if first != key:
            raise ConfigFormatError(f'Expected "{key}: {{value}}", got "{line}"')
    elif len(parts) < 2:
        raise ConfigFormatError(f'Expected "{{key}}: {{value}}", got "{line}"')
    return first, parts[1].strip()


def _parse_unsigned(text: str, pattern: re.Pattern[str], base: int) -> int:
    if not pattern.fullmatch(text):
        raise ConfigFormatError(f'Expected an unsigned number, got "{text}"')
    value = int(text, base)
    if value >= _U64_LIMIT:
        raise ConfigFormatError(f'Number "{text}" is too large')
    return value


def read_header(stream: TextIO, text: str) -> None:
    """Consume the next non-blank line and check that it equals ``text``."""
    line = _next_line(stream)
    if line is None:
        raise ConfigFormatError(f'Expected "{text}", got end of input')
    if line != text:
        raise ConfigFormatError(f'Expected "{text}", got "{line}"')


def read_decimal(stream: TextIO, key: str | None) -> tuple[str, int] | None:
    """Read a ``key: decimal`` line; return None at end of input."""
    pair = _read_pair(stream, key)
    if pair is None:
        return None
    name, value = pair
    return name, _parse_unsigned(value, _DECIMAL, 10)


def read_hexadecimal(stream: TextIO, key: str | None) -> tuple[str, int] | None:
    """Read a ``key: hexadecimal`` line; return None at end of input."""
    pair = _read_pair(stream, key)
    if pair is None:
        return None
    name, value = pair
    return name, _parse_unsigned(value, _HEXADECIMAL, 16)


def read_bool(stream: TextIO, key: str | None) -> tuple[str, bool] | None:
    """Read a ``key: y/n`` line; return None at end of input."""
    pair = _read_pair(stream, key)
    if pair is None:
        return None
    name, value = pair
    if value in ("y", "Y"):
        return name, True
    if value in ("n", "N"):
        return name, False
    raise ConfigFormatError(f'Expected "y" or "n", got "{value}"')