"""
Terminal output helpers shared by the CLI commands.

Rows are aligned as  label | status | value  so that `run` and
`journal verify` read the same way.
"""

import json
import sys
from typing import Any, Dict

import click


_LABEL_WIDTH = 24

_ANSI = {
    "green": "32",
    "red":   "31",
    "bold":  "1",
    "dim":   "2",
}


class _Color:
    """ANSI styling, off when stdout is not a terminal or --no-color was given."""

    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def paint(cls, style: str, text: str) -> str:
        if not cls._on:
            return text
        return f"\033[{_ANSI[style]}m{text}\033[0m"

    @classmethod
    def green(cls, text: str) -> str:
        return cls.paint("green", text)

    @classmethod
    def red(cls, text: str) -> str:
        return cls.paint("red", text)

    @classmethod
    def bold(cls, text: str) -> str:
        return cls.paint("bold", text)

    @classmethod
    def dim(cls, text: str) -> str:
        return cls.paint("dim", text)


def _row(label: str, status: str, value: str) -> str:
    return f"  {_Color.dim(label.ljust(_LABEL_WIDTH))}  {status}  {value}"


def row_ok(label: str, value: str) -> str:
    return _row(label, _Color.green("OK  "), value)


def row_fail(label: str, value: str) -> str:
    return _row(label, _Color.red("FAIL"), value)


def row_info(label: str, value: str) -> str:
    return _row(label, "    ", value)


def emit_json(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def emit_error(message: str, fmt: str, quiet: bool = False) -> None:
    """Errors go to stdout as JSON in json mode, else to stderr."""
    if quiet:
        return
    if fmt == "json":
        emit_json({"error": message})
    else:
        click.echo(_Color.red(f"Error: {message}"), err=True)
