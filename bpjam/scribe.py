"""Indented progress logging."""

from __future__ import annotations

from typing import Any, TextIO

__all__ = ["Logger"]


class Logger:
    """Writes messages to a stream at fixed indentation levels."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def _write(self, indent: int, message: str, args: tuple[Any, ...]) -> None:
        text = message % args if args else message
        pad = " " * indent
        lines = text.split("\n")
        self.stream.write("\n".join(pad + line if line else line for line in lines) + "\n")

    def title(self, message: str, *args: Any) -> None:
        self._write(0, message, args)

    def process(self, message: str, *args: Any) -> None:
        self._write(2, message, args)

    def subprocess(self, message: str, *args: Any) -> None:
        self._write(4, message, args)

    def action(self, message: str, *args: Any) -> None:
        self._write(6, message, args)

    def break_line(self) -> None:
        self.stream.write("\n")