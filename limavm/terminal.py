"""Terminal output helpers: line clearing and a tailing verbose writer."""

from __future__ import annotations

import codecs
import json
import shutil
import sys
import time
from collections import deque
from typing import IO

CLEAR_LINE_SEQUENCE = "\033[1A \033[2K \r"
"""Escape sequence that moves up one line and clears it."""

_HI_BLACK = "\033[90m"
_RESET = "\033[0m"
_REFRESH_INTERVAL = 2.0
_DEFAULT_WIDTH = 80


def _hi_black(text: str) -> str:
    return f"{_HI_BLACK}{text}{_RESET}"


def _is_tty(stream: IO[str]) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def clear_line() -> None:
    """Clear the previous line of the terminal; a no-op when not a terminal."""
    if not _is_tty(sys.stdout):
        return
    sys.stdout.write(CLEAR_LINE_SEQUENCE)
    sys.stdout.flush()


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        try:
            value = json.loads(text)
        except ValueError:
            return text
        if isinstance(value, str):
            return value
    return text


def sanitize_line(line: str) -> str:
    """Strip structured-log noise from a line and prefix it with '> '."""
    if line.startswith("time=") and "msg=" in line:
        line = _unquote(line[line.index("msg=") + 4 :])
    return "> " + line


class VerboseWriter:
    """Pipes output to a stream while tailing only the last few lines.

    When the stream is not a terminal, everything is written straight through.
    A line height of zero or less disables tailing: each line is printed to
    the error stream instead. Call ``close`` (or use it as a context manager)
    to clear the remaining tailed output.
    """

    def __init__(
        self,
        line_height: int,
        stream: IO[str] | None = None,
        err_stream: IO[str] | None = None,
        is_terminal: bool | None = None,
    ) -> None:
        self.line_height = line_height
        self._stream = stream if stream is not None else sys.stdout
        self._err_stream = err_stream if err_stream is not None else sys.stderr
        self._is_terminal = _is_tty(self._stream) if is_terminal is None else is_terminal
        self._buf = bytearray()
        self._lines: deque[str] = deque(maxlen=line_height if line_height > 0 else None)
        self._term_width = _DEFAULT_WIDTH
        self._overflow = 0
        self._last_update: float | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def write(self, data: bytes | str) -> int:
        """Write data, returning the number of items consumed."""
        raw = data.encode() if isinstance(data, str) else bytes(data)

        if not self._is_terminal:
            self._stream.write(self._decoder.decode(raw))
            self._stream.flush()
            return len(data)

        *complete, rest = raw.split(b"\n")
        for part in complete:
            self._buf.extend(part)
            self._refresh()
        self._buf.extend(rest)
        return len(data)

    def close(self) -> None:
        """Flush any partial line and clear the tailed output."""
        if self._buf:
            self._refresh()
        self._clear_screen()

    def __enter__(self) -> VerboseWriter:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _refresh(self) -> None:
        self._clear_screen()
        self._add_line()
        self._print_screen()

    def _add_line(self) -> None:
        line = self._buf.decode(errors="replace")
        self._buf.clear()
        if self.line_height <= 0:
            print(_hi_black(sanitize_line(line)), file=self._err_stream, flush=True)
            return
        self._lines.append(line)

    def _print_screen(self) -> None:
        self._update_term()
        self._overflow = 0
        width = self._term_width
        for raw in self._lines:
            line = sanitize_line(raw)
            if len(line) > width:
                self._overflow += len(line) // width
                if len(line) % width == 0:
                    self._overflow -= 1
            print(_hi_black(line), file=self._stream)
        self._stream.flush()

    def _clear_screen(self) -> None:
        if not self._is_terminal:
            return
        for _ in range(len(self._lines) + self._overflow):
            self._stream.write(CLEAR_LINE_SEQUENCE)
        self._stream.flush()

    def _update_term(self) -> None:
        now = time.monotonic()
        if self._last_update is not None and now - self._last_update < _REFRESH_INTERVAL:
            return
        self._last_update = now
        width = shutil.get_terminal_size().columns
        self._term_width = width if width > 0 else _DEFAULT_WIDTH