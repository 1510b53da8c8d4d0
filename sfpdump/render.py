"""Presentation sinks for decoded module information.

A sink receives three calls per output line: ``emit_name`` once,
``emit_value`` any number of times, then ``emit_newline``. Continuation
lines (long-form bit options, hex dumps) skip ``emit_name``.
"""

import html
import sys
from abc import ABC, abstractmethod
from typing import List, Optional, TextIO, Tuple


NAME_WIDTH = 32
CONTINUATION_INDENT = ' ' * (NAME_WIDTH + 3)


class PresentationSink(ABC):
    """Abstract output target for the field decoder."""

    def begin(self) -> None:
        """Called once before the first field."""
        pass

    def end(self) -> None:
        """Called once after the last field."""
        pass

    @abstractmethod
    def emit_name(self, name: str) -> None:
        pass

    @abstractmethod
    def emit_value(self, text: str) -> None:
        pass

    @abstractmethod
    def emit_newline(self) -> None:
        pass


class TextSink(PresentationSink):
    """Plain text, one ``name : value`` line per field."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout

    def emit_name(self, name: str) -> None:
        self.stream.write(f"{name:<{NAME_WIDTH}} : ")

    def emit_value(self, text: str) -> None:
        self.stream.write(text)

    def emit_newline(self) -> None:
        self.stream.write('\n')


class HtmlSink(PresentationSink):
    """HTML table, one row per field.

    Continuation lines get a row of their own with an empty name cell.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout
        self._in_row = False

    def begin(self) -> None:
        self.stream.write('<table>\n')

    def end(self) -> None:
        self.stream.write('</table>\n')

    def emit_name(self, name: str) -> None:
        self.stream.write(' <tr>\n')
        self.stream.write(f'  <td><b>{html.escape(name)}</b></td>\n')
        self.stream.write('  <td><b>:</b> ')
        self._in_row = True

    def emit_value(self, text: str) -> None:
        if not self._in_row:
            self.stream.write(' <tr>\n  <td></td>\n  <td>')
            self._in_row = True
        self.stream.write(html.escape(text))

    def emit_newline(self) -> None:
        self.stream.write('  </td>\n')
        self.stream.write(' </tr>\n')
        self._in_row = False


class ListSink(PresentationSink):
    """Collect ``(name, value)`` pairs in memory.

    Continuation lines are stored with an empty name.
    """

    def __init__(self):
        self.lines: List[Tuple[str, str]] = []
        self._name = ''
        self._parts: List[str] = []

    def emit_name(self, name: str) -> None:
        self._name = name

    def emit_value(self, text: str) -> None:
        self._parts.append(text)

    def emit_newline(self) -> None:
        self.lines.append((self._name, ''.join(self._parts)))
        self._name = ''
        self._parts = []

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.lines if name]

    def value(self, name: str) -> Optional[str]:
        """Value of the first line called ``name``."""
        for line_name, text in self.lines:
            if line_name == name:
                return text
        return None
