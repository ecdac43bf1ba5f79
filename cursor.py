from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple


class MiepError(Exception):
    """Base class for interpreter errors."""


END = "\0"

LETTERS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
DIGITS = "0123456789"
HEX_DIGITS = DIGITS + "abcdefABCDEF"


def is_alpha(ch: str) -> bool:
    return ch != "" and ch in LETTERS


def is_digit(ch: str) -> bool:
    return ch != "" and ch in DIGITS


def is_xdigit(ch: str) -> bool:
    return ch != "" and ch in HEX_DIGITS


@dataclass
class Cursor:
    """A position inside one program text; doubles as the program counter.

    ``text`` is shared between copies, only ``pos`` is per-cursor. A copy keeps
    pointing at the text it was taken from even after the interpreter loads a
    new program.
    """

    text: str
    pos: int = 0

    def copy(self) -> "Cursor":
        return Cursor(self.text, self.pos)

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        if index < len(self.text):
            return self.text[index]
        return END

    def advance(self, count: int = 1) -> None:
        self.pos += count

    def accept(self, ch: str) -> bool:
        if self.peek() == ch:
            self.pos += 1
            return True
        return False

    def skip_spaces(self) -> None:
        text = self.text
        n = len(text)
        while self.pos < n and text[self.pos] == " ":
            self.pos += 1

    def skip_to_newline(self) -> None:
        # Leaves the cursor just past the newline (or at the end of text).
        index = self.text.find("\n", self.pos)
        self.pos = len(self.text) if index == -1 else index + 1

    def read_until_newline(self) -> str:
        index = self.text.find("\n", self.pos)
        end = len(self.text) if index == -1 else index
        chunk = self.text[self.pos:end]
        self.pos = end
        return chunk

    def read_decimal(self) -> Optional[int]:
        start = self.pos
        text = self.text
        n = len(text)
        while self.pos < n and text[self.pos] in DIGITS:
            self.pos += 1
        if self.pos == start:
            return None
        return int(text[start:self.pos])

    def read_hex(self) -> Optional[int]:
        start = self.pos
        text = self.text
        n = len(text)
        while self.pos < n and text[self.pos] in HEX_DIGITS:
            self.pos += 1
        if self.pos == start:
            return None
        return int(text[start:self.pos], 16)

    def read_variable(self) -> Optional[str]:
        # Whole words are allowed; only the first letter selects the slot.
        if not is_alpha(self.peek()):
            return None
        letter = self.text[self.pos]
        text = self.text
        n = len(text)
        while self.pos < n and text[self.pos] in LETTERS:
            self.pos += 1
        return letter

    def read_string(self) -> Tuple[str, bool]:
        """Consume a quoted literal starting at the cursor.

        Returns the body and whether the closing quote was found. An
        unterminated literal runs to the end of the text.
        """
        self.accept('"')
        index = self.text.find('"', self.pos)
        if index == -1:
            body = self.text[self.pos:]
            self.pos = len(self.text)
            return body, False
        body = self.text[self.pos:index]
        self.pos = index + 1
        return body, True

    def line_number_at(self) -> Optional[int]:
        """Line number of the program line that contains this position."""
        start = self.text.rfind("\n", 0, min(self.pos, len(self.text))) + 1
        probe = Cursor(self.text, start)
        return probe.read_decimal()
