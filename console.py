from __future__ import annotations
import re
import sys
from typing import BinaryIO, Optional

from store import to_int16


# Bytes map one-to-one onto characters so program text passes through untouched.
ENCODING = "latin-1"

_DECIMAL_RE = re.compile(r"[+-]?[0-9]+")
_HEX_RE = re.compile(r"[+-]?[0-9a-fA-F]+")


def parse_number(text: str) -> int:
    """Decode one line of numeric input: ``$`` prefix for hex, decimal otherwise.

    Anything unparsable reads as 0.
    """
    text = text.strip()
    if text.startswith("$"):
        digits = text[1:]
        return to_int16(int(digits, 16)) if _HEX_RE.fullmatch(digits) else 0
    return to_int16(int(text)) if _DECIMAL_RE.fullmatch(text) else 0


class Console:
    """Blocking byte-oriented input plus immediately flushed output."""

    def __init__(self, stdin: Optional[BinaryIO] = None, stdout: Optional[BinaryIO] = None) -> None:
        self.stdin: BinaryIO = stdin if stdin is not None else sys.stdin.buffer
        self.stdout: BinaryIO = stdout if stdout is not None else sys.stdout.buffer

    def read_char(self) -> int:
        data = self.stdin.read(1)
        return data[0] if data else 0

    def read_line(self) -> str:
        return self.stdin.readline().decode(ENCODING)

    def read_number(self) -> int:
        return parse_number(self.read_line())

    def write(self, text: str) -> None:
        self.stdout.write(text.encode(ENCODING, errors="replace"))
        self.stdout.flush()

    def write_byte(self, value: int) -> None:
        self.stdout.write(bytes([value & 0xFF]))
        self.stdout.flush()
