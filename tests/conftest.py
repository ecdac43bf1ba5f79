from __future__ import annotations
import io
from typing import Tuple

import pytest

from console import ENCODING, Console
from interpreter import Interpreter


class MemoryConsole(Console):
    def __init__(self, stdin: bytes = b"") -> None:
        super().__init__(stdin=io.BytesIO(stdin), stdout=io.BytesIO())

    @property
    def output(self) -> str:
        return self.stdout.getvalue().decode(ENCODING)  # type: ignore[attr-defined]


def make_interpreter(source: str = "", stdin: bytes = b"", seed: int = 1234) -> Interpreter:
    return Interpreter(source=source, filename="<string>", console=MemoryConsole(stdin), seed=seed)


def run_program(source: str, stdin: bytes = b"", seed: int = 1234) -> Tuple[str, Interpreter]:
    interpreter = make_interpreter(source, stdin=stdin, seed=seed)
    interpreter.run()
    return interpreter.console.output, interpreter  # type: ignore[attr-defined]


@pytest.fixture
def interp() -> Interpreter:
    return make_interpreter()
