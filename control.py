from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple, Type, TypeVar, Union

from cursor import Cursor
from store import to_int16

if TYPE_CHECKING:
    from interpreter import Interpreter


# Current-line sentinels.
LINE_UNSET = 0
LINE_STOP = -1


@dataclass(frozen=True)
class CallFrame:
    cursor: Cursor


@dataclass(frozen=True)
class LoopFrame:
    cursor: Cursor


@dataclass(frozen=True)
class ForFrame:
    variable: int
    cursor: Cursor
    bound: int


Frame = Union[CallFrame, LoopFrame, ForFrame]
F = TypeVar("F", CallFrame, LoopFrame, ForFrame)

FRAME_NAMES = {CallFrame: "GOSUB", LoopFrame: "DO", ForFrame: "FOR"}


class RuntimeStack:
    """The single stack shared by GOSUB, DO and counted loops.

    Pops are checked against the frame kind the caller expects; a missing or
    foreign frame on top counts as underflow and leaves the stack alone.
    """

    def __init__(self) -> None:
        self.frames: List[Frame] = []

    def __len__(self) -> int:
        return len(self.frames)

    def push(self, frame: Frame) -> None:
        self.frames.append(frame)

    def pop(self, kind: Type[F]) -> Optional[F]:
        if not self.frames or not isinstance(self.frames[-1], kind):
            return None
        return self.frames.pop()  # type: ignore[return-value]


def find_line(text: str, target: int) -> Optional[Tuple[int, int]]:
    """Return ``(line_number, offset)`` of the first line numbered ``>= target``.

    Scans from the top every time. A leading ``#`` line is skipped once. The
    scan stops at the first line that does not begin with digits.
    """
    cursor = Cursor(text)
    if text.startswith("#"):
        cursor.skip_to_newline()
    while not cursor.at_end:
        start = cursor.pos
        number = cursor.read_decimal()
        if number is None:
            return None
        number = to_int16(number)
        if number >= target:
            return number, start
        cursor.skip_to_newline()
    return None


class ControlFlow:
    def __init__(self, interpreter: "Interpreter") -> None:
        self.interpreter = interpreter
        self.stack = RuntimeStack()

    def goto(self, target: int) -> None:
        interpreter = self.interpreter
        if target == LINE_STOP:
            interpreter.line = LINE_STOP
            return
        found = find_line(interpreter.program, target)
        if found is None:
            interpreter.cursor = Cursor(interpreter.program, len(interpreter.program))
            interpreter.line = LINE_STOP
            return
        number, offset = found
        interpreter.cursor = Cursor(interpreter.program, offset)
        interpreter.line = number

    def gosub(self, target: int) -> None:
        self.stack.push(CallFrame(self.interpreter.cursor.copy()))
        self.goto(target)

    def return_from_sub(self) -> None:
        # The tracked line number is deliberately left as it is.
        frame = self.stack.pop(CallFrame)
        if frame is not None:
            self.interpreter.cursor = frame.cursor.copy()

    def do(self) -> None:
        self.stack.push(LoopFrame(self.interpreter.cursor.copy()))

    def until(self) -> None:
        frame = self.stack.pop(LoopFrame)
        done = self.interpreter.evaluator.expression()
        if frame is None or done != 0:
            return
        self.interpreter.cursor = frame.cursor.copy()
        self.stack.push(frame)

    def start_for(self, variable: int, bound: int) -> None:
        interpreter = self.interpreter
        value = interpreter.store.get(variable)
        if value > bound and interpreter.for_mode:
            self._skip_loop_body()
            return
        self.stack.push(ForFrame(variable, interpreter.cursor.copy(), bound))

    def next(self) -> None:
        interpreter = self.interpreter
        frame = self.stack.pop(ForFrame)
        value = interpreter.evaluator.expression()
        if frame is None:
            return
        interpreter.store.set(frame.variable, value)
        if interpreter.store.get(frame.variable) <= frame.bound:
            interpreter.cursor = frame.cursor.copy()
            self.stack.push(ForFrame(frame.variable, frame.cursor, frame.bound))

    def _skip_loop_body(self) -> None:
        interpreter = self.interpreter
        cursor = interpreter.cursor
        index = cursor.text.find("@", cursor.pos)
        if index == -1:
            cursor.pos = len(cursor.text)
            return
        cursor.pos = index + 1
        interpreter.expect("=")
        interpreter.evaluator.expression()
