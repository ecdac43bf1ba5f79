from __future__ import annotations
import json
import os
import random
import sys
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from console import ENCODING, Console
from control import FRAME_NAMES, LINE_STOP, LINE_UNSET, ControlFlow, ForFrame, RuntimeStack
from cursor import END, Cursor, MiepError, is_alpha
from evaluator import Evaluator
from store import Store, to_int16, variable_index

DEFAULT_HISTORY = 256
# Each nested parenthesis costs a few Python frames in the evaluator.
RECURSION_LIMIT = 10000


class MiepRuntimeError(MiepError):
    """Raised for faults that end the run."""

    def __init__(self, message: str, *, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.step_index: Optional[int] = None


class MiepSyntaxError(MiepRuntimeError):
    """A statement or meta-command that cannot be dispatched."""

    def __init__(self, line: int) -> None:
        super().__init__(f"Syntaxerror in {line}", line=line)


class ExitSignal(Exception):
    def __init__(self, code: int = 0) -> None:
        super().__init__(code)
        self.code = code


def read_program(path: str) -> str:
    with open(path, "r", encoding=ENCODING, newline="") as handle:
        return handle.read()


@dataclass
class StepEntry:
    step_index: int
    line: int
    rule: str
    offset: int
    env_snapshot: Optional[Dict[str, str]]
    extra: Optional[Dict[str, Any]]


class StepLogger:
    def __init__(self, history: int = DEFAULT_HISTORY) -> None:
        self.entries: Deque[StepEntry] = deque(maxlen=history)
        self.next_step_index = 0

    def record(
        self,
        *,
        line: int,
        rule: str,
        offset: int,
        env_snapshot: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> StepEntry:
        entry = StepEntry(
            step_index=self.next_step_index,
            line=line,
            rule=rule,
            offset=offset,
            env_snapshot=env_snapshot,
            extra=extra,
        )
        self.entries.append(entry)
        self.next_step_index += 1
        return entry

    @property
    def last(self) -> Optional[StepEntry]:
        return self.entries[-1] if self.entries else None


Handler = Callable[[], bool]


class Interpreter:
    def __init__(
        self,
        *,
        source: str,
        filename: str,
        verbose: bool = False,
        console: Optional[Console] = None,
        seed: Optional[int] = None,
        history: int = DEFAULT_HISTORY,
    ) -> None:
        if sys.getrecursionlimit() < RECURSION_LIMIT:
            sys.setrecursionlimit(RECURSION_LIMIT)
        self.program = source
        self.filename = filename if filename == "<string>" else os.path.abspath(filename)
        self.verbose = verbose
        self.console = console or Console()
        self.random = random.Random(seed)
        self.store = Store()
        self.evaluator = Evaluator(self)
        self.flow = ControlFlow(self)
        self.cursor = Cursor(source)
        self.line = LINE_UNSET
        self.trace = False
        self.for_mode = False
        self.logger = StepLogger(history=history)

        # sigil -> (rule name, handler); a handler returns True when it
        # moved the cursor to another line.
        self.statements: Dict[str, Tuple[str, Handler]] = {
            '"': ("PRINT_STRING", self._print_string),
            "/": ("NEWLINE", self._print_newline),
            ".": ("PRINT_SPACES", self._print_spaces),
            "*": ("META", self._meta_command),
            "?": ("PRINT", self._print_value),
            "'": ("SEED", self._seed),
            "$": ("PRINT_CHAR", self._print_char),
            "#": ("GOTO", self._goto),
            "!": ("GOSUB", self._gosub),
            "]": ("RETURN", self._return),
            "@": ("LOOP", self._loop),
            ";": ("IF", self._if),
        }
        self.meta_commands: Dict[str, Callable[[], None]] = {
            "LD": self._load,
            "QU": self._quit,
            "TN": self._trace_on,
            "TF": self._trace_off,
            "SH": self._shell,
            "FM": self._set_for_mode,
        }

    @property
    def stack(self) -> RuntimeStack:
        return self.flow.stack

    def run(self) -> None:
        self.flow.goto(1)
        try:
            self._execute()
        except ExitSignal:
            raise
        except MiepRuntimeError as error:
            if self.logger.last is not None:
                error.step_index = self.logger.last.step_index
            raise
        except Exception as exc:
            # Surface Python-level faults in the interpreter's own error type
            # so the CLI can format them.
            wrapped = MiepRuntimeError(f"Internal interpreter error: {exc}", line=self.line)
            if self.logger.last is not None:
                wrapped.step_index = self.logger.last.step_index
            raise wrapped from exc

    def evaluate(self, text: str) -> int:
        """Evaluate a standalone expression against the current state."""
        saved = self.cursor
        self.cursor = Cursor(text)
        try:
            return self.evaluator.expression()
        finally:
            self.cursor = saved

    # ---- scanning helpers ----

    def expect(self, ch: str) -> None:
        if not self.cursor.accept(ch):
            self.report_syntax_error()

    def read_string(self) -> str:
        body, closed = self.cursor.read_string()
        if not closed:
            self.report_syntax_error()
        return body

    def report_syntax_error(self) -> None:
        self.console.write(f"\nSyntaxerror in {self.line}")

    def _fatal(self) -> MiepSyntaxError:
        self.report_syntax_error()
        return MiepSyntaxError(self.line)

    # ---- execution loop ----

    def _execute(self) -> None:
        while self.cursor.peek() != END and self.line != LINE_STOP:
            if self.line != LINE_UNSET:
                number = self.cursor.read_decimal()
                self.line = LINE_STOP if number is None else to_int16(number)
                if self.trace:
                    self.console.write(f"[{self.line}]")
                if self.cursor.peek() != " ":
                    self.cursor.skip_to_newline()
                    continue
            self._execute_line()

    def _execute_line(self) -> None:
        statements = self.statements
        while True:
            cursor = self.cursor
            ch = cursor.peek()
            if ch == END:
                return
            if ch == "\n":
                cursor.advance()
                return
            if ch == " ":
                cursor.skip_spaces()
                continue
            if ch in statements:
                rule, handler = statements[ch]
            elif is_alpha(ch):
                rule, handler = "ASSIGN", self._assign
            else:
                self._log_step(rule="SYNTAX")
                raise self._fatal()
            self._log_step(rule=rule)
            if handler():
                return

    def _log_step(self, *, rule: str, extra: Optional[Dict[str, Any]] = None) -> None:
        env_snapshot = self.store.snapshot() if self.verbose else None
        self.logger.record(
            line=self.line,
            rule=rule,
            offset=self.cursor.pos,
            env_snapshot=env_snapshot,
            extra=extra,
        )

    # ---- statements ----

    def _print_string(self) -> bool:
        self.console.write(self.read_string())
        return False

    def _print_newline(self) -> bool:
        self.cursor.advance()
        self.console.write("\n")
        return False

    def _print_spaces(self) -> bool:
        self.cursor.advance()
        self.expect("=")
        count = self.evaluator.expression()
        if count > 0:
            self.console.write(" " * count)
        return False

    def _print_value(self) -> bool:
        cursor = self.cursor
        cursor.advance()
        form = cursor.peek()
        if form == "=":
            cursor.advance()
            self.console.write(str(self.evaluator.expression()))
        elif form == "?":
            cursor.advance()
            self.expect("=")
            self.console.write(format(self.evaluator.expression() & 0xFFFF, "04x"))
        elif form == "$":
            cursor.advance()
            self.expect("=")
            self.console.write(format(self.evaluator.expression() & 0xFF, "02x"))
        elif form == "(":
            cursor.advance()
            width = self.evaluator.expression()
            self.expect(")")
            self.expect("=")
            text = str(self.evaluator.expression())
            # A negative width left-justifies.
            self.console.write(text.ljust(-width) if width < 0 else text.rjust(width))
        else:
            raise self._fatal()
        return False

    def _seed(self) -> bool:
        self.cursor.advance()
        self.expect("=")
        self.random.seed(self.evaluator.expression())
        return False

    def _print_char(self) -> bool:
        self.cursor.advance()
        self.expect("=")
        self.console.write_byte(self.evaluator.expression())
        return False

    def _goto(self) -> bool:
        self.cursor.advance()
        self.expect("=")
        self.flow.goto(self.evaluator.expression())
        return True

    def _gosub(self) -> bool:
        self.cursor.advance()
        self.expect("=")
        self.flow.gosub(self.evaluator.expression())
        return True

    def _return(self) -> bool:
        self.cursor.advance()
        self.flow.return_from_sub()
        return False

    def _loop(self) -> bool:
        cursor = self.cursor
        cursor.advance()
        if not cursor.accept("="):
            self.flow.do()
        elif cursor.peek() == "(":
            self.flow.until()
        else:
            self.flow.next()
        return False

    def _if(self) -> bool:
        self.cursor.advance()
        self.expect("=")
        if self.evaluator.expression() == 0:
            # Stop on the newline so the dispatcher ends the line normally.
            self.cursor.read_until_newline()
        return False

    def _assign(self) -> bool:
        cursor = self.cursor
        evaluator = self.evaluator
        store = self.store
        letter = cursor.peek()
        cursor.read_variable()
        index = variable_index(letter)
        if cursor.accept(":"):
            offset = evaluator.expression()
            self.expect(")")
            self.expect("=")
            store.set_byte(index, offset, evaluator.expression())
        elif cursor.accept("("):
            offset = evaluator.expression()
            self.expect(")")
            self.expect("=")
            store.set_word(index, offset, evaluator.expression())
        else:
            self.expect("=")
            store.set(index, evaluator.expression())

        if self.cursor.accept(","):
            bound = evaluator.expression()
            self._log_step(rule="FOR", extra={"variable": letter.upper(), "bound": bound})
            self.flow.start_for(index, bound)
        return False

    # ---- meta-commands ----

    def _meta_command(self) -> bool:
        cursor = self.cursor
        cursor.advance()
        name = (cursor.peek(0) + cursor.peek(1)).upper()
        cursor.advance(2)
        command = self.meta_commands.get(name)
        if command is None:
            raise self._fatal()
        command()
        return False

    def _load(self) -> None:
        self.cursor.skip_spaces()
        path = self.cursor.read_until_newline()
        try:
            self.program = read_program(path)
        except OSError as exc:
            # A failed load leaves the old program in place.
            self._log_step(rule="LOAD_FAILED", extra={"path": path, "error": str(exc)})

    def _quit(self) -> None:
        raise ExitSignal(0)

    def _trace_on(self) -> None:
        self.trace = True

    def _trace_off(self) -> None:
        self.trace = False

    def _shell(self) -> None:
        self.console.write("Shell command not supported\n")

    def _set_for_mode(self) -> None:
        self.expect("=")
        self.for_mode = self.evaluator.expression() != 0


@dataclass
class TracebackFrame:
    name: str
    line: Optional[int]
    statement: Optional[str]
    bound: Optional[int] = None


def _source_line(cursor: Cursor) -> str:
    text = cursor.text
    pos = min(cursor.pos, len(text))
    start = text.rfind("\n", 0, pos) + 1
    end = text.find("\n", pos)
    return text[start:] if end == -1 else text[start:end]


class TracebackFormatter:
    def __init__(self, interpreter: Interpreter) -> None:
        self.interpreter = interpreter

    def build_frames(self) -> List[TracebackFrame]:
        interpreter = self.interpreter
        frames: List[TracebackFrame] = []
        for frame in interpreter.stack.frames:
            frames.append(
                TracebackFrame(
                    name=FRAME_NAMES[type(frame)],
                    line=frame.cursor.line_number_at(),
                    statement=_source_line(frame.cursor),
                    bound=frame.bound if isinstance(frame, ForFrame) else None,
                )
            )
        frames.append(
            TracebackFrame(
                name="<current>",
                line=interpreter.line,
                statement=_source_line(interpreter.cursor),
            )
        )
        return frames

    def format_text(self, error: MiepRuntimeError, verbose: bool) -> str:
        interpreter = self.interpreter
        lines = ["Traceback (most recent call last):"]
        for frame in self.build_frames():
            where = "?" if frame.line is None else str(frame.line)
            lines.append(f"  File \"{interpreter.filename}\", line {where}, in {frame.name}")
            if frame.statement:
                lines.append(f"    {frame.statement}")
        entry = interpreter.logger.last
        if entry is not None:
            lines.append(f"    Step log index: {entry.step_index}  Rule: {entry.rule}")
            if verbose and entry.env_snapshot is not None:
                snapshot = ", ".join(f"{k}={v}" for k, v in entry.env_snapshot.items())
                lines.append(f"    Env snapshot: {snapshot}")
        lines.append(f"{error.__class__.__name__}: {error.message}")
        return "\n".join(lines)

    def to_json(self, error: MiepRuntimeError) -> str:
        interpreter = self.interpreter
        frames_json: List[Dict[str, Any]] = []
        for index, frame in enumerate(self.build_frames()):
            frames_json.append(
                {
                    "frame_index": index,
                    "name": frame.name,
                    "line": frame.line,
                    "statement": frame.statement,
                    **({"bound": frame.bound} if frame.bound is not None else {}),
                }
            )
        data: Dict[str, Any] = {
            "error": {
                "type": error.__class__.__name__,
                "message": error.message,
                "line": error.line,
                "failing_step_index": error.step_index,
            },
            "traceback": frames_json,
            "steps": [
                {
                    "step_index": entry.step_index,
                    "line": entry.line,
                    "rule": entry.rule,
                    "offset": entry.offset,
                    **({"env_snapshot": entry.env_snapshot} if entry.env_snapshot is not None else {}),
                    **({"extra": entry.extra} if entry.extra else {}),
                }
                for entry in interpreter.logger.entries
            ],
        }
        return json.dumps(data, indent=2)
