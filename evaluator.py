from __future__ import annotations
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from cursor import is_digit, is_xdigit
from store import to_int16, variable_index

if TYPE_CHECKING:
    from interpreter import Interpreter


BinaryOp = Callable[[int, int], int]


def _as_bool(value: bool) -> int:
    return 1 if value else 0


def trunc_divmod(a: int, b: int) -> Tuple[int, int]:
    """Quotient rounded toward zero; remainder carries the dividend's sign."""
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    return quotient, a - quotient * b


# Division is not listed: it needs the remainder register.
BINARY_OPERATORS: Dict[str, BinaryOp] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "=": lambda a, b: _as_bool(a == b),
    "<": lambda a, b: _as_bool(a < b),
    "<>": lambda a, b: _as_bool(a != b),
    "<=": lambda a, b: _as_bool(a <= b),
    ">": lambda a, b: _as_bool(a > b),
    ">=": lambda a, b: _as_bool(a >= b),
}

UNARY_OPERATORS = "+-'#%"


class Evaluator:
    """Flat-precedence expression evaluator reading straight off the live cursor.

    Every binary operator has the same precedence and associates to the left,
    so ``2+3*4`` is 20.
    """

    def __init__(self, interpreter: "Interpreter") -> None:
        self.interpreter = interpreter
        self.remainder = 0

    def expression(self) -> int:
        interpreter = self.interpreter
        interpreter.cursor.skip_spaces()
        value = self.term()
        while True:
            op = self._binary_operator()
            if op is None:
                return value
            rhs = self.term()
            if op == "/":
                value = self._divide(value, rhs)
            else:
                value = to_int16(BINARY_OPERATORS[op](value, rhs))

    def term(self) -> int:
        interpreter = self.interpreter
        cursor = interpreter.cursor
        cursor.skip_spaces()

        if cursor.accept("("):
            value = self.expression()
            cursor.skip_spaces()
            interpreter.expect(")")
            return value

        letter = cursor.read_variable()
        if letter is not None:
            return self._variable(variable_index(letter))

        # '$' without hex digits reads a key; '$1F' is a hex constant.
        if cursor.peek() == "$" and not is_xdigit(cursor.peek(1)):
            cursor.advance()
            return interpreter.console.read_char()

        if cursor.accept("?"):
            return interpreter.console.read_number()

        start = cursor.pos
        value = self.constant()
        if value != 0 or cursor.pos != start:
            return value

        op = cursor.peek()
        if op in UNARY_OPERATORS:
            cursor.advance()
            return self._unary(op, self.term())
        return 0

    def constant(self) -> int:
        interpreter = self.interpreter
        cursor = interpreter.cursor
        ch = cursor.peek()
        if ch == '"':
            text = interpreter.read_string()
            value = ord(text[0]) if text else 0
            if len(text) > 1:
                value += ord(text[1]) * 256
            return to_int16(value)
        if ch == "$":
            cursor.advance()
            number = cursor.read_hex()
            return -1 if number is None else to_int16(number)
        if is_digit(ch):
            return to_int16(cursor.read_decimal() or 0)
        return 0

    def _variable(self, index: int) -> int:
        interpreter = self.interpreter
        cursor = interpreter.cursor
        store = interpreter.store
        if cursor.accept(":"):
            offset = self.expression()
            interpreter.expect(")")
            return store.get_byte(index, offset)
        if cursor.accept("("):
            offset = self.expression()
            interpreter.expect(")")
            return store.get_word(index, offset)
        return store.get(index)

    def _unary(self, op: str, value: int) -> int:
        if op == "-":
            return to_int16(-value)
        if op == "+":
            return to_int16(abs(value))
        if op == "#":
            return 0 if value != 0 else 1
        if op == "'":
            return self.interpreter.random.randrange(value) if value > 0 else 0
        # '%' still consumed its operand above.
        return self.remainder

    def _binary_operator(self) -> Optional[str]:
        cursor = self.interpreter.cursor
        ch = cursor.peek()
        if ch in "=+-*/":
            cursor.advance()
            return ch
        if ch == "<":
            cursor.advance()
            if cursor.accept(">"):
                return "<>"
            if cursor.accept("="):
                return "<="
            return "<"
        if ch == ">":
            cursor.advance()
            if cursor.accept("="):
                return ">="
            return ">"
        return None

    def _divide(self, a: int, b: int) -> int:
        if b == 0:
            self.interpreter.console.write("Division by zero\n")
            return -1
        quotient, remainder = trunc_divmod(a, b)
        self.remainder = to_int16(remainder)
        return to_int16(quotient)
