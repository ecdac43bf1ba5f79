from __future__ import annotations
from typing import Dict

import numpy as np
from numpy.typing import NDArray


MEMORY_SIZE = 65536
VARIABLE_COUNT = 26
ADDRESS_MASK = MEMORY_SIZE - 1


def to_int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def variable_index(letter: str) -> int:
    return ord(letter.upper()) - ord("A")


def variable_name(index: int) -> str:
    return chr(ord("A") + index)


class Store:
    """The 26 variable slots and the flat byte memory they point into."""

    def __init__(self) -> None:
        self.variables: NDArray[np.int16] = np.zeros(VARIABLE_COUNT, dtype=np.int16)
        self.memory: NDArray[np.uint8] = np.zeros(MEMORY_SIZE, dtype=np.uint8)

    def get(self, index: int) -> int:
        return int(self.variables[index])

    def set(self, index: int, value: int) -> None:
        self.variables[index] = to_int16(value)

    def address(self, index: int, offset: int, scale: int = 1) -> int:
        return (self.get(index) + offset * scale) & ADDRESS_MASK

    def get_byte(self, index: int, offset: int) -> int:
        return int(self.memory[self.address(index, offset)])

    def set_byte(self, index: int, offset: int, value: int) -> None:
        self.memory[self.address(index, offset)] = value & 0xFF

    def get_word(self, index: int, offset: int) -> int:
        addr = self.address(index, offset, 2)
        low = int(self.memory[addr])
        high = int(self.memory[(addr + 1) & ADDRESS_MASK])
        return to_int16(low | (high << 8))

    def set_word(self, index: int, offset: int, value: int) -> None:
        addr = self.address(index, offset, 2)
        self.memory[addr] = value & 0xFF
        self.memory[(addr + 1) & ADDRESS_MASK] = (value >> 8) & 0xFF

    def snapshot(self) -> Dict[str, str]:
        return {variable_name(i): str(int(v)) for i, v in enumerate(self.variables) if v != 0}
