"""
Instruction set definitions for the tape puzzle language.
"""

from enum import IntEnum
from typing import Dict, Optional


class Opcode(IntEnum):
    """Tape language opcodes, valued by their source byte"""

    INCREMENT = 0x2B  # +
    INPUT = 0x2C  # ,
    DECREMENT = 0x2D  # -
    OUTPUT = 0x2E  # .
    SHIFT_LEFT = 0x3C  # <
    SHIFT_RIGHT = 0x3E  # >
    LOOP_START = 0x5B  # [
    LOOP_END = 0x5D  # ]

    @property
    def symbol(self) -> str:
        return chr(self.value)

    @property
    def mnemonic(self) -> str:
        return self.name


# Fast lookup from a raw byte to its opcode; anything missing is a no-op
OPCODE_BY_BYTE: Dict[int, Opcode] = {op.value: op for op in Opcode}

# Opcodes whose operand is a resolved instruction index, not a count
JUMP_OPCODES = frozenset({Opcode.LOOP_START, Opcode.LOOP_END})

# Opcodes that are merged into a single instruction when repeated
RUN_OPCODES = frozenset(
    {
        Opcode.INCREMENT,
        Opcode.INPUT,
        Opcode.DECREMENT,
        Opcode.OUTPUT,
        Opcode.SHIFT_LEFT,
        Opcode.SHIFT_RIGHT,
    }
)


def opcode_for_byte(byte: int) -> Optional[Opcode]:
    """Return the opcode for a raw byte, or None if the byte is a no-op."""
    return OPCODE_BY_BYTE.get(byte)


def is_instruction_byte(byte: int) -> bool:
    return byte in OPCODE_BY_BYTE
