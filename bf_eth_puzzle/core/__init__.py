"""
Encoder and execution engine for the tape puzzle language.
"""

from .opcodes import Opcode, opcode_for_byte, is_instruction_byte
from .errors import (
    VMError,
    UnbalancedBracketsError,
    OutOfBoundsError,
    BudgetExceededError,
)
from .encoder import Instruction, EncodedProgram, encode, decode, format_program
from .engine import (
    ExecutionEngine,
    ExecutionResult,
    run,
    TAPE_SIZE,
    OUTPUT_CAPACITY,
    DEFAULT_MAX_STEPS,
)
from .executor import execute, execute_detailed


__all__ = [
    "Opcode",
    "opcode_for_byte",
    "is_instruction_byte",
    "VMError",
    "UnbalancedBracketsError",
    "OutOfBoundsError",
    "BudgetExceededError",
    "Instruction",
    "EncodedProgram",
    "encode",
    "decode",
    "format_program",
    "ExecutionEngine",
    "ExecutionResult",
    "run",
    "TAPE_SIZE",
    "OUTPUT_CAPACITY",
    "DEFAULT_MAX_STEPS",
    "execute",
    "execute_detailed",
]
