# core/encoder.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

import structlog

from .errors import UnbalancedBracketsError
from .opcodes import JUMP_OPCODES, OPCODE_BY_BYTE, Opcode

logger = structlog.get_logger()


@dataclass
class Instruction:
    """A single encoded instruction.

    For loop brackets the operand is the instruction index to jump to; for
    every other opcode it is a repeat count.
    """

    opcode: Opcode
    operand: int = 1

    @property
    def is_jump(self) -> bool:
        return self.opcode in JUMP_OPCODES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "opcode": self.opcode.mnemonic,
            "symbol": self.opcode.symbol,
            "operand": self.operand,
        }

    def __repr__(self) -> str:
        return f"Instruction({self.opcode.mnemonic}, {self.operand})"


@dataclass
class EncodedProgram:
    """Output of the encoder: merged, jump-resolved instructions."""

    instructions: List[Instruction] = field(default_factory=list)
    has_output: bool = False

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self):
        return iter(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_output": self.has_output,
            "instructions": [
                dict(index=i, **instr.to_dict())
                for i, instr in enumerate(self.instructions)
            ],
        }


def encode(raw: bytes) -> EncodedProgram:
    """
    Compile raw program bytes into an encoded instruction sequence.

    Runs of the same non-bracket instruction collapse into one instruction
    whose operand is the run length. Bytes outside the instruction set are
    skipped and do not break a run. Loop brackets get their jump targets
    resolved: a loop-start points just past its matching loop-end and a
    loop-end points just past its matching loop-start.

    Args:
        raw: Program source bytes.

    Returns:
        EncodedProgram holding the instructions and whether any of them
        can produce output.

    Raises:
        UnbalancedBracketsError: If a loop-end has no open loop-start, or a
            loop-start is never closed.
    """
    instructions: List[Instruction] = []
    has_output = False
    # (instruction index, raw offset) of each open loop-start
    balance: List[Tuple[int, int]] = []

    length = len(raw)
    i = 0
    while i < length:
        opcode = OPCODE_BY_BYTE.get(raw[i])
        if opcode is None:
            i += 1
            continue

        if opcode == Opcode.LOOP_START:
            balance.append((len(instructions), i))
            # Operand is patched when the matching loop-end is seen
            instructions.append(Instruction(Opcode.LOOP_START, 0))
            i += 1
            continue

        if opcode == Opcode.LOOP_END:
            if not balance:
                raise UnbalancedBracketsError(i, "loop-end without matching loop-start")
            start_index, _ = balance.pop()
            instructions[start_index].operand = len(instructions) + 1
            instructions.append(Instruction(Opcode.LOOP_END, start_index + 1))
            i += 1
            continue

        count = 1
        i += 1
        while i < length:
            following = OPCODE_BY_BYTE.get(raw[i])
            if following is None:
                i += 1
            elif following == opcode:
                count += 1
                i += 1
            else:
                break

        if opcode == Opcode.OUTPUT:
            has_output = True
        instructions.append(Instruction(opcode, count))

    if balance:
        _, offset = balance[-1]
        raise UnbalancedBracketsError(offset, "loop-start is never closed")

    logger.debug(
        "Encoded program",
        raw_length=length,
        instructions=len(instructions),
        has_output=has_output,
    )
    return EncodedProgram(instructions=instructions, has_output=has_output)


def decode(program: Sequence[Instruction]) -> bytes:
    """Render encoded instructions back into canonical source bytes."""
    out = bytearray()
    for instr in program:
        if instr.is_jump:
            out.append(instr.opcode.value)
        else:
            out.extend(bytes([instr.opcode.value]) * instr.operand)
    return bytes(out)


def format_program(program: Sequence[Instruction]) -> str:
    """Human-readable listing, one instruction per line."""
    lines = []
    for index, instr in enumerate(program):
        if instr.is_jump:
            operand = f"-> {instr.operand}"
        else:
            operand = f"x{instr.operand}"
        lines.append(f"{index:5d}  {instr.opcode.symbol}  {instr.opcode.mnemonic:<12} {operand}")
    return "\n".join(lines)
