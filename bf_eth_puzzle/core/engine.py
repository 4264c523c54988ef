# core/engine.py
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import structlog

from .errors import BudgetExceededError, OutOfBoundsError, VMError
from .encoder import Instruction
from .opcodes import Opcode

logger = structlog.get_logger()

TAPE_SIZE = 1024
OUTPUT_CAPACITY = 1024
DEFAULT_MAX_STEPS = 1_000_000


@dataclass
class ExecutionResult:
    """Outcome of a completed run"""

    output: bytes
    steps: int  # Encoded instructions dispatched
    has_output: bool = True
    short_circuited: bool = False  # True when the engine was never invoked

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output": "0x" + self.output.hex(),
            "steps": self.steps,
            "has_output": self.has_output,
            "short_circuited": self.short_circuited,
        }


class ExecutionEngine:
    """
    Interprets encoded instructions against a fixed-size byte tape.

    The cell under the tape pointer is staged in a local register and
    written back to the tape whenever the pointer moves, so runs of
    arithmetic never touch the tape itself. Tape, output buffer and
    register are allocated fresh for every run.
    """

    def __init__(
        self,
        max_steps: Optional[int] = DEFAULT_MAX_STEPS,
        tape_size: int = TAPE_SIZE,
        output_capacity: int = OUTPUT_CAPACITY,
    ):
        if max_steps is not None and max_steps < 0:
            raise ValueError(f"max_steps must be non-negative, got {max_steps}")
        self.max_steps = max_steps
        self.tape_size = tape_size
        self.output_capacity = output_capacity

    def run(self, instructions: Sequence[Instruction], input_data: bytes = b"") -> bytes:
        """
        Execute instructions and return the produced output.

        Args:
            instructions: Encoded, jump-resolved instruction sequence.
            input_data: Bytes consumed by input instructions, in order.

        Returns:
            The output bytes written before the program counter ran off the
            end of the instruction sequence.

        Raises:
            OutOfBoundsError: Tape pointer, output buffer or input cursor
                went out of range.
            BudgetExceededError: More than ``max_steps`` instructions were
                dispatched.
        """
        output, _ = self.run_counted(instructions, input_data)
        return output

    def run_counted(
        self, instructions: Sequence[Instruction], input_data: bytes = b""
    ) -> Tuple[bytes, int]:
        """Like run(), but also returns the number of dispatched instructions."""
        logger.debug(
            "Starting run",
            instructions=len(instructions),
            input_length=len(input_data),
            max_steps=self.max_steps,
        )
        try:
            output, steps = self._dispatch(instructions, input_data)
        except VMError as e:
            # Partial output dies with the frame; callers only see the error
            logger.warning("Run aborted", error=str(e), **e.details())
            raise
        logger.debug("Run finished", steps=steps, output_length=len(output))
        return output, steps

    def _dispatch(
        self, instructions: Sequence[Instruction], input_data: bytes
    ) -> Tuple[bytes, int]:
        tape = bytearray(self.tape_size)
        output = bytearray()
        tape_size = self.tape_size
        capacity = self.output_capacity
        max_steps = self.max_steps
        input_length = len(input_data)

        pc = 0
        ptr = 0
        cursor = 0
        cell = 0
        steps = 0
        end = len(instructions)

        while pc < end:
            if max_steps is not None and steps >= max_steps:
                raise BudgetExceededError(max_steps, pc)
            steps += 1

            instr = instructions[pc]
            opcode = instr.opcode
            operand = instr.operand

            if opcode == Opcode.INCREMENT:
                cell = (cell + operand) & 0xFF
            elif opcode == Opcode.DECREMENT:
                cell = (cell - operand) & 0xFF
            elif opcode == Opcode.SHIFT_RIGHT:
                tape[ptr] = cell
                ptr += operand
                if ptr >= tape_size:
                    raise OutOfBoundsError("tape", ptr, tape_size, pc)
                cell = tape[ptr]
            elif opcode == Opcode.SHIFT_LEFT:
                tape[ptr] = cell
                ptr -= operand
                if ptr < 0:
                    raise OutOfBoundsError("tape", ptr, tape_size, pc)
                cell = tape[ptr]
            elif opcode == Opcode.INPUT:
                # n merged reads leave only the last byte in the cell
                cursor += operand
                if cursor > input_length:
                    raise OutOfBoundsError("input", cursor - 1, input_length, pc)
                cell = input_data[cursor - 1]
                tape[ptr] = cell
            elif opcode == Opcode.OUTPUT:
                if len(output) + operand > capacity:
                    raise OutOfBoundsError("output", len(output) + operand - 1, capacity, pc)
                output.extend(bytes((cell,)) * operand)
            elif opcode == Opcode.LOOP_START:
                if cell == 0:
                    pc = operand
                    continue
            elif opcode == Opcode.LOOP_END:
                if cell != 0:
                    pc = operand
                    continue
            else:
                raise ValueError(f"Unknown opcode {opcode!r} at instruction {pc}")

            pc += 1

        return bytes(output), steps


def run(
    instructions: Sequence[Instruction],
    input_data: bytes = b"",
    max_steps: Optional[int] = DEFAULT_MAX_STEPS,
) -> bytes:
    """Run instructions on a fresh engine; see ExecutionEngine.run."""
    return ExecutionEngine(max_steps=max_steps).run(instructions, input_data)
