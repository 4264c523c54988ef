# core/executor.py
from typing import Optional

import structlog

from .encoder import encode
from .engine import DEFAULT_MAX_STEPS, ExecutionEngine, ExecutionResult

logger = structlog.get_logger()


def execute_detailed(
    program: bytes,
    input_data: bytes = b"",
    max_steps: Optional[int] = DEFAULT_MAX_STEPS,
) -> ExecutionResult:
    """
    Encode and run a raw program, reporting step usage alongside the output.

    Programs without any output instruction return empty output without
    being run at all.

    Raises:
        UnbalancedBracketsError: From the encoder, even for programs that
            would otherwise be short-circuited.
        OutOfBoundsError, BudgetExceededError: From the engine.
    """
    encoded = encode(program)
    if not encoded.has_output:
        logger.debug("Program cannot produce output, skipping run", instructions=len(encoded))
        return ExecutionResult(output=b"", steps=0, has_output=False, short_circuited=True)

    engine = ExecutionEngine(max_steps=max_steps)
    output, steps = engine.run_counted(encoded.instructions, input_data)
    return ExecutionResult(output=output, steps=steps, has_output=True)


def execute(
    program: bytes,
    input_data: bytes = b"",
    max_steps: Optional[int] = DEFAULT_MAX_STEPS,
) -> bytes:
    """Run a raw program against input bytes and return its output bytes."""
    return execute_detailed(program, input_data, max_steps).output
