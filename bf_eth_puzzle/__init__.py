"""
Brainfuck-on-chain puzzle toolkit.

The core is a two-stage interpreter: ``encode`` compiles raw program bytes
into run-length merged, jump-resolved instructions, and ``ExecutionEngine``
runs them on a bounded 1024-cell tape. ``execute`` ties the two together.
"""

__version__ = "0.1.0"

import structlog
from structlog.stdlib import LoggerFactory

# Until an application configures logging, events go through stdlib logging,
# which drops debug events and sends warnings to stderr.
if not structlog.is_configured():
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

from .core import (
    Opcode,
    Instruction,
    EncodedProgram,
    encode,
    decode,
    ExecutionEngine,
    ExecutionResult,
    execute,
    execute_detailed,
    VMError,
    UnbalancedBracketsError,
    OutOfBoundsError,
    BudgetExceededError,
)
from .puzzle import InstructionLedger, Settlement, is_solution

__all__ = [
    "Opcode",
    "Instruction",
    "EncodedProgram",
    "encode",
    "decode",
    "ExecutionEngine",
    "ExecutionResult",
    "execute",
    "execute_detailed",
    "VMError",
    "UnbalancedBracketsError",
    "OutOfBoundsError",
    "BudgetExceededError",
    "InstructionLedger",
    "Settlement",
    "is_solution",
]
