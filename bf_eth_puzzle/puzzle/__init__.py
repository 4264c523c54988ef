"""
Puzzle collaborators around the tape machine: trait lookup, per-actor
instruction stacks and the settlement check.
"""

from .traits import (
    TRAIT_CODE_TABLE,
    InvalidInstructionCodeError,
    trait_code,
    instruction_for_code,
    instruction_for_identifier,
)
from .ledger import InstructionLedger, EmptyProgramError, normalize_actor
from .settlement import (
    TARGET_OUTPUT,
    TARGET_HASH,
    Settlement,
    SettlementVerdict,
    output_hash,
    is_solution,
)

__all__ = [
    "TRAIT_CODE_TABLE",
    "InvalidInstructionCodeError",
    "trait_code",
    "instruction_for_code",
    "instruction_for_identifier",
    "InstructionLedger",
    "EmptyProgramError",
    "normalize_actor",
    "TARGET_OUTPUT",
    "TARGET_HASH",
    "Settlement",
    "SettlementVerdict",
    "output_hash",
    "is_solution",
]
