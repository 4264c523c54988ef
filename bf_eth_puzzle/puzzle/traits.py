# puzzle/traits.py
from typing import List, Optional

import structlog
from web3 import Web3

from ..core.opcodes import Opcode

logger = structlog.get_logger()

UINT256_MAX = 2**256 - 1

# 4-bit trait code -> instruction. Only half of the code space is playable.
TRAIT_CODE_TABLE: List[Optional[Opcode]] = [
    Opcode.INCREMENT,
    Opcode.INPUT,
    Opcode.DECREMENT,
    Opcode.OUTPUT,
    Opcode.SHIFT_LEFT,
    Opcode.SHIFT_RIGHT,
    Opcode.LOOP_START,
    Opcode.LOOP_END,
    None,
    None,
    None,
    None,
    None,
    None,
    None,
    None,
]


class InvalidInstructionCodeError(ValueError):
    """A trait code that does not name one of the eight instructions."""

    def __init__(self, code: int, identifier: Optional[int] = None):
        self.code = code
        self.identifier = identifier
        source = f" (identifier {identifier})" if identifier is not None else ""
        super().__init__(f"Trait code {code} is not a valid instruction{source}")


def trait_code(identifier: int) -> int:
    """
    Derive the 4-bit trait code for an asset identifier.

    The code is the low nibble of the last byte of keccak256 over the
    identifier encoded as a 32-byte big-endian word.
    """
    if not 0 <= identifier <= UINT256_MAX:
        raise ValueError(f"Identifier must fit in uint256, got {identifier}")
    digest = Web3.keccak(identifier.to_bytes(32, "big"))
    return digest[-1] & 0x0F


def instruction_for_code(code: int, identifier: Optional[int] = None) -> Opcode:
    if not 0 <= code < len(TRAIT_CODE_TABLE):
        raise InvalidInstructionCodeError(code, identifier)
    opcode = TRAIT_CODE_TABLE[code]
    if opcode is None:
        raise InvalidInstructionCodeError(code, identifier)
    return opcode


def instruction_for_identifier(identifier: int) -> Opcode:
    """Resolve an asset identifier to its instruction, rejecting dud codes."""
    code = trait_code(identifier)
    opcode = instruction_for_code(code, identifier)
    logger.debug(
        "Resolved identifier", identifier=identifier, code=code, symbol=opcode.symbol
    )
    return opcode
