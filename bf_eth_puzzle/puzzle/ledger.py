# puzzle/ledger.py
import threading
from typing import Dict, List, Union

import structlog
from web3 import Web3

from ..core.opcodes import Opcode, opcode_for_byte
from .traits import instruction_for_identifier

logger = structlog.get_logger()


class EmptyProgramError(IndexError):
    """Raised when popping from an actor with no stored instructions."""

    def __init__(self, actor: str):
        self.actor = actor
        super().__init__(f"No instructions stored for {actor}")


def normalize_actor(actor: str) -> str:
    """Checksum hex addresses so casing differences map to one stack."""
    # Lowercase first: mixed case with a bad checksum is not an address to web3.
    lowered = actor.lower()
    if Web3.is_address(lowered):
        return Web3.to_checksum_address(lowered)
    return actor


class InstructionLedger:
    """
    In-memory per-actor instruction stacks.

    Each actor owns an append/pop sequence of instruction bytes; its current
    contents are the program that actor submits for settlement. Nothing is
    persisted.
    """

    def __init__(self):
        self._programs: Dict[str, bytearray] = {}
        self._lock = threading.Lock()

    def push(self, actor: str, identifier: int) -> Opcode:
        """
        Resolve an asset identifier and append its instruction.

        Raises:
            InvalidInstructionCodeError: The identifier maps to a dud code;
                the stack is left untouched.
        """
        opcode = instruction_for_identifier(identifier)
        self.push_instruction(actor, opcode)
        return opcode

    def push_instruction(self, actor: str, opcode: Union[Opcode, int]) -> Opcode:
        resolved = opcode_for_byte(int(opcode))
        if resolved is None:
            raise ValueError(f"Byte {int(opcode):#04x} is not an instruction")
        key = normalize_actor(actor)
        with self._lock:
            self._programs.setdefault(key, bytearray()).append(resolved.value)
            size = len(self._programs[key])
        logger.debug("Pushed instruction", actor=key, symbol=resolved.symbol, size=size)
        return resolved

    def pop(self, actor: str) -> Opcode:
        key = normalize_actor(actor)
        with self._lock:
            program = self._programs.get(key)
            if not program:
                raise EmptyProgramError(key)
            byte = program.pop()
        logger.debug("Popped instruction", actor=key, symbol=chr(byte))
        return Opcode(byte)

    def program(self, actor: str) -> bytes:
        key = normalize_actor(actor)
        with self._lock:
            return bytes(self._programs.get(key, b""))

    def clear(self, actor: str) -> None:
        key = normalize_actor(actor)
        with self._lock:
            self._programs.pop(key, None)

    def actors(self) -> List[str]:
        with self._lock:
            return [actor for actor, program in self._programs.items() if program]

    def __len__(self) -> int:
        return len(self.actors())
