# puzzle/settlement.py
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from hexbytes import HexBytes
from web3 import Web3

from ..core.engine import DEFAULT_MAX_STEPS
from ..core.executor import execute
from .ledger import InstructionLedger, normalize_actor

logger = structlog.get_logger()

TARGET_OUTPUT = b"hi"


def output_hash(output: bytes) -> HexBytes:
    return Web3.keccak(output)


TARGET_HASH = output_hash(TARGET_OUTPUT)


def is_solution(output: bytes, target_hash: HexBytes = TARGET_HASH) -> bool:
    """Exact hash match against the target; there is no partial credit."""
    return output_hash(output) == target_hash


@dataclass
class SettlementVerdict:
    actor: str
    output: bytes
    output_hash: HexBytes
    solved: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor": self.actor,
            "output": Web3.to_hex(self.output),
            "output_hash": Web3.to_hex(self.output_hash),
            "solved": self.solved,
        }


class Settlement:
    """
    Runs an actor's accumulated program and checks it against the target.

    A solved verdict is where a reward would be released; funds are never
    moved here.
    """

    def __init__(
        self,
        ledger: InstructionLedger,
        max_steps: Optional[int] = DEFAULT_MAX_STEPS,
        target: bytes = TARGET_OUTPUT,
    ):
        self.ledger = ledger
        self.max_steps = max_steps
        self.target = target
        self.target_hash = output_hash(target)

    def settle(self, actor: str, input_data: bytes = b"") -> SettlementVerdict:
        """
        Execute the actor's program and compare its output hash to the target.

        Raises:
            VMError: The program is malformed, ran out of bounds or exceeded
                its step budget. Nothing is settled in that case.
        """
        key = normalize_actor(actor)
        program = self.ledger.program(key)
        output = execute(program, input_data, max_steps=self.max_steps)
        digest = output_hash(output)
        solved = digest == self.target_hash

        verdict = SettlementVerdict(actor=key, output=output, output_hash=digest, solved=solved)
        if solved:
            logger.info("reward_released", actor=key, program_length=len(program))
        else:
            logger.info(
                "Settlement check failed",
                actor=key,
                output_hash=Web3.to_hex(digest),
                output_length=len(output),
            )
        return verdict
