# core/errors.py
from typing import Any, Dict, Optional


class VMError(Exception):
    """Base class for structural and runtime failures of the tape machine.

    Every subclass carries a stable ``code`` string so callers (CLI, RPC)
    can report the failure kind without matching on exception types.
    """

    code = "vm-error"

    def details(self) -> Dict[str, Any]:
        return {"code": self.code}


class UnbalancedBracketsError(VMError):
    """Raised by the encoder when loop brackets do not pair up."""

    code = "unbalanced-brackets"

    def __init__(self, offset: int, reason: str):
        self.offset = offset
        self.reason = reason
        super().__init__(f"Unbalanced brackets at byte offset {offset}: {reason}")

    def details(self) -> Dict[str, Any]:
        return {"code": self.code, "offset": self.offset, "reason": self.reason}


class OutOfBoundsError(VMError):
    """Raised when execution would step outside the tape, output or input."""

    code = "out-of-bounds"

    def __init__(self, region: str, position: int, limit: int, pc: Optional[int] = None):
        self.region = region  # "tape", "output" or "input"
        self.position = position
        self.limit = limit
        self.pc = pc
        where = f" at instruction {pc}" if pc is not None else ""
        super().__init__(
            f"{region} position {position} out of range [0, {limit}){where}"
        )

    def details(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "region": self.region,
            "position": self.position,
            "limit": self.limit,
            "pc": self.pc,
        }


class BudgetExceededError(VMError):
    """Raised when a run dispatches more instructions than its step budget."""

    code = "budget-exceeded"

    def __init__(self, max_steps: int, pc: Optional[int] = None):
        self.max_steps = max_steps
        self.pc = pc
        super().__init__(f"Execution exceeded budget of {max_steps} steps")

    def details(self) -> Dict[str, Any]:
        return {"code": self.code, "max_steps": self.max_steps, "pc": self.pc}
