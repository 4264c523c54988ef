# rpc/server.py
import threading
from typing import Any, Callable, Dict, Optional

import structlog
from jsonrpcserver import Error, InvalidParams, Result, Success, method, serve
from web3 import Web3

from ..config import PuzzleConfig
from ..core.encoder import encode
from ..core.errors import VMError
from ..core.executor import execute_detailed
from ..puzzle.ledger import EmptyProgramError, InstructionLedger
from ..puzzle.settlement import Settlement
from ..puzzle.traits import InvalidInstructionCodeError

logger = structlog.get_logger()

VM_ERROR_CODE = -32010
EMPTY_PROGRAM_CODE = -32011
SERVICE_UNAVAILABLE_CODE = -32001


class PuzzleService:
    """State shared by the RPC methods: one ledger and its settlement check."""

    def __init__(self, config: PuzzleConfig):
        self.config = config
        self.ledger = InstructionLedger()
        self.settlement = Settlement(
            self.ledger, max_steps=config.max_steps, target=config.target_bytes
        )


# Global service instance, set up by init_service()
service: Optional[PuzzleService] = None
_service_lock = threading.Lock()


def init_service(config: PuzzleConfig, reset: bool = False) -> PuzzleService:
    """Initializes the global PuzzleService instance."""
    global service
    with _service_lock:
        if service is None or reset:
            logger.info(
                "Initializing PuzzleService for RPC server",
                max_steps=config.max_steps,
                target=config.target_output,
            )
            service = PuzzleService(config)
        else:
            logger.warning("PuzzleService already initialized.")
    return service


def _decode_hex(value: str, name: str) -> bytes:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a hex string")
    try:
        return Web3.to_bytes(hexstr=value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} is not valid hex: {value!r}") from e


def _call(name: str, handler: Callable[[PuzzleService], Dict[str, Any]]) -> Result:
    """Run a handler against the service, mapping failures to JSON-RPC errors."""
    if service is None:
        logger.error("RPC Error: service not initialized", method=name)
        return Error(code=SERVICE_UNAVAILABLE_CODE, message="Puzzle service not initialized")
    try:
        result = handler(service)
    except VMError as e:
        logger.info("RPC call rejected by VM", method=name, **e.details())
        return Error(code=VM_ERROR_CODE, message=str(e), data=e.details())
    except EmptyProgramError as e:
        return Error(code=EMPTY_PROGRAM_CODE, message=str(e), data={"actor": e.actor})
    except (InvalidInstructionCodeError, ValueError) as e:
        logger.info("RPC call with invalid params", method=name, error=str(e))
        return InvalidParams(str(e))
    logger.debug("RPC call successful", method=name)
    return Success(result)


@method(name="bf_encode")
def bf_encode(program: str) -> Result:
    def handler(svc: PuzzleService) -> Dict[str, Any]:
        return encode(_decode_hex(program, "program")).to_dict()

    return _call("bf_encode", handler)


@method(name="bf_execute")
def bf_execute(program: str, input: str = "0x", max_steps: Optional[int] = None) -> Result:
    def handler(svc: PuzzleService) -> Dict[str, Any]:
        budget = svc.config.max_steps if max_steps is None else int(max_steps)
        if budget < 0:
            raise ValueError("max_steps must be non-negative")
        result = execute_detailed(
            _decode_hex(program, "program"), _decode_hex(input, "input"), budget
        )
        return {
            "output": Web3.to_hex(result.output),
            "steps": result.steps,
            "short_circuited": result.short_circuited,
        }

    return _call("bf_execute", handler)


@method(name="puzzle_push")
def puzzle_push(actor: str, identifier: int) -> Result:
    def handler(svc: PuzzleService) -> Dict[str, Any]:
        opcode = svc.ledger.push(actor, int(identifier))
        return {"symbol": opcode.symbol, "program": Web3.to_hex(svc.ledger.program(actor))}

    return _call("puzzle_push", handler)


@method(name="puzzle_pop")
def puzzle_pop(actor: str) -> Result:
    def handler(svc: PuzzleService) -> Dict[str, Any]:
        opcode = svc.ledger.pop(actor)
        return {"symbol": opcode.symbol, "program": Web3.to_hex(svc.ledger.program(actor))}

    return _call("puzzle_pop", handler)


@method(name="puzzle_program")
def puzzle_program(actor: str) -> Result:
    def handler(svc: PuzzleService) -> Dict[str, Any]:
        return {"program": Web3.to_hex(svc.ledger.program(actor))}

    return _call("puzzle_program", handler)


@method(name="puzzle_settle")
def puzzle_settle(actor: str, input: str = "0x") -> Result:
    def handler(svc: PuzzleService) -> Dict[str, Any]:
        verdict = svc.settlement.settle(actor, _decode_hex(input, "input"))
        return verdict.to_dict()

    return _call("puzzle_settle", handler)


# --- Server Startup ---


def start_rpc_server(config: PuzzleConfig) -> None:
    """Initializes the service and starts the JSON-RPC server (blocks)."""
    init_service(config)
    logger.info("Starting JSON-RPC server", host=config.host, port=config.port)
    serve(config.host, config.port)
