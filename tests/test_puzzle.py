import itertools

import pytest
from web3 import Web3

from bf_eth_puzzle.core.errors import BudgetExceededError, UnbalancedBracketsError
from bf_eth_puzzle.core.opcodes import Opcode
from bf_eth_puzzle.puzzle import (
    TARGET_HASH,
    TRAIT_CODE_TABLE,
    EmptyProgramError,
    InstructionLedger,
    InvalidInstructionCodeError,
    Settlement,
    instruction_for_code,
    instruction_for_identifier,
    is_solution,
    normalize_actor,
    output_hash,
    trait_code,
)

ALICE = "0x" + "ab" * 20
BOB = "bob"


def identifier_for(opcode):
    """Smallest identifier whose trait code resolves to the given instruction."""
    for identifier in itertools.count():
        code = trait_code(identifier)
        if TRAIT_CODE_TABLE[code] == opcode:
            return identifier


def invalid_identifier():
    for identifier in itertools.count():
        if TRAIT_CODE_TABLE[trait_code(identifier)] is None:
            return identifier


@pytest.fixture
def ledger():
    return InstructionLedger()


# --- Trait lookup ---


def test_trait_table_covers_four_bit_space():
    assert len(TRAIT_CODE_TABLE) == 16
    valid = [op for op in TRAIT_CODE_TABLE if op is not None]
    assert sorted(valid) == sorted(Opcode)


@pytest.mark.parametrize("code", range(8))
def test_valid_codes_map_to_instructions(code):
    assert instruction_for_code(code) is TRAIT_CODE_TABLE[code]


@pytest.mark.parametrize("code", [8, 9, 12, 15, 16, -1])
def test_invalid_codes_are_rejected(code):
    with pytest.raises(InvalidInstructionCodeError):
        instruction_for_code(code)


def test_trait_code_is_low_nibble_of_keccak():
    for identifier in range(32):
        digest = Web3.keccak(identifier.to_bytes(32, "big"))
        assert trait_code(identifier) == digest[-1] & 0x0F


def test_trait_code_rejects_out_of_range_identifiers():
    with pytest.raises(ValueError):
        trait_code(-1)
    with pytest.raises(ValueError):
        trait_code(2**256)


def test_identifier_resolution_matches_table():
    for identifier in range(64):
        code = trait_code(identifier)
        if TRAIT_CODE_TABLE[code] is None:
            with pytest.raises(InvalidInstructionCodeError) as exc_info:
                instruction_for_identifier(identifier)
            assert exc_info.value.identifier == identifier
        else:
            assert instruction_for_identifier(identifier) is TRAIT_CODE_TABLE[code]


# --- Ledger ---


def test_push_and_pop_identifiers(ledger):
    plus = identifier_for(Opcode.INCREMENT)
    out = identifier_for(Opcode.OUTPUT)
    assert ledger.push(ALICE, plus) is Opcode.INCREMENT
    assert ledger.push(ALICE, out) is Opcode.OUTPUT
    assert ledger.program(ALICE) == b"+."
    assert ledger.pop(ALICE) is Opcode.OUTPUT
    assert ledger.program(ALICE) == b"+"


def test_invalid_identifier_leaves_stack_untouched(ledger):
    ledger.push_instruction(ALICE, Opcode.INCREMENT)
    with pytest.raises(InvalidInstructionCodeError):
        ledger.push(ALICE, invalid_identifier())
    assert ledger.program(ALICE) == b"+"


def test_push_instruction_rejects_non_instruction_bytes(ledger):
    with pytest.raises(ValueError):
        ledger.push_instruction(ALICE, ord("a"))
    assert ledger.program(ALICE) == b""


def test_pop_empty_raises(ledger):
    with pytest.raises(EmptyProgramError) as exc_info:
        ledger.pop(BOB)
    assert exc_info.value.actor == BOB


def test_stacks_are_per_actor(ledger):
    ledger.push_instruction(ALICE, Opcode.INCREMENT)
    ledger.push_instruction(BOB, Opcode.DECREMENT)
    assert ledger.program(ALICE) == b"+"
    assert ledger.program(BOB) == b"-"
    assert sorted(ledger.actors()) == sorted([normalize_actor(ALICE), BOB])
    ledger.clear(BOB)
    assert ledger.program(BOB) == b""
    assert len(ledger) == 1


def test_address_casing_maps_to_one_stack(ledger):
    ledger.push_instruction(ALICE.lower(), Opcode.INCREMENT)
    ledger.push_instruction(Web3.to_checksum_address(ALICE), Opcode.OUTPUT)
    assert ledger.program(ALICE) == b"+."
    assert normalize_actor(ALICE) == Web3.to_checksum_address(ALICE)


def test_bad_checksum_casing_maps_to_one_stack(ledger):
    checksummed = Web3.to_checksum_address(ALICE)
    # Every letter flipped: mixed case that fails the checksum
    wrong_case = "0x" + checksummed[2:].swapcase()
    assert not Web3.is_address(wrong_case)
    ledger.push_instruction(wrong_case, Opcode.INCREMENT)
    ledger.push_instruction(ALICE, Opcode.OUTPUT)
    assert ledger.program(checksummed) == b"+."
    assert ledger.actors() == [checksummed]


# --- Settlement ---


def test_target_hash_is_keccak_of_hi():
    assert TARGET_HASH == Web3.keccak(text="hi")
    assert output_hash(b"hi") == TARGET_HASH


@pytest.mark.parametrize(
    "output, expected",
    [
        (b"hi", True),
        (b"\x68\x69", True),
        (b"h", False),
        (b"", False),
        (b"hi\x00", False),
        (b"ih", False),
    ],
)
def test_is_solution_requires_exact_match(output, expected):
    assert is_solution(output) is expected


def load(ledger, actor, program):
    for byte in program:
        if byte in (op.value for op in Opcode):
            ledger.push_instruction(actor, byte)


def test_settle_solved(ledger, hi_program):
    load(ledger, ALICE, hi_program)
    verdict = Settlement(ledger).settle(ALICE)
    assert verdict.solved is True
    assert verdict.output == b"hi"
    assert verdict.actor == normalize_actor(ALICE)
    data = verdict.to_dict()
    assert data["output"] == "0x6869"
    assert data["output_hash"] == Web3.to_hex(TARGET_HASH)


def test_settle_wrong_output(ledger):
    load(ledger, BOB, b"+" * 104 + b".")
    verdict = Settlement(ledger).settle(BOB)
    assert verdict.solved is False
    assert verdict.output == b"h"


def test_settle_empty_program(ledger):
    verdict = Settlement(ledger).settle(BOB)
    assert verdict.solved is False
    assert verdict.output == b""


def test_settle_uses_input(ledger):
    load(ledger, BOB, b",.,.")
    assert Settlement(ledger).settle(BOB, b"hi").solved is True


def test_settle_with_custom_target(ledger):
    load(ledger, BOB, b",.")
    assert Settlement(ledger, target=b"!").settle(BOB, b"!").solved is True


def test_settle_propagates_vm_errors(ledger):
    load(ledger, BOB, b"+[.]")
    with pytest.raises(BudgetExceededError):
        Settlement(ledger, max_steps=100).settle(BOB)
    ledger.clear(BOB)
    load(ledger, BOB, b"[.")
    with pytest.raises(UnbalancedBracketsError):
        Settlement(ledger).settle(BOB)
