from bf_eth_puzzle.core.errors import (
    BudgetExceededError,
    OutOfBoundsError,
    UnbalancedBracketsError,
)


def naive_run(code: bytes, input_data: bytes = b"", max_steps: int = 100_000) -> bytes:
    """Unoptimized reference interpreter: one source byte per step, no staging register."""
    tape = [0] * 1024
    ptr = 0
    pc = 0
    cursor = 0
    output = []
    steps = 0
    loop_stack = []
    loops = {}

    # Precompute loops
    for i, c in enumerate(code):
        if c == ord("["):
            loop_stack.append(i)
        elif c == ord("]"):
            if not loop_stack:
                raise UnbalancedBracketsError(i, "loop-end without matching loop-start")
            start = loop_stack.pop()
            loops[start] = i
            loops[i] = start
    if loop_stack:
        raise UnbalancedBracketsError(loop_stack[-1], "loop-start is never closed")

    while pc < len(code):
        c = chr(code[pc])
        if c not in "+-<>.,[]":
            pc += 1
            continue
        if steps >= max_steps:
            raise BudgetExceededError(max_steps, pc)
        steps += 1
        if c == ">":
            ptr += 1
            if ptr >= 1024:
                raise OutOfBoundsError("tape", ptr, 1024, pc)
        elif c == "<":
            ptr -= 1
            if ptr < 0:
                raise OutOfBoundsError("tape", ptr, 1024, pc)
        elif c == "+":
            tape[ptr] = (tape[ptr] + 1) % 256
        elif c == "-":
            tape[ptr] = (tape[ptr] - 1) % 256
        elif c == ".":
            if len(output) >= 1024:
                raise OutOfBoundsError("output", len(output), 1024, pc)
            output.append(tape[ptr])
        elif c == ",":
            if cursor >= len(input_data):
                raise OutOfBoundsError("input", cursor, len(input_data), pc)
            tape[ptr] = input_data[cursor]
            cursor += 1
        elif c == "[":
            if tape[ptr] == 0:
                pc = loops[pc]
        elif c == "]":
            if tape[ptr] != 0:
                pc = loops[pc]
        pc += 1
    return bytes(output)


# Program printing "hi": 104 = 8 * 13, 105 = 104 + 1
HI_PROGRAM = b"++++++++[>+++++++++++++<-]>.+."
