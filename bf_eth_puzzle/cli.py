#!/usr/bin/env python3
"""
Command line entry point for the tape puzzle toolkit.

Subcommands:
    encode  Show the merged, jump-resolved instruction listing of a program.
    run     Execute a program against input bytes and print its output.
    check   Execute a program and report whether it meets the settlement target.
    serve   Start the JSON-RPC service.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from web3 import Web3

from .config import ConfigError, load_config
from .core.encoder import encode, format_program
from .core.errors import VMError
from .core.executor import execute_detailed
from .deployment.deploy import add_server_arguments, configure_logging, serve_from_args
from .puzzle.settlement import is_solution, output_hash

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VM_ERROR = 2
EXIT_NOT_SOLVED = 3


def read_program(args: argparse.Namespace) -> bytes:
    """Program bytes from -e/--expr or from the file argument."""
    if args.expr is not None:
        return args.expr.encode("latin-1")
    if args.program is None:
        raise ValueError("Either a program file or -e/--expr must be given")
    return Path(args.program).read_bytes()


def read_input(args: argparse.Namespace) -> bytes:
    if args.input_hex is not None:
        return Web3.to_bytes(hexstr=args.input_hex)
    if args.input is not None:
        return args.input.encode("latin-1")
    return b""


def _add_program_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("program", nargs="?", help="Path to a program file")
    parser.add_argument("-e", "--expr", help="Program given literally on the command line")


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--input", help="Input bytes as text")
    group.add_argument("--input-hex", help="Input bytes as hex (0x prefix optional)")
    parser.add_argument("--max-steps", type=int, help="Step budget (default from config)")
    parser.add_argument("--config", help="Path to a YAML config file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bf-puzzle", description="Encode and run tape puzzle programs"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    encode_parser = subparsers.add_parser("encode", help="Show the encoded instruction listing")
    _add_program_arguments(encode_parser)
    encode_parser.add_argument(
        "--format", choices=["text", "json", "yaml"], default="text", help="Listing format"
    )

    run_parser = subparsers.add_parser("run", help="Execute a program")
    _add_program_arguments(run_parser)
    _add_input_arguments(run_parser)
    run_parser.add_argument(
        "--format", choices=["raw", "hex", "json"], default="raw", help="Output format"
    )

    check_parser = subparsers.add_parser("check", help="Check a program against the target")
    _add_program_arguments(check_parser)
    _add_input_arguments(check_parser)

    serve_parser = subparsers.add_parser("serve", help="Start the JSON-RPC service")
    add_server_arguments(serve_parser)

    return parser


def cmd_encode(args: argparse.Namespace) -> int:
    program = encode(read_program(args))
    if args.format == "json":
        print(json.dumps(program.to_dict(), indent=2))
    elif args.format == "yaml":
        print(yaml.safe_dump(program.to_dict(), default_flow_style=False, sort_keys=False), end="")
    else:
        print(f"; {len(program)} instructions, has_output={program.has_output}")
        if len(program):
            print(format_program(program.instructions))
    return EXIT_OK


def _budget(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    return config.max_steps if args.max_steps is None else args.max_steps


def cmd_run(args: argparse.Namespace) -> int:
    result = execute_detailed(read_program(args), read_input(args), _budget(args))
    if args.format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    elif args.format == "hex":
        print(Web3.to_hex(result.output))
    else:
        sys.stdout.buffer.write(result.output)
        sys.stdout.flush()
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    budget = config.max_steps if args.max_steps is None else args.max_steps
    result = execute_detailed(read_program(args), read_input(args), budget)
    target_hash = output_hash(config.target_bytes)
    solved = is_solution(result.output, target_hash)
    print(
        json.dumps(
            {
                "solved": solved,
                "output": Web3.to_hex(result.output),
                "output_hash": Web3.to_hex(output_hash(result.output)),
                "target_hash": Web3.to_hex(target_hash),
            },
            indent=2,
        )
    )
    return EXIT_OK if solved else EXIT_NOT_SOLVED


COMMANDS = {
    "encode": cmd_encode,
    "run": cmd_run,
    "check": cmd_check,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return serve_from_args(args)

    configure_logging("DEBUG" if args.verbose else "WARNING")
    try:
        return COMMANDS[args.command](args)
    except VMError as e:
        print(f"Error ({e.code}): {e}", file=sys.stderr)
        return EXIT_VM_ERROR
    except (ConfigError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
