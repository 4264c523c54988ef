import argparse
import logging
import sys
from typing import List, Optional

import structlog
from structlog.stdlib import LoggerFactory

from ..config import LOG_FORMATS, LOG_LEVELS, ConfigError, PuzzleConfig, load_config
from ..rpc.server import start_rpc_server


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging.

    Safe to call more than once: each call rebinds the root handler to the
    current ``sys.stderr`` and replaces the renderer.
    """
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
        stream=sys.stderr,  # stdout is reserved for program output in the CLI
        force=True,
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    logger = structlog.get_logger()
    logger.debug("Logging configured", log_level=log_level, log_format=log_format)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Run the tape puzzle JSON-RPC service")
    add_server_arguments(parser)
    return parser.parse_args(argv)


def add_server_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--host", help="Host to bind the RPC server to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to bind the RPC server to (default: 8545)")
    parser.add_argument("--max-steps", type=int, help="Step budget per execution")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Logging level (default: INFO)")
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Log renderer (default: console)")


def build_config(args: argparse.Namespace) -> PuzzleConfig:
    config = load_config(args.config)
    return config.updated(
        host=args.host,
        port=args.port,
        max_steps=args.max_steps,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def serve_from_args(args: argparse.Namespace) -> int:
    # One process only: the instruction ledger lives in this process's memory.
    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    configure_logging(config.log_level, config.log_format)
    logger = structlog.get_logger("deploy_main")

    logger.info("Starting server", host=config.host, port=config.port)
    try:
        start_rpc_server(config)
    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
        return 130
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for deployment"""
    return serve_from_args(parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
