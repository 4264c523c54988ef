from .server import PuzzleService, init_service, start_rpc_server

__all__ = ["PuzzleService", "init_service", "start_rpc_server"]
