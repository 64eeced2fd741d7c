"""
bootstrap/ - Bootstrap Layer

Configuration loading, logging setup and the command line entry point.
"""

from .config import (
    SheetCascadeConfig,
    EngineConfig,
    LoggingConfig,
    load_config,
    get_config,
)

from .entrypoints import (
    cli_main,
    setup_logging,
    parse_rows,
)


__all__ = [
    # Config
    "SheetCascadeConfig",
    "EngineConfig",
    "LoggingConfig",
    "load_config",
    "get_config",
    # Entry Points
    "cli_main",
    "setup_logging",
    "parse_rows",
]
