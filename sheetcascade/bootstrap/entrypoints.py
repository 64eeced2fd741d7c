"""
bootstrap/entrypoints.py - Application entry points

Provides logging setup and the sheetcascade CLI:

    sheetcascade inspect sheet.json
    sheetcascade expand sheet.json --rows gear=-r1,-r2
    sheetcascade audit sheet.json
    sheetcascade trace sheet.json --rows gear=-r1 --attr strength=10 --set strength=14
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import argparse
import json
import logging
import sys

from sheetcascade.core.naming import to_section_name
from sheetcascade.declarations.registry import SheetConfiguration
from sheetcascade.dependencies.audit import audit_cascade, graph_statistics
from sheetcascade.dependencies.expansion import expand_cascade
from sheetcascade.errors import DiagnosticChannel, ErrorCode
from sheetcascade.host.adapter import InMemoryHost
from sheetcascade.kernel.session import SheetSession

from .config import EngineConfig, load_config

logger = logging.getLogger("bootstrap.entrypoints")

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = False,
    log_format: str = DEFAULT_LOG_FORMAT,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        log_format: Format string for plain-text logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(log_format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)


# =============================================================================
# COMMANDS
# =============================================================================

def parse_rows(values: Optional[List[str]]) -> Dict[str, List[str]]:
    """
    Parse --rows arguments.

    >>> parse_rows(["gear=-r1,-r2"])
    {'repeating_gear': ['-r1', '-r2']}
    """
    sections: Dict[str, List[str]] = {}
    for value in values or []:
        if "=" not in value:
            raise ValueError(f"Invalid --rows value {value!r}; expected section=id1,id2")
        section, ids = value.split("=", 1)
        sections[to_section_name(section.strip())] = [i.strip() for i in ids.split(",") if i.strip()]
    return sections


def parse_assignments(values: Optional[List[str]]) -> List[Tuple[str, str]]:
    """Parse name=value arguments, keeping their order."""
    pairs = []
    for value in values or []:
        if "=" not in value:
            raise ValueError(f"Invalid assignment {value!r}; expected name=value")
        name, raw = value.split("=", 1)
        pairs.append((name.strip(), raw.strip()))
    return pairs


def load_document(path: str) -> SheetConfiguration:
    return SheetConfiguration.from_json(Path(path).read_text())


def inspect_command(config: SheetConfiguration) -> Dict[str, Any]:
    return {
        "name": config.name,
        "version": config.version,
        "nodes": {
            key: {
                "kind": node.kind.value,
                "default_value": node.default_value,
                "affects": list(node.affects),
                "handlers": node.handler_names(),
            }
            for key, node in config.registry.items()
        },
        "listeners": config.registry.listeners(),
        "sections": [d.to_dict() for d in config.sections],
        "action_attributes": list(config.action_attributes),
        "graph": graph_statistics(config.registry),
    }


def expand_command(config: SheetConfiguration, sections: Dict[str, List[str]]) -> Dict[str, Any]:
    for descriptor in config.sections:
        sections.setdefault(descriptor.section, [])
    cascade = expand_cascade(config.registry, sections)
    return {key: list(node.affects) for key, node in cascade.items()}


def audit_command(config: SheetConfiguration, diagnostics: DiagnosticChannel) -> List[List[str]]:
    return audit_cascade(config.registry, diagnostics)


def trace_command(
    config: SheetConfiguration,
    engine: EngineConfig,
    sections: Dict[str, List[str]],
    attributes: Dict[str, str],
    changes: List[Tuple[str, str]],
    debug: bool = False,
) -> Dict[str, Any]:
    """
    Replay player edits against an in-memory host.

    Documents carry no handler code, so every named handler is reported
    as unknown; the trace shows which nodes each edit reaches and what is
    written back.
    """
    host = InMemoryHost(attributes, sections=sections)
    diagnostics = DiagnosticChannel()
    session = SheetSession.from_config(config, host, engine, diagnostics, debug=debug)
    session.initialize_listeners()
    for name, value in changes:
        host.change(name, value)
    return {
        "results": [result.to_dict() for result in session.results],
        "writes": [write.to_dict() for write in host.attribute_writes()],
        "diagnostics": [d.to_dict() for d in diagnostics.all()],
    }


def _print(data: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, indent=2, default=str))
        return
    if isinstance(data, dict):
        for key, value in data.items():
            print(f"{key}: {value}")
    else:
        for item in data:
            print(item)


def cli_main(args: list = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Attribute cascade tooling for character sheets",
        prog="sheetcascade",
    )

    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    inspect_parser = commands.add_parser("inspect", help="List nodes, listeners and sections")
    inspect_parser.add_argument("document", help="Serialized cascade document (JSON)")

    expand_parser = commands.add_parser("expand", help="Expand the cascade against row ids")
    expand_parser.add_argument("document", help="Serialized cascade document (JSON)")
    expand_parser.add_argument(
        "--rows",
        action="append",
        default=[],
        help="Row ids of a section: section=id1,id2 (repeatable)",
    )

    audit_parser = commands.add_parser("audit", help="Report affects cycles")
    audit_parser.add_argument("document", help="Serialized cascade document (JSON)")

    trace_parser = commands.add_parser("trace", help="Replay attribute edits through the cascade")
    trace_parser.add_argument("document", help="Serialized cascade document (JSON)")
    trace_parser.add_argument(
        "--rows",
        action="append",
        default=[],
        help="Row ids of a section: section=id1,id2 (repeatable)",
    )
    trace_parser.add_argument(
        "--attr",
        action="append",
        default=[],
        help="Stored attribute value: name=value (repeatable)",
    )
    trace_parser.add_argument(
        "--set",
        action="append",
        default=[],
        dest="changes",
        help="Player edit to replay: name=value (repeatable, in order)",
    )

    parsed = parser.parse_args(args)

    config = load_config(parsed.config)
    setup_logging(
        level=parsed.log_level or ("DEBUG" if config.debug else config.logging.level),
        log_file=parsed.log_file or config.logging.log_file,
        json_format=config.logging.json_logs,
        log_format=config.logging.format,
    )

    try:
        sheet = load_document(parsed.document)

        if parsed.command == "inspect":
            _print(inspect_command(sheet), parsed.json)
            return 0

        if parsed.command == "expand":
            expanded = expand_command(sheet, parse_rows(parsed.rows))
            if parsed.json:
                _print(expanded, True)
            else:
                for key, affects in expanded.items():
                    print(f"{key} -> {', '.join(affects)}" if affects else key)
            return 0

        if parsed.command == "trace":
            traced = trace_command(
                sheet,
                config.engine,
                parse_rows(parsed.rows),
                dict(parse_assignments(parsed.attr)),
                parse_assignments(parsed.changes),
                debug=config.debug,
            )
            if parsed.json:
                _print(traced, True)
            else:
                for result in traced["results"]:
                    print(f"{result['event_name']}: {' -> '.join(result['visited']) or '(unmodeled)'}")
                for write in traced["writes"]:
                    print(f"write {write['values']}")
            return 1 if any(r["aborted"] for r in traced["results"]) else 0

        diagnostics = DiagnosticChannel()
        cycles = audit_command(sheet, diagnostics)
        if parsed.json:
            _print([d.to_dict() for d in diagnostics.by_code(ErrorCode.CASCADE_CYCLE)], True)
        elif cycles:
            for cycle in cycles:
                print(" -> ".join(cycle + cycle[:1]))
        else:
            print("No cascade cycles")
        return 1 if cycles else 0

    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


def main():
    """Main entry point for the package."""
    sys.exit(cli_main(sys.argv[1:]))


if __name__ == "__main__":
    main()
