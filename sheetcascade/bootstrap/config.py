"""
bootstrap/config.py - Application configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

logger = logging.getLogger("bootstrap.config")


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass
class EngineConfig:
    """Propagation engine configuration."""

    # Queue steps per event before propagation is aborted (None = unbounded)
    max_propagation_steps: Optional[int] = None

    # Commit writes vocally so the host re-dispatches change events
    vocal_commits: bool = False

    # Report affects cycles when listeners are initialized
    audit_cycles: bool = True

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            max_propagation_steps=_optional_int(os.getenv("SHEETCASCADE_MAX_STEPS")),
            vocal_commits=os.getenv("SHEETCASCADE_VOCAL_COMMITS", "false").lower() == "true",
            audit_cycles=os.getenv("SHEETCASCADE_AUDIT_CYCLES", "true").lower() == "true",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_propagation_steps": self.max_propagation_steps,
            "vocal_commits": self.vocal_commits,
            "audit_cycles": self.audit_cycles,
        }


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("SHEETCASCADE_LOG_LEVEL", "INFO"),
            format=os.getenv("SHEETCASCADE_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("SHEETCASCADE_LOG_FILE"),
            json_logs=os.getenv("SHEETCASCADE_JSON_LOGS", "false").lower() == "true",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "format": self.format,
            "log_file": self.log_file,
            "json_logs": self.json_logs,
        }


@dataclass
class SheetCascadeConfig:
    """Root configuration."""

    environment: str = "development"
    debug: bool = False

    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "SheetCascadeConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=os.getenv("SHEETCASCADE_ENVIRONMENT", "development"),
            debug=os.getenv("SHEETCASCADE_DEBUG", "false").lower() == "true",
            engine=EngineConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "SheetCascadeConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "SheetCascadeConfig":
        """Create config from dictionary."""
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]
        if "debug" in data:
            config.debug = data["debug"]

        if "engine" in data:
            for key, value in data["engine"].items():
                if hasattr(config.engine, key):
                    setattr(config.engine, key, value)

        if "logging" in data:
            for key, value in data["logging"].items():
                if hasattr(config.logging, key):
                    setattr(config.logging, key, value)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "engine": self.engine.to_dict(),
            "logging": self.logging.to_dict(),
        }


# Global config instance
_config: Optional[SheetCascadeConfig] = None


def load_config(filepath: str = None) -> SheetCascadeConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        SheetCascadeConfig instance
    """
    global _config

    if filepath:
        _config = SheetCascadeConfig.from_file(filepath)
    else:
        default_paths = [
            "./sheetcascade.json",
            "./config/sheetcascade.json",
            os.path.expanduser("~/.sheetcascade/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = SheetCascadeConfig.from_file(path)
                return _config

        _config = SheetCascadeConfig.from_env()

    logger.info(f"Configuration loaded: environment={_config.environment}")
    return _config


def get_config() -> SheetCascadeConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
