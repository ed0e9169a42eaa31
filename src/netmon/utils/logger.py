"""
Logging setup and utilities.
"""

import json
import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# 'DEV' is accepted for compatibility with older deployments
LOG_LEVELS = {
    'DEV': logging.DEBUG,
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'FATAL': logging.CRITICAL,
    'CRITICAL': logging.CRITICAL,
}

_RECORD_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName', 'created', 'msecs',
    'relativeCreated', 'thread', 'threadName', 'processName', 'process', 'getMessage',
    'message', 'taskName', 'asctime'
])


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Add extra fields if present
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def parse_log_level(level: str) -> int:
    """
    Convert level name to logging level.

    Raises:
        ValueError: If level name is unknown
    """
    try:
        return LOG_LEVELS[level.upper()]
    except (KeyError, AttributeError):
        raise ValueError(f"Unsupported log level {level!r}, supported levels: {', '.join(LOG_LEVELS)}")


def setup_logging(config_path: Optional[str] = None, level: Optional[str] = None) -> None:
    """
    Setup logging configuration from YAML file.

    Args:
        config_path: Path to logging configuration file
        level: Root logger level overriding the one from the file
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(__file__), "../../../config/logging.yaml"
        )

    config_path = Path(config_path).resolve()
    root_level = parse_log_level(level) if level else logging.INFO

    if not config_path.exists():
        # Fallback to basic logging if config file doesn't exist
        logging.basicConfig(
            level=root_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        logging.warning(f"Logging config not found at {config_path}, using basic config")
        return

    try:
        with open(config_path, 'r') as f:
            log_config = yaml.safe_load(f)

        _create_log_directories(log_config)
        logging.config.dictConfig(log_config)

        if level:
            logging.getLogger().setLevel(root_level)

        logging.getLogger(__name__).debug("Logging system initialized successfully")

    except Exception as e:
        # Fallback to basic logging
        logging.basicConfig(
            level=root_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        logging.error(f"Failed to setup logging configuration: {e}")


def _create_log_directories(log_config: Dict[str, Any]) -> None:
    """Create log directories from logging configuration."""
    handlers = log_config.get('handlers', {})

    for handler_config in handlers.values():
        if 'filename' in handler_config:
            Path(handler_config['filename']).parent.mkdir(parents=True, exist_ok=True)
