"""
Configuration management utilities.
"""

import copy
import math
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from netmon.monitoring.criteria import (
    NetworkErrorCriteria,
    NodesDownCriterion,
    NodesHeightCriterion,
    NodesStateHashCriterion,
)

DEFAULT_CONFIG = {
    'monitor': {
        'network_scheme': 'W',
        'stats_url': 'https://waves-nodes-get-height.wavesnodes.com/',
        'stats_poll_interval': 60,
        'stats_history_size': 10,
        'network_errors_streak': 5,
        'initial_state': 'active',
        'max_response_size': 128 * 1024,
        'scrape_timeout': 10,
    },
    'criteria': {
        'down_total_part': 0.3,
        'height_diff': 5,
        'height_require_min_nodes_on_same_height': 2,
        'statehash_min_groups_on_same_height': 2,
        'statehash_min_valuable_groups': 2,
        'statehash_min_nodes_in_valuable_group': 2,
        'statehash_require_min_nodes_on_same_height': 4,
    },
    'http': {
        'bind_addr': ':2048',
        'auth_header': 'X-Waves-Monitor-Auth',
        'auth_token': '',
    },
    'logging': {
        'level': 'INFO',
        'config_path': None,
    },
}

# env variable -> (section, key, parser)
ENV_OVERRIDES = {
    'LOG_LEVEL': ('logging', 'level', str),
    'BIND_ADDR': ('http', 'bind_addr', str),
    'HTTP_AUTH_HEADER': ('http', 'auth_header', str),
    'HTTP_AUTH_TOKEN': ('http', 'auth_token', str),
    'NETWORK_SCHEME': ('monitor', 'network_scheme', str),
    'STATS_URL': ('monitor', 'stats_url', str),
    'STATS_POLL_INTERVAL': ('monitor', 'stats_poll_interval', str),
    'STATS_HISTORY_SIZE': ('monitor', 'stats_history_size', int),
    'NETWORK_ERRORS_STREAK': ('monitor', 'network_errors_streak', int),
    'INITIAL_MON_STATE': ('monitor', 'initial_state', str),
    'CRITERION_DOWN_TOTAL_PART': ('criteria', 'down_total_part', float),
    'CRITERION_HEIGHT_DIFF': ('criteria', 'height_diff', int),
    'CRITERION_HEIGHT_REQUIRE_MIN_NODES_ON_SAME_HEIGHT': ('criteria', 'height_require_min_nodes_on_same_height', int),
    'CRITERION_STATEHASH_MIN_GROUPS_ON_SAME_HEIGHT': ('criteria', 'statehash_min_groups_on_same_height', int),
    'CRITERION_STATEHASH_MIN_VALUABLE_GROUPS': ('criteria', 'statehash_min_valuable_groups', int),
    'CRITERION_STATEHASH_MIN_NODES_IN_VALUABLE_GROUP': ('criteria', 'statehash_min_nodes_in_valuable_group', int),
    'CRITERION_STATEHASH_REQUIRE_MIN_NODES_ON_SAME_HEIGHT': ('criteria', 'statehash_require_min_nodes_on_same_height', int),
}

REQUIRED_SECTIONS = ['monitor', 'criteria', 'http', 'logging']

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|h|m|s)')
_DURATION_UNITS = {'ms': 0.001, 's': 1, 'm': 60, 'h': 3600}


def load_config(config_path: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file and environment.

    Args:
        config_path: Path to config file. If None, uses default.
        environ: Environment to read overrides from, os.environ by default

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid
        ValueError: If config values are invalid
    """
    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "../../../config/config.yaml")

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML configuration: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a mapping, got {type(config).__name__}")

    # Validate required sections
    for section in REQUIRED_SECTIONS:
        if section not in config:
            raise ValueError(f"Missing required config section: {section}")

    config = _apply_defaults(config)
    config = _apply_env_overrides(config, os.environ if environ is None else environ)
    config['monitor']['stats_poll_interval'] = parse_duration(config['monitor']['stats_poll_interval'])

    return config


def _apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply default values to configuration."""
    result = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in config.items():
        if values is None:
            continue
        if section in result:
            if not isinstance(values, dict):
                raise ValueError(f"Config section {section!r} must be a mapping")
            result[section].update(values)
        else:
            result[section] = values
    return result


def _apply_env_overrides(config: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Override config values by environment variables."""
    for env_key, (section, key, parser) in ENV_OVERRIDES.items():
        if env_key not in environ:
            continue
        value = environ[env_key]
        try:
            config[section][key] = parser(value)
        except ValueError:
            raise ValueError(
                f"Failed to parse {env_key!r} env variable value={value!r} as {parser.__name__!r}"
            )
    return config


def parse_duration(value: Any) -> float:
    """
    Parse duration to seconds.

    Accepts numbers (seconds) and strings like '30', '45s', '1m', '1m30s', '500ms'.

    Raises:
        ValueError: If value is not a valid positive duration
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or ''.join(number + unit for number, unit in parts) != text:
                raise ValueError(f"Invalid duration: {value!r}")
            seconds = sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)
    else:
        raise ValueError(f"Invalid duration: {value!r}")

    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"Duration should be positive: {value!r}")
    return seconds


def parse_bind_addr(bind_addr: str) -> Tuple[str, int]:
    """
    Split bind address into host and port.

    ':2048' binds on all interfaces.

    Raises:
        ValueError: If bind address is invalid
    """
    host, sep, port = bind_addr.rpartition(':')
    if not sep:
        raise ValueError(f"Invalid bind address {bind_addr!r}, expected 'host:port'")
    try:
        port_num = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in bind address {bind_addr!r}")
    if not 0 <= port_num <= 65535:
        raise ValueError(f"Invalid port in bind address {bind_addr!r}")
    return host.strip('[]') or '0.0.0.0', port_num


def build_criteria(config: Dict[str, Any]) -> NetworkErrorCriteria:
    """
    Build network error criteria from configuration.

    Raises:
        ValueError: If criteria are invalid
    """
    section = config['criteria']
    criteria = NetworkErrorCriteria(
        nodes_down=NodesDownCriterion(
            total_down_nodes_part=section['down_total_part']
        ),
        nodes_height=NodesHeightCriterion(
            height_diff=section['height_diff'],
            require_min_nodes_on_height=section['height_require_min_nodes_on_same_height']
        ),
        state_hash=NodesStateHashCriterion(
            min_state_hash_groups_on_same_height=section['statehash_min_groups_on_same_height'],
            min_valuable_state_hash_groups=section['statehash_min_valuable_groups'],
            min_nodes_in_valuable_state_hash_group=section['statehash_min_nodes_in_valuable_group'],
            require_min_nodes_on_height=section['statehash_require_min_nodes_on_same_height']
        )
    )
    criteria.validate()
    return criteria
