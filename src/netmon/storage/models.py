"""
Data models for the monitoring system.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Union

from netmon.core.nodes import DOWN_HEIGHT, NodeSet

# reported as update time while no snapshot has been taken yet
EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


class NetworkScheme(str, Enum):
    """Network scheme char of a WAVES network."""

    MAINNET = 'W'
    TESTNET = 'T'
    STAGENET = 'S'
    CUSTOM = 'E'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[str, 'NetworkScheme']) -> 'NetworkScheme':
        """
        Parse network scheme from its char or its name.

        Args:
            value: Scheme char ('W') or network name ('mainnet')

        Raises:
            ValueError: If value is not a known network scheme
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for scheme in cls:
                if value == scheme.value or value.lower() == scheme.name.lower():
                    return scheme
        raise ValueError(f"Invalid network scheme {value!r}")


class MonitorState(Enum):
    """Operational state of the network monitor."""

    ACTIVE = 1
    FROZEN_OPERATES_STABLE = 2
    FROZEN_DEGRADED = 3

    def __str__(self) -> str:
        return _STATE_NAMES[self]

    @classmethod
    def from_string(cls, state: str) -> 'MonitorState':
        """
        Parse monitor state from its string representation.

        Raises:
            ValueError: If state string is not one of the known states
        """
        for member, name in _STATE_NAMES.items():
            if state == name:
                return member
        raise ValueError(f"Failed to parse monitor state, invalid state string {state!r}")

    @classmethod
    def validate(cls, state: Any) -> 'MonitorState':
        """
        Coerce state to a MonitorState member.

        Raises:
            ValueError: If state is not a valid monitor state
        """
        if isinstance(state, cls):
            return state
        if isinstance(state, str):
            return cls.from_string(state)
        if isinstance(state, int) and not isinstance(state, bool):
            try:
                return cls(state)
            except ValueError:
                pass
        raise ValueError(f"Invalid monitor state ({state!r})")


_STATE_NAMES = {
    MonitorState.ACTIVE: 'active',
    MonitorState.FROZEN_OPERATES_STABLE: 'frozen_operates_stable',
    MonitorState.FROZEN_DEGRADED: 'frozen_degraded',
}


@dataclass(frozen=True)
class StatsSnapshot:
    """Result of a single evaluation of network criteria."""

    created_at: datetime
    nodes: NodeSet
    max_height: int
    nodes_down_alert: bool = False
    height_alert: bool = False
    state_hash_alert: bool = False

    @property
    def has_alerts(self) -> bool:
        """Whether any criterion fired."""
        return self.nodes_down_alert or self.height_alert or self.state_hash_alert

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'created_at': self.created_at.isoformat(),
            'nodes_count': len(self.nodes),
            'max_height': self.max_height,
            'nodes_down_alert': self.nodes_down_alert,
            'height_alert': self.height_alert,
            'state_hash_alert': self.state_hash_alert
        }


@dataclass(frozen=True)
class NetworkStatusInfo:
    """Externally reported network status."""

    network: NetworkScheme
    status: bool
    height: int = DOWN_HEIGHT
    updated: datetime = EPOCH

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'updated': self.updated.isoformat(),
            'network': str(self.network),
            'status': self.status,
            'height': self.height
        }
