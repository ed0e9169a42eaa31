from __future__ import annotations

from datetime import datetime, timezone

import pytest

from netmon.core.nodes import NodeSet
from netmon.storage.models import EPOCH, MonitorState, NetworkScheme, NetworkStatusInfo, StatsSnapshot


@pytest.mark.parametrize("state, text", [
    (MonitorState.ACTIVE, "active"),
    (MonitorState.FROZEN_OPERATES_STABLE, "frozen_operates_stable"),
    (MonitorState.FROZEN_DEGRADED, "frozen_degraded"),
])
def test_monitor_state_string_conversion(state, text):
    assert str(state) == text
    assert MonitorState.from_string(text) is state
    assert MonitorState.validate(state) is state
    assert MonitorState.validate(state.value) is state


@pytest.mark.parametrize("text", ["", "ACTIVE", "frozen", "blah-blah-blah", "unknown state (0)"])
def test_monitor_state_invalid_string(text):
    with pytest.raises(ValueError):
        MonitorState.from_string(text)


@pytest.mark.parametrize("value", [0, 4, None, True, 1.0])
def test_monitor_state_invalid_value(value):
    with pytest.raises(ValueError):
        MonitorState.validate(value)


@pytest.mark.parametrize("value, expected", [
    ("W", NetworkScheme.MAINNET),
    ("mainnet", NetworkScheme.MAINNET),
    ("T", NetworkScheme.TESTNET),
    ("stagenet", NetworkScheme.STAGENET),
    ("E", NetworkScheme.CUSTOM),
    (NetworkScheme.TESTNET, NetworkScheme.TESTNET),
])
def test_network_scheme_parse(value, expected):
    assert NetworkScheme.parse(value) is expected


@pytest.mark.parametrize("value", ["X", "w", "", None, 87])
def test_network_scheme_parse_invalid(value):
    with pytest.raises(ValueError):
        NetworkScheme.parse(value)


def test_status_info_defaults_without_snapshot():
    info = NetworkStatusInfo(network=NetworkScheme.MAINNET, status=True)
    assert info.to_dict() == {
        "updated": EPOCH.isoformat(),
        "network": "W",
        "status": True,
        "height": -1,
    }


def test_snapshot_has_alerts():
    now = datetime.now(timezone.utc)
    assert not StatsSnapshot(created_at=now, nodes=NodeSet(), max_height=1).has_alerts
    assert StatsSnapshot(created_at=now, nodes=NodeSet(), max_height=1, height_alert=True).has_alerts
