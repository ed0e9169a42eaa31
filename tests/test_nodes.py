from __future__ import annotations

import json

import pytest

from netmon.core.nodes import DOWN_HEIGHT, NodeRecord, NodeSet

from .helpers.fakes import node

NODES_JSON = """
{
  "mainnet-aws-fr-4.wavesnodes.com": {
    "netbyte": "W",
    "height": 2878787,
    "statehash": "801c38b4960d45125e621aa718a68aa6db74bd25c09c9373c17daa49cac04cfe",
    "statehash_height": 2878785,
    "version": "Waves v1.3.10-12-g2fb491a"
  },
  "stagenet-htz-nbg1-2.wavesnodes.com": {
    "netbyte": "S",
    "height": 1098732,
    "statehash": "b8aec310cdb50d874261c0b8aa9f5358e948eef1c4e5102125cec959bd342afd",
    "statehash_height": "1098730",
    "version": "Waves v1.4.1"
  },
  "testnet-htz-nbg1-2.wavesnodes.com": {
    "netbyte": "T",
    "height": -1
  }
}
"""


def test_from_json_parses_all_nodes():
    nodes = NodeSet.from_json(json.loads(NODES_JSON))
    by_domain = {n.domain: n for n in nodes}

    assert len(nodes) == 3
    assert by_domain["mainnet-aws-fr-4.wavesnodes.com"] == NodeRecord(
        domain="mainnet-aws-fr-4.wavesnodes.com",
        height=2878787,
        state_hash="801c38b4960d45125e621aa718a68aa6db74bd25c09c9373c17daa49cac04cfe",
        state_hash_height=2878785,
        version="Waves v1.3.10-12-g2fb491a",
        net_byte="W",
    )
    # string statehash_height is accepted
    assert by_domain["stagenet-htz-nbg1-2.wavesnodes.com"].state_hash_height == 1098730

    down = by_domain["testnet-htz-nbg1-2.wavesnodes.com"]
    assert down.is_down
    assert down.state_hash == ""
    assert down.version == ""


@pytest.mark.parametrize("entry", [
    {"netbyte": "W", "height": None},
    {"netbyte": "W"},
])
def test_null_or_missing_height_is_zero(entry):
    nodes = NodeSet.from_json({"a.example": {"netbyte": "W", "height": 11}, "b.example": entry})
    by_domain = {n.domain: n for n in nodes}

    assert len(nodes) == 2
    assert by_domain["b.example"].height == 0
    assert not by_domain["b.example"].is_down
    assert not by_domain["b.example"].is_working
    assert by_domain["a.example"].height == 11


@pytest.mark.parametrize("document", [
    [],
    "nodes",
    {"node": "not-an-object"},
    {"node": {"height": "eleven"}},
    {"node": {"height": True}},
])
def test_from_json_rejects_malformed_document(document):
    with pytest.raises(ValueError):
        NodeSet.from_json(document)


def test_down_and_working_nodes_partition():
    data = NodeSet([
        node("11", -1),
        node("22", -1),
        node("33", 10),
        node("44", 12),
    ])

    assert data.down_nodes() == NodeSet([node("11", -1), node("22", -1)])
    assert data.working_nodes() == NodeSet([node("33", 10), node("44", 12)])
    assert len(data.down_nodes()) + len(data.working_nodes()) == len(data)
    # source set is untouched
    assert len(data) == 4


def test_filter():
    data = NodeSet([
        node("11", -1),
        node("22", -1),
        node("2255", 8),
        node("33", 10),
        node("44", 12),
    ])

    actual = data.filter(lambda n: n.height != DOWN_HEIGHT and len(n.domain) == 2)
    assert actual == NodeSet([node("33", 10), node("44", 12)])


def test_with_network_scheme():
    data = NodeSet([
        node("a", 10, net_byte="W"),
        node("b", 11, net_byte="T"),
        node("c", -1, net_byte="W"),
        node("d", 12, net_byte="S"),
    ])

    assert [n.domain for n in data.with_network_scheme("W")] == ["a", "c"]
    assert [n.domain for n in data.with_network_scheme("S")] == ["d"]
    assert len(data.with_network_scheme("E")) == 0


def test_split_by_height_state_hash_and_version():
    data = NodeSet([
        node("a", 10, state_hash="x", version="v1"),
        node("b", 10, state_hash="y", version="v1"),
        node("c", 11, state_hash="x", version="v2"),
        node("d", 11, state_hash="", version="v2"),
    ])

    by_height = data.split_by_height()
    assert {h: len(g) for h, g in by_height.items()} == {10: 2, 11: 2}

    by_hash = data.split_by_state_hash()
    assert {h: [n.domain for n in g] for h, g in by_hash.items()} == {"x": ["a", "c"], "y": ["b"], "": ["d"]}

    by_version = data.split_by_version()
    assert {v: len(g) for v, g in by_version.items()} == {"v1": 2, "v2": 2}


def test_empty_set_propagates():
    empty = NodeSet()

    assert len(empty.working_nodes()) == 0
    assert len(empty.down_nodes()) == 0
    assert empty.split_by_height() == {}
    assert empty.max_height() == DOWN_HEIGHT


def test_duplicates_are_counted_twice():
    data = NodeSet([node("a", 10), node("a", 10)])
    assert len(data.split_by_height()[10]) == 2
