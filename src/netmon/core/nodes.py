"""
Node telemetry records and node set operations.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Tuple

DOWN_HEIGHT = -1


@dataclass(frozen=True)
class NodeRecord:
    """Telemetry reported for a single node."""

    domain: str
    height: int
    state_hash: str = ""
    state_hash_height: int = 0
    version: str = ""
    net_byte: str = ""  # network scheme char: 'W', 'T', 'S', 'E'

    @property
    def is_down(self) -> bool:
        return self.height == DOWN_HEIGHT

    @property
    def is_working(self) -> bool:
        return self.height > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'domain': self.domain,
            'height': self.height,
            'statehash': self.state_hash,
            'statehash_height': self.state_hash_height,
            'version': self.version,
            'netbyte': self.net_byte
        }

    @classmethod
    def from_dict(cls, domain: str, data: Mapping[str, Any]) -> 'NodeRecord':
        """
        Create from a single entry of the nodes stats document.

        Args:
            domain: Node domain (the key of the entry)
            data: Node stats object

        Raises:
            ValueError: If the entry is malformed
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Stats for node {domain!r} is not an object: {data!r}")

        # null height is served for nodes that never reported, same as missing
        height = data.get('height')
        if height is None:
            height = 0

        return cls(
            domain=domain,
            height=_parse_int(height, 'height', domain),
            state_hash=str(data.get('statehash') or ""),
            state_hash_height=_parse_int(data.get('statehash_height') or 0, 'statehash_height', domain),
            version=str(data.get('version') or ""),
            net_byte=str(data.get('netbyte') or "")
        )


def _parse_int(value: Any, field_name: str, domain: str) -> int:
    # statehash_height was historically served as a string
    if isinstance(value, bool):
        raise ValueError(f"Invalid {field_name} for node {domain!r}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {field_name} for node {domain!r}: {value!r}")


class NodeSet:
    """Immutable collection of node records.

    Every operation returns a new NodeSet (or a dict of them), the source set
    is never modified. Duplicate domains are tolerated and counted twice.
    """

    __slots__ = ('_nodes',)

    def __init__(self, nodes=()):
        self._nodes: Tuple[NodeRecord, ...] = tuple(nodes)

    @classmethod
    def from_json(cls, document: Any) -> 'NodeSet':
        """
        Build node set from decoded nodes stats document.

        The document maps node domain to its stats object.

        Raises:
            ValueError: If the document has unexpected shape
        """
        if not isinstance(document, Mapping):
            raise ValueError(f"Nodes stats document must be an object, got {type(document).__name__}")

        return cls(NodeRecord.from_dict(domain, stats) for domain, stats in document.items())

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeRecord]:
        return iter(self._nodes)

    def __getitem__(self, index: int) -> NodeRecord:
        return self._nodes[index]

    def __bool__(self) -> bool:
        return bool(self._nodes)

    def __eq__(self, other) -> bool:
        if not isinstance(other, NodeSet):
            return NotImplemented
        return self._nodes == other._nodes

    def __hash__(self) -> int:
        return hash(self._nodes)

    def __repr__(self) -> str:
        return f"NodeSet({list(self._nodes)!r})"

    def filter(self, condition: Callable[[NodeRecord], bool]) -> 'NodeSet':
        """Keep nodes matching condition."""
        return NodeSet(node for node in self._nodes if condition(node))

    def with_network_scheme(self, scheme: str) -> 'NodeSet':
        """Keep nodes which belong to network with given scheme char."""
        scheme = str(scheme)
        return self.filter(lambda node: node.net_byte == scheme)

    def working_nodes(self) -> 'NodeSet':
        return self.filter(lambda node: node.is_working)

    def down_nodes(self) -> 'NodeSet':
        return self.filter(lambda node: node.is_down)

    def split_by_height(self) -> Dict[int, 'NodeSet']:
        return self._split_by(lambda node: node.height)

    def split_by_state_hash(self) -> Dict[str, 'NodeSet']:
        # empty state hash is a bucket of its own
        return self._split_by(lambda node: node.state_hash)

    def split_by_version(self) -> Dict[str, 'NodeSet']:
        return self._split_by(lambda node: node.version)

    def max_height(self) -> int:
        """Max height among nodes, DOWN_HEIGHT for an empty set."""
        return max((node.height for node in self._nodes), default=DOWN_HEIGHT)

    def _split_by(self, key: Callable[[NodeRecord], Any]) -> Dict[Any, 'NodeSet']:
        groups: Dict[Any, list] = {}
        for node in self._nodes:
            groups.setdefault(key(node), []).append(node)
        return {group_key: NodeSet(nodes) for group_key, nodes in groups.items()}
