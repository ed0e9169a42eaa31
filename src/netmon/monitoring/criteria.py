"""
Network error criteria and their evaluation over node stats.
"""

from dataclasses import dataclass

from netmon.core.nodes import DOWN_HEIGHT, NodeSet


class EmptyNodesError(ValueError):
    """Raised when criteria are evaluated over an empty node set."""


def _require_positive(value: int, name: str):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} should be a positive integer, got {value!r}")


@dataclass(frozen=True)
class NodesDownCriterion:
    """Alert when the part of down nodes reaches the threshold."""

    total_down_nodes_part: float

    def validate(self):
        part = self.total_down_nodes_part
        if isinstance(part, bool) or not isinstance(part, (int, float)) or not 0 < part < 1:
            raise ValueError(f"total_down_nodes_part should be in range (0, 1), got {part!r}")


@dataclass(frozen=True)
class NodesHeightCriterion:
    """Alert when working nodes diverge by height."""

    height_diff: int
    require_min_nodes_on_height: int  # minimum nodes on each extreme height to activate the criterion

    def validate(self):
        _require_positive(self.height_diff, 'height_diff')
        _require_positive(self.require_min_nodes_on_height, 'require_min_nodes_on_height')


@dataclass(frozen=True)
class NodesStateHashCriterion:
    """Alert when nodes on the same height split into several state hash groups."""

    min_state_hash_groups_on_same_height: int
    min_valuable_state_hash_groups: int
    min_nodes_in_valuable_state_hash_group: int
    require_min_nodes_on_height: int  # minimum nodes on a height to activate the criterion

    def validate(self):
        _require_positive(self.min_state_hash_groups_on_same_height, 'min_state_hash_groups_on_same_height')
        _require_positive(self.min_valuable_state_hash_groups, 'min_valuable_state_hash_groups')
        _require_positive(self.min_nodes_in_valuable_state_hash_group, 'min_nodes_in_valuable_state_hash_group')
        _require_positive(self.require_min_nodes_on_height, 'require_min_nodes_on_height')


@dataclass(frozen=True)
class NetworkErrorCriteria:
    """Full set of criteria used to detect network degradation."""

    nodes_down: NodesDownCriterion
    nodes_height: NodesHeightCriterion
    state_hash: NodesStateHashCriterion

    def validate(self):
        """
        Validate every criterion.

        Raises:
            ValueError: If any criterion is invalid
        """
        for name in ('nodes_down', 'nodes_height', 'state_hash'):
            criterion = getattr(self, name)
            if criterion is None:
                raise ValueError(f"{name} criterion is not set")
            try:
                criterion.validate()
            except ValueError as e:
                raise ValueError(f"invalid {name} criterion: {e}") from e


class NetstatCalculator:
    """Evaluates network error criteria over a single node set.

    Derived node groups are computed once at construction, each alert
    method is then a cheap independent check.
    """

    def __init__(self, criteria: NetworkErrorCriteria, all_nodes: NodeSet):
        """
        Initialize calculator.

        Args:
            criteria: Criteria to evaluate
            all_nodes: Nodes of the monitored network

        Raises:
            EmptyNodesError: If all_nodes is empty
        """
        if len(all_nodes) == 0:
            raise EmptyNodesError("nodes with stats are empty")

        self.criteria = criteria
        self.all_nodes = all_nodes
        self.down_nodes = all_nodes.down_nodes()
        self.working_nodes = all_nodes.working_nodes()
        self.working_nodes_on_height = self.working_nodes.split_by_height()

    def alert_down_nodes(self) -> bool:
        total_down_part = len(self.down_nodes) / len(self.all_nodes)
        return total_down_part >= self.criteria.nodes_down.total_down_nodes_part

    def alert_height(self) -> bool:
        if not self.working_nodes_on_height:
            return False

        criterion = self.criteria.nodes_height
        min_height = min(self.working_nodes_on_height)
        max_height = max(self.working_nodes_on_height)

        # check criterion requirement
        if (len(self.working_nodes_on_height[min_height]) < criterion.require_min_nodes_on_height or
                len(self.working_nodes_on_height[max_height]) < criterion.require_min_nodes_on_height):
            return False

        return max_height - min_height >= criterion.height_diff

    def alert_state_hash(self) -> bool:
        criterion = self.criteria.state_hash

        for nodes_on_height in self.working_nodes_on_height.values():
            # check requirement
            if len(nodes_on_height) < criterion.require_min_nodes_on_height:
                continue

            split_by_state_hash = nodes_on_height.split_by_state_hash()
            if len(split_by_state_hash) < criterion.min_state_hash_groups_on_same_height:
                continue

            valuable_groups = sum(
                1 for group in split_by_state_hash.values()
                if len(group) >= criterion.min_nodes_in_valuable_state_hash_group
            )
            if valuable_groups >= criterion.min_valuable_state_hash_groups:
                return True

        return False

    def current_max_height(self) -> int:
        if not self.working_nodes:
            return DOWN_HEIGHT
        return self.working_nodes.max_height()
