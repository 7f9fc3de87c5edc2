"""Paths over the state space of an influence diagram.

A path assigns one state to every chance and decision node:

    s = (s_0, s_1, ..., s_{N-1}),  0 <= s_j < S[j]

The path space is the Cartesian product of the node state domains, so its
size is the product of the state counts.
"""

from itertools import product
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, NamedTuple, Optional, Sequence, Tuple


# Type aliases
State = int
Path = Tuple[State, ...]
States = Tuple[int, ...]  # S[j] = number of states of node j
FixedPath = Mapping[int, State]  # node -> fixed state


class ForbiddenPath(NamedTuple):
    """Rule that excludes sub-paths over a set of nodes.

    Attributes:
        nodes: Node indices the rule looks at.
        values: Forbidden sub-paths, one state per entry of ``nodes``.

    Example:
        >>> rule = ForbiddenPath(nodes=(0,), values=frozenset({(1,)}))
        >>> is_forbidden((1, 0), [rule])
        True
        >>> is_forbidden((1, 0), [rule, forbidden_states(1, {1})])
        False
    """
    nodes: Tuple[int, ...]
    values: FrozenSet[Path]


def forbidden_states(node: int, states: Iterable[State]) -> ForbiddenPath:
    """Single node rule: exclude every path whose ``node`` is in ``states``."""
    return ForbiddenPath(nodes=(node,), values=frozenset((s,) for s in states))


def is_forbidden(s: Path, rules: Sequence[ForbiddenPath]) -> bool:
    """A path is forbidden only if it matches every rule."""
    return bool(rules) and all(tuple(s[k] for k in rule.nodes) in rule.values for rule in rules)


def sub_path(s: Path, nodes: Sequence[int]) -> Path:
    return tuple(s[k] for k in nodes)


def paths(S: Sequence[int], fixed: Optional[FixedPath] = None) -> Iterator[Path]:
    """Iterate over all paths of the state space.

    Args:
        S: State count of each node.
        fixed: Nodes whose state domain is shrunk to a single state.

    Returns:
        Lazy iterator in ascending order, last node varying fastest.
    """
    fixed = fixed or {}
    domains = [
        (fixed[j],) if j in fixed else range(n)
        for j, n in enumerate(S)
    ]
    return product(*domains)


def num_paths(S: Sequence[int], fixed: Optional[FixedPath] = None) -> int:
    fixed = fixed or {}
    total = 1
    for j, n in enumerate(S):
        if j not in fixed:
            total *= n
    return total


def agrees_with(s: Path, fixed: FixedPath) -> bool:
    return all(s[k] == v for k, v in fixed.items())


def group_by(keys: Iterable[Path], nodes: Sequence[int]) -> Dict[Path, list]:
    """Group paths by their sub-path over ``nodes``."""
    groups: Dict[Path, list] = {}
    for s in keys:
        groups.setdefault(sub_path(s, nodes), []).append(s)
    return groups


def path_token(s: Sequence[int]) -> str:
    """Identifier-safe rendering of a path, used in variable names."""
    return "_".join(str(i) for i in s)
