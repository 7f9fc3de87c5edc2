"""Influence diagram contract consumed by the model builder and analyzer.

The diagram is authored and validated elsewhere. The optimization core only
needs:
- the state space S (state count per chance/decision node),
- chance, decision and value nodes with their information sets,
- a path probability function P(s) and a path utility function U(s).

P(s) = prod_c X_c[s_{I(c)}, s_c]   (zero if any factor is zero)
U(s) = sum_v Y_v[s_{I(v)}]
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import NamedTuple, Protocol, Sequence, Tuple, Union

import numpy as np
from jaxtyping import Float

from decision_programming.core.paths import Path, States, paths, sub_path
from decision_programming.exceptions import UnknownNodeClass


class NodeRole(str, Enum):
    CHANCE = "chance"
    DECISION = "decision"
    VALUE = "value"


def node_role(tag: Union[str, NodeRole]) -> NodeRole:
    """Classify a node role tag.

    Args:
        tag: "chance", "decision", "value" (case-insensitive) or a NodeRole.

    Returns:
        The matching NodeRole.

    Raises:
        UnknownNodeClass: If the tag names no known role.
    """
    if isinstance(tag, NodeRole):
        return tag
    if not isinstance(tag, str):
        raise UnknownNodeClass(tag)
    try:
        return NodeRole(tag.strip().lower())
    except ValueError:
        raise UnknownNodeClass(tag) from None


class ChanceNode(NamedTuple):
    """Chance node j with information set I_j."""
    j: int
    I_j: Tuple[int, ...] = ()

    @property
    def role(self) -> NodeRole:
        return NodeRole.CHANCE


class DecisionNode(NamedTuple):
    """Decision node j; I_j lists the nodes observed before deciding."""
    j: int
    I_j: Tuple[int, ...] = ()

    @property
    def role(self) -> NodeRole:
        return NodeRole.DECISION


class ValueNode(NamedTuple):
    """Value node j; contributes Y[s_{I_j}] to the path utility."""
    j: int
    I_j: Tuple[int, ...] = ()

    @property
    def role(self) -> NodeRole:
        return NodeRole.VALUE


class PathProbability(Protocol):
    def __call__(self, s: Path) -> float: ...


class PathUtility(Protocol):
    def __call__(self, s: Path) -> float: ...


class DefaultPathProbability:
    """Path probability as the product of chance node probability tables.

    Tables are held in float64 so that the resulting MIP coefficients are
    the exact table products.

    Example:
        >>> P = DefaultPathProbability([ChanceNode(0)], [[0.2, 0.8]])
        >>> P((1,))
        0.8
    """

    def __init__(
        self,
        C: Sequence[ChanceNode],
        X: Sequence[Float[np.ndarray, "..."]],
    ) -> None:
        if len(C) != len(X):
            raise ValueError(
                f"Expected one probability table per chance node, got {len(X)} for {len(C)} nodes"
            )
        self.C = tuple(C)
        self.X = tuple(np.asarray(x, dtype=np.float64) for x in X)
        for c, x in zip(self.C, self.X):
            if x.ndim != len(c.I_j) + 1:
                raise ValueError(
                    f"Probability table of node {c.j} must have {len(c.I_j) + 1} dimensions, got {x.ndim}"
                )

    def __call__(self, s: Path) -> float:
        p = 1.0
        for c, x in zip(self.C, self.X):
            p *= x[sub_path(s, c.I_j) + (s[c.j],)]
            if p == 0.0:
                return 0.0
        return float(p)

    def has_structural_zeros(self) -> bool:
        return any(bool(np.any(x == 0.0)) for x in self.X)

    def min_positive(self) -> float:
        """Smallest strictly positive entry across all tables."""
        positives = [x[x > 0.0].min() for x in self.X if np.any(x > 0.0)]
        return float(min(positives)) if positives else 0.0


class DefaultPathUtility:
    """Path utility as the sum of value node utility tables plus a translation."""

    def __init__(
        self,
        V: Sequence[ValueNode],
        Y: Sequence[Float[np.ndarray, "..."]],
        translation: float = 0.0,
    ) -> None:
        if len(V) != len(Y):
            raise ValueError(
                f"Expected one utility table per value node, got {len(Y)} for {len(V)} nodes"
            )
        self.V = tuple(V)
        self.Y = tuple(np.asarray(y, dtype=np.float64) for y in Y)
        self.translation = translation

    def __call__(self, s: Path) -> float:
        return float(sum(y[sub_path(s, v.I_j)] for v, y in zip(self.V, self.Y))) + self.translation


class PositivePathUtility:
    """Shift utilities so that every path utility is at least 1.

    U+(s) = U(s) - (min_s U(s) - 1)
    """

    def __init__(self, S: States, U: PathUtility) -> None:
        self.U = U
        self.min = min(U(s) for s in paths(S))
        self.translation = -(self.min - 1.0)

    def __call__(self, s: Path) -> float:
        return self.U(s) + self.translation


class NegativePathUtility:
    """Shift utilities so that every path utility is at most -1.

    U-(s) = U(s) - (max_s U(s) + 1)
    """

    def __init__(self, S: States, U: PathUtility) -> None:
        self.U = U
        self.max = max(U(s) for s in paths(S))
        self.translation = -(self.max + 1.0)

    def __call__(self, s: Path) -> float:
        return self.U(s) + self.translation


@dataclass(frozen=True)
class InfluenceDiagram:
    """Read-only view of a built influence diagram.

    Chance and decision nodes use indices 0..N-1, where N = len(S). Nodes
    are expected in topological order, so every decision node only observes
    nodes with a smaller index.

    Attributes:
        S: State count of each chance and decision node.
        C: Chance nodes.
        D: Decision nodes.
        V: Value nodes.
        P: Path probability function.
        U: Path utility function.
    """

    S: States
    C: Tuple[ChanceNode, ...]
    D: Tuple[DecisionNode, ...]
    V: Tuple[ValueNode, ...]
    P: PathProbability
    U: PathUtility

    def __post_init__(self) -> None:
        """Check that node indices cover the state space."""
        indices = sorted(n.j for n in self.C + self.D)
        if indices != list(range(len(self.S))):
            raise ValueError(
                f"Chance and decision nodes must be indexed 0..{len(self.S) - 1}, got {indices}"
            )
        for n in self.C + self.D + self.V:
            if any(not 0 <= i < len(self.S) for i in n.I_j):
                raise ValueError(f"Information set of node {n.j} refers to unknown nodes: {n.I_j}")

    @classmethod
    def from_tables(
        cls,
        S: Sequence[int],
        chance: Sequence[Tuple[ChanceNode, Sequence]],
        decision: Sequence[DecisionNode],
        value: Sequence[Tuple[ValueNode, Sequence]],
    ) -> "InfluenceDiagram":
        """Build a diagram with default path probability and utility.

        Example:
            >>> diagram = InfluenceDiagram.from_tables(
            ...     S=(2, 2),
            ...     chance=[(ChanceNode(0), [0.2, 0.8])],
            ...     decision=[DecisionNode(1)],
            ...     value=[(ValueNode(2, (0, 1)), [[-100.0, 0.0], [60.0, 0.0]])],
            ... )
        """
        C = tuple(node for node, _ in chance)
        V = tuple(node for node, _ in value)
        return cls(
            S=tuple(int(n) for n in S),
            C=C,
            D=tuple(decision),
            V=V,
            P=DefaultPathProbability(C, [x for _, x in chance]),
            U=DefaultPathUtility(V, [y for _, y in value]),
        )

    def indices(self, role: Union[str, NodeRole]) -> Tuple[int, ...]:
        nodes = {
            NodeRole.CHANCE: self.C,
            NodeRole.DECISION: self.D,
            NodeRole.VALUE: self.V,
        }[node_role(role)]
        return tuple(n.j for n in nodes)

    def role_of(self, j: int) -> NodeRole:
        for n in self.C + self.D + self.V:
            if n.j == j:
                return n.role
        raise KeyError(f"Unknown node {j}")

    @property
    def num_paths(self) -> int:
        return int(np.prod(self.S, dtype=np.int64))

    def with_utility(self, U: PathUtility) -> "InfluenceDiagram":
        """Return a copy of the diagram with another path utility."""
        return replace(self, U=U)
