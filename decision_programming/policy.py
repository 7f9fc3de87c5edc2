"""Deterministic decision strategies.

A local decision strategy Z_d maps every information state s_I of decision
node d to exactly one state s_d:

    Z_d[s_I, s_d] in {0, 1},   sum_{s_d} Z_d[s_I, s_d] = 1   for every s_I

A decision strategy collects one local strategy per decision node.
"""

from typing import NamedTuple, Sequence, Tuple

import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Int

from decision_programming.core.diagram import DecisionNode
from decision_programming.core.paths import Path, State
from decision_programming.exceptions import MalformedStrategy
from decision_programming.model import DecisionVariables


class LocalDecisionStrategy:
    """Deterministic policy of a single decision node.

    Build instances with ``local_decision_strategy`` so that the array is
    validated before use.

    Example:
        >>> Z_d = local_decision_strategy(DecisionNode(1, (0,)), [[1, 0], [0, 1]])
        >>> Z_d((1,))
        1
    """

    __slots__ = ("node", "data", "_choice")

    def __init__(self, node: DecisionNode, data: Int[Array, "..."]) -> None:
        self.node = node
        self.data = data
        # Chosen state per information state, cached for path enumeration
        self._choice = np.asarray(jnp.argmax(data, axis=-1))

    @property
    def d(self) -> int:
        return self.node.j

    @property
    def I_d(self) -> Tuple[int, ...]:
        return self.node.I_j

    def __call__(self, s_I: Path) -> State:
        """Return the state chosen in information state ``s_I``."""
        return int(self._choice[tuple(s_I)])

    def __repr__(self) -> str:
        return f"LocalDecisionStrategy(d={self.d}, I_d={self.I_d}, shape={tuple(self.data.shape)})"


def local_decision_strategy(node: DecisionNode, data) -> LocalDecisionStrategy:
    """Validate a 0/1 array and wrap it as a local decision strategy.

    Args:
        node: Decision node the strategy belongs to.
        data: Array indexed by (information state..., own state).

    Returns:
        Validated LocalDecisionStrategy.

    Raises:
        MalformedStrategy: If an entry is not 0/1 or a row does not select
            exactly one state.
    """
    values = np.asarray(data)
    if values.ndim != len(node.I_j) + 1:
        raise MalformedStrategy(
            node.j, (), f"expected {len(node.I_j) + 1} dimensions, got {values.ndim}"
        )
    for s_I in np.ndindex(values.shape[:-1]):
        row = values[s_I]
        if not np.all((row == 0) | (row == 1)):
            raise MalformedStrategy(node.j, s_I, f"entries must be 0 or 1, got {row.tolist()}")
        if int(row.sum()) != 1:
            raise MalformedStrategy(
                node.j, s_I, f"exactly one state must be selected, got {int(row.sum())}"
            )
    return LocalDecisionStrategy(node, jnp.asarray(values, dtype=jnp.int32))


class DecisionStrategy(NamedTuple):
    """One local decision strategy per decision node, in diagram order."""
    D: Tuple[DecisionNode, ...]
    Z_d: Tuple[LocalDecisionStrategy, ...]

    def local(self, d: int) -> LocalDecisionStrategy:
        for Z in self.Z_d:
            if Z.d == d:
                return Z
        raise KeyError(f"No local strategy for decision node {d}")


def decision_strategy(Z_d: Sequence[LocalDecisionStrategy]) -> DecisionStrategy:
    return DecisionStrategy(D=tuple(Z.node for Z in Z_d), Z_d=tuple(Z_d))


def extract_strategy(z: Sequence[DecisionVariables]) -> DecisionStrategy:
    """Read a deterministic strategy from solved decision variables.

    Variable values are rounded to the nearest integer. A variable without
    a value (unsolved model) counts as 0.

    Raises:
        MalformedStrategy: If the solver returned a row that does not select
            exactly one state (fractional or all-zero rows).
    """
    local = []
    for z_d in z:
        values = np.zeros(z_d.shape, dtype=np.int32)
        for index, var in z_d.z.items():
            values[index] = int(np.rint(var.varValue or 0.0))
        local.append(local_decision_strategy(z_d.node, values))
    return decision_strategy(local)
