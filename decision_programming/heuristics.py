"""Heuristic decision strategies.

- Random strategy: one uniformly random decision per information state.
- Single policy update: local search that switches one decision at a time
  while the expected utility improves. Useful as a baseline or to check a
  MIP solution.
"""

from typing import List, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jaxtyping import PRNGKeyArray

from decision_programming.analysis import expected_utility
from decision_programming.core.diagram import InfluenceDiagram
from decision_programming.policy import DecisionStrategy, decision_strategy, local_decision_strategy

Key = PRNGKeyArray


def random_strategy(diagram: InfluenceDiagram, key: Key) -> DecisionStrategy:
    """Draw a deterministic strategy uniformly at random.

    Args:
        diagram: Influence diagram.
        key: Random key.

    Returns:
        DecisionStrategy with one random decision per information state.
    """
    local = []
    for d in diagram.D:
        key, subkey = jax.random.split(key)
        info_shape = tuple(diagram.S[i] for i in d.I_j)
        choices = jax.random.randint(subkey, info_shape, 0, diagram.S[d.j])
        data = jax.nn.one_hot(choices, diagram.S[d.j], dtype=jnp.int32)
        local.append(local_decision_strategy(d, data))
    return decision_strategy(local)


def single_policy_update(
    diagram: InfluenceDiagram,
    Z: DecisionStrategy,
    max_sweeps: int = 100,
    tol: float = 1e-9,
) -> List[Tuple[DecisionStrategy, float]]:
    """Improve Z one decision at a time.

    Sweeps over every decision node and information state, switching to
    the decision state with the highest expected utility, until a sweep
    makes no change or ``max_sweeps`` is reached.

    Args:
        diagram: Influence diagram.
        Z: Initial strategy.
        max_sweeps: Maximum number of sweeps.
        tol: Minimum improvement accepted.

    Returns:
        History of (strategy, expected utility), starting with Z and ending
        with the best strategy found.
    """
    best = expected_utility(diagram, Z)
    history = [(Z, best)]
    for _ in range(max_sweeps):
        improved = False
        for k in range(len(Z.Z_d)):
            Z_d = Z.Z_d[k]
            values = np.array(Z_d.data)
            for s_I in np.ndindex(values.shape[:-1]):
                current = int(values[s_I].argmax())
                for s_d in range(values.shape[-1]):
                    if s_d == current:
                        continue
                    candidate_values = values.copy()
                    candidate_values[s_I] = 0
                    candidate_values[s_I + (s_d,)] = 1
                    local = list(Z.Z_d)
                    local[k] = local_decision_strategy(Z_d.node, candidate_values)
                    candidate = decision_strategy(local)
                    value = expected_utility(diagram, candidate)
                    if value > best + tol:
                        Z, best, values, current = candidate, value, candidate_values, s_d
                        Z_d = Z.Z_d[k]
                        history.append((Z, best))
                        improved = True
        if not improved:
            break
    return history
