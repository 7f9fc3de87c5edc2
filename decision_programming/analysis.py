"""Statistics of a fixed decision strategy.

All quantities are computed from the paths compatible with the strategy,
so they are exact (no sampling):

- utility distribution: probability mass of each distinct path utility,
- state probabilities: marginal probability of every node state,
  optionally conditioned on fixed chance states,
- value-at-risk and conditional value-at-risk of the utility distribution.
"""

import math
from typing import Dict, List, NamedTuple, Optional, Sequence

import numpy as np
from jaxtyping import Float

from decision_programming.compatible_paths import CompatiblePaths
from decision_programming.core.diagram import InfluenceDiagram
from decision_programming.core.paths import FixedPath, State
from decision_programming.exceptions import InvalidFixedState, InvalidRiskLevel
from decision_programming.policy import DecisionStrategy


class UtilityDistribution(NamedTuple):
    """Probability mass function of path utilities.

    Attributes:
        u: Strictly increasing distinct utilities.
        p: Probability mass of each utility (sums to one).
    """
    u: Float[np.ndarray, "n"]
    p: Float[np.ndarray, "n"]


class StateProbabilities(NamedTuple):
    """Marginal state probabilities of every chance and decision node.

    Attributes:
        probs: Node -> probability of each of its states.
        fixed: Chance node states conditioned on (empty if unconditional).
        event_probability: Probability of the conditioning event.
    """
    probs: Dict[int, Float[np.ndarray, "states"]]
    fixed: Dict[int, State]
    event_probability: float = 1.0


class UtilityStatistics(NamedTuple):
    mean: float
    std: float
    skewness: float
    kurtosis: float


class RiskMeasure(NamedTuple):
    alpha: float
    value_at_risk: float
    conditional_value_at_risk: float


def expected_utility(diagram: InfluenceDiagram, Z: DecisionStrategy) -> float:
    """Expected path utility under strategy Z."""
    return sum(
        diagram.P(s) * diagram.U(s)
        for s in CompatiblePaths.from_diagram(diagram, Z)
    )


def utility_distribution(diagram: InfluenceDiagram, Z: DecisionStrategy) -> UtilityDistribution:
    """Distribution of path utilities under strategy Z.

    Zero probability paths are dropped and paths with equal utility are
    merged.

    Args:
        diagram: Influence diagram.
        Z: Decision strategy.

    Returns:
        UtilityDistribution sorted by utility.
    """
    mass: Dict[float, float] = {}
    for s in CompatiblePaths.from_diagram(diagram, Z):
        p = diagram.P(s)
        if p == 0.0:
            continue
        u = diagram.U(s)
        mass[u] = mass.get(u, 0.0) + p
    u_sorted = sorted(mass)
    return UtilityDistribution(
        u=np.asarray(u_sorted, dtype=np.float64),
        p=np.asarray([mass[u] for u in u_sorted], dtype=np.float64),
    )


def _accumulate(
    diagram: InfluenceDiagram,
    S_Z: CompatiblePaths,
    normalizer: float,
) -> Dict[int, Float[np.ndarray, "states"]]:
    totals = [[0.0] * n for n in diagram.S]
    for s in S_Z:
        p = diagram.P(s) / normalizer
        for i, s_i in enumerate(s):
            totals[i][s_i] += p
    return {i: np.asarray(t, dtype=np.float64) for i, t in enumerate(totals)}


def state_probabilities(
    diagram: InfluenceDiagram,
    Z: DecisionStrategy,
    node: Optional[int] = None,
    state: Optional[State] = None,
    prior: Optional[StateProbabilities] = None,
) -> StateProbabilities:
    """Marginal state probabilities under strategy Z.

    Without ``node`` the probabilities are unconditional. With ``node`` and
    ``state``, chance node ``node`` is fixed to ``state`` on top of the states
    already fixed in ``prior`` and probabilities are divided by the
    probability of the conditioning event. Applying this repeatedly chains
    the conditioning.

    Example:
        >>> prior = state_probabilities(diagram, Z)
        >>> given_ill = state_probabilities(diagram, Z, node=0, state=0, prior=prior)

    Raises:
        InvalidFixedState: If ``node`` is not a chance node, ``state`` is out
            of range, or the conditioning event has zero probability.
    """
    if node is None:
        S_Z = CompatiblePaths.from_diagram(diagram, Z)
        return StateProbabilities(probs=_accumulate(diagram, S_Z, 1.0), fixed={}, event_probability=1.0)

    if state is None:
        raise ValueError("A state must be given together with the fixed node")
    if prior is None:
        prior = state_probabilities(diagram, Z)
    fixed = {**prior.fixed, node: state}
    S_Z = CompatiblePaths.from_diagram(diagram, Z, fixed)

    # P(A and B) = P(B | A) P(A)
    event_probability = prior.event_probability * float(prior.probs[node][state])
    if event_probability <= 0.0:
        raise InvalidFixedState(node, f"state {state} has zero probability")
    return StateProbabilities(
        probs=_accumulate(diagram, S_Z, event_probability),
        fixed=fixed,
        event_probability=event_probability,
    )


def value_at_risk(distribution: UtilityDistribution, alpha: float) -> float:
    """Smallest utility whose cumulative probability reaches alpha.

    Returns the largest utility when the cumulative mass never reaches
    alpha (floating point shortfall at alpha = 1).
    """
    if not 0 <= alpha <= 1:
        raise InvalidRiskLevel(alpha, "[0, 1]")
    order = np.argsort(distribution.u)
    u, p = distribution.u[order], distribution.p[order]
    reached = np.cumsum(p) >= alpha
    if not bool(np.any(reached)):
        return float(u[-1])
    return float(u[np.argmax(reached)])


def conditional_value_at_risk(distribution: UtilityDistribution, alpha: float) -> float:
    """Expected utility in the worst alpha tail of the distribution.

    CVaR_a = (sum_{u <= VaR_a} p(u) u - (sum_{u <= VaR_a} p(u) - a) VaR_a) / a
    """
    x_alpha = value_at_risk(distribution, alpha)
    if alpha == 0:
        return x_alpha
    tail = distribution.u <= x_alpha
    tail_value = np.sum(np.where(tail, distribution.u * distribution.p, 0.0))
    tail_mass = np.sum(np.where(tail, distribution.p, 0.0))
    return float((tail_value - (tail_mass - alpha) * x_alpha) / alpha)


def utility_statistics(distribution: UtilityDistribution) -> UtilityStatistics:
    """Probability weighted moments of the utility distribution.

    The standard deviation is uncorrected and the kurtosis is the excess
    kurtosis. Skewness and kurtosis are NaN for a degenerate distribution.
    """
    u, p = distribution.u, distribution.p
    w = p / np.sum(p)
    mean = np.sum(w * u)
    centered = u - mean
    variance = float(np.sum(w * centered**2))
    std = math.sqrt(variance)
    if variance == 0.0:
        return UtilityStatistics(mean=float(mean), std=0.0, skewness=math.nan, kurtosis=math.nan)
    skewness = float(np.sum(w * centered**3)) / std**3
    kurtosis = float(np.sum(w * centered**4)) / variance**2 - 3.0
    return UtilityStatistics(mean=float(mean), std=std, skewness=skewness, kurtosis=kurtosis)


def risk_measures(distribution: UtilityDistribution, alphas: Sequence[float]) -> List[RiskMeasure]:
    return [
        RiskMeasure(
            alpha=alpha,
            value_at_risk=value_at_risk(distribution, alpha),
            conditional_value_at_risk=conditional_value_at_risk(distribution, alpha),
        )
        for alpha in alphas
    ]
