"""Objective functions over path compatibility variables.

Expected value:

    EV = sum_s P(s) x_s U(s)

Conditional value-at-risk at level alpha, with eta the value-at-risk
candidate, M = u_max - u_min and epsilon half the smallest gap between two
distinct path utilities. For every path s with utility u_s:

    eta - u_s <= M lambda_s                 eta - u_s >= (M + eps) lambda_s - M
    eta - u_s <= (M + eps) lambda'_s - eps  eta - u_s >= M (lambda'_s - 1)
    0 <= rho_s <= lambda_s                  0 <= rho'_s <= lambda'_s
    rho_s <= rho'_s                         rho'_s <= x_s P(s)
    x_s P(s) - (1 - lambda_s) <= rho_s

    sum_s rho'_s = alpha,   u_min <= eta <= u_max
    CVaR = sum_s rho'_s u_s / alpha

lambda_s indicates u_s <= eta and lambda'_s indicates u_s < eta. The
probability terms are multiplied by the probability scale factor.
"""

from typing import Dict, NamedTuple

import pulp

from decision_programming.core.diagram import InfluenceDiagram
from decision_programming.core.paths import Path, path_token
from decision_programming.exceptions import InvalidRiskLevel, InvalidScaleFactor
from decision_programming.model import DecisionModel, PathCompatibilityVariables


class CVaRVariables(NamedTuple):
    """Auxiliary variables of one CVaR objective."""
    alpha: float
    eta: pulp.LpVariable
    lam: Dict[Path, pulp.LpVariable]
    lam_bar: Dict[Path, pulp.LpVariable]
    rho: Dict[Path, pulp.LpVariable]
    rho_bar: Dict[Path, pulp.LpVariable]


def expected_value(
    diagram: InfluenceDiagram,
    x_s: PathCompatibilityVariables,
    probability_scale_factor: float = 1.0,
) -> pulp.LpAffineExpression:
    """Expected utility of the strategy encoded by ``x_s``."""
    if probability_scale_factor <= 0:
        raise InvalidScaleFactor(probability_scale_factor)
    return pulp.lpSum(
        x * (p * diagram.U(s) * probability_scale_factor)
        for s, x, p in x_s.with_probabilities()
    )


def conditional_value_at_risk(
    model: DecisionModel,
    diagram: InfluenceDiagram,
    x_s: PathCompatibilityVariables,
    alpha: float,
    probability_scale_factor: float = 1.0,
) -> pulp.LpAffineExpression:
    """Conditional value-at-risk of the strategy encoded by ``x_s``.

    Adds the value-at-risk variable eta and, per path, the indicator pair
    (lambda, lambda') and the tail mass pair (rho, rho') to ``model``.

    Args:
        model: Model to add variables and constraints to.
        diagram: Influence diagram.
        x_s: Path compatibility variables.
        alpha: Tail probability, 0 < alpha <= 1.
        probability_scale_factor: Scale of the probability terms.

    Returns:
        CVaR as a linear expression.

    Raises:
        InvalidRiskLevel: If alpha is outside (0, 1].
        InvalidScaleFactor: If the scale factor is not positive.
    """
    if probability_scale_factor <= 0:
        raise InvalidScaleFactor(probability_scale_factor)
    if not 0 < alpha <= 1:
        raise InvalidRiskLevel(alpha)
    if not len(x_s):
        raise ValueError("Cannot build CVaR without path compatibility variables")

    utilities = {s: diagram.U(s) for s in x_s}
    u_sorted = sorted(set(utilities.values()))
    u_min, u_max = u_sorted[0], u_sorted[-1]
    M = u_max - u_min
    gaps = [b - a for a, b in zip(u_sorted, u_sorted[1:])]
    epsilon = min(gaps) / 2 if gaps else 0.0
    scale = probability_scale_factor

    k = model.next_index()
    eta = pulp.LpVariable(f"eta_{k}", lowBound=u_min, upBound=u_max)
    lam, lam_bar, rho, rho_bar = {}, {}, {}, {}
    for s, x, p in x_s.with_probabilities():
        u_s = utilities[s]
        tag = f"{k}_{path_token(s)}"
        lam[s] = pulp.LpVariable(f"lambda_{tag}", cat="Binary")
        lam_bar[s] = pulp.LpVariable(f"lambda_bar_{tag}", cat="Binary")
        rho[s] = pulp.LpVariable(f"rho_{tag}", lowBound=0, upBound=scale)
        rho_bar[s] = pulp.LpVariable(f"rho_bar_{tag}", lowBound=0, upBound=scale)

        model.add_constraint(eta - u_s <= M * lam[s])
        model.add_constraint(eta - u_s >= (M + epsilon) * lam[s] - M)
        model.add_constraint(eta - u_s <= (M + epsilon) * lam_bar[s] - epsilon)
        model.add_constraint(eta - u_s >= M * (lam_bar[s] - 1))
        model.add_constraint(rho[s] <= scale * lam[s])
        model.add_constraint(rho_bar[s] <= scale * lam_bar[s])
        model.add_constraint(rho[s] <= rho_bar[s])
        model.add_constraint(rho_bar[s] <= (p * scale) * x)
        model.add_constraint((p * scale) * x - scale * (1 - lam[s]) <= rho[s])
    model.add_constraint(pulp.lpSum(rho_bar.values()) == alpha * scale, f"cvar_mass_{k}")

    model.cvar.append(
        CVaRVariables(alpha=alpha, eta=eta, lam=lam, lam_bar=lam_bar, rho=rho, rho_bar=rho_bar)
    )
    return pulp.lpSum(rho_bar[s] * (utilities[s] / (alpha * scale)) for s in rho_bar)
