"""Lazy constraints offered to the solver at candidate solutions.

A lazy cut is not part of the model at build time. Whenever the solver
reaches an integer feasible candidate, each registered callback evaluates
the candidate's variable values and may submit one global constraint. A
callback submits at most once.
"""

from __future__ import annotations

import logging
import math
import warnings
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, List, Mapping, Optional, Tuple

import pulp

from decision_programming.core.diagram import DefaultPathProbability, InfluenceDiagram, NodeRole
from decision_programming.exceptions import ActivePathsCutUnavailable, ExperimentalFeatureWarning

if TYPE_CHECKING:
    from decision_programming.model import DecisionModel, PathCompatibilityVariables

logger = logging.getLogger(__name__)


class CandidateSolution:
    """Read-only snapshot of variable values at a solver candidate."""

    def __init__(self, values: Mapping[str, Optional[float]]) -> None:
        self._values = MappingProxyType(dict(values))

    @classmethod
    def from_problem(cls, problem: pulp.LpProblem) -> "CandidateSolution":
        return cls({v.name: v.varValue for v in problem.variables()})

    def value(self, var: pulp.LpVariable) -> float:
        """Value of ``var`` in the candidate.

        Raises:
            KeyError: If the variable is not part of the candidate.
        """
        if var.name not in self._values:
            raise KeyError(f"Variable {var.name} is not part of the candidate solution")
        value = self._values[var.name]
        return 0.0 if value is None else float(value)


Evaluate = Callable[[CandidateSolution], Optional[pulp.LpConstraint]]


class LazyConstraintCallback:
    """Callback object evaluating candidates and submitting one global cut.

    Attributes:
        name: Name of the cut, used for the submitted constraint.
        constraints: Accumulating constraint set the cut is submitted to.
        evaluate: Pure function from a candidate to an optional constraint.
        added: Set once the cut has been submitted; later calls are no-ops.
    """

    def __init__(
        self,
        name: str,
        constraints: List[Tuple[str, pulp.LpConstraint]],
        evaluate: Evaluate,
    ) -> None:
        self.name = name
        self.constraints = constraints
        self.evaluate = evaluate
        self.added = False

    def __call__(self, candidate: CandidateSolution) -> Optional[pulp.LpConstraint]:
        if self.added:
            return None
        constraint = self.evaluate(candidate)
        if constraint is None:
            return None
        self.constraints.append((self.name, constraint))
        self.added = True
        logger.info(f"Submitted lazy cut {self.name}")
        return constraint


def lazy_probability_cut(
    model: DecisionModel,
    x_s: PathCompatibilityVariables,
    probability_scale_factor: float = 1.0,
    atol: float = 1e-6,
) -> LazyConstraintCallback:
    """Register sum_s x_s P(s) = 1 as a lazy constraint.

    The cut is submitted the first time a candidate's probability mass is
    not within ``atol`` of 1.
    """

    def evaluate(candidate: CandidateSolution) -> Optional[pulp.LpConstraint]:
        total = sum(candidate.value(x) * p for _, x, p in x_s.with_probabilities())
        if math.isclose(total, 1.0, rel_tol=0.0, abs_tol=atol):
            return None
        logger.debug(f"Probability cut violated: sum of x_s P(s) is {total}")
        return (
            pulp.lpSum(x * (p * probability_scale_factor) for _, x, p in x_s.with_probabilities())
            == probability_scale_factor
        )

    callback = LazyConstraintCallback("probability_cut", model.lazy_constraints, evaluate)
    model.register_lazy_callback(callback)
    return callback


def active_paths_cut(
    model: DecisionModel,
    diagram: InfluenceDiagram,
    x_s: PathCompatibilityVariables,
    atol: float = 0.9,
) -> LazyConstraintCallback:
    """Register a lazy cut on the number of active paths.

    With no structural zeros, every compatible path is active, so exactly
    prod_c S[c] path variables equal one. The cut counts candidate variables
    above the smallest positive table probability and, when the count
    drifts more than ``atol`` from that number, forces sum_s x_s to it.

    Raises:
        ActivePathsCutUnavailable: If some chance state has zero probability.
    """
    P = diagram.P
    if not isinstance(P, DefaultPathProbability):
        raise TypeError("Active paths cut requires probability tables (DefaultPathProbability)")
    if P.has_structural_zeros():
        raise ActivePathsCutUnavailable()
    warnings.warn(
        "Active paths cut is an experimental feature and has not been fully validated.",
        ExperimentalFeatureWarning,
        stacklevel=2,
    )
    epsilon = P.min_positive()
    num_compatible_paths = math.prod(
        diagram.S[c] for c in diagram.indices(NodeRole.CHANCE) if c not in x_s.fixed
    )

    def evaluate(candidate: CandidateSolution) -> Optional[pulp.LpConstraint]:
        num_active = sum(candidate.value(x) > epsilon for x in x_s.values())
        if abs(num_active - num_compatible_paths) <= atol:
            return None
        logger.debug(f"Active paths cut violated: {num_active} active paths, expected {num_compatible_paths}")
        return pulp.lpSum(x_s.values()) == num_compatible_paths

    callback = LazyConstraintCallback("active_paths_cut", model.lazy_constraints, evaluate)
    model.register_lazy_callback(callback)
    return callback
