"""Solve a decision model, driving its lazy constraint callbacks.

CBC, as shipped with pulp, exposes no in-search callback hook, so lazy cuts
are offered at every accepted incumbent instead: solve, snapshot the
incumbent, let each callback evaluate it, add the submitted cuts globally and
re-solve. Callbacks are one-shot, so the loop ends after at most one round
per callback.
"""

import logging
from typing import NamedTuple, Optional

import pulp

from decision_programming.cuts import CandidateSolution
from decision_programming.model import DecisionModel

logger = logging.getLogger(__name__)


class SolveResult(NamedTuple):
    """Outcome of ``solve``.

    Attributes:
        status: Solver status string as reported by pulp (e.g. "Optimal").
        objective: Objective value, or None when no solution was found.
        cut_rounds: Number of re-solves triggered by lazy cuts.
    """
    status: str
    objective: Optional[float]
    cut_rounds: int


def solve(model: DecisionModel, solver: Optional[pulp.LpSolver] = None) -> SolveResult:
    """Solve ``model`` and enforce its lazy cuts.

    Infeasibility and other solver failures are reported through the status
    exactly as the solver returns them.

    Args:
        model: Built decision model with an objective.
        solver: pulp solver; defaults to a silent CBC.

    Returns:
        SolveResult of the final solve.
    """
    if solver is None:
        solver = pulp.PULP_CBC_CMD(msg=False)

    cut_rounds = 0
    while True:
        model.problem.solve(solver)
        status = pulp.LpStatus[model.problem.status]
        if status != "Optimal" or not model.lazy_callbacks:
            break
        candidate = CandidateSolution.from_problem(model.problem)
        submitted = [cut for cut in (callback(candidate) for callback in model.lazy_callbacks) if cut is not None]
        if not submitted:
            break
        for constraint in submitted:
            model.add_constraint(constraint)
        cut_rounds += 1

    objective = pulp.value(model.problem.objective) if status == "Optimal" else None
    logger.info(f"Solved decision model: status {status}, objective {objective}, {cut_rounds} cut rounds")
    return SolveResult(status=status, objective=objective, cut_rounds=cut_rounds)
