"""Mixed-integer model of an influence diagram.

The decision model has two families of variables:

Decision variables (binary), one per information state and decision state:

    z_d[s_I, s_d] in {0, 1},   sum_{s_d} z_d[s_I, s_d] = 1

Path compatibility variables (continuous), one per path with P(s) > 0 that
is neither forbidden nor in conflict with the fixed states:

    0 <= x_s <= 1

linked by, for every decision node d and pair (s_I, s_d),

    sum_{s : s_{I(d)} = s_I, s_d = s_d} x_s <= z_d[s_I, s_d] * min(|paths|, ub_d)

where ub_d = |S| / prod S[I(d) + d] / prod_{other decisions} S[d'].
Probability is conserved either eagerly,

    sum_s x_s P(s) = 1,

or through a lazy cut registered on the model (see ``cuts``).
"""

import itertools
import logging
import math
import warnings
from collections.abc import Mapping
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import chex
import pulp

from decision_programming.core.diagram import DecisionNode, InfluenceDiagram
from decision_programming.core.paths import (
    FixedPath,
    ForbiddenPath,
    Path,
    States,
    group_by,
    is_forbidden,
    path_token,
    paths,
)
from decision_programming.cuts import LazyConstraintCallback, lazy_probability_cut
from decision_programming.exceptions import ExperimentalFeatureWarning, InvalidFixedState, InvalidScaleFactor

logger = logging.getLogger(__name__)


@chex.dataclass(frozen=True)
class DecisionModelConfig:
    """Configuration for building a decision model.

    Attributes:
        use_lazy_cuts: Register the probability cut as a lazy constraint
            instead of adding it at build time.
        probability_scale_factor: Factor applied to the probability
            conservation constraint (numerical conditioning).
        cut_tolerance: Absolute tolerance of the lazy probability cut.
        name: Name of the underlying LP problem.
    """
    use_lazy_cuts: bool = False
    probability_scale_factor: float = 1.0
    cut_tolerance: float = 1e-6
    name: str = "decision_model"

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.probability_scale_factor <= 0:
            raise InvalidScaleFactor(self.probability_scale_factor)
        if self.cut_tolerance < 0:
            raise ValueError(f"cut_tolerance must be non-negative, got {self.cut_tolerance}")


class DecisionModel:
    """A maximisation MIP plus the lazy constraint callbacks registered on it.

    Construction is single threaded: variables and constraints are added in
    place on ``problem``.
    """

    def __init__(self, name: str = "decision_model") -> None:
        self.problem = pulp.LpProblem(name, pulp.LpMaximize)
        self.lazy_callbacks: List[LazyConstraintCallback] = []
        # Constraints submitted by lazy callbacks, in submission order
        self.lazy_constraints: List[Tuple[str, pulp.LpConstraint]] = []
        self.cvar: list = []
        self._counter = itertools.count()

    def add_constraint(self, constraint: pulp.LpConstraint, name: Optional[str] = None) -> None:
        self.problem.addConstraint(constraint, name)

    def register_lazy_callback(self, callback: LazyConstraintCallback) -> None:
        self.lazy_callbacks.append(callback)

    def set_objective(self, expression, sense: int = pulp.LpMaximize) -> None:
        self.problem.sense = sense
        self.problem.setObjective(expression)

    def next_index(self) -> int:
        """Fresh index for naming auxiliary variable families."""
        return next(self._counter)

    @property
    def num_variables(self) -> int:
        return len(self.problem.variables())

    @property
    def num_constraints(self) -> int:
        return len(self.problem.constraints)


class DecisionVariables(NamedTuple):
    """Binary decision variables z_d of one decision node.

    Attributes:
        node: The decision node.
        shape: (S[I_1], ..., S[I_k], S[d]).
        z: Variable per (information state..., decision state) index.
    """
    node: DecisionNode
    shape: Tuple[int, ...]
    z: Dict[Path, pulp.LpVariable]


class PathCompatibilityVariables(Mapping):
    """Typed mapping from path to its compatibility variable x_s.

    Only paths with strictly positive probability that are not forbidden and
    agree with the fixed states are members. Use ``in`` to check membership;
    absent paths are implicitly zero.
    """

    def __init__(
        self,
        x: Dict[Path, pulp.LpVariable],
        probabilities: Dict[Path, float],
        fixed: Optional[FixedPath] = None,
    ) -> None:
        self._x = x
        self._probabilities = probabilities
        self.fixed = dict(fixed or {})

    def __getitem__(self, s: Path) -> pulp.LpVariable:
        return self._x[s]

    def __iter__(self) -> Iterator[Path]:
        return iter(self._x)

    def __len__(self) -> int:
        return len(self._x)

    def probability(self, s: Path) -> float:
        return self._probabilities[s]

    def with_probabilities(self) -> Iterator[Tuple[Path, pulp.LpVariable, float]]:
        for s, x in self._x.items():
            yield s, x, self._probabilities[s]


def decision_variables(model: DecisionModel, diagram: InfluenceDiagram) -> List[DecisionVariables]:
    """Create the binary decision variables of every decision node.

    Each information state row gets the constraint that exactly one decision
    state is chosen.

    Args:
        model: Model to add variables and constraints to.
        diagram: Influence diagram.

    Returns:
        Decision variables in the order of ``diagram.D``.
    """
    z = []
    for d in diagram.D:
        shape = tuple(diagram.S[i] for i in d.I_j) + (diagram.S[d.j],)
        z_d = {
            index: pulp.LpVariable(f"z_{d.j}_{path_token(index)}", cat="Binary")
            for index in paths(shape)
        }
        for s_I in paths(shape[:-1]):
            model.add_constraint(
                pulp.lpSum(z_d[s_I + (s_j,)] for s_j in range(shape[-1])) == 1,
                f"one_decision_{d.j}_{path_token(s_I)}" if s_I else f"one_decision_{d.j}",
            )
        z.append(DecisionVariables(node=d, shape=shape, z=z_d))
    return z


def _validate_fixed(S: States, fixed: FixedPath) -> None:
    for k, state in fixed.items():
        if not 0 <= k < len(S):
            raise InvalidFixedState(k, "node has no state dimension")
        if not 0 <= state < S[k]:
            raise InvalidFixedState(k, f"state {state} outside 0..{S[k] - 1}")


def _decision_strategy_constraints(
    model: DecisionModel,
    S: States,
    D: Sequence[DecisionNode],
    z_d: DecisionVariables,
    x_s: PathCompatibilityVariables,
) -> None:
    d = z_d.node
    nodes = d.I_j + (d.j,)
    other_decisions = [k.j for k in D if k.j not in nodes]
    # Paths sharing (s_I, s_d) once every other decision is also fixed
    theoretical_ub = math.prod(S) / math.prod(z_d.shape) / math.prod(S[k] for k in other_decisions)

    groups = group_by(x_s, nodes)
    for index, z in z_d.z.items():
        feasible_paths = groups.get(index)
        if not feasible_paths:
            continue
        bound = min(len(feasible_paths), theoretical_ub)
        model.add_constraint(
            pulp.lpSum(x_s[s] for s in feasible_paths) <= bound * z,
            f"strategy_{d.j}_{path_token(index)}",
        )


def path_compatibility_variables(
    model: DecisionModel,
    diagram: InfluenceDiagram,
    z: Sequence[DecisionVariables],
    forbidden_paths: Sequence[ForbiddenPath] = (),
    fixed: Optional[FixedPath] = None,
    probability_cut: bool = True,
    probability_scale_factor: float = 1.0,
) -> PathCompatibilityVariables:
    """Create path compatibility variables and link them to the strategy.

    Args:
        model: Model to add variables and constraints to.
        diagram: Influence diagram.
        z: Decision variables from ``decision_variables``.
        forbidden_paths: Rules excluding paths (experimental).
        fixed: States that every included path must agree with.
        probability_cut: Add sum_s x_s P(s) = 1 at build time.
        probability_scale_factor: Scale of the probability constraint.

    Returns:
        Mapping from path to its variable.
    """
    if probability_scale_factor <= 0:
        raise InvalidScaleFactor(probability_scale_factor)
    if forbidden_paths:
        warnings.warn(
            "Forbidden paths is an experimental feature and has not been fully validated.",
            ExperimentalFeatureWarning,
            stacklevel=2,
        )
    fixed = dict(fixed or {})
    _validate_fixed(diagram.S, fixed)

    x: Dict[Path, pulp.LpVariable] = {}
    probabilities: Dict[Path, float] = {}
    for s in paths(diagram.S, fixed):
        if forbidden_paths and is_forbidden(s, forbidden_paths):
            continue
        p = diagram.P(s)
        if p <= 0.0:
            continue
        x[s] = pulp.LpVariable(f"x_{path_token(s)}", lowBound=0, upBound=1)
        probabilities[s] = p
    x_s = PathCompatibilityVariables(x, probabilities, fixed)

    for z_d in z:
        _decision_strategy_constraints(model, diagram.S, diagram.D, z_d, x_s)

    if probability_cut:
        model.add_constraint(
            pulp.lpSum(x * (p * probability_scale_factor) for _, x, p in x_s.with_probabilities())
            == probability_scale_factor,
            "probability_cut",
        )
    return x_s


def build_model(
    diagram: InfluenceDiagram,
    config: Optional[DecisionModelConfig] = None,
    forbidden_paths: Sequence[ForbiddenPath] = (),
    fixed: Optional[FixedPath] = None,
) -> Tuple[DecisionModel, List[DecisionVariables], PathCompatibilityVariables]:
    """Build the decision model of an influence diagram.

    Example:
        >>> model, z, x_s = build_model(diagram)
        >>> model.set_objective(expected_value(diagram, x_s))
        >>> solve(model)

    Args:
        diagram: Influence diagram.
        config: Build options; defaults to ``DecisionModelConfig()``.
        forbidden_paths: Rules excluding paths (experimental).
        fixed: States that every included path must agree with.

    Returns:
        Tuple of (model, decision variables, path compatibility variables).
    """
    if config is None:
        config = DecisionModelConfig()
    model = DecisionModel(config.name)
    z = decision_variables(model, diagram)
    x_s = path_compatibility_variables(
        model,
        diagram,
        z,
        forbidden_paths=forbidden_paths,
        fixed=fixed,
        probability_cut=not config.use_lazy_cuts,
        probability_scale_factor=config.probability_scale_factor,
    )
    if config.use_lazy_cuts:
        lazy_probability_cut(
            model,
            x_s,
            probability_scale_factor=config.probability_scale_factor,
            atol=config.cut_tolerance,
        )

    logger.info(
        f"Built decision model with {len(z)} decision nodes, {len(x_s)} path variables, "
        f"{model.num_variables} variables and {model.num_constraints} constraints "
        f"(lazy cuts: {config.use_lazy_cuts})"
    )
    return model, z, x_s
