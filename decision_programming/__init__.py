"""Decision programming: optimal strategies for influence diagrams.

An influence diagram (chance, decision and value nodes on a DAG) is compiled
into a mixed-integer program over path compatibility variables, solved, and
the resulting deterministic strategy is analysed exactly.

Key components:
- build_model: decision variables, path variables and strategy constraints
- expected_value / conditional_value_at_risk: objectives (big-M CVaR)
- lazy_probability_cut / active_paths_cut: lazy constraints
- extract_strategy: deterministic strategy from a solved model
- utility_distribution, state_probabilities, value_at_risk,
  conditional_value_at_risk: analysis of a fixed strategy

Example:
    >>> from decision_programming import (
    ...     InfluenceDiagram, ChanceNode, DecisionNode, ValueNode,
    ...     build_model, expected_value, solve, extract_strategy,
    ...     utility_distribution,
    ... )
    >>>
    >>> diagram = InfluenceDiagram.from_tables(
    ...     S=(2, 2),
    ...     chance=[(ChanceNode(0), [0.2, 0.8])],
    ...     decision=[DecisionNode(1)],
    ...     value=[(ValueNode(2, (0, 1)), [[-100.0, 0.0], [60.0, 0.0]])],
    ... )
    >>> model, z, x_s = build_model(diagram)
    >>> model.set_objective(expected_value(diagram, x_s))
    >>> result = solve(model)
    >>> Z = extract_strategy(z)
    >>> dist = utility_distribution(diagram, Z)
"""

from .core import (
    State,
    Path,
    States,
    FixedPath,
    ForbiddenPath,
    forbidden_states,
    paths,
    NodeRole,
    node_role,
    ChanceNode,
    DecisionNode,
    ValueNode,
    DefaultPathProbability,
    DefaultPathUtility,
    PositivePathUtility,
    NegativePathUtility,
    InfluenceDiagram,
)

from .exceptions import (
    DecisionProgrammingError,
    InvalidFixedState,
    InvalidScaleFactor,
    InvalidRiskLevel,
    UnknownNodeClass,
    MalformedStrategy,
    ActivePathsCutUnavailable,
    ExperimentalFeatureWarning,
)

from .model import (
    DecisionModelConfig,
    DecisionModel,
    DecisionVariables,
    PathCompatibilityVariables,
    decision_variables,
    path_compatibility_variables,
    build_model,
)

from .cuts import (
    CandidateSolution,
    LazyConstraintCallback,
    lazy_probability_cut,
    active_paths_cut,
)

from .objective import (
    CVaRVariables,
    expected_value,
    conditional_value_at_risk,
)

from .solver import (
    SolveResult,
    solve,
)

from .policy import (
    LocalDecisionStrategy,
    DecisionStrategy,
    local_decision_strategy,
    decision_strategy,
    extract_strategy,
)

from .compatible_paths import CompatiblePaths

from .analysis import (
    UtilityDistribution,
    StateProbabilities,
    UtilityStatistics,
    RiskMeasure,
    expected_utility,
    utility_distribution,
    state_probabilities,
    value_at_risk,
    utility_statistics,
    risk_measures,
)
from .analysis import conditional_value_at_risk as distribution_cvar

from .heuristics import (
    random_strategy,
    single_policy_update,
)

__all__ = [
    # Path domain
    "State",
    "Path",
    "States",
    "FixedPath",
    "ForbiddenPath",
    "forbidden_states",
    "paths",
    "NodeRole",
    "node_role",
    "ChanceNode",
    "DecisionNode",
    "ValueNode",
    "DefaultPathProbability",
    "DefaultPathUtility",
    "PositivePathUtility",
    "NegativePathUtility",
    "InfluenceDiagram",
    # Errors
    "DecisionProgrammingError",
    "InvalidFixedState",
    "InvalidScaleFactor",
    "InvalidRiskLevel",
    "UnknownNodeClass",
    "MalformedStrategy",
    "ActivePathsCutUnavailable",
    "ExperimentalFeatureWarning",
    # Model
    "DecisionModelConfig",
    "DecisionModel",
    "DecisionVariables",
    "PathCompatibilityVariables",
    "decision_variables",
    "path_compatibility_variables",
    "build_model",
    "CandidateSolution",
    "LazyConstraintCallback",
    "lazy_probability_cut",
    "active_paths_cut",
    "CVaRVariables",
    "expected_value",
    "conditional_value_at_risk",
    "SolveResult",
    "solve",
    # Strategies
    "LocalDecisionStrategy",
    "DecisionStrategy",
    "local_decision_strategy",
    "decision_strategy",
    "extract_strategy",
    # Analysis
    "CompatiblePaths",
    "UtilityDistribution",
    "StateProbabilities",
    "UtilityStatistics",
    "RiskMeasure",
    "expected_utility",
    "utility_distribution",
    "state_probabilities",
    "value_at_risk",
    "distribution_cvar",
    "utility_statistics",
    "risk_measures",
    # Heuristics
    "random_strategy",
    "single_policy_update",
]
