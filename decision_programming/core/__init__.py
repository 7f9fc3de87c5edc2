"""Path domain: paths, state spaces and the influence diagram contract."""

from .paths import (
    State,
    Path,
    States,
    FixedPath,
    ForbiddenPath,
    forbidden_states,
    is_forbidden,
    paths,
    num_paths,
)

from .diagram import (
    NodeRole,
    node_role,
    ChanceNode,
    DecisionNode,
    ValueNode,
    PathProbability,
    PathUtility,
    DefaultPathProbability,
    DefaultPathUtility,
    PositivePathUtility,
    NegativePathUtility,
    InfluenceDiagram,
)

__all__ = [
    # Paths
    "State",
    "Path",
    "States",
    "FixedPath",
    "ForbiddenPath",
    "forbidden_states",
    "is_forbidden",
    "paths",
    "num_paths",
    # Diagram
    "NodeRole",
    "node_role",
    "ChanceNode",
    "DecisionNode",
    "ValueNode",
    "PathProbability",
    "PathUtility",
    "DefaultPathProbability",
    "DefaultPathUtility",
    "PositivePathUtility",
    "NegativePathUtility",
    "InfluenceDiagram",
]
