"""Shared influence diagrams for the tests."""

import pytest

from decision_programming import (
    ChanceNode,
    DecisionNode,
    InfluenceDiagram,
    ValueNode,
    decision_strategy,
    local_decision_strategy,
)


@pytest.fixture
def used_car() -> InfluenceDiagram:
    """O = car (lemon, peach), A = (buy, don't buy), V(O, A)."""
    return InfluenceDiagram.from_tables(
        S=(2, 2),
        chance=[(ChanceNode(0), [0.2, 0.8])],
        decision=[DecisionNode(1)],
        value=[(ValueNode(2, (0, 1)), [[-100.0, 0.0], [60.0, 0.0]])],
    )


@pytest.fixture
def health() -> InfluenceDiagram:
    """H1 -> T1 -> D1 -> H2; H = (ill, healthy), T = (positive, negative), D = (treat, pass)."""
    x_h2 = [
        [[0.5, 0.5], [0.9, 0.1]],  # ill: treat, pass
        [[0.1, 0.9], [0.2, 0.8]],  # healthy: treat, pass
    ]
    return InfluenceDiagram.from_tables(
        S=(2, 2, 2, 2),
        chance=[
            (ChanceNode(0), [0.1, 0.9]),
            (ChanceNode(1, (0,)), [[0.8, 0.2], [0.1, 0.9]]),
            (ChanceNode(3, (0, 2)), x_h2),
        ],
        decision=[DecisionNode(2, (1,))],
        value=[
            (ValueNode(4, (2,)), [-100.0, 0.0]),
            (ValueNode(5, (3,)), [300.0, 1000.0]),
        ],
    )


@pytest.fixture
def buy_strategy(used_car):
    return decision_strategy([local_decision_strategy(used_car.D[0], [1, 0])])


@pytest.fixture
def treat_if_positive(health):
    return decision_strategy([local_decision_strategy(health.D[0], [[1, 0], [0, 1]])])


@pytest.fixture
def always_pass(health):
    return decision_strategy([local_decision_strategy(health.D[0], [[0, 1], [0, 1]])])
