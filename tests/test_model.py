"""Tests for the decision model builder, lazy cuts and the solve driver."""

import logging

import pulp
import pytest

from decision_programming import (
    ActivePathsCutUnavailable,
    CandidateSolution,
    ChanceNode,
    DecisionModelConfig,
    DecisionNode,
    ExperimentalFeatureWarning,
    InfluenceDiagram,
    InvalidFixedState,
    InvalidScaleFactor,
    LazyConstraintCallback,
    PositivePathUtility,
    ValueNode,
    active_paths_cut,
    build_model,
    expected_utility,
    expected_value,
    extract_strategy,
    forbidden_states,
    solve,
)


def _coefficients(constraint):
    return {c["name"]: c["value"] for c in constraint.toDict()["coefficients"]}


# ============================================================================
# Configuration Tests
# ============================================================================


def test_config_default_values() -> None:
    """Test that config has reasonable defaults."""
    config = DecisionModelConfig()

    assert config.use_lazy_cuts is False
    assert config.probability_scale_factor == 1.0
    assert config.cut_tolerance == 1e-6


def test_config_validation() -> None:
    """Test that config validates parameters."""
    with pytest.raises(InvalidScaleFactor, match="probability_scale_factor must be positive"):
        DecisionModelConfig(probability_scale_factor=0.0)

    with pytest.raises(ValueError, match="probability_scale_factor"):
        DecisionModelConfig(probability_scale_factor=-1.0)

    with pytest.raises(ValueError, match="cut_tolerance"):
        DecisionModelConfig(cut_tolerance=-1.0)


def test_config_immutability() -> None:
    """Test that config is immutable."""
    config = DecisionModelConfig()

    with pytest.raises((AttributeError, Exception)):
        config.use_lazy_cuts = True


# ============================================================================
# Model Structure Tests
# ============================================================================


def test_decision_variables(health) -> None:
    """Test one binary per (information state, decision state)."""
    model, z, x_s = build_model(health)

    assert len(z) == 1
    assert z[0].shape == (2, 2)
    assert len(z[0].z) == 4
    assert all(var.cat == "Integer" for var in z[0].z.values())
    assert "one_decision_2_0" in model.problem.constraints
    assert "one_decision_2_1" in model.problem.constraints


def test_path_variables_skip_zero_probability() -> None:
    """Test that zero probability paths get no variable."""
    diagram = InfluenceDiagram.from_tables(
        S=(2, 2),
        chance=[(ChanceNode(0), [0.0, 1.0])],
        decision=[DecisionNode(1)],
        value=[(ValueNode(2, (0, 1)), [[1.0, 0.0], [2.0, 0.0]])],
    )

    _, _, x_s = build_model(diagram)

    assert len(x_s) == 2
    assert (0, 0) not in x_s
    assert (1, 0) in x_s
    assert x_s.probability((1, 1)) == 1.0


def test_strategy_constraint_bounds(health) -> None:
    """Test that linking constraints use the tightened upper bound."""
    model, z, x_s = build_model(health)

    coefficients = _coefficients(model.problem.constraints["strategy_2_0_0"])
    # Four paths share (T1, D1) = (positive, treat)
    assert coefficients[z[0].z[(0, 0)].name] == -4
    assert sum(1 for name in coefficients if name.startswith("x_")) == 4


def test_eager_probability_cut(used_car) -> None:
    """Test that the probability constraint is added at build time."""
    model, _, x_s = build_model(used_car)

    assert "probability_cut" in model.problem.constraints
    assert model.lazy_callbacks == []
    assert len(x_s) == 4
    assert model.num_variables == 6


def test_scaled_probability_cut(used_car) -> None:
    """Test that the scale factor multiplies the probability constraint."""
    model, _, x_s = build_model(used_car, DecisionModelConfig(probability_scale_factor=10.0))

    constraint = model.problem.constraints["probability_cut"].toDict()
    coefficients = _coefficients(model.problem.constraints["probability_cut"])
    assert coefficients[x_s[(1, 0)].name] == pytest.approx(8.0)
    assert constraint["constant"] == pytest.approx(-10.0)


def test_forbidden_paths_warn(used_car) -> None:
    """Test that forbidden paths are experimental and removed."""
    with pytest.warns(ExperimentalFeatureWarning, match="Forbidden paths"):
        model, z, x_s = build_model(used_car, forbidden_paths=[forbidden_states(1, {0})])

    assert set(x_s) == {(0, 1), (1, 1)}

    model.set_objective(expected_value(used_car, x_s))
    result = solve(model)

    assert result.status == "Optimal"
    assert extract_strategy(z).local(1)(()) == 1


def test_forbidden_paths_conjunction(used_car) -> None:
    """Test that only paths matching every rule are removed."""
    rules = [forbidden_states(0, {0}), forbidden_states(1, {0})]

    with pytest.warns(ExperimentalFeatureWarning):
        model, z, x_s = build_model(used_car, forbidden_paths=rules)

    assert set(x_s) == {(0, 1), (1, 0), (1, 1)}

    model.set_objective(expected_value(used_car, x_s))
    result = solve(model)

    # Buying keeps only the peach path, which carries 0.8 of the mass
    assert result.objective == pytest.approx(0.0, abs=1e-9)
    assert extract_strategy(z).local(1)(()) == 1


def test_fixed_decision_state(used_car) -> None:
    """Test that fixed states remove disagreeing paths."""
    model, z, x_s = build_model(used_car, fixed={1: 1})

    assert set(x_s) == {(0, 1), (1, 1)}


def test_fixed_state_validation(used_car) -> None:
    """Test that fixed states must exist."""
    with pytest.raises(InvalidFixedState):
        build_model(used_car, fixed={5: 0})

    with pytest.raises(InvalidFixedState):
        build_model(used_car, fixed={0: 2})


# ============================================================================
# Solve Tests
# ============================================================================


def test_used_car_expected_value(used_car) -> None:
    """Test that buying is optimal with expected utility 28."""
    model, z, x_s = build_model(used_car)
    model.set_objective(expected_value(used_car, x_s))

    result = solve(model)
    Z = extract_strategy(z)

    assert result.status == "Optimal"
    assert result.objective == pytest.approx(0.2 * -100 + 0.8 * 60)
    assert result.cut_rounds == 0
    assert Z.local(1)(()) == 0


def test_health_beats_never_treat(health, always_pass) -> None:
    """Test that the optimal strategy beats never treating."""
    model, z, x_s = build_model(health)
    model.set_objective(expected_value(health, x_s))

    result = solve(model)
    Z = extract_strategy(z)

    baseline = expected_utility(health, always_pass)
    assert baseline == pytest.approx(811.0)
    assert result.objective == pytest.approx(822.7)
    assert result.objective > baseline
    # Treat on a positive test, pass on a negative one
    assert Z.local(2)((0,)) == 0
    assert Z.local(2)((1,)) == 1
    assert expected_utility(health, Z) == pytest.approx(result.objective)


def test_scaled_objective(used_car) -> None:
    """Test that scaling the probabilities scales the objective only."""
    config = DecisionModelConfig(probability_scale_factor=10.0)
    model, z, x_s = build_model(used_car, config)
    model.set_objective(expected_value(used_car, x_s, probability_scale_factor=10.0))

    result = solve(model)

    assert result.objective == pytest.approx(280.0)
    assert extract_strategy(z).local(1)(()) == 0


def test_infeasible_status_propagates(used_car) -> None:
    """Test that solver failures are reported unmodified."""
    model, _, x_s = build_model(used_car, fixed={0: 1})
    model.set_objective(expected_value(used_car, x_s))

    result = solve(model)

    assert result.status == "Infeasible"
    assert result.objective is None


# ============================================================================
# Lazy Cut Tests
# ============================================================================


def test_lazy_probability_cut(used_car) -> None:
    """Test that the probability cut is submitted once when violated."""
    model, z, x_s = build_model(used_car, DecisionModelConfig(use_lazy_cuts=True))
    model.set_objective(expected_value(used_car, x_s))

    assert "probability_cut" not in model.problem.constraints
    assert len(model.lazy_callbacks) == 1

    result = solve(model)
    callback = model.lazy_callbacks[0]

    assert callback.added
    assert result.cut_rounds == 1
    assert len(model.lazy_constraints) == 1
    assert result.objective == pytest.approx(28.0)
    assert extract_strategy(z).local(1)(()) == 0


def test_lazy_cut_not_needed_with_positive_utility(health) -> None:
    """Test that positive utilities satisfy the probability cut on their own."""
    positive = health.with_utility(PositivePathUtility(health.S, health.U))
    model, z, x_s = build_model(positive, DecisionModelConfig(use_lazy_cuts=True))
    model.set_objective(expected_value(positive, x_s))

    result = solve(model)

    assert result.cut_rounds == 0
    assert not model.lazy_callbacks[0].added
    assert result.objective == pytest.approx(822.7 + positive.U.translation)


def test_active_paths_cut(used_car) -> None:
    """Test that the active paths cut warns and keeps the optimum."""
    model, z, x_s = build_model(used_car)
    model.set_objective(expected_value(used_car, x_s))

    with pytest.warns(ExperimentalFeatureWarning, match="Active paths cut"):
        active_paths_cut(model, used_car, x_s)
    result = solve(model)

    assert result.objective == pytest.approx(28.0)
    assert result.cut_rounds == 0


def test_active_paths_count_is_strict(used_car) -> None:
    """Test that a path variable at the threshold is not counted as active."""
    model, _, x_s = build_model(used_car)
    with pytest.warns(ExperimentalFeatureWarning):
        callback = active_paths_cut(model, used_car, x_s)

    # Threshold is the smallest table probability, 0.2
    values = {x.name: 0.0 for x in x_s.values()}
    values[x_s[(1, 0)].name] = 1.0
    values[x_s[(0, 0)].name] = 0.2
    assert callback.evaluate(CandidateSolution(values)) is not None

    values[x_s[(0, 0)].name] = 0.25
    assert callback.evaluate(CandidateSolution(values)) is None


def test_active_paths_cut_requires_active_states() -> None:
    """Test that structural zeros rule out the active paths cut."""
    diagram = InfluenceDiagram.from_tables(
        S=(2, 2),
        chance=[(ChanceNode(0), [0.0, 1.0])],
        decision=[DecisionNode(1)],
        value=[(ValueNode(2, (0, 1)), [[1.0, 0.0], [2.0, 0.0]])],
    )
    model, _, x_s = build_model(diagram)

    with pytest.raises(ActivePathsCutUnavailable):
        active_paths_cut(model, diagram, x_s)


def test_callback_is_one_shot() -> None:
    """Test that a callback submits at most one constraint."""
    x = pulp.LpVariable("x", lowBound=0, upBound=1)
    constraints = []
    calls = []

    def evaluate(candidate):
        calls.append(candidate.value(x))
        return x == 1

    callback = LazyConstraintCallback("test_cut", constraints, evaluate)
    candidate = CandidateSolution({"x": 0.0})

    assert callback(candidate) is not None
    assert callback(candidate) is None
    assert callback.added
    assert len(constraints) == 1
    assert calls == [0.0]


def test_candidate_solution_membership() -> None:
    """Test explicit membership checks on candidate values."""
    candidate = CandidateSolution({"x": 1.0, "y": None})

    assert candidate.value(pulp.LpVariable("x")) == 1.0
    assert candidate.value(pulp.LpVariable("y")) == 0.0
    with pytest.raises(KeyError):
        candidate.value(pulp.LpVariable("w"))


# ============================================================================
# Logging Tests
# ============================================================================


def test_build_and_solve_are_logged(used_car, caplog) -> None:
    """Test that model sizes, cuts and the solve outcome reach the log text."""
    with caplog.at_level(logging.DEBUG, logger="decision_programming"):
        model, _, x_s = build_model(used_car, DecisionModelConfig(use_lazy_cuts=True))
        model.set_objective(expected_value(used_car, x_s))
        solve(model)

    assert "4 path variables" in caplog.text
    assert "Probability cut violated" in caplog.text
    assert "Submitted lazy cut probability_cut" in caplog.text
    assert "status Optimal" in caplog.text
    assert "1 cut rounds" in caplog.text
