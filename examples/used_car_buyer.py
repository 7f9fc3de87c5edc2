from decision_programming import (
    ChanceNode,
    DecisionNode,
    InfluenceDiagram,
    ValueNode,
    build_model,
    conditional_value_at_risk,
    distribution_cvar,
    expected_value,
    extract_strategy,
    solve,
    utility_distribution,
    utility_statistics,
)

# O = car type (lemon, peach), A = (buy, don't buy)
diagram = InfluenceDiagram.from_tables(
    S=(2, 2),
    chance=[(ChanceNode(0), [0.2, 0.8])],
    decision=[DecisionNode(1)],
    value=[(ValueNode(2, (0, 1)), [[-100.0, 0.0], [60.0, 0.0]])],
)

model, z, x_s = build_model(diagram)
model.set_objective(expected_value(diagram, x_s))
result = solve(model)
Z = extract_strategy(z)

print(f"Expected value → {result.objective:.2f}, decision = {Z.local(1)(())}")

dist = utility_distribution(diagram, Z)
stats = utility_statistics(dist)
print("Utilities     =", dist.u.tolist())
print("Probabilities =", dist.p.tolist())
print(f"mean {stats.mean:.2f},  std {stats.std:.2f},  CVaR(0.1) {distribution_cvar(dist, 0.1):.2f}")

for alpha in (0.1, 0.5, 1.0):
    model, z, x_s = build_model(diagram)
    model.set_objective(conditional_value_at_risk(model, diagram, x_s, alpha))
    result = solve(model)
    print(f"alpha {alpha:.1f} → CVaR {result.objective:8.2f},  decision = {extract_strategy(z).local(1)(())}")
