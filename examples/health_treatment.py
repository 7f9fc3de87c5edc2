import jax

from decision_programming import (
    ChanceNode,
    DecisionModelConfig,
    DecisionNode,
    InfluenceDiagram,
    PositivePathUtility,
    ValueNode,
    build_model,
    expected_value,
    extract_strategy,
    random_strategy,
    single_policy_update,
    solve,
    state_probabilities,
)

# H1 → T1 → D1 → H2
# H = (ill, healthy), T = (positive, negative), D = (treat, pass)
diagram = InfluenceDiagram.from_tables(
    S=(2, 2, 2, 2),
    chance=[
        (ChanceNode(0), [0.1, 0.9]),
        (ChanceNode(1, (0,)), [[0.8, 0.2], [0.1, 0.9]]),
        (ChanceNode(3, (0, 2)), [[[0.5, 0.5], [0.9, 0.1]], [[0.1, 0.9], [0.2, 0.8]]]),
    ],
    decision=[DecisionNode(2, (1,))],
    value=[
        (ValueNode(4, (2,)), [-100.0, 0.0]),
        (ValueNode(5, (3,)), [300.0, 1000.0]),
    ],
)

# Positive utilities let the probability cut be lazy
positive = diagram.with_utility(PositivePathUtility(diagram.S, diagram.U))
model, z, x_s = build_model(positive, DecisionModelConfig(use_lazy_cuts=True))
model.set_objective(expected_value(positive, x_s))
result = solve(model)
Z = extract_strategy(z)

print(f"Expected utility → {result.objective - positive.U.translation:.2f}  ({result.cut_rounds} cut rounds)")
for s_I in ((0,), (1,)):
    print(f"  test {s_I[0]} → decision {Z.local(2)(s_I)}")

prior = state_probabilities(diagram, Z)
ill = state_probabilities(diagram, Z, node=0, state=0, prior=prior)
positive_test = state_probabilities(diagram, Z, node=1, state=0, prior=ill)
print("P(healthy later)                  =", float(prior.probs[3][1]))
print("P(healthy later | ill)            =", float(ill.probs[3][1]))
print("P(healthy later | ill, positive)  =", float(positive_test.probs[3][1]))

history = single_policy_update(diagram, random_strategy(diagram, jax.random.PRNGKey(0)))
for step, (_, value) in enumerate(history):
    print(f"SPU step {step:2d} → {value:.2f}")
