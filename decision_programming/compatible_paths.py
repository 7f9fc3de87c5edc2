"""Enumeration of paths compatible with a decision strategy.

A path s is compatible with strategy Z if every decision state agrees with
the strategy given the path's information states:

    s_d = Z_d(s_{I(d)})   for every decision node d

Compatible paths are generated by enumerating chance states only and filling
decision states from the strategy, so there are prod_c S[c] of them.
"""

from itertools import product
from typing import Iterator, Optional, Sequence, Tuple

from decision_programming.core.diagram import InfluenceDiagram, NodeRole
from decision_programming.core.paths import FixedPath, Path, States
from decision_programming.exceptions import InvalidFixedState
from decision_programming.policy import DecisionStrategy


class CompatiblePaths:
    """Lazy, restartable sequence of paths compatible with a strategy.

    Example:
        >>> S_Z = CompatiblePaths.from_diagram(diagram, Z)
        >>> len(S_Z) == len(list(S_Z))
        True
    """

    def __init__(
        self,
        S: States,
        C: Sequence[int],
        Z: DecisionStrategy,
        fixed: Optional[FixedPath] = None,
    ) -> None:
        """Initialize the sequence.

        Args:
            S: State counts of all chance and decision nodes.
            C: Chance node indices.
            Z: Decision strategy filling the decision states.
            fixed: Chance node states held fixed.

        Raises:
            InvalidFixedState: If ``fixed`` refers to a non-chance node or an
                out-of-range state.
        """
        fixed = dict(fixed or {})
        chance = set(C)
        for k, state in fixed.items():
            if k not in chance:
                raise InvalidFixedState(k)
            if not 0 <= state < S[k]:
                raise InvalidFixedState(k, f"state {state} outside 0..{S[k] - 1}")
        self.S = tuple(S)
        self.C = tuple(sorted(C))
        self.Z = Z
        self.fixed = fixed
        # Decision nodes in index order, so observed decisions are filled first
        self._local = tuple(sorted(Z.Z_d, key=lambda Z_d: Z_d.d))

    @classmethod
    def from_diagram(
        cls,
        diagram: InfluenceDiagram,
        Z: DecisionStrategy,
        fixed: Optional[FixedPath] = None,
    ) -> "CompatiblePaths":
        return cls(diagram.S, diagram.indices(NodeRole.CHANCE), Z, fixed)

    def _chance_domains(self) -> Tuple:
        return tuple(
            (self.fixed[c],) if c in self.fixed else range(self.S[c])
            for c in self.C
        )

    def __iter__(self) -> Iterator[Path]:
        s = [0] * len(self.S)
        for s_C in product(*self._chance_domains()):
            for c, state in zip(self.C, s_C):
                s[c] = state
            for Z_d in self._local:
                s[Z_d.d] = Z_d(tuple(s[i] for i in Z_d.I_d))
            yield tuple(s)

    def __len__(self) -> int:
        n = 1
        for c in self.C:
            if c not in self.fixed:
                n *= self.S[c]
        return n

    def __repr__(self) -> str:
        return f"CompatiblePaths(S={self.S}, C={self.C}, fixed={self.fixed})"
