"""Exception classes for decision programming.

All errors are raised synchronously while a model is built or a strategy is
extracted. They describe a malformed request and are never retried.
"""


class DecisionProgrammingError(ValueError):
    """A base exception for decision programming."""

    def __init__(self, message: str):
        """Initialize the exception with a message."""
        self.message = message
        super().__init__(self.message)


class InvalidFixedState(DecisionProgrammingError):
    """An error raised when a fixed state refers to a node that cannot be fixed."""

    def __init__(self, node: int, reason: str = "only chance node states can be fixed"):
        """Initialize the exception with a message.

        Args:
            node: Index of the offending node.
            reason: Why the node cannot be fixed.
        """
        self.node = node
        super().__init__(f"Invalid fixed state for node {node}: {reason}")


class InvalidScaleFactor(DecisionProgrammingError):
    """An error raised when the probability scale factor is not positive."""

    def __init__(self, scale: float):
        self.scale = scale
        super().__init__(f"probability_scale_factor must be positive, got {scale}")


class InvalidRiskLevel(DecisionProgrammingError):
    """An error raised when a risk level alpha is outside its admissible range."""

    def __init__(self, alpha: float, interval: str = "(0, 1]"):
        self.alpha = alpha
        super().__init__(f"alpha must be in {interval}, got {alpha}")


class UnknownNodeClass(DecisionProgrammingError):
    """An error raised when a node role tag is not chance, decision or value."""

    def __init__(self, tag: object):
        self.tag = tag
        super().__init__(f"Unknown node class: {tag!r}")


class MalformedStrategy(DecisionProgrammingError):
    """An error raised when a decision row does not select exactly one state."""

    def __init__(self, node: int, information_state: tuple, detail: str):
        """Initialize the exception with a message.

        Args:
            node: Decision node index.
            information_state: The offending information state row.
            detail: Description of the violation.
        """
        self.node = node
        self.information_state = information_state
        super().__init__(
            f"Malformed strategy at decision node {node}, "
            f"information state {information_state}: {detail}"
        )


class ActivePathsCutUnavailable(DecisionProgrammingError):
    """An error raised when the active paths cut is requested on a diagram with structural zeros."""

    def __init__(self):
        super().__init__(
            "Cannot use active paths cut: some chance node states have zero probability"
        )


class ExperimentalFeatureWarning(UserWarning):
    """Warning emitted when an experimental, not fully validated feature is used."""
