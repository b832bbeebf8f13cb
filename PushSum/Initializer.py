import numpy as np

__all__ = [
    "initialize",
    "ListInitializer",
    "ConstantInitializer",
    "UniformInitializer",
    "LinearInitializer",
    "PeakInitializer",
]


def initialize(nodes, values, weights=None):
    """
    Sets value and weight of every node exactly once, before round 1.

    Args:
        nodes (list of Node): The population.
        values (sequence of float): One observation per node.
        weights (sequence of float): One positive weight per node. Default is 1 for all nodes.
    """
    values = np.asarray(values, dtype=np.float64)
    if weights is None:
        weights = np.ones(len(nodes))
    weights = np.asarray(weights, dtype=np.float64)
    if len(values) != len(nodes) or len(weights) != len(nodes):
        raise ValueError(
            "expected {} values and weights, got {} and {}".format(len(nodes), len(values), len(weights))
        )
    for node, value, weight in zip(nodes, values, weights):
        node.initialize_value(value)
        node.initialize_weight(weight)
    return nodes


class Initializer:
    def values(self, n):
        raise NotImplementedError

    def apply(self, nodes, weights=None):
        return initialize(nodes, self.values(len(nodes)), weights)


class ListInitializer(Initializer):
    def __init__(self, values):
        self._values = list(values)

    def values(self, n):
        if n != len(self._values):
            raise ValueError("have {} values for {} nodes".format(len(self._values), n))
        return np.array(self._values, dtype=np.float64)


class ConstantInitializer(Initializer):
    def __init__(self, value):
        self.value = value

    def values(self, n):
        return np.full(n, self.value, dtype=np.float64)


class UniformInitializer(Initializer):
    # i.i.d. observations drawn from [low, high)
    def __init__(self, low=0.0, high=1.0, seed=None):
        self.low = low
        self.high = high
        self.random_state = np.random.default_rng(seed)

    def values(self, n):
        return self.random_state.uniform(self.low, self.high, size=n)


class LinearInitializer(Initializer):
    # evenly spaced from low to high, both included
    def __init__(self, low=0.0, high=1.0):
        self.low = low
        self.high = high

    def values(self, n):
        return np.linspace(self.low, self.high, n)


class PeakInitializer(Initializer):
    """All the mass on a single node, zero everywhere else."""

    def __init__(self, peak, index=0):
        self.peak = peak
        self.index = index

    def values(self, n):
        if not 0 <= self.index < n:
            raise ValueError("peak index {} out of range for {} nodes".format(self.index, n))
        values = np.zeros(n)
        values[self.index] = self.peak
        return values
