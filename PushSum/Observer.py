"""
Read-only views of a population between rounds.

Nothing here mutates a node; call these only after a round has committed.
"""
import logging

import numpy as np
from sklearn.metrics import mean_squared_error

__all__ = [
    "estimates",
    "true_values",
    "target_mean",
    "mse",
    "max_error",
    "summary",
    "describe",
]


def estimates(nodes):
    return np.array([node.estimate() for node in nodes], dtype=np.float64)


def true_values(nodes):
    return np.array([node.get_true_value() for node in nodes], dtype=np.float64)


def target_mean(nodes, total_weight=None):
    """
    The value every estimate converges to: total value over total weight.

    ``total_weight`` defaults to the sum of the weights the nodes were
    initialized with. With uniform unit weights this is the plain mean of the
    true values.
    """
    values = true_values(nodes)
    if total_weight is None:
        total_weight = float(np.sum([node.initial_weight for node in nodes]))
    return values.sum() / total_weight


def mse(nodes, target):
    current = estimates(nodes)
    return mean_squared_error(current, np.full(len(current), target))


def max_error(nodes, target):
    return float(np.max(np.abs(estimates(nodes) - target)))


def summary(nodes):
    current = estimates(nodes)
    return {
        "min": float(current.min()),
        "max": float(current.max()),
        "mean": float(current.mean()),
        "var": float(current.var()),
    }


def describe(nodes):
    lines = ["{}: {}".format(node.id, node) for node in nodes]
    for line in lines:
        logging.debug(line)
    return lines
