import numpy as np
import pytest

from PushSum import Observer
from PushSum.Errors import InitializationError
from PushSum.Initializer import (
    ConstantInitializer,
    LinearInitializer,
    ListInitializer,
    PeakInitializer,
    UniformInitializer,
    initialize,
)
from PushSum.Node import Node


def fresh(n):
    return [Node(i) for i in range(n)]


def test_initialize_defaults_to_unit_weight():
    nodes = initialize(fresh(3), [1.0, 2.0, 3.0])
    assert [n.weight for n in nodes] == [1.0, 1.0, 1.0]
    assert Observer.true_values(nodes).tolist() == [1.0, 2.0, 3.0]


def test_initialize_checks_lengths():
    with pytest.raises(ValueError):
        initialize(fresh(3), [1.0, 2.0])


def test_initialize_only_once():
    nodes = initialize(fresh(2), [1.0, 2.0])
    with pytest.raises(InitializationError):
        initialize(nodes, [1.0, 2.0])


def test_distributions():
    assert ConstantInitializer(2.5).values(3).tolist() == [2.5, 2.5, 2.5]
    assert LinearInitializer(0.0, 1.0).values(3).tolist() == [0.0, 0.5, 1.0]
    assert PeakInitializer(8.0, index=3).values(4).tolist() == [0.0, 0.0, 0.0, 8.0]
    values = UniformInitializer(2.0, 3.0, seed=0).values(50)
    assert np.all((values >= 2.0) & (values < 3.0))
    assert np.array_equal(values, UniformInitializer(2.0, 3.0, seed=0).values(50))
    with pytest.raises(ValueError):
        ListInitializer([1.0]).values(2)
    with pytest.raises(ValueError):
        PeakInitializer(1.0, index=5).values(2)


def test_apply_with_weights():
    nodes = PeakInitializer(6.0).apply(fresh(3), weights=[1.0, 2.0, 3.0])
    assert Observer.target_mean(nodes, 6.0) == 1.0
    assert Observer.estimates(nodes).tolist() == [6.0, 0.0, 0.0]


def test_statistics():
    nodes = ListInitializer([1.0, 3.0]).apply(fresh(2))
    assert Observer.target_mean(nodes) == 2.0
    assert Observer.mse(nodes, 2.0) == 1.0
    assert Observer.max_error(nodes, 2.0) == 1.0
    assert Observer.summary(nodes) == {"min": 1.0, "max": 3.0, "mean": 2.0, "var": 1.0}


def test_reads_do_not_mutate():
    nodes = ListInitializer([4.0, 0.0]).apply(fresh(2))
    before = [(n.value, n.weight, n.value_buffer, n.weight_buffer) for n in nodes]
    Observer.estimates(nodes)
    Observer.summary(nodes)
    Observer.describe(nodes)
    assert [(n.value, n.weight, n.value_buffer, n.weight_buffer) for n in nodes] == before


def test_describe():
    nodes = ListInitializer([0.5]).apply(fresh(1))
    assert Observer.describe(nodes) == ["0: (5.000000e-01, 1.000000e+00)"]


def test_target_mean_uses_initial_weights():
    nodes = ListInitializer([2.0, 6.0]).apply(fresh(2), weights=[1.0, 3.0])
    assert Observer.target_mean(nodes) == 2.0
    assert [n.initial_weight for n in nodes] == [1.0, 3.0]
