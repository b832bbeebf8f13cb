import pytest

import simulate
from PushSum.Node import Policy


def test_main_with_explicit_values():
    coordinator = simulate.main(["--values", "0", "0", "0", "8", "--rounds", "50", "--seed", "1"])
    assert coordinator.round == 50
    for node in coordinator.nodes:
        assert abs(node.estimate() - 2.0) < 1e-6


def test_main_runs_to_tolerance_threaded():
    coordinator = simulate.main([
        "--num-workers", "8",
        "--distribution", "linear",
        "--topology", "ring",
        "--tolerance", "1e-6",
        "--threaded",
        "--set-deterministic",
    ])
    assert coordinator.last_delta < 1e-6
    assert coordinator.target == pytest.approx(0.5)


def test_main_conserving_policy_on_isolated_nodes():
    coordinator = simulate.main([
        "--num-workers", "3",
        "--distribution", "constant",
        "--topology", "isolated",
        "--policy", "conserving",
        "--rounds", "5",
    ])
    assert coordinator.policy is Policy.CONSERVING
    assert [n.value for n in coordinator.nodes] == [1.0, 1.0, 1.0]


def test_main_requires_a_stop_condition():
    with pytest.raises(SystemExit):
        simulate.main(["--num-workers", "3"])


def test_plot(tmp_path):
    path = tmp_path / "mse.png"
    simulate.main(["--num-workers", "5", "--rounds", "10", "--seed", "2", "--plot", str(path)])
    assert path.exists()
