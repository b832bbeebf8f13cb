import logging
import threading
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from PushSum import Observer
from PushSum.Errors import (
    ConservationError,
    InitializationError,
    InvariantError,
    OverlayError,
    PhaseOrderError,
    PushSumError,
    RoundFailedError,
)
from PushSum.Node import Phase, Policy

__all__ = [
    "Coordinator",
    "ThreadedCoordinator",
    "RoundReport",
]

RoundReport = namedtuple("RoundReport", ["round", "max_delta", "mse", "lost_value", "lost_weight"])


class Coordinator:
    """
    Drives Push-Sum rounds over a fixed population.

    A round is a broadcast phase over every node followed by a commit phase
    over every node. No node commits before all nodes have broadcast.

    Args:
        nodes (list of Node): The population, ``nodes[i].id == i``.
        topology (Topology): Overlay answering ``neighbor_for(id, round)``.
        policy (Policy): What to do with the partner half when a node has no partner.
        check_invariants (bool): Check buffer quiescence and conservation every round.
        log_interval (int): Number of rounds between two progress log lines.
    """

    def __init__(self, nodes, topology, policy=Policy.LOSSY, check_invariants=True, log_interval=10):
        if not nodes:
            raise ValueError("need at least one node")
        if topology.num_workers != len(nodes):
            raise ValueError("topology has {} workers but there are {} nodes".format(topology.num_workers, len(nodes)))
        for idx, node in enumerate(nodes):
            if node.id != idx:
                raise ValueError("node at position {} has id {}".format(idx, node.id))
        self.nodes = nodes
        self.topology = topology
        self.policy = policy
        self.check_invariants = check_invariants
        self.log_interval = log_interval
        self.round = 0                  # completed rounds
        self.last_delta = None          # max estimate change in the last round
        self.lost_value = 0.0           # mass dropped by the lossy policy so far
        self.lost_weight = 0.0
        self.history = []
        self.total_value = None         # totals at initialization
        self.total_weight = None
        self.total_abs_value = None     # sum of |value| at initialization, scales the conservation check
        self.target = None
        self._previous = None

    def partner_for(self, node):
        partner_id = self.topology.neighbor_for(node.id, self.round)
        if partner_id is None:
            return None
        if partner_id == node.id:
            raise OverlayError("overlay chose node {} as its own partner".format(node.id))
        if not 0 <= partner_id < len(self.nodes):
            raise OverlayError("overlay chose unknown node {} for node {}".format(partner_id, node.id))
        return self.nodes[partner_id]

    def _prepare(self):
        if self.total_value is None:
            missing = [node.id for node in self.nodes if not node.initialized]
            if missing:
                raise InitializationError("nodes {} are not initialized".format(missing))
            self.total_value = float(np.sum([node.value for node in self.nodes]))
            self.total_weight = float(np.sum([node.weight for node in self.nodes]))
            self.total_abs_value = float(np.sum(np.abs([node.value for node in self.nodes])))
            self.target = Observer.target_mean(self.nodes)
            self._previous = Observer.estimates(self.nodes)
        if self.check_invariants:
            dirty = [node.id for node in self.nodes if node.value_buffer != 0 or node.weight_buffer != 0]
            if dirty:
                raise InvariantError("buffers of nodes {} are not empty before round {}".format(dirty, self.round + 1))

    def _account(self, shares):
        # only the self-share went out, the partner half is gone
        if len(shares) == 1:
            self.lost_value += shares[0].value
            self.lost_weight += shares[0].weight

    def abort_round(self):
        """Discards everything sent in the current round on every node."""
        for node in self.nodes:
            node.abort_round()

    def broadcast_phase(self):
        self._prepare()
        sent = []
        try:
            for node in self.nodes:
                partner = self.partner_for(node)
                shares = node.broadcast(partner, self.policy)
                for share in shares:
                    share.target.receive(share)
                sent.append(shares)
        except PushSumError:
            self.abort_round()
            raise
        for shares in sent:
            self._account(shares)

    def commit_phase(self):
        pending = [node.id for node in self.nodes if node.phase is not Phase.AWAITING_COMMIT]
        if pending:
            raise PhaseOrderError("nodes {} have not broadcast in round {}".format(pending, self.round + 1))
        for node in self.nodes:
            node.commit()

    def _run_round(self):
        self.broadcast_phase()
        self.commit_phase()

    def check_conservation(self, rtol=1e-9):
        """
        Compares the totals with the initial totals minus the dropped mass.

        The tolerance is relative to the magnitudes summed, not to the totals,
        so large values that cancel out do not trip the check.
        """
        values = np.array([node.value for node in self.nodes])
        weights = np.array([node.weight for node in self.nodes])
        value = float(values.sum())
        weight = float(weights.sum())
        expected_value = self.total_value - self.lost_value
        expected_weight = self.total_weight - self.lost_weight
        value_scale = max(float(np.abs(values).sum()), self.total_abs_value) + abs(self.lost_value)
        weight_scale = self.total_weight
        if abs(value - expected_value) > rtol * value_scale:
            raise ConservationError(
                "round {}: total value {!r}, expected {!r}".format(self.round, value, expected_value)
            )
        if abs(weight - expected_weight) > rtol * weight_scale:
            raise ConservationError(
                "round {}: total weight {!r}, expected {!r}".format(self.round, weight, expected_weight)
            )

    def step(self):
        """Runs one full round and returns its RoundReport."""
        self._run_round()
        self.round += 1
        if self.check_invariants:
            self.check_conservation()

        current = Observer.estimates(self.nodes)
        self.last_delta = float(np.max(np.abs(current - self._previous)))
        self._previous = current
        report = RoundReport(
            self.round,
            self.last_delta,
            Observer.mse(self.nodes, self.target),
            self.lost_value,
            self.lost_weight,
        )
        self.history.append(report)

        if self.log_interval and self.round % self.log_interval == 0:
            logging.info(
                "Round {}: max delta {:.3e}, MSE {:.3e}".format(report.round, report.max_delta, report.mse)
            )
        return report

    def run(self, rounds=None, tolerance=None, max_rounds=1000):
        """
        Runs ``rounds`` rounds, or until the largest estimate change of a round
        drops below ``tolerance`` (at most ``max_rounds`` rounds). With both
        set, whichever comes first stops the run.

        Any protocol error stops the run and is raised as is.
        """
        if rounds is None and tolerance is None:
            raise ValueError("either rounds or tolerance must be given")
        limit = rounds if rounds is not None else max_rounds
        reports = []
        try:
            for _ in range(limit):
                reports.append(self.step())
                if tolerance is not None and self.last_delta < tolerance:
                    logging.info("Converged after {} rounds (delta {:.3e})".format(self.round, self.last_delta))
                    break
        except PushSumError as e:
            logging.error("Run halted in round {}: {}".format(self.round + 1, e))
            raise
        return reports


class ThreadedCoordinator(Coordinator):
    """
    Runs every node of a round on its own thread.

    Partners are drawn up front, then each thread broadcasts and delivers its
    shares, waits on a barrier and commits. If any broadcast fails the barrier
    is broken, no node commits and all buffers of the round are discarded.

    Args:
        timeout (float): Seconds a thread waits on the phase barrier.
    """

    def __init__(self, nodes, topology, timeout=10.0, **kwargs):
        super().__init__(nodes, topology, **kwargs)
        self.timeout = timeout

    def _run_round(self):
        self._prepare()
        partners = [self.partner_for(node) for node in self.nodes]
        barrier = threading.Barrier(len(self.nodes), timeout=self.timeout)

        def work(node, partner):
            try:
                shares = node.broadcast(partner, self.policy)
                for share in shares:
                    share.target.receive(share)
            except Exception:
                barrier.abort()
                raise
            barrier.wait()
            node.commit()
            return shares

        with ThreadPoolExecutor(max_workers=len(self.nodes)) as executor:
            futures = [executor.submit(work, node, partner) for node, partner in zip(self.nodes, partners)]
            errors = [f.exception() for f in futures]

        if any(errors):
            self.abort_round()
            failed = [e for e in errors if e is not None]
            cause = next((e for e in failed if not isinstance(e, threading.BrokenBarrierError)), failed[0])
            raise RoundFailedError("round {} failed and was discarded".format(self.round + 1)) from cause

        for future in futures:
            self._account(future.result())
