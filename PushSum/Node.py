import copy
import math
import threading
from collections import namedtuple
from enum import Enum

from PushSum.Errors import InitializationError, OverlayError, PhaseOrderError, WeightCollapseError

__all__ = [
    "Node",
    "Phase",
    "Policy",
    "Share",
]

# a (value, weight) pair sent from source to target during one round
Share = namedtuple("Share", ["source", "target", "round", "value", "weight"])


class Phase(Enum):
    AWAITING_BROADCAST = "awaiting_broadcast"
    AWAITING_COMMIT = "awaiting_commit"


class Policy(Enum):
    """What a node does with the partner half when it has no partner.

    LOSSY drops it, so total mass shrinks for that round.
    CONSERVING sends it back to the node itself.
    """
    LOSSY = "lossy"
    CONSERVING = "conserving"


class Node:
    def __init__(self, id: int):
        self.id = id                    # node id, index into the overlay
        self.true_value = None          # original observation, never changed
        self.value = None               # committed value
        self.weight = None              # committed weight
        self.initial_weight = None      # weight given at initialization, never changed
        self.value_buffer = 0.0         # values received this round
        self.weight_buffer = 0.0        # weights received this round
        self.phase = Phase.AWAITING_BROADCAST
        self.round = 0                  # number of committed rounds
        self._lock = threading.Lock()   # guards the buffers

    @property
    def initialized(self):
        return self.value is not None and self.weight is not None

    # sets the observation of this node, once, before the first round
    def initialize_value(self, value: float):
        self._check_initializable("value", self.value)
        value = float(value)
        if not math.isfinite(value):
            raise InitializationError("Node {}: value must be finite, got {}".format(self.id, value))
        self.true_value = value
        self.value = value

    # sets the weight of this node, once, before the first round
    def initialize_weight(self, weight: float = 1.0):
        self._check_initializable("weight", self.weight)
        weight = float(weight)
        if not math.isfinite(weight) or weight <= 0:
            raise InitializationError("Node {}: weight must be positive, got {}".format(self.id, weight))
        self.weight = weight
        self.initial_weight = weight

    def _check_initializable(self, name, current):
        if current is not None:
            raise InitializationError("Node {}: {} already initialized".format(self.id, name))
        if self.round > 0 or self.phase is not Phase.AWAITING_BROADCAST:
            raise InitializationError("Node {}: cannot set {} after rounds have started".format(self.id, name))

    def broadcast(self, partner=None, policy=Policy.LOSSY):
        """
        Splits the committed state in two halves: one share addressed to this
        node, one to ``partner``.

        Nothing is written here; the returned shares have to be delivered to
        their targets with :meth:`receive`. Without a partner the second half
        is dropped (``Policy.LOSSY``) or addressed to this node as well
        (``Policy.CONSERVING``).

        Returns:
            list of Share
        """
        if not self.initialized:
            raise InitializationError("Node {}: broadcast before value and weight were initialized".format(self.id))
        if self.phase is not Phase.AWAITING_BROADCAST:
            raise PhaseOrderError("Node {}: already broadcast in round {}".format(self.id, self.round))
        if partner is self:
            raise OverlayError("Node {}: cannot gossip with itself".format(self.id))

        half = self.value / 2
        half_weight = self.weight / 2
        shares = [Share(self, self, self.round, half, half_weight)]
        if partner is not None:
            shares.append(Share(self, partner, self.round, half, half_weight))
        elif policy is Policy.CONSERVING:
            shares.append(Share(self, self, self.round, half, half_weight))

        self.phase = Phase.AWAITING_COMMIT
        return shares

    # adds an incoming share to the buffers, safe to call from several threads
    def receive(self, share: Share):
        if share.target is not self:
            raise OverlayError("Node {}: received a share addressed to node {}".format(self.id, share.target.id))
        with self._lock:
            if share.round != self.round:
                raise PhaseOrderError(
                    "Node {}: share from node {} for round {} arrived in round {}".format(
                        self.id, share.source.id, share.round, self.round
                    )
                )
            self.value_buffer += share.value
            self.weight_buffer += share.weight

    # replaces the committed state with the received shares
    def commit(self):
        if self.phase is not Phase.AWAITING_COMMIT:
            raise PhaseOrderError("Node {}: commit without broadcast in round {}".format(self.id, self.round))
        with self._lock:
            self.value = self.value_buffer
            self.weight = self.weight_buffer
            self.value_buffer = 0.0
            self.weight_buffer = 0.0
            self.round += 1
        self.phase = Phase.AWAITING_BROADCAST

    # throws away everything received this round
    def abort_round(self):
        with self._lock:
            self.value_buffer = 0.0
            self.weight_buffer = 0.0
        self.phase = Phase.AWAITING_BROADCAST

    def estimate(self):
        """Local estimate of the network mean, ``value / weight``."""
        if not self.initialized:
            raise InitializationError("Node {}: estimate before initialization".format(self.id))
        if self.weight == 0:
            raise WeightCollapseError("Node {}: weight collapsed to zero after round {}".format(self.id, self.round))
        estimate = self.value / self.weight
        if not math.isfinite(estimate):
            raise WeightCollapseError("Node {}: estimate {} is not finite".format(self.id, estimate))
        return estimate

    def get_true_value(self):
        return self.true_value

    def copy(self):
        clone = copy.copy(self)
        clone._lock = threading.Lock()
        return clone

    def __str__(self):
        return "({:e}, {:e})".format(self.value or 0.0, self.weight or 0.0)

    def __repr__(self):
        return "Node({}, {})".format(self.id, self)
