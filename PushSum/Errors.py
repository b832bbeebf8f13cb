__all__ = [
    "PushSumError",
    "InitializationError",
    "PhaseOrderError",
    "WeightCollapseError",
    "InvariantError",
    "ConservationError",
    "OverlayError",
    "RoundFailedError",
]


class PushSumError(RuntimeError):
    pass


class InitializationError(PushSumError):
    """A node was used before (or re-)initialization of its value or weight."""


class PhaseOrderError(PushSumError):
    """Broadcast and commit were interleaved out of order."""


class WeightCollapseError(PushSumError):
    """The weight of a node reached zero, so its estimate is undefined."""


class InvariantError(PushSumError):
    pass


class ConservationError(InvariantError):
    """Total value or total weight changed across a round."""


class OverlayError(PushSumError):
    pass


class RoundFailedError(PushSumError):
    """A concurrent round did not complete for every node and was discarded."""
