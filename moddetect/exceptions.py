"""
Exceptions Module
=================

Error taxonomy of the modularity detection engine.

- ConfigurationError: invalid divider option, community too large for a
  solver, invalid probability or file format. Raised immediately, never
  retried.
- DetectionCanceled: cooperative cancellation. Propagates unchanged so that
  callers can tell "canceled" from "failed".
- InsufficientMemoryError: the dense modularity matrix could not be
  allocated.
- DetectionError: failure inside a divider or an inconsistent community tree.

Numerical degeneracy (non-positive leading eigenvalue, dQ below threshold,
all nodes on one side) is NOT an error: it is the normal way a branch of the
community tree stops.

Author: Modularity Detection Team
"""


CANCEL_MESSAGE = "Module detection canceled."

INSUFFICIENT_MEMORY_MESSAGE = (
    "There is not enough memory available to build the modularity matrix "
    "of {num_nodes} nodes ({num_bytes:,} bytes requested).\n"
    "Close other programs and try again, or run the detection on a smaller network."
)


class ModDetectError(Exception):
    """Base class for all errors raised by moddetect."""


class ConfigurationError(ModDetectError, ValueError):
    """Invalid settings, divider options or solver limits."""


class DetectionCanceled(ModDetectError):
    """Raised when a detection is stopped through its cancellation flag."""

    def __init__(self, message: str = CANCEL_MESSAGE):
        super().__init__(message)


class InsufficientMemoryError(ModDetectError, MemoryError):
    """Raised when the modularity matrix does not fit in memory."""

    def __init__(self, num_nodes: int):
        self.num_nodes = num_nodes
        num_bytes = 8 * num_nodes * num_nodes
        super().__init__(INSUFFICIENT_MEMORY_MESSAGE.format(
            num_nodes=num_nodes, num_bytes=num_bytes))


class DetectionError(ModDetectError):
    """A divider failed or the community tree is inconsistent."""
