"""
Spectral Divider Module
=======================

Newman's spectral method: the community is split according to the signs of
the leading eigenvector of its (generalized) modularity matrix.

Theory:
-------
Writing s as a combination of the normalized eigenvectors u_i of B,

    Q = (1/4m) * sum_i (u_i^T s)^2 * beta_i

so Q is maximized by choosing s as parallel as possible to the eigenvector
of the largest eigenvalue beta_1: s_i = +1 if u_1i >= 0, -1 otherwise.
If beta_1 <= 0 there is no division with positive Q and the community is
indivisible.

The leading eigenpair is found with the power method. The power method
converges to the eigenvalue of largest magnitude; when that eigenvalue is
negative the method is run again on B + |beta| I, whose spectrum is
non-negative, and |beta| is subtracted from the result.

Reference: M. E. J. Newman, "Modularity and community structure in
networks", PNAS 103 (2006).

Author: Modularity Detection Team
"""

from typing import Callable, Optional, Tuple

import numpy as np

from .base import CommunityDivider


POWER_METHOD_EPS = 1e-5
POWER_METHOD_TOLERANCE = 1e-5
POWER_METHOD_MAX_ITERATIONS = 50000


def power_method(B: np.ndarray,
                 eps: float = POWER_METHOD_EPS,
                 tolerance: float = POWER_METHOD_TOLERANCE,
                 max_iterations: int = POWER_METHOD_MAX_ITERATIONS,
                 check_canceled: Optional[Callable[[], None]] = None) -> Tuple[float, np.ndarray]:
    """
    Eigenvalue of largest magnitude and its eigenvector.

    Parameters
    ----------
    B : np.ndarray
        Symmetric matrix.
    eps : float
        The iteration stops when the eigenvalue estimate falls below eps in
        magnitude.
    tolerance : float
        Convergence threshold on max|u_{t+1} - u_t|.
    max_iterations : int
        Maximum number of iterations.
    check_canceled : Callable, optional
        Called every 100 iterations; raises to stop the iteration.

    Returns
    -------
    Tuple[float, np.ndarray]
        (eigenvalue, eigenvector scaled so that its largest entry is 1)
    """
    n = B.shape[0]
    u = 1.0 / np.sqrt(np.arange(1, n + 1, dtype=np.float64))
    beta = 0.0
    phi = 0.0

    for iteration in range(max_iterations):
        if check_canceled is not None and iteration % 100 == 0:
            check_canceled()

        y = B @ u
        beta = float(y[np.argmax(np.abs(y))])
        if abs(beta) < eps:
            break
        y /= beta
        phi = float(np.max(np.abs(y - u)))
        u = y
        if phi < tolerance:
            break

    # the estimate oscillates between +u and -u for a negative eigenvalue
    if phi > 1:
        beta = -beta

    return beta, u


def leading_eigenpair(B: np.ndarray,
                      check_canceled: Optional[Callable[[], None]] = None) -> Tuple[float, np.ndarray]:
    """Largest (most positive) eigenvalue of B and its eigenvector."""
    beta, u = power_method(B, check_canceled=check_canceled)
    if beta < 0:
        shift = abs(beta)
        beta, u = power_method(B + shift * np.eye(B.shape[0]), check_canceled=check_canceled)
        beta -= shift
    return beta, u


class NewmanSpectralDivider(CommunityDivider):
    """Split a community with the signs of the leading eigenvector of B."""

    identifier = 'Newman'
    name = "Newman's spectral algorithm"
    description = (
        "Computes the leading eigenvector of the modularity matrix B using the "
        "power method and splits the community according to the signs of its "
        "elements.")

    def divide(self, detector) -> None:
        beta, u = leading_eigenpair(detector.current_B, check_canceled=detector.check_canceled)

        if beta <= 0:
            # indivisible: every node stays in the same group
            detector.current_s = np.ones(detector.current_size)
            detector.current_q = 0.0
        else:
            detector.current_s = np.where(u < 0, -1.0, 1.0)

        detector.take_snapshot(self.identifier)
