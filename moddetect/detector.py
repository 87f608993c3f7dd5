"""
Modularity Detector Module
==========================

This module owns the modularity matrix of a network and every modularity
computation of the detection engine.

Theory:
-------
Newman (2006) writes the modularity of a division of the network in two
groups, encoded by a split vector s with s_i = +1 or -1, as

    Q = (1/4m) * s^T B s,    B_ij = A_ij*w_ij - k_i*k_j/(2m)

When a community g that is already the result of earlier splits is divided
further, the change of modularity is given by the same quadratic form over
the *generalized* modularity matrix of g:

    B(g)_ij = B_ij - delta_ij * sum_{k in g} B_ik

so that dQ = (1/4m) * s^T B(g) s. The first division of the network returns
Q itself, every later division returns dQ.

Refinement:
-----------
1. Moving vertex method (MVM): steepest ascent over single node moves
   between the two groups of a split. The gain of moving node i is computed
   in O(k) from row i of B(g):

       Q' = Q - (s_i * sum_j B(g)_ij s_j - B(g)_ii) / m

2. Global moving vertex method (gMVM): once the whole tree is built, each
   node may move to any other indivisible community. The gain of a move only
   depends on the row sums of B over the old and new communities.

Cancellation:
-------------
Every public operation first checks a cooperative cancellation flag and
raises `DetectionCanceled` when it is set.

Author: Modularity Detection Team
"""

import threading
import warnings
from typing import Optional, Sequence

import numpy as np

from .exceptions import (
    ConfigurationError,
    DetectionCanceled,
    DetectionError,
    InsufficientMemoryError,
    ModDetectError,
)
from .network import ModularityNetwork
from .settings import DetectionSettings


# Smallest modularity improvement considered as an improvement
MIN_IMPROVEMENT = 1e-12


def compute_q(s: np.ndarray, B: np.ndarray, m: int) -> float:
    """
    Quadratic form s^T B s / (4m).

    The diagonal is weighted by 0.5 and only one triangle of B is used in the
    written formula, which is why the division is by 2m:

        (0.5 * sum_i B_ii s_i^2 + sum_{i>j} B_ij s_i s_j) / (2m)

    Returns Q when B is the modularity matrix of the whole network and dQ
    when B is a generalized modularity matrix.
    """
    return float(s @ B @ s) / (4.0 * m)


def compute_q_batch(S: np.ndarray, B: np.ndarray, m: int) -> np.ndarray:
    """
    Evaluate `compute_q` for every row of S (one split vector per row).

    Pure function of its inputs, safe to call from worker threads.
    """
    return np.einsum('ij,ij->i', S @ B, S) / (4.0 * m)


class ModularityDetector:
    """
    Modularity computations shared by the community tree and the dividers.

    Parameters
    ----------
    network : ModularityNetwork
        The network whose modularity is maximized.
    divider : CommunityDivider, optional
        Prototype of the divider. A fresh copy is used for every division.
        Defaults to the divider named in `settings`.
    settings : DetectionSettings, optional
        Refinement options (MVM, gMVM) and verbosity.
    snapshot : SnapshotRecorder, optional
        Receives the progress of the detection.

    Attributes
    ----------
    B : np.ndarray
        Modularity matrix of the whole network (read-only after creation).
    current_size : int
        Size of the community being divided.
    current_indexes : np.ndarray
        Global indexes of the nodes of the community being divided.
    current_B : np.ndarray
        Modularity matrix (root) or generalized modularity matrix of the
        community being divided.
    current_s : np.ndarray
        Split vector of the community being divided.
    current_q : float
        Q (first division) or dQ of `current_s`.
    current_community : Community
        Community being divided.
    modularity : float
        Modularity Q of the network for the divisions accepted so far.
    num_evaluations : int
        Number of modularity evaluations performed so far.
    contribution_global_mvm : float
        Modularity gained by gMVM.
    """

    def __init__(self, network: ModularityNetwork, divider=None,
                 settings: Optional[DetectionSettings] = None, snapshot=None):
        self.settings = settings or DetectionSettings()
        if divider is None:
            # imported here: the dividers import this module
            from .dividers import create_divider
            divider = create_divider(self.settings.divider, self.settings.divider_options)
        self.divider = divider
        self.snapshot = snapshot

        self.network = network
        self.network_size = network.size
        self.m = network.m
        if self.network_size == 0:
            raise ConfigurationError(f"Network '{network.name}' has no nodes.")
        if self.m == 0:
            raise ConfigurationError(
                f"Network '{network.name}' has no edges: its modularity is undefined.")

        self.modularity = 0.0
        self.num_evaluations = 0
        self.contribution_global_mvm = 0.0

        self.current_size = 0
        self.current_indexes = None
        self.current_B = None
        self.current_s = None
        self.current_q = 0.0
        self.current_community = None

        self._canceled = threading.Event()

        self.B = None
        self.compute_modularity_matrix()

    # ------------------------------------------------------------------
    # CANCELLATION
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Ask the detection to stop. Callable from any thread."""
        self._canceled.set()

    @property
    def is_canceled(self) -> bool:
        return self._canceled.is_set()

    def check_canceled(self) -> None:
        if self._canceled.is_set():
            raise DetectionCanceled()

    # ------------------------------------------------------------------
    # MODULARITY MATRICES
    # ------------------------------------------------------------------

    def compute_modularity_matrix(self) -> None:
        """Build the modularity matrix B of the whole network."""
        self.check_canceled()
        k = self.network.k.astype(np.float64)
        try:
            self.B = self.network.weighted_adjacency() - np.outer(k, k) / (2.0 * self.m)
        except MemoryError as e:
            raise InsufficientMemoryError(self.network_size) from e
        self.B.setflags(write=False)
        self.reset()

    def reset(self) -> None:
        """Position the detector on the whole network and zero Q and the counters."""
        self.modularity = 0.0
        self.num_evaluations = 0
        self.contribution_global_mvm = 0.0

        self.current_B = self.B
        self.current_size = self.network_size
        self.current_indexes = np.arange(self.network_size)
        self.current_s = None
        self.current_q = 0.0
        self.current_community = None

    def compute_generalized_matrix(self, vertex_indexes: Sequence[int]) -> None:
        """Build the generalized modularity matrix of the given nodes."""
        self.check_canceled()
        idx = np.asarray(vertex_indexes, dtype=np.int64)
        try:
            Bg = self.B[np.ix_(idx, idx)]
        except MemoryError as e:
            raise InsufficientMemoryError(len(idx)) from e
        np.fill_diagonal(Bg, np.diag(Bg) - Bg.sum(axis=1))

        self.current_B = Bg
        self.current_size = len(idx)
        self.current_indexes = idx

    # ------------------------------------------------------------------
    # MODULARITY
    # ------------------------------------------------------------------

    def is_first_division(self) -> bool:
        """True when the current community is the whole network."""
        return self.current_size == self.network_size

    def compute_modularity(self, s: Optional[np.ndarray] = None) -> float:
        """
        Q (first division) or dQ of a split vector of the current community.

        Parameters
        ----------
        s : np.ndarray, optional
            Split vector; defaults to `current_s`.
        """
        self.check_canceled()
        if s is None:
            s = self.current_s
        B = self.B if self.is_first_division() else self.current_B
        self.num_evaluations += 1
        return compute_q(np.asarray(s, dtype=np.float64), B, self.m)

    def compute_modularity_batch(self, S: np.ndarray) -> np.ndarray:
        """Vectorized `compute_modularity` over the rows of S."""
        self.check_canceled()
        B = self.B if self.is_first_division() else self.current_B
        self.num_evaluations += len(S)
        return compute_q_batch(np.asarray(S, dtype=np.float64), B, self.m)

    def multiple_communities_compute_q(self, assignment: np.ndarray) -> float:
        """
        Modularity of a division of the whole network into several
        communities (assignment[i] = community of node i).
        """
        self.check_canceled()
        assignment = np.asarray(assignment)
        same = assignment[:, None] == assignment[None, :]
        return float((self.B * same).sum()) / (2.0 * self.m)

    # ------------------------------------------------------------------
    # MOVING VERTEX METHOD
    # ------------------------------------------------------------------

    def compute_moving_vertex_q(self, moved_vertex: int) -> float:
        """Q (or dQ) obtained by moving a single node to the other group."""
        self.check_canceled()
        self.num_evaluations += 1
        s = self.current_s
        total = float(self.current_B[:, moved_vertex] @ s) * s[moved_vertex]
        total -= self.current_B[moved_vertex, moved_vertex]
        return self.current_q - total / self.m

    def _moving_vertex_candidates(self) -> np.ndarray:
        """`compute_moving_vertex_q` for every node of the current community."""
        self.check_canceled()
        self.num_evaluations += self.current_size
        s = self.current_s
        totals = s * (self.current_B @ s) - np.diag(self.current_B)
        return self.current_q - totals / self.m

    def moving_vertex_method(self) -> None:
        """
        Refine `current_s` with the moving vertex method (steepest ascent).

        Each pass evaluates the move of every node and applies only the best
        one; passes are repeated until no move improves Q by more than
        MIN_IMPROVEMENT.
        """
        self.check_canceled()
        current_delta_q = self.current_q

        change = True
        while change:
            change = False
            index = 0
            for i, temp_delta_q in enumerate(self._moving_vertex_candidates().tolist()):
                if temp_delta_q - current_delta_q > MIN_IMPROVEMENT:
                    current_delta_q = temp_delta_q
                    index = i
                    change = True

            if change:
                self.current_s[index] = -self.current_s[index]
                self.current_q = current_delta_q
                self.take_snapshot('MVM')

    def global_moving_vertex_method(self, assignment: Sequence[int], num_communities: int) -> None:
        """
        Refine a division of the whole network into `num_communities`
        communities with the global moving vertex method.

        Parameters
        ----------
        assignment : Sequence[int]
            Community (0 .. num_communities-1) of every node of the network.
        num_communities : int
            Number of communities.

        Notes
        -----
        Communities are moved node by node without looking at the community
        tree, so a node may end up in a community that does not descend from
        its original ancestors, and a community may become empty.
        """
        self.check_canceled()
        s = np.array(assignment, dtype=np.int64)
        if len(s) != self.network_size:
            raise DetectionError("gMVM requires one community per node of the network.")
        if (s < 0).any() or (s >= num_communities).any():
            raise DetectionError("gMVM assignment contains an invalid community index.")

        B = self.B
        self.current_s = s
        self.current_size = len(s)
        self.current_q = self.multiple_communities_compute_q(s)
        init_q = self.current_q
        new_q = self.current_q

        while True:
            change_index = -1
            change_community = -1

            for i in range(self.current_size):
                self.check_canceled()
                old_community = s[i]
                sums = np.bincount(s, weights=B[i], minlength=num_communities)
                row_sum_i = sums[old_community] - B[i, i]

                for k in range(num_communities):
                    if k == old_community:
                        continue
                    self.num_evaluations += 1
                    tmp_new_q = self.current_q + (sums[k] - row_sum_i) / self.m
                    if tmp_new_q > new_q:
                        new_q = tmp_new_q
                        change_index = i
                        change_community = k

            if change_index < 0:
                break

            s[change_index] = change_community
            self.current_q = new_q
            self.take_global_move_snapshot(change_index, change_community)

        self.modularity = new_q
        self.contribution_global_mvm = new_q - init_q

    # ------------------------------------------------------------------
    # DIVISION
    # ------------------------------------------------------------------

    def all_vertices_in_same_community(self) -> bool:
        return self.current_size == 0 or bool((self.current_s > 0).all())

    def divide(self) -> None:
        """Find the split vector of the current community that maximizes Q."""
        self.check_canceled()
        self.current_s = np.ones(self.current_size)

        divider = self.divider.copy()
        name = self.current_community.name if self.current_community is not None else ''
        if self.settings.verbose:
            print(f"Dividing community {name} ({self.current_size} nodes) using {divider.name}")

        try:
            divider.divide(self)
        except (ModDetectError, MemoryError):
            raise
        except Exception as e:
            raise DetectionError(
                f"{divider.identifier} failed to divide community {name} "
                f"of network '{self.network.name}': {e}") from e

        self.current_q = self.compute_modularity()
        if self.settings.use_moving_vertex:
            self.moving_vertex_method()

    def subdivision_in_two_communities(self, community) -> bool:
        """
        Divide a community in two and update the modularity.

        Returns
        -------
        bool
            False when the community is indivisible.
        """
        self.check_canceled()
        self.current_community = community
        self.divide()

        if self.current_q < MIN_IMPROVEMENT:
            return False
        if self.all_vertices_in_same_community():
            return False

        if self.is_first_division():
            self.modularity = self.current_q
        else:
            self.modularity += self.current_q
        return True

    # ------------------------------------------------------------------
    # SNAPSHOTS
    # ------------------------------------------------------------------

    def take_snapshot(self, label: str) -> None:
        """Record the current split vector. Never interrupts the detection."""
        if self.snapshot is None:
            return
        try:
            self.snapshot.take_snapshot(self, label)
        except Exception as e:
            if self.settings.verbose:
                warnings.warn(f"Unable to take modularity detection snapshot: {e}")

    def take_global_move_snapshot(self, node_index: int, new_community: int) -> None:
        if self.snapshot is None:
            return
        try:
            self.snapshot.take_global_move_snapshot(self, 'gMVM', node_index, new_community)
        except Exception as e:
            if self.settings.verbose:
                warnings.warn(f"Unable to take modularity detection snapshot: {e}")
