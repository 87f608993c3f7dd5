"""
Brute Force Divider Module
==========================

Exhaustive search of the split vector s that maximizes Q.

Since Q(s) = Q(-s), only 2^(N-1) of the 2^N split vectors of a community of
N nodes need to be evaluated. Candidate i (0 <= i < 2^(N-1)) is

    s_j = +1 if bit j of (2^(N-1) * j + i) is set, -1 otherwise

The candidates are evaluated in batches of workers, each worker scanning a
contiguous range of candidates and returning its best (Q, index). Workers
run on a thread pool and share nothing but the read-only matrix B; the
calling thread merges the results in submission order and keeps a result
only when it is strictly better, so the earliest candidate wins ties.

The candidate index is held in a signed 64-bit integer, hence the limit of
58 nodes.

Author: Modularity Detection Team
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Tuple

import numpy as np

from ..detector import compute_q_batch
from ..exceptions import ConfigurationError
from .base import CommunityDivider, NUM_PROC_OPTION, available_processors


BRUTEFORCE_MAX_COMMUNITY_SIZE = 58
NUM_WORKERS_PER_BATCH = 1000
NUM_EVALUATIONS_PER_WORKER = 1000


def generate_split_vectors(N: int, num_evals: int, start: int, stop: int) -> np.ndarray:
    """
    Split vectors of candidates start..stop-1, one per row (+1/-1 values).
    """
    i = np.arange(start, stop, dtype=np.int64)[:, None]
    j = np.arange(N, dtype=np.int64)[None, :]
    bits = ((np.int64(num_evals) * j + i) >> j) & 1
    return np.where(bits == 1, 1.0, -1.0)


def exhaustive_search(evaluate_range: Callable[[int, int], Tuple[float, int]],
                      num_evals: int,
                      num_proc: int,
                      workers_per_batch: int = NUM_WORKERS_PER_BATCH,
                      evals_per_worker: int = NUM_EVALUATIONS_PER_WORKER,
                      check_canceled: Optional[Callable[[], None]] = None,
                      on_improvement: Optional[Callable[[float, int], None]] = None) -> Tuple[float, int]:
    """
    Run `evaluate_range(start, stop)` over 0..num_evals-1 on a thread pool.

    Parameters
    ----------
    evaluate_range : Callable[[int, int], Tuple[float, int]]
        Returns the best (Q, candidate index) of a range of candidates.
        Called from worker threads.
    num_evals : int
        Number of candidates.
    num_proc : int
        Number of worker threads.
    workers_per_batch, evals_per_worker : int
        A batch submits at most `workers_per_batch` ranges of
        `evals_per_worker` candidates and waits for all of them.
    check_canceled : Callable, optional
        Called before every batch.
    on_improvement : Callable[[float, int], None], optional
        Called from the calling thread whenever the best result improves.

    Returns
    -------
    Tuple[float, int]
        Best (Q, candidate index); Q starts at -1.
    """
    best_q = -1.0
    best_index = 0
    counter = 0

    with ThreadPoolExecutor(max_workers=max(1, num_proc)) as executor:
        while counter < num_evals:
            if check_canceled is not None:
                check_canceled()

            futures = []
            for _ in range(workers_per_batch):
                if counter >= num_evals:
                    break
                stop = min(counter + evals_per_worker, num_evals)
                futures.append(executor.submit(evaluate_range, counter, stop))
                counter = stop

            for future in futures:
                q, index = future.result()
                if q > best_q:
                    best_q = q
                    best_index = index
                    if on_improvement is not None:
                        on_improvement(best_q, best_index)

    return best_q, best_index


def best_in_range(Q: np.ndarray, start: int) -> Tuple[float, int]:
    """Best (Q, index) of a batch of values, earliest index on ties, -1 floor."""
    k = int(np.argmax(Q))
    if Q[k] > -1.0:
        return float(Q[k]), start + k
    return -1.0, start


class BruteForceDivider(CommunityDivider):
    """Evaluate every split vector of the community (N <= 58)."""

    identifier = 'BF'
    name = 'Brute force (BF)'
    description = (
        "Evaluates the modularity of all the 2^(N-1) ways of splitting a "
        "community of N nodes in two groups and keeps the best one. Only "
        "applicable to communities of at most "
        f"{BRUTEFORCE_MAX_COMMUNITY_SIZE} nodes.")

    OPTIONS = (NUM_PROC_OPTION,)
    DEFAULTS = {'num_proc': available_processors}

    def divide(self, detector) -> None:
        N = detector.current_size
        if N > BRUTEFORCE_MAX_COMMUNITY_SIZE:
            raise ConfigurationError(
                f"The community to split is too large for the brute force approach "
                f"({N} > {BRUTEFORCE_MAX_COMMUNITY_SIZE} nodes).")

        num_evals = 2 ** (N - 1)
        B = detector.B if detector.is_first_division() else detector.current_B
        m = detector.m

        if detector.settings.verbose:
            print(f"   {self.identifier}: {num_evals:,} split vectors to evaluate")

        def evaluate_range(start, stop):
            S = generate_split_vectors(N, num_evals, start, stop)
            return best_in_range(compute_q_batch(S, B, m), start)

        def on_improvement(q, index):
            detector.current_s = generate_split_vectors(N, num_evals, index, index + 1)[0]
            detector.take_snapshot(self.identifier)

        best_q, best_index = exhaustive_search(
            evaluate_range, num_evals, self.num_proc,
            check_canceled=detector.check_canceled,
            on_improvement=on_improvement)

        detector.num_evaluations += num_evals
        detector.current_s = generate_split_vectors(N, num_evals, best_index, best_index + 1)[0]
        detector.current_q = best_q
