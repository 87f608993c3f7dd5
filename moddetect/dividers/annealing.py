"""
Simulated Annealing Divider Module
==================================

Simulated annealing (SA) search of the split vector s that maximizes Q.

Each iteration flips one random node of the current solution. A better
solution is always accepted, a worse one with probability

    p = exp(-(E - E_new) * N / T)

where E is the Q (or dQ) of the current solution, N the size of the whole
network and T the temperature. The temperature decreases geometrically,
T <- T * (1 - coolingRate), from t0 until it reaches tf. The best solution
ever visited is polished with the moving vertex method; the best result over
all runs is kept.

Author: Modularity Detection Team
"""

import numpy as np

from ..exceptions import ConfigurationError
from .base import CommunityDivider, DividerOption, NUM_PROC_OPTION, available_processors
from .brute_force import BRUTEFORCE_MAX_COMMUNITY_SIZE, BruteForceDivider


def acceptance_probability(energy: float, new_energy: float, temperature: float,
                           network_size: int) -> float:
    if new_energy > energy:
        return 1.0
    return float(np.exp(-(energy - new_energy) * network_size / temperature))


def num_iterations(t0: float, tf: float, cooling_rate: float) -> int:
    """Number of iterations of a run from t0 down to tf."""
    count = 0
    temp = t0
    while temp > tf:
        temp *= 1 - cooling_rate
        count += 1
    return count


class SimulatedAnnealingDivider(CommunityDivider):
    """Find the split vector with simulated annealing."""

    identifier = 'SA'
    name = 'Simulated annealing (SA)'
    description = (
        "Instead of calculating the dominant eigenvector of the modularity "
        "matrix B, a simulated annealing algorithm is applied to find the "
        "split vector s that maximizes the modularity Q. Use --bf to run the "
        "brute force method when the number of SA evaluations is larger than "
        "2^(n-1).")

    OPTIONS = (
        DividerOption('t0', 't0', float, None, "Initial temperature (default: 10)."),
        DividerOption('tf', 'tf', float, None, "Final temperature (default: 0.01)."),
        DividerOption('coolingRate', 'cooling_rate', float, None,
                      "Cooling rate in (0,1) (default: 0.01)."),
        DividerOption('numRuns', 'num_runs', int, 'r',
                      "Number of SA runs per community division (default: 1)."),
        DividerOption('bf', 'bf', None, None,
                      "Use brute force when the number of SA evaluations >= 2^(n-1)."),
        DividerOption('seed', 'seed', int, None, "Seed of the random number generator."),
        NUM_PROC_OPTION,
    )
    DEFAULTS = {
        't0': 10.0,
        'tf': 0.01,
        'cooling_rate': 0.01,
        'num_runs': 1,
        'bf': False,
        'seed': None,
        'num_proc': available_processors,
    }

    def validate_options(self) -> None:
        if not 0 < self.cooling_rate < 1:
            raise ConfigurationError("SA cooling rate must be in (0,1).")
        if self.tf <= 0 or self.t0 <= 0:
            raise ConfigurationError("SA temperatures must be positive.")
        if self.num_runs < 1:
            raise ConfigurationError("numRuns must be positive.")

    def run(self, detector, rng: np.random.Generator) -> np.ndarray:
        """One SA run; returns the best chromosome visited."""
        n = detector.current_size
        network_size = detector.network_size

        current = rng.random(n) < 0.5
        current_energy = detector.compute_modularity(np.where(current, 1.0, -1.0))
        best = current.copy()
        best_energy = current_energy

        temp = self.t0
        while temp > self.tf:
            candidate = current.copy()
            flipped = rng.integers(0, n)
            candidate[flipped] = not candidate[flipped]
            candidate_energy = detector.compute_modularity(np.where(candidate, 1.0, -1.0))

            p = acceptance_probability(current_energy, candidate_energy, temp, network_size)
            if p > rng.random():
                current = candidate
                current_energy = candidate_energy
            if current_energy > best_energy:
                best = current.copy()
                best_energy = current_energy

            self.set_split_vector(detector, best)
            detector.take_snapshot(self.identifier)
            temp *= 1 - self.cooling_rate

        return best

    def divide(self, detector) -> None:
        N = detector.current_size

        if self.bf and N <= BRUTEFORCE_MAX_COMMUNITY_SIZE \
                and self.num_runs * num_iterations(self.t0, self.tf, self.cooling_rate) > 2 ** (N - 1):
            if detector.settings.verbose:
                print(f"   {self.identifier}: running brute force method on small community")
            BruteForceDivider(num_proc=self.num_proc).divide(detector)
            return

        rng = np.random.default_rng(self.seed)
        best_q = 0.0
        best_s = np.ones(N)

        for run_index in range(1, self.num_runs + 1):
            best_chromosome = self.run(detector, rng)

            self.set_split_vector(detector, best_chromosome)
            detector.current_q = detector.compute_modularity()
            detector.moving_vertex_method()
            if detector.current_q > best_q:
                best_q = detector.current_q
                best_s = detector.current_s.copy()

            if detector.settings.verbose:
                print(f"   {self.identifier} run {run_index}/{self.num_runs}: "
                      f"Q = {detector.current_q:.6f} (best Q = {best_q:.6f})")

        detector.current_s = best_s
        detector.current_q = best_q
