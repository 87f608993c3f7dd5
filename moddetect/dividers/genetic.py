"""
Genetic Algorithm Divider Module
================================

Binary generational genetic algorithm (GA) searching the split vector s
that maximizes Q.

Encoding:
---------
A chromosome has one bit per node of the community; bit 1 puts the node in
the +1 group, bit 0 in the -1 group. The fitness of a chromosome is the Q
(or dQ) of its split vector.

Generation:
-----------
1. Evaluate the fitness of the population (optionally split in chunks over
   a thread pool) and sort it, best first.
2. The best individual becomes the detector's split vector (snapshot).
3. Stop when the maximum number of generations is reached, or, with the
   genetic convergence criterion, when the mean pairwise Hamming distance
   of the population falls to the target value.
4. Build the next population: the elites are copied unchanged, the other
   individuals are children of two parents chosen by binary tournament.
   Crossover (one-point, two-point or uniform) is applied with probability
   xOverRate during the first xOverLifetime fraction of the generations,
   then every bit mutates with probability numNodesMutated / N.

After each run the best individual is polished with the moving vertex
method; the best split over all runs is kept.

Author: Modularity Detection Team
"""

import os
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from tqdm import tqdm

from ..detector import compute_q_batch
from ..exceptions import ConfigurationError, DetectionCanceled
from .base import CommunityDivider, DividerOption, NUM_PROC_OPTION, available_processors
from .brute_force import BRUTEFORCE_MAX_COMMUNITY_SIZE, BruteForceDivider


STOPPING_CRITERIA_MAX_ITERATIONS = 1
STOPPING_CRITERIA_GENETIC_CONVERGENCE = 2

CROSS_OVER_ONE_POINT = 1
CROSS_OVER_TWO_POINT = 2
CROSS_OVER_UNIFORM = 3
CROSSOVER_TYPES_STR = {1: 'one-point', 2: 'two-point', 3: 'uniform'}


def mean_hamming_distance(population: np.ndarray) -> float:
    """Mean Hamming distance between all the pairs of individuals."""
    p = population.shape[0]
    if p < 2:
        return 0.0
    ones = population.sum(axis=0).astype(np.float64)
    return float((ones * (p - ones)).sum()) / (p * (p - 1) / 2.0)


def crossover(parent1: np.ndarray, parent2: np.ndarray, crossover_type: int,
              rng: np.random.Generator) -> np.ndarray:
    """Child of two parents."""
    n = len(parent1)
    if crossover_type == CROSS_OVER_ONE_POINT:
        point = rng.integers(1, n) if n > 1 else 0
        return np.concatenate([parent1[:point], parent2[point:]])
    if crossover_type == CROSS_OVER_TWO_POINT:
        a, b = np.sort(rng.integers(0, n + 1, size=2))
        child = parent1.copy()
        child[a:b] = parent2[a:b]
        return child
    mask = rng.random(n) < 0.5
    return np.where(mask, parent1, parent2)


class GeneticAlgorithmDivider(CommunityDivider):
    """Find the split vector with a binary genetic algorithm."""

    identifier = 'GA'
    name = 'Genetic algorithm (GA)'
    description = (
        "Instead of calculating the dominant eigenvector of the modularity "
        "matrix B, a binary generational GA is applied to find the split "
        "vector s that maximizes the modularity Q. Use --bf to run the brute "
        "force method when the number of GA evaluations "
        "(popSize*numGenerations) is larger than 2^(n-1).")

    OPTIONS = (
        DividerOption('popSize', 'pop_size', int, 'p',
                      "Population size (default: 100)."),
        DividerOption('numGenerations', 'num_generations', int, 'g',
                      "Maximum number of generations (default: 1000)."),
        DividerOption('stoppingCriterion', 'stopping_criterion', int, 's',
                      "1=Maximum number of generations reached, 2=Genetic convergence reached."),
        DividerOption('targetMeanHammingDistance', 'target_mean_hamming_distance', float, None,
                      "Mean Hamming distance to reach between two individuals to converge."),
        DividerOption('numNodesMutated', 'num_nodes_mutated', int, 'n',
                      "Average number of nodes moved to the other group by mutation (default: 1)."),
        DividerOption('xOverType', 'crossover_type', int, None,
                      "Crossover type (1=one-point, 2=two-point or 3=uniform, default: uniform)."),
        DividerOption('xOverRate', 'crossover_rate', float, None,
                      "Crossover rate in [0,1] (default: 1.0)."),
        DividerOption('xOverLifetime', 'crossover_lifetime', float, None,
                      "First fraction of generations where crossover is enabled in [0,1] (default: 1.0)."),
        DividerOption('numElites', 'num_elites', int, 'e',
                      "Number of elites copied to the next population (default: 1)."),
        DividerOption('numRuns', 'num_runs', int, 'r',
                      "Number of GA runs per community division (default: 1)."),
        DividerOption('bf', 'bf', None, None,
                      "Use brute force when popSize*numGenerations >= 2^(n-1)."),
        DividerOption('saveStats', 'save_stats', None, None,
                      "Save the best and mean fitness and the mean Hamming distance of each generation."),
        DividerOption('seed', 'seed', int, None,
                      "Seed of the random number generator."),
        NUM_PROC_OPTION,
    )
    DEFAULTS = {
        'pop_size': 100,
        'num_generations': 1000,
        'stopping_criterion': STOPPING_CRITERIA_GENETIC_CONVERGENCE,
        'target_mean_hamming_distance': 1.0,
        'num_nodes_mutated': 1,
        'crossover_type': CROSS_OVER_UNIFORM,
        'crossover_rate': 1.0,
        'crossover_lifetime': 1.0,
        'num_elites': 1,
        'num_runs': 1,
        'bf': False,
        'save_stats': False,
        'seed': None,
        'num_proc': available_processors,
    }

    def validate_options(self) -> None:
        if self.crossover_type not in CROSSOVER_TYPES_STR:
            raise ConfigurationError(
                "Crossover type must take values 1=one-point, 2=two-point or 3=uniform.")
        if self.stopping_criterion not in (STOPPING_CRITERIA_MAX_ITERATIONS,
                                           STOPPING_CRITERIA_GENETIC_CONVERGENCE):
            raise ConfigurationError(
                "Stopping criterion must take values 1=maximum number of generations "
                "or 2=genetic convergence.")
        if self.pop_size < 2:
            raise ConfigurationError("The population must contain at least two individuals.")
        if not 0 <= self.num_elites < self.pop_size:
            raise ConfigurationError("The number of elites must be in [0, popSize).")
        if self.num_generations < 1 or self.num_runs < 1:
            raise ConfigurationError("numGenerations and numRuns must be positive.")

    # ------------------------------------------------------------------
    # FITNESS
    # ------------------------------------------------------------------

    def _evaluate(self, detector, population: np.ndarray, executor) -> np.ndarray:
        """Fitness of every individual; failed evaluations score -1."""
        if detector.is_canceled:
            raise DetectionCanceled()

        B = detector.B if detector.is_first_division() else detector.current_B
        S = np.where(population, 1.0, -1.0)
        chunks = np.array_split(np.arange(len(S)), max(1, self.num_proc))
        chunks = [chunk for chunk in chunks if len(chunk)]

        def evaluate(chunk):
            return compute_q_batch(S[chunk], B, detector.m)

        fitness = np.full(len(S), -1.0)
        if executor is None:
            results = [evaluate(chunk) for chunk in chunks]
        else:
            results = list(executor.map(evaluate, chunks))
        for chunk, values in zip(chunks, results):
            fitness[chunk] = values
        fitness[~np.isfinite(fitness)] = -1.0

        detector.num_evaluations += len(S)
        return fitness

    # ------------------------------------------------------------------
    # EVOLUTION
    # ------------------------------------------------------------------

    def _next_generation(self, population: np.ndarray, fitness: np.ndarray, generation: int,
                         mutation_probability: float, rng: np.random.Generator) -> np.ndarray:
        pop_size, n = population.shape
        children = [population[i].copy() for i in range(self.num_elites)]
        use_crossover = generation < self.crossover_lifetime * self.num_generations

        while len(children) < pop_size:
            a, b = rng.integers(0, pop_size, size=2)
            parent1 = population[a] if fitness[a] >= fitness[b] else population[b]
            a, b = rng.integers(0, pop_size, size=2)
            parent2 = population[a] if fitness[a] >= fitness[b] else population[b]

            if use_crossover and rng.random() < self.crossover_rate:
                child = crossover(parent1, parent2, self.crossover_type, rng)
            else:
                child = parent1.copy()
            child ^= rng.random(n) < mutation_probability
            children.append(child)

        return np.array(children, dtype=bool)

    def _stats_path(self, detector, run_index: int) -> str:
        directory = detector.settings.output_directory
        os.makedirs(directory, exist_ok=True)
        filename = (f"{detector.network.name}_{self.current_community_name}"
                    f"_GA_stats_run_{run_index}.txt")
        return os.path.join(directory, filename)

    def run(self, detector, run_index: int, rng: np.random.Generator, executor) -> np.ndarray:
        """One GA run; returns the best chromosome of the last generation."""
        n = detector.current_size
        mutation_probability = self.num_nodes_mutated / n
        population = rng.random((self.pop_size, n)) < 0.5

        stats = open(self._stats_path(detector, run_index), 'w') if self.save_stats else None
        try:
            pbar = tqdm(range(self.num_generations),
                        desc=f"{self.identifier} {self.current_community_name} run {run_index}",
                        disable=not detector.settings.verbose, leave=False)
            for generation in pbar:
                fitness = self._evaluate(detector, population, executor)
                order = np.argsort(-fitness, kind='stable')
                population = population[order]
                fitness = fitness[order]

                self.set_split_vector(detector, population[0])
                detector.take_snapshot(self.identifier)

                distance = mean_hamming_distance(population)
                pbar.set_postfix({'best Q': f"{fitness[0]:.4f}", 'hamming': f"{distance:.2f}"})
                if stats is not None:
                    stats.write(f"{generation}\t{fitness[0]}\t{fitness.mean()}\t{distance}\n")

                if generation == self.num_generations - 1:
                    break
                if self.stopping_criterion == STOPPING_CRITERIA_GENETIC_CONVERGENCE \
                        and distance <= self.target_mean_hamming_distance:
                    break

                population = self._next_generation(
                    population, fitness, generation, mutation_probability, rng)
        finally:
            if stats is not None:
                stats.close()

        return population[0]

    def divide(self, detector) -> None:
        N = detector.current_size
        if detector.current_community is not None:
            self.current_community_name = detector.current_community.name

        if self.bf and N <= BRUTEFORCE_MAX_COMMUNITY_SIZE \
                and 2 ** (N - 1) < self.pop_size * self.num_generations:
            if detector.settings.verbose:
                print(f"   {self.identifier}: running brute force method on small community")
            BruteForceDivider(num_proc=self.num_proc).divide(detector)
            return

        rng = np.random.default_rng(self.seed)
        best_q = 0.0
        best_s = np.ones(N)

        executor = ThreadPoolExecutor(max_workers=self.num_proc) if self.num_proc > 1 else None
        try:
            for run_index in range(1, self.num_runs + 1):
                best_chromosome = self.run(detector, run_index, rng, executor)

                self.set_split_vector(detector, best_chromosome)
                detector.current_q = detector.compute_modularity()
                detector.moving_vertex_method()
                if detector.current_q > best_q:
                    best_q = detector.current_q
                    best_s = detector.current_s.copy()

                if detector.settings.verbose:
                    print(f"   {self.identifier} run {run_index}/{self.num_runs}: "
                          f"Q = {detector.current_q:.6f} (best Q = {best_q:.6f})")
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        detector.current_s = best_s
        detector.current_q = best_q

