"""
Known Modules Divider Module
============================

Computes the modularity of a network whose modules are already known, e.g.
a benchmark network with a ground-truth partition or the partition produced
by another tool.

The module of each node is read from its 'community' node attribute (see
`assign_known_communities`). A community holding C known modules is split in
two groups of modules:

- HALF (default): the first C//2 modules, in order of first appearance,
  form the +1 group.
- BRUTEFORCE: every grouping of the C modules is evaluated (C <= 58) and the
  best one is kept.

Recursive division therefore stops when every community holds one module.
MVM and gMVM modify the known modules and should usually be disabled.

Author: Modularity Detection Team
"""

import warnings

import numpy as np

from ..detector import compute_q_batch
from ..exceptions import ConfigurationError
from .base import CommunityDivider, DividerOption, NUM_PROC_OPTION, available_processors
from .brute_force import best_in_range, exhaustive_search, generate_split_vectors


BRUTEFORCE_MAX_NUM_COMMUNITIES = 58
NUM_WORKERS_PER_BATCH = 500
NUM_EVALUATIONS_PER_WORKER = 1000

SPLIT_METHOD_HALF = 'HALF'
SPLIT_METHOD_BRUTEFORCE = 'BRUTEFORCE'
SPLIT_METHODS = (SPLIT_METHOD_HALF, SPLIT_METHOD_BRUTEFORCE)


def _parse_split_method(value: str) -> str:
    value = value.upper()
    if value not in SPLIT_METHODS:
        raise ValueError(f"split method must be one of {SPLIT_METHODS}")
    return value


class KnownModulesDivider(CommunityDivider):
    """Split a community along the known modules of its nodes."""

    identifier = 'KnownModules'
    name = 'Known modules'
    description = (
        "Computes the modularity Q of networks where modules are known, such "
        "as benchmark networks or the partition produced by a third-party "
        "software. The module of each node is given by its 'community' "
        "attribute. Refinement methods such as MVM and gMVM modify the "
        "composition of the modules and should usually be disabled.")

    OPTIONS = (
        DividerOption('splitMethod', 'split_method', _parse_split_method, None,
                      "Grouping of the known modules in two: HALF or BRUTEFORCE (default: HALF)."),
        NUM_PROC_OPTION,
    )
    DEFAULTS = {
        'split_method': SPLIT_METHOD_HALF,
        'num_proc': available_processors,
    }

    def validate_options(self) -> None:
        if self.split_method not in SPLIT_METHODS:
            raise ConfigurationError(
                f"Unknown split method '{self.split_method}', must be one of {SPLIT_METHODS}.")

    def divide(self, detector) -> None:
        settings = detector.settings
        network = detector.network
        N = detector.current_size
        name = network.name

        if settings.use_moving_vertex or settings.use_global_moving_vertex:
            warnings.warn(f"{name}|{self.identifier}: there are refinement methods enabled "
                          "that can modify the given network modules.")

        labels = [network.get_community_index(int(i)) for i in detector.current_indexes]
        lookup = {}
        for label in labels:
            lookup.setdefault(label, len(lookup))
        module_of_node = np.array([lookup[label] for label in labels], dtype=np.int64)
        num_modules = len(lookup)

        if settings.verbose:
            print(f"   {self.identifier}: {num_modules} known module(s), split method {self.split_method}")

        if N == network.size and num_modules == 1:
            warnings.warn(f"{name}|{self.identifier}: this network has only one community (Q=0). "
                          "Are you sure that the known communities have been provided?")

        if num_modules == 1:
            detector.current_s = np.ones(N)
        elif self.split_method == SPLIT_METHOD_HALF:
            group = np.arange(num_modules) < num_modules // 2
            detector.current_s = np.where(group[module_of_node], 1.0, -1.0)
        else:
            self._divide_brute_force(detector, module_of_node, num_modules)

    def _divide_brute_force(self, detector, module_of_node: np.ndarray, num_modules: int) -> None:
        if num_modules > BRUTEFORCE_MAX_NUM_COMMUNITIES:
            raise ConfigurationError(
                "The number of communities is too large to be clustered using the brute "
                f"force approach ({num_modules} > {BRUTEFORCE_MAX_NUM_COMMUNITIES}).")

        num_evals = 2 ** (num_modules - 1)
        B = detector.B if detector.is_first_division() else detector.current_B
        m = detector.m

        def split_vectors(start, stop):
            return generate_split_vectors(num_modules, num_evals, start, stop)[:, module_of_node]

        def evaluate_range(start, stop):
            return best_in_range(compute_q_batch(split_vectors(start, stop), B, m), start)

        def on_improvement(q, index):
            detector.current_s = split_vectors(index, index + 1)[0]
            detector.take_snapshot(self.identifier)

        best_q, best_index = exhaustive_search(
            evaluate_range, num_evals, self.num_proc,
            workers_per_batch=NUM_WORKERS_PER_BATCH,
            evals_per_worker=NUM_EVALUATIONS_PER_WORKER,
            check_canceled=detector.check_canceled,
            on_improvement=on_improvement)

        detector.num_evaluations += num_evals
        detector.current_s = split_vectors(best_index, best_index + 1)[0]
        detector.current_q = best_q
