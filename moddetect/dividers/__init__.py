"""
Community dividers: methods splitting a community in two.

Dividers are looked up by identifier in a static registry:

    >>> divider = create_divider('GA', '--popSize 50 --numGenerations 200')
    >>> available_dividers()
    ['Newman', 'BF', 'GA', 'SA', 'KnownModules']
"""

from typing import Dict, List, Type

from ..exceptions import ConfigurationError
from .base import CommunityDivider, DividerOption, tokenize_options, parse_num_proc
from .spectral import NewmanSpectralDivider, power_method, leading_eigenpair
from .brute_force import BruteForceDivider, generate_split_vectors, BRUTEFORCE_MAX_COMMUNITY_SIZE
from .genetic import GeneticAlgorithmDivider
from .annealing import SimulatedAnnealingDivider
from .known_modules import KnownModulesDivider


# ============================================================================
# DIVIDER REGISTRY
# ============================================================================

DIVIDERS: Dict[str, Type[CommunityDivider]] = {
    'Newman': NewmanSpectralDivider,
    'BF': BruteForceDivider,
    'GA': GeneticAlgorithmDivider,
    'SA': SimulatedAnnealingDivider,
    'KnownModules': KnownModulesDivider,
}


def register_divider(divider_class: Type[CommunityDivider]) -> Type[CommunityDivider]:
    """
    Add a divider class to the registry, under its `identifier`.

    Can be used as a class decorator. Registering an identifier twice
    replaces the previous class.
    """
    if not (isinstance(divider_class, type) and issubclass(divider_class, CommunityDivider)):
        raise ConfigurationError(f"{divider_class!r} is not a CommunityDivider subclass.")
    DIVIDERS[divider_class.identifier] = divider_class
    return divider_class


def available_dividers() -> List[str]:
    return list(DIVIDERS.keys())


def create_divider(identifier: str, options: str = '') -> CommunityDivider:
    """
    Factory function to create community dividers.

    Parameters
    ----------
    identifier : str
        Divider identifier: 'Newman', 'BF', 'GA', 'SA', 'KnownModules' or the
        identifier of a registered divider.
    options : str
        Option string of the divider, e.g. '--popSize 50 --bf'.

    Returns
    -------
    CommunityDivider
        Configured divider.
    """
    if identifier not in DIVIDERS:
        raise ConfigurationError(f"Unknown divider: {identifier}. Available: {available_dividers()}")
    return DIVIDERS[identifier](options)


__all__ = [
    'CommunityDivider',
    'DividerOption',
    'NewmanSpectralDivider',
    'BruteForceDivider',
    'GeneticAlgorithmDivider',
    'SimulatedAnnealingDivider',
    'KnownModulesDivider',
    'DIVIDERS',
    'register_divider',
    'available_dividers',
    'create_divider',
    'tokenize_options',
    'parse_num_proc',
    'power_method',
    'leading_eigenpair',
    'generate_split_vectors',
    'BRUTEFORCE_MAX_COMMUNITY_SIZE',
]
