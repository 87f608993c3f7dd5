"""
Community Divider Base Module
=============================

Common interface of the methods that split a community in two.

A divider receives the `ModularityDetector` positioned on the community to
divide and must set `detector.current_s` to a split vector of +1/-1 values.
It may also set `detector.current_q`; the detector recomputes Q (or dQ)
after the divider returns in any case.

Options:
--------
Each divider declares its options as a tuple of `DividerOption`. An option
string such as `--popSize 50 -g 200 --bf` is split with shell rules
(quoted strings are single tokens). Every token must be made of

    [.0-9A-Za-z'\\-]+

and is then matched against the long (`--popSize`) or short (`-p`) name of
each option. Malformed strings, unknown options and invalid values raise
`ConfigurationError`.

Author: Modularity Detection Team
"""

import copy
import os
import re
import shlex
import warnings
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from ..exceptions import ConfigurationError


OPTION_TOKEN_PATTERN = re.compile(r"[.0-9A-Za-z'\-]+")

USE_NUM_PROC_AVAILABLE = 'MAX'


def tokenize_options(options: str) -> List[str]:
    """
    Split an option string into tokens, removing the quotes of quoted tokens.

    Raises
    ------
    ConfigurationError
        If a quote is not closed or a token has characters outside
        `OPTION_TOKEN_PATTERN`.
    """
    try:
        tokens = shlex.split(options or '')
    except ValueError as e:
        raise ConfigurationError(f"Malformed option string {options!r} ({e}).") from e
    for token in tokens:
        if not OPTION_TOKEN_PATTERN.fullmatch(token):
            raise ConfigurationError(f"Invalid token '{token}' in option string {options!r}.")
    return tokens


def available_processors() -> int:
    return os.cpu_count() or 1


def parse_num_proc(value: str, identifier: str = '') -> int:
    """
    Parse a `--numproc` value: a positive integer or MAX.

    Values below one are raised to one, values above the number of
    processors are lowered to it.
    """
    available = available_processors()
    if value == USE_NUM_PROC_AVAILABLE:
        return available
    num_proc = int(value)
    if num_proc < 1:
        warnings.warn(f"{identifier}: at least one processor is required. Using now one processor.")
        return 1
    if num_proc > available:
        warnings.warn(f"{identifier}: number of processors available is {available}. "
                      "Using now all the processors available.")
        return available
    return num_proc


@dataclass(frozen=True)
class DividerOption:
    """
    Declaration of a divider option.

    Parameters
    ----------
    name : str
        Long name, used as `--name`.
    attribute : str
        Attribute of the divider holding the value.
    parser : Callable[[str], Any], optional
        Converts the option value. None for flags (no value).
    short : str, optional
        Short name, used as `-short`.
    description : str
        Help text.
    """
    name: str
    attribute: str
    parser: Optional[Callable[[str], Any]] = None
    short: Optional[str] = None
    description: str = ''

    @property
    def is_flag(self) -> bool:
        return self.parser is None


NUM_PROC_OPTION = DividerOption(
    'numproc', 'num_proc', parse_num_proc,
    description="Number of processors to use (positive integer or MAX, default: MAX).")


class CommunityDivider:
    """
    Base class of the community dividers.

    Subclasses set `identifier`, `name`, `description` and `OPTIONS`, define
    the default value of every option attribute in `DEFAULTS` and implement
    `divide()`.

    Parameters
    ----------
    options : str, optional
        Option string parsed with `parse_options`.
    **values
        Option values given directly by attribute name.
    """

    identifier = 'Divider'
    name = 'Community divider'
    description = 'No description available.'

    OPTIONS: Tuple[DividerOption, ...] = ()
    DEFAULTS: Dict[str, Any] = {}

    def __init__(self, options: str = '', **values):
        for attribute, default in self.DEFAULTS.items():
            setattr(self, attribute, default() if callable(default) else default)
        for attribute, value in values.items():
            if attribute not in self.DEFAULTS:
                raise ConfigurationError(f"{self.identifier}: unknown option '{attribute}'.")
            setattr(self, attribute, value)
        self.current_community_name = ''
        if options:
            self.parse_options(options)
        else:
            self.validate_options()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.options_str()!r})"

    # ------------------------------------------------------------------
    # OPTIONS
    # ------------------------------------------------------------------

    def _find_option(self, token: str) -> DividerOption:
        for option in self.OPTIONS:
            if token == '--' + option.name or (option.short and token == '-' + option.short):
                return option
        raise ConfigurationError(
            f"{self.identifier}: unrecognized option '{token}'.\n{self.help()}")

    def parse_options(self, options: str) -> None:
        """
        Set the divider options from an option string.

        Raises
        ------
        ConfigurationError
            If an option is unknown, misses its value or has an invalid value.
        """
        tokens = tokenize_options(options)
        i = 0
        while i < len(tokens):
            option = self._find_option(tokens[i])
            if option.is_flag:
                setattr(self, option.attribute, True)
                i += 1
                continue
            if i + 1 >= len(tokens):
                raise ConfigurationError(f"{self.identifier}: missing value for option '{tokens[i]}'.")
            value = tokens[i + 1]
            try:
                if option.parser is parse_num_proc:
                    parsed = parse_num_proc(value, self.identifier)
                else:
                    parsed = option.parser(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"{self.identifier}: invalid value '{value}' for option '{tokens[i]}' ({e}).") from e
            setattr(self, option.attribute, parsed)
            i += 2

        self.validate_options()

    def validate_options(self) -> None:
        """Check option values after parsing; raise ConfigurationError."""

    def options_str(self) -> str:
        """Current options, in the format accepted by `parse_options`."""
        parts = []
        for option in self.OPTIONS:
            value = getattr(self, option.attribute)
            if option.is_flag:
                if value:
                    parts.append('--' + option.name)
            elif value is not None:
                parts.append(f"--{option.name} {value}")
        return ' '.join(parts)

    def help(self) -> str:
        lines = [f"{self.name} options:"]
        for option in self.OPTIONS:
            names = f"--{option.name}"
            if option.short:
                names = f"-{option.short},{names}"
            if not option.is_flag:
                names += ' VALUE'
            lines.append(f"  {names:<34}{option.description}")
        return '\n'.join(lines)

    # ------------------------------------------------------------------

    def copy(self) -> 'CommunityDivider':
        """Independent copy with the same options."""
        return copy.deepcopy(self)

    def divide(self, detector) -> None:
        """Set `detector.current_s` to the split vector of the current community."""
        raise NotImplementedError

    @staticmethod
    def set_split_vector(detector, chromosome: np.ndarray) -> None:
        """Decode a boolean chromosome (True -> +1) into `detector.current_s`."""
        detector.current_s = np.where(np.asarray(chromosome, dtype=bool), 1.0, -1.0)
