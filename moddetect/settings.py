"""
Settings Module
===============

Explicit configuration passed to every detection run.

A single `DetectionSettings` instance describes the division method, the
refinement steps, the concurrency level and which files are exported. The
same instance can be shared by several concurrent detections because the
engine never mutates it.

Author: Modularity Detection Team
"""

import json
import os
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError


SNAPSHOT_MODES = ('full', 'differential')


@dataclass
class DetectionSettings:
    """Container for the options of a modularity detection run."""
    divider: str = 'Newman'
    divider_options: str = ''
    use_moving_vertex: bool = True
    use_global_moving_vertex: bool = True
    num_concurrent_detections: int = 1
    export_basic_dataset: bool = False
    export_community_tree: bool = False
    export_snapshots: bool = False
    snapshot_mode: str = 'differential'
    output_directory: str = '.'
    verbose: bool = False

    def method_string(self, divider: Optional[str] = None) -> str:
        """Short description of the method, e.g. 'Newman+MVM+gMVM'."""
        method = divider or self.divider
        if self.use_moving_vertex:
            method += '+MVM'
        if self.use_global_moving_vertex:
            method += '+gMVM'
        return method

    def validate(self) -> 'DetectionSettings':
        """
        Check the settings and return self.

        Raises
        ------
        ConfigurationError
            If a value is outside its allowed range.
        """
        # imported here: the divider registry imports this module
        from .dividers import available_dividers

        if self.divider not in available_dividers():
            raise ConfigurationError(
                f"Unknown divider: {self.divider}. Available: {available_dividers()}")
        if self.num_concurrent_detections < 1:
            raise ConfigurationError(
                "num_concurrent_detections must be at least 1 "
                f"(got {self.num_concurrent_detections}).")
        if self.snapshot_mode not in SNAPSHOT_MODES:
            raise ConfigurationError(
                f"snapshot_mode must be one of {SNAPSHOT_MODES} (got '{self.snapshot_mode}').")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'DetectionSettings':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown settings: {unknown}")
        return cls(**values)

    @classmethod
    def from_json(cls, filepath: str) -> 'DetectionSettings':
        """Load settings from a JSON file written by `save_json`."""
        with open(filepath, 'r') as f:
            values = json.load(f)
        return cls.from_dict(values)

    def save_json(self, filepath: str) -> None:
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
