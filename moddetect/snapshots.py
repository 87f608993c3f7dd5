"""
Snapshots Module
================

Optional recorder of the progress of a modularity detection, for offline
replay or visualization of how the network is split.

Each node of the network carries an integer "state". Nodes of the community
being divided take the state `state1` (s_i < 0) or `state2` (s_i > 0). When
the detection moves on to another community, the states manager allocates a
new pair of states; when a community turns out to be indivisible its state
is reserved so that later splits elsewhere in the tree never reuse it.

Two export modes are available:
- full: every snapshot lists all the nodes of the current community.
- differential: the first snapshot of a community lists all its nodes, the
  following ones only the nodes whose state changed.

The recorder never modifies the detector: the detection gives the same
result with or without it.

Author: Modularity Detection Team
"""

import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .exceptions import DetectionError


SNAPSHOT_SUFFIX = '_snapshot'
LARGEST_STATE_VALUE_SUFFIX = '_max_state.txt'
INDIVISIBLE_COMMUNITY = 'indivisible'

EXPORT_FULL_SNAPSHOTS = 'full'
EXPORT_DIFFERENTIAL_SNAPSHOTS = 'differential'


@dataclass
class SnapshotRecord:
    """One snapshot: the new state of some nodes of the network."""
    index: int
    community: str
    label: str
    entries: List[Tuple[str, int]]
    largest_state: int

    def to_text(self) -> str:
        return ''.join(f'"{name}"\t{state}\n' for name, state in self.entries)


class StatesManager:
    """Allocates the pair of states used for the community being divided."""

    def __init__(self):
        self.state1 = 0
        self.state2 = 1
        self.reserved_states = []

    def update(self, indivisible: bool) -> None:
        """Move to the next community; `indivisible` describes the previous one."""
        if indivisible:
            # the lower state of an indivisible community is kept for good
            self.reserved_states.append(self.state1)
            while self.state1 >= 0:
                self.state1 -= 1
                if self.state1 not in self.reserved_states:
                    break
            self.state2 = self.max_reserved_state() + 1
        else:
            self.state1 += 1
            while self.state1 in self.reserved_states:
                self.state1 += 1
            self.state2 += 1

    def max_reserved_state(self) -> int:
        return max(self.reserved_states, default=0)

    def largest_state(self) -> int:
        return max(self.max_reserved_state(), self.state1, self.state2)


def _is_indivisible_split_vector(s: np.ndarray) -> bool:
    return abs(int(np.sum(s))) == len(s)


class SnapshotRecorder:
    """
    Collects `SnapshotRecord`s during a detection.

    Parameters
    ----------
    node_names : List[str]
        Names of the network nodes, in index order.
    mode : str
        'differential' (default) or 'full'.
    sink : Callable[[SnapshotRecord], None], optional
        Called with every record. Records are also kept in `records`.
    """

    def __init__(self, node_names: List[str],
                 mode: str = EXPORT_DIFFERENTIAL_SNAPSHOTS,
                 sink: Optional[Callable[[SnapshotRecord], None]] = None):
        if mode not in (EXPORT_FULL_SNAPSHOTS, EXPORT_DIFFERENTIAL_SNAPSHOTS):
            raise ValueError(f"Unknown snapshot mode: {mode}")
        self.node_names = list(node_names)
        self.mode = mode
        self.sink = sink
        self.reset()

    def reset(self) -> None:
        """Forget the records and the node states of a previous detection."""
        self.records: List[SnapshotRecord] = []

        self.states_manager = StatesManager()
        self.node_states: Dict[str, int] = {name: 0 for name in self.node_names}
        self.snapshot_index = 0

        self._previous_community = None
        self._previous_s = None
        self._community_node_names = []

    # ------------------------------------------------------------------

    def take_snapshot(self, detector, label: str) -> Optional[SnapshotRecord]:
        """Record the split vector of the community being divided."""
        community = detector.current_community
        if community is None:
            raise DetectionError("No community is being divided.")
        s = np.array(detector.current_s, dtype=np.float64)

        if self._previous_community is None or self._previous_community != community.name:
            if self._previous_community is not None:
                self.states_manager.update(_is_indivisible_split_vector(self._previous_s))
            self._previous_community = community.name
            self._community_node_names = [self.node_names[int(i)] for i in community.vertex_indexes]
            self._previous_s = s.copy()
            entries = self._entries(s, None)
        else:
            entries = self._entries(s, self._previous_s)
            self._previous_s = s.copy()

        if not entries:
            return None
        return self._emit(community.name, label, entries)

    def take_global_move_snapshot(self, detector, label: str,
                                  node_index: int, new_community: int) -> SnapshotRecord:
        """Record a node moved by gMVM to another community."""
        s = detector.current_s
        neighbors = np.flatnonzero(s == new_community)
        neighbors = neighbors[neighbors != node_index]
        if len(neighbors) == 0:
            raise DetectionError("Node is moved in a community that doesn't include any nodes.")

        new_state = self.node_states[self.node_names[int(neighbors[0])]]
        name = self.node_names[node_index]
        self.node_states[name] = new_state
        return self._emit('', label, [(name, new_state)])

    # ------------------------------------------------------------------

    def _entries(self, s: np.ndarray, previous_s: Optional[np.ndarray]) -> List[Tuple[str, int]]:
        if len(s) != len(self._community_node_names):
            raise DetectionError("Split vector and community have different sizes.")

        # an all-ones vector is shown as all minus ones
        if s.sum() == len(s):
            s = -s
        if previous_s is not None and previous_s.sum() == len(previous_s):
            previous_s = -previous_s

        state1 = self.states_manager.state1
        state2 = self.states_manager.state2
        entries = []
        for i, name in enumerate(self._community_node_names):
            if self.mode == EXPORT_DIFFERENTIAL_SNAPSHOTS and previous_s is not None \
                    and s[i] == previous_s[i]:
                continue
            state = state2 if s[i] > 0 else state1
            self.node_states[name] = state
            entries.append((name, state))
        return entries

    def _emit(self, community: str, label: str, entries: List[Tuple[str, int]]) -> SnapshotRecord:
        record = SnapshotRecord(
            index=self.snapshot_index,
            community=community,
            label=label,
            entries=entries,
            largest_state=self.states_manager.largest_state(),
        )
        self.snapshot_index += 1
        self.records.append(record)
        if self.sink is not None:
            self.sink(record)
        return record

    @property
    def largest_state(self) -> int:
        return self.states_manager.largest_state()

    # ------------------------------------------------------------------

    def write_snapshots(self, directory: str, root_name: str) -> List[str]:
        """
        Write one file per record plus the largest state value.

        Returns
        -------
        List[str]
            Paths of the written files.
        """
        os.makedirs(directory, exist_ok=True)
        root = os.path.join(directory, root_name + SNAPSHOT_SUFFIX)
        paths = []
        for record in self.records:
            parts = [root, str(record.index)]
            if record.community:
                parts.append(record.community)
            if record.label:
                parts.append(record.label)
            path = '_'.join(parts) + '.txt'
            with open(path, 'w') as f:
                f.write(record.to_text())
            paths.append(path)

        path = root + LARGEST_STATE_VALUE_SUFFIX
        with open(path, 'w') as f:
            f.write(f"{self.largest_state}\n")
        paths.append(path)
        return paths
