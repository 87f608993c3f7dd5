"""
Modularity Detection Module
===========================

Entry point of the engine: runs the community tree on one network and
reports the outcome as a `DetectionResult`.

Pipeline:
---------
1. Build the modularity structure of the graph (`ModularityNetwork`).
2. Build the modularity matrix and the divider (`ModularityDetector`).
3. Divide the network recursively (`RootCommunity`), then refine the
   indivisible communities with gMVM.
4. Export the requested files (basic dataset, community tree, snapshots).

Status:
-------
Configuration errors are raised before the detection starts. Once started,
the detection never raises a `ModDetectError`: a canceled detection returns
status CANCELED and a failed one status FAILED with the error message.

Output Files (in `settings.output_directory`):
----------------------------------------------
- `<name>_Q.txt`: modularity Q
- `<name>_numIndCommunities.txt`: number of indivisible communities
- `<name>_time.txt`: computation time in seconds
- `<name>_inferred_community.dat`: `node<TAB>community_index`
- `<name>_indivisible_communities.txt`, `<name>_dendrogram.txt`
- `<name>_snapshot_*.txt`

Author: Modularity Detection Team
"""

import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

import networkx as nx

from .community import RootCommunity
from .detector import ModularityDetector
from .exceptions import DetectionCanceled, DetectionError, ModDetectError
from .network import ModularityNetwork, export_communities
from .settings import DetectionSettings
from .snapshots import SnapshotRecorder, SnapshotRecord


class DetectionStatus(Enum):
    OK = 'ok'
    CANCELED = 'canceled'
    FAILED = 'failed'


@dataclass
class DetectionResult:
    """Outcome of the modularity detection of one network."""
    network_name: str
    method: str
    status: DetectionStatus = DetectionStatus.OK
    error: Optional[str] = None
    modularity: float = 0.0
    num_indivisible_communities: int = 0
    num_communities: int = 0
    tree_depth: int = 0
    computation_time: float = 0.0
    num_evaluations: int = 0
    contribution_global_mvm: float = 0.0
    communities: Dict[str, int] = field(default_factory=dict)
    output_files: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == DetectionStatus.OK

    def to_dict(self, include_communities: bool = False) -> Dict:
        """Plain dict (JSON serializable) of the result."""
        result = asdict(self)
        result['status'] = self.status.value
        if not include_communities:
            del result['communities']
        return result

    def summary(self) -> str:
        lines = [
            "=" * 60,
            f"MODULARITY DETECTION: {self.network_name}",
            "=" * 60,
            f"Method: {self.method}",
            f"Status: {self.status.value}",
        ]
        if self.error:
            lines.append(f"Error: {self.error}")
        if self.ok:
            lines += [
                f"\nResults:",
                f"   - Modularity Q: {self.modularity:.6f}",
                f"   - Indivisible communities: {self.num_indivisible_communities}",
                f"   - Communities in the tree: {self.num_communities}",
                f"   - Tree depth: {self.tree_depth}",
                f"   - gMVM contribution: {self.contribution_global_mvm:.6f}",
                f"   - Modularity evaluations: {self.num_evaluations:,}",
                f"   - Computation time: {self.computation_time:.3f} s",
            ]
        lines.append("=" * 60)
        return '\n'.join(lines)

    def print_result(self) -> None:
        print("\n" + self.summary())


# ============================================================================
# DATASET EXPORT
# ============================================================================

def _write_value(path: str, value) -> None:
    with open(path, 'w') as f:
        f.write(f"{value}\n")


def export_dataset(root: RootCommunity,
                   settings: DetectionSettings,
                   recorder: Optional[SnapshotRecorder] = None) -> List[str]:
    """
    Write the files requested by `settings` and return their paths.

    Raises
    ------
    DetectionCanceled
        If the detection is canceled before a file is written.
    DetectionError
        If a file cannot be written.
    """
    detector = root.detector
    network = detector.network
    directory = settings.output_directory
    prefix = os.path.join(directory, network.name)
    paths = []

    try:
        os.makedirs(directory, exist_ok=True)

        if settings.export_basic_dataset:
            values = [
                ('_Q.txt', detector.modularity),
                ('_numIndCommunities.txt', root.num_indivisible_communities),
                ('_time.txt', root.computation_time),
            ]
            for suffix, value in values:
                detector.check_canceled()
                _write_value(prefix + suffix, value)
                paths.append(prefix + suffix)

            detector.check_canceled()
            export_communities(network, prefix + '_inferred_community.dat')
            paths.append(prefix + '_inferred_community.dat')

        if settings.export_community_tree:
            paths.extend(root.export_indivisible_communities(directory))

        if settings.export_snapshots and recorder is not None:
            detector.check_canceled()
            paths.extend(recorder.write_snapshots(directory, network.name))
    except OSError as e:
        raise DetectionError(f"Unable to export the results of '{network.name}': {e}") from e

    if settings.verbose:
        for path in paths:
            print(f"   Saved {path}")
    return paths


# ============================================================================
# DETECTION
# ============================================================================

class ModularityDetection:
    """
    Modularity detection of one network.

    Parameters
    ----------
    graph : nx.Graph or ModularityNetwork
        Network to analyze.
    settings : DetectionSettings, optional
        Detection options (default settings if None).
    divider : CommunityDivider, optional
        Divider prototype; defaults to the divider named in `settings`.
    snapshot_sink : Callable[[SnapshotRecord], None], optional
        Receives the snapshots of the detection. Snapshots are recorded when
        a sink is given or when `settings.export_snapshots` is set.
    name : str, optional
        Network name used for the output files.

    Raises
    ------
    ConfigurationError
        Invalid settings, divider options or network (no edges).
    """

    def __init__(self, graph: Union[nx.Graph, ModularityNetwork],
                 settings: Optional[DetectionSettings] = None,
                 divider=None,
                 snapshot_sink: Optional[Callable[[SnapshotRecord], None]] = None,
                 name: Optional[str] = None):
        self.settings = (settings or DetectionSettings()).validate()
        if isinstance(graph, ModularityNetwork):
            self.network = graph
        else:
            self.network = ModularityNetwork(graph, name=name)

        self.recorder = None
        if snapshot_sink is not None or self.settings.export_snapshots:
            self.recorder = SnapshotRecorder(self.network.node_names,
                                             mode=self.settings.snapshot_mode,
                                             sink=snapshot_sink)

        self.detector = ModularityDetector(self.network, divider=divider,
                                           settings=self.settings, snapshot=self.recorder)
        self.root = None

    def cancel(self) -> None:
        """Stop the detection as soon as possible. Callable from any thread."""
        self.detector.cancel()

    def run(self, recursive: bool = True) -> DetectionResult:
        """Run the detection and export the requested files."""
        settings = self.settings
        detector = self.detector
        result = DetectionResult(network_name=self.network.name,
                                 method=settings.method_string(detector.divider.identifier))

        if settings.verbose:
            print("\n" + "=" * 60)
            print(f"MODULARITY DETECTION: {self.network.name}")
            print("=" * 60)
            print(f"Nodes: {self.network.size:,}, edges: {self.network.m:,}")
            print(f"Method: {result.method} ({detector.divider.options_str() or 'default options'})")

        try:
            self.root = RootCommunity(detector)
            self.root.run_modularity_detection(recursive)
            result.output_files = export_dataset(self.root, settings, self.recorder)
        except DetectionCanceled as e:
            result.status = DetectionStatus.CANCELED
            result.error = str(e)
        except ModDetectError as e:
            result.status = DetectionStatus.FAILED
            result.error = str(e)

        result.num_evaluations = detector.num_evaluations
        if self.root is not None:
            result.computation_time = self.root.computation_time
        if result.ok:
            result.modularity = detector.modularity
            result.num_indivisible_communities = self.root.num_indivisible_communities
            result.num_communities = self.root.num_communities
            result.tree_depth = self.root.community_tree_depth
            result.contribution_global_mvm = detector.contribution_global_mvm
            result.communities = self.network.get_communities()

        if settings.verbose:
            result.print_result()
        return result


def run_detection(graph: Union[nx.Graph, ModularityNetwork],
                  settings: Optional[DetectionSettings] = None,
                  divider=None,
                  snapshot_sink: Optional[Callable[[SnapshotRecord], None]] = None,
                  recursive: bool = True,
                  name: Optional[str] = None) -> DetectionResult:
    """
    Detect the communities of a network by maximizing its modularity.

    Parameters
    ----------
    graph : nx.Graph or ModularityNetwork
        Network to analyze. Its nodes receive the 1-based index of their
        community in the 'community' attribute.
    settings : DetectionSettings, optional
        Detection options.
    divider : CommunityDivider, optional
        Divider prototype, overrides `settings.divider`.
    snapshot_sink : Callable, optional
        Receives the `SnapshotRecord`s of the detection.
    recursive : bool
        Divide the network recursively (default) or only once.
    name : str, optional
        Network name used for the output files.

    Returns
    -------
    DetectionResult
        Check `result.status` before using the values.
    """
    detection = ModularityDetection(graph, settings=settings, divider=divider,
                                    snapshot_sink=snapshot_sink, name=name)
    return detection.run(recursive)
