"""
Modularity Detection Package

Modules:
    - network: Modularity structure of a NetworkX graph, edge list and community files
    - detector: Modularity matrix, Q/dQ, moving vertex methods (MVM, gMVM)
    - community: Community tree (recursive division into two communities)
    - dividers: Division methods (Newman, BF, GA, SA, KnownModules) and registry
    - snapshots: Recorder of the progress of a detection
    - settings: Detection settings
    - detection: Detection entry point, results and dataset export
    - batch: Concurrent detection of several networks
    - benchmarks: Benchmark networks (Ravasz, clique ring, Erdos-Renyi, planted partition)
    - evaluation: Modularity cross-check, NMI and ARI
"""

from .exceptions import (
    ModDetectError,
    ConfigurationError,
    DetectionCanceled,
    InsufficientMemoryError,
    DetectionError
)
from .settings import DetectionSettings
from .network import (
    ModularityNetwork,
    load_network,
    save_network,
    load_known_communities,
    assign_known_communities,
    export_communities
)
from .detector import (
    ModularityDetector,
    compute_q,
    compute_q_batch
)
from .community import Community, RootCommunity
from .dividers import (
    CommunityDivider,
    NewmanSpectralDivider,
    BruteForceDivider,
    GeneticAlgorithmDivider,
    SimulatedAnnealingDivider,
    KnownModulesDivider,
    create_divider,
    register_divider,
    available_dividers
)
from .snapshots import SnapshotRecorder, SnapshotRecord, StatesManager
from .detection import (
    DetectionStatus,
    DetectionResult,
    ModularityDetection,
    run_detection,
    export_dataset
)
from .batch import (
    run_batch,
    save_results,
    results_to_csv,
    load_results
)
from .benchmarks import (
    ravasz_network,
    clique_ring,
    clique_of_cliques,
    erdos_renyi,
    planted_partition,
    connected_probability,
    write_benchmark
)
from .evaluation import (
    partition_modularity,
    calculate_nmi,
    calculate_ari,
    compare_partitions
)

__all__ = [
    # Errors
    'ModDetectError',
    'ConfigurationError',
    'DetectionCanceled',
    'InsufficientMemoryError',
    'DetectionError',
    # Settings
    'DetectionSettings',
    # Network
    'ModularityNetwork',
    'load_network',
    'save_network',
    'load_known_communities',
    'assign_known_communities',
    'export_communities',
    # Detector
    'ModularityDetector',
    'compute_q',
    'compute_q_batch',
    # Community tree
    'Community',
    'RootCommunity',
    # Dividers
    'CommunityDivider',
    'NewmanSpectralDivider',
    'BruteForceDivider',
    'GeneticAlgorithmDivider',
    'SimulatedAnnealingDivider',
    'KnownModulesDivider',
    'create_divider',
    'register_divider',
    'available_dividers',
    # Snapshots
    'SnapshotRecorder',
    'SnapshotRecord',
    'StatesManager',
    # Detection
    'DetectionStatus',
    'DetectionResult',
    'ModularityDetection',
    'run_detection',
    'export_dataset',
    # Batch
    'run_batch',
    'save_results',
    'results_to_csv',
    'load_results',
    # Benchmarks
    'ravasz_network',
    'clique_ring',
    'clique_of_cliques',
    'erdos_renyi',
    'planted_partition',
    'connected_probability',
    'write_benchmark',
    # Evaluation
    'partition_modularity',
    'calculate_nmi',
    'calculate_ari',
    'compare_partitions'
]

__version__ = '1.0.0'
