"""
Partition Evaluation Module
===========================

Helpers to assess the partitions found by the modularity detection.

Evaluation Metrics:
    - Modularity (Q), recomputed independently with NetworkX
    - NMI: Normalized Mutual Information between two partitions
    - ARI: Adjusted Rand Index between two partitions

Partitions are dicts mapping a node name to its community index, as
returned in `DetectionResult.communities`. Community index 0 (unassigned)
is treated as a regular label.

Author: Modularity Detection Team
"""

from collections import defaultdict
from typing import Any, Dict, List, Set

import networkx as nx
from sklearn.metrics import adjusted_rand_score, normalized_mutual_info_score


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def dict_to_partition(node_to_comm: Dict[Any, int]) -> List[Set]:
    """
    Convert a dict mapping node -> community_id to a list of sets.

    Communities are listed by increasing index.
    """
    communities = defaultdict(set)
    for node, comm_id in node_to_comm.items():
        communities[comm_id].add(node)
    return [communities[comm_id] for comm_id in sorted(communities)]


def partition_to_dict(partition: List[Set]) -> Dict[Any, int]:
    """Convert a list of sets to a dict mapping node -> 1-based community index."""
    result = {}
    for comm_id, community in enumerate(partition, 1):
        for node in community:
            result[node] = comm_id
    return result


def _labels(partition1: Dict[Any, int], partition2: Dict[Any, int]):
    common_nodes = sorted(set(partition1) & set(partition2), key=str)
    labels1 = [partition1[node] for node in common_nodes]
    labels2 = [partition2[node] for node in common_nodes]
    return labels1, labels2


# ============================================================================
# EVALUATION METRICS
# ============================================================================

def partition_modularity(G: nx.Graph, partition: Dict[Any, int]) -> float:
    """
    Modularity of a partition computed by NetworkX.

    Q = (1/2m) * sum[(A_ij - k_i*k_j/(2m)) * delta(c_i, c_j)]

    The graph is made undirected and edge weights are ignored, so the value
    matches the engine's Q for unweighted graphs without self-edges.

    Parameters
    ----------
    G : nx.Graph
        The graph.
    partition : Dict[Any, int]
        Mapping of node (or node name) to community index.

    Returns
    -------
    float
        Modularity score.
    """
    if G.is_directed():
        G = G.to_undirected()
    G = nx.Graph(G)
    G.remove_edges_from(nx.selfloop_edges(G))

    names = {str(node): node for node in G.nodes()}
    node_partition = {names[str(key)]: comm_id for key, comm_id in partition.items()
                      if str(key) in names}
    return nx.community.modularity(G, dict_to_partition(node_partition), weight=None)


def calculate_nmi(partition1: Dict[Any, int], partition2: Dict[Any, int]) -> float:
    """
    Normalized Mutual Information between two partitions.

    NMI(X,Y) = 2 * I(X;Y) / (H(X) + H(Y))

    Returns 0 when the partitions have no node in common.
    """
    labels1, labels2 = _labels(partition1, partition2)
    if not labels1:
        return 0.0
    return float(normalized_mutual_info_score(labels1, labels2))


def calculate_ari(partition1: Dict[Any, int], partition2: Dict[Any, int]) -> float:
    """Adjusted Rand Index between two partitions (1 = identical)."""
    labels1, labels2 = _labels(partition1, partition2)
    if not labels1:
        return 0.0
    return float(adjusted_rand_score(labels1, labels2))


def compare_partitions(G: nx.Graph,
                       partition1: Dict[Any, int],
                       partition2: Dict[Any, int],
                       name1: str = "Partition 1",
                       name2: str = "Partition 2",
                       verbose: bool = True) -> Dict[str, float]:
    """
    Compare two partitions using modularity, NMI and ARI.

    Returns
    -------
    Dict[str, float]
        Keys '<name1>_modularity', '<name2>_modularity', 'nmi', 'ari'.
    """
    results = {
        f'{name1}_modularity': partition_modularity(G, partition1),
        f'{name2}_modularity': partition_modularity(G, partition2),
        'nmi': calculate_nmi(partition1, partition2),
        'ari': calculate_ari(partition1, partition2),
    }

    if verbose:
        print(f"\n{name1} vs {name2} Comparison:")
        print(f"   {name1} Modularity: {results[f'{name1}_modularity']:.4f}")
        print(f"   {name2} Modularity: {results[f'{name2}_modularity']:.4f}")
        print(f"   NMI: {results['nmi']:.4f}")
        print(f"   ARI: {results['ari']:.4f}")

    return results
