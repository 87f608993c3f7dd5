"""
Network Module
==============

This module wraps a NetworkX graph into the structure required to compute
Newman's modularity, and handles the plain text files exchanged with the
detection engine (edge lists and community files).

Theory:
-------
The modularity of a division of a network into groups is

    Q = (1/2m) * sum_ij [A_ij - k_i*k_j/(2m)] * delta(c_i, c_j)

where A is the adjacency matrix, k the degree vector and m the number of
edges. Everything the engine needs is therefore:

1. A boolean adjacency matrix A, symmetrized, without self-edges, where
   parallel edges and back edges (A->B and B->A) collapse to one entry.
2. The unweighted degree vector k.
3. The edge count m (an edge is counted once whatever its direction).
4. For weighted graphs, the weight w_ij of each connected pair.

Node Ordering:
--------------
Nodes are indexed by the lexicographic order of their names. Every vector
and matrix of the engine uses this order, and it never changes during a
detection run.

File Formats:
-------------
- Edge list: one edge per line, `source<TAB>target[<TAB>weight]`. Lines
  starting with '#' are comments; a line with a single name adds an
  isolated node.
- Community file (`<name>_community.dat`): `node<TAB>community_index`,
  1-based indexes, 0 meaning unassigned.

Author: Modularity Detection Team
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import networkx as nx
import numpy as np

from .exceptions import ConfigurationError


# Node attribute holding the community index of a node. Known-modules
# detection reads it, every detection writes it back.
COMMUNITY_ATTRIBUTE = 'community'


class ModularityNetwork:
    """
    Graph plus the variables required to compute its modularity.

    Parameters
    ----------
    graph : nx.Graph
        Any NetworkX graph (directed or not). Node keys are converted to
        strings to define the node names.
    name : str, optional
        Name of the network, used to name exported files. Defaults to
        `graph.name` or 'network'.
    weighted : bool, optional
        Use the 'weight' edge attribute. By default the network is weighted
        when at least one edge carries a 'weight' attribute.

    Attributes
    ----------
    nodes : List[Any]
        Node keys of `graph` in index order.
    node_names : List[str]
        Node names in index order (sorted).
    A : np.ndarray
        Boolean adjacency matrix (n x n).
    k : np.ndarray
        Unweighted degrees.
    m : int
        Number of undirected edges.
    weights : Dict[Tuple[int, int], float]
        Weight of each connected pair (i < j), empty if unweighted.
    """

    def __init__(self, graph: nx.Graph, name: Optional[str] = None,
                 weighted: Optional[bool] = None):
        self.graph = graph
        self.name = name or graph.graph.get('name') or 'network'
        self.directed = graph.is_directed()

        if weighted is None:
            weighted = any('weight' in data for _, _, data in graph.edges(data=True))
        self.weighted = weighted

        self.nodes = sorted(graph.nodes(), key=str)
        self.node_names = [str(node) for node in self.nodes]
        if len(set(self.node_names)) != len(self.node_names):
            raise ConfigurationError(
                f"Network '{self.name}' has several nodes with the same name.")
        self.node_index = {name: i for i, name in enumerate(self.node_names)}

        self.A = None
        self.k = None
        self.m = 0
        self.weights = {}
        self.initialize_modularity_structure()

    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self.nodes)

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return (f"ModularityNetwork(name={self.name!r}, nodes={self.size}, "
                f"edges={self.m}, weighted={self.weighted})")

    def initialize_modularity_structure(self) -> None:
        """Build A, k, m and the weight lookup from the graph edges."""
        n = self.size
        index = {node: i for i, node in enumerate(self.nodes)}
        A = np.zeros((n, n), dtype=bool)
        weights = {}

        for u, v, data in self.graph.edges(data=True):
            if u == v:
                continue
            i, j = index[u], index[v]
            A[i, j] = True
            A[j, i] = True
            if self.weighted:
                weight = float(data.get('weight', 1.0))
                if weight < 0:
                    raise ConfigurationError(
                        f"Negative weight {weight} on edge ({u}, {v}) of network '{self.name}'.")
                weights[(min(i, j), max(i, j))] = weight

        self.A = A
        self.k = A.sum(axis=1).astype(np.int64)
        self.m = int(np.count_nonzero(np.triu(A, 1)))
        self.weights = weights

        assert self.m == self.k.sum() / 2, \
            f"Edge count {self.m} does not match the degree sum {self.k.sum()}."

    def get_weight(self, i: int, j: int) -> float:
        """Weight of the edge between nodes i and j (1 if unweighted)."""
        if not self.weighted:
            return 1.0
        return self.weights.get((min(i, j), max(i, j)), 1.0)

    def weighted_adjacency(self) -> np.ndarray:
        """Dense matrix A_ij * w_ij."""
        W = self.A.astype(np.float64)
        if self.weighted:
            for (i, j), weight in self.weights.items():
                W[i, j] = weight
                W[j, i] = weight
        return W

    def get_node_names(self, indexes: Iterable[int]) -> List[str]:
        return [self.node_names[int(i)] for i in indexes]

    # ------------------------------------------------------------------
    # COMMUNITY INDEXES
    # ------------------------------------------------------------------

    def get_community_index(self, i: int) -> int:
        """Community index stored on node i (0 when unassigned)."""
        return int(self.graph.nodes[self.nodes[i]].get(COMMUNITY_ATTRIBUTE, 0))

    def set_community_index(self, i: int, value: int) -> None:
        self.graph.nodes[self.nodes[i]][COMMUNITY_ATTRIBUTE] = int(value)

    def get_communities(self) -> Dict[str, int]:
        """Mapping node name -> community index, in node order."""
        return {name: self.get_community_index(i) for i, name in enumerate(self.node_names)}

    def reset_communities(self) -> None:
        for i in range(self.size):
            self.set_community_index(i, 0)


# ============================================================================
# FILE INPUT / OUTPUT
# ============================================================================

def _data_lines(path: Path):
    """Numbered, stripped lines of a UTF-8 text file, skipping blanks and # comments."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if line and not line.startswith('#'):
                    yield line_num, line
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"{path.name}: not a UTF-8 text file ({e}).") from e


def load_network(filepath: Union[str, Path],
                 directed: bool = False,
                 name: Optional[str] = None,
                 verbose: bool = False) -> nx.Graph:
    """
    Load a network from a tab-separated edge list.

    Parameters
    ----------
    filepath : str or Path
        Edge list file: `source<TAB>target[<TAB>weight]` per line.
    directed : bool
        Build a nx.DiGraph instead of a nx.Graph.
    name : str, optional
        Network name; defaults to the file name without extension.
    verbose : bool
        Print a short summary.

    Returns
    -------
    nx.Graph
        The loaded graph; weights are stored in the 'weight' edge attribute
        when a third column is present.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ConfigurationError
        If the file is not UTF-8 text, or a line has more than three columns
        or a non numeric weight.
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Network file not found: {filepath}")

    G = nx.DiGraph() if directed else nx.Graph()
    G.graph['name'] = name or path.stem

    for line_num, line in _data_lines(path):
        parts = line.split('\t')
        if len(parts) == 1:
            parts = line.split()

        if len(parts) == 1:
            G.add_node(parts[0])
        elif len(parts) == 2:
            G.add_edge(parts[0], parts[1])
        elif len(parts) == 3:
            try:
                weight = float(parts[2])
            except ValueError:
                raise ConfigurationError(
                    f"{path.name}, line {line_num}: invalid weight '{parts[2]}'.")
            G.add_edge(parts[0], parts[1], weight=weight)
        else:
            raise ConfigurationError(
                f"{path.name}, line {line_num}: expected 'source<TAB>target[<TAB>weight]'.")

    if verbose:
        print(f"Loaded network '{G.graph['name']}' from {filepath}")
        print(f"   - Nodes: {G.number_of_nodes():,}")
        print(f"   - Edges: {G.number_of_edges():,}")

    return G


def save_network(G: nx.Graph, filepath: Union[str, Path]) -> None:
    """Write a graph as a tab-separated edge list (weights if present)."""
    directory = os.path.dirname(str(filepath))
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        for node in sorted(nx.isolates(G), key=str):
            f.write(f"{node}\n")
        for u, v, data in G.edges(data=True):
            if 'weight' in data:
                f.write(f"{u}\t{v}\t{data['weight']}\n")
            else:
                f.write(f"{u}\t{v}\n")


def load_known_communities(filepath: Union[str, Path]) -> Dict[str, int]:
    """
    Read a community file (`node<TAB>community_index` per line).

    Returns
    -------
    Dict[str, int]
        Mapping node name -> community index.
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Community file not found: {filepath}")

    communities = {}
    for line_num, line in _data_lines(path):
        parts = line.split('\t')
        if len(parts) != 2:
            parts = line.split()
        if len(parts) != 2:
            raise ConfigurationError(
                f"{path.name}, line {line_num}: expected 'node<TAB>community_index'.")
        try:
            communities[parts[0].strip()] = int(parts[1].strip())
        except ValueError:
            raise ConfigurationError(
                f"{path.name}, line {line_num}: invalid community index '{parts[1]}'.")
    return communities


def assign_known_communities(G: nx.Graph,
                             communities: Dict[Any, int],
                             strict: bool = True) -> nx.Graph:
    """
    Store known community indexes on the nodes of a graph.

    Parameters
    ----------
    G : nx.Graph
        Graph to modify in place.
    communities : Dict[Any, int]
        Mapping node (or node name) -> community index.
    strict : bool
        Raise if a node of the graph has no community.

    Returns
    -------
    nx.Graph
        The same graph, for chaining.
    """
    names = {str(node): node for node in G.nodes()}
    values = {}
    for key, index in communities.items():
        node = names.get(str(key))
        if node is None:
            raise ConfigurationError(f"Node '{key}' of the community file is not in the network.")
        values[node] = int(index)

    if strict:
        missing = [str(node) for node in G.nodes() if node not in values]
        if missing:
            raise ConfigurationError(
                f"{len(missing)} node(s) without known community, e.g. '{missing[0]}'.")

    nx.set_node_attributes(G, values, COMMUNITY_ATTRIBUTE)
    return G


def export_communities(network: ModularityNetwork, filepath: Union[str, Path]) -> None:
    """Write `node<TAB>community_index` for every node, sorted by name."""
    directory = os.path.dirname(str(filepath))
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        for name, index in network.get_communities().items():
            f.write(f"{name}\t{index}\n")
