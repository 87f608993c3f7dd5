"""
Benchmark Networks Module
=========================

Generators of networks with known (or absent) community structure, used to
evaluate the modularity detection methods.

Generators:
-----------
1. Ravasz hierarchical scale-free network: 4^L nodes, built from 4-cliques
   whose peripheral nodes connect to the center of the next level.
2. Clique ring: cliques connected in a ring by single edges. The maximum
   modularity partition puts every clique in its own community (for small
   enough rings, see the resolution limit of modularity).
3. Clique of cliques: cliques whose first nodes (hubs) form a clique.
4. Erdos-Renyi G(n,p) and G(n,m) random graphs, which have no community
   structure.
5. Planted partition: groups with dense internal and sparse external edges.

Generators with a ground truth store the 1-based community of each node in
the 'community' node attribute, ready for the KnownModules divider.

Author: Modularity Detection Team
"""

import math
import os
from typing import Optional

import networkx as nx
import numpy as np

from .exceptions import ConfigurationError
from .network import COMMUNITY_ATTRIBUTE, save_network


# ============================================================================
# HIERARCHICAL NETWORKS
# ============================================================================

def ravasz_network(level: int = 3, prefix: str = '') -> nx.Graph:
    """
    Hierarchical scale-free network of Ravasz and Barabasi.

    Parameters
    ----------
    level : int
        Number of levels L; the network has 4^L nodes named prefix + index.
    prefix : str
        Prefix of the node names.

    Returns
    -------
    nx.Graph
        Undirected network named 'ravasz_<L>'.

    Notes
    -----
    At level l every module of 4^l nodes has its center (first node)
    connected to all the nodes of the three peripheral sub-modules, and the
    centers of these sub-modules connected in a triangle. Level 1 therefore
    produces 4-cliques.

    Reference: E. Ravasz and A.-L. Barabasi, "Hierarchical organization in
    complex networks", Phys. Rev. E 67 (2003).
    """
    if level < 1:
        raise ConfigurationError("The Ravasz network requires at least one level.")

    n = 4 ** level
    G = nx.Graph(name=f"ravasz_{level}")
    G.add_nodes_from(f"{prefix}{i}" for i in range(n))

    for l in range(1, level + 1):
        module_size = 4 ** l
        inc = 4 ** (l - 1)
        for i in range(n // module_size):
            c = i * module_size
            start = c + inc
            end = (i + 1) * module_size - 1
            for j in range(start, end + 1):
                G.add_edge(f"{prefix}{c}", f"{prefix}{j}")
            G.add_edge(f"{prefix}{start}", f"{prefix}{start + 2 * inc}")
            G.add_edge(f"{prefix}{start + inc}", f"{prefix}{start}")
            G.add_edge(f"{prefix}{start + 2 * inc}", f"{prefix}{start + inc}")

    return G


def _sequence_name(i: int) -> str:
    """a, b, ..., z, aa, ab, ..."""
    if i < 26:
        return chr(ord('a') + i)
    i -= 26
    return chr(ord('a') + i // 26) + chr(ord('a') + i % 26)


def _add_clique(G: nx.Graph, names, community: int) -> None:
    for name in names:
        G.add_node(name, **{COMMUNITY_ATTRIBUTE: community})
    for i, u in enumerate(names):
        for v in names[i + 1:]:
            G.add_edge(u, v)


def clique_ring(num_cliques: int, clique_size: int) -> nx.Graph:
    """
    Ring of cliques connected by single edges.

    Clique i has nodes named '<letters><j>' (a0, a1, ..., b0, ...) and
    community i+1. Node 0 of clique i is connected to node 1 of clique i-1,
    and node 0 of the last clique to node 0 of the first one.
    """
    if num_cliques < 1 or clique_size < 2:
        raise ConfigurationError("A clique ring requires at least one clique of two nodes.")
    if num_cliques > 26 * 27:
        raise ConfigurationError("A clique ring supports at most 702 cliques.")

    G = nx.Graph(name=f"cliqueRing_{num_cliques}_{clique_size}")
    previous = None
    first = None
    for i in range(num_cliques):
        root = _sequence_name(i)
        names = [f"{root}{j}" for j in range(clique_size)]
        _add_clique(G, names, i + 1)
        if i == 0:
            first = names[0]
        else:
            G.add_edge(names[0], previous)
        if i == num_cliques - 1 and num_cliques > 1:
            G.add_edge(names[0], first)
        previous = names[1]

    return G


def clique_of_cliques(num_cliques: int = 4, clique_size: int = 4) -> nx.Graph:
    """
    Cliques whose node 0 (hub) are all connected to each other.

    With 4 cliques of 4 nodes the network has 16 nodes, 30 edges and the
    partition into the 4 cliques has Q = 0.55.
    """
    if num_cliques < 1 or clique_size < 2:
        raise ConfigurationError("A clique of cliques requires at least one clique of two nodes.")

    G = nx.Graph(name=f"cliqueOfCliques_{num_cliques}_{clique_size}")
    hubs = []
    for i in range(num_cliques):
        root = _sequence_name(i)
        names = [f"{root}{j}" for j in range(clique_size)]
        _add_clique(G, names, i + 1)
        hubs.append(names[0])
    for i, u in enumerate(hubs):
        for v in hubs[i + 1:]:
            G.add_edge(u, v)
    return G


# ============================================================================
# RANDOM NETWORKS
# ============================================================================

def connected_probability(n: int) -> float:
    """Edge probability 2 ln(n) / n above which G(n,p) is almost surely connected."""
    if n < 1:
        raise ConfigurationError("The number of nodes must be positive.")
    return min(max(2.0 * math.log(n) / n, 0.0), 1.0)


def erdos_renyi(n: int, p: Optional[float] = None, m: Optional[int] = None,
                seed: Optional[int] = None) -> nx.Graph:
    """
    Erdos-Renyi random graph G(n,p) or G(n,m).

    Parameters
    ----------
    n : int
        Number of nodes, named 1..n.
    p : float, optional
        Edge probability in [0,1]. Defaults to `connected_probability(n)`
        when `m` is not given either.
    m : int, optional
        Number of edges in [1, n(n-1)/2] (G(n,m) model).
    seed : int, optional
        Random seed.
    """
    if p is not None and m is not None:
        raise ConfigurationError("Give either p or m, not both.")

    if m is not None:
        max_edges = n * (n - 1) // 2
        if not 1 <= m <= max_edges:
            raise ConfigurationError(f"m must be in [1, {max_edges}] for n = {n}.")
        G = nx.gnm_random_graph(n, m, seed=seed)
        name = f"ErdosRenyi_{n}_m{m}"
    else:
        if p is None:
            p = connected_probability(n)
        if not 0.0 <= p <= 1.0:
            raise ConfigurationError("The probability p must be in [0,1].")
        G = nx.gnp_random_graph(n, p, seed=seed)
        name = f"ErdosRenyi_{n}_p{p:g}"

    G = nx.relabel_nodes(G, {i: str(i + 1) for i in G.nodes()})
    G.graph['name'] = name
    return G


def planted_partition(num_groups: int, group_size: int, p_in: float, p_out: float,
                      seed: Optional[int] = None) -> nx.Graph:
    """
    Planted partition network with the ground truth in the 'community' attribute.

    Nodes are named 'g<group>_<index>' so that the nodes of a group are
    contiguous in the lexicographic order when there are fewer than 10
    groups.
    """
    for value in (p_in, p_out):
        if not 0.0 <= value <= 1.0:
            raise ConfigurationError("Probabilities must be in [0,1].")

    H = nx.planted_partition_graph(num_groups, group_size, p_in, p_out, seed=seed)
    G = nx.Graph(name=f"planted_{num_groups}x{group_size}")
    for node in H.nodes():
        group, index = divmod(node, group_size)
        G.add_node(f"g{group}_{index}", **{COMMUNITY_ATTRIBUTE: group + 1})
    for u, v in H.edges():
        G.add_edge(f"g{u // group_size}_{u % group_size}", f"g{v // group_size}_{v % group_size}")
    return G


# ============================================================================
# EXPORT
# ============================================================================

def write_benchmark(G: nx.Graph, directory: str, name: Optional[str] = None) -> tuple:
    """
    Write `<name>.tsv` and, when the nodes have a community, `<name>_community.dat`.

    Returns
    -------
    tuple
        (network path, community path or None)
    """
    name = name or G.graph.get('name', 'benchmark')
    os.makedirs(directory, exist_ok=True)
    network_path = os.path.join(directory, name + '.tsv')
    save_network(G, network_path)

    communities = nx.get_node_attributes(G, COMMUNITY_ATTRIBUTE)
    if not communities:
        return network_path, None

    community_path = os.path.join(directory, name + '_community.dat')
    with open(community_path, 'w', encoding='utf-8') as f:
        for node in sorted(G.nodes(), key=str):
            f.write(f"{node}\t{communities.get(node, 0)}\n")
    return network_path, community_path


def random_seed_sequence(seed: Optional[int], count: int):
    """`count` independent integer seeds derived from `seed`."""
    rng = np.random.default_rng(seed)
    return [int(x) for x in rng.integers(0, 2 ** 31 - 1, size=count)]
