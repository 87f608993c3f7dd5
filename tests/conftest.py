"""Shared fixtures for the moddetect test suite."""

import networkx as nx
import pytest

from moddetect import DetectionSettings, ModularityDetector, ModularityNetwork
from moddetect.benchmarks import clique_of_cliques


@pytest.fixture
def two_cliques():
    """Two 5-cliques (a0..a4, b0..b4) joined by the edge a0-b0."""
    G = nx.Graph(name='two_cliques')
    for root in 'ab':
        names = [f"{root}{i}" for i in range(5)]
        for i, u in enumerate(names):
            for v in names[i + 1:]:
                G.add_edge(u, v)
    G.add_edge('a0', 'b0')
    return G


@pytest.fixture
def cliques16():
    """Four 4-cliques whose hubs form a 4-clique (Q = 0.55 for the cliques)."""
    return clique_of_cliques(4, 4)


@pytest.fixture
def karate():
    """Zachary's karate club, unweighted."""
    G = nx.Graph(nx.karate_club_graph().edges())
    G.graph['name'] = 'karate'
    return G


@pytest.fixture
def settings(tmp_path):
    """Default settings writing to a temporary directory."""
    return DetectionSettings(output_directory=str(tmp_path))


@pytest.fixture
def make_detector():
    """Build a detector for a graph with the given settings keywords."""
    def _make(G, divider=None, snapshot=None, **kwargs):
        network = ModularityNetwork(G)
        return ModularityDetector(network, divider=divider,
                                  settings=DetectionSettings(**kwargs), snapshot=snapshot)
    return _make
