"""Tests for the benchmark networks."""

import math

import pytest

from moddetect import DetectionSettings, load_known_communities, load_network, run_detection
from moddetect.benchmarks import (
    clique_of_cliques,
    clique_ring,
    connected_probability,
    erdos_renyi,
    planted_partition,
    random_seed_sequence,
    ravasz_network,
    write_benchmark,
)
from moddetect.evaluation import partition_modularity
from moddetect.exceptions import ConfigurationError


def ground_truth(G):
    return {node: data['community'] for node, data in G.nodes(data=True)}


class TestRavasz:

    def test_size(self):
        G = ravasz_network(2)
        assert G.number_of_nodes() == 16
        assert G.number_of_edges() == 39
        assert G.graph['name'] == 'ravasz_2'
        assert ravasz_network(3).number_of_nodes() == 64

    def test_first_level_cliques(self):
        G = ravasz_network(1, prefix='n')
        assert G.number_of_edges() == 6
        assert set(G.nodes()) == {'n0', 'n1', 'n2', 'n3'}

    def test_invalid_level(self):
        with pytest.raises(ConfigurationError):
            ravasz_network(0)


class TestCliques:

    def test_clique_ring(self):
        G = clique_ring(5, 4)
        assert G.number_of_nodes() == 20
        assert G.number_of_edges() == 35
        assert G.nodes['c2']['community'] == 3
        assert G.has_edge('a0', 'e0')

    def test_clique_ring_known_modules(self):
        G = clique_ring(5, 4)
        expected = partition_modularity(G, ground_truth(G))
        assert expected == pytest.approx(5 * (6 / 35 - (14 / 70) ** 2))

        settings = DetectionSettings(divider='KnownModules', use_moving_vertex=False,
                                     use_global_moving_vertex=False)
        result = run_detection(G, settings)
        assert result.modularity == pytest.approx(expected, abs=1e-9)

    def test_clique_of_cliques(self):
        G = clique_of_cliques()
        assert G.number_of_nodes() == 16
        assert G.number_of_edges() == 30
        assert partition_modularity(G, ground_truth(G)) == pytest.approx(0.55)

    def test_invalid_cliques(self):
        with pytest.raises(ConfigurationError):
            clique_ring(3, 1)
        with pytest.raises(ConfigurationError):
            clique_of_cliques(0, 4)


class TestRandomNetworks:

    def test_connected_probability(self):
        assert connected_probability(10) == pytest.approx(2 * math.log(10) / 10)
        assert connected_probability(1) == 0.0
        with pytest.raises(ConfigurationError):
            connected_probability(0)

    def test_erdos_renyi_names(self):
        G = erdos_renyi(20, 0.3, seed=1)
        assert set(G.nodes()) == {str(i) for i in range(1, 21)}
        assert G.graph['name'] == 'ErdosRenyi_20_p0.3'

    def test_erdos_renyi_edges(self):
        G = erdos_renyi(20, m=40, seed=1)
        assert G.number_of_edges() == 40

    def test_erdos_renyi_invalid(self):
        with pytest.raises(ConfigurationError):
            erdos_renyi(10, p=0.5, m=3)
        with pytest.raises(ConfigurationError):
            erdos_renyi(10, m=46)
        with pytest.raises(ConfigurationError):
            erdos_renyi(10, p=1.5)

    @pytest.mark.parametrize('seed', random_seed_sequence(0, 3))
    def test_dense_random_network_has_low_modularity(self, seed):
        result = run_detection(erdos_renyi(50, 0.9, seed=seed))
        assert result.ok
        assert result.modularity < 0.1

    def test_planted_partition(self):
        G = planted_partition(3, 5, 1.0, 0.0, seed=0)
        assert G.number_of_nodes() == 15
        assert G.number_of_edges() == 30
        assert G.nodes['g2_4']['community'] == 3

    def test_random_seed_sequence(self):
        assert random_seed_sequence(1, 4) == random_seed_sequence(1, 4)
        assert len(set(random_seed_sequence(1, 4))) == 4


class TestWriteBenchmark:

    def test_write_and_load(self, tmp_path):
        G = clique_ring(3, 3)
        network_path, community_path = write_benchmark(G, str(tmp_path))
        assert network_path.endswith('cliqueRing_3_3.tsv')

        H = load_network(network_path)
        assert H.number_of_edges() == G.number_of_edges()
        communities = load_known_communities(community_path)
        assert communities == {str(node): c for node, c in ground_truth(G).items()}

    def test_without_communities(self, tmp_path):
        G = erdos_renyi(10, 0.5, seed=3)
        network_path, community_path = write_benchmark(G, str(tmp_path), name='er')
        assert network_path.endswith('er.tsv')
        assert community_path is None
