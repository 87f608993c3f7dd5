"""
Tests for the community tree.

Covers:
- Leaves partition the network and the tree counters
- Recursive and single divisions
- gMVM on the leaves and emptied communities
- Indivisible communities and dendrogram files
"""

import networkx as nx
import numpy as np
import pytest

from moddetect import DetectionSettings, ModularityDetector, ModularityNetwork, RootCommunity
from moddetect.benchmarks import ravasz_network
from moddetect.community import Community
from moddetect.dividers import BruteForceDivider
from moddetect.evaluation import partition_modularity
from moddetect.exceptions import DetectionError


def build_tree(G, divider=None, recursive=True, **kwargs):
    """Run the community tree of a graph and return its root."""
    detector = ModularityDetector(ModularityNetwork(G), divider=divider,
                                  settings=DetectionSettings(**kwargs))
    root = RootCommunity(detector)
    root.run_modularity_detection(recursive)
    return root


class TestCommunityTree:
    """Structure of the tree after a detection."""

    def test_leaves_partition_network(self, karate):
        root = build_tree(karate)
        indexes = np.concatenate([c.vertex_indexes for c in root.indivisible_communities])
        assert sorted(indexes.tolist()) == list(range(34))

    def test_counters_without_gmvm(self, karate):
        root = build_tree(karate, use_global_moving_vertex=False)
        num_leaves = len(root.indivisible_communities)
        assert root.num_communities == 2 * num_leaves - 1
        assert root.num_indivisible_communities == num_leaves
        assert root.community_tree_depth >= 2
        assert all(c.is_leaf for c in root.indivisible_communities)

    def test_karate_modularity(self, karate):
        root = build_tree(karate)
        q = root.detector.modularity
        assert q > 0.38
        partition = root.detector.network.get_communities()
        assert q == pytest.approx(partition_modularity(karate, partition), abs=1e-9)

    def test_modularity_is_sum_of_gains(self, karate):
        root = build_tree(karate, use_global_moving_vertex=False)
        communities = []
        root.extract_all_communities(communities)
        gains = sum(c.delta_q for c in communities if not c.is_leaf)
        assert root.detector.modularity == pytest.approx(gains, abs=1e-12)

    def test_children_names(self, two_cliques):
        root = build_tree(two_cliques)
        assert [c.name for c in root.indivisible_communities] == ['RA', 'RB']
        assert root.find('RA').father is root
        assert root.find('RC') is None
        edges = []
        root.build_name_tree(edges)
        assert edges == [('R', 'RA'), ('R', 'RB')]

    def test_communities_same_depth(self, cliques16):
        root = build_tree(cliques16, divider=BruteForceDivider(num_proc=1))
        communities = []
        root.extract_communities_same_depth(2, communities)
        assert sorted(c.name for c in communities) == ['RAA', 'RAB', 'RBA', 'RBB']

    def test_clique_of_cliques_brute_force(self, cliques16):
        root = build_tree(cliques16, divider=BruteForceDivider(num_proc=1))
        sizes = sorted(c.size for c in root.indivisible_communities)
        assert sizes == [4, 4, 4, 4]
        assert root.detector.modularity == pytest.approx(0.55, abs=1e-9)
        assert root.community_tree_depth == 3

    def test_clique_of_cliques_newman(self, cliques16):
        root = build_tree(cliques16)
        assert root.detector.modularity > 0.5

    def test_node_community_indexes(self, karate):
        root = build_tree(karate)
        values = set(root.detector.network.get_communities().values())
        assert values <= set(range(1, len(root.indivisible_communities) + 1))
        assert len(values) == root.num_indivisible_communities

    def test_single_division(self, karate):
        root = build_tree(karate, recursive=False)
        assert len(root.indivisible_communities) == 2
        assert root.num_communities == 3
        assert root.child1.is_leaf and root.child2.is_leaf

    def test_indivisible_network(self):
        root = build_tree(nx.complete_graph(6))
        assert root.is_leaf
        assert root.num_communities == 1
        assert root.community_tree_depth == 1
        assert root.detector.modularity == pytest.approx(0.0, abs=1e-12)

    def test_hierarchical_network(self):
        G = ravasz_network(2)
        root = build_tree(G)
        assert sum(c.size for c in root.indivisible_communities) == 16
        assert root.detector.modularity > 0

    def test_hierarchical_network_modules(self):
        """Newman + MVM finds the four 4-cliques of the level 2 Ravasz network."""
        root = build_tree(ravasz_network(2), use_global_moving_vertex=False)
        sizes = sorted(c.size for c in root.indivisible_communities)
        assert sizes == [4, 4, 4, 4]
        assert root.num_indivisible_communities == 4
        # Q = 24/39 - (24^2 + 3 * 18^2) / 78^2
        assert root.detector.modularity == pytest.approx(61.0 / 169.0, abs=1e-9)
        for community in root.indivisible_communities:
            modules = {int(name) // 4 for name in community.get_node_names()}
            assert len(modules) == 1

    def test_single_child_rejected(self, two_cliques):
        detector = ModularityDetector(ModularityNetwork(two_cliques))
        root = RootCommunity(detector)
        root.child1 = Community(detector, 'RA', [0, 1], 1, father=root)
        with pytest.raises(DetectionError):
            root.traverse_community_tree()


class TestTreeExport:
    """Indivisible communities and dendrogram files."""

    def test_two_cliques_files(self, two_cliques, tmp_path):
        root = build_tree(two_cliques)
        communities_path, dendrogram_path = root.export_indivisible_communities(str(tmp_path))

        assert communities_path.endswith('two_cliques_indivisible_communities.txt')
        lines = open(communities_path).read().splitlines()
        assert [line.split('\t')[0] for line in lines] == ['RA', 'RB']
        groups = {frozenset(line.split('\t')[1:]) for line in lines}
        assert groups == {frozenset(f"a{i}" for i in range(5)),
                          frozenset(f"b{i}" for i in range(5))}

        assert open(dendrogram_path).read() == "1\t2\t1\n"

    def test_dendrogram_identifiers(self, cliques16, tmp_path):
        root = build_tree(cliques16, divider=BruteForceDivider(num_proc=1))
        _, dendrogram_path = root.export_indivisible_communities(str(tmp_path), 'cliques')
        lines = open(dendrogram_path).read().splitlines()
        # leaves 1..4, internal communities 5, 6 then the root 7
        assert lines == ["1\t2\t1", "3\t4\t1", "5\t6\t2"]

    def test_emptied_community(self, two_cliques, tmp_path):
        root = build_tree(two_cliques)
        root.find('RB').set_vertex_indexes([])
        assert root.num_indivisible_communities == 1

        communities_path, dendrogram_path = root.export_indivisible_communities(str(tmp_path))
        lines = open(communities_path).read().splitlines()
        assert lines[1] == 'RB\tEMPTIED'
        assert open(dendrogram_path).read() == "1\t1\t1\n"
