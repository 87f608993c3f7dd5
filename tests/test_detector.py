"""
Tests for the modularity computations of ModularityDetector.

Covers:
- Q of a split vector against NetworkX
- Generalized modularity matrix and dQ
- Moving vertex method (MVM) and global moving vertex method (gMVM)
- Cancellation and invalid networks
"""

import networkx as nx
import numpy as np
import pytest

from moddetect import ModularityDetector, ModularityNetwork, RootCommunity
from moddetect.dividers import BruteForceDivider, CommunityDivider
from moddetect.evaluation import partition_modularity
from moddetect.exceptions import ConfigurationError, DetectionCanceled, DetectionError


TWO_CLIQUES_Q = 20.0 / 21.0 - 0.5


@pytest.fixture
def karate_detector(karate, make_detector):
    """Detector of the karate club with default settings."""
    return make_detector(karate)


@pytest.fixture
def random_s(karate_detector):
    """Reproducible random split vector of the karate club."""
    rng = np.random.default_rng(42)
    return np.where(rng.random(karate_detector.network_size) < 0.5, 1.0, -1.0)


class TestModularity:
    """Q and dQ of split vectors."""

    def test_matrix_rows_sum_to_zero(self, karate_detector):
        assert np.allclose(karate_detector.B.sum(axis=1), 0.0)
        assert np.allclose(karate_detector.B, karate_detector.B.T)

    def test_q_of_two_cliques(self, two_cliques, make_detector):
        detector = make_detector(two_cliques)
        s = np.array([1.0] * 5 + [-1.0] * 5)
        assert detector.compute_modularity(s) == pytest.approx(TWO_CLIQUES_Q)

    def test_q_matches_networkx(self, karate, karate_detector, random_s):
        partition = {name: int(value > 0)
                     for name, value in zip(karate_detector.network.node_names, random_s)}
        expected = partition_modularity(karate, partition)
        assert karate_detector.compute_modularity(random_s) == pytest.approx(expected, abs=1e-12)

    def test_q_symmetric(self, karate_detector, random_s):
        assert karate_detector.compute_modularity(random_s) == \
            pytest.approx(karate_detector.compute_modularity(-random_s), abs=1e-12)

    def test_q_of_single_group_is_zero(self, karate_detector):
        s = np.ones(karate_detector.network_size)
        assert karate_detector.compute_modularity(s) == pytest.approx(0.0, abs=1e-12)

    def test_multiple_communities_q(self, karate_detector, random_s):
        assignment = (random_s > 0).astype(int)
        assert karate_detector.multiple_communities_compute_q(assignment) == \
            pytest.approx(karate_detector.compute_modularity(random_s), abs=1e-12)

    def test_batch_matches_single(self, karate_detector, random_s):
        S = np.vstack([random_s, -random_s, np.ones_like(random_s)])
        Q = karate_detector.compute_modularity_batch(S)
        assert Q[0] == pytest.approx(karate_detector.compute_modularity(random_s))
        assert Q[1] == pytest.approx(Q[0])
        assert Q[2] == pytest.approx(0.0, abs=1e-12)

    def test_evaluations_counted(self, karate_detector, random_s):
        karate_detector.compute_modularity(random_s)
        karate_detector.compute_modularity_batch(np.vstack([random_s, random_s]))
        assert karate_detector.num_evaluations == 3


class TestGeneralizedMatrix:
    """Modularity matrix of a community that is not the whole network."""

    def test_rows_sum_to_zero(self, karate_detector):
        karate_detector.compute_generalized_matrix([0, 1, 2, 5, 8, 13])
        assert karate_detector.current_size == 6
        assert not karate_detector.is_first_division()
        assert np.allclose(karate_detector.current_B.sum(axis=1), 0.0)

    def test_full_matrix_unchanged(self, karate_detector):
        B = karate_detector.B.copy()
        karate_detector.compute_generalized_matrix(list(range(10)))
        assert np.array_equal(karate_detector.B, B)

    def test_delta_q_of_subdivision(self, karate_detector):
        """dQ of a split of community g equals the change of Q of the partition."""
        n = karate_detector.network_size
        g = np.arange(0, n, 2)
        before = np.zeros(n, dtype=int)
        before[g] = 1

        s = np.where(np.arange(len(g)) % 3 == 0, 1.0, -1.0)
        after = before.copy()
        after[g[s > 0]] = 2

        karate_detector.compute_generalized_matrix(g)
        dq = karate_detector.compute_modularity(s)

        expected = (karate_detector.multiple_communities_compute_q(after)
                    - karate_detector.multiple_communities_compute_q(before))
        assert dq == pytest.approx(expected, abs=1e-12)


class TestMovingVertexMethod:
    """MVM on a split vector and gMVM on a partition."""

    def test_moving_vertex_q(self, karate_detector, random_s):
        karate_detector.current_s = random_s.copy()
        karate_detector.current_q = karate_detector.compute_modularity()
        for i in (0, 7, 33):
            predicted = karate_detector.compute_moving_vertex_q(i)
            moved = random_s.copy()
            moved[i] = -moved[i]
            assert predicted == pytest.approx(karate_detector.compute_modularity(moved), abs=1e-12)

    def test_mvm_reaches_local_optimum(self, karate_detector, random_s):
        karate_detector.current_s = random_s.copy()
        karate_detector.current_q = karate_detector.compute_modularity()
        initial_q = karate_detector.current_q

        karate_detector.moving_vertex_method()

        q = karate_detector.current_q
        assert q > initial_q
        assert q == pytest.approx(karate_detector.compute_modularity(), abs=1e-12)
        for i in range(karate_detector.network_size):
            assert karate_detector.compute_moving_vertex_q(i) <= q + 1e-12

    def test_mvm_idempotent(self, karate_detector, random_s):
        karate_detector.current_s = random_s.copy()
        karate_detector.current_q = karate_detector.compute_modularity()
        karate_detector.moving_vertex_method()
        s = karate_detector.current_s.copy()
        q = karate_detector.current_q

        karate_detector.moving_vertex_method()
        assert np.array_equal(karate_detector.current_s, s)
        assert karate_detector.current_q == q

    def test_global_mvm_fixes_misplaced_node(self, two_cliques, make_detector):
        detector = make_detector(two_cliques)
        # a1 (index 1) starts in the community of the b nodes
        assignment = [0, 1, 0, 0, 0, 1, 1, 1, 1, 1]

        detector.global_moving_vertex_method(assignment, 2)

        assert detector.current_s.tolist() == [0] * 5 + [1] * 5
        assert detector.modularity == pytest.approx(TWO_CLIQUES_Q)
        assert detector.contribution_global_mvm > 0

    def test_global_mvm_keeps_optimum(self, two_cliques, make_detector):
        detector = make_detector(two_cliques)
        detector.global_moving_vertex_method([0] * 5 + [1] * 5, 2)
        assert detector.modularity == pytest.approx(TWO_CLIQUES_Q)
        assert detector.contribution_global_mvm == 0.0

    def test_global_mvm_invalid_assignment(self, two_cliques, make_detector):
        detector = make_detector(two_cliques)
        with pytest.raises(DetectionError):
            detector.global_moving_vertex_method([0, 1], 2)
        with pytest.raises(DetectionError):
            detector.global_moving_vertex_method([0] * 9 + [2], 2)


class TestDivision:
    """Subdivision of a community and error handling."""

    def test_first_division_brute_force(self, two_cliques, make_detector):
        detector = make_detector(two_cliques, divider=BruteForceDivider(num_proc=1))
        root = RootCommunity(detector)
        assert detector.subdivision_in_two_communities(root)
        assert detector.current_q == pytest.approx(TWO_CLIQUES_Q)
        assert detector.modularity == pytest.approx(TWO_CLIQUES_Q)
        positive = detector.current_s > 0
        assert len(set(positive[:5])) == 1
        assert len(set(positive[5:])) == 1
        assert positive[0] != positive[5]

    def test_complete_graph_indivisible(self, make_detector):
        detector = make_detector(nx.complete_graph(5))
        root = RootCommunity(detector)
        assert not detector.subdivision_in_two_communities(root)
        assert detector.modularity == 0.0

    def test_divider_failure_wrapped(self, two_cliques, make_detector):
        class FailingDivider(CommunityDivider):
            identifier = 'Failing'

            def divide(self, detector):
                raise RuntimeError('boom')

        detector = make_detector(two_cliques, divider=FailingDivider())
        with pytest.raises(DetectionError, match='boom'):
            detector.divide()


class TestDetectorErrors:
    """Invalid networks and cancellation."""

    def test_network_without_edges(self):
        G = nx.Graph()
        G.add_nodes_from(['a', 'b'])
        with pytest.raises(ConfigurationError):
            ModularityDetector(ModularityNetwork(G))

    def test_empty_network(self):
        with pytest.raises(ConfigurationError):
            ModularityDetector(ModularityNetwork(nx.Graph()))

    def test_cancel(self, karate_detector, random_s):
        assert not karate_detector.is_canceled
        karate_detector.cancel()
        assert karate_detector.is_canceled
        with pytest.raises(DetectionCanceled):
            karate_detector.compute_modularity(random_s)
        with pytest.raises(DetectionCanceled):
            karate_detector.compute_generalized_matrix([0, 1])
