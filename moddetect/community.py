"""
Community Tree Module
=====================

The network is divided top-down into a binary tree of communities.

Algorithm:
----------
1. The root community "R" holds every node of the network.
2. A community is divided in two by the selected divider (plus MVM). The
   split is accepted only if it increases the modularity (dQ > 1e-12) and
   does not put every node on the same side.
3. The nodes with s_i > 0 form child "A" (name + 'A'), the others child "B"
   (name + 'B'). Both children are divided recursively.
4. A community that cannot be divided is an indivisible community, i.e. a
   leaf of the tree and one community of the final partition.
5. Optionally, the global moving vertex method (gMVM) moves nodes between
   the leaves. Only the leaves are updated: after gMVM a node may belong to a
   leaf that does not descend from its former ancestors, and a leaf may be
   emptied.

Outputs:
--------
- Number of communities in the tree and number of indivisible communities
- Depth of the tree
- 1-based community index written on each node of the network
- Dendrogram and indivisible communities files

Author: Modularity Detection Team
"""

import os
import time
from typing import List, Optional, TextIO

import numpy as np

from .exceptions import DetectionError
from .snapshots import INDIVISIBLE_COMMUNITY


class Community:
    """
    Node of the community tree.

    Parameters
    ----------
    detector : ModularityDetector
        Detector shared by the whole tree.
    name : str
        Path-like name ('R', 'RA', 'RAB', ...).
    vertex_indexes : np.ndarray
        Global indexes of the nodes of the community.
    depth : int
        Depth in the tree (root = 0).
    father : Community, optional
        Parent community (None for the root).
    """

    def __init__(self, detector, name: str, vertex_indexes, depth: int,
                 father: Optional['Community'] = None):
        self.detector = detector
        self.name = name
        self.vertex_indexes = np.asarray(vertex_indexes, dtype=np.int64)
        self.depth = depth
        self.father = father
        self.child1 = None
        self.child2 = None
        self.delta_q = -1.0

    @property
    def size(self) -> int:
        return len(self.vertex_indexes)

    @property
    def is_leaf(self) -> bool:
        return self.child1 is None and self.child2 is None

    def __repr__(self) -> str:
        return f"Community(name={self.name!r}, size={self.size}, depth={self.depth})"

    def set_vertex_indexes(self, vertex_indexes) -> None:
        self.vertex_indexes = np.asarray(vertex_indexes, dtype=np.int64)

    def get_node_names(self) -> List[str]:
        return self.detector.network.get_node_names(self.vertex_indexes)

    # ------------------------------------------------------------------
    # DIVISION
    # ------------------------------------------------------------------

    def divide(self, recursive: bool = True) -> None:
        """Divide the community in two, and the children if `recursive`."""
        detector = self.detector

        if self.father is not None:
            if self.size == 1:
                detector.current_community = self
                detector.current_s = -np.ones(1)
                detector.take_snapshot(INDIVISIBLE_COMMUNITY)
                return
            detector.compute_generalized_matrix(self.vertex_indexes)

        divisible = detector.subdivision_in_two_communities(self)

        if not divisible:
            self.child1 = None
            self.child2 = None
            detector.current_s = -np.ones(self.size)
            detector.take_snapshot(INDIVISIBLE_COMMUNITY)
            return

        self.delta_q = detector.current_q
        positive = detector.current_s > 0

        self.child1 = Community(detector, self.name + 'A', self.vertex_indexes[positive],
                                self.depth + 1, father=self)
        self.child2 = Community(detector, self.name + 'B', self.vertex_indexes[~positive],
                                self.depth + 1, father=self)

        if recursive:
            self.child1.divide(recursive)
            self.child2.divide(recursive)

    # ------------------------------------------------------------------
    # TREE TRAVERSAL
    # ------------------------------------------------------------------

    def _check_children(self) -> None:
        if (self.child1 is None) != (self.child2 is None):
            raise DetectionError(f"Community {self.name} must have zero or two children.")

    def traverse(self, leaves: List['Community']) -> tuple:
        """
        Collect the leaves below this community.

        Returns
        -------
        tuple
            (number of communities in the subtree, depth of the subtree)
        """
        self._check_children()
        if self.is_leaf:
            leaves.append(self)
            return 1, 1
        count1, depth1 = self.child1.traverse(leaves)
        count2, depth2 = self.child2.traverse(leaves)
        return 1 + count1 + count2, 1 + max(depth1, depth2)

    def extract_all_communities(self, communities: List['Community']) -> None:
        communities.append(self)
        if self.child1 is not None:
            self.child1.extract_all_communities(communities)
            self.child2.extract_all_communities(communities)

    def extract_communities_same_depth(self, depth: int, communities: List['Community']) -> None:
        if self.depth == depth:
            communities.append(self)
        elif self.child1 is not None:
            self.child1.extract_communities_same_depth(depth, communities)
            self.child2.extract_communities_same_depth(depth, communities)

    def find(self, name: str) -> Optional['Community']:
        """Community of the subtree with the given name."""
        if self.name == name:
            return self
        if self.child1 is not None:
            return self.child1.find(name) or self.child2.find(name)
        return None

    def build_name_tree(self, edges: List[tuple]) -> None:
        """Append (parent name, child name) pairs of the subtree."""
        if self.child1 is not None:
            edges.append((self.name, self.child1.name))
            edges.append((self.name, self.child2.name))
            self.child1.build_name_tree(edges)
            self.child2.build_name_tree(edges)

    def export_communities(self, fw_communities: TextIO, fw_dendrogram: TextIO,
                           inter_counter: List[int], leaf_counter: List[int],
                           tree_depth: int) -> int:
        """
        Write the leaves and the dendrogram of the subtree.

        Returns the identifier of this community in the dendrogram.
        """
        self._check_children()

        if self.child1 is not None:
            child1_id = self.child1.export_communities(
                fw_communities, fw_dendrogram, inter_counter, leaf_counter, tree_depth)
            child2_id = self.child2.export_communities(
                fw_communities, fw_dendrogram, inter_counter, leaf_counter, tree_depth)
            fw_dendrogram.write(f"{child1_id}\t{child2_id}\t{tree_depth - self.depth - 1}\n")
            inter_counter[0] += 1
            return inter_counter[0]

        # gMVM may have emptied this community
        if self.size > 0:
            fw_communities.write(self.name + '\t' + '\t'.join(self.get_node_names()) + '\n')
            leaf_counter[0] += 1
        else:
            fw_communities.write(self.name + '\tEMPTIED\n')
        return leaf_counter[0]


class RootCommunity(Community):
    """
    Root of the community tree and entry point of the detection.

    Parameters
    ----------
    detector : ModularityDetector
        Detector of the network to divide.

    Attributes
    ----------
    num_communities : int
        Number of communities in the tree (internal nodes and leaves).
    community_tree_depth : int
        Depth of the tree (a single leaf has depth 1).
    indivisible_communities : List[Community]
        Leaves of the tree, child A before child B.
    computation_time : float
        Duration of the detection in seconds.
    """

    def __init__(self, detector):
        super().__init__(detector, 'R', np.arange(detector.network_size), 0)
        self.num_communities = 0
        self.community_tree_depth = 0
        self.indivisible_communities = []
        self.computation_time = 0.0

        detector.reset()
        if detector.snapshot is not None:
            detector.snapshot.reset()

        # state of the network before the detection
        detector.current_community = self
        detector.current_s = -np.ones(self.size)
        detector.take_snapshot('')
        detector.current_s = None

    def traverse_community_tree(self) -> None:
        """Set the leaves, the number of communities and the tree depth."""
        leaves = []
        self.num_communities, self.community_tree_depth = self.traverse(leaves)
        self.indivisible_communities = leaves

    def get_multiple_communities_vector(self) -> np.ndarray:
        """Index of the leaf of every node (-1 when no leaf holds it)."""
        s = -np.ones(self.size, dtype=np.int64)
        for i, community in enumerate(self.indivisible_communities):
            s[community.vertex_indexes] = i
        return s

    @property
    def num_indivisible_communities(self) -> int:
        return sum(1 for community in self.indivisible_communities if community.size > 0)

    def run_modularity_detection(self, recursive: bool = True) -> float:
        """
        Divide the network and return its modularity Q.

        Parameters
        ----------
        recursive : bool
            Divide the children recursively. When False only the root is
            divided.
        """
        detector = self.detector
        t0 = time.time()
        detector.reset()

        self.divide(recursive)
        self.traverse_community_tree()

        if recursive and detector.settings.use_global_moving_vertex:
            assignment = self.get_multiple_communities_vector()
            detector.global_moving_vertex_method(assignment, len(self.indivisible_communities))
            assignment = detector.current_s
            for i, community in enumerate(self.indivisible_communities):
                community.set_vertex_indexes(np.flatnonzero(assignment == i))

        network = detector.network
        for i, community in enumerate(self.indivisible_communities):
            for index in community.vertex_indexes:
                network.set_community_index(int(index), i + 1)

        self.computation_time = time.time() - t0
        return detector.modularity

    def export_indivisible_communities(self, directory: str, base_name: Optional[str] = None) -> tuple:
        """
        Write `<name>_indivisible_communities.txt` and `<name>_dendrogram.txt`.

        Each line of the first file is the name of a leaf followed by its
        nodes (tab-separated), or EMPTIED. Each line of the dendrogram joins
        two communities: leaves are numbered 1..L in file order, internal
        communities L+1, L+2, ... in the order they are written.

        Returns
        -------
        tuple
            (communities file path, dendrogram file path)
        """
        self.detector.check_canceled()
        base_name = base_name or self.detector.network.name
        os.makedirs(directory, exist_ok=True)
        communities_path = os.path.join(directory, base_name + '_indivisible_communities.txt')
        dendrogram_path = os.path.join(directory, base_name + '_dendrogram.txt')

        try:
            with open(communities_path, 'w') as fw_communities, \
                    open(dendrogram_path, 'w') as fw_dendrogram:
                self.export_communities(fw_communities, fw_dendrogram,
                                        [len(self.indivisible_communities)], [0],
                                        self.community_tree_depth)
        except OSError as e:
            raise DetectionError(f"Could not write communities or dendrogram file: {e}") from e

        return communities_path, dendrogram_path
