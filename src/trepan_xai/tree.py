"""Tree structure of an extracted TREPAN model.

Nodes live in an arena (:attr:`TrepanTree.nodes`) and refer to each other by
integer index only.  A node's parent link is an index, never an owning
reference, so the structure cannot form cycles.  Collapsing a subtree simply
disconnects the children; they stay in the arena but are no longer reachable
from the root.
"""

from __future__ import annotations

import heapq
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Sequence

import numpy as np

from .attributes import Attribute


class NodeType(Enum):
    ROOT = "root"
    INTERNAL = "internal"
    LEAF = "leaf"


@dataclass
class TreeNode:
    """One node of the extracted tree.

    Attributes
    ----------
    index : int
        Slot in the arena.
    X, y : ndarray
        Real examples reaching this node and their encoded oracle labels.
    X_synthetic, y_synthetic : ndarray
        Instances generated at this node.
    node_id : int or None
        Sequence number assigned when the node is dequeued (or immediately,
        for empty branches).
    reach : float
        Expected fraction of the population arriving at this node.
    fidelity : float
        Mass of the majority class in :attr:`distribution`.
    best_first : float
        ``reach * (1 - fidelity)``.
    """

    index: int
    X: np.ndarray
    y: np.ndarray
    parent: Optional[int] = None
    node_type: NodeType = NodeType.INTERNAL
    node_id: Optional[int] = None
    X_synthetic: Optional[np.ndarray] = None
    y_synthetic: Optional[np.ndarray] = None
    distribution: Optional[np.ndarray] = None
    class_label: int = 0
    attribute: Optional[int] = None
    threshold: Optional[float] = None
    children: list[int] = field(default_factory=list)
    reach: float = 0.0
    fidelity: float = 0.0
    best_first: float = 0.0

    def __post_init__(self) -> None:
        if self.X_synthetic is None:
            self.X_synthetic = np.empty((0, self.X.shape[1]))
        if self.y_synthetic is None:
            self.y_synthetic = np.empty(0, dtype=int)

    @property
    def n_examples(self) -> int:
        return len(self.y)

    @property
    def n_synthetic(self) -> int:
        return len(self.y_synthetic)

    @property
    def n_total(self) -> int:
        return self.n_examples + self.n_synthetic

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def all_examples(self) -> tuple[np.ndarray, np.ndarray]:
        """Inherited and synthetic examples stacked together."""
        if not self.n_synthetic:
            return self.X, self.y
        return (
            np.vstack([self.X, self.X_synthetic]),
            np.concatenate([self.y, self.y_synthetic]),
        )

    def compute_statistics(self, n_classes: int) -> None:
        """Class distribution, label, fidelity and best-first value."""
        _, y = self.all_examples()
        counts = np.bincount(y.astype(int), minlength=n_classes).astype(float)
        total = counts.sum()
        self.distribution = counts / total if total > 0 else counts
        self.class_label = int(np.argmax(self.distribution))
        self.fidelity = float(self.distribution[self.class_label])
        self.best_first = self.reach * (1.0 - self.fidelity)

    def make_leaf(self) -> None:
        self.attribute = None
        self.threshold = None
        self.children = []
        self.node_type = NodeType.LEAF


@dataclass(frozen=True)
class TreeCounts:
    n_nodes: int
    n_leaves: int

    @property
    def n_internal(self) -> int:
        return self.n_nodes - self.n_leaves


class TrepanTree:
    """Arena of :class:`TreeNode` objects rooted at index 0."""

    def __init__(self, attributes: Sequence[Attribute], n_classes: int) -> None:
        self.attributes = tuple(attributes)
        self.n_classes = int(n_classes)
        self.nodes: list[TreeNode] = []

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_root(self, X: np.ndarray, y: np.ndarray) -> TreeNode:
        if self.nodes:
            raise ValueError("The tree already has a root.")
        root = self._new_node(X, y, parent=None, node_type=NodeType.ROOT)
        root.reach = 1.0
        return root

    def _new_node(self, X, y, *, parent, node_type) -> TreeNode:
        node = TreeNode(index=len(self.nodes), X=X, y=y, parent=parent,
                        node_type=node_type)
        self.nodes.append(node)
        return node

    @property
    def root(self) -> TreeNode:
        if not self.nodes:
            raise ValueError("The tree is empty.")
        return self.nodes[0]

    def _branch_masks(self, X: np.ndarray, attribute: int, threshold) -> list[np.ndarray]:
        column = X[:, attribute]
        attr = self.attributes[attribute]
        if attr.is_nominal:
            codes = column.astype(int)
            return [codes == v for v in range(attr.arity)]
        low = column <= threshold
        return [low, ~low]

    def split_node(self, index: int, attribute: int, threshold: Optional[float] = None) -> list[int]:
        """Partition a node's examples and create its children.

        Each child receives the node's real examples that fall into its
        branch; the synthetic examples only weigh in on the child's reach.
        Returns the arena indices of the new children.  When at most one
        branch receives real examples the split is abandoned, the node
        becomes a leaf and an empty list is returned.
        """
        node = self.nodes[index]
        real_masks = self._branch_masks(node.X, attribute, threshold)
        synth_masks = self._branch_masks(node.X_synthetic, attribute, threshold)
        n_real = [int(r.sum()) for r in real_masks]

        if sum(1 for n in n_real if n > 0) <= 1:
            node.make_leaf()
            return []

        parent_total = node.n_total
        children: list[int] = []
        for real, synth, size in zip(real_masks, synth_masks, n_real):
            X_child = node.X[real]
            y_child = node.y[real]
            if size == 0:
                child = self._new_node(X_child, y_child, parent=index,
                                       node_type=NodeType.LEAF)
                child.class_label = node.class_label
                child.distribution = np.zeros(self.n_classes)
                child.distribution[node.class_label] = 1.0
            else:
                child = self._new_node(X_child, y_child, parent=index,
                                       node_type=NodeType.INTERNAL)
                child.reach = node.reach * (size + int(synth.sum())) / parent_total
            children.append(child.index)

        node.attribute = attribute
        node.threshold = None if self.attributes[attribute].is_nominal else float(threshold)
        node.children = children
        return children

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def walk(self) -> Iterator[TreeNode]:
        """Pre-order iteration over the nodes reachable from the root."""
        if not self.nodes:
            return
        stack = [0]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def count(self) -> TreeCounts:
        n_nodes = 0
        n_leaves = 0
        for node in self.walk():
            n_nodes += 1
            if node.is_leaf:
                n_leaves += 1
        return TreeCounts(n_nodes=n_nodes, n_leaves=n_leaves)

    def depth(self) -> int:
        """Number of edges on the longest root-to-leaf path."""
        if not self.nodes:
            return 0
        best = 0
        stack = [(0, 0)]
        while stack:
            idx, d = stack.pop()
            best = max(best, d)
            stack.extend((c, d + 1) for c in self.nodes[idx].children)
        return best

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def _descend(self, row: np.ndarray) -> TreeNode:
        node = self.root
        while node.children:
            value = row[node.attribute]
            if node.threshold is None:
                code = int(value)
                if not 0 <= code < len(node.children):
                    raise ValueError(
                        f"Value {value!r} is outside the domain of attribute "
                        f"{self.attributes[node.attribute].name!r}."
                    )
                node = self.nodes[node.children[code]]
            elif value <= node.threshold:
                node = self.nodes[node.children[0]]
            else:
                node = self.nodes[node.children[1]]
        return node

    def _check_input(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.shape[1] != len(self.attributes):
            raise ValueError(
                f"Expected {len(self.attributes)} attributes, got {X.shape[1]}."
            )
        if np.isnan(X).any():
            raise ValueError("X contains missing values; impute them first.")
        return X

    def apply(self, X) -> np.ndarray:
        """Arena index of the leaf reached by each row."""
        X = self._check_input(X)
        return np.array([self._descend(row).index for row in X], dtype=int)

    def predict_encoded(self, X) -> np.ndarray:
        X = self._check_input(X)
        return np.array([self._descend(row).class_label for row in X], dtype=int)

    def predict_proba(self, X) -> np.ndarray:
        X = self._check_input(X)
        out = np.zeros((len(X), self.n_classes))
        for i, row in enumerate(X):
            out[i] = self._descend(row).distribution
        return out

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    def restrict_best_first(self, max_nodes: int) -> int:
        """Keep only the *max_nodes* most valuable expansions.

        Starting from the root, repeatedly select the candidate with the
        highest best-first value among the children of already selected
        nodes.  Every reachable node that was not selected becomes a leaf.
        Returns the number of subtrees collapsed.
        """
        if max_nodes <= 0 or not self.nodes:
            return 0
        selected = {0}
        pool: list[tuple[float, int]] = []

        def offer(idx: int) -> None:
            for c in self.nodes[idx].children:
                heapq.heappush(pool, (-self.nodes[c].best_first, c))

        offer(0)
        while len(selected) < max_nodes and pool:
            _, idx = heapq.heappop(pool)
            selected.add(idx)
            offer(idx)

        collapsed = 0
        queue = deque([0])
        while queue:
            node = self.nodes[queue.popleft()]
            if node.index not in selected:
                if node.children:
                    collapsed += 1
                node.make_leaf()
            else:
                queue.extend(node.children)
        return collapsed

    def prune(self) -> int:
        """Collapse internal nodes whose children are leaves with one label.

        Repeats bottom-up passes until nothing changes and returns the
        number of collapsed nodes.
        """
        collapsed = 0
        changed = True
        while changed:
            changed = False
            for node in reversed(list(self.walk())):
                if node.is_leaf:
                    continue
                kids = [self.nodes[c] for c in node.children]
                if any(not k.is_leaf for k in kids):
                    continue
                labels = {k.class_label for k in kids}
                if len(labels) == 1:
                    node.class_label = labels.pop()
                    node.make_leaf()
                    collapsed += 1
                    changed = True
        return collapsed
