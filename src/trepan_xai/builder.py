"""TREPAN tree induction: queue-driven expansion, best-first restriction,
pruning and fidelity measurement."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike

from .attributes import Attribute, validate_dataset
from .oracle import ClassEncoder, query_oracle, resolve_oracle
from .sampling import draw_sample
from .splitting import select_split
from .tree import NodeType, TreeCounts, TreeNode, TrepanTree

logger = logging.getLogger(__name__)

#: Node count at which an otherwise unbounded expansion stops.
UNBOUNDED_NODE_LIMIT = 99999


@dataclass(frozen=True)
class TrepanConfig:
    """Settings of one tree extraction.

    Parameters
    ----------
    max_nodes : int
        Node budget; 0 means no budget (growth still stops at
        ``UNBOUNDED_NODE_LIMIT`` nodes).  Without ``best_first`` the budget
        stops the expansion loop.  With ``best_first`` the tree is grown in
        full and then restricted to the ``max_nodes`` most valuable nodes.
    min_samples : int
        Minimum number of examples a node must hold before a split is chosen;
        missing examples are synthesized and labelled by the oracle.
    proportion_threshold : float
        A node whose majority class exceeds this proportion becomes a leaf.
    best_first : bool
        Select nodes by ``reach * (1 - fidelity)`` under the node budget.
    pruning : bool
        Collapse subtrees whose leaves all predict the same class.
    precision : float
        Quantization grain of the numeric density estimators.
    laplace : bool
        Laplace-smooth the nominal density estimators.
    random_state : int
        Seed of the per-node generator driving instance synthesis.
    """

    max_nodes: int = 0
    min_samples: int = 100
    proportion_threshold: float = 0.95
    best_first: bool = False
    pruning: bool = False
    precision: float = 0.01
    laplace: bool = False
    random_state: int = 0

    def __post_init__(self) -> None:
        if self.max_nodes < 0:
            raise ValueError(f"max_nodes must be >= 0, got {self.max_nodes}.")
        if self.min_samples < 0:
            raise ValueError(f"min_samples must be >= 0, got {self.min_samples}.")
        if not 0 < self.proportion_threshold <= 1:
            raise ValueError(
                f"proportion_threshold must be in (0, 1], got {self.proportion_threshold}."
            )
        if self.precision <= 0:
            raise ValueError(f"precision must be positive, got {self.precision}.")

    @property
    def expansion_limit(self) -> int:
        """Node count at which the expansion loop stops."""
        if self.max_nodes > 0 and not self.best_first:
            return self.max_nodes
        return UNBOUNDED_NODE_LIMIT


@dataclass(frozen=True)
class BuildResult:
    """Outcome of :meth:`TrepanBuilder.build`.

    Attributes
    ----------
    tree : TrepanTree
        The extracted tree.
    encoder : ClassEncoder
        Mapping between oracle labels and class indices.
    fidelity : float
        Agreement between tree and oracle on ``X_oracle``.
    X_oracle, y_oracle : ndarray
        Real rows followed by every synthesized row, with encoded oracle
        labels.
    n_real : int
        Number of real rows at the start of ``X_oracle``.
    counts : TreeCounts
        Node and leaf counts of the final tree.
    """

    tree: TrepanTree
    encoder: ClassEncoder
    fidelity: float
    X_oracle: np.ndarray
    y_oracle: np.ndarray
    n_real: int
    counts: TreeCounts

    @property
    def n_synthetic(self) -> int:
        return len(self.y_oracle) - self.n_real


class TrepanBuilder:
    """Grow a decision tree that mimics *oracle*.

    Parameters
    ----------
    oracle : object or str
        Trained model exposing ``predict(X)``, or an import string
        ``"package.module:attribute"`` naming one.
    config : TrepanConfig or None
        Extraction settings (defaults when omitted).
    """

    def __init__(self, oracle, config: Optional[TrepanConfig] = None) -> None:
        self.oracle = resolve_oracle(oracle)
        self.config = config or TrepanConfig()

    def build(
        self,
        X: ArrayLike,
        attributes: Sequence[Attribute],
        classes: Optional[Sequence] = None,
    ) -> BuildResult:
        """Extract the tree from the oracle's behaviour on *X*.

        Raises
        ------
        ValueError
            If *X* is empty, contains missing values or does not match
            *attributes*, or the oracle output is not a nominal class.
        TypeError
            If *X* holds string attributes.
        OracleError
            If the oracle fails while labelling real or synthetic rows.
        """
        cfg = self.config
        X = validate_dataset(X, attributes)
        y_raw = query_oracle(self.oracle, X)
        encoder = ClassEncoder.from_oracle(self.oracle, y_raw, classes)
        y = encoder.encode(y_raw)

        tree = TrepanTree(attributes, encoder.n_classes)
        root = tree.add_root(X, y)
        self._prepare(tree, root, encoder)

        queue: deque[int] = deque([root.index])
        next_id = 0
        n_live = 1
        limit = cfg.expansion_limit

        while queue and n_live < limit:
            node = tree.nodes[queue.popleft()]
            node.node_id = next_id
            next_id += 1

            X_node, y_node = node.all_examples()
            decision = select_split(
                X_node, y_node, tree.attributes, tree.n_classes, cfg.proportion_threshold,
            )
            if decision.is_leaf:
                node.make_leaf()
                continue

            children = tree.split_node(node.index, decision.attribute, decision.threshold)
            n_live += len(children)
            for idx in children:
                child = tree.nodes[idx]
                if child.node_type is NodeType.LEAF:
                    child.node_id = next_id
                    next_id += 1
                else:
                    self._prepare(tree, child, encoder)
                    queue.append(idx)
            logger.debug(
                "Node %d split on %r (gain=%.4f) into %d children.",
                node.node_id, tree.attributes[decision.attribute].name,
                decision.gain, len(children),
            )

        if queue and limit == UNBOUNDED_NODE_LIMIT:
            logger.warning(
                "Expansion stopped at %d nodes; set max_nodes to bound the tree.", n_live,
            )
        elif queue:
            logger.debug("Node budget reached; %d queued nodes become leaves.", len(queue))
        while queue:
            node = tree.nodes[queue.popleft()]
            node.node_id = next_id
            next_id += 1
            node.make_leaf()

        if cfg.max_nodes > 0 and cfg.best_first and tree.count().n_nodes > cfg.max_nodes:
            collapsed = tree.restrict_best_first(cfg.max_nodes)
            logger.debug("Best-first selection collapsed %d subtrees.", collapsed)

        if cfg.pruning:
            collapsed = tree.prune()
            logger.debug("Pruning collapsed %d nodes.", collapsed)

        X_oracle = np.vstack([X] + [n.X_synthetic for n in tree.nodes])
        y_oracle = np.concatenate([y] + [n.y_synthetic for n in tree.nodes])
        fidelity = compute_tree_fidelity(tree, X_oracle, y_oracle)
        counts = tree.count()

        logger.info(
            "Extracted tree with %d nodes (%d leaves) from %d real and %d synthetic "
            "instances; fidelity %.4f.",
            counts.n_nodes, counts.n_leaves, len(y), len(y_oracle) - len(y), fidelity,
        )
        return BuildResult(
            tree=tree,
            encoder=encoder,
            fidelity=fidelity,
            X_oracle=X_oracle,
            y_oracle=y_oracle,
            n_real=len(y),
            counts=counts,
        )

    def _prepare(self, tree: TrepanTree, node: TreeNode, encoder: ClassEncoder) -> None:
        """Synthesize examples for *node* and compute its statistics."""
        cfg = self.config
        draw_sample(
            node,
            cfg.min_samples,
            self.oracle,
            tree.attributes,
            encoder,
            random_state=cfg.random_state,
            precision=cfg.precision,
            laplace=cfg.laplace,
        )
        node.compute_statistics(tree.n_classes)


def compute_tree_fidelity(tree: TrepanTree, X: np.ndarray, y_oracle: np.ndarray) -> float:
    """Fraction of rows on which the tree agrees with the encoded oracle labels."""
    if len(y_oracle) == 0:
        return 0.0
    return float(np.mean(tree.predict_encoded(X) == y_oracle))
