"""Synthesis of oracle-labelled query instances for under-populated nodes.

A node with fewer than ``min_samples`` examples is topped up with synthetic
instances.  Each attribute value is drawn independently from that
attribute's marginal estimator fitted on the node's examples, so
inter-attribute correlations are not reproduced.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from .attributes import Attribute
from .estimators import DensityEstimator, make_estimator
from .oracle import ClassEncoder, query_oracle
from .tree import TreeNode

logger = logging.getLogger(__name__)

_SEED_BOUND = 2**31 - 1


def fit_estimators(
    X: np.ndarray,
    attributes: Sequence[Attribute],
    *,
    precision: float = 0.01,
    laplace: bool = False,
) -> list[DensityEstimator]:
    """Fit one estimator per attribute on the rows of *X*."""
    estimators = [
        make_estimator(attr, precision=precision, laplace=laplace)
        for attr in attributes
    ]
    for row in X:
        for estimator, value in zip(estimators, row):
            estimator.add_value(value, 1.0)
    return estimators


def draw_instances(
    estimators: Sequence[DensityEstimator],
    n_instances: int,
    rng: np.random.RandomState,
) -> np.ndarray:
    """Draw *n_instances* feature vectors, one seed per attribute value."""
    out = np.empty((n_instances, len(estimators)))
    for i in range(n_instances):
        for j, estimator in enumerate(estimators):
            out[i, j] = estimator.sample(int(rng.randint(0, _SEED_BOUND)))
    return out


def draw_sample(
    node: TreeNode,
    min_samples: int,
    oracle: object,
    attributes: Sequence[Attribute],
    encoder: ClassEncoder,
    *,
    random_state: int = 0,
    precision: float = 0.01,
    laplace: bool = False,
) -> int:
    """Top *node* up to *min_samples* examples with synthetic instances.

    The generated rows are labelled by *oracle* and stored as the node's
    synthetic set.  Returns the number of rows stored.
    """
    n_missing = min_samples - node.n_examples
    if n_missing <= 0:
        return 0
    if node.n_examples == 0:
        logger.warning("Node %d has no examples to estimate from; skipping synthesis.",
                       node.index)
        return 0

    estimators = fit_estimators(
        node.X, attributes, precision=precision, laplace=laplace,
    )
    rng = np.random.RandomState(random_state)
    X_new = draw_instances(estimators, n_missing, rng)

    valid = ~np.isnan(X_new).any(axis=1)
    if not valid.all():
        logger.warning("Dropping %d synthetic rows with undefined values at node %d.",
                       int((~valid).sum()), node.index)
        X_new = X_new[valid]

    y_new = encoder.encode(query_oracle(oracle, X_new))
    node.X_synthetic = X_new
    node.y_synthetic = y_new
    logger.debug("Node %d: drew %d synthetic instances (%d real).",
                 node.index, len(X_new), node.n_examples)
    return len(X_new)
