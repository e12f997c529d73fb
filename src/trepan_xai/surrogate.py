"""TREPAN surrogate with the fit / predict surface of the other surrogates."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike
from sklearn.exceptions import NotFittedError

from .attributes import Attribute, infer_attributes
from .builder import BuildResult, TrepanBuilder, TrepanConfig
from .tree import TrepanTree


class TrepanSurrogate:
    """Decision tree extracted from a black-box oracle with TREPAN.

    Unlike a plain surrogate fitted on ``(X, model.predict(X))``, this one
    queries the oracle itself, including on synthetic instances drawn at
    nodes that hold fewer than ``min_samples`` examples.

    Parameters
    ----------
    oracle : object or str
        Trained model exposing ``predict(X)``, or an import string naming one.
    max_nodes, min_samples, proportion_threshold, best_first, pruning,
    precision, laplace, random_state
        See :class:`~trepan_xai.builder.TrepanConfig`.
    """

    def __init__(
        self,
        oracle,
        *,
        max_nodes: int = 0,
        min_samples: int = 100,
        proportion_threshold: float = 0.95,
        best_first: bool = False,
        pruning: bool = False,
        precision: float = 0.01,
        laplace: bool = False,
        random_state: int = 0,
    ) -> None:
        self.oracle = oracle
        self.config = TrepanConfig(
            max_nodes=max_nodes,
            min_samples=min_samples,
            proportion_threshold=proportion_threshold,
            best_first=best_first,
            pruning=pruning,
            precision=precision,
            laplace=laplace,
            random_state=random_state,
        )
        self.result_: Optional[BuildResult] = None

    def fit(
        self,
        X: ArrayLike,
        attributes: Optional[Sequence[Attribute]] = None,
        *,
        classes: Optional[Sequence] = None,
    ) -> TrepanSurrogate:
        """Extract the tree; *attributes* default to all-numeric."""
        if attributes is None:
            attributes = infer_attributes(X)
        self.result_ = TrepanBuilder(self.oracle, self.config).build(
            X, attributes, classes,
        )
        return self

    def _fitted(self) -> BuildResult:
        if self.result_ is None:
            raise NotFittedError(
                "This TrepanSurrogate instance is not fitted yet; call fit() first."
            )
        return self.result_

    def predict(self, X: ArrayLike) -> np.ndarray:
        result = self._fitted()
        return result.encoder.decode(result.tree.predict_encoded(X))

    def predict_proba(self, X: ArrayLike) -> np.ndarray:
        return self._fitted().tree.predict_proba(X)

    def apply(self, X: ArrayLike) -> np.ndarray:
        return self._fitted().tree.apply(X)

    def get_depth(self) -> int:
        return self._fitted().tree.depth()

    def get_n_leaves(self) -> int:
        return self._fitted().counts.n_leaves

    def get_n_nodes(self) -> int:
        return self._fitted().counts.n_nodes

    @property
    def tree_(self) -> TrepanTree:
        return self._fitted().tree

    @property
    def classes_(self) -> np.ndarray:
        return self._fitted().encoder.classes_

    @property
    def attributes_(self) -> tuple[Attribute, ...]:
        return self._fitted().tree.attributes

    @property
    def fidelity_(self) -> float:
        """Tree/oracle agreement on the real and synthetic build data."""
        return self._fitted().fidelity

    @property
    def n_synthetic_(self) -> int:
        return self._fitted().n_synthetic

    def export_text(self, class_names: Sequence[str] = ()) -> str:
        from .visualization import export_text

        return export_text(self.tree_, class_names or [str(c) for c in self.classes_])
