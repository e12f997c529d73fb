"""Replacement of missing values before tree extraction.

The tree builder rejects ``nan`` inputs, so the explainer imputes them first:
numeric attributes get the column mean, nominal attributes the most frequent
code.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike
from sklearn.exceptions import NotFittedError
from sklearn.impute import SimpleImputer

from .attributes import Attribute, as_numeric_matrix


class MissingValueImputer:
    """Column-wise mean / mode imputation driven by attribute kinds."""

    def __init__(self, attributes: Sequence[Attribute]) -> None:
        self.attributes = tuple(attributes)
        self._numeric = [i for i, a in enumerate(self.attributes) if not a.is_nominal]
        self._nominal = [i for i, a in enumerate(self.attributes) if a.is_nominal]
        self._imputers: Optional[dict[str, SimpleImputer]] = None

    def fit(self, X: ArrayLike) -> MissingValueImputer:
        X = as_numeric_matrix(X)
        imputers: dict[str, SimpleImputer] = {}
        if self._numeric:
            imputers["numeric"] = SimpleImputer(
                strategy="mean", keep_empty_features=True,
            ).fit(X[:, self._numeric])
        if self._nominal:
            imputers["nominal"] = SimpleImputer(
                strategy="most_frequent", keep_empty_features=True,
            ).fit(X[:, self._nominal])
        self._imputers = imputers
        return self

    def transform(self, X: ArrayLike) -> np.ndarray:
        if self._imputers is None:
            raise NotFittedError("MissingValueImputer is not fitted yet; call fit() first.")
        X = as_numeric_matrix(X).copy()
        if not np.isnan(X).any():
            return X
        if "numeric" in self._imputers:
            X[:, self._numeric] = self._imputers["numeric"].transform(X[:, self._numeric])
        if "nominal" in self._imputers:
            X[:, self._nominal] = self._imputers["nominal"].transform(X[:, self._nominal])
        return X

    def fit_transform(self, X: ArrayLike) -> np.ndarray:
        return self.fit(X).transform(X)
