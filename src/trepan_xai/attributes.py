"""Attribute metadata and dataset validation for tree extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike


@dataclass(frozen=True)
class Attribute:
    """Description of one input column.

    Parameters
    ----------
    name : str
        Human-readable attribute name.
    values : tuple of str or None
        Category labels for a nominal attribute (code ``i`` is
        ``values[i]``), ``None`` for a numeric attribute.
    """

    name: str
    values: Optional[tuple[str, ...]] = None

    @classmethod
    def nominal(cls, name: str, values: Sequence) -> Attribute:
        if len(values) == 0:
            raise ValueError(f"Nominal attribute {name!r} needs at least one value.")
        return cls(name=name, values=tuple(str(v) for v in values))

    @classmethod
    def numeric(cls, name: str) -> Attribute:
        return cls(name=name, values=None)

    @property
    def is_nominal(self) -> bool:
        return self.values is not None

    @property
    def arity(self) -> int:
        """Number of branches a split on this attribute produces."""
        return len(self.values) if self.values is not None else 2

    def label(self, code: int) -> str:
        if self.values is None:
            raise ValueError(f"Attribute {self.name!r} is numeric.")
        return self.values[code]


def infer_attributes(
    X: ArrayLike,
    feature_names: Optional[Sequence[str]] = None,
    categorical_features: Optional[Sequence] = None,
    categories: Optional[Mapping[str, Sequence]] = None,
) -> tuple[Attribute, ...]:
    """Build attribute metadata for an integer-coded numeric matrix.

    Columns listed in *categorical_features* (by index or by name) are
    nominal.  Their labels come from *categories* when given, otherwise the
    domain is ``0..max(code)`` and labels are the codes themselves.
    """
    X = as_numeric_matrix(X)
    n_features = X.shape[1]
    if feature_names is None:
        feature_names = [f"feature_{i}" for i in range(n_features)]
    feature_names = list(feature_names)
    if len(feature_names) != n_features:
        raise ValueError(
            f"Got {len(feature_names)} feature names for {n_features} columns."
        )

    nominal_idx: set[int] = set()
    for feat in categorical_features or ():
        if isinstance(feat, str):
            if feat not in feature_names:
                raise ValueError(f"Unknown categorical feature {feat!r}.")
            nominal_idx.add(feature_names.index(feat))
        else:
            nominal_idx.add(int(feat))

    categories = dict(categories or {})
    attributes: list[Attribute] = []
    for i, name in enumerate(feature_names):
        if i not in nominal_idx:
            attributes.append(Attribute.numeric(name))
            continue
        if name in categories:
            attributes.append(Attribute.nominal(name, categories[name]))
            continue
        column = X[:, i]
        column = column[~np.isnan(column)]
        size = int(column.max()) + 1 if column.size else 1
        attributes.append(Attribute.nominal(name, [str(v) for v in range(size)]))
    return tuple(attributes)


def as_numeric_matrix(X: ArrayLike) -> np.ndarray:
    """Return *X* as a 2-D float array, rejecting string columns."""
    arr = np.asarray(X)
    if arr.dtype.kind in ("U", "S", "O"):
        try:
            arr = arr.astype(float)
        except (TypeError, ValueError) as exc:
            raise TypeError(
                "String attributes are not supported; encode nominal "
                "attributes as integer codes first."
            ) from exc
    arr = np.asarray(arr, dtype=float)
    if arr.ndim != 2:
        raise ValueError(f"X must be 2-dimensional, got shape {arr.shape}.")
    return arr


def validate_dataset(X: ArrayLike, attributes: Sequence[Attribute]) -> np.ndarray:
    """Check that *X* can be fed to the tree builder and return it as floats."""
    X = as_numeric_matrix(X)
    if X.shape[0] == 0:
        raise ValueError("No training instances.")
    if X.shape[1] != len(attributes):
        raise ValueError(
            f"X has {X.shape[1]} columns but {len(attributes)} attributes were given."
        )
    if np.isnan(X).any():
        raise ValueError(
            "X contains missing values; impute them before building the tree."
        )
    for i, attr in enumerate(attributes):
        if not attr.is_nominal:
            continue
        column = X[:, i]
        bad = (column < 0) | (column >= attr.arity) | (column != np.floor(column))
        if bad.any():
            raise ValueError(
                f"Attribute {attr.name!r} expects integer codes in "
                f"[0, {attr.arity - 1}], got {column[bad][0]!r}."
            )
    return X


def attribute_names(attributes: Sequence[Attribute]) -> tuple[str, ...]:
    return tuple(a.name for a in attributes)

