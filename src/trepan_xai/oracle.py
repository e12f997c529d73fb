"""Access to the black-box classifier being explained (the oracle)."""

from __future__ import annotations

import importlib
from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike


class OracleError(RuntimeError):
    """Raised when the oracle fails to label instances."""


def check_oracle(oracle: object) -> object:
    """Raise ``TypeError`` unless *oracle* exposes a callable ``predict``."""
    if not hasattr(oracle, "predict") or not callable(oracle.predict):
        raise TypeError(
            f"The oracle must expose a callable .predict() method, "
            f"got {type(oracle).__name__!r}."
        )
    return oracle


def resolve_oracle(target) -> object:
    """Return the oracle named by *target*.

    *target* is either the oracle object itself or an import string
    ``"package.module:attribute"`` naming an already-trained model.
    """
    if not isinstance(target, str):
        return check_oracle(target)
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(
            f"Oracle import string must look like 'package.module:attribute', got {target!r}."
        )
    module = importlib.import_module(module_name)
    obj = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return check_oracle(obj)


def query_oracle(oracle: object, X: np.ndarray) -> np.ndarray:
    """Label the rows of *X* with the oracle."""
    if len(X) == 0:
        return np.empty(0)
    try:
        labels = np.asarray(oracle.predict(X))
    except Exception as exc:
        raise OracleError(
            f"Oracle {type(oracle).__name__} failed to classify {len(X)} instances: {exc}"
        ) from exc
    labels = labels.reshape(-1) if labels.ndim > 1 and labels.shape[-1] == 1 else labels
    if labels.shape != (len(X),):
        raise OracleError(
            f"Oracle returned labels of shape {labels.shape} for {len(X)} instances."
        )
    return labels


class ClassEncoder:
    """Map oracle labels to class indices ``0..n_classes-1``.

    Parameters
    ----------
    classes : sequence
        The label set, in index order.
    """

    def __init__(self, classes: Sequence) -> None:
        classes = np.asarray(classes)
        if classes.ndim != 1 or len(classes) == 0:
            raise ValueError("At least one class label is required.")
        if classes.dtype.kind == "f" and not np.all(np.mod(classes, 1) == 0):
            raise ValueError(
                "The oracle must predict a nominal class; got continuous outputs."
            )
        self.classes_ = classes
        self._index = {_key(c): i for i, c in enumerate(classes.tolist())}

    @classmethod
    def from_oracle(
        cls,
        oracle: object,
        y_oracle: np.ndarray,
        classes: Optional[Sequence] = None,
    ) -> ClassEncoder:
        """Fix the label set: explicit *classes*, else ``oracle.classes_``,
        else the sorted labels seen on the real data."""
        if classes is None:
            classes = getattr(oracle, "classes_", None)
        if classes is None:
            classes = np.unique(y_oracle)
        return cls(classes)

    @property
    def n_classes(self) -> int:
        return len(self.classes_)

    def encode(self, labels: ArrayLike) -> np.ndarray:
        out = np.empty(len(labels), dtype=int)
        for i, label in enumerate(np.asarray(labels).tolist()):
            try:
                out[i] = self._index[_key(label)]
            except KeyError:
                raise OracleError(
                    f"Oracle returned label {label!r} outside the known classes "
                    f"{self.classes_.tolist()!r}."
                ) from None
        return out

    def decode(self, indices: ArrayLike) -> np.ndarray:
        return self.classes_[np.asarray(indices, dtype=int)]


def _key(label):
    # 1 and 1.0 must land in the same class
    if isinstance(label, float) and label.is_integer():
        return int(label)
    return label
