"""Information-gain split selection for nominal and numeric attributes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .attributes import Attribute

#: Gains at or below this value count as "no informative split".
GAIN_EPSILON = 1e-6


@dataclass(frozen=True)
class SplitDecision:
    """Outcome of :func:`select_split`.

    ``attribute is None`` means the node should become a leaf.
    """

    attribute: Optional[int]
    threshold: Optional[float]
    gain: float
    purity: float

    @property
    def is_leaf(self) -> bool:
        return self.attribute is None


def entropy(counts: np.ndarray) -> float:
    """Base-2 entropy of a class-count vector; empty classes contribute 0."""
    counts = np.asarray(counts, dtype=float)
    total = counts.sum()
    if total <= 0:
        return 0.0
    p = counts[counts > 0] / total
    return float(-np.sum(p * np.log2(p)))


def class_counts(y: np.ndarray, n_classes: int) -> np.ndarray:
    return np.bincount(np.asarray(y, dtype=int), minlength=n_classes).astype(float)


def nominal_gain(values: np.ndarray, y: np.ndarray, arity: int, n_classes: int) -> float:
    """Gain of a multiway split with one branch per nominal value."""
    n = len(y)
    if n == 0:
        return 0.0
    gain = entropy(class_counts(y, n_classes))
    codes = values.astype(int)
    for v in range(arity):
        mask = codes == v
        size = mask.sum()
        if size:
            gain -= size / n * entropy(class_counts(y[mask], n_classes))
    return float(gain)


def numeric_gain(values: np.ndarray, y: np.ndarray, n_classes: int) -> tuple[float, float]:
    """Best binary split ``value <= threshold`` of a numeric attribute.

    Only midpoints between consecutive distinct values whose labels also
    differ are evaluated.  Returns ``(gain, threshold)``; the threshold is
    ``nan`` when there is no candidate.
    """
    n = len(y)
    if n < 2:
        return 0.0, float("nan")
    order = np.argsort(values, kind="mergesort")
    xs = values[order]
    ys = np.asarray(y, dtype=int)[order]

    candidates = np.flatnonzero((xs[:-1] != xs[1:]) & (ys[:-1] != ys[1:]))
    if candidates.size == 0:
        return 0.0, float("nan")

    onehot = np.zeros((n, n_classes))
    onehot[np.arange(n), ys] = 1.0
    cumulative = np.cumsum(onehot, axis=0)
    total = cumulative[-1]
    parent = entropy(total)

    best_gain = 0.0
    best_threshold = float("nan")
    for k in candidates:
        left = cumulative[k]
        right = total - left
        n_left = k + 1
        gain = parent - (n_left / n) * entropy(left) - ((n - n_left) / n) * entropy(right)
        if gain > best_gain:
            best_gain = gain
            best_threshold = (xs[k] + xs[k + 1]) / 2
    return float(best_gain), float(best_threshold)


def select_split(
    X: np.ndarray,
    y: np.ndarray,
    attributes: Sequence[Attribute],
    n_classes: int,
    proportion_threshold: float,
) -> SplitDecision:
    """Choose the attribute with maximum information gain.

    The node becomes a leaf when its majority class exceeds
    *proportion_threshold* of the examples or when no attribute has a
    positive gain.
    """
    counts = class_counts(y, n_classes)
    total = counts.sum()
    purity = float(counts.max() / total) if total > 0 else 1.0
    if purity > proportion_threshold or not attributes:
        return SplitDecision(None, None, 0.0, purity)

    gains = np.zeros(len(attributes))
    thresholds: list[Optional[float]] = [None] * len(attributes)
    for j, attr in enumerate(attributes):
        if attr.is_nominal:
            gains[j] = nominal_gain(X[:, j], y, attr.arity, n_classes)
        else:
            gains[j], thresholds[j] = numeric_gain(X[:, j], y, n_classes)

    best = int(np.argmax(gains))
    if gains[best] <= GAIN_EPSILON:
        return SplitDecision(None, None, float(gains[best]), purity)
    return SplitDecision(best, thresholds[best], float(gains[best]), purity)
