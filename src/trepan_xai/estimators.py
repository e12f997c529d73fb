"""Per-attribute density estimators used to synthesize query instances.

Each estimator models the marginal distribution of one attribute at one tree
node.  Nominal attributes use symbol counts; numeric attributes use a
Gaussian kernel density with one kernel per observed (quantized) value.
Sampling is a pure function of the estimator state and an integer seed, so a
node that draws the same sequence of seeds reproduces the same instances.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from scipy.special import ndtr

from .attributes import Attribute

#: Maximum relative error tolerated when truncating the kernel summation.
MAX_ERROR = 0.01


class DensityEstimator(ABC):
    """Common interface of the nominal and numeric estimators."""

    @abstractmethod
    def add_value(self, value: float, weight: float = 1.0) -> None:
        """Record one observation of *value* with the given *weight*."""

    @abstractmethod
    def probability(self, value: float) -> float:
        """Estimated probability of *value*."""

    @abstractmethod
    def sample(self, seed: int) -> float:
        """Draw a value from the estimated distribution.

        Returns ``nan`` when nothing has been observed yet.
        """

    @property
    @abstractmethod
    def is_empty(self) -> bool:
        ...


class NominalEstimator(DensityEstimator):
    """Symbol-count estimator over the codes ``0..n_symbols-1``.

    Parameters
    ----------
    n_symbols : int
        Domain size of the attribute.
    laplace : bool, default False
        Start every count at 1 instead of 0.
    """

    def __init__(self, n_symbols: int, laplace: bool = False) -> None:
        if n_symbols <= 0:
            raise ValueError(f"n_symbols must be positive, got {n_symbols}.")
        self.counts = np.ones(n_symbols) if laplace else np.zeros(n_symbols)
        self.total = float(n_symbols) if laplace else 0.0

    @property
    def n_symbols(self) -> int:
        return len(self.counts)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def add_value(self, value: float, weight: float = 1.0) -> None:
        if weight == 0:
            return
        self.counts[int(value)] += weight
        self.total += weight

    def probability(self, value: float) -> float:
        if self.total == 0:
            return 0.0
        return float(self.counts[int(value)] / self.total)

    def probabilities(self) -> np.ndarray:
        """Probability of every symbol, in domain order."""
        if self.total == 0:
            return np.zeros(self.n_symbols)
        return self.counts / self.total

    def sample(self, seed: int) -> float:
        if self.total == 0:
            return math.nan
        cumulative = np.cumsum(self.probabilities())
        # floating-point sums can stop short of 1
        cumulative[-1] = 1.0
        r = np.random.RandomState(seed).random_sample()
        return float(np.searchsorted(cumulative, r, side="left"))

    def __str__(self) -> str:
        counts = " ".join(f"{c:.2f}" for c in self.counts)
        return f"Discrete Estimator. Counts = {counts} (Total = {self.total:.2f})"


class NumericEstimator(DensityEstimator):
    """Gaussian kernel density estimator.

    Observed values are rounded to a grid of width *precision*; values that
    land on an existing grid point add to its weight.  The kernel bandwidth
    is ``max(range / sqrt(total_weight), precision / 6)``, so it narrows as
    evidence accumulates but three standard deviations always fit inside one
    grid cell.

    Parameters
    ----------
    precision : float, default 0.01
        Grid width.  With ``precision=0.1`` every value in ``(0.25, 0.35]``
        is treated as ``0.3``.
    """

    def __init__(self, precision: float = 0.01) -> None:
        if precision <= 0:
            raise ValueError(f"precision must be positive, got {precision}.")
        self.precision = float(precision)
        self.values: list[float] = []
        self.weights: list[float] = []
        self.total = 0.0
        self.std = self.precision / 6
        self._cumulative: Optional[np.ndarray] = None

    @property
    def is_empty(self) -> bool:
        return not self.values

    def _round(self, value: float) -> float:
        return float(np.rint(value / self.precision) * self.precision)

    def _nearest(self, value: float) -> int:
        return int(np.searchsorted(self.values, value, side="left"))

    def add_value(self, value: float, weight: float = 1.0) -> None:
        if weight == 0:
            return
        value = self._round(value)
        idx = self._nearest(value)
        if idx < len(self.values) and self.values[idx] == value:
            self.weights[idx] += weight
        else:
            self.values.insert(idx, value)
            self.weights.insert(idx, weight)
        self.total += weight
        self._cumulative = None

        spread = self.values[-1] - self.values[0]
        if spread > 0:
            self.std = max(spread / math.sqrt(self.total), self.precision / 6)

    def _bin_mass(self, delta: float) -> float:
        half = self.precision / 2
        return float(ndtr((delta + half) / self.std) - ndtr((delta - half) / self.std))

    def probability(self, value: float) -> float:
        if not self.values:
            return self._bin_mass(-value)

        start = self._nearest(value)
        total = 0.0
        seen = 0.0
        for i in range(start, len(self.values)):
            current = self._bin_mass(self.values[i] - value)
            total += current * self.weights[i]
            seen += self.weights[i]
            if current * (self.total - seen) < total * MAX_ERROR:
                break
        for i in range(start - 1, -1, -1):
            current = self._bin_mass(self.values[i] - value)
            total += current * self.weights[i]
            seen += self.weights[i]
            if current * (self.total - seen) < total * MAX_ERROR:
                break
        return total / self.total

    def sample(self, seed: int) -> float:
        if not self.values:
            return math.nan
        if self._cumulative is None:
            self._cumulative = np.cumsum([self.probability(v) for v in self.values])
        rng = np.random.RandomState(seed)
        r = rng.random_sample() * self._cumulative[-1]
        interval = min(
            int(np.searchsorted(self._cumulative, r, side="left")),
            len(self.values) - 1,
        )
        sign = 1.0 if rng.random_sample() < 0.5 else -1.0
        return self.values[interval] + sign * rng.random_sample() * self.std

    def __str__(self) -> str:
        means = " ".join(str(v) for v in self.values) or "0"
        text = (
            f"{len(self.values)} Normal Kernels. StandardDev = {self.std:.4f} "
            f"Precision = {self.precision}\nMeans = {means}"
        )
        if any(w != 1 for w in self.weights):
            text += "\nWeights = " + " ".join(str(w) for w in self.weights)
        return text


def make_estimator(
    attribute: Attribute,
    *,
    precision: float = 0.01,
    laplace: bool = False,
) -> DensityEstimator:
    """Create the estimator variant matching the attribute kind."""
    if attribute.is_nominal:
        return NominalEstimator(attribute.arity, laplace=laplace)
    return NumericEstimator(precision)
