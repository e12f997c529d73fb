"""Tests for sampling.py - synthetic instance generation."""

import numpy as np
import pytest

from trepan_xai import Attribute, OracleError, TrepanTree
from trepan_xai.oracle import ClassEncoder
from trepan_xai.sampling import draw_sample, fit_estimators


class ThresholdOracle:
    def predict(self, X):
        X = np.asarray(X)
        return (X[:, 1] > 5.0).astype(int)


class BrokenOracle:
    def predict(self, X):
        raise RuntimeError("model offline")


@pytest.fixture()
def attributes():
    return (Attribute.nominal("colour", ["red", "green", "blue"]), Attribute.numeric("x"))


@pytest.fixture()
def node(attributes):
    X = np.array([[0, 1.0], [1, 2.0], [2, 8.0], [0, 9.0], [1, 4.0]])
    tree = TrepanTree(attributes, 2)
    return tree.add_root(X, ThresholdOracle().predict(X))


@pytest.fixture()
def encoder():
    return ClassEncoder([0, 1])


class TestFitEstimators:
    def test_one_per_attribute(self, attributes, node):
        estimators = fit_estimators(node.X, attributes)
        assert len(estimators) == 2
        assert estimators[0].probability(0) == pytest.approx(0.4)
        assert estimators[1].total == pytest.approx(5.0)


class TestDrawSample:
    def test_enough_examples_is_noop(self, attributes, node, encoder):
        assert draw_sample(node, 5, ThresholdOracle(), attributes, encoder) == 0
        assert node.n_synthetic == 0

    def test_tops_up_to_min_samples(self, attributes, node, encoder):
        n = draw_sample(node, 30, ThresholdOracle(), attributes, encoder)
        assert n == 25
        assert node.n_total == 30
        assert node.X_synthetic.shape == (25, 2)

    def test_labels_come_from_oracle(self, attributes, node, encoder):
        draw_sample(node, 40, ThresholdOracle(), attributes, encoder)
        expected = (node.X_synthetic[:, 1] > 5.0).astype(int)
        np.testing.assert_array_equal(node.y_synthetic, expected)

    def test_nominal_values_stay_in_domain(self, attributes, node, encoder):
        draw_sample(node, 60, ThresholdOracle(), attributes, encoder)
        assert set(np.unique(node.X_synthetic[:, 0])) <= {0.0, 1.0, 2.0}
        assert not np.isnan(node.X_synthetic).any()

    def test_deterministic(self, attributes, encoder):
        X = np.array([[0, 1.0], [1, 2.0], [2, 8.0]])
        draws = []
        for _ in range(2):
            tree = TrepanTree(attributes, 2)
            root = tree.add_root(X, ThresholdOracle().predict(X))
            draw_sample(root, 20, ThresholdOracle(), attributes, encoder, random_state=7)
            draws.append(root.X_synthetic)
        np.testing.assert_array_equal(draws[0], draws[1])

    def test_seed_changes_draws(self, attributes, encoder):
        X = np.array([[0, 1.0], [1, 2.0], [2, 8.0]])
        draws = []
        for seed in (0, 1):
            tree = TrepanTree(attributes, 2)
            root = tree.add_root(X, ThresholdOracle().predict(X))
            draw_sample(root, 20, ThresholdOracle(), attributes, encoder, random_state=seed)
            draws.append(root.X_synthetic)
        assert not np.array_equal(draws[0], draws[1])

    def test_empty_node_skipped(self, attributes, encoder):
        tree = TrepanTree(attributes, 2)
        root = tree.add_root(np.empty((0, 2)), np.empty(0, dtype=int))
        assert draw_sample(root, 10, ThresholdOracle(), attributes, encoder) == 0

    def test_oracle_failure(self, attributes, node, encoder):
        with pytest.raises(OracleError, match="model offline"):
            draw_sample(node, 10, BrokenOracle(), attributes, encoder)
