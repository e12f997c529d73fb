"""Tests for surrogate.py - the fit / predict surface of TrepanSurrogate."""

import numpy as np
import pytest
from sklearn.datasets import load_iris
from sklearn.exceptions import NotFittedError
from sklearn.tree import DecisionTreeClassifier

from trepan_xai import Attribute, TrepanSurrogate


class LabelOracle:
    """String-labelled oracle without a ``classes_`` attribute."""

    def predict(self, X):
        return np.where(np.asarray(X)[:, 0] > 2.0, "high", "low")


@pytest.fixture()
def iris_model():
    iris = load_iris()
    model = DecisionTreeClassifier(max_depth=3, random_state=0).fit(iris.data, iris.target)
    return model, iris.data


class TestNotFitted:
    def test_predict_before_fit(self):
        with pytest.raises(NotFittedError):
            TrepanSurrogate(LabelOracle()).predict(np.zeros((1, 1)))

    def test_properties_before_fit(self):
        with pytest.raises(NotFittedError):
            TrepanSurrogate(LabelOracle()).fidelity_


class TestFitPredict:
    def test_string_labels_round_trip(self):
        X = np.arange(6, dtype=float).reshape(-1, 1)
        surrogate = TrepanSurrogate(LabelOracle(), min_samples=0).fit(X)
        np.testing.assert_array_equal(surrogate.predict(X), LabelOracle().predict(X))
        assert list(surrogate.classes_) == ["high", "low"]
        assert surrogate.fidelity_ == 1.0

    def test_mimics_tree_oracle(self, iris_model):
        model, X = iris_model
        surrogate = TrepanSurrogate(model, min_samples=0, max_nodes=31).fit(X)
        agreement = np.mean(surrogate.predict(X) == model.predict(X))
        assert agreement > 0.9
        np.testing.assert_array_equal(surrogate.classes_, model.classes_)

    def test_predict_proba_shape(self, iris_model):
        model, X = iris_model
        surrogate = TrepanSurrogate(model, min_samples=0, max_nodes=9).fit(X)
        proba = surrogate.predict_proba(X[:5])
        assert proba.shape == (5, 3)
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)

    def test_apply_returns_leaves(self, iris_model):
        model, X = iris_model
        surrogate = TrepanSurrogate(model, min_samples=0, max_nodes=9).fit(X)
        leaves = surrogate.apply(X)
        assert all(surrogate.tree_.nodes[i].is_leaf for i in np.unique(leaves))

    def test_size_accessors(self, iris_model):
        model, X = iris_model
        surrogate = TrepanSurrogate(model, min_samples=0, max_nodes=9).fit(X)
        assert surrogate.get_n_nodes() <= 10
        assert surrogate.get_n_leaves() < surrogate.get_n_nodes()
        assert surrogate.get_depth() >= 1
        assert len(surrogate.attributes_) == 4

    def test_explicit_attributes(self):
        class ColourOracle:
            def predict(self, X):
                return (np.asarray(X)[:, 0] == 1).astype(int)

        X = np.array([[0], [1], [2], [1]], dtype=float)
        attributes = (Attribute.nominal("colour", ["red", "green", "blue"]),)
        surrogate = TrepanSurrogate(ColourOracle(), min_samples=0).fit(X, attributes)
        assert surrogate.tree_.root.attribute == 0
        assert "colour = green" in surrogate.export_text()

    def test_synthetic_count(self, iris_model):
        model, X = iris_model
        surrogate = TrepanSurrogate(model, min_samples=200, max_nodes=5).fit(X)
        assert surrogate.n_synthetic_ >= 50
