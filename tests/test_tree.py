"""Tests for tree.py - node splitting, descent, counting and pruning."""

import numpy as np
import pytest

from trepan_xai import Attribute, NodeType, TrepanTree


@pytest.fixture()
def attributes():
    return (
        Attribute.nominal("A", ["a0", "a1"]),
        Attribute.nominal("B", ["b0", "b1", "b2"]),
        Attribute.numeric("x"),
    )


def _tree(attributes, X, y, n_classes=2):
    tree = TrepanTree(attributes, n_classes)
    root = tree.add_root(np.asarray(X, dtype=float), np.asarray(y))
    root.compute_statistics(n_classes)
    return tree


class TestStatistics:
    def test_distribution_sums_to_one(self, attributes):
        tree = _tree(attributes, [[0, 0, 1.0], [1, 1, 2.0], [1, 2, 3.0]], [0, 1, 1])
        root = tree.root
        assert root.distribution.sum() == pytest.approx(1.0)
        assert root.class_label == 1
        assert root.fidelity == pytest.approx(2 / 3)
        assert root.best_first == pytest.approx(1 / 3)

    def test_synthetic_rows_counted(self, attributes):
        tree = _tree(attributes, [[0, 0, 1.0]], [0])
        root = tree.root
        root.X_synthetic = np.array([[1, 1, 2.0], [1, 2, 3.0]])
        root.y_synthetic = np.array([1, 1])
        root.compute_statistics(2)
        assert root.n_total == 3
        assert root.class_label == 1

    def test_empty_node_keeps_zero_distribution(self, attributes):
        tree = TrepanTree(attributes, 2)
        root = tree.add_root(np.empty((0, 3)), np.empty(0, dtype=int))
        root.compute_statistics(2)
        assert root.distribution.sum() == 0.0


class TestSplitNode:
    def test_nominal_split_with_empty_branch(self, attributes):
        X = [[0, 0, 1.0], [0, 0, 2.0], [1, 1, 3.0], [1, 1, 4.0], [1, 1, 5.0]]
        tree = _tree(attributes, X, [0, 0, 1, 1, 1])
        children = tree.split_node(0, 1)
        assert len(children) == attributes[1].arity

        empty = tree.nodes[children[2]]
        assert empty.node_type is NodeType.LEAF
        assert empty.reach == 0.0
        assert empty.fidelity == 0.0
        assert empty.best_first == 0.0
        assert empty.class_label == tree.root.class_label
        np.testing.assert_array_equal(empty.distribution, [0.0, 1.0])

        assert tree.nodes[children[0]].reach == pytest.approx(2 / 5)
        assert tree.nodes[children[1]].reach == pytest.approx(3 / 5)
        assert tree.nodes[children[0]].parent == 0

    def test_numeric_split_low_branch_first(self, attributes):
        X = [[0, 0, 1.0], [0, 0, 2.0], [1, 1, 3.0], [1, 1, 4.0]]
        tree = _tree(attributes, X, [0, 0, 1, 1])
        children = tree.split_node(0, 2, 2.5)
        assert tree.root.threshold == 2.5
        low = tree.nodes[children[0]]
        assert (low.X[:, 2] <= 2.5).all()
        assert (tree.nodes[children[1]].X[:, 2] > 2.5).all()

    def test_split_with_one_populated_branch_is_abandoned(self, attributes):
        X = [[0, 0, 1.0], [0, 0, 2.0]]
        tree = _tree(attributes, X, [0, 1])
        assert tree.split_node(0, 0) == []
        assert tree.root.is_leaf
        assert tree.root.node_type is NodeType.LEAF
        assert tree.count().n_nodes == 1

    def test_children_inherit_real_rows_only(self, attributes):
        tree = _tree(attributes, [[0, 0, 1.0], [1, 0, 1.0]], [0, 1])
        root = tree.root
        root.X_synthetic = np.array([[1, 2, 5.0], [1, 1, 6.0]])
        root.y_synthetic = np.array([1, 1])
        children = tree.split_node(0, 0)
        right = tree.nodes[children[1]]
        assert right.n_examples == 1
        assert right.n_synthetic == 0
        np.testing.assert_array_equal(right.X, [[1, 0, 1.0]])
        assert right.reach == pytest.approx(3 / 4)
        assert tree.nodes[children[0]].reach == pytest.approx(1 / 4)

    def test_branch_with_only_synthetic_rows_is_degenerate(self, attributes):
        tree = _tree(attributes, [[0, 0, 1.0], [1, 1, 1.0]], [0, 1])
        root = tree.root
        root.X_synthetic = np.array([[1, 2, 5.0]])
        root.y_synthetic = np.array([1])
        children = tree.split_node(0, 1)
        third = tree.nodes[children[2]]
        assert third.node_type is NodeType.LEAF
        assert third.n_examples == 0
        assert third.reach == 0.0

    def test_synthetic_rows_alone_do_not_justify_split(self, attributes):
        tree = _tree(attributes, [[0, 0, 1.0], [0, 1, 2.0]], [0, 1])
        root = tree.root
        root.X_synthetic = np.array([[1, 0, 3.0], [1, 1, 4.0]])
        root.y_synthetic = np.array([1, 1])
        assert tree.split_node(0, 0) == []
        assert tree.root.is_leaf


class TestPrediction:
    @pytest.fixture()
    def split_tree(self, attributes):
        X = [[0, 0, 1.0], [0, 1, 2.0], [1, 1, 3.0], [1, 2, 4.0]]
        tree = _tree(attributes, X, [0, 0, 1, 1])
        for idx in tree.split_node(0, 0):
            tree.nodes[idx].compute_statistics(2)
        return tree

    def test_predict_and_apply(self, split_tree):
        X = np.array([[0, 2, 9.0], [1, 0, 0.0]])
        np.testing.assert_array_equal(split_tree.predict_encoded(X), [0, 1])
        np.testing.assert_array_equal(split_tree.apply(X), split_tree.root.children)

    def test_predict_proba_rows_sum_to_one(self, split_tree):
        proba = split_tree.predict_proba(np.array([[0, 0, 1.0], [1, 1, 1.0]]))
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)

    def test_missing_values_rejected(self, split_tree):
        with pytest.raises(ValueError, match="missing"):
            split_tree.predict_encoded(np.array([[np.nan, 0, 1.0]]))

    def test_out_of_domain_value(self, split_tree):
        with pytest.raises(ValueError, match="domain"):
            split_tree.predict_encoded(np.array([[5, 0, 1.0]]))

    def test_wrong_width(self, split_tree):
        with pytest.raises(ValueError):
            split_tree.predict_encoded(np.array([[0, 0]]))

    def test_counts_and_depth(self, split_tree):
        counts = split_tree.count()
        assert counts.n_nodes == 3
        assert counts.n_leaves == 2
        assert counts.n_internal == 1
        assert split_tree.depth() == 1


class TestPrune:
    def _same_label_tree(self, attributes):
        # children of the root both predict class 0
        X = [[0, 0, 1.0], [0, 0, 2.0], [1, 1, 3.0], [1, 1, 4.0], [1, 2, 5.0]]
        tree = _tree(attributes, X, [0, 0, 0, 0, 1])
        for idx in tree.split_node(0, 0):
            tree.nodes[idx].compute_statistics(2)
        return tree

    def test_collapses_identical_leaves(self, attributes):
        tree = self._same_label_tree(attributes)
        assert tree.prune() == 1
        assert tree.root.is_leaf
        assert tree.root.class_label == 0

    def test_nested_collapse_reaches_fixed_point(self, attributes):
        tree = self._same_label_tree(attributes)
        right = tree.root.children[1]
        for idx in tree.split_node(right, 1):
            tree.nodes[idx].compute_statistics(2)
        # right subtree predicts {0, 1}, so nothing collapses
        assert tree.prune() == 0
        assert tree.count().n_nodes == 6

    def test_idempotent(self, attributes):
        tree = self._same_label_tree(attributes)
        tree.prune()
        before = tree.count()
        assert tree.prune() == 0
        assert tree.count() == before

    def test_different_labels_kept(self, attributes):
        X = [[0, 0, 1.0], [1, 1, 2.0]]
        tree = _tree(attributes, X, [0, 1])
        for idx in tree.split_node(0, 0):
            tree.nodes[idx].compute_statistics(2)
        assert tree.prune() == 0
        assert not tree.root.is_leaf


class TestRestrictBestFirst:
    def test_keeps_most_valuable_expansion(self, attributes):
        X = [[0, 0, 1.0], [0, 1, 2.0], [1, 0, 3.0], [1, 1, 4.0], [1, 2, 5.0], [1, 2, 6.0]]
        tree = _tree(attributes, X, [0, 1, 0, 1, 1, 0])
        left, right = tree.split_node(0, 0)
        for idx in (left, right):
            tree.nodes[idx].compute_statistics(2)
        for parent in (left, right):
            for idx in tree.split_node(parent, 2, tree.nodes[parent].X[:, 2].mean()):
                tree.nodes[idx].compute_statistics(2)

        # the right child carries more reach * error, so it is expanded first
        assert tree.nodes[right].best_first > tree.nodes[left].best_first
        collapsed = tree.restrict_best_first(2)
        assert collapsed == 1
        assert tree.nodes[left].is_leaf
        assert not tree.nodes[right].is_leaf
        assert not tree.root.is_leaf

    def test_budget_of_one_keeps_root_only(self, attributes):
        X = [[0, 0, 1.0], [1, 1, 2.0]]
        tree = _tree(attributes, X, [0, 1])
        for idx in tree.split_node(0, 0):
            tree.nodes[idx].compute_statistics(2)
        assert tree.restrict_best_first(1) == 0
        assert not tree.root.is_leaf

    def test_ties_go_to_earlier_node(self, attributes):
        X = [[0, 0, 1.0], [0, 1, 2.0], [1, 0, 3.0], [1, 1, 4.0]]
        tree = _tree(attributes, X, [0, 1, 0, 1])
        left, right = tree.split_node(0, 0)
        for parent in (left, right):
            tree.nodes[parent].compute_statistics(2)
            for idx in tree.split_node(parent, 1):
                if tree.nodes[idx].distribution is None:
                    tree.nodes[idx].compute_statistics(2)

        assert tree.nodes[left].best_first == tree.nodes[right].best_first
        assert tree.restrict_best_first(2) == 1
        assert not tree.nodes[left].is_leaf
        assert tree.nodes[right].is_leaf
