"""Fidelity report: how well the extracted tree mimics the black-box model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike
from sklearn.metrics import accuracy_score

from .ruleset import RuleSet


@dataclass(frozen=True)
class FidelityReport:
    """Quantitative summary of tree faithfulness.

    Attributes
    ----------
    fidelity : float
        Agreement between the tree and the black-box predictions on the
        evaluation rows (0-1).
    build_fidelity : float
        Agreement on the real and synthetic rows used to build the tree.
    accuracy : float or None
        Tree accuracy against the true labels (None if y_true unavailable).
    blackbox_accuracy : float or None
        Black-box accuracy against the true labels (None if y_true unavailable).
    num_rules : int
        Number of leaves (= rules) in the tree.
    avg_rule_length : float
        Average number of conditions per rule.
    max_rule_length : int
        Maximum number of conditions across all rules.
    tree_depth : int
        Depth of the extracted tree.
    tree_n_nodes : int
        Number of nodes in the extracted tree.
    tree_n_leaves : int
        Number of leaves in the extracted tree.
    num_samples : int
        Number of evaluation rows.
    num_synthetic : int
        Number of synthetic instances drawn during extraction.
    class_fidelity : dict
        Per-class fidelity (agreement on rows where the black-box predicts
        that class).
    evaluation_type : str
        ``"in_sample"``, ``"hold_out"`` or ``"validation_split"``.
    interaction_strength : float or None
        Fraction of rules that use more than one distinct feature.
    """

    fidelity: float
    build_fidelity: float
    accuracy: Optional[float]
    blackbox_accuracy: Optional[float]
    num_rules: int
    avg_rule_length: float
    max_rule_length: int
    tree_depth: int
    tree_n_nodes: int
    tree_n_leaves: int
    num_samples: int
    num_synthetic: int
    class_fidelity: Dict[str, float]
    evaluation_type: str = "in_sample"
    interaction_strength: Optional[float] = None

    def __str__(self) -> str:
        lines = [
            "=== Fidelity Report ===",
            f"  Evaluation type: {self.evaluation_type}",
            f"  Fidelity (tree vs black-box): {self.fidelity:.4f}",
            f"  Build fidelity (real + synthetic): {self.build_fidelity:.4f}",
        ]
        if self.accuracy is not None:
            lines.append(f"  Tree accuracy (vs true labels): {self.accuracy:.4f}")
        if self.blackbox_accuracy is not None:
            lines.append(f"  Black-box accuracy (vs true labels): {self.blackbox_accuracy:.4f}")
        lines += [
            f"  Number of rules: {self.num_rules}",
            f"  Avg rule length: {self.avg_rule_length:.2f}",
            f"  Max rule length: {self.max_rule_length}",
            f"  Tree depth: {self.tree_depth}",
            f"  Tree nodes: {self.tree_n_nodes}",
            f"  Tree leaves: {self.tree_n_leaves}",
            f"  Samples evaluated: {self.num_samples}",
            f"  Synthetic instances: {self.num_synthetic}",
        ]
        if self.interaction_strength is not None:
            lines.append(f"  Interaction strength: {self.interaction_strength:.4f}")
        if self.class_fidelity:
            lines.append("  Per-class fidelity:")
            for cls, fid in self.class_fidelity.items():
                lines.append(f"    {cls}: {fid:.4f}")
        return "\n".join(lines)


def compute_fidelity_report(
    surrogate,
    X: ArrayLike,
    y_bb: np.ndarray,
    y_true: Optional[np.ndarray],
    class_names: Sequence[str],
    ruleset: RuleSet,
    *,
    evaluation_type: str = "in_sample",
) -> FidelityReport:
    """Compute all fidelity metrics.

    Parameters
    ----------
    surrogate : TrepanSurrogate
        The fitted tree.
    X : array-like
        Feature matrix used for evaluation (already imputed).
    y_bb : ndarray
        Black-box predictions on *X*.
    y_true : ndarray or None
        Ground-truth labels, if available.
    class_names : sequence of str
        Human-readable names of ``surrogate.classes_``.
    ruleset : RuleSet
        Rules read off the tree (complexity statistics).
    evaluation_type : str
        How the data was split for evaluation.
    """
    X = np.asarray(X, dtype=float)
    y_surr = surrogate.predict(X)

    fidelity = float(accuracy_score(y_bb, y_surr))

    accuracy: Optional[float] = None
    blackbox_accuracy: Optional[float] = None
    if y_true is not None:
        accuracy = float(accuracy_score(y_true, y_surr))
        blackbox_accuracy = float(accuracy_score(y_true, y_bb))

    class_fidelity: dict[str, float] = {}
    classes = list(surrogate.classes_)
    for label in np.unique(y_bb):
        mask = y_bb == label
        idx = classes.index(label) if label in classes else None
        name = (
            class_names[idx] if idx is not None and idx < len(class_names)
            else str(label)
        )
        class_fidelity[name] = float(accuracy_score(y_bb[mask], y_surr[mask]))

    return FidelityReport(
        fidelity=fidelity,
        build_fidelity=surrogate.fidelity_,
        accuracy=accuracy,
        blackbox_accuracy=blackbox_accuracy,
        num_rules=ruleset.num_rules,
        avg_rule_length=ruleset.avg_conditions,
        max_rule_length=ruleset.max_conditions,
        tree_depth=surrogate.get_depth(),
        tree_n_nodes=surrogate.get_n_nodes(),
        tree_n_leaves=surrogate.get_n_leaves(),
        num_samples=len(X),
        num_synthetic=surrogate.n_synthetic_,
        class_fidelity=class_fidelity,
        evaluation_type=evaluation_type,
        interaction_strength=ruleset.interaction_strength,
    )
