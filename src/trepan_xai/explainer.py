"""Core explainer: wraps any black-box model and extracts a TREPAN tree."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike
from sklearn.model_selection import train_test_split

from .attributes import as_numeric_matrix, infer_attributes
from .oracle import check_oracle, query_oracle
from .preprocessing import MissingValueImputer
from .report import FidelityReport, compute_fidelity_report
from .ruleset import RuleSet, extract_rules
from .surrogate import TrepanSurrogate
from .visualization import export_dot, export_text, plot_surrogate_tree


class ExplanationResult:
    """Container returned by :meth:`Explainer.extract_tree`.

    Attributes
    ----------
    rules : RuleSet
        The IF-THEN rules read off the tree.
    report : FidelityReport
        Quantitative fidelity metrics.
    surrogate : TrepanSurrogate
        The fitted tree (for advanced usage).
    imputer : MissingValueImputer
        Imputation fitted on the explanation data; applied by :meth:`predict`.
    train_report : FidelityReport or None
        In-sample fidelity report (only when hold-out evaluation is used).
    """

    def __init__(
        self,
        rules: RuleSet,
        report: FidelityReport,
        surrogate: TrepanSurrogate,
        imputer: MissingValueImputer,
        class_names: tuple[str, ...],
        *,
        train_report: Optional[FidelityReport] = None,
    ) -> None:
        self.rules = rules
        self.report = report
        self.surrogate = surrogate
        self.imputer = imputer
        self._class_names = class_names
        self.train_report = train_report

    def predict(self, X: ArrayLike) -> np.ndarray:
        """Tree predictions for raw rows (missing values are imputed)."""
        return self.surrogate.predict(self.imputer.transform(X))

    def plot(self, *, save_path: Optional[str] = None, **kwargs) -> None:
        """Render the tree (delegates to :func:`plot_surrogate_tree`)."""
        plot_surrogate_tree(
            self.surrogate.tree_, self._class_names, save_path=save_path, **kwargs,
        )

    def to_dot(self) -> str:
        """Export the tree as a Graphviz DOT string."""
        return export_dot(self.surrogate.tree_, self._class_names)

    def to_text(self) -> str:
        """Indented tree dump annotated with reach, fidelity and best-first values."""
        return export_text(self.surrogate.tree_, self._class_names)

    def __str__(self) -> str:
        parts = [self.to_text(), "", str(self.rules), "", str(self.report)]
        if self.train_report is not None:
            parts += ["", "--- Train (in-sample) report ---", str(self.train_report)]
        return "\n".join(parts)


class Explainer:
    """Model-agnostic TREPAN tree extractor.

    Parameters
    ----------
    model : object
        Any trained classifier exposing a ``predict(X)`` method.
    feature_names : sequence of str
        Human-readable feature names (length must match ``X.shape[1]``).
    class_names : sequence of str or None
        Human-readable class names, aligned with ``model.classes_`` (or with
        the integer labels ``0..n-1`` when the model has no ``classes_``).
    categorical_features : sequence of int or str, optional
        Columns holding integer-coded nominal attributes.
    categories : mapping of str to sequence, optional
        Category labels per nominal feature name.
    """

    def __init__(
        self,
        model: object,
        feature_names: Sequence[str],
        class_names: Optional[Sequence[str]] = None,
        *,
        categorical_features: Optional[Sequence] = None,
        categories: Optional[Mapping[str, Sequence]] = None,
    ) -> None:
        self.model = check_oracle(model)
        self.feature_names = tuple(feature_names)
        self.class_names: Optional[tuple[str, ...]] = (
            tuple(class_names) if class_names is not None else None
        )
        self.categorical_features = tuple(categorical_features or ())
        self.categories = dict(categories or {})

    def extract_tree(
        self,
        X: ArrayLike,
        *,
        y: Optional[ArrayLike] = None,
        max_nodes: int = 0,
        min_samples: int = 100,
        proportion_threshold: float = 0.95,
        best_first: bool = False,
        pruning: bool = False,
        X_val: Optional[ArrayLike] = None,
        y_val: Optional[ArrayLike] = None,
        validation_split: Optional[float] = None,
        random_state: int = 0,
    ) -> ExplanationResult:
        """Extract a decision tree approximating the black-box model.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Explanation data; nominal columns integer-coded, missing values
            allowed as ``nan``.
        y : array-like of shape (n_samples,), optional
            True labels.  Used only for accuracy metrics in the report.
        max_nodes, min_samples, proportion_threshold, best_first, pruning
            See :class:`~trepan_xai.builder.TrepanConfig`.
        X_val : array-like, optional
            Separate validation set for hold-out fidelity evaluation.
        y_val : array-like, optional
            True labels for the validation set.
        validation_split : float, optional
            If given (0 < value < 1), split *X* internally for hold-out
            evaluation.  Mutually exclusive with *X_val*.
        random_state : int, default 0
            Seed for instance synthesis and the internal split.

        Returns
        -------
        ExplanationResult
        """
        if X_val is not None and validation_split is not None:
            raise ValueError("X_val and validation_split are mutually exclusive.")

        X = as_numeric_matrix(X)
        y_true = np.asarray(y) if y is not None else None

        X_train, y_train_true = X, y_true
        X_eval: Optional[np.ndarray] = None
        y_eval_true: Optional[np.ndarray] = None
        evaluation_type = "in_sample"

        if X_val is not None:
            X_eval = as_numeric_matrix(X_val)
            if X_eval.shape[1] != X.shape[1]:
                raise ValueError(
                    f"X_val has {X_eval.shape[1]} columns, expected {X.shape[1]}."
                )
            y_eval_true = np.asarray(y_val) if y_val is not None else None
            evaluation_type = "hold_out"
        elif validation_split is not None:
            split_kwargs: dict = {"test_size": validation_split, "random_state": random_state}
            if y_true is not None:
                split_kwargs["stratify"] = y_true
                X_train, X_eval, y_train_true, y_eval_true = train_test_split(
                    X, y_true, **split_kwargs
                )
            else:
                X_train, X_eval = train_test_split(X, **split_kwargs)
            evaluation_type = "validation_split"

        # 1. Attribute metadata over every row, imputation fitted on the
        #    training part only
        X_domain = X if X_val is None else np.vstack([X, X_eval])
        attributes = infer_attributes(
            X_domain, self.feature_names, self.categorical_features, self.categories,
        )
        imputer = MissingValueImputer(attributes).fit(X_train)
        X_train = imputer.transform(X_train)

        # 2. Extract the tree (the builder queries the model itself)
        classes = None
        if self.class_names is not None and not hasattr(self.model, "classes_"):
            classes = np.arange(len(self.class_names))
        surrogate = TrepanSurrogate(
            self.model,
            max_nodes=max_nodes,
            min_samples=min_samples,
            proportion_threshold=proportion_threshold,
            best_first=best_first,
            pruning=pruning,
            random_state=random_state,
        ).fit(X_train, attributes, classes=classes)

        class_names = self.class_names or tuple(str(c) for c in surrogate.classes_)
        ruleset = extract_rules(surrogate.tree_, class_names)

        # 3. Reports; black-box labels of the real rows come from the build
        build = surrogate.result_
        y_bb = build.encoder.decode(build.y_oracle[:build.n_real])
        train_report = compute_fidelity_report(
            surrogate, X_train, y_bb, y_train_true, class_names, ruleset,
            evaluation_type="in_sample",
        )
        report = train_report
        if X_eval is not None:
            X_eval = imputer.transform(X_eval)
            y_bb_eval = query_oracle(self.model, X_eval)
            report = compute_fidelity_report(
                surrogate, X_eval, y_bb_eval, y_eval_true, class_names, ruleset,
                evaluation_type=evaluation_type,
            )
        else:
            train_report = None

        return ExplanationResult(
            rules=ruleset,
            report=report,
            surrogate=surrogate,
            imputer=imputer,
            class_names=class_names,
            train_report=train_report,
        )
