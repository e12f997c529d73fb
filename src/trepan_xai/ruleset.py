"""Data classes for representing rules read off an extracted tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .attributes import attribute_names
from .tree import TreeNode, TrepanTree


@dataclass(frozen=True)
class Condition:
    """A single split condition, e.g. ``petal_width <= 0.8`` or ``colour = red``."""

    feature: str
    operator: str  # "<=", ">" or "="
    threshold: float
    display_value: str = ""

    def __str__(self) -> str:
        if self.operator == "=":
            return f"{self.feature} = {self.display_value or int(self.threshold)}"
        return f"{self.feature} {self.operator} {self.threshold:.4f}"


@dataclass(frozen=True)
class Rule:
    """An IF-THEN rule extracted from a tree leaf.

    Parameters
    ----------
    conditions : tuple of Condition
        The conjunction of split predicates leading to this leaf.
    prediction : str
        The predicted class name.
    samples : int
        Number of real and synthetic examples that reached this leaf.
    confidence : float
        Fraction of the dominant class at this leaf (0-1).
    leaf_id : int
        Arena index of the leaf.
    reach : float
        Expected fraction of the population covered by the rule.
    """

    conditions: tuple[Condition, ...]
    prediction: str
    samples: int
    confidence: float
    leaf_id: int
    reach: float = 0.0

    def __str__(self) -> str:
        if self.conditions:
            antecedent = " AND ".join(str(c) for c in self.conditions)
        else:
            antecedent = "TRUE"
        return (
            f"IF {antecedent} THEN class = {self.prediction}"
            f"  [confidence={self.confidence:.2%}, samples={self.samples}, "
            f"reach={self.reach:.3f}]"
        )


@dataclass(frozen=True)
class RuleSet:
    """An ordered collection of rules extracted from a tree."""

    rules: tuple[Rule, ...]
    feature_names: tuple[str, ...]
    class_names: tuple[str, ...]

    @property
    def num_rules(self) -> int:
        return len(self.rules)

    @property
    def avg_conditions(self) -> float:
        if not self.rules:
            return 0.0
        return sum(len(r.conditions) for r in self.rules) / len(self.rules)

    @property
    def max_conditions(self) -> int:
        if not self.rules:
            return 0
        return max(len(r.conditions) for r in self.rules)

    @property
    def interaction_strength(self) -> float:
        """Fraction of rules that reference more than one distinct feature."""
        if not self.rules:
            return 0.0
        multi = sum(
            1
            for r in self.rules
            if len({c.feature for c in r.conditions}) > 1
        )
        return multi / len(self.rules)

    def filter_by_class(self, class_name: str) -> RuleSet:
        """Return a new RuleSet containing only rules for *class_name*."""
        filtered = tuple(r for r in self.rules if r.prediction == class_name)
        return RuleSet(
            rules=filtered,
            feature_names=self.feature_names,
            class_names=self.class_names,
        )

    def to_text(self) -> str:
        """Render every rule as a human-readable string."""
        lines: list[str] = []
        for i, rule in enumerate(self.rules, 1):
            lines.append(f"Rule {i}: {rule}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_text()


def extract_rules(tree: TrepanTree, class_names: Sequence[str] = ()) -> RuleSet:
    """Depth-first walk turning every reachable leaf into a rule."""
    rules: list[Rule] = []

    def _condition(node: TreeNode, branch: int) -> Condition:
        attr = tree.attributes[node.attribute]
        if attr.is_nominal:
            return Condition(attr.name, "=", float(branch), attr.label(branch))
        return Condition(attr.name, "<=" if branch == 0 else ">", float(node.threshold))

    def _dfs(node: TreeNode, conditions: list[Condition]) -> None:
        if node.is_leaf:
            label = node.class_label
            name = class_names[label] if label < len(class_names) else str(label)
            rules.append(
                Rule(
                    conditions=tuple(conditions),
                    prediction=name,
                    samples=node.n_total,
                    confidence=float(node.distribution[label]) if node.n_total else 0.0,
                    leaf_id=node.index,
                    reach=node.reach,
                )
            )
            return
        for branch, idx in enumerate(node.children):
            _dfs(tree.nodes[idx], conditions + [_condition(node, branch)])

    _dfs(tree.root, [])
    return RuleSet(
        rules=tuple(rules),
        feature_names=attribute_names(tree.attributes),
        class_names=tuple(class_names),
    )
