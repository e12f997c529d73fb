"""trepan_xai - TREPAN decision-tree extraction from black-box classifiers."""

from .attributes import Attribute, infer_attributes
from .builder import BuildResult, TrepanBuilder, TrepanConfig
from .estimators import DensityEstimator, NominalEstimator, NumericEstimator
from .explainer import ExplanationResult, Explainer
from .oracle import OracleError
from .preprocessing import MissingValueImputer
from .report import FidelityReport, compute_fidelity_report
from .ruleset import Condition, Rule, RuleSet, extract_rules
from .splitting import SplitDecision, select_split
from .surrogate import TrepanSurrogate
from .tree import NodeType, TreeCounts, TreeNode, TrepanTree
from .visualization import export_dot, export_text, plot_surrogate_tree

__all__ = [
    "Explainer",
    "ExplanationResult",
    "TrepanSurrogate",
    # Core
    "Attribute",
    "infer_attributes",
    "TrepanBuilder",
    "TrepanConfig",
    "BuildResult",
    "OracleError",
    "TrepanTree",
    "TreeNode",
    "TreeCounts",
    "NodeType",
    "SplitDecision",
    "select_split",
    # Density estimation
    "DensityEstimator",
    "NominalEstimator",
    "NumericEstimator",
    # Reporting
    "Condition",
    "Rule",
    "RuleSet",
    "extract_rules",
    "FidelityReport",
    "compute_fidelity_report",
    "MissingValueImputer",
    "export_text",
    "export_dot",
    "plot_surrogate_tree",
]
