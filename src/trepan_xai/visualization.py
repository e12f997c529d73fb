"""Rendering helpers for extracted TREPAN trees."""

from __future__ import annotations

from typing import Optional, Sequence

import matplotlib
matplotlib.use("Agg")  # non-interactive backend for safe headless rendering
import matplotlib.pyplot as plt

from .tree import TreeNode, TrepanTree


def _class_name(class_names: Sequence[str], idx: int) -> str:
    return class_names[idx] if idx < len(class_names) else str(idx)


def branch_label(tree: TrepanTree, node: TreeNode, branch: int) -> str:
    """Condition leading from *node* to its *branch*-th child."""
    attr = tree.attributes[node.attribute]
    if attr.is_nominal:
        return f"{attr.name} = {attr.label(branch)}"
    op = "<=" if branch == 0 else ">"
    return f"{attr.name} {op} {round(node.threshold, 5)}"


def export_text(tree: TrepanTree, class_names: Sequence[str] = ()) -> str:
    """Indented text dump of the tree.

    Every branch line carries the child's reach (R), fidelity (F) and
    best-first value (B); leaves end with ``: <class>``.
    """
    lines: list[str] = []

    def _render(node: TreeNode, level: int) -> str:
        if node.is_leaf:
            return f": {_class_name(class_names, node.class_label)}"
        parts = []
        for branch, idx in enumerate(node.children):
            child = tree.nodes[idx]
            parts.append(
                "\n" + "| " * level + branch_label(tree, node, branch)
                + f" (R={child.reach:.3f}, F={child.fidelity:.3f}, B={child.best_first:.3f})"
                + _render(child, level + 1)
            )
        return "".join(parts)

    counts = tree.count()
    lines.append("Trepan")
    lines.append("")
    lines.append(_render(tree.root, 0).lstrip("\n"))
    lines.append("")
    lines.append(f"Number of Leaves: \t{counts.n_leaves}")
    lines.append(f"Size of the tree: \t{counts.n_nodes}")
    return "\n".join(lines)


def export_dot(tree: TrepanTree, class_names: Sequence[str] = ()) -> str:
    """Export the tree in Graphviz DOT format."""
    out = [
        "digraph Tree {",
        'node [shape=box, style="rounded", fontname="helvetica"] ;',
    ]
    for node in tree.walk():
        head = (
            tree.attributes[node.attribute].name if not node.is_leaf
            else f"class = {_class_name(class_names, node.class_label)}"
        )
        label = (
            f"{head}\\nsamples = {node.n_total}\\nreach = {node.reach:.3f}"
            f"\\nfidelity = {node.fidelity:.3f}"
        )
        out.append(f'{node.index} [label="{label}"] ;')
        for branch, idx in enumerate(node.children):
            edge = branch_label(tree, node, branch).split(" ", 1)[1]
            out.append(f'{node.index} -> {idx} [label="{edge}"] ;')
    out.append("}")
    return "\n".join(out)


def _layout(tree: TrepanTree) -> dict[int, tuple[float, float]]:
    """Leaves spread evenly left to right; parents centred over children."""
    pos: dict[int, tuple[float, float]] = {}
    next_x = [0.0]

    def _place(idx: int, depth: int) -> float:
        node = tree.nodes[idx]
        if node.is_leaf:
            x = next_x[0]
            next_x[0] += 1.0
        else:
            xs = [_place(c, depth + 1) for c in node.children]
            x = sum(xs) / len(xs)
        pos[idx] = (x, -float(depth))
        return x

    _place(0, 0)
    return pos


def plot_surrogate_tree(
    tree: TrepanTree,
    class_names: Sequence[str] = (),
    *,
    figsize: tuple[int, int] = (20, 10),
    fontsize: int = 9,
    save_path: Optional[str] = None,
    dpi: int = 150,
) -> None:
    """Render the tree with matplotlib.

    Parameters
    ----------
    tree : TrepanTree
        Extracted tree.
    class_names : sequence of str
        Labels for the class indices.
    figsize : tuple, default (20, 10)
        Matplotlib figure size.
    fontsize : int, default 9
        Font size for node labels.
    save_path : str or None
        If given, save the figure to this path (PNG, PDF, SVG, ...).
    dpi : int, default 150
        Resolution when saving.
    """
    pos = _layout(tree)
    fig, ax = plt.subplots(1, 1, figsize=figsize)
    box = dict(boxstyle="round", facecolor="white", edgecolor="grey")
    for node in tree.walk():
        x, y = pos[node.index]
        for branch, idx in enumerate(node.children):
            cx, cy = pos[idx]
            ax.plot([x, cx], [y, cy], color="grey", linewidth=0.8, zorder=1)
            edge = branch_label(tree, node, branch).split(" ", 1)[1]
            ax.text((x + cx) / 2, (y + cy) / 2, edge, fontsize=fontsize - 1,
                    ha="center", va="center", zorder=2)
        if node.is_leaf:
            text = _class_name(class_names, node.class_label)
        else:
            text = tree.attributes[node.attribute].name
        text += f"\nR={node.reach:.2f} F={node.fidelity:.2f}"
        ax.text(x, y, text, fontsize=fontsize, ha="center", va="center",
                bbox=box, zorder=3)
    xs = [p[0] for p in pos.values()]
    ys = [p[1] for p in pos.values()]
    ax.set_xlim(min(xs) - 1, max(xs) + 1)
    ax.set_ylim(min(ys) - 0.5, max(ys) + 0.5)
    ax.set_axis_off()
    ax.set_title("TREPAN Decision Tree", fontsize=fontsize + 4)

    if save_path is not None:
        fig.savefig(save_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
