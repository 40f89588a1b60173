"""CART-style binary decision trees over numeric features and class labels.

Trees are immutable value trees of :class:`~edustats.schema.SplitNode` and
:class:`~edustats.schema.LeafNode`; a parent owns its children outright.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..schema import LabeledPoint, LeafNode, SplitNode, TreeNode

DEFAULT_MAX_DEPTH = 3
DEFAULT_MIN_SAMPLES_SPLIT = 2


def gini_impurity(labels: np.ndarray) -> float:
    """Gini impurity ``1 - sum_c p_c**2``; ``0.0`` for an empty node."""
    labels = np.asarray(labels, dtype=int)
    if labels.size == 0:
        return 0.0
    _, counts = np.unique(labels, return_counts=True)
    p = counts / labels.size
    return float(1.0 - np.sum(p * p))


def _majority(labels: np.ndarray) -> int:
    if labels.size == 0:
        return 0
    values, counts = np.unique(labels, return_counts=True)
    # np.unique sorts, so argmax resolves ties toward the lowest label.
    return int(values[np.argmax(counts)])


def _best_split(features: np.ndarray, labels: np.ndarray) -> Optional[Tuple[int, float]]:
    n = labels.size
    best: Optional[Tuple[int, float]] = None
    best_score = np.inf
    for feature_index in range(features.shape[1]):
        column = features[:, feature_index]
        values = np.unique(column)
        for threshold in (values[:-1] + values[1:]) / 2.0:
            left = column <= threshold
            n_left = int(left.sum())
            if n_left == 0 or n_left == n:
                continue
            score = (
                n_left * gini_impurity(labels[left])
                + (n - n_left) * gini_impurity(labels[~left])
            ) / n
            # Strict comparison keeps the first candidate on ties, i.e. the
            # lowest feature index and then the lowest threshold.
            if score < best_score - 1e-12:
                best_score = score
                best = (feature_index, float(threshold))
    return best


def _build(features, labels, depth, max_depth, min_samples_split) -> TreeNode:
    samples = int(labels.size)
    gini = gini_impurity(labels)
    if depth >= max_depth or samples < min_samples_split or gini == 0.0:
        return LeafNode(value=_majority(labels), samples=samples, gini=gini)

    split = _best_split(features, labels)
    if split is None:
        return LeafNode(value=_majority(labels), samples=samples, gini=gini)

    feature_index, threshold = split
    left = features[:, feature_index] <= threshold
    return SplitNode(
        feature_index=feature_index,
        threshold=threshold,
        left=_build(features[left], labels[left], depth + 1, max_depth, min_samples_split),
        right=_build(features[~left], labels[~left], depth + 1, max_depth, min_samples_split),
        gini=gini,
        samples=samples,
    )


def build_decision_tree(
    features,
    labels=None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    min_samples_split: int = DEFAULT_MIN_SAMPLES_SPLIT,
) -> TreeNode:
    """Grow a binary classification tree by recursive Gini minimization.

    Args:
        features: ``(n, d)`` numeric array, or a sequence of
            :class:`~edustats.schema.LabeledPoint` (then ``labels`` is read
            from the records).
        labels: ``(n,)`` integer class labels.
        max_depth (int, optional): Depth at which nodes become leaves.
            Defaults to ``3``.
        min_samples_split (int, optional): Nodes with fewer samples become
            leaves. Defaults to ``2``.

    Returns:
        TreeNode: Root of the fitted tree.

    Raises:
        ValueError: If features and labels disagree in length or
            ``max_depth`` is negative.

    Note:
        Candidate thresholds are midpoints between consecutive sorted distinct
        values of each feature. A node becomes a leaf when the depth limit is
        reached, it has fewer than ``min_samples_split`` samples, it is pure,
        or no threshold separates its samples.
    """
    if labels is None:
        records = list(features)
        if records and not isinstance(records[0], LabeledPoint):
            raise ValueError("labels are required unless LabeledPoint records are given.")
        features = [r.coords for r in records]
        labels = [r.label for r in records]
    if max_depth < 0:
        raise ValueError("max_depth must be non-negative.")
    x = np.asarray(features, dtype=float)
    y = np.asarray(labels, dtype=int)
    if x.size == 0:
        return LeafNode(value=0, samples=0, gini=0.0)
    if x.ndim != 2 or x.shape[0] != y.size:
        raise ValueError("features must be (n, d) with one label per row.")
    return _build(x, y, 0, max_depth, min_samples_split)


def route(tree: TreeNode, point) -> LeafNode:
    """Return the leaf reached by ``point`` (coordinates or ``LabeledPoint``)."""
    coords = point.coords if isinstance(point, LabeledPoint) else point
    node = tree
    while not node.is_leaf:
        node = node.left if coords[node.feature_index] <= node.threshold else node.right
    return node


def predict(tree: TreeNode, features) -> np.ndarray:
    """Predicted class for each row of ``features``."""
    x = np.atleast_2d(np.asarray(features, dtype=float))
    return np.array([route(tree, row).value for row in x], dtype=int)


def tree_depth(tree: TreeNode) -> int:
    if tree.is_leaf:
        return 0
    return 1 + max(tree_depth(tree.left), tree_depth(tree.right))


def count_leaves(tree: TreeNode) -> int:
    if tree.is_leaf:
        return 1
    return count_leaves(tree.left) + count_leaves(tree.right)


def iter_leaves(tree: TreeNode):
    """Yield leaves left to right."""
    if tree.is_leaf:
        yield tree
        return
    yield from iter_leaves(tree.left)
    yield from iter_leaves(tree.right)
