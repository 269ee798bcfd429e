"""
River Pollution Prediction - Random Forest Regressor
CART regression trees on exhaustive midpoint splits, bagged into a forest
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed

from .schemas import FEATURE_NAMES, Leaf, Split, TreeNode

logger = logging.getLogger(__name__)


def _best_split(X: np.ndarray, y: np.ndarray) -> Optional[Tuple[int, float, float]]:
    """
    Find the feature/threshold pair minimizing the size-weighted MSE of
    the two branches.

    Every midpoint between consecutive unique sorted values is a candidate.
    Returns (feature_index, threshold, score) or None when no candidate
    leaves both branches non-empty.
    """
    n_samples, n_features = X.shape
    best = None
    best_score = np.inf

    for feature_idx in range(n_features):
        order = np.argsort(X[:, feature_idx], kind="mergesort")
        values = X[order, feature_idx]
        targets = y[order]

        # Candidate boundaries sit between distinct neighbouring values
        boundaries = np.nonzero(values[1:] != values[:-1])[0]
        if boundaries.size == 0:
            continue

        cum_sum = np.cumsum(targets)
        cum_sq = np.cumsum(targets ** 2)
        total_sum = cum_sum[-1]
        total_sq = cum_sq[-1]

        left_n = boundaries + 1
        right_n = n_samples - left_n
        left_sum = cum_sum[boundaries]
        left_sq = cum_sq[boundaries]
        right_sum = total_sum - left_sum
        right_sq = total_sq - left_sq

        # n_l/n * mse_l + n_r/n * mse_r == (sse_l + sse_r) / n
        left_sse = left_sq - left_sum ** 2 / left_n
        right_sse = right_sq - right_sum ** 2 / right_n
        scores = (left_sse + right_sse) / n_samples

        candidate = int(np.argmin(scores))
        if scores[candidate] < best_score:
            best_score = float(scores[candidate])
            boundary = boundaries[candidate]
            threshold = float((values[boundary] + values[boundary + 1]) / 2)
            best = (feature_idx, threshold, best_score)

    return best


def build_tree(
    X: np.ndarray,
    y: np.ndarray,
    max_depth: int = 15,
    min_samples_split: int = 3,
    depth: int = 0
) -> TreeNode:
    """Recursively grow a regression tree"""
    if depth >= max_depth or len(y) < min_samples_split:
        return Leaf(prediction=float(np.mean(y)) if len(y) else 0.0)

    split = _best_split(X, y)
    if split is None:
        # All rows identical in every feature
        return Leaf(prediction=float(np.mean(y)))

    feature_idx, threshold, _ = split
    mask = X[:, feature_idx] <= threshold

    return Split(
        feature_index=feature_idx,
        threshold=threshold,
        left=build_tree(X[mask], y[mask], max_depth, min_samples_split, depth + 1),
        right=build_tree(X[~mask], y[~mask], max_depth, min_samples_split, depth + 1)
    )


def predict_with_tree(node: TreeNode, x: Sequence[float]) -> float:
    """Walk from the root to a leaf"""
    while isinstance(node, Split):
        node = node.left if x[node.feature_index] <= node.threshold else node.right
    return node.prediction


def count_splits(node: TreeNode, counts: np.ndarray) -> None:
    """Accumulate the number of internal nodes splitting on each feature"""
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Split):
            counts[current.feature_index] += 1
            stack.append(current.left)
            stack.append(current.right)


def _fit_tree(X: np.ndarray, y: np.ndarray, max_depth: int, min_samples_split: int) -> TreeNode:
    return build_tree(X, y, max_depth=max_depth, min_samples_split=min_samples_split)


class RandomForestRegressor:
    """
    Bagged ensemble of regression trees.
    Immutable once fit() completes.
    """

    def __init__(
        self,
        n_trees: int = 100,
        max_depth: int = 15,
        min_samples_split: int = 3,
        bootstrap_fraction: float = 0.8,
        feature_names: Optional[List[str]] = None,
        n_jobs: int = 1,
        random_state: Optional[int] = None
    ):
        """
        Initialize the forest.

        Args:
            n_trees: Number of trees in the ensemble
            max_depth: Depth at which branches become leaves
            min_samples_split: Branches smaller than this become leaves
            bootstrap_fraction: Bootstrap sample size as a fraction of N
            feature_names: Names in feature-vector order
            n_jobs: joblib workers for tree training
            random_state: Seed for bootstrap sampling
        """
        self.n_trees = n_trees
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.bootstrap_fraction = bootstrap_fraction
        self.feature_names = list(feature_names or FEATURE_NAMES)
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.trees: Tuple[TreeNode, ...] = ()

    @property
    def is_trained(self) -> bool:
        return len(self.trees) > 0

    def fit(self, X, y) -> "RandomForestRegressor":
        """
        Train n_trees trees, each on its own bootstrap sample.

        Bootstrap indices are drawn up front so the result does not depend
        on how many workers train the trees.
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float)
        if X.ndim != 2 or X.shape[1] != len(self.feature_names):
            raise ValueError(
                f"Expected {len(self.feature_names)} features, got array of shape {X.shape}"
            )
        if len(X) != len(y):
            raise ValueError("X and y must have the same number of rows")

        rng = np.random.default_rng(self.random_state)
        bootstrap_size = int(len(X) * self.bootstrap_fraction)
        samples = [rng.integers(0, len(X), size=bootstrap_size) for _ in range(self.n_trees)]

        logger.info(
            f"Training {self.n_trees} trees on {bootstrap_size}-row bootstraps "
            f"(max_depth={self.max_depth}, n_jobs={self.n_jobs})"
        )
        trees = Parallel(n_jobs=self.n_jobs)(
            delayed(_fit_tree)(X[idx], y[idx], self.max_depth, self.min_samples_split)
            for idx in samples
        )
        self.trees = tuple(trees)
        return self

    def predict(self, x: Sequence[float]) -> float:
        """Average the leaf predictions of all trees for one feature vector"""
        if not self.is_trained:
            raise RuntimeError("RandomForestRegressor must be trained before predict()")
        x = np.asarray(x, dtype=float)
        if x.shape != (len(self.feature_names),):
            raise ValueError(f"Expected {len(self.feature_names)} features, got shape {x.shape}")
        return float(np.mean([predict_with_tree(tree, x) for tree in self.trees]))

    def predict_many(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        return np.array([self.predict(row) for row in X])

    def feature_importance(self) -> Dict[str, float]:
        """Share of split nodes per feature across the forest (sums to 1)"""
        counts = np.zeros(len(self.feature_names))
        for tree in self.trees:
            count_splits(tree, counts)

        total = counts.sum()
        if total > 0:
            counts = counts / total
        return {name: float(value) for name, value in zip(self.feature_names, counts)}
