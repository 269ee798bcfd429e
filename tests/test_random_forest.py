import numpy as np
import pytest

from pollution_ml.random_forest import (
    RandomForestRegressor,
    _best_split,
    build_tree,
    count_splits,
    predict_with_tree
)
from pollution_ml.schemas import FEATURE_NAMES, Leaf, Split


def test_best_split_picks_midpoint_of_step():
    X = np.array([[1.0], [2.0], [3.0], [10.0], [11.0], [12.0]])
    y = np.array([0.0, 0.0, 0.0, 5.0, 5.0, 5.0])

    feature, threshold, score = _best_split(X, y)

    assert feature == 0
    assert threshold == 6.5
    assert score == pytest.approx(0.0)


def test_best_split_prefers_informative_feature():
    rng = np.random.default_rng(0)
    noise = rng.random(20)
    signal = np.repeat([0.0, 1.0], 10)
    X = np.column_stack([noise, signal])
    y = signal * 100

    feature, threshold, _ = _best_split(X, y)

    assert feature == 1
    assert threshold == 0.5


def test_best_split_none_when_all_rows_identical():
    X = np.ones((5, 3))
    assert _best_split(X, np.arange(5.0)) is None


def test_build_tree_stops_at_max_depth():
    X = np.arange(10.0).reshape(-1, 1)
    y = np.arange(10.0)

    assert build_tree(X, y, max_depth=0) == Leaf(prediction=4.5)
    tree = build_tree(X, y, max_depth=1)
    assert isinstance(tree, Split)
    assert isinstance(tree.left, Leaf) and isinstance(tree.right, Leaf)


def test_build_tree_small_branch_becomes_leaf():
    X = np.array([[1.0], [2.0]])
    y = np.array([3.0, 5.0])

    assert build_tree(X, y, min_samples_split=3) == Leaf(prediction=4.0)


def test_identical_rows_emit_leaf():
    X = np.ones((6, 2))
    y = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

    assert build_tree(X, y) == Leaf(prediction=3.5)


def test_predict_with_tree_ties_go_left():
    tree = Split(feature_index=0, threshold=2.0, left=Leaf(1.0), right=Leaf(9.0))

    assert predict_with_tree(tree, [2.0]) == 1.0
    assert predict_with_tree(tree, [2.0001]) == 9.0


def test_count_splits_counts_internal_nodes():
    tree = Split(0, 1.0, Split(2, 0.5, Leaf(0.0), Leaf(1.0)), Split(0, 3.0, Leaf(2.0), Leaf(3.0)))
    counts = np.zeros(3)

    count_splits(tree, counts)

    assert counts.tolist() == [2.0, 0.0, 1.0]


def _linear_data(n=150, seed=0):
    rng = np.random.default_rng(seed)
    X = rng.random((n, len(FEATURE_NAMES)))
    y = X[:, 1] * 100 + X[:, 0] * 10
    return X, y


def test_untrained_forest_refuses_to_predict():
    with pytest.raises(RuntimeError):
        RandomForestRegressor().predict([0.0] * len(FEATURE_NAMES))


def test_forest_rejects_wrong_feature_count():
    X, y = _linear_data()
    forest = RandomForestRegressor(n_trees=2, random_state=0).fit(X, y)

    with pytest.raises(ValueError):
        forest.predict([0.0, 1.0])
    with pytest.raises(ValueError):
        RandomForestRegressor(n_trees=2).fit(X[:, :3], y)


def test_forest_prediction_is_repeatable():
    X, y = _linear_data()
    forest = RandomForestRegressor(n_trees=5, max_depth=6, random_state=1).fit(X, y)
    zeros = [0.0] * len(FEATURE_NAMES)

    assert len(forest.trees) == 5
    assert forest.predict(zeros) == forest.predict(zeros)


def test_forest_training_is_independent_of_worker_count():
    X, y = _linear_data()
    serial = RandomForestRegressor(n_trees=4, max_depth=5, random_state=3, n_jobs=1).fit(X, y)
    parallel = RandomForestRegressor(n_trees=4, max_depth=5, random_state=3, n_jobs=2).fit(X, y)

    assert serial.trees == parallel.trees


def test_forest_learns_signal():
    X, y = _linear_data(n=300)
    forest = RandomForestRegressor(n_trees=10, max_depth=8, random_state=2).fit(X, y)

    low = forest.predict([0.5, 0.1] + [0.5] * 7)
    high = forest.predict([0.5, 0.9] + [0.5] * 7)
    assert high - low > 50


def test_feature_importance_sums_to_one_and_favours_signal():
    X, y = _linear_data(n=300)
    forest = RandomForestRegressor(n_trees=10, max_depth=4, random_state=2).fit(X, y)

    importance = forest.feature_importance()

    assert list(importance) == FEATURE_NAMES
    assert sum(importance.values()) == pytest.approx(1.0)
    assert max(importance, key=importance.get) == "flow_velocity"


def test_feature_importance_all_zero_without_splits():
    X = np.ones((10, len(FEATURE_NAMES)))
    forest = RandomForestRegressor(n_trees=3, random_state=0).fit(X, np.arange(10.0))

    assert set(forest.feature_importance().values()) == {0.0}
