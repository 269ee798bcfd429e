import json

import joblib
import numpy as np
import pytest

from pollution_ml.evaluation import evaluate_forest, evaluate_predictions, save_evaluation_report
from pollution_ml.model_train import (
    load_forest,
    main,
    save_forest,
    train_and_evaluate,
    train_pollution_forest
)
from pollution_ml.random_forest import RandomForestRegressor


def test_evaluate_predictions_perfect_fit():
    y = np.array([10.0, 20.0, 30.0])
    metrics = evaluate_predictions(y, y)

    assert metrics["mae"] == 0.0
    assert metrics["rmse"] == 0.0
    assert metrics["r2"] == 1.0
    assert metrics["n_samples"] == 3


def test_evaluate_predictions_known_error():
    metrics = evaluate_predictions([10.0, 20.0], [12.0, 18.0])

    assert metrics["mae"] == pytest.approx(2.0)
    assert metrics["rmse"] == pytest.approx(2.0)


def test_evaluate_forest_floors_predictions():
    forest = train_pollution_forest(n_trees=3, max_depth=4, n_samples=80, random_state=0)
    X = np.zeros((4, 9))
    metrics = evaluate_forest(forest, X, np.full(4, 10.0))

    assert metrics["mae"] >= 0.0
    assert set(metrics["feature_importance"]) == set(forest.feature_names)


def test_save_evaluation_report(tmp_path):
    path = save_evaluation_report({"mae": 1.5}, tmp_path / "reports" / "eval.json")

    assert json.loads(path.read_text()) == {"mae": 1.5}


def test_training_is_reproducible_with_seed():
    first = train_pollution_forest(n_trees=3, max_depth=5, n_samples=80, random_state=11)
    second = train_pollution_forest(n_trees=3, max_depth=5, n_samples=80, random_state=11)

    assert first.trees == second.trees


def test_save_refuses_untrained_forest(tmp_path):
    with pytest.raises(RuntimeError):
        save_forest(RandomForestRegressor(), tmp_path / "forest.joblib")


def test_load_forest_rejects_foreign_artifact(tmp_path):
    path = tmp_path / "other.joblib"
    joblib.dump({"model": "not a forest"}, path)

    with pytest.raises(ValueError):
        load_forest(path)


def test_train_and_evaluate_persists_artifact(tmp_path):
    output = tmp_path / "forest.joblib"
    forest, metrics = train_and_evaluate(
        output_path=output,
        holdout_samples=40,
        n_trees=3,
        max_depth=5,
        n_samples=80,
        random_state=5
    )

    loaded, metadata = load_forest(output)
    assert loaded.trees == forest.trees
    assert metadata["version"] == "1.0.0"
    assert metadata["metrics"]["n_samples"] == 40
    assert {"mae", "rmse", "r2"} <= set(metrics)


def test_cli_trains_and_saves(tmp_path, monkeypatch):
    output = tmp_path / "cli.joblib"
    monkeypatch.setattr("sys.argv", [
        "model_train", "--output-path", str(output), "--trees", "2",
        "--max-depth", "4", "--samples", "60", "--holdout", "20", "--jobs", "1", "--seed", "3"
    ])

    main()

    assert output.exists()
