"""
River Pollution Prediction - Model Training
Train the spread-radius forest on synthetic data and persist it
"""

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple

import joblib
import numpy as np

from .data_pipeline import generate_training_data
from .evaluation import evaluate_forest, save_evaluation_report
from .random_forest import RandomForestRegressor
from .schemas import FEATURE_NAMES

logger = logging.getLogger(__name__)

# Paths
ML_DIR = Path(__file__).parent
MODELS_DIR = ML_DIR / "models"
DEFAULT_MODEL_PATH = MODELS_DIR / "pollution_forest.joblib"

MODEL_VERSION = "1.0.0"


def train_pollution_forest(
    n_trees: int = 100,
    max_depth: int = 15,
    min_samples_split: int = 3,
    n_samples: int = 1000,
    n_jobs: int = 1,
    random_state: Optional[int] = None
) -> RandomForestRegressor:
    """
    Train a forest on freshly generated synthetic data.

    Args:
        n_trees: Trees in the ensemble
        max_depth: Maximum tree depth
        min_samples_split: Minimum branch size to keep splitting
        n_samples: Synthetic rows to generate
        n_jobs: joblib workers
        random_state: Seed for data generation and bootstrapping

    Returns:
        Trained RandomForestRegressor
    """
    rng = np.random.default_rng(random_state)
    X, targets = generate_training_data(n_samples, rng=rng)

    forest = RandomForestRegressor(
        n_trees=n_trees,
        max_depth=max_depth,
        min_samples_split=min_samples_split,
        feature_names=FEATURE_NAMES,
        n_jobs=n_jobs,
        random_state=None if random_state is None else random_state + 1
    )
    forest.fit(X, targets["spread_radius"])
    return forest


def save_forest(forest: RandomForestRegressor, output_path=None, metrics: Optional[Dict] = None) -> Path:
    """Persist a trained forest as a joblib artifact"""
    if not forest.is_trained:
        raise RuntimeError("Refusing to save an untrained forest")

    output_path = Path(output_path) if output_path else DEFAULT_MODEL_PATH
    output_path.parent.mkdir(parents=True, exist_ok=True)

    artifact = {
        "model": forest,
        "feature_names": forest.feature_names,
        "metrics": metrics or {},
        "trained_at": datetime.utcnow().isoformat(),
        "version": MODEL_VERSION
    }
    joblib.dump(artifact, output_path)
    logger.info(f"Model saved to: {output_path}")
    return output_path


def load_forest(model_path) -> Tuple[RandomForestRegressor, Dict]:
    """Load a forest saved by save_forest, returning (forest, artifact metadata)"""
    artifact = joblib.load(model_path)
    forest = artifact["model"]
    if not isinstance(forest, RandomForestRegressor) or not forest.is_trained:
        raise ValueError(f"{model_path} does not hold a trained pollution forest")
    metadata = {key: value for key, value in artifact.items() if key != "model"}
    return forest, metadata


def train_and_evaluate(
    output_path=None,
    holdout_samples: int = 200,
    **train_kwargs
) -> Tuple[RandomForestRegressor, Dict]:
    """Train, score on an independent synthetic hold-out set, and save"""
    forest = train_pollution_forest(**train_kwargs)

    seed = train_kwargs.get("random_state")
    holdout_rng = np.random.default_rng(None if seed is None else seed + 2)
    X_test, targets = generate_training_data(holdout_samples, rng=holdout_rng)
    metrics = evaluate_forest(forest, X_test, targets["spread_radius"])

    save_forest(forest, output_path, metrics)
    return forest, metrics


def main():
    """CLI entrypoint for training"""
    parser = argparse.ArgumentParser(description="Train the pollution spread forest")
    parser.add_argument("--output-path", type=str, default=None, help="Model output path")
    parser.add_argument("--trees", type=int, default=100, help="Number of trees")
    parser.add_argument("--max-depth", type=int, default=15, help="Maximum tree depth")
    parser.add_argument("--samples", type=int, default=1000, help="Synthetic training rows")
    parser.add_argument("--holdout", type=int, default=200, help="Synthetic hold-out rows")
    parser.add_argument("--jobs", type=int, default=-1, help="Parallel training workers")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--report", action="store_true", help="Also write a JSON metrics report")

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        _, metrics = train_and_evaluate(
            output_path=args.output_path,
            holdout_samples=args.holdout,
            n_trees=args.trees,
            max_depth=args.max_depth,
            n_samples=args.samples,
            n_jobs=args.jobs,
            random_state=args.seed
        )
        if args.report:
            save_evaluation_report(metrics)
        print(f"\nTraining complete! Hold-out MAE: {metrics['mae']:.2f} m, R2: {metrics['r2']:.4f}")
    except Exception as e:
        logger.error(f"Training failed: {e}")
        raise


if __name__ == "__main__":
    main()
