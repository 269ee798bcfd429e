"""
River Pollution Prediction - Model Evaluation
Utilities for evaluating spread-radius regression quality
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from .random_forest import RandomForestRegressor

logger = logging.getLogger(__name__)

ML_DIR = Path(__file__).parent
REPORTS_DIR = ML_DIR / "reports"


def evaluate_predictions(y_true: np.ndarray, y_pred: np.ndarray) -> Dict:
    """
    Evaluate regression predictions and return metrics.

    Args:
        y_true: Ground truth spread radii
        y_pred: Predicted spread radii

    Returns:
        Dictionary with evaluation metrics
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    mse = mean_squared_error(y_true, y_pred)
    return {
        "mae": float(mean_absolute_error(y_true, y_pred)),
        "rmse": float(np.sqrt(mse)),
        "r2": float(r2_score(y_true, y_pred)) if len(y_true) > 1 else 0.0,
        "n_samples": int(len(y_true)),
        "evaluated_at": datetime.utcnow().isoformat()
    }


def evaluate_forest(forest: RandomForestRegressor, X: np.ndarray, y: np.ndarray) -> Dict:
    """Score a trained forest on a hold-out set (radius floored at 10 m)"""
    y_pred = np.maximum(10.0, forest.predict_many(X))
    metrics = evaluate_predictions(y, y_pred)
    metrics["feature_importance"] = forest.feature_importance()

    logger.info(
        f"Hold-out MAE: {metrics['mae']:.2f} m, RMSE: {metrics['rmse']:.2f} m, "
        f"R2: {metrics['r2']:.4f}"
    )
    return metrics


def save_evaluation_report(metrics: Dict, output_path: Optional[str] = None) -> Path:
    """Write metrics to a timestamped JSON report"""
    if output_path is None:
        output_path = REPORTS_DIR / f"evaluation_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.json"
    else:
        output_path = Path(output_path)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(metrics, f, indent=2)

    logger.info(f"Report saved to: {output_path}")
    return output_path
