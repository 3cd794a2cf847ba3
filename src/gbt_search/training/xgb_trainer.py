"""XGBoost implementation of the Trainer protocol."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
import xgboost as xgb

from ..errors import TrainingError

# Parameters owned by the trainer; grid values never override these.
FIXED_PARAMS: dict[str, Any] = {
    'objective': 'binary:logistic',
    'eval_metric': 'auc',
    'tree_method': 'hist',
}


@dataclass
class XGBoostModel:
    """Fitted XGBClassifier exposed through the ScoringModel protocol."""

    estimator: xgb.XGBClassifier

    def predict_probability(self, X: pd.DataFrame) -> np.ndarray:
        proba = self.estimator.predict_proba(X)
        class_idx = {c: i for i, c in enumerate(self.estimator.classes_)}
        return np.asarray(proba[:, class_idx[1]], dtype=float)

    def predict_label(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        return np.where(self.predict_probability(X) >= threshold, 1, 0)

    def feature_importances(self) -> dict[str, float]:
        """Gain-based importance per feature, features never split on omitted."""
        scores = self.estimator.get_booster().get_score(importance_type='gain')
        return {name: float(value) for name, value in sorted(scores.items())}


@dataclass
class XGBoostTrainer:
    """
    Stateless XGBoost trainer.

    Each ``fit`` builds a fresh ``XGBClassifier`` from ``base_params`` updated
    with the grid configuration, then ``FIXED_PARAMS``.
    """

    base_params: dict[str, Any] = field(default_factory=dict)
    n_jobs: int = 1
    random_state: int = 42

    def _build_params(self, params: Mapping[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = {
            'n_jobs': self.n_jobs,
            'random_state': self.random_state,
            'enable_categorical': True,
        }
        merged.update(self.base_params)
        merged.update(params)
        merged.update(FIXED_PARAMS)
        return merged

    def fit(self, X: pd.DataFrame, y: np.ndarray, params: Mapping[str, Any]) -> XGBoostModel:
        y = np.asarray(y)
        if np.unique(y).size < 2:
            raise TrainingError(
                'Training data contains a single label class',
                params=params,
            )

        estimator = xgb.XGBClassifier(**self._build_params(params))
        try:
            estimator.fit(X, y, verbose=False)
        except (xgb.core.XGBoostError, ValueError) as e:
            raise TrainingError(f'XGBoost fit failed: {e}', params=params) from e
        return XGBoostModel(estimator=estimator)
