"""Trainer protocols defining the external model interface."""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd


@runtime_checkable
class ScoringModel(Protocol):
    """A fitted binary classifier.

    The harness never inspects a model's internals; it only asks for
    positive-class probabilities and thresholded labels.
    """

    def predict_probability(self, X: pd.DataFrame) -> np.ndarray:
        """Return P(positive) for each row, values in [0, 1]."""
        ...

    def predict_label(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        """Return 1 where P(positive) >= threshold, else 0."""
        ...


@runtime_checkable
class Trainer(Protocol):
    """Protocol for gradient-boosted-tree trainers.

    Implementations must be stateless across calls: each ``fit`` returns an
    independent model. Failures are raised as ``TrainingError``.
    """

    def fit(self, X: pd.DataFrame, y: np.ndarray, params: Mapping[str, Any]) -> ScoringModel:
        """Fit a model on (X, y) with the given hyperparameters."""
        ...
