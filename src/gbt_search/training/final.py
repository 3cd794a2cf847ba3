"""Final refit of the selected configuration on the full training set."""

from __future__ import annotations

import time
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..common.protocols import ScoringModel, Trainer
from ..data import Dataset
from ..errors import TrainingError
from ..experiments.grid import HyperparameterConfig
from ..experiments.selection import SelectedConfig
from ..utils.logging import get_logger, json_log

log = get_logger(__name__)


@dataclass(frozen=True)
class FinalModel:
    """Model fit once on the whole training set with the selected config."""

    model: ScoringModel
    config: HyperparameterConfig
    n_records: int
    fit_seconds: float

    def predict_probability(self, X: pd.DataFrame) -> np.ndarray:
        return np.asarray(self.model.predict_probability(X), dtype=float)

    def predict_label(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        return np.where(self.predict_probability(X) >= threshold, 1, 0)


def fit_final_model(train: Dataset, selected: SelectedConfig, trainer: Trainer) -> FinalModel:
    """
    Fit the selected configuration on every training record.

    A trainer failure is deterministic for fixed inputs, so it is not retried.

    Raises:
        TrainingError: The trainer's own TrainingError unchanged, or any other
            trainer exception wrapped with the configuration as context
    """
    config = selected.config
    start = time.perf_counter()
    log.info(
        json_log(
            'final_fit.start',
            component='training',
            config_index=config.index,
            params=config.as_dict(),
            rows=len(train),
        )
    )

    try:
        model = trainer.fit(train.features, train.labels, config.as_dict())
    except TrainingError as e:
        log.error(json_log('final_fit.failed', config_index=config.index, error=str(e)))
        raise
    except Exception as e:
        log.error(json_log('final_fit.failed', config_index=config.index, error=str(e)))
        raise TrainingError(
            f'Final refit failed for config {config.label}: {type(e).__name__}: {e}',
            params=config.as_dict(),
        ) from e

    fit_seconds = time.perf_counter() - start
    log.info(
        json_log(
            'final_fit.completed',
            component='training',
            config_index=config.index,
            fit_seconds=round(fit_seconds, 3),
        )
    )
    return FinalModel(model=model, config=config, n_records=len(train), fit_seconds=fit_seconds)
