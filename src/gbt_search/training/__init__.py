"""Trainer implementations and the final refit."""

from .final import FinalModel, fit_final_model
from .xgb_trainer import FIXED_PARAMS, XGBoostModel, XGBoostTrainer

__all__ = [
    'FIXED_PARAMS',
    'FinalModel',
    'XGBoostModel',
    'XGBoostTrainer',
    'fit_final_model',
]
