"""Common utilities shared across the search stages."""

from .artifacts import (
    generate_run_id,
    get_environment_info,
    get_git_info,
    save_frame,
    save_json,
)
from .metrics import (
    CI_METHODS,
    AucInterval,
    auc_confidence_interval,
    bootstrap_auc_ci,
    delong_auc_ci,
    rank_auc,
    sensitivity_specificity,
)
from .protocols import ScoringModel, Trainer
from .threshold import (
    RocPoint,
    ThresholdResult,
    apply_threshold,
    roc_curve_points,
    select_youden_threshold,
)

__all__ = [
    # Artifacts
    'get_git_info',
    'get_environment_info',
    'generate_run_id',
    'save_json',
    'save_frame',
    # Metrics
    'CI_METHODS',
    'AucInterval',
    'rank_auc',
    'sensitivity_specificity',
    'delong_auc_ci',
    'bootstrap_auc_ci',
    'auc_confidence_interval',
    # Protocols
    'ScoringModel',
    'Trainer',
    # Threshold
    'RocPoint',
    'ThresholdResult',
    'apply_threshold',
    'roc_curve_points',
    'select_youden_threshold',
]
