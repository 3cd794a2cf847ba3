"""
Held-out evaluation of the final model.

Produces confusion counts at a fixed probability threshold, the ROC curve over
every distinct predicted probability, AUC with a confidence interval, and the
Youden-optimal operating point. Computed once per search, never re-optimized
against the test labels beyond the reported operating point.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
from sklearn.metrics import confusion_matrix

from ..common.metrics import CI_METHODS, auc_confidence_interval
from ..common.protocols import ScoringModel
from ..common.threshold import (
    RocPoint,
    ThresholdResult,
    apply_threshold,
    roc_curve_points,
    select_youden_threshold,
)
from ..data import Dataset
from ..errors import ConfigurationError, TrainingError
from ..utils.logging import get_logger, json_log

log = get_logger(__name__)


@dataclass(frozen=True)
class ConfusionCounts:
    """Binary confusion matrix counts."""

    tn: int
    fp: int
    fn: int
    tp: int

    def as_matrix(self) -> list[list[int]]:
        """Rows are true labels [negative, positive], columns predictions."""
        return [[self.tn, self.fp], [self.fn, self.tp]]


@dataclass(frozen=True)
class EvaluationReport:
    """Test-set performance of the final model."""

    n_records: int
    n_positive: int
    n_negative: int
    label_names: tuple[str, str]
    default_threshold: float
    confusion: ConfusionCounts
    sensitivity: float
    specificity: float
    accuracy: float
    auc: float
    auc_lower: float
    auc_upper: float
    ci_method: str
    ci_level: float
    roc_curve: tuple[RocPoint, ...]
    optimal: ThresholdResult
    selected_params: dict[str, Any] | None = None


def _check_probabilities(
    p_pos: np.ndarray, n_records: int, selected_params: dict[str, Any] | None
) -> None:
    problem = None
    if p_pos.shape != (n_records,):
        problem = f'expected {n_records} probabilities, got shape {p_pos.shape}'
    elif not np.all(np.isfinite(p_pos)) or p_pos.min() < 0.0 or p_pos.max() > 1.0:
        problem = 'probabilities outside [0, 1]'
    if problem is None:
        return

    log.error(
        json_log(
            'evaluation.invalid_probabilities',
            component='reports.evaluation',
            params=selected_params,
            error=problem,
        )
    )
    raise TrainingError(f'Final model scoring failed: {problem}', params=selected_params)


def evaluate_model(
    model: ScoringModel,
    test_set: Dataset,
    *,
    default_threshold: float = 0.5,
    ci_method: str = 'delong',
    ci_level: float = 0.95,
    n_bootstrap: int = 2000,
    seed: int = 0,
    selected_params: dict[str, Any] | None = None,
) -> EvaluationReport:
    """
    Evaluate a fitted model on the held-out test set.

    Args:
        model: Final model (anything implementing predict_probability)
        test_set: Held-out records never seen during search or refit
        default_threshold: Threshold for the confusion matrix
        ci_method: 'delong' (analytic) or 'bootstrap' (stratified percentile)
        ci_level: Confidence level of the AUC interval
        n_bootstrap: Replicates for the bootstrap method
        seed: Bootstrap seed
        selected_params: Configuration recorded in the report

    Raises:
        ConfigurationError: If the test set lacks one of the label classes or
            the CI settings are invalid
        TrainingError: If the model returns the wrong number of
            probabilities, or any that are non-finite or outside [0, 1]
    """
    if ci_method not in CI_METHODS:
        raise ConfigurationError(
            f'Unknown CI method: {ci_method!r}. Valid methods: {list(CI_METHODS)}'
        )
    if not 0.0 < ci_level < 1.0:
        raise ConfigurationError(f'ci_level must be in (0, 1), got {ci_level}')
    if test_set.n_positive == 0 or test_set.n_negative == 0:
        raise ConfigurationError('Test set must contain both label classes')

    y_true = test_set.labels
    p_pos = np.asarray(model.predict_probability(test_set.features), dtype=float)
    _check_probabilities(p_pos, len(test_set), selected_params)
    y_pred = apply_threshold(p_pos, default_threshold)

    tn, fp, fn, tp = (int(v) for v in confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel())
    interval = auc_confidence_interval(
        y_true,
        p_pos,
        method=ci_method,
        level=ci_level,
        n_bootstrap=n_bootstrap,
        seed=seed,
    )
    optimal = select_youden_threshold(y_true, p_pos)

    report = EvaluationReport(
        n_records=len(test_set),
        n_positive=test_set.n_positive,
        n_negative=test_set.n_negative,
        label_names=test_set.label_names,
        default_threshold=default_threshold,
        confusion=ConfusionCounts(tn=tn, fp=fp, fn=fn, tp=tp),
        sensitivity=tp / (tp + fn),
        specificity=tn / (tn + fp),
        accuracy=(tp + tn) / len(test_set),
        auc=interval.auc,
        auc_lower=interval.lower,
        auc_upper=interval.upper,
        ci_method=interval.method,
        ci_level=interval.level,
        roc_curve=roc_curve_points(y_true, p_pos),
        optimal=optimal,
        selected_params=selected_params,
    )

    log.info(
        json_log(
            'evaluation.completed',
            component='reports.evaluation',
            n_records=report.n_records,
            auc=round(report.auc, 4),
            auc_lower=round(report.auc_lower, 4),
            auc_upper=round(report.auc_upper, 4),
            ci_method=report.ci_method,
            optimal_threshold=optimal.threshold,
            youden_j=round(optimal.youden_j, 4),
        )
    )
    return report


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


def report_to_dict(report: EvaluationReport) -> dict[str, Any]:
    """JSON-safe record of an evaluation report."""
    return {
        'n_records': report.n_records,
        'n_positive': report.n_positive,
        'n_negative': report.n_negative,
        'label_names': {'negative': report.label_names[0], 'positive': report.label_names[1]},
        'default_threshold': report.default_threshold,
        'confusion_matrix': {
            **asdict(report.confusion),
            'matrix': report.confusion.as_matrix(),
        },
        'sensitivity': report.sensitivity,
        'specificity': report.specificity,
        'accuracy': report.accuracy,
        'auc': {
            'estimate': report.auc,
            'lower': report.auc_lower,
            'upper': report.auc_upper,
            'method': report.ci_method,
            'level': report.ci_level,
        },
        'roc_curve': [
            {'fpr': p.fpr, 'tpr': p.tpr, 'threshold': _finite_or_none(p.threshold)}
            for p in report.roc_curve
        ],
        'optimal_threshold': asdict(report.optimal),
        'selected_params': report.selected_params,
    }
