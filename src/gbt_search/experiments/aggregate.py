"""Reduction of per-fold metrics into per-configuration summaries."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .grid import HyperparameterConfig
from .runner import ConfigEvaluation


@dataclass(frozen=True)
class ConfigSummary:
    """Cross-validated estimate of one configuration's holdout AUC."""

    config: HyperparameterConfig
    n_folds: int
    n_successful: int
    n_failures: int
    mean_auc: float
    std_auc: float
    se_auc: float
    mean_sensitivity: float
    mean_specificity: float
    valid: bool = True
    invalid_reason: str | None = None
    failure_reasons: tuple[str, ...] = ()


def _summarize(evaluation: ConfigEvaluation) -> ConfigSummary:
    metrics = sorted(evaluation.metrics, key=lambda m: (m.repeat, m.fold))
    n = len(metrics)
    reasons = tuple(
        f'repeat {f.repeat} fold {f.fold}: {f.reason}'
        for f in sorted(evaluation.failures, key=lambda f: (f.repeat, f.fold))
    )

    if n == 0:
        return ConfigSummary(
            config=evaluation.config,
            n_folds=evaluation.n_cells,
            n_successful=0,
            n_failures=evaluation.n_failures,
            mean_auc=0.0,
            std_auc=0.0,
            se_auc=0.0,
            mean_sensitivity=0.0,
            mean_specificity=0.0,
            valid=False,
            invalid_reason=evaluation.exclusion_reason or 'no successful folds',
            failure_reasons=reasons,
        )

    aucs = np.array([m.auc for m in metrics], dtype=float)
    std = float(np.std(aucs, ddof=1)) if n > 1 else 0.0

    return ConfigSummary(
        config=evaluation.config,
        n_folds=evaluation.n_cells,
        n_successful=n,
        n_failures=evaluation.n_failures,
        mean_auc=float(np.mean(aucs)),
        std_auc=std,
        se_auc=std / math.sqrt(n),
        mean_sensitivity=float(np.mean([m.sensitivity for m in metrics])),
        mean_specificity=float(np.mean([m.specificity for m in metrics])),
        valid=not evaluation.excluded,
        invalid_reason=evaluation.exclusion_reason,
        failure_reasons=reasons,
    )


def aggregate_metrics(
    evaluations: Mapping[HyperparameterConfig, ConfigEvaluation],
) -> dict[HyperparameterConfig, ConfigSummary]:
    """
    Summarize fold metrics per configuration.

    Mean and sample standard deviation (ddof=1) of fold AUC over successful
    folds; standard error is std / sqrt(n). Fewer than two successful folds
    gives std = se = 0.0. A configuration excluded by the failure tolerance or
    without any successful fold is flagged invalid.
    """
    return {config: _summarize(evaluation) for config, evaluation in evaluations.items()}


def summaries_to_frame(summaries: Mapping[HyperparameterConfig, ConfigSummary]) -> pd.DataFrame:
    """One row per configuration with its parameters and CV statistics."""
    rows = []
    for summary in summaries.values():
        row = {'config_index': summary.config.index}
        row.update({f'param_{k}': v for k, v in summary.config.params})
        row.update(
            {
                'mean_auc': summary.mean_auc,
                'std_auc': summary.std_auc,
                'se_auc': summary.se_auc,
                'mean_sensitivity': summary.mean_sensitivity,
                'mean_specificity': summary.mean_specificity,
                'n_folds': summary.n_folds,
                'n_successful': summary.n_successful,
                'n_failures': summary.n_failures,
                'valid': summary.valid,
                'invalid_reason': summary.invalid_reason,
            }
        )
        rows.append(row)
    return pd.DataFrame(rows)
