"""
Full search pipeline.

dataset -> folds -> grid x folds evaluation -> aggregation -> selection
-> final refit -> held-out evaluation -> artifacts
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..common.artifacts import (
    generate_run_id,
    get_environment_info,
    get_git_info,
    save_frame,
    save_json,
)
from ..common.protocols import Trainer
from ..config import CVConfig, EvaluationConfig, SearchConfig
from ..data import Dataset, load_dataset, split_train_test
from ..experiments import (
    ConfigEvaluation,
    ConfigSummary,
    FoldAssignment,
    HyperparameterConfig,
    SelectedConfig,
    SelectionPolicy,
    aggregate_metrics,
    check_complexity_values,
    enumerate_grid,
    evaluate_grid,
    fold_fingerprint,
    generate_folds,
    select_best,
    summaries_to_frame,
)
from ..reports import EvaluationReport, evaluate_model, report_to_dict
from ..training import FinalModel, XGBoostTrainer, fit_final_model
from ..utils.logging import get_logger, json_log

log = get_logger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """Every artifact of one search run."""

    cv: CVConfig
    assignments: tuple[FoldAssignment, ...]
    fingerprint: str
    configs: tuple[HyperparameterConfig, ...]
    evaluations: dict[HyperparameterConfig, ConfigEvaluation]
    summaries: dict[HyperparameterConfig, ConfigSummary]
    selected: SelectedConfig
    final_model: FinalModel
    report: EvaluationReport


def run_search(
    train: Dataset,
    test: Dataset,
    grid_spec: Mapping[str, Sequence[Any]],
    trainer: Trainer,
    *,
    cv: CVConfig | None = None,
    selection: SelectionPolicy | None = None,
    evaluation: EvaluationConfig | None = None,
) -> SearchResult:
    """
    Run grid search with repeated stratified CV, refit and evaluate.

    Args:
        train: Training partition (folds are drawn from it only)
        test: Held-out partition, used once by the final evaluation
        grid_spec: Parameter name -> candidate values
        trainer: External trainer
        cv: Fold and dispatch settings
        selection: Selection policy
        evaluation: Test-set evaluation settings

    Returns:
        SearchResult with every intermediate stage

    Raises:
        ConfigurationError: Invalid grid, fold settings or data
        NoValidConfigurationError: Every configuration was invalid
        TrainingError: The final refit failed
    """
    cv = cv or CVConfig()
    evaluation = evaluation or EvaluationConfig()

    log.info(
        json_log(
            'search.start',
            component='pipeline',
            train_rows=len(train),
            test_rows=len(test),
            k=cv.k,
            repeats=cv.repeats,
            seed=cv.seed,
        )
    )

    configs = enumerate_grid(grid_spec)
    check_complexity_values(grid_spec, (selection or SelectionPolicy()).complexity_keys)
    assignments = generate_folds(train, k=cv.k, repeats=cv.repeats, seed=cv.seed)

    evaluations = evaluate_grid(
        train,
        assignments,
        configs,
        trainer,
        n_jobs=cv.n_jobs,
        backend=cv.backend,
        failure_tolerance=cv.failure_tolerance,
        timeout_seconds=cv.timeout_seconds,
        label_threshold=cv.label_threshold,
    )
    summaries = aggregate_metrics(evaluations)
    selected = select_best(summaries, selection)
    final_model = fit_final_model(train, selected, trainer)

    report = evaluate_model(
        final_model,
        test,
        default_threshold=evaluation.default_threshold,
        ci_method=evaluation.ci_method,
        ci_level=evaluation.ci_level,
        n_bootstrap=evaluation.n_bootstrap,
        seed=evaluation.seed,
        selected_params=selected.config.as_dict(),
    )

    log.info(
        json_log(
            'search.completed',
            component='pipeline',
            selected_index=selected.config.index,
            cv_mean_auc=selected.summary.mean_auc,
            test_auc=report.auc,
        )
    )
    return SearchResult(
        cv=cv,
        assignments=assignments,
        fingerprint=fold_fingerprint(assignments),
        configs=configs,
        evaluations=evaluations,
        summaries=summaries,
        selected=selected,
        final_model=final_model,
        report=report,
    )


def load_partitions(config: SearchConfig) -> tuple[Dataset, Dataset]:
    """Load train/test partitions from an explicit test file or a stratified split."""
    data = config.data
    train = load_dataset(
        data.train_path,
        label_column=data.label_column,
        positive_label=data.positive_label,
        feature_columns=data.feature_columns,
    )
    if data.test_path is not None:
        test = load_dataset(
            data.test_path,
            label_column=data.label_column,
            positive_label=data.positive_label,
            feature_columns=list(train.features.columns),
        )
        return train, test
    return split_train_test(train, test_ratio=data.test_ratio, random_state=data.split_seed)


def run_search_from_config(config: SearchConfig, trainer: Trainer | None = None) -> SearchResult:
    """Load data per config and run the search (XGBoost trainer by default)."""
    train, test = load_partitions(config)
    if trainer is None:
        trainer = XGBoostTrainer(
            base_params=dict(config.trainer.params),
            n_jobs=config.trainer.n_jobs,
            random_state=config.trainer.random_state,
        )
    return run_search(
        train,
        test,
        config.grid,
        trainer,
        cv=config.cv,
        selection=config.selection,
        evaluation=config.evaluation,
    )


def _summary_record(summary: ConfigSummary) -> dict[str, Any]:
    return {
        'config_index': summary.config.index,
        'params': summary.config.as_dict(),
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
        'failure_reasons': list(summary.failure_reasons),
    }


def search_result_to_dict(result: SearchResult) -> dict[str, Any]:
    """Deterministic JSON-safe record of a search (no timestamps or timings)."""
    selected = result.selected
    importances = getattr(result.final_model.model, 'feature_importances', None)
    return {
        'search': {
            'k': result.cv.k,
            'repeats': result.cv.repeats,
            'seed': result.cv.seed,
            'failure_tolerance': result.cv.failure_tolerance,
            'label_threshold': result.cv.label_threshold,
            'n_configs': len(result.configs),
            'n_cells': len(result.configs) * len(result.assignments),
            'n_failed_cells': sum(s.n_failures for s in result.summaries.values()),
            'fold_fingerprint': result.fingerprint,
        },
        'cv_results': [_summary_record(s) for s in result.summaries.values()],
        'selected': {
            'config_index': selected.config.index,
            'params': selected.config.as_dict(),
            'rule': selected.rule,
            'mean_auc': selected.summary.mean_auc,
            'se_auc': selected.summary.se_auc,
            'n_candidates': selected.n_candidates,
            'n_tied': selected.n_tied,
        },
        'final_model': {
            'n_records': result.final_model.n_records,
            'feature_importance': importances() if callable(importances) else None,
        },
        'evaluation': report_to_dict(result.report),
    }


def _fold_metrics_frame(result: SearchResult) -> pd.DataFrame:
    rows = []
    for evaluation in result.evaluations.values():
        for m in evaluation.metrics:
            rows.append(
                {
                    'config_index': m.config_index,
                    'repeat': m.repeat,
                    'fold': m.fold,
                    'status': 'ok',
                    'auc': m.auc,
                    'sensitivity': m.sensitivity,
                    'specificity': m.specificity,
                    'n_train': m.n_train,
                    'n_holdout': m.n_holdout,
                    'reason': None,
                }
            )
        for f in evaluation.failures:
            rows.append(
                {
                    'config_index': f.config_index,
                    'repeat': f.repeat,
                    'fold': f.fold,
                    'status': 'failed',
                    'reason': f.reason,
                }
            )
    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.sort_values(['config_index', 'repeat', 'fold'], kind='mergesort')
    return df.reset_index(drop=True)


def save_search_artifacts(
    result: SearchResult,
    output_dir: Path | None = None,
    report_path: Path | None = None,
) -> dict[str, Path]:
    """
    Persist report.json, cv_results.csv and fold_metrics.csv.

    Either ``report_path`` (CSV files are written beside it) or
    ``output_dir`` (a new run directory is created inside it) must be given.
    """
    if report_path is None:
        if output_dir is None:
            raise ValueError('Either output_dir or report_path must be provided')
        run_dir = Path(output_dir) / generate_run_id(Path(output_dir))
        report_path = run_dir / 'report.json'
    else:
        report_path = Path(report_path)
        run_dir = report_path.parent

    payload = {
        'run': {
            'timestamp': datetime.now(UTC).isoformat(),
            'git': get_git_info(),
            'environment': get_environment_info(),
            'final_fit_seconds': result.final_model.fit_seconds,
        },
        **search_result_to_dict(result),
    }

    paths = {
        'report': save_json(payload, report_path),
        'cv_results': save_frame(summaries_to_frame(result.summaries), run_dir / 'cv_results.csv'),
        'fold_metrics': save_frame(_fold_metrics_frame(result), run_dir / 'fold_metrics.csv'),
    }
    log.info(
        json_log(
            'artifacts.saved',
            component='pipeline',
            **{name: str(path) for name, path in paths.items()},
        )
    )
    return paths
