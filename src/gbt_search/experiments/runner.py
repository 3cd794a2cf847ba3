"""
Cross-validated evaluation of every grid configuration.

Each (configuration, repeat, fold) cell:
1. Fits the trainer on the cell's train indices only
2. Predicts P(positive) on the cell's holdout indices only
3. Computes holdout AUC, sensitivity and specificity

Cells are independent and dispatched through joblib. A failing cell is
recorded as a FoldFailure and never aborts the grid.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
from joblib import Parallel, delayed

from ..common.metrics import rank_auc, sensitivity_specificity
from ..common.protocols import Trainer
from ..common.threshold import apply_threshold
from ..data import Dataset
from ..errors import ConfigurationError
from ..utils.logging import get_logger, json_log
from .folds import FoldAssignment, check_partition
from .grid import HyperparameterConfig

log = get_logger(__name__)

CANCELLED_REASON = 'cancelled: search timeout reached before the cell completed'


@dataclass(frozen=True)
class FoldMetric:
    """Holdout metrics of one successful cell."""

    config_index: int
    repeat: int
    fold: int
    auc: float
    sensitivity: float
    specificity: float
    n_train: int
    n_holdout: int


@dataclass(frozen=True)
class FoldFailure:
    """A cell whose training or scoring failed, or that was cancelled."""

    config_index: int
    repeat: int
    fold: int
    reason: str


@dataclass(frozen=True)
class ConfigEvaluation:
    """All cell outcomes of one configuration."""

    config: HyperparameterConfig
    metrics: tuple[FoldMetric, ...]
    failures: tuple[FoldFailure, ...]
    excluded: bool = False
    exclusion_reason: str | None = None

    @property
    def n_cells(self) -> int:
        return len(self.metrics) + len(self.failures)

    @property
    def n_failures(self) -> int:
        return len(self.failures)


def _deadline_clock(n_jobs: int, backend: str | None) -> Callable[[], float]:
    """Clock that the parent and every worker can compare a deadline against."""
    if n_jobs == 1 or backend in ('threading', 'sequential'):
        return time.monotonic
    # Process workers have their own monotonic reference, so the deadline has
    # to be wall-clock time.
    return time.time


def _evaluate_cell(
    dataset: Dataset,
    assignment: FoldAssignment,
    config: HyperparameterConfig,
    trainer: Trainer,
    deadline: float | None,
    label_threshold: float,
    clock: Callable[[], float] = time.monotonic,
) -> FoldMetric | FoldFailure:
    """Train on the train indices and score the holdout indices of one cell."""

    def failure(reason: str) -> FoldFailure:
        return FoldFailure(
            config_index=config.index,
            repeat=assignment.repeat,
            fold=assignment.fold,
            reason=reason,
        )

    if deadline is not None and clock() > deadline:
        return failure(CANCELLED_REASON)

    train_idx = assignment.train_indices
    holdout_idx = assignment.holdout_indices
    y_train = dataset.labels[train_idx]
    y_holdout = dataset.labels[holdout_idx]

    if np.unique(y_holdout).size < 2:
        return failure('holdout contains a single label class; AUC undefined')

    try:
        model = trainer.fit(dataset.features.iloc[train_idx], y_train, config.as_dict())
    except Exception as e:
        return failure(f'training failed: {type(e).__name__}: {e}')

    try:
        p_pos = np.asarray(
            model.predict_probability(dataset.features.iloc[holdout_idx]),
            dtype=float,
        )
    except Exception as e:
        return failure(f'scoring failed: {type(e).__name__}: {e}')

    if p_pos.shape != (len(holdout_idx),):
        return failure(
            f'scoring failed: expected {len(holdout_idx)} probabilities, got shape {p_pos.shape}'
        )
    if not np.all(np.isfinite(p_pos)) or p_pos.min() < 0.0 or p_pos.max() > 1.0:
        return failure('scoring failed: probabilities outside [0, 1]')

    sensitivity, specificity = sensitivity_specificity(
        y_holdout, apply_threshold(p_pos, label_threshold)
    )
    return FoldMetric(
        config_index=config.index,
        repeat=assignment.repeat,
        fold=assignment.fold,
        auc=rank_auc(y_holdout, p_pos),
        sensitivity=sensitivity,
        specificity=specificity,
        n_train=int(len(train_idx)),
        n_holdout=int(len(holdout_idx)),
    )


def evaluate_grid(
    dataset: Dataset,
    assignments: Sequence[FoldAssignment],
    configs: Sequence[HyperparameterConfig],
    trainer: Trainer,
    *,
    n_jobs: int = 1,
    backend: str | None = None,
    failure_tolerance: int = 0,
    timeout_seconds: float | None = None,
    label_threshold: float = 0.5,
) -> dict[HyperparameterConfig, ConfigEvaluation]:
    """
    Evaluate every configuration on every fold assignment.

    Args:
        dataset: Training dataset (shared read-only by all cells)
        assignments: Fold assignments, reused identically for every config
        configs: Grid configurations
        trainer: External trainer; must be picklable for process backends
        n_jobs: joblib worker count (1 = sequential)
        backend: joblib backend name (None = joblib default)
        failure_tolerance: Max failed cells before a config is excluded
        timeout_seconds: Wall-clock budget; unfinished cells become
            cancelled failures and completed cells are kept
        label_threshold: Probability threshold for sensitivity/specificity

    Returns:
        Mapping from config to its ConfigEvaluation, in enumeration order

    Raises:
        ConfigurationError: On empty inputs, duplicate config indices, a
            negative tolerance, or assignments that leak or fail to partition
    """
    if not configs:
        raise ConfigurationError('No configurations to evaluate')
    if not assignments:
        raise ConfigurationError('No fold assignments to evaluate')
    if failure_tolerance < 0:
        raise ConfigurationError(f'failure_tolerance must be >= 0, got {failure_tolerance}')
    if len({c.index for c in configs}) != len(configs):
        raise ConfigurationError('Configuration indices must be unique')

    check_partition(assignments, len(dataset))

    n_cells = len(configs) * len(assignments)
    clock = _deadline_clock(n_jobs, backend)
    deadline = clock() + timeout_seconds if timeout_seconds is not None else None
    start = time.perf_counter()

    log.info(
        json_log(
            'cv.start',
            component='experiments.runner',
            n_configs=len(configs),
            n_assignments=len(assignments),
            n_cells=n_cells,
            n_jobs=n_jobs,
            backend=backend,
            timeout_seconds=timeout_seconds,
        )
    )

    # Each outcome lands in its own slot; no shared accumulator is mutated
    # by workers.
    slots: dict[tuple[int, int, int], FoldMetric | FoldFailure] = {}
    outputs = Parallel(n_jobs=n_jobs, backend=backend, return_as='generator_unordered')(
        delayed(_evaluate_cell)(
            dataset, assignment, config, trainer, deadline, label_threshold, clock
        )
        for config in configs
        for assignment in assignments
    )
    try:
        for outcome in outputs:
            slots[(outcome.config_index, outcome.repeat, outcome.fold)] = outcome
            if deadline is not None and clock() > deadline and len(slots) < n_cells:
                log.warning(
                    json_log(
                        'cv.cancelled',
                        component='experiments.runner',
                        completed_cells=len(slots),
                        n_cells=n_cells,
                    )
                )
                break
    finally:
        outputs.close()

    evaluations: dict[HyperparameterConfig, ConfigEvaluation] = {}
    for config in configs:
        metrics: list[FoldMetric] = []
        failures: list[FoldFailure] = []
        for a in assignments:
            outcome = slots.get(
                (config.index, a.repeat, a.fold),
                FoldFailure(config.index, a.repeat, a.fold, CANCELLED_REASON),
            )
            if isinstance(outcome, FoldMetric):
                metrics.append(outcome)
            else:
                failures.append(outcome)
                log.warning(
                    json_log(
                        'cv.cell_failed',
                        component='experiments.runner',
                        config_index=config.index,
                        params=config.as_dict(),
                        repeat=outcome.repeat,
                        fold=outcome.fold,
                        reason=outcome.reason,
                    )
                )

        exclusion_reason = None
        if len(failures) > failure_tolerance:
            exclusion_reason = (
                f'{len(failures)} fold failure(s) exceed tolerance of {failure_tolerance}'
            )

        evaluations[config] = ConfigEvaluation(
            config=config,
            metrics=tuple(metrics),
            failures=tuple(failures),
            excluded=exclusion_reason is not None,
            exclusion_reason=exclusion_reason,
        )
        log.info(
            json_log(
                'cv.config_evaluated',
                component='experiments.runner',
                config_index=config.index,
                n_successful=len(metrics),
                n_failures=len(failures),
                excluded=exclusion_reason is not None,
            )
        )

    log.info(
        json_log(
            'cv.completed',
            component='experiments.runner',
            n_cells=n_cells,
            n_failed_cells=sum(e.n_failures for e in evaluations.values()),
            elapsed_seconds=round(time.perf_counter() - start, 3),
        )
    )
    return evaluations
