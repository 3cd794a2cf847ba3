"""
Repeated stratified k-fold assignment.

Fold assignments are generated once per search and shared by every
configuration in the grid, so all configurations are compared on identical
train/holdout partitions.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from sklearn.model_selection import RepeatedStratifiedKFold

from ..data import Dataset
from ..errors import ConfigurationError
from ..utils.logging import get_logger, json_log

log = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class FoldAssignment:
    """Train/holdout partition for one (repeat, fold) cell."""

    repeat: int
    fold: int
    train_indices: np.ndarray
    holdout_indices: np.ndarray

    def __post_init__(self) -> None:
        for name in ('train_indices', 'holdout_indices'):
            arr = np.asarray(getattr(self, name), dtype=np.int64).copy()
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)


def generate_folds(
    dataset: Dataset,
    k: int,
    repeats: int,
    seed: int,
) -> tuple[FoldAssignment, ...]:
    """
    Partition a dataset into ``repeats`` independent stratified k-fold splits.

    Args:
        dataset: Labeled dataset to partition
        k: Number of folds per repeat (>= 2)
        repeats: Number of independent re-shuffles (>= 1)
        seed: Seed fixing all randomness

    Returns:
        Assignments ordered by (repeat, fold)

    Raises:
        ConfigurationError: If k or repeats are out of range, or k exceeds the
            minority-class count so the split cannot be stratified
    """
    if k < 2:
        raise ConfigurationError(f'k must be >= 2, got {k}')
    if repeats < 1:
        raise ConfigurationError(f'repeats must be >= 1, got {repeats}')
    if k > dataset.minority_count:
        raise ConfigurationError(
            f'Cannot stratify {k} folds: minority class has only '
            f'{dataset.minority_count} record(s)'
        )

    splitter = RepeatedStratifiedKFold(n_splits=k, n_repeats=repeats, random_state=seed)
    placeholder = np.zeros((len(dataset), 1))

    assignments = []
    for i, (train_idx, holdout_idx) in enumerate(splitter.split(placeholder, dataset.labels)):
        assignments.append(
            FoldAssignment(
                repeat=i // k,
                fold=i % k,
                train_indices=np.sort(train_idx),
                holdout_indices=np.sort(holdout_idx),
            )
        )

    result = tuple(assignments)
    log.info(
        json_log(
            'folds.generated',
            component='experiments.folds',
            k=k,
            repeats=repeats,
            seed=seed,
            n_records=len(dataset),
            fingerprint=fold_fingerprint(result),
        )
    )
    return result


def check_partition(assignments: Sequence[FoldAssignment], n_records: int) -> None:
    """
    Verify that assignments are leak-free partitions of ``range(n_records)``.

    Every assignment must have disjoint train/holdout sets covering all
    records, and within a repeat every record must be held out exactly once.

    Raises:
        ConfigurationError: On the first violated assignment or repeat
    """
    full = np.arange(n_records)
    holdout_counts: dict[int, np.ndarray] = {}

    for a in assignments:
        if np.intersect1d(a.train_indices, a.holdout_indices).size:
            raise ConfigurationError(
                f'Leakage: repeat {a.repeat} fold {a.fold} shares records between train and holdout'
            )
        union = np.union1d(a.train_indices, a.holdout_indices)
        if not np.array_equal(union, full):
            raise ConfigurationError(
                f'Repeat {a.repeat} fold {a.fold} does not cover all {n_records} records'
            )
        counts = holdout_counts.setdefault(a.repeat, np.zeros(n_records, dtype=np.int64))
        np.add.at(counts, a.holdout_indices, 1)

    for repeat, counts in holdout_counts.items():
        if not np.all(counts == 1):
            raise ConfigurationError(
                f'Repeat {repeat} holdouts are not a partition of the dataset'
            )


def fold_fingerprint(assignments: Sequence[FoldAssignment]) -> str:
    """SHA-256 digest of the assignments, stable across runs and platforms."""
    digest = hashlib.sha256()
    for a in assignments:
        digest.update(np.array([a.repeat, a.fold], dtype='<i8').tobytes())
        digest.update(a.train_indices.astype('<i8').tobytes())
        digest.update(b'|')
        digest.update(a.holdout_indices.astype('<i8').tobytes())
    return digest.hexdigest()
