"""Labeled dataset container, CSV loading and train/test splitting."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from ..errors import ConfigurationError
from ..utils.logging import get_logger, json_log

log = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class Dataset:
    """Covariates plus a binary label vector (0=negative, 1=positive).

    The label array is read-only and the frame is never modified in place;
    ``subset`` returns a new Dataset.
    """

    features: pd.DataFrame
    labels: np.ndarray
    label_names: tuple[str, str] = ('negative', 'positive')

    def __post_init__(self) -> None:
        labels = np.asarray(self.labels, dtype=np.int64).copy()
        labels.setflags(write=False)
        object.__setattr__(self, 'labels', labels)

        if len(self.features) == 0:
            raise ConfigurationError('Dataset must contain at least one record')
        if len(self.features) != len(labels):
            raise ConfigurationError(
                f'Feature rows ({len(self.features)}) and labels ({len(labels)}) differ in length'
            )
        unexpected = set(np.unique(labels).tolist()) - {0, 1}
        if unexpected:
            raise ConfigurationError(f'Labels must be encoded as 0/1, found {sorted(unexpected)}')
        missing = self.features.columns[self.features.isna().any()].tolist()
        if missing:
            raise ConfigurationError(f'Covariates contain missing values: {missing}')
        if len(self.label_names) != 2 or self.label_names[0] == self.label_names[1]:
            raise ConfigurationError(f'Expected two distinct label names, got {self.label_names}')

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def n_positive(self) -> int:
        return int(self.labels.sum())

    @property
    def n_negative(self) -> int:
        return len(self) - self.n_positive

    @property
    def positive_fraction(self) -> float:
        return self.n_positive / len(self)

    @property
    def minority_count(self) -> int:
        return min(self.n_positive, self.n_negative)

    def subset(self, indices: np.ndarray) -> Dataset:
        """Return the records at positional ``indices`` as a new Dataset."""
        idx = np.asarray(indices, dtype=np.int64)
        return Dataset(
            features=self.features.iloc[idx].reset_index(drop=True),
            labels=self.labels[idx],
            label_names=self.label_names,
        )


def load_dataset(
    csv_path: str | Path,
    label_column: str,
    positive_label: str | int,
    feature_columns: Sequence[str] | None = None,
) -> Dataset:
    """Load a CSV file into a Dataset.

    The label column must hold exactly two distinct values, one of which is
    ``positive_label``. All remaining columns (or ``feature_columns``) become
    covariates; object columns are converted to pandas categoricals.
    """
    path = Path(csv_path)
    if not path.exists():
        raise ConfigurationError(f'Dataset file not found: {path}')

    df = pd.read_csv(path)
    if label_column not in df.columns:
        raise ConfigurationError(f"Label column '{label_column}' not found in {path}")

    raw_labels = df[label_column]
    if raw_labels.isna().any():
        raise ConfigurationError(f"Label column '{label_column}' contains missing values")

    values = sorted(raw_labels.astype(str).unique().tolist())
    if len(values) != 2:
        raise ConfigurationError(
            f"Label column '{label_column}' must have exactly 2 values, found {values}"
        )
    positive = str(positive_label)
    if positive not in values:
        raise ConfigurationError(f'Positive label {positive!r} not among label values {values}')
    negative = next(v for v in values if v != positive)

    if feature_columns is None:
        columns = [c for c in df.columns if c != label_column]
    else:
        columns = list(feature_columns)
        absent = [c for c in columns if c not in df.columns]
        if absent:
            raise ConfigurationError(f'Feature columns not found in {path}: {absent}')

    features = df[columns].copy()
    for column in features.select_dtypes(include='object').columns:
        features[column] = features[column].astype('category')

    labels = (raw_labels.astype(str) == positive).astype(np.int64).to_numpy()
    dataset = Dataset(features=features, labels=labels, label_names=(negative, positive))

    log.info(
        json_log(
            'dataset.loaded',
            component='data',
            path=str(path),
            rows=len(dataset),
            n_features=len(columns),
            n_positive=dataset.n_positive,
            n_negative=dataset.n_negative,
        )
    )
    return dataset


def split_train_test(
    dataset: Dataset,
    test_ratio: float = 0.2,
    random_state: int = 42,
) -> tuple[Dataset, Dataset]:
    """Stratified split of a dataset into train and held-out test partitions."""
    if not 0.0 < test_ratio < 1.0:
        raise ConfigurationError(f'test_ratio must be in (0, 1), got {test_ratio}')

    indices = np.arange(len(dataset))
    try:
        train_idx, test_idx = train_test_split(
            indices,
            test_size=test_ratio,
            stratify=dataset.labels,
            random_state=random_state,
        )
    except ValueError as e:
        raise ConfigurationError(f'Cannot stratify train/test split: {e}') from e

    train_idx = np.sort(train_idx)
    test_idx = np.sort(test_idx)

    log.info(
        json_log(
            'split.completed',
            component='data.split',
            rows=len(dataset),
            train_rows=int(len(train_idx)),
            test_rows=int(len(test_idx)),
            random_state=random_state,
        )
    )
    return dataset.subset(train_idx), dataset.subset(test_idx)
