"""Shared fixtures: synthetic datasets and deterministic stub trainers."""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import pytest

from gbt_search.data import Dataset


def make_dataset(n: int = 200, positive_fraction: float = 0.5, seed: int = 0) -> Dataset:
    """Two covariates: x0 separates the classes with noise, x1 is pure noise."""
    rng = np.random.default_rng(seed)
    n_pos = int(round(n * positive_fraction))
    labels = np.array([1] * n_pos + [0] * (n - n_pos))
    rng.shuffle(labels)
    features = pd.DataFrame(
        {
            'x0': labels * 1.5 + rng.normal(0.0, 1.0, n),
            'x1': rng.normal(0.0, 1.0, n),
        }
    )
    return Dataset(features=features, labels=labels)


def write_dataset_csv(
    path: Path, n: int = 200, positive_fraction: float = 0.5, seed: int = 0
) -> Path:
    """Write a synthetic dataset as CSV with a yes/no ``outcome`` column."""
    ds = make_dataset(n=n, positive_fraction=positive_fraction, seed=seed)
    df = ds.features.copy()
    df['site'] = np.where(np.arange(n) % 3 == 0, 'north', 'south')
    df['outcome'] = np.where(ds.labels == 1, 'yes', 'no')
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path


class StubModel:
    """Logistic score of one covariate around a fitted center."""

    def __init__(self, feature: str, center: float, recorder: list | None = None) -> None:
        self.feature = feature
        self.center = center
        self.recorder = recorder

    def predict_probability(self, X: pd.DataFrame) -> np.ndarray:
        if self.recorder is not None:
            self.recorder.append(X.index.to_numpy().copy())
        return 1.0 / (1.0 + np.exp(-(X[self.feature].to_numpy() - self.center)))

    def predict_label(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        return np.where(self.predict_probability(X) >= threshold, 1, 0)


class StubTrainer:
    """
    Deterministic trainer recording every call.

    The ``feature`` parameter picks the scored covariate (default x0); all
    other parameters are accepted and ignored. ``scored[i]`` collects the
    row indices the i-th fitted model was asked to score.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.calls: list[dict[str, Any]] = []
        self.scored: list[list[np.ndarray]] = []

    def _record(self, X: pd.DataFrame, params: Mapping[str, Any]) -> list[np.ndarray]:
        scored: list[np.ndarray] = []
        with self._lock:
            self.calls.append({'train_index': X.index.to_numpy().copy(), 'params': dict(params)})
            self.scored.append(scored)
        return scored

    def fit(self, X: pd.DataFrame, y: np.ndarray, params: Mapping[str, Any]) -> StubModel:
        scored = self._record(X, params)
        feature = params.get('feature', 'x0')
        values = X[feature].to_numpy()
        center = (values[y == 1].mean() + values[y == 0].mean()) / 2
        return StubModel(feature, center, recorder=scored)

    @property
    def n_calls(self) -> int:
        return len(self.calls)


class FailingTrainer(StubTrainer):
    """Raises on the call numbers in ``fail_on`` (0-based), or on every call."""

    def __init__(self, fail_on: set[int] | None = None) -> None:
        super().__init__()
        self.fail_on = fail_on

    def fit(self, X: pd.DataFrame, y: np.ndarray, params: Mapping[str, Any]) -> StubModel:
        call_number = self.n_calls
        if self.fail_on is None or call_number in self.fail_on:
            self._record(X, params)
            raise RuntimeError(f'boom on call {call_number}')
        return super().fit(X, y, params)


class SlowTrainer(StubTrainer):
    """Sleeps before each fit."""

    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay

    def fit(self, X: pd.DataFrame, y: np.ndarray, params: Mapping[str, Any]) -> StubModel:
        time.sleep(self.delay)
        return super().fit(X, y, params)


@pytest.fixture
def dataset() -> Dataset:
    return make_dataset(n=200, seed=0)


@pytest.fixture
def small_dataset() -> Dataset:
    return make_dataset(n=60, seed=3)


@pytest.fixture
def stub_trainer() -> StubTrainer:
    return StubTrainer()
