"""Unit tests for held-out evaluation."""

from __future__ import annotations

import json
import math

import numpy as np
import pandas as pd
import pytest

from gbt_search.data import Dataset
from gbt_search.errors import ConfigurationError, TrainingError
from gbt_search.reports import evaluate_model, report_to_dict


class _ColumnModel:
    """Returns the ``p`` column as the positive-class probability."""

    def predict_probability(self, X: pd.DataFrame) -> np.ndarray:
        return X['p'].to_numpy()

    def predict_label(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        return np.where(self.predict_probability(X) >= threshold, 1, 0)


class _FixedModel(_ColumnModel):
    """Returns a fixed probability vector regardless of the input."""

    def __init__(self, probabilities: list[float]) -> None:
        self.probabilities = probabilities

    def predict_probability(self, X: pd.DataFrame) -> np.ndarray:
        return np.asarray(self.probabilities, dtype=float)


@pytest.fixture
def test_set() -> Dataset:
    return Dataset(
        features=pd.DataFrame({'p': [0.1, 0.6, 0.3, 0.7, 0.4, 0.9]}),
        labels=np.array([0, 0, 0, 1, 1, 1]),
        label_names=('healthy', 'sick'),
    )


class TestEvaluateModel:
    """Tests for evaluate_model function."""

    def test_confusion_counts_at_default_threshold(self, test_set) -> None:
        report = evaluate_model(_ColumnModel(), test_set)

        assert (report.confusion.tn, report.confusion.fp) == (2, 1)
        assert (report.confusion.fn, report.confusion.tp) == (1, 2)
        assert report.confusion.as_matrix() == [[2, 1], [1, 2]]
        assert report.sensitivity == pytest.approx(2 / 3)
        assert report.specificity == pytest.approx(2 / 3)
        assert report.accuracy == pytest.approx(4 / 6)
        assert report.n_positive == 3
        assert report.n_negative == 3
        assert report.label_names == ('healthy', 'sick')

    def test_auc_and_interval(self, test_set) -> None:
        report = evaluate_model(_ColumnModel(), test_set)

        assert report.auc == pytest.approx(8 / 9)
        assert report.auc_lower <= report.auc <= report.auc_upper
        assert report.ci_method == 'delong'
        assert report.ci_level == 0.95

    def test_bootstrap_interval_is_seeded(self, test_set) -> None:
        first = evaluate_model(
            _ColumnModel(), test_set, ci_method='bootstrap', n_bootstrap=200, seed=5
        )
        second = evaluate_model(
            _ColumnModel(), test_set, ci_method='bootstrap', n_bootstrap=200, seed=5
        )

        assert first.ci_method == 'bootstrap'
        assert (first.auc_lower, first.auc_upper) == (second.auc_lower, second.auc_upper)

    def test_youden_optimum_prefers_highest_tied_threshold(self, test_set) -> None:
        """J = 2/3 at both 0.7 and 0.4."""
        report = evaluate_model(_ColumnModel(), test_set)

        assert report.optimal.threshold == 0.7
        assert report.optimal.youden_j == pytest.approx(2 / 3)
        assert report.optimal.sensitivity == pytest.approx(2 / 3)
        assert report.optimal.specificity == 1.0

    def test_roc_curve_covers_every_distinct_probability(self, test_set) -> None:
        report = evaluate_model(_ColumnModel(), test_set)

        assert len(report.roc_curve) == 7
        assert math.isinf(report.roc_curve[0].threshold)
        assert (report.roc_curve[-1].fpr, report.roc_curve[-1].tpr) == (1.0, 1.0)

    def test_custom_default_threshold(self, test_set) -> None:
        report = evaluate_model(_ColumnModel(), test_set, default_threshold=0.35)

        assert report.confusion.tp == 3
        assert report.confusion.fp == 1

    def test_single_class_test_set_raises(self) -> None:
        one_class = Dataset(features=pd.DataFrame({'p': [0.2, 0.8]}), labels=np.array([1, 1]))

        with pytest.raises(ConfigurationError, match='both label classes'):
            evaluate_model(_ColumnModel(), one_class)

    def test_invalid_ci_settings_raise(self, test_set) -> None:
        with pytest.raises(ConfigurationError, match='CI method'):
            evaluate_model(_ColumnModel(), test_set, ci_method='wilson')
        with pytest.raises(ConfigurationError, match='ci_level'):
            evaluate_model(_ColumnModel(), test_set, ci_level=1.0)

    @pytest.mark.parametrize(
        'probabilities',
        [
            [0.1, 0.6, np.nan, 0.7, 0.4, 0.9],
            [0.1, 0.6, 0.3, 1.2, 0.4, 0.9],
            [0.1, 0.6, 0.3],
        ],
    )
    def test_invalid_probabilities_raise_training_error(
        self, test_set, probabilities: list[float]
    ) -> None:
        with pytest.raises(TrainingError) as exc_info:
            evaluate_model(
                _FixedModel(probabilities), test_set, selected_params={'max_depth': 3}
            )

        assert exc_info.value.params == {'max_depth': 3}


class TestReportToDict:
    """Tests for report_to_dict function."""

    def test_is_strict_json(self, test_set) -> None:
        report = evaluate_model(_ColumnModel(), test_set, selected_params={'max_depth': 3})

        payload = report_to_dict(report)
        text = json.dumps(payload, allow_nan=False)

        assert json.loads(text) == payload
        assert payload['roc_curve'][0]['threshold'] is None
        assert payload['roc_curve'][1]['threshold'] == 0.9
        assert payload['confusion_matrix']['matrix'] == [[2, 1], [1, 2]]
        assert payload['label_names'] == {'negative': 'healthy', 'positive': 'sick'}
        assert payload['optimal_threshold']['threshold'] == 0.7
        assert payload['selected_params'] == {'max_depth': 3}
        assert payload['auc']['method'] == 'delong'
