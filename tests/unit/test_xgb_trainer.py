"""Unit tests for the XGBoost trainer."""

from __future__ import annotations

import numpy as np
import pytest
from conftest import make_dataset

from gbt_search.common.metrics import rank_auc
from gbt_search.common.protocols import ScoringModel, Trainer
from gbt_search.errors import TrainingError
from gbt_search.training.xgb_trainer import FIXED_PARAMS, XGBoostModel, XGBoostTrainer

SMALL = {'n_estimators': 20, 'max_depth': 2, 'learning_rate': 0.3}


class TestXGBoostTrainer:
    """Tests for XGBoostTrainer."""

    def test_satisfies_protocols(self) -> None:
        trainer = XGBoostTrainer()
        model = trainer.fit(make_dataset(n=60).features, make_dataset(n=60).labels, SMALL)

        assert isinstance(trainer, Trainer)
        assert isinstance(model, ScoringModel)
        assert isinstance(model, XGBoostModel)

    def test_probabilities_rank_the_positive_class(self) -> None:
        ds = make_dataset(n=300, seed=1)

        model = XGBoostTrainer().fit(ds.features, ds.labels, SMALL)
        p_pos = model.predict_probability(ds.features)

        assert p_pos.shape == (300,)
        assert np.all((p_pos >= 0.0) & (p_pos <= 1.0))
        assert rank_auc(ds.labels, p_pos) > 0.75
        assert model.predict_label(ds.features, threshold=0.5).tolist() == (
            np.where(p_pos >= 0.5, 1, 0).tolist()
        )

    def test_deterministic_for_fixed_random_state(self) -> None:
        ds = make_dataset(n=120, seed=2)
        params = {**SMALL, 'subsample': 0.8, 'colsample_bytree': 0.8}

        first = XGBoostTrainer(random_state=7).fit(ds.features, ds.labels, params)
        second = XGBoostTrainer(random_state=7).fit(ds.features, ds.labels, params)

        np.testing.assert_array_equal(
            first.predict_probability(ds.features), second.predict_probability(ds.features)
        )

    def test_parameter_precedence(self) -> None:
        """Grid values override base params; fixed params override both."""
        trainer = XGBoostTrainer(base_params={'max_depth': 8, 'reg_lambda': 2.0}, n_jobs=2)

        params = trainer._build_params({'max_depth': 3, 'objective': 'reg:squarederror'})

        assert params['max_depth'] == 3
        assert params['reg_lambda'] == 2.0
        assert params['n_jobs'] == 2
        assert params['random_state'] == 42
        for key, value in FIXED_PARAMS.items():
            assert params[key] == value

    def test_handles_categorical_covariates(self) -> None:
        ds = make_dataset(n=80, seed=3)
        features = ds.features.assign(
            site=np.where(np.arange(80) % 2 == 0, 'north', 'south')
        ).astype({'site': 'category'})

        model = XGBoostTrainer().fit(features, ds.labels, SMALL)

        assert model.predict_probability(features).shape == (80,)

    def test_feature_importances(self) -> None:
        ds = make_dataset(n=200, seed=4)

        model = XGBoostTrainer().fit(ds.features, ds.labels, SMALL)
        importances = model.feature_importances()

        assert set(importances) <= {'x0', 'x1'}
        assert 'x0' in importances
        assert all(v >= 0.0 for v in importances.values())

    def test_single_class_training_raises(self) -> None:
        ds = make_dataset(n=40)
        labels = np.ones(len(ds), dtype=int)

        with pytest.raises(TrainingError, match='single label class') as exc_info:
            XGBoostTrainer().fit(ds.features, labels, SMALL)

        assert exc_info.value.params == SMALL
