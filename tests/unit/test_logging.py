"""Unit tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path

import numpy as np

from gbt_search.utils.logging import get_logger, json_log


class TestJsonLog:
    """Tests for json_log function."""

    def test_event_and_fields(self) -> None:
        payload = json.loads(json_log('cv.completed', component='experiments.runner', n_cells=6))

        assert payload['msg'] == 'cv.completed'
        assert payload['component'] == 'experiments.runner'
        assert payload['n_cells'] == 6
        assert isinstance(payload['ts'], float)

    def test_numpy_and_path_values(self) -> None:
        payload = json.loads(
            json_log(
                'folds.generated',
                k=np.int64(5),
                auc=np.float64(0.75),
                indices=np.array([1, 2]),
                path=Path('/tmp/report.json'),
                params={'max_depth': np.int32(3)},
            )
        )

        assert payload['k'] == 5
        assert payload['auc'] == 0.75
        assert payload['indices'] == [1, 2]
        assert payload['path'] == '/tmp/report.json'
        assert payload['params'] == {'max_depth': 3}

    def test_non_finite_values_become_null(self) -> None:
        payload = json.loads(json_log('evaluation.completed', threshold=math.inf, j=np.nan))

        assert payload['threshold'] is None
        assert payload['j'] is None


class TestGetLogger:
    """Tests for get_logger function."""

    def test_debug_flag(self, monkeypatch) -> None:
        monkeypatch.setenv('GBTS_DEBUG', '1')

        logger = get_logger('gbt_search.tests.debug_flag')

        assert logger.level == logging.DEBUG

    def test_level_name(self, monkeypatch) -> None:
        monkeypatch.delenv('GBTS_DEBUG', raising=False)
        monkeypatch.setenv('GBTS_LOG_LEVEL', 'warning')

        logger = get_logger('gbt_search.tests.level_name')

        assert logger.level == logging.WARNING

    def test_configured_once(self) -> None:
        first = get_logger('gbt_search.tests.once')
        second = get_logger('gbt_search.tests.once')

        assert first is second
        assert len(second.handlers) == 1
