"""
Model selection over cross-validated summaries.

Primary: mean holdout AUC (maximize), valid summaries only.
Tie-breakers among configurations within tolerance of the best (in order):
1. Lower tree count (n_estimators)
2. Lower max depth (max_depth)
3. Earlier enumeration index
"""

from __future__ import annotations

import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError, NoValidConfigurationError
from ..utils.logging import get_logger, json_log
from .aggregate import ConfigSummary
from .grid import HyperparameterConfig

log = get_logger(__name__)

SELECTION_RULES: tuple[str, ...] = ('best', 'one_se')


@dataclass(frozen=True)
class SelectionPolicy:
    """How the best configuration is chosen.

    rule='best' ties every config within ``epsilon`` of the maximum mean AUC;
    rule='one_se' widens the tolerance by the best config's standard error.
    """

    rule: str = 'best'
    epsilon: float = 0.0
    complexity_keys: tuple[str, ...] = ('n_estimators', 'max_depth')

    def __post_init__(self) -> None:
        if self.rule not in SELECTION_RULES:
            raise ConfigurationError(
                f'Unknown selection rule: {self.rule!r}. Valid rules: {list(SELECTION_RULES)}'
            )
        if self.epsilon < 0:
            raise ConfigurationError(f'epsilon must be >= 0, got {self.epsilon}')


@dataclass(frozen=True)
class SelectedConfig:
    """The single configuration chosen as best."""

    config: HyperparameterConfig
    summary: ConfigSummary
    rule: str
    n_candidates: int
    n_tied: int


def _complexity(key: str, value: Any) -> float:
    # None means unbounded (e.g. no depth limit).
    if value is None:
        return math.inf
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(
            f'Complexity key {key!r} must have numeric or null values, got {value!r}'
        )
    return float(value)


def _sort_key(summary: ConfigSummary, keys: tuple[str, ...]) -> tuple:
    config = summary.config
    complexity = tuple(_complexity(k, config[k]) for k in keys)
    return (*complexity, config.index)


def check_complexity_values(grid_spec: Mapping[str, Any], keys: tuple[str, ...]) -> None:
    """Reject complexity keys whose grid candidates cannot be ordered by size."""
    for key in keys:
        for value in grid_spec.get(key) or ():
            _complexity(key, value)



def select_best(
    summaries: Mapping[HyperparameterConfig, ConfigSummary],
    policy: SelectionPolicy | None = None,
) -> SelectedConfig:
    """
    Pick the best valid configuration.

    Args:
        summaries: Per-configuration CV summaries
        policy: Selection rule, tolerance and complexity keys

    Returns:
        SelectedConfig for the simplest configuration within tolerance of
        the highest mean AUC

    Raises:
        NoValidConfigurationError: If every summary is flagged invalid
        ConfigurationError: If a complexity key has a non-numeric value
    """
    policy = policy or SelectionPolicy()
    valid = [s for s in summaries.values() if s.valid]

    if not valid:
        reasons = '; '.join(
            f'config {s.config.index} ({s.config.label}): {s.invalid_reason}'
            for s in summaries.values()
        )
        log.error(
            json_log(
                'selection.no_valid_config',
                component='experiments.selection',
                n_configs=len(summaries),
            )
        )
        raise NoValidConfigurationError(
            f'All {len(summaries)} configuration(s) are invalid: {reasons}'
        )

    best = max(valid, key=lambda s: s.mean_auc)
    tolerance = policy.epsilon
    if policy.rule == 'one_se':
        tolerance += best.se_auc

    tied = [s for s in valid if s.mean_auc >= best.mean_auc - tolerance]
    # A key absent from any tied config ranks equal for all of them.
    keys = tuple(k for k in policy.complexity_keys if all(k in s.config for s in tied))
    winner = min(tied, key=lambda s: _sort_key(s, keys))

    log.info(
        json_log(
            'selection.completed',
            component='experiments.selection',
            rule=policy.rule,
            epsilon=policy.epsilon,
            n_candidates=len(valid),
            n_tied=len(tied),
            best_mean_auc=best.mean_auc,
            selected_index=winner.config.index,
            selected_mean_auc=winner.mean_auc,
            params=winner.config.as_dict(),
        )
    )
    return SelectedConfig(
        config=winner.config,
        summary=winner,
        rule=policy.rule,
        n_candidates=len(valid),
        n_tied=len(tied),
    )
