"""
Hyperparameter grid definitions and Cartesian-product enumeration.

Configurations are enumerated lexicographically over parameter declaration
order (the first parameter varies slowest), so a configuration's index is
reproducible across runs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from itertools import product
from typing import Any

from ..errors import ConfigurationError

# =============================================================================
# Default XGBoost grid
# =============================================================================

DEFAULT_GRID: dict[str, list] = {
    'n_estimators': [100, 300],
    'max_depth': [3, 6],
    'learning_rate': [0.05, 0.1],
    'min_child_weight': [1],
    'subsample': [0.8],
    'colsample_bytree': [0.8],
}


@dataclass(frozen=True)
class HyperparameterConfig:
    """One point of the grid: an immutable, ordered name -> value mapping."""

    index: int
    params: tuple[tuple[str, Any], ...]

    def __getitem__(self, name: str) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self.params)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def as_dict(self) -> dict[str, Any]:
        """Return a fresh dict copy of the parameters."""
        return dict(self.params)

    @property
    def label(self) -> str:
        return ','.join(f'{key}={value}' for key, value in self.params)


def _freeze(value: Any) -> Any:
    # YAML yields lists; tuples keep configs hashable.
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _validate_spec(spec: Mapping[str, Sequence[Any]]) -> None:
    if not spec:
        raise ConfigurationError('Grid specification is empty; product size must be positive')
    for name, candidates in spec.items():
        if isinstance(candidates, (str, bytes)) or not isinstance(candidates, Sequence):
            raise ConfigurationError(
                f'Candidates for {name!r} must be a sequence of values, got {candidates!r}'
            )
        if len(candidates) == 0:
            raise ConfigurationError(f'Candidates for {name!r} are empty')


def grid_size(spec: Mapping[str, Sequence[Any]]) -> int:
    """Number of configurations the grid expands to."""
    _validate_spec(spec)
    size = 1
    for candidates in spec.values():
        size *= len(candidates)
    return size


def enumerate_grid(spec: Mapping[str, Sequence[Any]]) -> tuple[HyperparameterConfig, ...]:
    """
    Expand a grid specification into every candidate configuration.

    Args:
        spec: Mapping from parameter name to its ordered candidate values

    Returns:
        Configurations in lexicographic order over declaration order

    Raises:
        ConfigurationError: If the spec is empty or any candidate list is
            empty or not a sequence
    """
    _validate_spec(spec)

    keys = list(spec.keys())
    values = [[_freeze(v) for v in spec[k]] for k in keys]

    return tuple(
        HyperparameterConfig(index=i, params=tuple(zip(keys, combo, strict=True)))
        for i, combo in enumerate(product(*values))
    )
