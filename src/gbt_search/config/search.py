"""Config models and loaders for grid search runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..common.metrics import CI_METHODS
from ..errors import ConfigurationError
from ..experiments.grid import DEFAULT_GRID, grid_size
from ..experiments.selection import SelectionPolicy, check_complexity_values


@dataclass(frozen=True)
class DataConfig:
    train_path: Path
    label_column: str
    positive_label: str
    test_path: Path | None = None
    test_ratio: float = 0.2
    split_seed: int = 42
    feature_columns: tuple[str, ...] | None = None


@dataclass(frozen=True)
class CVConfig:
    k: int = 5
    repeats: int = 3
    seed: int = 42
    n_jobs: int = 1
    backend: str | None = None
    failure_tolerance: int = 0
    timeout_seconds: float | None = None
    label_threshold: float = 0.5


@dataclass(frozen=True)
class EvaluationConfig:
    default_threshold: float = 0.5
    ci_method: str = 'delong'
    ci_level: float = 0.95
    n_bootstrap: int = 2000
    seed: int = 0


@dataclass(frozen=True)
class TrainerConfig:
    n_jobs: int = 1
    random_state: int = 42
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OutputConfig:
    dir: Path = Path('artifacts/search')


@dataclass(frozen=True)
class SearchConfig:
    data: DataConfig
    cv: CVConfig = field(default_factory=CVConfig)
    grid: dict[str, list] = field(default_factory=lambda: dict(DEFAULT_GRID))
    selection: SelectionPolicy = field(default_factory=SelectionPolicy)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    trainer: TrainerConfig = field(default_factory=TrainerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_search_config(config_path: str | Path) -> SearchConfig:
    """Load a search config YAML file."""
    cfg_path = Path(config_path).expanduser().resolve()
    if not cfg_path.exists():
        raise ConfigurationError(f'Config file not found: {cfg_path}')

    data = _read_yaml(cfg_path)
    base_dir = cfg_path.parent

    data_section = data.get('data') or {}
    cv_section = data.get('cv') or {}
    selection_section = data.get('selection') or {}
    evaluation_section = data.get('evaluation') or {}
    trainer_section = data.get('trainer') or {}
    output_section = data.get('output') or {}

    train_path = data_section.get('train_path')
    if not train_path:
        raise ConfigurationError('data.train_path must be set in search config')
    label_column = data_section.get('label_column')
    if not label_column:
        raise ConfigurationError('data.label_column must be set in search config')
    if data_section.get('positive_label') is None:
        raise ConfigurationError('data.positive_label must be set in search config')

    feature_columns = data_section.get('feature_columns')
    data_cfg = DataConfig(
        train_path=_resolve_path(base_dir, train_path),
        label_column=str(label_column),
        positive_label=str(data_section['positive_label']),
        test_path=_resolve_optional_path(base_dir, data_section.get('test_path')),
        test_ratio=float(data_section.get('test_ratio', 0.2)),
        split_seed=int(data_section.get('split_seed', 42)),
        feature_columns=tuple(str(c) for c in feature_columns) if feature_columns else None,
    )

    timeout = cv_section.get('timeout_seconds')
    cv = CVConfig(
        k=int(cv_section.get('k', 5)),
        repeats=int(cv_section.get('repeats', 3)),
        seed=int(cv_section.get('seed', 42)),
        n_jobs=int(cv_section.get('n_jobs', 1)),
        backend=cv_section.get('backend'),
        failure_tolerance=int(cv_section.get('failure_tolerance', 0)),
        timeout_seconds=float(timeout) if timeout is not None else None,
        label_threshold=float(cv_section.get('label_threshold', 0.5)),
    )

    grid = data.get('grid')
    if grid is None:
        grid = dict(DEFAULT_GRID)
    if not isinstance(grid, dict):
        raise ConfigurationError('grid must be a mapping of parameter name to candidate list')

    complexity_keys = selection_section.get('complexity_keys', ['n_estimators', 'max_depth'])
    selection = SelectionPolicy(
        rule=str(selection_section.get('rule', 'best')),
        epsilon=float(selection_section.get('epsilon', 0.0)),
        complexity_keys=tuple(str(k) for k in complexity_keys),
    )

    evaluation = EvaluationConfig(
        default_threshold=float(evaluation_section.get('default_threshold', 0.5)),
        ci_method=str(evaluation_section.get('ci_method', 'delong')),
        ci_level=float(evaluation_section.get('ci_level', 0.95)),
        n_bootstrap=int(evaluation_section.get('n_bootstrap', 2000)),
        seed=int(evaluation_section.get('seed', 0)),
    )

    trainer = TrainerConfig(
        n_jobs=int(trainer_section.get('n_jobs', 1)),
        random_state=int(trainer_section.get('random_state', 42)),
        params=dict(trainer_section.get('params') or {}),
    )

    output = OutputConfig(
        dir=_resolve_path(base_dir, output_section.get('dir', 'artifacts/search')),
    )

    config = SearchConfig(
        data=data_cfg,
        cv=cv,
        grid=grid,
        selection=selection,
        evaluation=evaluation,
        trainer=trainer,
        output=output,
    )
    validate_search_config(config)
    return config


def load_grid_spec(grid_path: str | Path) -> dict[str, list]:
    """Load a standalone grid YAML (mapping of parameter -> candidates)."""
    path = Path(grid_path).expanduser().resolve()
    if not path.exists():
        raise ConfigurationError(f'Grid file not found: {path}')
    data = _read_yaml(path)
    # Accept either a bare mapping or one nested under a `grid` key.
    grid = data.get('grid', data)
    if not isinstance(grid, dict):
        raise ConfigurationError(f'Grid file {path} must contain a mapping')
    grid_size(grid)
    return grid


def validate_search_config(config: SearchConfig) -> None:
    """Check value ranges that the loaders cannot express by type alone."""
    cv = config.cv
    if cv.k < 2:
        raise ConfigurationError(f'cv.k must be >= 2, got {cv.k}')
    if cv.repeats < 1:
        raise ConfigurationError(f'cv.repeats must be >= 1, got {cv.repeats}')
    if cv.failure_tolerance < 0:
        raise ConfigurationError(f'cv.failure_tolerance must be >= 0, got {cv.failure_tolerance}')
    if cv.timeout_seconds is not None and cv.timeout_seconds <= 0:
        raise ConfigurationError(f'cv.timeout_seconds must be > 0, got {cv.timeout_seconds}')
    if cv.n_jobs == 0:
        raise ConfigurationError('cv.n_jobs must be non-zero')
    if not 0.0 < config.data.test_ratio < 1.0:
        raise ConfigurationError(f'data.test_ratio must be in (0, 1), got {config.data.test_ratio}')
    if config.evaluation.ci_method not in CI_METHODS:
        raise ConfigurationError(
            f'evaluation.ci_method must be one of {list(CI_METHODS)}, '
            f'got {config.evaluation.ci_method!r}'
        )
    if not 0.0 < config.evaluation.ci_level < 1.0:
        raise ConfigurationError(
            f'evaluation.ci_level must be in (0, 1), got {config.evaluation.ci_level}'
        )
    grid_size(config.grid)
    check_complexity_values(config.grid, config.selection.complexity_keys)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open('r', encoding='utf-8') as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f'Invalid YAML in {path}: {e}') from e
    if not isinstance(data, dict):
        raise ConfigurationError(f'{path} must contain a YAML mapping')
    return data


def _resolve_path(base: Path, value: str | Path) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def _resolve_optional_path(base: Path, value: str | Path | None) -> Path | None:
    if value is None:
        return None
    return _resolve_path(base, value)
