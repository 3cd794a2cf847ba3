"""Configuration utilities for gbt_search."""

from .search import (
    CVConfig,
    DataConfig,
    EvaluationConfig,
    OutputConfig,
    SearchConfig,
    TrainerConfig,
    load_grid_spec,
    load_search_config,
    validate_search_config,
)

__all__ = [
    'CVConfig',
    'DataConfig',
    'EvaluationConfig',
    'OutputConfig',
    'SearchConfig',
    'TrainerConfig',
    'load_grid_spec',
    'load_search_config',
    'validate_search_config',
]
