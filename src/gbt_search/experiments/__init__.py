"""
Cross-validated grid search components.

Modules:
- folds: Repeated stratified k-fold assignments
- grid: Grid specification and Cartesian-product enumeration
- runner: Per-cell training and holdout scoring
- aggregate: Per-configuration metric summaries
- selection: Best-configuration policy with simplicity tie-break
"""

from .aggregate import ConfigSummary, aggregate_metrics, summaries_to_frame
from .folds import FoldAssignment, check_partition, fold_fingerprint, generate_folds
from .grid import DEFAULT_GRID, HyperparameterConfig, enumerate_grid, grid_size
from .runner import ConfigEvaluation, FoldFailure, FoldMetric, evaluate_grid
from .selection import (
    SELECTION_RULES,
    SelectedConfig,
    SelectionPolicy,
    check_complexity_values,
    select_best,
)

__all__ = [
    # Folds
    'FoldAssignment',
    'generate_folds',
    'check_partition',
    'fold_fingerprint',
    # Grid
    'DEFAULT_GRID',
    'HyperparameterConfig',
    'enumerate_grid',
    'grid_size',
    # Runner
    'FoldMetric',
    'FoldFailure',
    'ConfigEvaluation',
    'evaluate_grid',
    # Aggregation
    'ConfigSummary',
    'aggregate_metrics',
    'summaries_to_frame',
    # Selection
    'SELECTION_RULES',
    'SelectionPolicy',
    'SelectedConfig',
    'check_complexity_values',
    'select_best',
]
