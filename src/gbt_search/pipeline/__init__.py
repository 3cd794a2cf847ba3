"""End-to-end search pipeline."""

from .search import (
    SearchResult,
    load_partitions,
    run_search,
    run_search_from_config,
    save_search_artifacts,
    search_result_to_dict,
)

__all__ = [
    'SearchResult',
    'load_partitions',
    'run_search',
    'run_search_from_config',
    'save_search_artifacts',
    'search_result_to_dict',
]
