"""Exception hierarchy for the search harness."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class GbtSearchError(Exception):
    """Base exception for all harness errors."""


class ConfigurationError(GbtSearchError):
    """Search inputs are invalid (config, grid, fold settings or data)."""


class NoValidConfigurationError(GbtSearchError):
    """Every configuration in the grid was flagged invalid."""


class TrainingError(GbtSearchError):
    """The trainer failed to fit a model.

    Carries the configuration and, for cross-validation cells, the repeat and
    fold that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        params: Mapping[str, Any] | None = None,
        repeat: int | None = None,
        fold: int | None = None,
    ) -> None:
        super().__init__(message)
        self.params = dict(params) if params is not None else None
        self.repeat = repeat
        self.fold = fold

    def context(self) -> dict[str, Any]:
        return {'params': self.params, 'repeat': self.repeat, 'fold': self.fold}
