"""Cross-validated grid search and model selection for gradient-boosted trees."""

from .errors import ConfigurationError, GbtSearchError, NoValidConfigurationError, TrainingError

__version__ = '0.1.0'

__all__ = [
    'ConfigurationError',
    'GbtSearchError',
    'NoValidConfigurationError',
    'TrainingError',
    '__version__',
]
