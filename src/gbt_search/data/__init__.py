"""Dataset utilities."""

from .dataset import Dataset, load_dataset, split_train_test

__all__ = ['Dataset', 'load_dataset', 'split_train_test']
