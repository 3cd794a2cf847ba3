"""Unit tests for repeated stratified fold generation."""

from __future__ import annotations

import numpy as np
import pytest
from conftest import make_dataset

from gbt_search.errors import ConfigurationError
from gbt_search.experiments.folds import (
    FoldAssignment,
    check_partition,
    fold_fingerprint,
    generate_folds,
)


class TestGenerateFolds:
    """Tests for generate_folds function."""

    @pytest.mark.parametrize(('k', 'repeats'), [(2, 1), (5, 2), (10, 3)])
    def test_each_repeat_is_a_partition(self, dataset, k: int, repeats: int) -> None:
        """Within a repeat, holdouts are pairwise disjoint and cover every record."""
        assignments = generate_folds(dataset, k=k, repeats=repeats, seed=7)

        assert len(assignments) == k * repeats
        for r in range(repeats):
            holdouts = [a.holdout_indices for a in assignments if a.repeat == r]
            assert len(holdouts) == k
            combined = np.concatenate(holdouts)
            assert len(combined) == len(np.unique(combined))
            assert np.array_equal(np.sort(combined), np.arange(len(dataset)))

    def test_train_and_holdout_never_overlap(self, dataset) -> None:
        """TrainIndices ∩ HoldoutIndices = ∅ and their union is the full index set."""
        for a in generate_folds(dataset, k=5, repeats=2, seed=1):
            assert np.intersect1d(a.train_indices, a.holdout_indices).size == 0
            assert np.array_equal(
                np.union1d(a.train_indices, a.holdout_indices), np.arange(len(dataset))
            )

    def test_holdouts_are_stratified(self) -> None:
        """Positive count in each holdout is within one record of the overall share."""
        ds = make_dataset(n=103, positive_fraction=0.3, seed=5)
        fraction = ds.positive_fraction

        for a in generate_folds(ds, k=4, repeats=3, seed=11):
            n_pos = int(ds.labels[a.holdout_indices].sum())
            expected = fraction * len(a.holdout_indices)
            assert abs(n_pos - expected) <= 1.0

    def test_same_seed_is_byte_identical(self, dataset) -> None:
        """Identical inputs produce identical assignments."""
        first = generate_folds(dataset, k=5, repeats=2, seed=1)
        second = generate_folds(dataset, k=5, repeats=2, seed=1)

        assert fold_fingerprint(first) == fold_fingerprint(second)
        for a, b in zip(first, second, strict=True):
            assert a.train_indices.tobytes() == b.train_indices.tobytes()
            assert a.holdout_indices.tobytes() == b.holdout_indices.tobytes()

    def test_different_seed_changes_assignments(self, dataset) -> None:
        """A different seed reshuffles the folds."""
        first = generate_folds(dataset, k=5, repeats=1, seed=1)
        second = generate_folds(dataset, k=5, repeats=1, seed=2)

        assert fold_fingerprint(first) != fold_fingerprint(second)

    def test_repeats_are_reshuffled(self, dataset) -> None:
        """Each repeat draws an independent split."""
        assignments = generate_folds(dataset, k=5, repeats=2, seed=3)
        first_repeat = [a.holdout_indices for a in assignments if a.repeat == 0]
        second_repeat = [a.holdout_indices for a in assignments if a.repeat == 1]

        assert any(
            not np.array_equal(x, y) for x, y in zip(first_repeat, second_repeat, strict=True)
        )

    def test_ordered_by_repeat_then_fold(self, dataset) -> None:
        """Assignments are ordered (repeat, fold)."""
        assignments = generate_folds(dataset, k=3, repeats=2, seed=0)

        assert [(a.repeat, a.fold) for a in assignments] == [
            (0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2),
        ]

    def test_index_arrays_are_read_only(self, dataset) -> None:
        """Assignments cannot be mutated after generation."""
        a = generate_folds(dataset, k=2, repeats=1, seed=0)[0]

        with pytest.raises(ValueError):
            a.holdout_indices[0] = 0

    @pytest.mark.parametrize(('k', 'repeats'), [(1, 1), (0, 1), (5, 0)])
    def test_rejects_invalid_k_or_repeats(self, dataset, k: int, repeats: int) -> None:
        with pytest.raises(ConfigurationError):
            generate_folds(dataset, k=k, repeats=repeats, seed=0)

    def test_rejects_k_above_minority_count(self) -> None:
        """Cannot stratify more folds than minority-class records."""
        ds = make_dataset(n=40, positive_fraction=0.1, seed=0)  # 4 positives

        with pytest.raises(ConfigurationError, match='minority class'):
            generate_folds(ds, k=5, repeats=1, seed=0)

        assert len(generate_folds(ds, k=4, repeats=1, seed=0)) == 4


class TestCheckPartition:
    """Tests for check_partition function."""

    def test_accepts_generated_assignments(self, dataset) -> None:
        check_partition(generate_folds(dataset, k=5, repeats=2, seed=0), len(dataset))

    def test_detects_leakage(self) -> None:
        """A record in both train and holdout is rejected."""
        leaky = [
            FoldAssignment(repeat=0, fold=0, train_indices=[0, 1, 2], holdout_indices=[2, 3]),
            FoldAssignment(repeat=0, fold=1, train_indices=[2, 3], holdout_indices=[0, 1]),
        ]

        with pytest.raises(ConfigurationError, match='Leakage'):
            check_partition(leaky, 4)

    def test_detects_incomplete_coverage(self) -> None:
        partial = [FoldAssignment(repeat=0, fold=0, train_indices=[0], holdout_indices=[1])]

        with pytest.raises(ConfigurationError, match='does not cover'):
            check_partition(partial, 3)

    def test_detects_repeated_holdout(self) -> None:
        """A record held out twice in one repeat is not a partition."""
        twice = [
            FoldAssignment(repeat=0, fold=0, train_indices=[2, 3], holdout_indices=[0, 1]),
            FoldAssignment(repeat=0, fold=1, train_indices=[2, 3], holdout_indices=[0, 1]),
        ]

        with pytest.raises(ConfigurationError, match='not a partition'):
            check_partition(twice, 4)
