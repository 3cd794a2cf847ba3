"""
ROC tracing and operating-threshold selection.

Decision rule: predict positive if p_pos >= threshold.

Candidate thresholds are the distinct predicted probabilities, swept from
high to low. Counts for every candidate come from one sort plus cumulative
sums, O(n log n) overall.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class RocPoint:
    """One point of the ROC curve."""

    fpr: float
    tpr: float
    threshold: float


@dataclass(frozen=True)
class ThresholdResult:
    """Operating point maximising Youden's J."""

    threshold: float
    sensitivity: float
    specificity: float
    youden_j: float


def _sweep(y_true: np.ndarray, p_pos: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (thresholds desc, tpr, fpr) for each distinct probability."""
    y_true = np.asarray(y_true)
    p_pos = np.asarray(p_pos, dtype=float)
    n_pos = int(np.sum(y_true == 1))
    n_neg = int(np.sum(y_true == 0))
    if n_pos == 0 or n_neg == 0:
        raise ValueError('ROC is undefined when only one label class is present')

    order = np.argsort(-p_pos, kind='mergesort')
    sorted_p = p_pos[order]
    sorted_y = y_true[order]

    tp_cum = np.cumsum(sorted_y == 1)
    fp_cum = np.cumsum(sorted_y == 0)

    # Last position of each run of equal probabilities: all records with
    # p >= threshold are predicted positive.
    last_of_run = np.r_[np.diff(sorted_p) != 0, True]

    thresholds = sorted_p[last_of_run]
    tpr = tp_cum[last_of_run] / n_pos
    fpr = fp_cum[last_of_run] / n_neg
    return thresholds, tpr, fpr


def roc_curve_points(y_true: np.ndarray, p_pos: np.ndarray) -> tuple[RocPoint, ...]:
    """
    Trace the ROC curve over every distinct predicted probability.

    The curve starts at the anchor (0, 0) with threshold +inf (nothing
    predicted positive) and ends at (1, 1) at the lowest probability.
    """
    thresholds, tpr, fpr = _sweep(y_true, p_pos)
    points = [RocPoint(fpr=0.0, tpr=0.0, threshold=math.inf)]
    points.extend(
        RocPoint(fpr=float(f), tpr=float(t), threshold=float(th))
        for f, t, th in zip(fpr, tpr, thresholds, strict=True)
    )
    return tuple(points)


def select_youden_threshold(y_true: np.ndarray, p_pos: np.ndarray) -> ThresholdResult:
    """
    Select the threshold maximising sensitivity + specificity - 1.

    Ties resolve to the highest threshold.
    """
    thresholds, tpr, fpr = _sweep(y_true, p_pos)
    j = tpr - fpr
    # argmax returns the first maximum, i.e. the highest threshold.
    best = int(np.argmax(j))
    return ThresholdResult(
        threshold=float(thresholds[best]),
        sensitivity=float(tpr[best]),
        specificity=float(1.0 - fpr[best]),
        youden_j=float(j[best]),
    )


def apply_threshold(p_pos: np.ndarray, threshold: float) -> np.ndarray:
    """
    Apply decision rule to get predictions.

    Returns:
        Predicted labels (0=negative, 1=positive)
    """
    return np.where(np.asarray(p_pos) >= threshold, 1, 0)
