"""
Ranking and classification metrics.

AUC is the Mann-Whitney estimate: the probability that a random positive
outscores a random negative, ties counted as one half (mid-ranks).
Confidence intervals use either the DeLong analytic variance or a stratified
percentile bootstrap; both are deterministic for fixed inputs.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.stats import norm, rankdata
from sklearn.metrics import confusion_matrix

CI_METHODS: tuple[str, ...] = ('delong', 'bootstrap')


@dataclass(frozen=True)
class AucInterval:
    """AUC point estimate with confidence bounds."""

    auc: float
    lower: float
    upper: float
    method: str
    level: float


def _split_scores(y_true: np.ndarray, scores: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    y_true = np.asarray(y_true)
    scores = np.asarray(scores, dtype=float)
    if y_true.shape != scores.shape:
        raise ValueError(f'y_true {y_true.shape} and scores {scores.shape} differ in shape')
    pos = scores[y_true == 1]
    neg = scores[y_true == 0]
    if pos.size == 0 or neg.size == 0:
        raise ValueError('AUC is undefined when only one label class is present')
    return pos, neg


def _mann_whitney_auc(pos: np.ndarray, neg: np.ndarray) -> float:
    m, n = pos.size, neg.size
    ranks = rankdata(np.concatenate([pos, neg]))
    return float((ranks[:m].sum() - m * (m + 1) / 2) / (m * n))


def rank_auc(y_true: np.ndarray, scores: np.ndarray) -> float:
    """Rank-based AUC with mid-rank treatment of tied scores."""
    pos, neg = _split_scores(y_true, scores)
    return _mann_whitney_auc(pos, neg)


def sensitivity_specificity(y_true: np.ndarray, y_pred: np.ndarray) -> tuple[float, float]:
    """Return (TPR, TNR); a rate with an empty denominator is 0.0."""
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    sensitivity = tp / (tp + fn) if (tp + fn) > 0 else 0.0
    specificity = tn / (tn + fp) if (tn + fp) > 0 else 0.0
    return float(sensitivity), float(specificity)


def delong_auc_ci(y_true: np.ndarray, scores: np.ndarray, level: float = 0.95) -> AucInterval:
    """
    AUC with a DeLong confidence interval.

    Variance is estimated from the structural components (placement values)
    of the Mann-Whitney statistic; bounds are clipped to [0, 1].
    """
    pos, neg = _split_scores(y_true, scores)
    m, n = pos.size, neg.size

    combined = rankdata(np.concatenate([pos, neg]))
    auc = float((combined[:m].sum() - m * (m + 1) / 2) / (m * n))

    v10 = (combined[:m] - rankdata(pos)) / n
    v01 = 1.0 - (combined[m:] - rankdata(neg)) / m
    s10 = float(np.var(v10, ddof=1)) if m > 1 else 0.0
    s01 = float(np.var(v01, ddof=1)) if n > 1 else 0.0
    se = float(np.sqrt(s10 / m + s01 / n))

    z = float(norm.ppf(1 - (1 - level) / 2))
    return AucInterval(
        auc=auc,
        lower=max(0.0, auc - z * se),
        upper=min(1.0, auc + z * se),
        method='delong',
        level=level,
    )


def bootstrap_auc_ci(
    y_true: np.ndarray,
    scores: np.ndarray,
    level: float = 0.95,
    n_bootstrap: int = 2000,
    seed: int = 0,
) -> AucInterval:
    """
    AUC with a stratified percentile-bootstrap confidence interval.

    Positives and negatives are resampled separately so every replicate keeps
    the original class counts.
    """
    if n_bootstrap < 1:
        raise ValueError(f'n_bootstrap must be >= 1, got {n_bootstrap}')
    pos, neg = _split_scores(y_true, scores)
    rng = np.random.default_rng(seed)

    replicates = np.empty(n_bootstrap, dtype=float)
    for b in range(n_bootstrap):
        boot_pos = pos[rng.integers(0, pos.size, pos.size)]
        boot_neg = neg[rng.integers(0, neg.size, neg.size)]
        replicates[b] = _mann_whitney_auc(boot_pos, boot_neg)

    alpha = (1 - level) / 2
    return AucInterval(
        auc=_mann_whitney_auc(pos, neg),
        lower=float(np.percentile(replicates, 100 * alpha)),
        upper=float(np.percentile(replicates, 100 * (1 - alpha))),
        method='bootstrap',
        level=level,
    )


def auc_confidence_interval(
    y_true: np.ndarray,
    scores: np.ndarray,
    method: str = 'delong',
    level: float = 0.95,
    n_bootstrap: int = 2000,
    seed: int = 0,
) -> AucInterval:
    """Dispatch to the configured confidence-interval method."""
    if method == 'delong':
        return delong_auc_ci(y_true, scores, level=level)
    if method == 'bootstrap':
        return bootstrap_auc_ci(y_true, scores, level=level, n_bootstrap=n_bootstrap, seed=seed)
    raise ValueError(f'Unknown CI method: {method!r}. Valid methods: {list(CI_METHODS)}')
