"""
autospearman.py

AutoSpearman feature selection
------------------------------

Removes multicollinearity among defect metrics in two passes:

1. Spearman pass: while some pair of metrics has |rho| above the
   correlation threshold, take the most correlated pair and drop the member
   that correlates more, on average, with the metrics outside the pair.
2. VIF pass: while some metric has a variance inflation factor above the
   VIF threshold, drop the metric with the highest VIF.

Reference: Jiarpakdee, Tantithamthavorn, Treude. "AutoSpearman: Automatically
Mitigating Correlated Software Metrics for Interpreting Defect Models"
(ICSME 2018).
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.tools.tools import add_constant


logger = logging.getLogger("defect_xai.features")

SPEARMAN_THRESHOLD = 0.7
VIF_THRESHOLD = 5.0


# ============================================================
# Spearman pass
# ============================================================

def _most_correlated_pair(abs_corr: pd.DataFrame) -> Tuple[str, str, float]:
    values = np.nan_to_num(abs_corr.to_numpy(copy=True), nan=0.0)
    # only the strict upper triangle holds distinct pairs
    values[np.tril_indices_from(values)] = -1.0
    i, j = np.unravel_index(np.argmax(values), values.shape)
    return abs_corr.index[i], abs_corr.columns[j], float(values[i, j])


def spearman_prune(
    frame: pd.DataFrame,
    threshold: float = SPEARMAN_THRESHOLD,
) -> List[str]:
    """
    Spearman pass of AutoSpearman. Returns surviving column names.
    """
    remaining = list(frame.columns)

    while len(remaining) > 1:
        abs_corr = frame[remaining].corr(method="spearman").abs()
        a, b, rho = _most_correlated_pair(abs_corr)
        if rho <= threshold:
            break

        others = [c for c in remaining if c not in (a, b)]
        if others:
            mean_a = abs_corr.loc[a, others].mean()
            mean_b = abs_corr.loc[b, others].mean()
        else:
            mean_a = mean_b = 0.0

        dropped = b if mean_a <= mean_b else a
        logger.debug(
            f"spearman: |rho({a}, {b})|={rho:.3f} > {threshold}, drop {dropped}"
        )
        remaining.remove(dropped)

    return remaining


# ============================================================
# VIF pass
# ============================================================

def vif_scores(frame: pd.DataFrame) -> pd.Series:
    """
    Variance inflation factor of each column (intercept included in the
    auxiliary regressions, excluded from the result).
    """
    design = add_constant(frame.astype(float), has_constant="add")
    scores = {
        col: variance_inflation_factor(design.values, i)
        for i, col in enumerate(design.columns)
        if col != "const"
    }
    return pd.Series(scores, name="vif")


def vif_prune(
    frame: pd.DataFrame,
    threshold: float = VIF_THRESHOLD,
) -> List[str]:
    remaining = list(frame.columns)

    while len(remaining) > 1:
        scores = vif_scores(frame[remaining])
        worst = scores.idxmax()
        if scores[worst] <= threshold:
            break
        logger.debug(f"vif: {worst}={scores[worst]:.3f} > {threshold}, drop")
        remaining.remove(worst)

    return remaining


# ============================================================
# AutoSpearman
# ============================================================

def autospearman(
    frame: pd.DataFrame,
    features: Sequence[str],
    spearman_threshold: float = SPEARMAN_THRESHOLD,
    vif_threshold: float = VIF_THRESHOLD,
) -> List[str]:
    """
    Select a decorrelated subset of ``features``.

    Constant columns are discarded before either pass. The result keeps
    the original column order.
    """
    features = list(features)
    if not features:
        raise ValueError("No candidate features given to AutoSpearman")

    X = frame[features]
    varying = [c for c in features if X[c].nunique(dropna=True) > 1]
    if not varying:
        raise ValueError("All candidate features are constant")

    selected = spearman_prune(X[varying], threshold=spearman_threshold)
    selected = vif_prune(X[selected], threshold=vif_threshold)

    logger.info(
        f"AutoSpearman kept {len(selected)}/{len(features)} features: "
        f"{', '.join(selected)}"
    )
    return [c for c in features if c in selected]


# ============================================================
# Formula
# ============================================================

def build_formula(label: str, features: Sequence[str]) -> str:
    """
    ``build_formula("RealBug", ["a", "b"])`` -> ``"RealBug ~ a + b"``
    """
    if not features:
        raise ValueError("A model formula needs at least one feature")
    return f"{label} ~ " + " + ".join(features)


def parse_formula(formula: str) -> Tuple[str, List[str]]:
    if formula.count("~") != 1:
        raise ValueError(f"Invalid model formula: {formula!r}")

    lhs, rhs = (part.strip() for part in formula.split("~"))
    features = [f.strip() for f in rhs.split("+") if f.strip()]
    if not lhs or not features:
        raise ValueError(f"Invalid model formula: {formula!r}")
    return lhs, features
