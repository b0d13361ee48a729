"""
evaluation.py

Resampled and held-out evaluation of defect models.

Metrics:
- accuracy : fraction of correct class predictions (threshold 0.5)
- roc_auc  : area under the ROC curve of the defective-class probability

Resampled metrics are computed on the out-of-bag (assessment) rows of each
bootstrap. A resample whose assessment rows hold a single class has an
undefined ROC AUC; it is recorded as NaN and left out of the summary.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, roc_auc_score, roc_curve
from tqdm import tqdm

from defect_xai.data.sampling import Resample
from defect_xai.features.autospearman import parse_formula
from defect_xai.models.classifiers import DefectModel, fit_model


logger = logging.getLogger("defect_xai.models")

METRICS = ("accuracy", "roc_auc")


# ============================================================
# Metric helpers
# ============================================================

def _roc_auc(truth: np.ndarray, prob: np.ndarray) -> float:
    if len(np.unique(truth)) < 2:
        return float("nan")
    return float(roc_auc_score(truth, prob))


def score(truth: Sequence[int], prob: Sequence[float], threshold: float = 0.5) -> Dict[str, float]:
    truth = np.asarray(truth).astype(int)
    prob = np.asarray(prob).astype(float)
    return {
        "accuracy": float(accuracy_score(truth, (prob >= threshold).astype(int))),
        "roc_auc": _roc_auc(truth, prob),
    }


# ============================================================
# Resampling
# ============================================================

def fit_resamples(
    family: str,
    formula: str,
    resamples: List[Resample],
    seed: int = 42,
    show_progress: bool = False,
    **params,
) -> pd.DataFrame:
    """
    Fit ``family`` on each resample's analysis rows and score it on the
    assessment rows.

    Returns one row per (resample, metric) with columns
    ``id``, ``metric``, ``estimate``.
    """
    label, _ = parse_formula(formula)
    rows = []

    for resample in tqdm(
        resamples,
        desc=f"resamples[{family}]",
        disable=not show_progress,
    ):
        model = fit_model(family, formula, resample.analysis, seed=seed, **params)
        prob = model.predict_defect_probability(resample.assessment)
        scores = score(resample.assessment[label], prob)

        for metric in METRICS:
            rows.append({
                "id": resample.id,
                "metric": metric,
                "estimate": scores[metric],
            })

    return pd.DataFrame(rows, columns=["id", "metric", "estimate"])


def collect_metrics(per_resample: pd.DataFrame) -> pd.DataFrame:
    """
    Summarise per-resample metrics: mean, number of defined estimates and
    standard error of the mean.
    """
    summary = []
    for metric, group in per_resample.groupby("metric", sort=False):
        values = group["estimate"].dropna().to_numpy(dtype=float)
        n = len(values)
        if n == 0:
            mean, std_err = float("nan"), float("nan")
        else:
            mean = float(values.mean())
            std_err = float(values.std(ddof=1) / np.sqrt(n)) if n > 1 else 0.0

        dropped = len(group) - n
        if dropped:
            logger.warning(
                f"{dropped} resample(s) with undefined {metric} left out of the summary"
            )

        summary.append({
            "metric": metric,
            "mean": mean,
            "n": n,
            "std_err": std_err,
        })

    return pd.DataFrame(summary, columns=["metric", "mean", "n", "std_err"])


# ============================================================
# Held-out test partition
# ============================================================

def predict_test(model: DefectModel, test: pd.DataFrame) -> pd.DataFrame:
    """
    Predictions on the test partition.

    Columns: ``truth``, ``pred_class``, ``prob_defective``, ``prob_clean``.
    """
    prob = model.predict_defect_probability(test)
    return pd.DataFrame({
        "truth": test[model.label].astype(int).to_numpy(),
        "pred_class": (prob >= 0.5).astype(int),
        "prob_defective": prob,
        "prob_clean": 1.0 - prob,
    })


def holdout_metrics(predictions: pd.DataFrame) -> Dict[str, float]:
    return score(predictions["truth"], predictions["prob_defective"])


def roc_curve_frame(predictions: pd.DataFrame) -> pd.DataFrame:
    """
    ROC curve points (``fpr``, ``tpr``, ``threshold``) of test predictions.
    """
    truth = predictions["truth"].to_numpy()
    if len(np.unique(truth)) < 2:
        raise ValueError("ROC curve needs both classes in the test partition")

    fpr, tpr, thresholds = roc_curve(truth, predictions["prob_defective"])
    return pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})
