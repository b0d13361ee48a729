"""
Figures for a pipeline run: ROC curves of the test predictions and bar
charts of LIME / break-down attributions.

Figures are rendered with the non-interactive Agg backend and returned so
callers can save or further adjust them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from sklearn.metrics import auc  # noqa: E402

from defect_xai.explain.records import Explanation  # noqa: E402


POSITIVE_COLOR = "#d62728"
NEGATIVE_COLOR = "#2ca02c"


def plot_roc(
    roc_frames: Dict[str, pd.DataFrame],
    title: str = "ROC curve (test partition)",
):
    """
    One ROC curve per model, with its AUC in the legend.
    """
    fig, ax = plt.subplots(figsize=(6, 5))

    for name, frame in roc_frames.items():
        roc_auc = auc(frame["fpr"], frame["tpr"])
        ax.plot(frame["fpr"], frame["tpr"], lw=2, label=f"{name} (AUC = {roc_auc:.3f})")

    ax.plot([0, 1], [0, 1], linestyle="--", lw=1, color="grey")
    ax.set_xlim(0.0, 1.0)
    ax.set_ylim(0.0, 1.05)
    ax.set_xlabel("False Positive Rate")
    ax.set_ylabel("True Positive Rate")
    ax.set_title(title)
    ax.legend(loc="lower right")
    fig.tight_layout()
    return fig


def plot_lime(explanation: Explanation):
    """
    Horizontal bars of LIME weights, strongest rule on top.
    """
    frame = explanation.to_frame().iloc[::-1]
    colors = [POSITIVE_COLOR if w > 0 else NEGATIVE_COLOR for w in frame["weight"]]

    fig, ax = plt.subplots(figsize=(7, 0.5 * len(frame) + 1.5))
    ax.barh(frame["condition"], frame["weight"], color=colors)
    ax.axvline(0, color="black", lw=0.8)
    ax.set_xlabel("Weight towards 'defective'")
    ax.set_title(
        f"LIME | {explanation.model} | obs {explanation.observation} "
        f"| p(defective) = {explanation.prediction:.3f}"
    )
    fig.tight_layout()
    return fig


def plot_breakdown(explanation: Explanation):
    """
    Waterfall chart: bars start at the running total and span each
    feature's contribution, from the intercept to the prediction.
    """
    frame = explanation.to_frame()
    baseline = explanation.baseline or 0.0

    labels = ["intercept"] + list(frame["condition"]) + ["prediction"]
    starts, widths, colors = [0.0], [baseline], ["grey"]

    running = baseline
    for w in frame["weight"]:
        starts.append(running)
        widths.append(w)
        colors.append(POSITIVE_COLOR if w > 0 else NEGATIVE_COLOR)
        running += w

    starts.append(0.0)
    widths.append(explanation.prediction)
    colors.append("steelblue")

    fig, ax = plt.subplots(figsize=(7, 0.5 * len(labels) + 1.5))
    positions = range(len(labels) - 1, -1, -1)
    ax.barh(list(positions), widths, left=starts, color=colors)
    ax.set_yticks(list(positions))
    ax.set_yticklabels(labels)
    ax.set_xlabel("Defect probability")
    ax.set_title(
        f"Break-down | {explanation.model} | obs {explanation.observation}"
    )
    fig.tight_layout()
    return fig


def plot_explanation(explanation: Explanation):
    if explanation.method == "lime":
        return plot_lime(explanation)
    if explanation.method == "break_down":
        return plot_breakdown(explanation)
    raise ValueError(f"Unknown explanation method: {explanation.method}")


def save_figure(fig, path: str | Path, dpi: Optional[int] = 120) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    return path
