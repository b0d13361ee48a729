"""
breakdown.py

Break-down explanations of single defect predictions.

A break-down decomposes one prediction additively: starting from the mean
prediction over the training data (the intercept), features are fixed to
the instance's values one at a time and the change in mean prediction is
attributed to each feature. Contributions sum to the instance's prediction.
"""

from __future__ import annotations

from typing import Optional

import dalex as dx
import numpy as np
import pandas as pd

from defect_xai.models.classifiers import DefectModel


BREAKDOWN_COLUMNS = [
    "variable_name",
    "variable_value",
    "contribution",
    "cumulative",
]


def _defect_probability(model: DefectModel, data: pd.DataFrame) -> np.ndarray:
    return model.predict_defect_probability(data)


def build_dalex_explainer(
    model: DefectModel,
    X_train: pd.DataFrame,
    y_train: pd.Series,
    label: Optional[str] = None,
) -> dx.Explainer:
    return dx.Explainer(
        model,
        data=X_train[model.feature_columns],
        y=np.asarray(y_train, dtype=int),
        predict_function=_defect_probability,
        model_type="classification",
        label=label or model.name,
        verbose=False,
    )


def explain_with_breakdown(
    model: DefectModel,
    X_train: pd.DataFrame,
    y_train: pd.Series,
    X_instance: pd.DataFrame,
    label: Optional[str] = None,
    seed: int = 42,
) -> pd.DataFrame:
    """
    Break-down decomposition of ``model``'s defect probability for the
    single row in ``X_instance``.

    Returns a DataFrame with ``variable_name``, ``variable_value``,
    ``contribution`` and ``cumulative``. The first row is the intercept and
    the last row is the final prediction; feature rows sit in between in the
    order the decomposition visited them.
    """
    if len(X_instance) != 1:
        raise ValueError(
            f"Break-down explains exactly one observation, got {len(X_instance)}"
        )

    explainer = build_dalex_explainer(model, X_train, y_train, label=label)
    parts = explainer.predict_parts(
        X_instance[model.feature_columns],
        type="break_down",
        random_state=seed,
    )

    result = parts.result.copy()
    is_prediction = result["variable"] == "prediction"
    result["variable_value"] = result["variable_value"].astype(object)
    result.loc[is_prediction, "variable_name"] = "prediction"
    result.loc[is_prediction, "variable_value"] = ""

    return result[BREAKDOWN_COLUMNS].reset_index(drop=True)
