"""
lime_explainer.py

LIME explanations of single defect predictions.

LIME perturbs the instance, queries the black-box model and fits a sparse
linear surrogate around it. With ``discretize_continuous=True`` every
explanation item is a threshold rule over one feature, e.g.
``"la <= 33.00"`` or ``"3.00 < tcmt <= 15.00"``.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

import pandas as pd
from lime.lime_tabular import LimeTabularExplainer

from defect_xai.models.classifiers import DefectModel


DEFAULT_CLASS_NAMES = ("clean", "defective")

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")


def build_lime_explainer(
    X_train: pd.DataFrame,
    feature_names: Sequence[str],
    class_names: Sequence[str] = DEFAULT_CLASS_NAMES,
    seed: int = 42,
) -> LimeTabularExplainer:
    return LimeTabularExplainer(
        training_data=X_train[list(feature_names)].values,
        feature_names=list(feature_names),
        class_names=list(class_names),
        mode="classification",
        discretize_continuous=True,
        random_state=seed,
    )


def _explain(
    model: DefectModel,
    X_train: pd.DataFrame,
    X_instance: pd.DataFrame,
    feature_names: Sequence[str],
    class_names: Sequence[str],
    seed: int,
    top_k: int,
):
    # LIME hands predict_proba bare arrays laid out in feature_names order
    if list(feature_names) != model.feature_columns:
        raise ValueError(
            f"LIME feature order {list(feature_names)} does not match the "
            f"model formula order {model.feature_columns}"
        )
    explainer = build_lime_explainer(X_train, feature_names, class_names, seed)
    return explainer.explain_instance(
        X_instance[list(feature_names)].values[0],
        model.predict_proba,
        num_features=top_k,
        labels=(1,),
    )


def explain_with_lime(
    model: DefectModel,
    X_train: pd.DataFrame,
    X_instance: pd.DataFrame,
    feature_names: Sequence[str],
    class_names: Sequence[str] = DEFAULT_CLASS_NAMES,
    seed: int = 42,
    top_k: int = 5,
) -> List[Tuple[str, float]]:
    """
    Generate a LIME explanation for a single instance.

    Returns:
        List of (condition, weight), strongest first, for the defective class.
    """
    exp = _explain(
        model, X_train, X_instance, feature_names, class_names, seed, top_k
    )
    return exp.as_list(label=1)


def lime_attributions(
    model: DefectModel,
    X_train: pd.DataFrame,
    X_instance: pd.DataFrame,
    feature_names: Sequence[str],
    class_names: Sequence[str] = DEFAULT_CLASS_NAMES,
    seed: int = 42,
    top_k: int = 5,
) -> pd.DataFrame:
    """
    LIME explanation as a table.

    Columns: ``feature``, ``condition``, ``value`` (the instance's value of
    the feature), ``weight``. The model's defect probability and the
    surrogate's intercept are attached in ``frame.attrs``.
    """
    feature_names = list(feature_names)
    exp = _explain(
        model, X_train, X_instance, feature_names, class_names, seed, top_k
    )

    conditions = exp.as_list(label=1)
    indices = exp.as_map()[1]
    instance = X_instance[feature_names].iloc[0]

    frame = pd.DataFrame([
        {
            "feature": feature_names[idx],
            "condition": condition,
            "value": float(instance[feature_names[idx]]),
            "weight": float(weight),
        }
        for (idx, _), (condition, weight) in zip(indices, conditions)
    ], columns=["feature", "condition", "value", "weight"])

    frame.attrs["prediction"] = float(exp.predict_proba[1])
    frame.attrs["intercept"] = float(exp.intercept[1])
    return frame


def lime_condition_to_feature(
    condition: str,
    feature_names: Optional[Sequence[str]] = None,
) -> str:
    """
    Extract the base feature name from a LIME rule string.

    Examples:
    - "tcmt > 15.00"            -> "tcmt"
    - "3.00 < tcmt <= 15.00"    -> "tcmt"
    - "la <= 33.00"             -> "la"
    """
    tokens = condition.split()
    if feature_names is not None:
        known = set(feature_names)
        for token in tokens:
            if token in known:
                return token
        token = condition.split("=")[0].strip()
        if token in known:
            return token

    for token in tokens:
        if _IDENTIFIER.fullmatch(token) and not _is_number(token):
            return token

    raise ValueError(f"Cannot extract base feature from LIME rule: {condition}")


def _is_number(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True
