"""
classifiers.py

Defect classifiers (black-box core)
-----------------------------------

Two model families are supported, both built as scikit-learn pipelines:

- ``random_forest``        : RandomForestClassifier, no scaling (tree-based)
- ``logistic_regression``  : StandardScaler + LogisticRegression

A fitted pipeline is wrapped in :class:`DefectModel`, the interface handed
to the explainers. It pins the feature order given by the model formula and
only exposes ``predict`` / ``predict_proba``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Union

import joblib
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from defect_xai.features.autospearman import parse_formula


MODEL_FAMILIES = ("random_forest", "logistic_regression")

MODEL_LABELS = {
    "random_forest": "Random forest",
    "logistic_regression": "Logistic regression",
}


# ============================================================
# Model definition
# ============================================================

def build_model(family: str, seed: int = 42, **params: Any) -> Pipeline:
    """
    Build an unfitted pipeline for ``family``.

    ``params`` override the classifier's defaults.
    """
    if family == "random_forest":
        rf_params = {
            "n_estimators": 500,
            "random_state": seed,
            "n_jobs": -1,
        }
        rf_params.update(params)
        return Pipeline([
            ("clf", RandomForestClassifier(**rf_params)),
        ])

    if family == "logistic_regression":
        lr_params = {
            "max_iter": 1000,
            "random_state": seed,
        }
        lr_params.update(params)
        return Pipeline([
            ("scaler", StandardScaler()),
            ("clf", LogisticRegression(**lr_params)),
        ])

    raise ValueError(
        f"Unknown model family: {family!r} "
        f"(expected one of {', '.join(MODEL_FAMILIES)})"
    )


# ============================================================
# Black-box wrapper (for explainers)
# ============================================================

class DefectModel:
    """
    Fitted defect model with a fixed feature order.

    Accepts ndarray / dict / list-of-dict / DataFrame inputs.
    """

    def __init__(
        self,
        family: str,
        pipeline: Pipeline,
        formula: str,
    ):
        self.family = family
        self.pipeline = pipeline
        self.formula = formula
        self.label, self.feature_columns = parse_formula(formula)

    def __repr__(self) -> str:
        return f"DefectModel(family={self.family!r}, formula={self.formula!r})"

    @property
    def name(self) -> str:
        return MODEL_LABELS.get(self.family, self.family)

    @property
    def classes_(self) -> np.ndarray:
        return self.pipeline.classes_

    def _to_dataframe(
        self,
        X: Union[pd.DataFrame, np.ndarray, dict, List[dict]]
    ) -> pd.DataFrame:
        if isinstance(X, pd.DataFrame):
            df = X
        elif isinstance(X, pd.Series):
            df = X.to_frame().T
        elif isinstance(X, np.ndarray):
            df = pd.DataFrame(np.atleast_2d(X), columns=self.feature_columns)
        elif isinstance(X, dict):
            df = pd.DataFrame([X])
        elif isinstance(X, list):
            df = pd.DataFrame(X)
        else:
            raise TypeError(f"Unsupported input type: {type(X)}")

        missing = [c for c in self.feature_columns if c not in df.columns]
        if missing:
            raise KeyError(f"Missing model features: {', '.join(missing)}")

        return df[self.feature_columns].apply(pd.to_numeric, errors="raise")

    def predict(self, X) -> np.ndarray:
        return self.pipeline.predict(self._to_dataframe(X))

    def predict_proba(self, X) -> np.ndarray:
        return self.pipeline.predict_proba(self._to_dataframe(X))

    def predict_defect_probability(self, X) -> np.ndarray:
        """
        Probability of the defective class (label 1).
        """
        proba = self.predict_proba(X)
        return proba[:, list(self.classes_).index(1)]


# ============================================================
# Training
# ============================================================

def fit_model(
    family: str,
    formula: str,
    train: pd.DataFrame,
    seed: int = 42,
    **params: Any,
) -> DefectModel:
    """
    Fit ``family`` on ``train`` using the columns named in ``formula``.
    """
    label, features = parse_formula(formula)

    pipeline = build_model(family, seed=seed, **params)
    pipeline.fit(train[features], train[label])

    return DefectModel(family=family, pipeline=pipeline, formula=formula)


# ============================================================
# Persistence
# ============================================================

def save_model(model: DefectModel, path: str | Path, **meta: Any) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    bundle: Dict[str, Any] = {
        "family": model.family,
        "model": model.pipeline,
        "formula": model.formula,
        "feature_columns": list(model.feature_columns),
    }
    bundle.update(meta)

    joblib.dump(bundle, path)
    return path


def load_model(path: str | Path) -> DefectModel:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Model not found: {path}. "
            f"Please train it first."
        )

    bundle = joblib.load(path)
    return DefectModel(
        family=bundle["family"],
        pipeline=bundle["model"],
        formula=bundle["formula"],
    )
