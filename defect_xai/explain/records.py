"""
records.py

Common record format for LIME and break-down output, so both can be
written to the same JSONL file and plotted by the same code.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd


@dataclass
class Attribution:
    feature: str
    weight: float
    condition: Optional[str] = None
    value: Optional[Any] = None


@dataclass
class Explanation:
    """
    Attributions of one (method, model, observation) triple.

    ``prediction`` is the model's defect probability for the observation;
    ``baseline`` is the surrogate intercept (LIME) or the mean training
    prediction (break-down).
    """
    method: str
    model: str
    observation: int
    prediction: float
    baseline: Optional[float] = None
    truth: Optional[int] = None
    attributions: List[Attribution] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [asdict(a) for a in self.attributions],
            columns=["feature", "condition", "value", "weight"],
        )

    def to_records(self) -> List[Dict[str, Any]]:
        """
        Flat records, one per attribution.
        """
        meta = {
            "method": self.method,
            "model": self.model,
            "observation": self.observation,
            "truth": self.truth,
            "prediction": self.prediction,
            "baseline": self.baseline,
        }
        return [{**meta, **asdict(a)} for a in self.attributions]


def from_lime(
    frame: pd.DataFrame,
    *,
    model: str,
    observation: int,
    truth: Optional[int] = None,
) -> Explanation:
    return Explanation(
        method="lime",
        model=model,
        observation=observation,
        prediction=float(frame.attrs.get("prediction", float("nan"))),
        baseline=frame.attrs.get("intercept"),
        truth=truth,
        attributions=[
            Attribution(
                feature=row.feature,
                weight=float(row.weight),
                condition=row.condition,
                value=row.value,
            )
            for row in frame.itertuples(index=False)
        ],
    )


def from_breakdown(
    frame: pd.DataFrame,
    *,
    model: str,
    observation: int,
    truth: Optional[int] = None,
) -> Explanation:
    """
    Intercept and prediction rows become ``baseline`` and ``prediction``;
    every other row becomes an attribution.
    """
    names = frame["variable_name"]
    intercept = frame.loc[names == "intercept", "cumulative"]
    prediction = frame.loc[names == "prediction", "cumulative"]
    features = frame[~names.isin(["intercept", "prediction"])]

    return Explanation(
        method="break_down",
        model=model,
        observation=observation,
        prediction=float(prediction.iloc[0]) if len(prediction) else float("nan"),
        baseline=float(intercept.iloc[0]) if len(intercept) else None,
        truth=truth,
        attributions=[
            Attribution(
                feature=str(row.variable_name),
                weight=float(row.contribution),
                condition=f"{row.variable_name} = {row.variable_value}",
                value=row.variable_value,
            )
            for row in features.itertuples(index=False)
        ],
    )
