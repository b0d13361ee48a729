"""
loader.py

Defect dataset loading
----------------------

A defect dataset is a table of software modules (rows) described by static
and process metrics (columns) plus the ``RealBug`` defect label.

Datasets are addressed either by name, resolved to ``<data_dir>/<name>.csv``
(e.g. ``groovy-1_5_7``), or by an explicit CSV path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import pandas as pd


DEFAULT_LABEL = "RealBug"
DEFAULT_DATA_DIR = Path("data")

# columns that describe a module but are never model inputs
NON_METRIC_COLUMNS = {
    "File",
    "commit_id",
    "author_date",
    "RealBug",
    "RealBugCount",
    "HeuBug",
    "HeuBugCount",
    "buggy",
    "bugcount",
    "fixcount",
    "label",
}


@dataclass
class DefectDataset:
    name: str
    data: pd.DataFrame
    label: str = DEFAULT_LABEL
    features: List[str] = field(default_factory=list)

    @property
    def X(self) -> pd.DataFrame:
        return self.data[self.features]

    @property
    def y(self) -> pd.Series:
        return self.data[self.label]

    def __len__(self) -> int:
        return len(self.data)


# ============================================================
# Path resolution
# ============================================================

def resolve_dataset_path(
    name_or_path: str | Path,
    data_dir: Optional[str | Path] = None,
) -> Path:
    """
    Resolve a dataset name or path to an existing CSV file.

    An existing ``.csv`` path wins over a name lookup
    in ``data_dir``.
    """
    candidate = Path(name_or_path)
    if candidate.suffix == ".csv" and candidate.exists():
        return candidate

    data_dir = Path(data_dir) if data_dir is not None else DEFAULT_DATA_DIR
    named = data_dir / f"{candidate.name}.csv"
    if candidate.suffix != ".csv" and named.exists():
        return named

    raise FileNotFoundError(
        f"Dataset not found: {name_or_path} "
        f"(looked for {candidate} and {named})"
    )


def list_datasets(data_dir: Optional[str | Path] = None) -> List[str]:
    data_dir = Path(data_dir) if data_dir is not None else DEFAULT_DATA_DIR
    if not data_dir.is_dir():
        return []
    return sorted(p.stem for p in data_dir.glob("*.csv"))


# ============================================================
# Loading
# ============================================================

def independent_variables(frame: pd.DataFrame, label: str = DEFAULT_LABEL) -> List[str]:
    """
    Numeric metric columns, in column order, excluding the label and
    bookkeeping columns.
    """
    excluded = NON_METRIC_COLUMNS | {label}
    return [
        c for c in frame.columns
        if c not in excluded and pd.api.types.is_numeric_dtype(frame[c])
        and not pd.api.types.is_bool_dtype(frame[c])
    ]


def prepare_frame(
    frame: pd.DataFrame,
    label: str = DEFAULT_LABEL,
) -> pd.DataFrame:
    """
    Drop rows with missing values and coerce the label to 0/1.
    """
    if label not in frame.columns:
        raise ValueError(
            f"No defect label column '{label}' found "
            f"(columns: {', '.join(map(str, frame.columns))})"
        )

    frame = frame.dropna().reset_index(drop=True)

    y = frame[label]
    if not pd.api.types.is_numeric_dtype(y):
        y = y.astype(str).str.strip().str.upper().map({"TRUE": 1, "FALSE": 0})
        if y.isna().any():
            raise ValueError(f"Label column '{label}' is not boolean")
    frame[label] = y.astype(int)

    return frame


def load_dataset(
    name_or_path: str | Path,
    data_dir: Optional[str | Path] = None,
    label: str = DEFAULT_LABEL,
) -> DefectDataset:
    """
    Load a defect dataset and extract its independent variables.

    Rows with missing values are dropped before use. Any missing file or
    label is reported by the raised exception; nothing is recovered.
    """
    path = resolve_dataset_path(name_or_path, data_dir)
    frame = prepare_frame(pd.read_csv(path), label=label)

    features = independent_variables(frame, label=label)
    if not features:
        raise ValueError(f"Dataset {path} has no numeric independent variables")

    return DefectDataset(
        name=path.stem,
        data=frame,
        label=label,
        features=features,
    )


def dataset_from_frame(
    frame: pd.DataFrame,
    name: str = "in-memory",
    label: str = DEFAULT_LABEL,
) -> DefectDataset:
    frame = prepare_frame(frame.copy(), label=label)
    return DefectDataset(
        name=name,
        data=frame,
        label=label,
        features=independent_variables(frame, label=label),
    )
