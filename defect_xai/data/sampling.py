"""
sampling.py

Train/test splitting and bootstrap resampling, both stratified by the
defect label and seeded for reproducibility.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from defect_xai.data.loader import DefectDataset


DEFAULT_TEST_SIZE = 0.25
DEFAULT_RESAMPLES = 100

# redraws allowed for a bootstrap whose out-of-bag set came out empty
MAX_REDRAWS = 100


@dataclass
class DataSplit:
    train: pd.DataFrame
    test: pd.DataFrame
    label: str
    seed: int

    @property
    def train_size(self) -> int:
        return len(self.train)

    @property
    def test_size(self) -> int:
        return len(self.test)


@dataclass
class Resample:
    """
    One bootstrap resample: ``analysis`` rows are drawn with replacement,
    ``assessment`` holds the out-of-bag rows.
    """
    id: str
    analysis: pd.DataFrame
    assessment: pd.DataFrame


# ============================================================
# Train / test
# ============================================================

def stratified_split(
    dataset: DefectDataset,
    test_size: float = DEFAULT_TEST_SIZE,
    seed: int = 42,
) -> DataSplit:
    """
    Split a dataset into train and test partitions, stratified by label.
    """
    train, test = train_test_split(
        dataset.data,
        test_size=test_size,
        stratify=dataset.y,
        random_state=seed,
    )
    return DataSplit(
        train=train.reset_index(drop=True),
        test=test.reset_index(drop=True),
        label=dataset.label,
        seed=seed,
    )


# ============================================================
# Bootstrap
# ============================================================

def _stratified_draw(
    labels: np.ndarray,
    rng: np.random.RandomState,
) -> np.ndarray:
    """
    Draw row positions with replacement inside each class so that every
    resample keeps the class proportions of the training partition.
    """
    drawn = []
    for cls in np.unique(labels):
        idx = np.flatnonzero(labels == cls)
        drawn.append(rng.choice(idx, size=len(idx), replace=True))
    return np.sort(np.concatenate(drawn))


def bootstrap_resamples(
    frame: pd.DataFrame,
    label: str,
    times: int = DEFAULT_RESAMPLES,
    seed: int = 42,
) -> List[Resample]:
    """
    Generate stratified bootstrap resamples of ``frame``.

    Each resample has as many analysis rows as ``frame``. Its assessment
    set (the rows never drawn) is guaranteed to be non-empty.
    """
    if times < 1:
        raise ValueError(f"times must be >= 1, got {times}")
    if len(frame) < 2:
        raise ValueError("Need at least two rows to bootstrap")

    labels = frame[label].to_numpy()
    rng = np.random.RandomState(seed)
    width = len(str(times))

    resamples: List[Resample] = []
    for i in range(1, times + 1):
        for _ in range(MAX_REDRAWS):
            in_bag = _stratified_draw(labels, rng)
            out_of_bag = np.setdiff1d(np.arange(len(frame)), in_bag)
            if len(out_of_bag):
                break
        else:
            raise RuntimeError(
                f"Could not draw a bootstrap with out-of-bag rows "
                f"after {MAX_REDRAWS} attempts"
            )

        resamples.append(
            Resample(
                id=f"Bootstrap{i:0{width}d}",
                analysis=frame.iloc[in_bag].reset_index(drop=True),
                assessment=frame.iloc[out_of_bag].reset_index(drop=True),
            )
        )

    return resamples
