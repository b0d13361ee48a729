import logging

import numpy as np
import pandas as pd
import pytest
import yaml

from defect_xai.data.loader import dataset_from_frame


def make_defect_frame(n=240, seed=0):
    """
    Synthetic module-level defect data.

    ``loc`` and ``nloc`` are near duplicates, ``complexity`` follows ``loc``,
    ``churn`` and ``authors`` are independent. Defects depend on size and
    churn.
    """
    rng = np.random.RandomState(seed)

    loc = rng.lognormal(mean=5, sigma=1, size=n)
    nloc = loc * 0.8 + rng.normal(0, 1, size=n)
    complexity = loc / 20 + rng.normal(0, 1, size=n)
    churn = rng.poisson(10, size=n).astype(float)
    authors = rng.randint(1, 8, size=n)

    score = 1.2 * (np.log(loc) - 5) + 0.15 * (churn - 10)
    prob = 1 / (1 + np.exp(-score))
    real_bug = rng.uniform(size=n) < prob

    return pd.DataFrame({
        "File": [f"src/module_{i}.java" for i in range(n)],
        "loc": loc,
        "nloc": nloc,
        "complexity": complexity,
        "churn": churn,
        "authors": authors,
        "HeuBug": real_bug,
        "RealBugCount": real_bug.astype(int),
        "RealBug": real_bug,
    })


@pytest.fixture
def defect_frame():
    return make_defect_frame()


@pytest.fixture
def defect_dataset(defect_frame):
    return dataset_from_frame(defect_frame, name="synthetic")


@pytest.fixture
def data_dir(tmp_path, defect_frame):
    path = tmp_path / "data"
    path.mkdir()
    defect_frame.to_csv(path / "synthetic-1_0.csv", index=False)
    return path


@pytest.fixture
def run_config(tmp_path, data_dir):
    return {
        "experiment": {"name": "test", "seed": 7},
        "dataset": {"name": "synthetic-1_0", "data_dir": str(data_dir), "label": "RealBug"},
        "split": {"test_size": 0.25, "resamples": 3},
        "features": {"spearman_threshold": 0.7, "vif_threshold": 5},
        "models": {
            "random_forest": {"n_estimators": 25, "n_jobs": 1},
            "logistic_regression": {"max_iter": 500},
        },
        "explain": {"observations": [0, 1], "top_k": 3},
        "outputs": {"dir": str(tmp_path / "results" / "{dataset}" / "seed_{seed}")},
        "logging": {"log_dir": str(tmp_path / "logs"), "level": "INFO"},
    }


@pytest.fixture
def config_file(tmp_path, run_config):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(run_config), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def reset_defect_xai_logger():
    yield
    logger = logging.getLogger("defect_xai")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    if hasattr(logger, "_defect_xai_initialized"):
        del logger._defect_xai_initialized
