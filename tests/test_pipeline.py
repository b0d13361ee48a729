import logging

import pytest

from defect_xai.pipeline import check_observations, run_pipeline
from defect_xai.utils.io_utils import read_json, read_jsonl


@pytest.fixture
def result(run_config):
    return run_pipeline(run_config, logging.getLogger("defect_xai.test"))


def test_pipeline_runs_every_stage(result):
    assert result.dataset.name == "synthetic-1_0"
    assert result.formula.startswith("RealBug ~ ")
    assert set(result.models) == {"random_forest", "logistic_regression"}

    for model_result in result.models.values():
        assert len(model_result.resample_metrics) == 2 * 3
        assert set(model_result.summary["metric"]) == {"accuracy", "roc_auc"}
        assert len(model_result.predictions) == result.split.test_size
        assert 0.0 <= model_result.test_metrics["roc_auc"] <= 1.0

    # 2 models x 2 observations x 2 methods
    assert len(result.explanations) == 8
    assert {(e.method, e.model, e.observation) for e in result.explanations} == {
        (m, f, o)
        for m in ("lime", "break_down")
        for f in ("random_forest", "logistic_regression")
        for o in (0, 1)
    }


def test_pipeline_writes_artifacts(result):
    out = result.output_dir
    assert out.name == "seed_7"

    features = read_json(out / "features.json")
    assert features["formula"] == result.formula
    assert features["selected"] == result.features

    metrics = read_json(out / "metrics.json")
    assert set(metrics["random_forest"]["resampled"]) == {"accuracy", "roc_auc"}

    records = list(read_jsonl(out / "explanations.jsonl"))
    assert records
    assert {r["method"] for r in records} == {"lime", "break_down"}

    for name in ("resamples.csv", "predictions.csv", "plots/roc.png",
                 "plots/lime_random_forest_obs0.png",
                 "plots/break_down_logistic_regression_obs1.png",
                 "models/random_forest.joblib"):
        assert (out / name).exists(), name


def test_explanations_share_predictions_across_methods(result):
    by_key = {}
    for exp in result.explanations:
        by_key.setdefault((exp.model, exp.observation), []).append(exp.prediction)
    for predictions in by_key.values():
        assert predictions[0] == pytest.approx(predictions[1], abs=1e-6)


def test_observation_outside_test_partition(run_config):
    run_config["explain"]["observations"] = [0, 10_000]
    run_config["outputs"]["dir"] = None
    with pytest.raises(IndexError):
        run_pipeline(run_config)


def test_progress_bars_follow_split_config(run_config, capsys):
    run_config["split"]["progress"] = True
    run_config["outputs"]["dir"] = None
    run_config["explain"]["methods"] = ["lime"]

    run_pipeline(run_config)

    err = capsys.readouterr().err
    assert "resamples[random_forest]" in err
    assert "resamples[logistic_regression]" in err


def test_check_observations():
    assert check_observations([0, "2"], 3) == [0, 2]
    with pytest.raises(IndexError):
        check_observations([-1], 3)
