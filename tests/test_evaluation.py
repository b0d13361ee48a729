import numpy as np
import pandas as pd
import pytest

from defect_xai.data.sampling import bootstrap_resamples, stratified_split
from defect_xai.models.classifiers import fit_model
from defect_xai.models.evaluation import (
    collect_metrics,
    fit_resamples,
    holdout_metrics,
    predict_test,
    roc_curve_frame,
    score,
)


FORMULA = "RealBug ~ loc + churn"


@pytest.fixture
def split(defect_dataset):
    return stratified_split(defect_dataset, seed=5)


def test_fit_resamples_scores_each_resample(split):
    resamples = bootstrap_resamples(split.train, "RealBug", times=4, seed=0)

    per_resample = fit_resamples("logistic_regression", FORMULA, resamples, seed=0)

    assert list(per_resample.columns) == ["id", "metric", "estimate"]
    assert len(per_resample) == 8
    assert set(per_resample["metric"]) == {"accuracy", "roc_auc"}
    assert per_resample["estimate"].between(0, 1).all()


def test_fit_resamples_progress_bar(split, capsys):
    resamples = bootstrap_resamples(split.train, "RealBug", times=2, seed=0)

    fit_resamples("logistic_regression", FORMULA, resamples, seed=0)
    assert "resamples[" not in capsys.readouterr().err

    fit_resamples("logistic_regression", FORMULA, resamples, seed=0, show_progress=True)
    assert "resamples[logistic_regression]" in capsys.readouterr().err


def test_collect_metrics_summarises():
    per_resample = pd.DataFrame({
        "id": ["B1", "B2", "B3", "B1", "B2", "B3"],
        "metric": ["accuracy"] * 3 + ["roc_auc"] * 3,
        "estimate": [0.6, 0.7, 0.8, 0.9, np.nan, 0.7],
    })

    summary = collect_metrics(per_resample).set_index("metric")

    assert summary.loc["accuracy", "mean"] == pytest.approx(0.7)
    assert summary.loc["accuracy", "n"] == 3
    assert summary.loc["accuracy", "std_err"] == pytest.approx(0.1 / np.sqrt(3))
    # undefined estimates are left out
    assert summary.loc["roc_auc", "n"] == 2
    assert summary.loc["roc_auc", "mean"] == pytest.approx(0.8)


def test_score_handles_single_class():
    scores = score([1, 1, 1], [0.9, 0.2, 0.7])
    assert scores["accuracy"] == pytest.approx(2 / 3)
    assert np.isnan(scores["roc_auc"])


def test_predict_test_and_roc(split):
    model = fit_model("random_forest", FORMULA, split.train, n_estimators=30, n_jobs=1)
    predictions = predict_test(model, split.test)

    assert list(predictions.columns) == ["truth", "pred_class", "prob_defective", "prob_clean"]
    assert len(predictions) == split.test_size
    np.testing.assert_allclose(predictions["prob_defective"] + predictions["prob_clean"], 1.0)

    metrics = holdout_metrics(predictions)
    assert 0.5 < metrics["roc_auc"] <= 1.0

    roc = roc_curve_frame(predictions)
    assert roc["fpr"].is_monotonic_increasing
    assert roc["tpr"].is_monotonic_increasing
    assert roc["fpr"].iloc[-1] == 1.0
    assert roc["tpr"].iloc[-1] == 1.0


def test_roc_needs_both_classes():
    predictions = pd.DataFrame({"truth": [1, 1], "prob_defective": [0.2, 0.8]})
    with pytest.raises(ValueError):
        roc_curve_frame(predictions)
