import numpy as np
import pandas as pd
import pytest

from defect_xai.data.sampling import bootstrap_resamples, stratified_split


def test_split_is_stratified_and_sized(defect_dataset):
    split = stratified_split(defect_dataset, test_size=0.25, seed=1)

    assert split.train_size + split.test_size == len(defect_dataset)
    assert split.test_size == 60

    overall = defect_dataset.y.mean()
    assert split.train["RealBug"].mean() == pytest.approx(overall, abs=0.02)
    assert split.test["RealBug"].mean() == pytest.approx(overall, abs=0.03)


def test_split_is_reproducible(defect_dataset):
    a = stratified_split(defect_dataset, seed=3)
    b = stratified_split(defect_dataset, seed=3)
    c = stratified_split(defect_dataset, seed=4)

    pd.testing.assert_frame_equal(a.test, b.test)
    assert not a.test["File"].equals(c.test["File"])


def test_bootstrap_shape_and_strata(defect_frame):
    resamples = bootstrap_resamples(defect_frame, "RealBug", times=10, seed=0)

    assert len(resamples) == 10
    assert resamples[0].id == "Bootstrap01"
    assert resamples[-1].id == "Bootstrap10"

    counts = defect_frame["RealBug"].value_counts()
    for r in resamples:
        assert len(r.analysis) == len(defect_frame)
        assert r.analysis["RealBug"].value_counts().to_dict() == counts.to_dict()
        assert len(r.assessment) > 0


def test_assessment_is_out_of_bag(defect_frame):
    resample = bootstrap_resamples(defect_frame, "RealBug", times=1, seed=5)[0]
    in_bag = set(resample.analysis["File"])
    out_of_bag = set(resample.assessment["File"])

    assert in_bag.isdisjoint(out_of_bag)
    assert in_bag | out_of_bag == set(defect_frame["File"])


def test_bootstrap_is_reproducible(defect_frame):
    a = bootstrap_resamples(defect_frame, "RealBug", times=2, seed=9)
    b = bootstrap_resamples(defect_frame, "RealBug", times=2, seed=9)
    for ra, rb in zip(a, b):
        pd.testing.assert_frame_equal(ra.analysis, rb.analysis)


def test_bootstrap_rejects_bad_arguments(defect_frame):
    with pytest.raises(ValueError):
        bootstrap_resamples(defect_frame, "RealBug", times=0)
    with pytest.raises(ValueError):
        bootstrap_resamples(defect_frame.head(1), "RealBug")


def test_bootstrap_redraws_until_out_of_bag_nonempty():
    frame = pd.DataFrame({"x": np.arange(4.0), "RealBug": [0, 0, 1, 1]})
    for r in bootstrap_resamples(frame, "RealBug", times=50, seed=0):
        assert len(r.assessment) >= 1
