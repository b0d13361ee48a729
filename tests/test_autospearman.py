import numpy as np
import pandas as pd
import pytest

from defect_xai.features.autospearman import (
    autospearman,
    build_formula,
    parse_formula,
    spearman_prune,
    vif_prune,
    vif_scores,
)


def test_drops_near_duplicate_metrics(defect_dataset):
    selected = autospearman(defect_dataset.data, defect_dataset.features)

    assert "churn" in selected
    assert "authors" in selected
    # loc, nloc and complexity rank almost identically; one survives
    assert len({"loc", "nloc", "complexity"} & set(selected)) == 1


def test_keeps_original_column_order(defect_dataset):
    selected = autospearman(defect_dataset.data, defect_dataset.features)
    order = [defect_dataset.features.index(f) for f in selected]
    assert order == sorted(order)


def test_spearman_drops_member_more_correlated_with_the_rest():
    rng = np.random.RandomState(1)
    a = rng.normal(size=300)
    c = rng.normal(size=300)
    frame = pd.DataFrame({
        "a": a,
        # b duplicates a and also tracks c
        "b": a + 0.6 * c + rng.normal(0, 0.05, 300),
        "c": c,
    })
    kept = spearman_prune(frame, threshold=0.7)
    assert kept == ["a", "c"]


def test_spearman_tie_keeps_first_column():
    rng = np.random.RandomState(3)
    a = rng.normal(size=200)
    # a cube keeps the ranks of a, so both correlate equally with c
    frame = pd.DataFrame({"a": a, "b": a ** 3, "c": rng.normal(size=200)})

    assert spearman_prune(frame[["a", "b", "c"]]) == ["a", "c"]
    assert spearman_prune(frame[["b", "a", "c"]]) == ["b", "c"]
    assert spearman_prune(frame[["b", "a"]]) == ["b"]


def test_vif_pass_removes_linear_combination():
    rng = np.random.RandomState(2)
    frame = pd.DataFrame(rng.normal(size=(400, 3)), columns=["x1", "x2", "x3"])
    frame["total"] = frame.sum(axis=1) + rng.normal(0, 0.05, 400)

    assert vif_scores(frame).idxmax() == "total"
    assert vif_prune(frame, threshold=5) == ["x1", "x2", "x3"]
    assert autospearman(frame, list(frame.columns)) == ["x1", "x2", "x3"]


def test_independent_metrics_survive():
    rng = np.random.RandomState(3)
    frame = pd.DataFrame(rng.normal(size=(200, 4)), columns=list("abcd"))
    assert autospearman(frame, list("abcd")) == list("abcd")
    assert (vif_scores(frame) < 2).all()


def test_constant_metrics_are_discarded():
    rng = np.random.RandomState(4)
    frame = pd.DataFrame({"a": rng.normal(size=50), "const": 1.0, "b": rng.normal(size=50)})
    assert autospearman(frame, ["a", "const", "b"]) == ["a", "b"]


def test_no_usable_features_raise():
    frame = pd.DataFrame({"const": [1.0] * 10})
    with pytest.raises(ValueError):
        autospearman(frame, [])
    with pytest.raises(ValueError):
        autospearman(frame, ["const"])


def test_formula_round_trip():
    formula = build_formula("RealBug", ["loc", "churn"])
    assert formula == "RealBug ~ loc + churn"
    assert parse_formula(formula) == ("RealBug", ["loc", "churn"])


@pytest.mark.parametrize("bad", ["RealBug", "~ a", "RealBug ~ ", "a ~ b ~ c"])
def test_parse_formula_rejects_malformed(bad):
    with pytest.raises(ValueError):
        parse_formula(bad)


def test_build_formula_needs_features():
    with pytest.raises(ValueError):
        build_formula("RealBug", [])
