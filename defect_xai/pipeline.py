"""
pipeline.py

End-to-end defect prediction and explanation run
------------------------------------------------

Stages (all seeded from ``experiment.seed``):

1. load      : read the defect dataset, drop incomplete rows
2. split     : stratified train/test split + bootstrap resamples of train
3. features  : AutoSpearman on the training partition -> model formula
4. models    : per model family, resampled evaluation, final fit on the
               full training partition, test predictions and ROC curve
5. explain   : LIME and break-down for fixed test observations
6. report    : metrics, predictions, explanations and figures on disk
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from defect_xai.data.loader import DefectDataset, load_dataset
from defect_xai.data.sampling import DataSplit, bootstrap_resamples, stratified_split
from defect_xai.explain.breakdown import explain_with_breakdown
from defect_xai.explain.lime_explainer import DEFAULT_CLASS_NAMES, lime_attributions
from defect_xai.explain.records import Explanation, from_breakdown, from_lime
from defect_xai.features.autospearman import autospearman, build_formula
from defect_xai.models.classifiers import MODEL_LABELS, DefectModel, fit_model, save_model
from defect_xai.models.evaluation import (
    collect_metrics,
    fit_resamples,
    holdout_metrics,
    predict_test,
    roc_curve_frame,
)
from defect_xai.reporting.plots import plot_explanation, plot_roc, save_figure
from defect_xai.utils.config_utils import render_path
from defect_xai.utils.io_utils import write_json, write_jsonl, write_table
from defect_xai.utils.logging_utils import log_stage, timed_stage


DEFAULT_SEED = 42
EXPLAIN_METHODS = ("lime", "break_down")


@dataclass
class ModelResult:
    family: str
    model: DefectModel
    resample_metrics: pd.DataFrame
    summary: pd.DataFrame
    predictions: pd.DataFrame
    test_metrics: Dict[str, float]
    roc: pd.DataFrame


@dataclass
class PipelineResult:
    dataset: DefectDataset
    split: DataSplit
    features: List[str]
    formula: str
    models: Dict[str, ModelResult] = field(default_factory=dict)
    explanations: List[Explanation] = field(default_factory=list)
    output_dir: Optional[Path] = None

    def metrics_summary(self) -> Dict[str, Any]:
        return {
            family: {
                "resampled": {
                    row.metric: {"mean": row.mean, "n": row.n, "std_err": row.std_err}
                    for row in result.summary.itertuples(index=False)
                },
                "test": result.test_metrics,
            }
            for family, result in self.models.items()
        }


# ============================================================
# Stages
# ============================================================

def select_features(
    dataset: DefectDataset,
    train: pd.DataFrame,
    feature_cfg: Dict[str, Any],
) -> List[str]:
    return autospearman(
        train,
        dataset.features,
        spearman_threshold=feature_cfg.get("spearman_threshold", 0.7),
        vif_threshold=feature_cfg.get("vif_threshold", 5),
    )


def run_model(
    family: str,
    params: Dict[str, Any],
    formula: str,
    split: DataSplit,
    resamples,
    seed: int,
    logger: logging.Logger,
    show_progress: bool = False,
) -> ModelResult:
    params = dict(params or {})

    with timed_stage(logger, "resample", model=family):
        per_resample = fit_resamples(
            family, formula, resamples, seed=seed,
            show_progress=show_progress, **params
        )
        summary = collect_metrics(per_resample)
    for row in summary.itertuples(index=False):
        log_stage(
            logger,
            stage="resample",
            model=family,
            message=f"{row.metric}: mean={row.mean:.4f} std_err={row.std_err:.4f} n={row.n}",
        )

    with timed_stage(logger, "fit", model=family):
        model = fit_model(family, formula, split.train, seed=seed, **params)

    predictions = predict_test(model, split.test)
    metrics = holdout_metrics(predictions)
    log_stage(
        logger,
        stage="test",
        model=family,
        message=f"accuracy={metrics['accuracy']:.4f} roc_auc={metrics['roc_auc']:.4f}",
    )

    return ModelResult(
        family=family,
        model=model,
        resample_metrics=per_resample,
        summary=summary,
        predictions=predictions,
        test_metrics=metrics,
        roc=roc_curve_frame(predictions),
    )


def check_observations(observations: List[int], test_size: int) -> List[int]:
    """
    Validate test-partition positions before any explainer is built.
    """
    checked = []
    for obs in observations:
        obs = int(obs)
        if not 0 <= obs < test_size:
            raise IndexError(
                f"Observation {obs} outside the test partition (size {test_size})"
            )
        checked.append(obs)
    return checked


def explain_observations(
    models: Dict[str, ModelResult],
    split: DataSplit,
    features: List[str],
    explain_cfg: Dict[str, Any],
    seed: int,
    logger: logging.Logger,
) -> List[Explanation]:
    observations = check_observations(
        explain_cfg.get("observations", [0, 1]), split.test_size
    )
    methods = explain_cfg.get("methods", list(EXPLAIN_METHODS))
    unknown = [m for m in methods if m not in EXPLAIN_METHODS]
    if unknown:
        raise ValueError(f"Unknown explanation method(s): {', '.join(unknown)}")

    top_k = explain_cfg.get("top_k", len(features))
    class_names = explain_cfg.get("class_names", list(DEFAULT_CLASS_NAMES))

    X_train = split.train[features]
    y_train = split.train[split.label]

    explanations: List[Explanation] = []
    for family, result in models.items():
        for obs in observations:
            X_instance = split.test.iloc[[obs]][features]
            truth = int(split.test[split.label].iloc[obs])

            if "lime" in methods:
                frame = lime_attributions(
                    result.model,
                    X_train,
                    X_instance,
                    feature_names=features,
                    class_names=class_names,
                    seed=seed,
                    top_k=top_k,
                )
                explanations.append(
                    from_lime(frame, model=family, observation=obs, truth=truth)
                )

            if "break_down" in methods:
                frame = explain_with_breakdown(
                    result.model,
                    X_train,
                    y_train,
                    X_instance,
                    label=MODEL_LABELS.get(family, family),
                    seed=seed,
                )
                explanations.append(
                    from_breakdown(frame, model=family, observation=obs, truth=truth)
                )

            log_stage(
                logger,
                stage="explain",
                model=family,
                message=f"observation {obs} (truth={truth}) explained with {', '.join(methods)}",
            )

    return explanations


def write_outputs(result: PipelineResult, output_dir: Path, save_models: bool = True) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)

    write_json(output_dir / "features.json", {
        "dataset": result.dataset.name,
        "candidates": result.dataset.features,
        "selected": result.features,
        "formula": result.formula,
    })
    write_json(output_dir / "metrics.json", result.metrics_summary())

    resamples, predictions = [], []
    for family, model_result in result.models.items():
        resamples.append(model_result.resample_metrics.assign(model=family))
        predictions.append(
            model_result.predictions.assign(model=family, observation=range(len(model_result.predictions)))
        )
        if save_models:
            save_model(
                model_result.model,
                output_dir / "models" / f"{family}.joblib",
                seed=result.split.seed,
            )
    if resamples:
        write_table(output_dir / "resamples.csv", pd.concat(resamples, ignore_index=True))
        write_table(output_dir / "predictions.csv", pd.concat(predictions, ignore_index=True))

    write_jsonl(
        output_dir / "explanations.jsonl",
        (record for exp in result.explanations for record in exp.to_records()),
    )

    plot_dir = output_dir / "plots"
    if result.models:
        save_figure(
            plot_roc({
                MODEL_LABELS.get(f, f): r.roc for f, r in result.models.items()
            }),
            plot_dir / "roc.png",
        )
    for exp in result.explanations:
        save_figure(
            plot_explanation(exp),
            plot_dir / f"{exp.method}_{exp.model}_obs{exp.observation}.png",
        )


# ============================================================
# Entry
# ============================================================

def run_pipeline(
    cfg: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    """
    Run every stage for the configuration ``cfg``.

    Library errors are not caught here; they propagate to the caller.
    """
    logger = logger or logging.getLogger("defect_xai")
    seed = int(cfg.get("experiment", {}).get("seed", DEFAULT_SEED))

    ds_cfg = cfg["dataset"]
    with timed_stage(logger, "load"):
        dataset = load_dataset(
            ds_cfg["name"],
            data_dir=ds_cfg.get("data_dir"),
            label=ds_cfg.get("label", "RealBug"),
        )
    log_stage(
        logger,
        stage="load",
        message=f"{dataset.name}: {len(dataset)} rows, {len(dataset.features)} metrics, "
                f"defect ratio {dataset.y.mean():.3f}",
    )

    split_cfg = cfg["split"]
    split = stratified_split(dataset, test_size=split_cfg.get("test_size", 0.25), seed=seed)
    resamples = bootstrap_resamples(
        split.train, dataset.label, times=split_cfg.get("resamples", 100), seed=seed
    )
    log_stage(
        logger,
        stage="split",
        message=f"train={split.train_size} test={split.test_size} resamples={len(resamples)}",
    )

    with timed_stage(logger, "features"):
        features = select_features(dataset, split.train, cfg["features"])
    formula = build_formula(dataset.label, features)
    log_stage(logger, stage="features", message=f"formula: {formula}")

    result = PipelineResult(
        dataset=dataset,
        split=split,
        features=features,
        formula=formula,
    )

    for family, params in cfg["models"].items():
        result.models[family] = run_model(
            family, params, formula, split, resamples, seed, logger,
            show_progress=bool(split_cfg.get("progress", False)),
        )

    with timed_stage(logger, "explain"):
        result.explanations = explain_observations(
            result.models, split, features, cfg["explain"], seed, logger
        )

    out_template = cfg["outputs"].get("dir")
    if out_template:
        output_dir = render_path(out_template, cfg)
        with timed_stage(logger, "report"):
            write_outputs(
                result, output_dir, save_models=cfg["outputs"].get("save_models", True)
            )
        result.output_dir = output_dir
        log_stage(logger, stage="report", message=f"artifacts written to {output_dir}")

    return result
