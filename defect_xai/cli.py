"""
CLI entry point for defect-xai.

Execution modes:
  - run              : full pipeline (load -> split -> features -> models -> explain)
  - select-features  : AutoSpearman on the training partition, print the formula
  - datasets         : list datasets available in the data directory
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from defect_xai.data.loader import list_datasets, load_dataset
from defect_xai.data.sampling import stratified_split
from defect_xai.features.autospearman import build_formula
from defect_xai.pipeline import run_pipeline, select_features
from defect_xai.utils.config_utils import apply_overrides, load_yaml_config
from defect_xai.utils.logging_utils import (
    create_logger,
    log_exception,
    log_experiment_end,
    log_experiment_start,
)


DEFAULT_CONFIG = Path("configs/default.yaml")


# ----------------------------------------------------------------------
# Argument parsing
# ----------------------------------------------------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="defect-xai",
        description="Defect prediction with LIME and break-down explanations",
    )

    parser.add_argument(
        "command",
        choices=["run", "select-features", "datasets"],
        help="Execution mode",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config YAML",
    )

    parser.add_argument(
        "--dataset",
        type=str,
        default=None,
        help="Dataset name (e.g., groovy-1_5_7) or CSV path; overrides config",
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding <name>.csv datasets; overrides config",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed; overrides config",
    )

    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output directory; overrides config",
    )

    parser.add_argument(
        "--resamples",
        type=int,
        default=None,
        help="Number of bootstrap resamples; overrides config",
    )

    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar over the bootstrap resamples",
    )

    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> Dict[str, Any]:
    cfg = load_yaml_config(args.config)
    cfg = apply_overrides(
        cfg,
        dataset=args.dataset,
        seed=args.seed,
        output_dir=args.output,
        resamples=args.resamples,
        progress=True if args.progress else None,
    )
    if args.data_dir is not None:
        cfg["dataset"]["data_dir"] = str(args.data_dir)
    return cfg


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------

def cmd_datasets(args: argparse.Namespace) -> int:
    data_dir = args.data_dir
    if data_dir is None and args.config.exists():
        data_dir = load_yaml_config(args.config)["dataset"].get("data_dir")

    names = list_datasets(data_dir)
    if not names:
        print(f"No datasets found in {data_dir or 'data'}")
        return 1
    for name in names:
        print(name)
    return 0


def cmd_select_features(cfg: Dict[str, Any], logger) -> int:
    ds_cfg = cfg["dataset"]
    dataset = load_dataset(
        ds_cfg["name"],
        data_dir=ds_cfg.get("data_dir"),
        label=ds_cfg.get("label", "RealBug"),
    )
    seed = int(cfg.get("experiment", {}).get("seed", 42))
    split = stratified_split(
        dataset, test_size=cfg["split"].get("test_size", 0.25), seed=seed
    )
    features = select_features(dataset, split.train, cfg["features"])

    logger.info(f"Selected {len(features)}/{len(dataset.features)} metrics")
    print(build_formula(dataset.label, features))
    return 0


def cmd_run(cfg: Dict[str, Any], logger) -> int:
    result = run_pipeline(cfg, logger)
    summary = {
        family: {k: round(v, 4) for k, v in r.test_metrics.items()}
        for family, r in result.models.items()
    }
    log_experiment_end(logger, summary=summary)
    return 0


# ----------------------------------------------------------------------
# Main entry
# ----------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.command == "datasets":
        return cmd_datasets(args)

    cfg = _load_config(args)

    log_cfg = cfg["logging"] or {}
    logger = create_logger(
        name="defect_xai",
        log_dir=log_cfg.get("log_dir"),
        level=log_cfg.get("level", "INFO"),
    )

    log_experiment_start(
        logger,
        config_path=args.config,
        extra={
            "command": args.command,
            "dataset": cfg["dataset"]["name"],
            "seed": cfg.get("experiment", {}).get("seed"),
        },
    )

    try:
        if args.command == "select-features":
            return cmd_select_features(cfg, logger)
        return cmd_run(cfg, logger)
    except Exception as e:
        log_exception(logger, e, context=f"command={args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
