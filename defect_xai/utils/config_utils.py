"""
config_utils
============

Loading and validating YAML run configurations.

Design principles:
- Explicit configuration, CLI flags only override it
- Deterministic runs (the seed lives in the config)
- Fail fast on malformed or incomplete configs
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from defect_xai.models.classifiers import MODEL_FAMILIES


REQUIRED_SECTIONS = (
    "dataset",
    "split",
    "features",
    "models",
    "explain",
    "outputs",
    "logging",
)

SUPPORTED_MODELS = MODEL_FAMILIES


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def load_yaml_config(path: str | Path) -> Dict[str, Any]:
    """
    Load and minimally validate a YAML run configuration file.

    Parameters
    ----------
    path : str or Path
        Path to YAML config file.

    Returns
    -------
    dict
        Parsed configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the config file does not exist.
    ValueError
        If the YAML file cannot be parsed or is structurally invalid.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(
            f"Failed to parse YAML config file: {path}"
        ) from e

    if not isinstance(config, dict):
        raise ValueError(
            f"Invalid config format (expected a mapping at top level): {path}"
        )

    validate_config(config, config_path=path)
    return config


def validate_config(
    config: Dict[str, Any],
    *,
    config_path: Optional[Path] = None,
) -> None:
    """
    Structural validation of a parsed config.

    Checks that the required sections exist and that only known model
    families are requested. Values inside sections are not validated here;
    the library calls that consume them raise on bad values.
    """
    _validate_required_sections(
        config,
        required_sections=REQUIRED_SECTIONS,
        config_path=config_path,
    )

    models = config["models"] or {}
    if not isinstance(models, dict) or not models:
        raise ValueError(
            f"Config section 'models' must map model families to parameters"
            f"{_where(config_path)}"
        )

    unknown = [m for m in models if m not in SUPPORTED_MODELS]
    if unknown:
        raise ValueError(
            f"Unsupported model famil{'y' if len(unknown) == 1 else 'ies'}: "
            f"{', '.join(unknown)} (supported: {', '.join(SUPPORTED_MODELS)})"
            f"{_where(config_path)}"
        )


def apply_overrides(
    config: Dict[str, Any],
    *,
    dataset: Optional[str] = None,
    seed: Optional[int] = None,
    output_dir: Optional[str | Path] = None,
    resamples: Optional[int] = None,
    progress: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Return a copy of ``config`` with CLI overrides applied.
    """
    cfg = copy.deepcopy(config)
    cfg.setdefault("experiment", {})

    if dataset is not None:
        cfg["dataset"]["name"] = dataset
    if seed is not None:
        cfg["experiment"]["seed"] = seed
    if output_dir is not None:
        cfg["outputs"]["dir"] = str(output_dir)
    if resamples is not None:
        cfg["split"]["resamples"] = resamples
    if progress is not None:
        cfg["split"]["progress"] = progress

    return cfg


def render_path(template: str, cfg: Dict[str, Any]) -> Path:
    """
    Render output path templates using run variables.

    Supported placeholders: ``{dataset}``, ``{seed}``, ``{experiment}``.
    """
    exp = cfg.get("experiment", {})
    name = Path(str(cfg["dataset"]["name"]))
    # dotted release names (activemq-5.0.0) keep their version
    dataset = name.stem if name.suffix == ".csv" else name.name
    return Path(
        template.format(
            dataset=dataset,
            seed=exp.get("seed", "default"),
            experiment=exp.get("name") or dataset,
        )
    )


# ----------------------------------------------------------------------
# Internal helpers
# ----------------------------------------------------------------------

def _validate_required_sections(
    config: Dict[str, Any],
    *,
    required_sections: Iterable[str],
    config_path: Optional[Path],
) -> None:
    missing = [
        key for key in required_sections
        if key not in config
    ]

    if missing:
        raise ValueError(
            "Missing required top-level config section(s): "
            f"{', '.join(missing)}{_where(config_path)}"
        )


def _where(config_path: Optional[Path]) -> str:
    return f" in config file {config_path}" if config_path else ""
