"""
logging_utils
=============

Logging helpers for defect-xai runs.

Every run gets a run_id that is embedded in each log line, so console
output, the log file and the written artifacts can be matched up later.
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


# ----------------------------------------------------------------------
# Logger creation
# ----------------------------------------------------------------------

def create_logger(
    name: str = "defect_xai",
    log_dir: Optional[str | Path] = None,
    level: int | str = logging.INFO,
    run_id: Optional[str] = None,
) -> logging.Logger:
    """
    Create or retrieve a configured logger.

    Repeated calls with the same name return the same logger
    without adding handlers twice.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if getattr(logger, "_defect_xai_initialized", False):
        return logger

    run_id = run_id or generate_run_id()
    formatter = _create_formatter(run_id)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f"{name}_{run_id}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.log_file = log_file  # type: ignore[attr-defined]

    logger.propagate = False

    logger.run_id = run_id  # type: ignore[attr-defined]
    logger._defect_xai_initialized = True  # type: ignore[attr-defined]

    logger.info(f"Logger initialized | run_id={run_id}")

    return logger


def _create_formatter(run_id: str) -> logging.Formatter:
    return logging.Formatter(
        fmt=(
            "%(asctime)s | "
            "%(levelname)-8s | "
            "%(name)s | "
            f"run={run_id} | "
            "%(message)s"
        ),
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def generate_run_id() -> str:
    """
    Time-sortable run identifier, e.g. ``20240101-120000-1a2b3c4d``.
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"{timestamp}-{uuid.uuid4().hex[:8]}"


# ----------------------------------------------------------------------
# Run boundary helpers
# ----------------------------------------------------------------------

def log_experiment_start(
    logger: logging.Logger,
    *,
    config_path: Optional[str | Path] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    msg = "Experiment started"
    if config_path:
        msg += f" | config={config_path}"
    if extra:
        msg += " | " + ", ".join(f"{k}={v}" for k, v in extra.items())
    logger.info(msg)


def log_experiment_end(
    logger: logging.Logger,
    *,
    summary: Optional[Dict[str, Any]] = None,
) -> None:
    if summary:
        logger.info(f"Experiment finished | summary={summary}")
    else:
        logger.info("Experiment finished")


# ----------------------------------------------------------------------
# Stage helpers
# ----------------------------------------------------------------------

def log_stage(
    logger: logging.Logger,
    *,
    stage: str,
    message: str,
    model: Optional[str] = None,
) -> None:
    """
    Log a pipeline-stage message, optionally tagged with a model family.
    """
    prefix = f"[stage={stage}]"
    if model:
        prefix += f"[model={model}]"
    logger.info(f"{prefix} {message}")


@contextmanager
def timed_stage(
    logger: logging.Logger,
    stage: str,
    model: Optional[str] = None,
) -> Iterator[None]:
    """
    Log entry and exit of a stage together with its wall-clock duration.
    """
    log_stage(logger, stage=stage, model=model, message="started")
    start = time.perf_counter()
    yield
    elapsed = time.perf_counter() - start
    log_stage(
        logger,
        stage=stage,
        model=model,
        message=f"finished in {elapsed:.2f}s",
    )


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    *,
    stage: Optional[str] = None,
    model: Optional[str] = None,
    context: Optional[str] = None,
) -> None:
    """
    Log an exception together with the stage it happened in.
    """
    parts = []
    if stage:
        parts.append(f"stage={stage}")
    if model:
        parts.append(f"model={model}")
    if context:
        parts.append(context)

    prefix = " | ".join(parts)
    if prefix:
        logger.error(f"{prefix} | {exc}", exc_info=exc)
    else:
        logger.error(str(exc), exc_info=exc)
