# src/growthfit/logistic/pipeline.py
from __future__ import annotations
import logging
import pandas as pd
import numpy as np
from dataclasses import replace
from typing import Optional, Dict, Any, Mapping, Union, Tuple
from pathlib import Path
from joblib import Parallel, delayed

from .types import ConfigurationError, ConvergenceError, FitConfiguration, Metrics, PlateResult
from .summarize import fit_corrected
from growthfit.preprocess.timegrid import validate_series
from growthfit.viz.payloads import build_fit_payload
from growthfit.viz.render import PayloadRenderer, render_payload_html

TIME_COL = "time"
BLANK_COL = "blank"


def _as_frame(table: Union[pd.DataFrame, Mapping[str, Any]]) -> pd.DataFrame:
    if isinstance(table, pd.DataFrame):
        return table
    return pd.DataFrame(dict(table))


def _ensure_columns(df: pd.DataFrame, cols: list[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ConfigurationError(f"Missing required columns: {missing}")


def sample_columns(df: pd.DataFrame) -> list[str]:
    """Every column except time and blank, in input order."""
    return [str(c) for c in df.columns if str(c) not in {TIME_COL, BLANK_COL}]


def _fit_column(
    idx: int,
    name: str,
    t: np.ndarray,
    y: np.ndarray,
    blank: Optional[np.ndarray],
    cfg: FitConfiguration,
    want_payload: bool,
) -> Tuple[int, Metrics, Optional[Dict[str, Any]]]:
    # drop missing readings of this well (and the matching blank readings)
    mask = np.isfinite(y)
    if blank is not None:
        mask &= np.isfinite(blank)
        blank = blank[mask]
    t_use, y_use = t[mask], y[mask]

    try:
        t_fit, y_corr, res, metrics = fit_corrected(t_use, y_use, cfg, blank=blank)
    except (ConfigurationError, ConvergenceError) as e:
        logging.warning(f"Sample {name}: {type(e).__name__}: {e}")
        metrics = Metrics.missing(f"cannot fit data: {e}")
        payload = None
        if want_payload:
            payload = build_fit_payload(sample=name, t=t_use, y=y_use, fit=None, metrics=metrics)
        return idx, metrics, payload

    payload = None
    if want_payload:
        payload = build_fit_payload(
            sample=name, t=t_fit, y=y_corr, fit=res, metrics=metrics, t_raw=t_use, y_raw=y_use,
        )
    return idx, metrics, payload


def _render_all(
    payloads: Dict[str, Dict[str, Any]],
    plot_dir: Optional[Path],
    renderer: PayloadRenderer,
) -> None:
    for name, payload in payloads.items():
        try:
            renderer(payload, plot_dir)
        except Exception as e:
            logging.warning(f"Plot for sample {name} failed: {e}")


def fit_plate(
    table: Union[pd.DataFrame, Mapping[str, Any]],
    config: Optional[FitConfiguration] = None,
    parallel: bool = False,
    *,
    n_jobs: int = -1,
    plot_dir: Optional[Union[str, Path]] = None,
    renderer: Optional[PayloadRenderer] = None,
    keep_payloads: bool = False,
) -> PlateResult:
    """
    Fit every sample column of a plate table.

    table: one "time" column, N >= 1 sample columns, optional "blank" column
           (used only by bg_correct="blank", never reported as a row).

    Returns a PlateResult with exactly one row per sample column, in input order.
    Samples whose correction or fit fails keep a row with NaN metrics and a
    "cannot fit data: ..." note. Plotting (plot_dir and/or renderer) is a
    side channel: its failures are logged and never change the result.
    """
    cfg = config or FitConfiguration()
    df = _as_frame(table).rename(columns=str)
    _ensure_columns(df, [TIME_COL])

    samples = sample_columns(df)
    if not samples:
        raise ConfigurationError("No sample columns found besides time/blank.")

    t = pd.to_numeric(df[TIME_COL], errors="coerce").to_numpy(dtype=float)
    # time column problems are batch-level errors
    validate_series(t, np.zeros_like(t), name=TIME_COL)

    blank = None
    if cfg.bg_correct == "blank":
        if BLANK_COL in df.columns:
            blank = pd.to_numeric(df[BLANK_COL], errors="coerce").to_numpy(dtype=float)
        elif cfg.blank is not None:
            blank = np.asarray(cfg.blank, dtype=float)
        else:
            raise ConfigurationError("bg_correct='blank' needs a 'blank' column or a blank series in the config")
        if blank.size != t.size:
            raise ConfigurationError(f"Blank series length {blank.size} does not match time length {t.size}")
        # the blank is applied explicitly per column below
        cfg_col = replace(cfg, blank=None)
    else:
        cfg_col = cfg

    want_payload = plot_dir is not None or renderer is not None or keep_payloads
    logging.info(f"Fitting {len(samples)} samples (bg_correct={cfg.bg_correct}, parallel={parallel})")

    jobs = (
        delayed(_fit_column)(
            i, name,
            t, pd.to_numeric(df[name], errors="coerce").to_numpy(dtype=float),
            blank, cfg_col, want_payload,
        )
        for i, name in enumerate(samples)
    )

    results: list[Optional[Tuple[Metrics, Optional[Dict[str, Any]]]]] = [None] * len(samples)
    if parallel:
        outputs = Parallel(n_jobs=n_jobs, prefer="processes", return_as="generator_unordered")(jobs)
    else:
        outputs = (fn(*args, **kwargs) for fn, args, kwargs in jobs)
    for idx, metrics, payload in outputs:
        results[idx] = (metrics, payload)

    rows = tuple((name, res[0]) for name, res in zip(samples, results))
    payloads = {name: res[1] for name, res in zip(samples, results) if res[1] is not None}

    n_failed = sum(1 for _, m in rows if m.is_missing)
    logging.info(f"Fitted {len(rows) - n_failed}/{len(rows)} samples")

    if plot_dir is not None or renderer is not None:
        _render_all(
            payloads,
            None if plot_dir is None else Path(plot_dir),
            renderer or render_payload_html,
        )

    return PlateResult(rows=rows, payloads=payloads if want_payload else None)
