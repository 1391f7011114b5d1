# src/growthfit/logistic/summarize.py
from __future__ import annotations
from typing import Optional, Union, Tuple
import numpy as np

from .types import ConfigurationError, ConvergenceError, FailureReport, FitConfiguration, FitResult, Metrics
from .gc_fit_logistic import gc_fit_logistic
from .logistic_model import initial_guess
from .metrics import derive_metrics
from growthfit.preprocess.background import correct_background
from growthfit.preprocess.timegrid import validate_series


def fit_corrected(
    time,
    values,
    config: Optional[FitConfiguration] = None,
    blank=None,
) -> Tuple[np.ndarray, np.ndarray, FitResult, Metrics]:
    """
    correct -> guess -> fit -> metrics for one sample.
    Returns (t, corrected y, FitResult, Metrics); errors propagate.
    """
    cfg = config or FitConfiguration()
    if blank is None and cfg.blank is not None:
        blank = np.asarray(cfg.blank, dtype=float)
    if cfg.bg_correct == "blank" and blank is None:
        raise ConfigurationError("bg_correct='blank' needs a blank series (config.blank or a plate 'blank' column)")
    t, y = validate_series(time, values)
    y_corr = correct_background(y, cfg.bg_correct, blank=blank)

    p0 = initial_guess(t, y_corr)
    res = gc_fit_logistic(t, y_corr, p0=p0, config=cfg)
    metrics = derive_metrics(res, t, y_corr, config=cfg)
    return t, y_corr, res, metrics


def fit(
    time,
    values,
    config: Optional[FitConfiguration] = None,
    *,
    raise_errors: bool = True,
) -> Union[Metrics, FailureReport]:
    """
    Single-sample entry point: summary metrics for one growth curve.

    ConfigurationError always propagates. ConvergenceError propagates unless
    raise_errors is False, in which case a FailureReport is returned.
    """
    try:
        _, _, _, metrics = fit_corrected(time, values, config)
    except ConvergenceError as e:
        if raise_errors:
            raise
        return FailureReport(error=type(e).__name__, message=str(e))
    return metrics
