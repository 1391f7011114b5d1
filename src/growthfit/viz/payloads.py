from __future__ import annotations

from typing import Optional

import numpy as np

from growthfit.logistic.types import FitResult, Metrics

N_GRID = 400


def build_fit_payload(
    *,
    sample: str,
    t: np.ndarray,
    y: np.ndarray,
    fit: Optional[FitResult],
    metrics: Metrics,
    t_raw: Optional[np.ndarray] = None,
    y_raw: Optional[np.ndarray] = None,
) -> dict:
    """
    Renderable description of one sample: observed (corrected) points plus the fitted curve.
    Carries plain arrays/numbers only, no plotting objects.
    """
    t = np.asarray(t, dtype=float)
    y = np.asarray(y, dtype=float)

    curve = {"ran": False, "t_grid": None, "y_hat": None}
    if fit is not None and t.size:
        t_grid = np.linspace(0.0, float(np.max(t)), N_GRID)
        curve = {
            "ran": True,
            "t_grid": t_grid,
            "y_hat": fit.predict(t_grid),
        }

    return {
        "sample": str(sample),
        "t_obs": t,
        "y_obs": y,
        "t_raw": None if t_raw is None else np.asarray(t_raw, dtype=float),
        "y_raw": None if y_raw is None else np.asarray(y_raw, dtype=float),
        "fit": curve,
        "params": {
            "k": metrics.k,
            "n0": metrics.n0,
            "r": metrics.r,
            "t_mid": metrics.t_mid,
            "sigma": metrics.sigma,
        },
        "note": metrics.note,
    }
