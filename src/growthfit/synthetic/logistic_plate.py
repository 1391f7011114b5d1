"""
logistic_plate.py
---------------------------------
Synthetic plate generator for logistic growth curves.

Builds an in-memory wide table:
    time, [blank], <well 1>, <well 2>, ...

Each well follows N(t) = K / (1 + ((K - N0) / N0) exp(-r t)) with known
(n0, k, r), optionally shifted by a constant background and perturbed by
Gaussian noise from a seeded generator.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from growthfit.logistic.logistic_model import logistic_growth

DEFAULT_WELLS: Dict[str, Tuple[float, float, float]] = {
    "A1": (0.01, 1.0, 0.8),
    "A2": (0.02, 0.8, 0.6),
    "A3": (0.005, 1.2, 1.1),
}


def logistic_curve(t: np.ndarray, n0: float, k: float, r: float) -> np.ndarray:
    return logistic_growth(np.asarray(t, dtype=float), n0, k, r)


def make_flat(t: np.ndarray, level: float) -> np.ndarray:
    return np.full_like(np.asarray(t, dtype=float), float(level))


def add_noise(y: np.ndarray, sd: float, rng: np.random.Generator) -> np.ndarray:
    if sd <= 0:
        return np.asarray(y, dtype=float).copy()
    return np.asarray(y, dtype=float) + rng.normal(0.0, sd, size=len(y))


def make_logistic_plate(
    wells: Optional[Dict[str, Tuple[float, float, float]]] = None,
    *,
    time_points: Optional[Sequence[float]] = None,
    max_time: float = 24.0,
    time_step: float = 0.25,
    background: float = 0.0,
    noise_sd: float = 0.0,
    with_blank: bool = False,
    seed: int = 0,
) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    if time_points is None:
        t = np.arange(0.0, max_time + time_step / 2, time_step)
    else:
        t = np.asarray(time_points, dtype=float)

    cols: Dict[str, np.ndarray] = {"time": t}
    if with_blank:
        cols["blank"] = add_noise(make_flat(t, background), noise_sd, rng)

    for name, (n0, k, r) in (wells or DEFAULT_WELLS).items():
        y = logistic_curve(t, n0, k, r) + background
        cols[name] = add_noise(y, noise_sd, rng)

    return pd.DataFrame(cols)
