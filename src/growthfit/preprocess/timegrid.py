from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from growthfit.logistic.types import ConfigurationError

MIN_DISTINCT_TIMES = 4


def validate_series(t, y, name: str = "values") -> Tuple[np.ndarray, np.ndarray]:
    """
    Coerce (t, y) to float arrays and check the time-series invariants:
    equal length, finite, t >= 0, t non-decreasing, >= MIN_DISTINCT_TIMES distinct times.
    """
    tt = np.asarray(t, dtype=float).ravel()
    yy = np.asarray(y, dtype=float).ravel()

    if tt.size != yy.size:
        raise ConfigurationError(f"time and {name} differ in length: {tt.size} != {yy.size}")
    if not np.all(np.isfinite(tt)):
        raise ConfigurationError("time contains non-finite entries")
    if not np.all(np.isfinite(yy)):
        raise ConfigurationError(f"{name} contains non-finite entries")
    if tt.size and float(np.min(tt)) < 0:
        raise ConfigurationError("time must be >= 0")
    if np.any(np.diff(tt) < 0):
        raise ConfigurationError("time must be sorted ascending")

    n_distinct = int(np.unique(tt).size)
    if n_distinct < MIN_DISTINCT_TIMES:
        raise ConfigurationError(
            f"Too few time points: need >= {MIN_DISTINCT_TIMES} distinct times, got {n_distinct}"
        )
    return tt, yy


def trim_bound(t: np.ndarray, t_trim: Optional[float]) -> float:
    # same horizon for both AUCs: never beyond the observed data
    t_max = float(np.max(t))
    if t_trim is None:
        return t_max
    return min(float(t_trim), t_max)

