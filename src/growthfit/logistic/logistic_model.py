# src/growthfit/logistic/logistic_model.py
from __future__ import annotations
import numpy as np
from typing import Tuple

# --------- Numeric guards ---------
EXP_CLIP = 700.0        # exp(700) is still finite in float64
N0_EPS = 1e-12          # |n0| never closer to 0 than this inside the model
DENOM_EPS = 1e-12
VALUE_CAP = 1e100       # squared residuals stay finite

# --------- Start-value heuristics (tunable) ---------
N0_FLOOR_FRACTION = 0.01
N0_ABS_FLOOR = 1e-6
K_NUDGE = 0.05
MIN_EARLY_POINTS = 3
LOG_FLOOR_FRACTION = 0.02   # early points under this share of k0 are skipped
R_DEFAULT = 0.1


def _safe_n0(n0: float) -> float:
    n0 = float(n0)
    if abs(n0) < N0_EPS:
        return N0_EPS if n0 >= 0 else -N0_EPS
    return n0


def _denominator(t, n0, k, r) -> Tuple[np.ndarray, np.ndarray]:
    e = np.exp(np.clip(-r * t, -EXP_CLIP, EXP_CLIP))
    d = 1.0 + ((k - n0) / n0) * e
    small = np.abs(d) < DENOM_EPS
    if np.any(small):
        d = np.where(small, np.where(d < 0, -DENOM_EPS, DENOM_EPS), d)
    return d, e


# --------- Model ---------
def logistic_growth(t, n0, k, r):
    # N(t) = K / (1 + ((K - N0) / N0) * exp(-r t))
    t = np.asarray(t, dtype=float)
    n0 = _safe_n0(n0)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        d, _ = _denominator(t, n0, float(k), float(r))
        out = float(k) / d
    return np.nan_to_num(out, nan=0.0, posinf=VALUE_CAP, neginf=-VALUE_CAP)


def logistic_jacobian(t, n0, k, r):
    """
    Analytic d N / d (n0, k, r), shape (len(t), 3):
      dN/dn0 = k^2 e / (n0^2 D^2)
      dN/dk  = (1 - e) / D^2
      dN/dr  = k c e t / D^2,   c = (k - n0) / n0,  e = exp(-r t)
    """
    t = np.asarray(t, dtype=float)
    n0 = _safe_n0(n0)
    k = float(k)
    r = float(r)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        d, e = _denominator(t, n0, k, r)
        d2 = d * d
        c = (k - n0) / n0
        jac = np.column_stack([
            (k * k * e) / (n0 * n0 * d2),
            (1.0 - e) / d2,
            (k * c * e * t) / d2,
        ])
    return np.nan_to_num(jac, nan=0.0, posinf=VALUE_CAP, neginf=-VALUE_CAP)


# --------- Start values ---------
def _early_phase_end(y: np.ndarray, k0: float) -> int:
    half = np.nonzero(y >= 0.5 * k0)[0]
    end = int(half[0]) + 1 if half.size else int(y.size)
    return max(end, min(MIN_EARLY_POINTS, int(y.size)))


def estimate_rate(t: np.ndarray, y: np.ndarray, k0: float) -> float:
    """
    Steepest local slope of log(y) in the early phase (before y first reaches k0/2),
    ignoring points below LOG_FLOOR_FRACTION * k0.
    Falls back to the log-linear regression slope over all positive points (negative for decay),
    then to R_DEFAULT.
    """
    end = _early_phase_end(y, k0)
    te = t[:end]
    ye = y[:end]
    pos = ye > max(LOG_FLOOR_FRACTION * k0, 0.0)
    te, ye = te[pos], ye[pos]
    if te.size >= 2:
        dt = np.diff(te)
        dl = np.diff(np.log(ye))
        ok = dt > 0
        if np.any(ok):
            slopes = dl[ok] / dt[ok]
            best = float(np.max(slopes))
            if np.isfinite(best) and best > 0:
                return best

    pos = y > 0
    if np.sum(pos) >= 2 and np.unique(t[pos]).size >= 2:
        slope = float(np.polyfit(t[pos], np.log(y[pos]), 1)[0])
        if np.isfinite(slope) and slope != 0:
            return slope
    return R_DEFAULT


def initial_guess(t: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Starting (n0, k, r) for the optimizer; only needs to land in the basin of convergence."""
    t = np.asarray(t, dtype=float)
    y = np.asarray(y, dtype=float)

    k0 = float(np.max(y))
    n0 = float(y[0])
    if n0 <= 0:
        n0 = max(N0_FLOOR_FRACTION * k0, N0_ABS_FLOOR)
    if k0 <= n0:
        k0 = n0 * (1.0 + K_NUDGE)

    r0 = estimate_rate(t, y, k0)
    return np.array([n0, k0, r0], dtype=float)
