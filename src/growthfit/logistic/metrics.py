# src/growthfit/logistic/metrics.py
from __future__ import annotations
import numpy as np
from typing import List, Optional
from scipy.integrate import trapezoid

from .types import FitConfiguration, FitResult, Metrics
from growthfit.preprocess.timegrid import trim_bound

NOTE_K_LE_N0 = "questionable fit (k <= n0)"
NOTE_T_MID_NEGATIVE = "questionable fit (t_mid < 0)"
NOTE_NO_GROWTH = "no growth (r <= 0)"
NOTE_T_MID_UNDEFINED = "t_mid undefined"
NOTE_AUC_L_UNDEFINED = "auc_l undefined"
NOTE_AUC_E_UNDEFINED = "auc_e undefined"
NOTE_SEP = "; "

NAN = float("nan")


def _poorly_identified(name: str) -> str:
    return f"poorly identified ({name})"


def join_notes(tokens: List[str]) -> str:
    out: List[str] = []
    for tok in tokens:
        for part in str(tok).split(NOTE_SEP):
            part = part.strip()
            if part and part not in out:
                out.append(part)
    return NOTE_SEP.join(out)


def inflection_time(n0: float, k: float, r: float) -> float:
    # time at which N reaches k/2
    if not (k > n0 > 0) or r == 0:
        return NAN
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        val = float(np.log((k - n0) / n0) / r)
    return val if np.isfinite(val) else NAN


def generation_time(r: float) -> float:
    if not r > 0:
        return NAN
    val = float(np.log(2.0) / r)
    return val if np.isfinite(val) else NAN


def auc_logistic(n0: float, k: float, r: float, t_end: float) -> float:
    """
    Integral of the fitted logistic from 0 to t_end:
      (k / r) * ln((k + (exp(r t_end) - 1) * n0) / k)
    evaluated in log space so large r*t_end does not overflow.
    """
    if not (np.isfinite(n0) and np.isfinite(k) and np.isfinite(r)) or k == 0:
        return NAN
    if t_end <= 0:
        return 0.0
    rt = r * t_end
    if r == 0 or abs(rt) < 1e-12:
        return float(n0 * t_end)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        if rt > 30.0:
            # ln(k - n0 + n0 e^{rt}) - ln k = rt + ln(n0 + (k - n0) e^{-rt}) - ln k
            inner = n0 + (k - n0) * np.exp(-rt)
            if inner <= 0 or k <= 0:
                return NAN
            log_ratio = rt + np.log(inner) - np.log(k)
        else:
            arg = (n0 / k) * np.expm1(rt)
            if arg <= -1.0:
                return NAN
            log_ratio = np.log1p(arg)
        val = float((k / r) * log_ratio)
    return val if np.isfinite(val) else NAN


def auc_empirical(t: np.ndarray, y: np.ndarray, t_end: float) -> float:
    keep = t <= t_end
    tt, yy = t[keep], y[keep]
    if tt.size < 2:
        return NAN
    return float(trapezoid(yy, tt))


def _fit_notes(fit: FitResult, t_mid: float, se_rel_limit: float) -> List[str]:
    # order: k <= n0, t_mid < 0, r <= 0, poorly identified
    notes: List[str] = []
    p = fit.params
    if p.k <= p.n0:
        notes.append(NOTE_K_LE_N0)
    if t_mid < 0:
        notes.append(NOTE_T_MID_NEGATIVE)
    if p.r <= 0:
        notes.append(NOTE_NO_GROWTH)
    for name in ("k", "n0", "r"):
        val = getattr(p, name)
        se = getattr(fit.se, name)
        if not np.isfinite(se) or se > se_rel_limit * abs(val):
            notes.append(_poorly_identified(name))
    return notes


def derive_metrics(
    fit: FitResult,
    t: np.ndarray,
    y: np.ndarray,
    t_trim: Optional[float] = None,
    config: Optional[FitConfiguration] = None,
) -> Metrics:
    """
    Derive t_mid, t_gen, auc_l, auc_e and the diagnostic note from a fit and the
    corrected series. Degenerate values become NaN plus a note token; this never raises.
    """
    cfg = config or FitConfiguration()
    t = np.asarray(t, float)
    y = np.asarray(y, float)
    if t_trim is None:
        t_trim = cfg.t_trim
    p = fit.params

    t_mid = inflection_time(p.n0, p.k, p.r)

    notes = [fit.note] if fit.note else []
    notes.extend(_fit_notes(fit, t_mid, cfg.se_rel_limit))
    # k <= n0 and r <= 0 already carry their own token
    if np.isnan(t_mid) and not (p.k <= p.n0 or p.r <= 0):
        notes.append(NOTE_T_MID_UNDEFINED)

    t_gen = generation_time(p.r)

    t_end = trim_bound(t, t_trim)
    auc_l = auc_logistic(p.n0, p.k, p.r, t_end)
    if np.isnan(auc_l):
        notes.append(NOTE_AUC_L_UNDEFINED)
    auc_e = auc_empirical(t, y, t_end)
    if np.isnan(auc_e):
        notes.append(NOTE_AUC_E_UNDEFINED)

    return Metrics(
        k=p.k,
        n0=p.n0,
        r=p.r,
        t_mid=t_mid,
        t_gen=t_gen,
        auc_l=auc_l,
        auc_e=auc_e,
        sigma=fit.sigma,
        df=fit.df,
        note=join_notes(notes),
        k_se=fit.se.k,
        k_p=fit.p_values.k,
        n0_se=fit.se.n0,
        n0_p=fit.p_values.n0,
        r_se=fit.se.r,
        r_p=fit.p_values.r,
    )
