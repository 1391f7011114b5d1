# src/growthfit/logistic/gc_fit_logistic.py
from __future__ import annotations
import logging
import warnings
import numpy as np
from typing import Optional
from scipy import stats
from scipy.optimize import curve_fit, OptimizeWarning

from .types import ConfigurationError, ConvergenceError, FitConfiguration, FitResult, LogisticParameters
from .logistic_model import logistic_growth, logistic_jacobian, initial_guess

N_PARAMS = 3
N0_LOWER = 1e-9


def _p_values(popt: np.ndarray, se: np.ndarray, df: int) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        t_stat = np.abs(popt / se)
    p = 2.0 * stats.t.sf(t_stat, df)
    p[~np.isfinite(se)] = np.nan
    return p


def gc_fit_logistic(
    t: np.ndarray,
    y: np.ndarray,
    p0: Optional[np.ndarray] = None,
    config: Optional[FitConfiguration] = None,
) -> FitResult:
    """
    Nonlinear least squares fit of N(t) = K / (1 + ((K - N0) / N0) exp(-r t)).

    Raises ConfigurationError when df = n - 3 <= 0 and ConvergenceError when the
    optimizer stops without a solution (evaluation limit, singular problem, non-finite result).
    """
    cfg = config or FitConfiguration()
    t = np.asarray(t, float)
    y = np.asarray(y, float)

    n = int(len(t))
    df = n - N_PARAMS
    if df <= 0:
        raise ConfigurationError(f"Too few points for logistic fit: n={n}, df={df}")

    if p0 is None:
        p0 = initial_guess(t, y)
    p0 = np.asarray(p0, float).copy()
    p0[0] = max(p0[0], N0_LOWER)

    lower = np.array([N0_LOWER, -np.inf, -np.inf])
    upper = np.array([np.inf, np.inf, np.inf])

    nfev = 0

    def model(tt, n0, k, r):
        nonlocal nfev
        nfev += 1
        return logistic_growth(tt, n0, k, r)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", OptimizeWarning)
        try:
            popt, pcov = curve_fit(
                model, t, y, p0=p0,
                jac=logistic_jacobian,
                bounds=(lower, upper),
                method="trf",
                max_nfev=int(cfg.max_nfev),
                ftol=cfg.ftol, xtol=cfg.xtol, gtol=cfg.gtol,
            )
        except (RuntimeError, ValueError, np.linalg.LinAlgError) as e:
            raise ConvergenceError(f"Logistic fit failed: {e}") from e

    if not np.all(np.isfinite(popt)):
        raise ConvergenceError(f"Logistic fit returned non-finite parameters: {popt}")

    cov_warned = any(issubclass(w.category, OptimizeWarning) for w in caught)
    pcov = np.asarray(pcov, float)
    with np.errstate(invalid="ignore"):
        se = np.sqrt(np.diag(pcov))
    if cov_warned:
        logging.debug("Covariance of the logistic parameters could not be estimated")
        se = np.where(np.isfinite(se), se, np.inf)

    y_hat = logistic_growth(t, *popt)
    sigma = float(np.sum((y - y_hat) ** 2))
    pvals = _p_values(np.asarray(popt, float), se, df)

    fitted = LogisticParameters.from_array(popt)
    return FitResult(
        params=fitted,
        se=LogisticParameters.from_array(se),
        p_values=LogisticParameters.from_array(pvals),
        sigma=sigma,
        df=df,
        n=n,
        note="",
        nfev=nfev,
        model=lambda tt, p=np.asarray(popt, float): logistic_growth(tt, *p),
    )
