from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from growthfit.logistic.types import BACKGROUND_MODES, ConfigurationError


def correct_background(
    y: np.ndarray,
    mode: str,
    blank: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Background (blank) correction of one sample series.

    Modes:
      - "min"   -> subtract the minimum of this same series (corrected minimum is exactly 0)
      - "blank" -> subtract the aligned blank series point by point
      - "none"  -> unchanged copy (data already corrected by the caller)

    Negative corrected values are kept; nothing is clipped at 0.
    """
    yy = np.array(y, dtype=float).copy()

    if mode == "none":
        return yy

    if mode == "min":
        if yy.size == 0:
            return yy
        return yy - float(np.min(yy))

    if mode == "blank":
        if blank is None:
            raise ConfigurationError("bg_correct='blank' requires a blank series")
        bb = np.asarray(blank, dtype=float).ravel()
        if bb.size != yy.size:
            raise ConfigurationError(
                f"Blank series length {bb.size} does not match sample length {yy.size}"
            )
        if not np.all(np.isfinite(bb)):
            raise ConfigurationError("Blank series contains non-finite entries")
        out = yy - bb
        if np.any(out < 0):
            logging.debug(f"Blank correction left {int(np.sum(out < 0))} negative points")
        return out

    raise ConfigurationError(f"Unknown background correction {mode!r}; use one of {BACKGROUND_MODES}")
