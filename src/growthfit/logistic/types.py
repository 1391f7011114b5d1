# src/growthfit/logistic/types.py
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import Optional, Dict, Any, Literal, Tuple, Callable, Sequence
import numpy as np
import pandas as pd

BackgroundMode = Literal["min", "blank", "none"]
BACKGROUND_MODES = ("min", "blank", "none")


class ConfigurationError(ValueError):
    """Bad or missing input (mode, blank series, too few points)."""


class ConvergenceError(RuntimeError):
    """The optimizer did not reach a solution."""


@dataclass(frozen=True)
class FitConfiguration:
    bg_correct: BackgroundMode = "min"
    blank: Optional[Tuple[float, ...]] = None   # aligned blank series, only for bg_correct="blank"
    t_trim: Optional[float] = None              # AUC bound; fitting always uses all points

    # optimizer bounds
    max_nfev: int = 2000
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10

    # standard error above se_rel_limit * |param| is flagged as poorly identified
    se_rel_limit: float = 10.0

    def __post_init__(self) -> None:
        if self.bg_correct not in BACKGROUND_MODES:
            raise ConfigurationError(
                f"bg_correct must be one of {BACKGROUND_MODES}, got {self.bg_correct!r}"
            )
        if self.blank is not None:
            if self.bg_correct != "blank":
                raise ConfigurationError("A blank series is only accepted with bg_correct='blank'.")
            object.__setattr__(self, "blank", tuple(float(v) for v in self.blank))
        if self.t_trim is not None:
            t_trim = float(self.t_trim)
            if not np.isfinite(t_trim) or t_trim <= 0:
                raise ConfigurationError(f"t_trim must be a positive finite time, got {self.t_trim!r}")
            object.__setattr__(self, "t_trim", t_trim)
        if int(self.max_nfev) < 1:
            raise ConfigurationError("max_nfev must be >= 1")
        for name in ("ftol", "xtol", "gtol", "se_rel_limit"):
            if not float(getattr(self, name)) > 0:
                raise ConfigurationError(f"{name} must be > 0")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LogisticParameters:
    n0: float
    k: float
    r: float

    def as_array(self) -> np.ndarray:
        return np.array([self.n0, self.k, self.r], dtype=float)

    @classmethod
    def from_array(cls, p: Sequence[float]) -> "LogisticParameters":
        return cls(n0=float(p[0]), k=float(p[1]), r=float(p[2]))


@dataclass(frozen=True)
class FitResult:
    params: LogisticParameters
    se: LogisticParameters
    p_values: LogisticParameters
    sigma: float          # residual sum of squares
    df: int               # n - 3
    n: int
    note: str = ""
    nfev: Optional[int] = None
    model: Callable[[np.ndarray], np.ndarray] = field(default=None, repr=False, compare=False)

    def predict(self, t) -> np.ndarray:
        return self.model(np.asarray(t, dtype=float))


METRIC_COLUMNS = ["k", "n0", "r", "t_mid", "t_gen", "auc_l", "auc_e", "sigma", "df", "note"]
EXTENDED_COLUMNS = [
    "k", "k_se", "k_p",
    "n0", "n0_se", "n0_p",
    "r", "r_se", "r_p",
    "t_mid", "t_gen", "auc_l", "auc_e", "sigma", "df", "note",
]


@dataclass(frozen=True)
class Metrics:
    k: float
    n0: float
    r: float
    t_mid: float
    t_gen: float
    auc_l: float
    auc_e: float
    sigma: float
    df: int
    note: str = ""

    # carried from the fit covariance
    k_se: float = float("nan")
    k_p: float = float("nan")
    n0_se: float = float("nan")
    n0_p: float = float("nan")
    r_se: float = float("nan")
    r_p: float = float("nan")

    @classmethod
    def missing(cls, note: str) -> "Metrics":
        nan = float("nan")
        return cls(k=nan, n0=nan, r=nan, t_mid=nan, t_gen=nan, auc_l=nan, auc_e=nan,
                   sigma=nan, df=0, note=note)

    @property
    def is_missing(self) -> bool:
        return bool(np.isnan(self.k) and np.isnan(self.r) and self.df == 0)

    def to_row(self, extended: bool = False) -> Dict[str, Any]:
        cols = EXTENDED_COLUMNS if extended else METRIC_COLUMNS
        return {c: getattr(self, c) for c in cols}


@dataclass(frozen=True)
class FailureReport:
    error: str
    message: str

    @property
    def note(self) -> str:
        return f"cannot fit data: {self.message}"


@dataclass(frozen=True)
class PlateResult:
    rows: Tuple[Tuple[str, Metrics], ...]
    payloads: Optional[Dict[str, Dict[str, Any]]] = field(default=None, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    @property
    def samples(self) -> list[str]:
        return [name for name, _ in self.rows]

    def __getitem__(self, sample: str) -> Metrics:
        for name, m in self.rows:
            if name == sample:
                return m
        raise KeyError(sample)

    def to_frame(self, extended: bool = False) -> pd.DataFrame:
        cols = ["sample"] + (EXTENDED_COLUMNS if extended else METRIC_COLUMNS)
        records = [{"sample": name, **m.to_row(extended=extended)} for name, m in self.rows]
        df = pd.DataFrame(records, columns=cols)
        df["df"] = df["df"].astype(int)
        return df
