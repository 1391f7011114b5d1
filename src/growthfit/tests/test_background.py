from __future__ import annotations

import numpy as np
import pytest

from growthfit.logistic.types import ConfigurationError, FitConfiguration
from growthfit.preprocess.background import correct_background
from growthfit.preprocess.timegrid import trim_bound, validate_series


def test_min_correction_makes_minimum_zero():
    rng = np.random.default_rng(3)
    for _ in range(20):
        y = rng.uniform(0.05, 2.0, size=25)
        out = correct_background(y, "min")
        assert out.min() == 0.0
        assert out.shape == y.shape


def test_min_correction_worked_example():
    y = np.array([0.1, 0.1, 0.3, 0.9, 2.0, 3.5, 3.9, 4.0, 4.0])
    out = correct_background(y, "min")
    assert np.allclose(out, [0, 0, 0.2, 0.8, 1.9, 3.4, 3.8, 3.9, 3.9])


def test_blank_correction_is_pointwise_and_keeps_negatives():
    y = np.array([0.10, 0.12, 0.30, 0.90])
    blank = np.array([0.11, 0.10, 0.10, 0.10])
    out = correct_background(y, "blank", blank=blank)
    assert np.allclose(out, [-0.01, 0.02, 0.20, 0.80])
    assert out[0] < 0


def test_blank_correction_length_mismatch():
    with pytest.raises(ConfigurationError):
        correct_background(np.ones(5), "blank", blank=np.ones(4))


def test_blank_correction_requires_blank():
    with pytest.raises(ConfigurationError):
        correct_background(np.ones(5), "blank")


def test_none_is_passthrough_copy():
    y = np.array([0.2, 0.4, 0.8, 1.6])
    out = correct_background(y, "none")
    assert np.array_equal(out, y)
    out[0] = 99.0
    assert y[0] == 0.2


def test_unknown_mode():
    with pytest.raises(ConfigurationError):
        correct_background(np.ones(5), "median")


def test_config_rejects_bad_combinations():
    with pytest.raises(ConfigurationError):
        FitConfiguration(bg_correct="median")
    with pytest.raises(ConfigurationError):
        FitConfiguration(bg_correct="min", blank=(0.1, 0.1, 0.1, 0.1))
    with pytest.raises(ConfigurationError):
        FitConfiguration(t_trim=-1.0)
    with pytest.raises(ConfigurationError):
        FitConfiguration(max_nfev=0)


def test_config_is_frozen_and_normalized():
    cfg = FitConfiguration(bg_correct="blank", blank=[0.1, 0.1, 0.1, 0.1], t_trim=10)
    assert cfg.blank == (0.1, 0.1, 0.1, 0.1)
    assert cfg.t_trim == 10.0
    assert cfg.to_dict()["bg_correct"] == "blank"
    with pytest.raises(Exception):
        cfg.t_trim = 5.0


def test_validate_series_rules():
    t = [0, 1, 2, 3]
    validate_series(t, [1, 2, 3, 4])
    with pytest.raises(ConfigurationError):
        validate_series([0, 1, 1, 1], [1, 2, 3, 4])
    with pytest.raises(ConfigurationError):
        validate_series([0, 2, 1, 3], [1, 2, 3, 4])
    with pytest.raises(ConfigurationError):
        validate_series(t, [1, 2, 3])
    with pytest.raises(ConfigurationError):
        validate_series(t, [1, np.nan, 3, 4])
    with pytest.raises(ConfigurationError):
        validate_series([-1, 0, 1, 2], [1, 2, 3, 4])


def test_trim_bound_never_exceeds_data():
    t = np.arange(0.0, 10.0, 1.0)
    assert trim_bound(t, None) == 9.0
    assert trim_bound(t, 4.5) == 4.5
    assert trim_bound(t, 50.0) == 9.0
