from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from growthfit.logistic.pipeline import fit_plate
from growthfit.logistic.types import ConfigurationError, FitConfiguration, METRIC_COLUMNS
from growthfit.synthetic.logistic_plate import DEFAULT_WELLS, make_logistic_plate


def _plate_with_bad_well() -> pd.DataFrame:
    df = make_logistic_plate(max_time=24.0, time_step=0.5)
    bad = np.full(len(df), np.nan)
    bad[:3] = [0.1, 0.2, 0.3]
    # bad well sits between good ones to check ordering
    df.insert(2, "B1", bad)
    return df


def test_row_count_and_order_with_failures():
    df = _plate_with_bad_well()
    res = fit_plate(df, FitConfiguration(bg_correct="none"))
    expected = [c for c in df.columns if c != "time"]
    assert len(res) == len(expected)
    assert res.samples == expected

    bad = res["B1"]
    assert bad.is_missing
    assert bad.note.startswith("cannot fit data")
    for name in DEFAULT_WELLS:
        assert res[name].note == ""


def test_recovers_plate_parameters():
    df = make_logistic_plate(max_time=24.0, time_step=0.5)
    res = fit_plate(df, FitConfiguration(bg_correct="none"))
    for name, (n0, k, r) in DEFAULT_WELLS.items():
        m = res[name]
        assert m.k == pytest.approx(k, rel=1e-3)
        assert m.n0 == pytest.approx(n0, rel=1e-3)
        assert m.r == pytest.approx(r, rel=1e-3)


def test_blank_column_is_consumed_not_reported():
    df = make_logistic_plate(max_time=24.0, time_step=0.5, background=0.1, with_blank=True)
    res = fit_plate(df, FitConfiguration(bg_correct="blank"))
    assert "blank" not in res.samples
    assert len(res) == len(DEFAULT_WELLS)
    for name, (n0, k, r) in DEFAULT_WELLS.items():
        assert res[name].k == pytest.approx(k, rel=1e-3)
        assert res[name].n0 == pytest.approx(n0, rel=1e-3)

    # blank column present but unused under min correction: still not a row
    res_min = fit_plate(df, FitConfiguration(bg_correct="min"))
    assert res_min.samples == list(DEFAULT_WELLS)


def test_blank_mode_without_blank_column():
    df = make_logistic_plate()
    with pytest.raises(ConfigurationError):
        fit_plate(df, FitConfiguration(bg_correct="blank"))


def test_blank_series_from_config():
    df = make_logistic_plate(max_time=24.0, time_step=0.5, background=0.2)
    cfg = FitConfiguration(bg_correct="blank", blank=[0.2] * len(df))
    res = fit_plate(df, cfg)
    for name, (_, k, _) in DEFAULT_WELLS.items():
        assert res[name].k == pytest.approx(k, rel=1e-3)


def test_missing_time_column_and_empty_plate():
    with pytest.raises(ConfigurationError):
        fit_plate(pd.DataFrame({"A1": [0.1, 0.2, 0.4, 0.8]}))
    with pytest.raises(ConfigurationError):
        fit_plate(pd.DataFrame({"time": [0, 1, 2, 3], "blank": [0.1] * 4}))


def test_mapping_input_and_frame_columns():
    t = np.arange(0.0, 24.5, 0.5)
    table = {"time": t, "X": make_logistic_plate(time_points=t)["A1"].to_numpy()}
    res = fit_plate(table, FitConfiguration(bg_correct="min"))
    frame = res.to_frame()
    assert list(frame.columns) == ["sample"] + METRIC_COLUMNS
    assert frame["sample"].tolist() == ["X"]
    ext = res.to_frame(extended=True)
    assert {"k_se", "n0_p", "r_se"} <= set(ext.columns)


def test_parallel_matches_sequential_order():
    df = _plate_with_bad_well()
    cfg = FitConfiguration(bg_correct="none")
    seq = fit_plate(df, cfg).to_frame()
    par = fit_plate(df, cfg, parallel=True, n_jobs=2).to_frame()
    pd.testing.assert_frame_equal(seq, par)


def test_plot_failures_do_not_change_results():
    df = _plate_with_bad_well()
    cfg = FitConfiguration(bg_correct="none")
    calls = []

    def flaky_renderer(payload, dest):
        calls.append(payload["sample"])
        if payload["sample"] == "A2":
            raise RuntimeError("disk full")
        return dest

    plain = fit_plate(df, cfg).to_frame()
    plotted = fit_plate(df, cfg, renderer=flaky_renderer)
    pd.testing.assert_frame_equal(plain, plotted.to_frame())
    assert calls == plotted.samples
    assert plotted.payloads["A1"]["fit"]["ran"] is True
    assert plotted.payloads["B1"]["fit"]["ran"] is False


def test_default_renderer_writes_one_chart_per_sample(tmp_path):
    df = make_logistic_plate(max_time=12.0, time_step=0.5)
    res = fit_plate(df, FitConfiguration(bg_correct="min"), plot_dir=tmp_path)
    written = sorted(p.stem for p in tmp_path.glob("*.html"))
    assert written == sorted(res.samples)


def test_noisy_plate_gives_finite_metrics():
    df = make_logistic_plate(max_time=24.0, time_step=0.5, background=0.05, noise_sd=0.01, seed=7)
    res = fit_plate(df, FitConfiguration(bg_correct="min", t_trim=20.0))
    frame = res.to_frame()
    assert np.all(np.isfinite(frame[["k", "n0", "r", "t_mid", "auc_l", "auc_e", "sigma"]].to_numpy()))
    assert (frame["df"] == 49 - 3).all()
