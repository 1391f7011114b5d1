from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Union

import numpy as np
import plotly.graph_objects as go

PayloadRenderer = Callable[[dict, Path], Path]

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


def payload_figure(payload: dict) -> go.Figure:
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=payload["t_obs"], y=payload["y_obs"], mode="markers", name="observed",
    ))
    curve = payload.get("fit") or {}
    if curve.get("ran"):
        fig.add_trace(go.Scatter(
            x=curve["t_grid"], y=curve["y_hat"], mode="lines", name="logistic fit",
        ))
        t_mid = payload["params"].get("t_mid")
        if t_mid is not None and np.isfinite(t_mid):
            fig.add_vline(x=float(t_mid), line_dash="dash", line_color="gray")

    title = payload["sample"]
    if payload.get("note"):
        title = f"{title} ({payload['note']})"
    fig.update_layout(
        title=title,
        xaxis_title="Time (hours)",
        yaxis_title="OD",
        height=420,
        margin=dict(l=30, r=10, t=50, b=40),
    )
    return fig


def render_payload_html(payload: dict, out_dir: Union[str, Path]) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    name = _UNSAFE.sub("_", str(payload["sample"])) or "sample"
    path = out_dir / f"{name}.html"
    payload_figure(payload).write_html(str(path), include_plotlyjs="cdn")
    return path
