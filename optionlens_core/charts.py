# optionlens_core/charts.py
import numpy as np
import plotly.graph_objects as go


def _defined(series):
    """Undefined (NaN) figures become None so plotly leaves a gap instead of drawing a $0 bar."""
    return [float(v) if np.isfinite(v) else None for v in series.astype(float)]


def realized_chart(frame, pct):
    """Grouped bars of realized gain at +pct / -pct per contract."""
    labels = frame["contract"].where(frame["contract"] != "", frame["ticker"])
    fig = go.Figure()
    fig.add_trace(go.Bar(x=labels, y=_defined(frame["realized_plus"]), name=f"Realized @ +{pct:g}%", marker_color="#047857"))
    fig.add_trace(go.Bar(x=labels, y=_defined(frame["realized_minus"]), name=f"Realized @ -{pct:g}%", marker_color="#be123c"))
    fig.update_layout(barmode="group", title="Scenario P/L per contract (blank = not defined)", yaxis_title="USD")
    return fig
