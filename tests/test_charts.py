"""
Tests for the scenario P/L chart.
"""

from optionlens_core.charts import realized_chart
from optionlens_core.scenario_engine import simulate_positions


def test_undefined_figures_are_gaps_not_zero():
    positions = [
        {"id": "a", "ticker": "CIFR", "contract": "CIFR 15C", "strike": "15", "type": "C",
         "contracts": "2", "entry_price": "1.00", "current_price": "1.72"},
        {"id": "b", "ticker": "XYZ", "contract": "", "strike": "10", "type": "P",
         "contracts": "1", "entry_price": "1.00", "current_price": "0"},
    ]
    frame, _ = simulate_positions(positions, 15)
    fig = realized_chart(frame, 15)

    plus, minus = fig.data
    assert list(plus.x) == ["CIFR 15C", "XYZ"]
    assert abs(plus.y[0] - 195.6) < 1e-9
    assert plus.y[1] is None
    assert minus.y[1] is None
    assert plus.name == "Realized @ +15%"
