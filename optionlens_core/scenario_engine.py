# optionlens_core/scenario_engine.py
from dataclasses import asdict, dataclass, fields

import numpy as np
import pandas as pd

from optionlens_core.helper import CALL, CSV_FIELDS, normalize_option_type, parse_number_or

# standard US equity options
CONTRACT_MULTIPLIER = 100


@dataclass(frozen=True)
class DerivedFigures:
    """Per-position scenario figures. NaN marks a figure that is not meaningful for the inputs."""

    plus_price: float
    minus_price: float
    cur_value: float
    plus_value: float
    minus_value: float
    unrealized_now: float
    realized_plus: float
    realized_minus: float
    breakeven_underlying: float

    def as_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class Totals:
    cur_value: float = 0.0
    unrealized_now: float = 0.0
    plus_value: float = 0.0
    minus_value: float = 0.0
    realized_plus: float = 0.0
    realized_minus: float = 0.0

    def as_dict(self):
        return asdict(self)


DERIVED_COLUMNS = [f.name for f in fields(DerivedFigures)]
TOTAL_COLUMNS = [f.name for f in fields(Totals)]


def _as_float(x):
    """float(x), with ints too large for a float mapped to +/-inf."""
    try:
        return float(x)
    except OverflowError:
        return np.inf if x > 0 else -np.inf


def derive_figures(entry_price, current_price, contracts, strike, option_type, scenario_pct):
    """
    entry_price, current_price: premium per share
    contracts: contract count (no validation; fractional or negative passes through)
    scenario_pct: premium move in percent, e.g. 15 for +/-15%
    Returns DerivedFigures. Never raises for numeric input.
    """
    entry_price, current_price, contracts, strike, scenario_pct = (
        _as_float(v) for v in (entry_price, current_price, contracts, strike, scenario_pct)
    )
    m = CONTRACT_MULTIPLIER
    p = scenario_pct / 100.0

    plus_price = current_price * (1 + p) if current_price > 0 else np.nan
    minus_price = current_price * (1 - p) if current_price > 0 else np.nan
    cur_value = current_price * contracts * m if current_price > 0 and contracts > 0 else np.nan
    plus_value = plus_price * contracts * m if np.isfinite(plus_price) and contracts > 0 else np.nan
    minus_value = minus_price * contracts * m if np.isfinite(minus_price) and contracts > 0 else np.nan
    # defined for any finite current price, including zero or negative
    unrealized_now = (current_price - entry_price) * contracts * m if np.isfinite(current_price) else np.nan
    realized_plus = (plus_price - entry_price) * contracts * m if np.isfinite(plus_price) else np.nan
    realized_minus = (minus_price - entry_price) * contracts * m if np.isfinite(minus_price) else np.nan
    # put breakeven is not modeled
    breakeven = strike + entry_price if option_type == CALL else np.nan

    return DerivedFigures(
        plus_price=float(plus_price),
        minus_price=float(minus_price),
        cur_value=float(cur_value),
        plus_value=float(plus_value),
        minus_value=float(minus_value),
        unrealized_now=float(unrealized_now),
        realized_plus=float(realized_plus),
        realized_minus=float(realized_minus),
        breakeven_underlying=float(breakeven),
    )


def derive_position(position: dict, scenario_pct: float) -> DerivedFigures:
    """Parse a raw position's text fields (unparseable -> 0) and derive its figures."""
    return derive_figures(
        parse_number_or(position.get("entry_price"), 0.0),
        parse_number_or(position.get("current_price"), 0.0),
        parse_number_or(position.get("contracts"), 0.0),
        parse_number_or(position.get("strike"), 0.0),
        normalize_option_type(position.get("type")),
        scenario_pct,
    )


def aggregate(rows) -> Totals:
    """
    rows: iterable of (position, DerivedFigures)
    Sums the six portfolio totals; an undefined figure counts as 0.
    """
    sums = dict.fromkeys(TOTAL_COLUMNS, 0.0)
    for _, figures in rows:
        for name in TOTAL_COLUMNS:
            sums[name] += parse_number_or(getattr(figures, name), 0.0)
    return Totals(**sums)


def simulate_positions(positions, scenario_pct: float):
    """
    positions: ordered list of raw position dicts
    scenario_pct: premium move in percent
    Returns:
       frame: DataFrame with one row per position, raw columns then derived columns
       totals: Totals across all positions
    """
    rows = [(p, derive_position(p, scenario_pct)) for p in positions]
    records = [{"id": p.get("id"), **{f: p.get(f, "") for f in CSV_FIELDS}, **figures.as_dict()} for p, figures in rows]
    frame = pd.DataFrame(records, columns=["id"] + CSV_FIELDS + DERIVED_COLUMNS)
    return frame, aggregate(rows)
