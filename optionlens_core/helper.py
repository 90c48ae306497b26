# optionlens_core/helper.py
import csv
import math
import re
import uuid

import pandas as pd

PLACEHOLDER = "—"

CALL = "C"
PUT = "P"

# bulk transfer column order; position keys line up one-to-one with CSV_HEADERS
CSV_HEADERS = [
    "Ticker",
    "Contract",
    "Expiration",
    "Strike",
    "Type",
    "Contracts",
    "EntryPrice",
    "CurrentPrice",
    "Notes",
]
CSV_FIELDS = [
    "ticker",
    "contract",
    "expiration",
    "strike",
    "type",
    "contracts",
    "entry_price",
    "current_price",
    "notes",
]

_NUMERIC_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII)


def parse_number_or(raw, fallback=0.0):
    """
    Turn free-text (or already numeric) input into a float.
    Text is read by its longest leading numeric prefix, so "1.72abc" -> 1.72 and ".5" -> 0.5.
    Anything unparseable or non-finite returns fallback. Never raises.
    """
    if isinstance(raw, bool) or raw is None:
        return fallback
    if isinstance(raw, str):
        match = _NUMERIC_PREFIX.match(raw)
        if match is None:
            return fallback
        value = float(match.group(1))
    else:
        try:
            value = float(raw)
        except (TypeError, ValueError, OverflowError):
            return fallback
    return value if math.isfinite(value) else fallback


def format_usd(x):
    """Format numbers as US dollars; undefined figures render as the placeholder."""
    try:
        value = float(x)
    except (TypeError, ValueError):
        return PLACEHOLDER
    if not math.isfinite(value):
        return PLACEHOLDER
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_breakeven(x):
    try:
        value = float(x)
    except (TypeError, ValueError):
        return PLACEHOLDER
    return f"{value:.2f}" if math.isfinite(value) else PLACEHOLDER


def normalize_option_type(raw):
    """Only 'P' (any case) is a put; blank or anything else is a call."""
    return PUT if str(raw or CALL).strip().upper() == PUT else CALL


def new_position_id():
    return uuid.uuid4().hex


def positions_to_csv(positions):
    """
    Serialize positions for export.
    Every value is quoted; embedded quote characters are stripped rather than escaped.
    """
    rows = [
        ["" if p.get(field) is None else str(p.get(field)).replace('"', "") for field in CSV_FIELDS]
        for p in positions
    ]
    body = pd.DataFrame(rows, columns=CSV_FIELDS).to_csv(
        index=False, header=False, quoting=csv.QUOTE_ALL, lineterminator="\n"
    )
    return ",".join(CSV_HEADERS) + "\n" + body.rstrip("\n")


def load_positions_csv(file_like):
    """
    Read an exported (or hand-written) positions CSV.
    The first non-blank line is treated as a header and skipped; columns are taken by position,
    missing trailing columns become "". Each row gets a fresh id.
    Returns an empty list when there is no data row.
    """
    try:
        df = pd.read_csv(
            file_like,
            header=None,
            names=list(range(len(CSV_FIELDS))),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
            engine="python",
            # extra fields (e.g. an unquoted comma in notes) are dropped, not fatal
            on_bad_lines=lambda fields: fields[: len(CSV_FIELDS)],
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise ValueError(f"Unable to read CSV: {e}") from e

    df = df.fillna("")
    if df.shape[0] < 2:
        return []

    positions = []
    for _, row in df.iloc[1:].iterrows():
        position = {"id": new_position_id()}
        for i, field in enumerate(CSV_FIELDS):
            position[field] = str(row[i]).strip('"')
        position["type"] = normalize_option_type(position["type"])
        positions.append(position)
    return positions
