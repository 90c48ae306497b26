# optionlens_core/data_engine.py
import math
from numbers import Real

import httpx
import numpy as np
import yfinance as yf
from loguru import logger

from optionlens_core.helper import CALL, normalize_option_type, parse_number_or


def fetch_endpoint_quote(endpoint_url, contract_label, api_key=None, timeout=5.0, client=None):
    """
    Ask a user-supplied endpoint for the last price of an option contract.
    Calls GET <endpoint_url>?contract=<label> and expects JSON like {"last": 1.23}.
    Returns the price as float, or None if the endpoint is unset, fails, or has no numeric 'last'.
    """
    if not endpoint_url:
        return None
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
    try:
        http = client if client is not None else httpx
        response = http.get(endpoint_url, params={"contract": contract_label}, headers=headers, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        logger.warning(f"Fetch quote failed for '{contract_label}': {e}")
        return None

    last = payload.get("last") if isinstance(payload, dict) else None
    if isinstance(last, bool) or not isinstance(last, Real) or not math.isfinite(last):
        logger.warning(f"Endpoint returned no numeric 'last' for '{contract_label}'")
        return None
    logger.debug(f"Quote for '{contract_label}': {last}")
    return float(last)


def fetch_yahoo_quote(ticker, expiration, strike, option_type=CALL):
    """
    Return the last traded premium for one contract from the Yahoo Finance option chain.
    expiration: ISO date string, must be one of the listed expirations for the ticker.
    Returns None if the chain or the strike is not available.
    """
    ticker = (ticker or "").strip().upper()
    strike_value = parse_number_or(strike, np.nan)
    if not ticker or not expiration or not np.isfinite(strike_value):
        return None
    try:
        chain = yf.Ticker(ticker).option_chain(expiration)
    except Exception as e:
        logger.warning(f"Option chain unavailable for {ticker} {expiration}: {e}")
        return None

    table = chain.calls if normalize_option_type(option_type) == CALL else chain.puts
    if table is None or table.empty or "strike" not in table.columns:
        return None
    match = table[np.isclose(table["strike"].astype(float), strike_value)]
    if match.empty:
        logger.warning(f"No {ticker} {expiration} {strike_value:g}{option_type} in option chain")
        return None
    last = parse_number_or(match["lastPrice"].iloc[0], np.nan)
    return float(last) if np.isfinite(last) else None


def endpoint_fetcher(endpoint_url, api_key=None, timeout=5.0, client=None):
    """Build a position -> price callable backed by fetch_endpoint_quote."""

    def fetch(position):
        return fetch_endpoint_quote(endpoint_url, position.get("contract", ""), api_key, timeout, client)

    return fetch


def yahoo_fetcher():
    """Build a position -> price callable backed by fetch_yahoo_quote."""

    def fetch(position):
        return fetch_yahoo_quote(
            position.get("ticker"),
            position.get("expiration"),
            position.get("strike"),
            position.get("type"),
        )

    return fetch


def refresh_quote(store, position_id, fetch):
    """
    Refresh current_price for a single position. Returns the new price or None.
    Positions without a contract label are skipped.
    """
    position = store.get(position_id)
    if position is None or not position.get("contract"):
        return None
    px = fetch(position)
    if px is not None:
        store.patch(position_id, current_price=str(px))
    return px


def refresh_all_quotes(store, fetch):
    """
    Sequentially refresh every position that has a contract label.
    Returns the number of positions whose current price was updated.
    """
    updated = 0
    for position in store.positions():
        if not position.get("contract"):
            continue
        px = fetch(position)
        if px is not None:
            store.patch(position["id"], current_price=str(px))
            updated += 1
    logger.info(f"Refreshed {updated} of {len(store)} quotes")
    return updated
