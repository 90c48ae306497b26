import time

import streamlit as st
import pandas as pd

from optionlens_core.charts import realized_chart
from optionlens_core.config import load_config, setup_logging
from optionlens_core.data_engine import endpoint_fetcher, refresh_all_quotes, refresh_quote, yahoo_fetcher
from optionlens_core.helper import (
    CSV_FIELDS,
    format_breakeven,
    format_usd,
    load_positions_csv,
    positions_to_csv,
)
from optionlens_core.position_store import JsonFileBackend, PositionStore
from optionlens_core.scenario_engine import simulate_positions

st.set_page_config(page_title="OptionLens — Options Scenario Calculator", layout="wide")

config = load_config()


# ---------- Session setup ----------
@st.cache_resource
def get_store(store_path, storage_key):
    setup_logging(config.log_level, config.log_file)
    return PositionStore(JsonFileBackend(store_path), storage_key=storage_key)


store = get_store(config.store_path, config.storage_key)

if "scenario_pct" not in st.session_state:
    st.session_state.scenario_pct = config.default_scenario_pct
if "quote_source" not in st.session_state:
    st.session_state.quote_source = "HTTP endpoint"
if "endpoint_url" not in st.session_state:
    st.session_state.endpoint_url = config.quote_endpoint
if "api_key" not in st.session_state:
    st.session_state.api_key = config.api_key
if "auto_refresh" not in st.session_state:
    st.session_state.auto_refresh = False
if "refresh_seconds" not in st.session_state:
    st.session_state.refresh_seconds = config.refresh_seconds
if "editor_version" not in st.session_state:
    st.session_state.editor_version = 0


def quote_fetcher():
    if st.session_state.quote_source == "Yahoo Finance":
        return yahoo_fetcher()
    return endpoint_fetcher(
        st.session_state.endpoint_url,
        st.session_state.api_key,
        timeout=config.quote_timeout,
    )


def reset_editor():
    # a fresh key makes the grid re-read the store instead of replaying old edits
    st.session_state.editor_version += 1


# ---------- Streamlit UI ----------
st.title("OptionLens — Options Scenario Calculator")

st.sidebar.header("Navigation")
page = st.sidebar.radio("Page", ["Portfolio", "Live Data"], label_visibility="collapsed")

pct = st.session_state.scenario_pct
st.markdown(f"Add options and see +{pct:g}% / -{pct:g}% premium scenarios and realized gains.")

if page == "Portfolio":
    col_pct, col_add, col_export, col_import = st.columns([1, 1, 1, 2])
    st.session_state.scenario_pct = col_pct.number_input(
        "Scenario %",
        min_value=config.min_scenario_pct,
        max_value=config.max_scenario_pct,
        value=float(st.session_state.scenario_pct),
        step=1.0,
    )
    pct = st.session_state.scenario_pct

    if col_add.button("Add Row", type="primary"):
        store.append()
        reset_editor()

    col_export.download_button(
        "Export CSV",
        data=positions_to_csv(store.positions()),
        file_name=f"options_scenarios_{int(time.time() * 1000)}.csv",
        mime="text/csv",
    )

    uploaded = col_import.file_uploader("Import CSV", type=["csv"], key=f"csv_upload_{st.session_state.editor_version}")
    if uploaded is not None:
        try:
            imported = load_positions_csv(uploaded)
        except ValueError as e:
            st.error(str(e))
            imported = []
        if imported:
            store.replace_all(imported)
            reset_editor()
            st.rerun()
        else:
            st.warning("CSV has no position rows; watchlist unchanged.")

    # Positions grid (raw user input, numeric fields are text)
    st.subheader("Positions")
    raw_df = pd.DataFrame(store.positions(), columns=["id"] + CSV_FIELDS)
    edited = st.data_editor(
        raw_df,
        key=f"positions_editor_{st.session_state.editor_version}",
        hide_index=True,
        num_rows="fixed",
        use_container_width=True,
        column_config={
            "id": None,
            "ticker": st.column_config.TextColumn("Ticker"),
            "contract": st.column_config.TextColumn("Contract", width="large"),
            "expiration": st.column_config.TextColumn("Exp."),
            "strike": st.column_config.TextColumn("Strike"),
            "type": st.column_config.SelectboxColumn("Type", options=["C", "P"], required=True),
            "contracts": st.column_config.TextColumn("Contracts"),
            "entry_price": st.column_config.TextColumn("Entry $"),
            "current_price": st.column_config.TextColumn("Current $"),
            "notes": st.column_config.TextColumn("Notes", width="large"),
        },
    )
    for before, after in zip(raw_df.to_dict("records"), edited.to_dict("records")):
        changes = {f: after[f] for f in CSV_FIELDS if after[f] != before[f]}
        if changes:
            store.patch(before["id"], **changes)

    positions = store.positions()
    if positions:
        labels = {p["id"]: f"{p['ticker']} · {p['contract'] or '(no contract)'}" for p in positions}
        col_sel, col_rm = st.columns([3, 1])
        to_remove = col_sel.selectbox("Remove position", list(labels), format_func=labels.get)
        if col_rm.button("Remove"):
            store.remove(to_remove)
            reset_editor()
            st.rerun()

    frame, totals = simulate_positions(positions, pct)

    # Summary bar
    st.header("Portfolio summary")
    c1, c2, c3 = st.columns(3)
    c1.metric("Total Current Value", format_usd(totals.cur_value))
    c2.metric("Total Unrealized P/L Now", format_usd(totals.unrealized_now))
    c3.metric(f"Total Value @ +{pct:g}%", format_usd(totals.plus_value))
    c4, c5, c6 = st.columns(3)
    c4.metric(f"Total Value @ -{pct:g}%", format_usd(totals.minus_value))
    c5.metric(f"Total Realized Gain @ +{pct:g}%", format_usd(totals.realized_plus))
    c6.metric(f"Total Realized Gain @ -{pct:g}%", format_usd(totals.realized_minus))

    if frame.empty:
        st.info("No positions yet. Click 'Add Row' or import a CSV.")
        st.stop()

    # Derived figures table
    st.subheader("Scenario figures")
    tbl = pd.DataFrame({
        "Ticker": frame["ticker"],
        "Contract": frame["contract"],
        "Type": frame["type"],
        f"+{pct:g}% $": frame["plus_price"].map(format_usd),
        f"-{pct:g}% $": frame["minus_price"].map(format_usd),
        "Current Value": frame["cur_value"].map(format_usd),
        f"+{pct:g}% Value": frame["plus_value"].map(format_usd),
        f"-{pct:g}% Value": frame["minus_value"].map(format_usd),
        "Unreal. P/L Now": frame["unrealized_now"].map(format_usd),
        f"Realized @ +{pct:g}%": frame["realized_plus"].map(format_usd),
        f"Realized @ -{pct:g}%": frame["realized_minus"].map(format_usd),
        "Breakeven (Calls)": frame["breakeven_underlying"].map(format_breakeven),
    })
    st.dataframe(tbl, hide_index=True, use_container_width=True)

    st.plotly_chart(realized_chart(frame, pct), use_container_width=True)

    st.markdown("""
---
### Notes
- Assumes US equity options (multiplier 100).
- "Realized @ +X%" = (Current × (1+X) − Entry) × Contracts × 100.
- Premiums are rescaled linearly by the scenario %; there is no pricing model behind the figures.
""")

else:
    st.header("Live Data Settings")
    col_a, col_b = st.columns(2)
    with col_a:
        st.session_state.quote_source = st.radio(
            "Quote source",
            ["HTTP endpoint", "Yahoo Finance"],
            index=["HTTP endpoint", "Yahoo Finance"].index(st.session_state.quote_source),
            horizontal=True,
        )
        st.session_state.endpoint_url = st.text_input(
            "Endpoint URL",
            value=st.session_state.endpoint_url,
            placeholder="https://api.yourprovider.com/optionquote",
        )
        st.session_state.api_key = st.text_input("API Key (optional)", value=st.session_state.api_key, type="password")
    with col_b:
        st.markdown("""
**How it works**
- HTTP endpoint: we call your endpoint with `?contract=` plus the Contract text from your table.
  It should return `{"last": number}`; that value goes into *Current $*.
- Yahoo Finance: the contract is looked up in the option chain by ticker, expiration, strike and type.
- Turn on Auto-refresh to update on an interval while this page is open.
""")

    positions = store.positions()
    syncable = {p["id"]: p["contract"] for p in positions if p["contract"]}
    if syncable:
        col_sel, col_sync = st.columns([3, 1])
        target = col_sel.selectbox("Contract", list(syncable), format_func=syncable.get)
        if col_sync.button("Sync"):
            px = refresh_quote(store, target, quote_fetcher())
            if px is None:
                st.warning("No quote available for this contract.")
            else:
                st.success(f"{syncable[target]}: {px}")

    col_all, col_auto, col_sec = st.columns([1, 1, 1])
    if col_all.button("Refresh All", type="primary"):
        updated = refresh_all_quotes(store, quote_fetcher())
        st.success(f"Updated {updated} of {len(positions)} positions.")

    st.session_state.auto_refresh = col_auto.checkbox("Auto-refresh", value=st.session_state.auto_refresh)
    st.session_state.refresh_seconds = col_sec.number_input(
        "Interval (sec)",
        min_value=config.min_refresh_seconds,
        value=int(st.session_state.refresh_seconds),
        step=1,
    )

    st.caption(
        "TradingView widgets are great for underlying charts, but they don't expose an options-quote API. "
        "Use a data provider or broker API here."
    )

    # Auto-refresh loop
    if st.session_state.auto_refresh:
        time.sleep(max(config.min_refresh_seconds, st.session_state.refresh_seconds))
        refresh_all_quotes(store, quote_fetcher())
        st.rerun()
