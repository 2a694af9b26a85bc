"""
app.py  —  Stock Screener P&L dashboard  |  streamlit run app.py
"""

import io, logging, os, tempfile
from datetime import date
from typing import Callable

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from screener import config, exporter
from screener.charges import compute_charges
from screener.db import Database
from screener.models import (
    CHARGE_FIELDS, CsvImportError, Transaction, VirtualHolding, WatchlistItem, parse_date,
)
from screener.portfolio import Portfolio, VirtualPortfolio, Watchlist
from screener.prices import PriceBook
from screener.validation import (
    find_oversold, validate_transaction, validate_virtual_holding, validate_watchlist_item,
)

logger = logging.getLogger(__name__)

# ── Page config ───────────────────────────────────────────────────────────────
st.set_page_config(page_title="Stock Screener P&L", page_icon="📈",
                   layout="wide", initial_sidebar_state="expanded")
config.configure_logging()

# ── Colours ───────────────────────────────────────────────────────────────────
GAIN    = "#4caf7d"
LOSS    = "#e05c5c"
BLUE    = "#5b9bd5"
BG      = "#0f0f0f"

st.markdown("""
<style>
  [data-testid="metric-container"]{background:#1a1a1a;border:1px solid #2a2a2a;
      border-radius:8px;padding:14px 18px}
  [data-testid="stMetricValue"]{font-size:1.35rem}
  [data-testid="stDataFrame"]{border-radius:8px;overflow:hidden}
  [data-testid="stSidebar"]{background:#111}
  .block-container{padding-top:1.5rem}
  .section-title{font-size:.75rem;font-weight:600;letter-spacing:.1em;
      text-transform:uppercase;color:#555;margin:1.5rem 0 .5rem}
</style>
""", unsafe_allow_html=True)

# ── Session state ─────────────────────────────────────────────────────────────
if "db"        not in st.session_state: st.session_state.db        = Database()
if "prices"    not in st.session_state: st.session_state.prices    = PriceBook(db=st.session_state.db)
if "portfolio" not in st.session_state: st.session_state.portfolio = Portfolio(db=st.session_state.db)
if "virtual"   not in st.session_state: st.session_state.virtual   = VirtualPortfolio(db=st.session_state.db)
if "watchlist" not in st.session_state: st.session_state.watchlist = Watchlist(db=st.session_state.db)

def portfolio() -> Portfolio:      return st.session_state.portfolio
def virtual()   -> VirtualPortfolio: return st.session_state.virtual
def prices()    -> PriceBook:      return st.session_state.prices
def watchlist() -> Watchlist:      return st.session_state.watchlist

CHARGE_LABELS = {"brokerage": "Brokerage", "gst": "GST", "stamp_duty": "Stamp Duty",
                 "sebi_fee": "SEBI Fee", "stt": "STT", "other_charges": "Other Charges"}

# ── Helpers ───────────────────────────────────────────────────────────────────
def fmt_cur(v) -> str: return f"{config.CURRENCY}{v:,.2f}"
def fmt_pct(v) -> str: return "-" if v is None else f"{'+'if v>0 else''}{v:.2f}%"

def _chart_layout(title="", height=400) -> dict:
    return dict(title=title, paper_bgcolor=BG, plot_bgcolor=BG,
                font_color="#cccccc", height=height,
                xaxis=dict(gridcolor="#1e1e1e"),
                yaxis=dict(gridcolor="#1e1e1e"),
                legend=dict(bgcolor="#1a1a1a", bordercolor="#2a2a2a", borderwidth=1),
                margin=dict(t=50, b=20, l=10, r=10), hovermode="x unified")

def _colour_pnl(val):
    if val is None or (isinstance(val, float) and pd.isna(val)): return "color:#888"
    return f"color:{GAIN}" if val >= 0 else f"color:{LOSS}"

def _excel_bytes() -> io.BytesIO:
    buf = io.BytesIO()
    with tempfile.NamedTemporaryFile(delete=False, suffix=".xlsx") as tmp:
        tmp_path = tmp.name
    try:
        exporter.export_to_excel(portfolio().summary(prices()),
                                 portfolio().transactions, filename=tmp_path)
        with open(tmp_path, "rb") as f:
            buf.write(f.read())
    finally:
        os.unlink(tmp_path)
    buf.seek(0)
    return buf

def _section(title: str):
    st.markdown(f'<p class="section-title">{title}</p>', unsafe_allow_html=True)

def _page_boundary(render: Callable[[], None], name: str) -> None:
    """A failing page shows an inline error; sidebar and other pages keep working."""
    try:
        render()
    except Exception as e:
        logger.exception("Page %r failed to render", name)
        st.error(f"Something went wrong while rendering **{name}**: {e}")

# ── Sidebar ───────────────────────────────────────────────────────────────────
PAGES = ["Actual P&L", "Virtual P&L", "Watchlist", "Prices"]

def render_sidebar():
    with st.sidebar:
        st.markdown("## 📈 Stock Screener")
        st.divider()
        page = st.radio("Nav", PAGES, label_visibility="collapsed")
        st.divider()
        try:
            summary = portfolio().summary(prices())
            st.metric("Total Invested", fmt_cur(summary.total_invested))
            st.metric("Realized P&L",   fmt_cur(summary.total_realized_pl))
            st.metric("Unrealized P&L", fmt_cur(summary.total_unrealized_pl))
        except Exception:
            logger.exception("Sidebar summary failed")
            st.caption("Summary unavailable.")
    return page

# ── Actual P&L ────────────────────────────────────────────────────────────────
def render_actual_pl():
    st.markdown("## Actual Portfolio P&L")
    _render_transactions()
    st.divider()
    _render_transaction_form()
    st.divider()
    _render_import_export()
    st.divider()
    _render_summary()


def _render_transactions():
    _section("All Transactions")
    txns = portfolio().transactions
    if not txns:
        st.info("No transactions yet."); return

    rows = []
    for t in txns:
        ch = compute_charges(t)
        rows.append({"Symbol": t.symbol, "Action": t.action.value, "Qty": t.quantity,
                     "Price": float(t.price), "Date": t.date or "-",
                     "Net P&L": float(ch.net_pl),
                     "Return %": round(float(ch.return_pct), 2) if ch.return_pct is not None else None})
    df = pd.DataFrame(rows)
    df.index = range(1, len(df) + 1)
    st.dataframe(df.style.map(_colour_pnl, subset=["Net P&L", "Return %"])
                   .format({"Price": "{:,.2f}", "Net P&L": "{:,.2f}", "Return %": "{:.2f}"},
                           na_rep="-"),
                 use_container_width=True)

    idx = st.selectbox("Details for row", range(1, len(txns) + 1),
                       format_func=lambda i: f"{i}. {txns[i-1].action.value} {txns[i-1].symbol}")
    t = txns[idx - 1]
    with st.expander("Charges & notes", expanded=False):
        cols = st.columns(4)
        for i, (attr, label) in enumerate(CHARGE_LABELS.items()):
            cols[i % 4].metric(label, fmt_cur(getattr(t, attr)))
        if t.fees is not None:
            st.caption(f"Recorded aggregate fees: {fmt_cur(t.fees)}")
        st.write(t.notes or "—")
    c1, c2 = st.columns(2)
    if c1.button("✏️  Edit this row", use_container_width=True):
        st.session_state.editing = idx - 1; st.rerun()
    if c2.button("🗑️  Delete this row", use_container_width=True):
        portfolio().delete_transaction(idx - 1)
        st.session_state.pop("editing", None)
        st.rerun()


def _render_transaction_form():
    editing = st.session_state.get("editing")
    txns    = portfolio().transactions
    if editing is not None and editing >= len(txns):
        editing = st.session_state.editing = None
    current = txns[editing] if editing is not None else None
    rec     = current.to_record() if current else {}
    _section("Edit Transaction" if current else "Add Transaction")

    with st.form("txn_form", clear_on_submit=current is None):
        c1, c2, c3, c4 = st.columns(4)
        symbol   = c1.text_input("Symbol", value=rec.get("symbol", ""), placeholder="e.g. RELIANCE").upper()
        action   = c2.selectbox("Buy/Sell", ["Buy", "Sell"],
                                index=0 if rec.get("action", "Buy") == "Buy" else 1)
        quantity = c3.text_input("Quantity", value=rec.get("quantity", ""))
        price    = c4.text_input("Price", value=rec.get("price", ""))
        stored_date = parse_date(rec.get("date"))
        txn_date = st.date_input("Date", value=stored_date or date.today())
        if rec.get("date") and stored_date is None:
            st.caption(f"Stored date '{rec['date']}' is not YYYY-MM-DD; saving replaces it.")
        cols = st.columns(6)
        charges = {attr: cols[i].text_input(label, value=rec.get(CHARGE_FIELDS[attr], ""))
                   for i, (attr, label) in enumerate(CHARGE_LABELS.items())}
        notes = st.text_input("Notes", value=rec.get("notes", ""), placeholder="Optional notes")

        submitted = st.form_submit_button("Update" if current else "Add Txn",
                                          use_container_width=True, type="primary")
    if current is not None and st.button("Cancel edit"):
        st.session_state.editing = None; st.rerun()

    if not submitted:
        return
    errors = validate_transaction(symbol, action, quantity, price,
                                  {CHARGE_LABELS[a]: v for a, v in charges.items()}, txn_date)
    if errors:
        for e in errors: st.error(e)
        return
    record = {"symbol": symbol, "action": action, "quantity": quantity, "price": price,
              "date": str(txn_date), "notes": notes, "fees": rec.get("fees", "")}
    record.update({CHARGE_FIELDS[a]: v for a, v in charges.items()})
    txn = Transaction.from_record(record)
    if current is None:
        portfolio().add_transaction(txn)
    else:
        portfolio().update_transaction(editing, txn)
        st.session_state.editing = None
    st.rerun()


def _render_import_export():
    _section("Import / Export")
    c1, c2, c3 = st.columns(3)
    with c1:
        st.download_button("⬇️  Export CSV", data=portfolio().export_csv(),
                           file_name=f"actual_pl_{date.today().isoformat()}.csv",
                           mime="text/csv", use_container_width=True)
    with c2:
        if portfolio().transactions:
            st.download_button("⬇️  Export Excel", data=_excel_bytes(),
                               file_name=f"actual_pl_{date.today().isoformat()}.xlsx",
                               mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                               use_container_width=True)
    with c3:
        upload = st.file_uploader("Import CSV", type=["csv"], label_visibility="collapsed")
        if upload is not None and st.button("Import", use_container_width=True):
            try:
                count = portfolio().import_csv(upload.getvalue())
            except CsvImportError as e:
                st.error(f"CSV parse error: {e}")
            else:
                st.success(f"✓ Imported {count} transaction(s)")
                st.rerun()


def _render_summary():
    _section("Summary")
    summary = portfolio().summary(prices())
    c1, c2, c3 = st.columns(3)
    c1.metric("Total Invested", fmt_cur(summary.total_invested))
    c2.metric("Realized P&L",   fmt_cur(summary.total_realized_pl))
    c3.metric("Unrealized P&L", fmt_cur(summary.total_unrealized_pl))

    for symbol, qty in find_oversold(portfolio().transactions).items():
        st.warning(f"⚠️ {symbol}: sells exceed recorded buys (quantity reaches {qty:,}).")

    if not summary.positions:
        st.info("No positions yet."); return
    df = pd.DataFrame([{"Symbol": p.symbol, "Qty Held": p.quantity_held,
                        "Avg Buy": float(p.average_buy_price),
                        "Invested": float(p.invested_capital),
                        "Unrealized P&L": float(p.unrealized_pl),
                        "Realized P&L": float(p.realized_pl)}
                       for p in summary.positions.values()])
    st.dataframe(df.style.map(_colour_pnl, subset=["Unrealized P&L", "Realized P&L"])
                   .format({c: "{:,.2f}" for c in ["Avg Buy", "Invested", "Unrealized P&L", "Realized P&L"]}),
                 use_container_width=True, hide_index=True)

    fig = go.Figure()
    fig.add_trace(go.Bar(name="Realized", x=df["Symbol"], y=df["Realized P&L"], marker_color=BLUE,
        hovertemplate="<b>%{x}</b><br>Realized: %{y:,.2f}<extra></extra>"))
    fig.add_trace(go.Bar(name="Unrealized", x=df["Symbol"], y=df["Unrealized P&L"],
        marker_color=[GAIN if v >= 0 else LOSS for v in df["Unrealized P&L"]],
        hovertemplate="<b>%{x}</b><br>Unrealized: %{y:,.2f}<extra></extra>"))
    fig.update_layout(**_chart_layout("P&L by Symbol", 340))
    fig.update_layout(barmode="group", yaxis=dict(gridcolor="#1e1e1e", tickprefix=config.CURRENCY))
    st.plotly_chart(fig, use_container_width=True)

# ── Virtual P&L ───────────────────────────────────────────────────────────────
def render_virtual_pl():
    st.markdown("## Virtual Profit & Loss")
    totals = virtual().totals(prices())
    c1, c2, c3 = st.columns(3)
    c1.metric("Total Invested", fmt_cur(totals.invested))
    c2.metric("Current Value",  fmt_cur(totals.current_value))
    c3.metric("Total P&L",      fmt_cur(totals.profit))
    st.divider()

    with st.form("virtual_form", clear_on_submit=True):
        c1, c2, c3, c4 = st.columns(4)
        symbol    = c1.text_input("Symbol", placeholder="e.g. RELIANCE",
                                  help="Known: " + ", ".join(prices().known_symbols())).upper()
        buy_price = c2.text_input("Buy Price", placeholder="e.g. 2500")
        quantity  = c3.text_input("Quantity", placeholder="e.g. 10")
        buy_date  = c4.date_input("Buy Date", value=None)
        if st.form_submit_button("Add Holding", use_container_width=True, type="primary"):
            errors = validate_virtual_holding(symbol or "", buy_price, quantity)
            if errors:
                for e in errors: st.error(e)
            else:
                virtual().add_holding(VirtualHolding.from_record(
                    {"symbol": symbol, "buyPrice": buy_price, "quantity": quantity,
                     "date": str(buy_date) if buy_date else ""}))
                st.rerun()

    rows = virtual().rows(prices())
    if not rows:
        st.info("No holdings yet."); return
    df = pd.DataFrame([{"Symbol": r.holding.symbol, "Buy Price": float(r.holding.buy_price),
                        "Qty": r.holding.quantity, "Buy Date": r.holding.date or "-",
                        "Current Price": float(r.current_price), "Invested": float(r.invested),
                        "Current Value": float(r.current_value), "P&L": float(r.profit),
                        "%P&L": round(float(r.percent), 2)} for r in rows])
    df.index = range(1, len(df) + 1)
    st.dataframe(df.style.map(_colour_pnl, subset=["P&L", "%P&L"])
                   .format({c: "{:,.2f}" for c in ["Buy Price", "Current Price", "Invested",
                                                   "Current Value", "P&L", "%P&L"]}),
                 use_container_width=True)

    idx = st.selectbox("Remove holding", range(1, len(rows) + 1),
                       format_func=lambda i: f"{i}. {rows[i-1].holding.symbol}")
    if st.button("🗑️  Delete", use_container_width=False):
        virtual().delete_holding(idx - 1); st.rerun()

# ── Watchlist ─────────────────────────────────────────────────────────────────
def render_watchlist():
    st.markdown("## Watchlist")
    items   = watchlist().items
    editing = st.session_state.get("watch_editing")
    if editing is not None and editing >= len(items):
        editing = st.session_state.watch_editing = None
    rec = items[editing].to_record() if editing is not None else {}

    with st.form("watch_form", clear_on_submit=editing is None):
        c1, c2, c3, c4 = st.columns(4)
        name        = c1.text_input("Stock", value=rec.get("stockName", ""), placeholder="e.g. TCS",
                                    help="Known: " + ", ".join(prices().known_symbols())).strip().upper()
        grading_new = c2.text_input("Grading - New", value=rec.get("gradingNew", ""))
        grading_old = c3.text_input("Grading - Old", value=rec.get("gradingOld", ""))
        add_date    = c4.date_input("Add Date", value=parse_date(rec.get("addDate")) or date.today())
        c5, c6, c7 = st.columns(3)
        add_rate     = c5.text_input("Add Rate", value=rec.get("addRate", ""))
        current_rate = c6.text_input("Current Rate", value=rec.get("currentRate", ""),
                                     placeholder="blank uses the price book")
        score        = c7.text_input("Red Flags Score", value=rec.get("redFlagsScore", ""))
        flags   = st.multiselect("Red Flags", config.RED_FLAG_OPTIONS,
                                 default=[f for f in rec.get("redFlags", []) if f in config.RED_FLAG_OPTIONS])
        remarks = st.text_input("Remarks", value=rec.get("remarks", ""))
        submitted = st.form_submit_button("Update Stock" if rec else "Add Stock",
                                          use_container_width=True, type="primary")
    if rec and st.button("Cancel edit", key="watch_cancel"):
        st.session_state.watch_editing = None; st.rerun()

    if submitted:
        if not current_rate.strip() and name:
            current_rate = format(prices()(name), "f")
        errors = validate_watchlist_item(name, str(add_date), add_rate, current_rate, score, flags)
        if errors:
            for e in errors: st.error(e)
        else:
            item = WatchlistItem.from_record({
                "stockName": name, "gradingNew": grading_new, "gradingOld": grading_old,
                "addDate": str(add_date), "addRate": add_rate, "currentRate": current_rate,
                "redFlagsScore": score, "redFlags": flags, "remarks": remarks})
            if editing is None:
                watchlist().add_item(item)
            else:
                watchlist().update_item(editing, item)
                st.session_state.watch_editing = None
            st.rerun()

    rows = watchlist().rows()
    if not rows:
        st.info("No stocks in watchlist."); return
    df = pd.DataFrame([{"Stock": r.item.stock_name, "Grading (New)": r.item.grading_new,
                        "Grading (Old)": r.item.grading_old, "Add Date": r.item.add_date or "-",
                        "Add Rate": float(r.item.add_rate),
                        "Holding Period": f"{r.holding_days} days" if r.holding_days is not None else "-",
                        "Current Rate": float(r.item.current_rate),
                        "Change": float(r.change) if r.change is not None else None,
                        "Change %": float(r.change_pct) if r.change_pct is not None else None,
                        "Red Flags Score": float(r.item.red_flags_score)
                                           if r.item.red_flags_score is not None else None,
                        "Red Flags": "; ".join(r.item.red_flags), "Remarks": r.item.remarks}
                       for r in rows])
    df.index = range(1, len(df) + 1)
    st.dataframe(df.style.map(_colour_pnl, subset=["Change", "Change %"])
                   .format({"Add Rate": "{:,.2f}", "Current Rate": "{:,.2f}", "Change": "{:,.2f}",
                            "Change %": "{:.2f}", "Red Flags Score": "{:g}"}, na_rep="-"),
                 use_container_width=True)

    idx = st.selectbox("Row", range(1, len(rows) + 1),
                       format_func=lambda i: f"{i}. {rows[i-1].item.stock_name}")
    c1, c2 = st.columns(2)
    if c1.button("✏️  Edit", key="watch_edit", use_container_width=True):
        st.session_state.watch_editing = idx - 1; st.rerun()
    if c2.button("🗑️  Delete", key="watch_delete", use_container_width=True):
        watchlist().delete_item(idx - 1)
        st.session_state.pop("watch_editing", None)
        st.rerun()

# ── Prices ────────────────────────────────────────────────────────────────────
def render_prices():
    st.markdown("## Prices")
    st.caption("Mock prices with optional manual overrides. There is no live feed.")
    symbols = sorted(set(prices().known_symbols()) |
                     {t.symbol for t in portfolio().transactions} |
                     {h.symbol for h in virtual().holdings} |
                     {i.stock_name for i in watchlist().items})
    df = pd.DataFrame([{"Symbol": s, "Price": float(prices()(s)),
                        "Source": "manual" if prices().is_manual(s) else "default"}
                       for s in symbols])
    st.dataframe(df, use_container_width=True, hide_index=True)

    with st.form("price_form"):
        c1, c2 = st.columns(2)
        symbol = c1.text_input("Symbol").strip().upper()
        raw    = c2.text_input("Price (blank clears the manual price)").strip()
        if st.form_submit_button("Save", type="primary") and symbol:
            if not raw:
                prices().clear_price(symbol)
                st.rerun()
            try:
                prices().set_price(symbol, raw)
            except ValueError:
                st.error("Price must be a number.")
            else:
                st.rerun()


def main():
    page = render_sidebar()
    render = {
        "Actual P&L":  render_actual_pl,
        "Virtual P&L": render_virtual_pl,
        "Watchlist":   render_watchlist,
        "Prices":      render_prices,
    }.get(page, render_actual_pl)
    _page_boundary(render, page)

if __name__ == "__main__":
    main()
