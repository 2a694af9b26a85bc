"""
screener/display.py
===================
Renders transactions, the P&L summary, the virtual book and the watchlist
in the terminal using the `rich` library. Nothing here computes P&L; it only
formats what the calculators return.
"""

from decimal import Decimal
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich import box
from rich.panel import Panel

from screener import config
from screener.charges import ChargeBreakdown
from screener.models import PortfolioSummary, Transaction, VirtualPL, VirtualTotals, WatchlistRow


console = Console()

# ── Palette ─────────────────────────────────────────────────────────────────
GAIN   = "green"
LOSS   = "red"
MUTED  = "grey62"
ACCENT = "steel_blue1"
HEAD   = "bold white"


# ── Formatters ───────────────────────────────────────────────────────────────

def _colour(value, text: str) -> str:
    if value > 0:  return f"[{GAIN}]{text}[/{GAIN}]"
    if value < 0:  return f"[{LOSS}]{text}[/{LOSS}]"
    return f"[{MUTED}]{text}[/{MUTED}]"

def _cur(value: Decimal) -> str:
    return f"{config.CURRENCY}{value:,.2f}"

def _pct(value: Optional[Decimal]) -> str:
    if value is None:
        return "-"
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.2f}%"

def _arrow(value) -> str:
    if value > 0:  return f"[{GAIN}]▲[/{GAIN}]"
    if value < 0:  return f"[{LOSS}]▼[/{LOSS}]"
    return f"[{MUTED}]─[/{MUTED}]"

def _table(**kwargs) -> Table:
    return Table(box=box.SIMPLE, show_header=True, header_style=f"bold {ACCENT}",
                 show_edge=False, pad_edge=True, **kwargs)


# ── Transactions ─────────────────────────────────────────────────────────────

def print_transactions(rows: List[Tuple[Transaction, ChargeBreakdown]]) -> None:
    if not rows:
        console.print(f"\n  [{MUTED}]No transactions yet.[/{MUTED}]\n")
        return

    table = _table(row_styles=["", "on grey7"])
    table.add_column("#",        justify="right", style=MUTED)
    table.add_column("Symbol",   style=HEAD, min_width=10)
    table.add_column("Action",   min_width=6)
    table.add_column("Qty",      justify="right")
    table.add_column("Price",    justify="right")
    table.add_column("Date",     style=MUTED)
    table.add_column("Net P&L",  justify="right")
    table.add_column("Return %", justify="right")

    for i, (t, ch) in enumerate(rows, 1):
        action = f"[{GAIN}]BUY[/{GAIN}]" if t.action.value == "Buy" else f"[{LOSS}]SELL[/{LOSS}]"
        ret = ch.return_pct
        table.add_row(
            str(i), t.symbol, action,
            f"{t.quantity:,}", _cur(t.price), t.date or "-",
            _colour(ch.net_pl, _cur(ch.net_pl)),
            _colour(ret, _pct(ret)) if ret is not None else _pct(None),
        )

    console.print()
    console.print(table)


def print_charge_detail(t: Transaction, ch: ChargeBreakdown) -> None:
    lines = [
        f"[{MUTED}]Brokerage[/{MUTED}]      {_cur(t.brokerage)}",
        f"[{MUTED}]GST[/{MUTED}]            {_cur(t.gst)}",
        f"[{MUTED}]Stamp Duty[/{MUTED}]     {_cur(t.stamp_duty)}",
        f"[{MUTED}]SEBI Fee[/{MUTED}]       {_cur(t.sebi_fee)}",
        f"[{MUTED}]STT[/{MUTED}]            {_cur(t.stt)}",
        f"[{MUTED}]Other Charges[/{MUTED}]  {_cur(t.other_charges)}",
        f"[{MUTED}]Total Charges[/{MUTED}]  [white]{_cur(ch.total_fees)}[/white]",
    ]
    if t.fees is not None:
        lines.append(f"[{MUTED}]Recorded Fees[/{MUTED}]  [white]{_cur(t.fees)}[/white]")
    lines.append(f"[{MUTED}]Net P&L[/{MUTED}]        {_colour(ch.net_pl, _cur(ch.net_pl))}  "
                 f"{_pct(ch.return_pct)}")
    if t.notes:
        lines.append(f"[{MUTED}]Notes[/{MUTED}]          {t.notes}")
    title = (f"[bold white]{t.symbol}[/bold white]  "
             f"[{MUTED}]{t.action.value} {t.quantity:,} @ {_cur(t.price)}[/{MUTED}]")
    console.print(Panel("\n".join(lines), title=title, border_style=ACCENT, padding=(1, 2)))


# ── Portfolio summary ────────────────────────────────────────────────────────

def print_summary(summary: PortfolioSummary) -> None:
    if not summary.positions:
        console.print(f"\n  [{MUTED}]No positions yet.[/{MUTED}]\n")
        return

    table = _table(row_styles=["", "on grey7"])
    table.add_column("",               width=2)
    table.add_column("Symbol",         style=HEAD, min_width=10)
    table.add_column("Qty Held",       justify="right", min_width=9)
    table.add_column("Avg Buy",        justify="right", min_width=11, style=MUTED)
    table.add_column("Invested",       justify="right", min_width=13)
    table.add_column("Unrealized P&L", justify="right", min_width=14)
    table.add_column("Realized P&L",   justify="right", min_width=13)

    for p in summary.positions.values():
        qty = f"{p.quantity_held:,}"
        if p.quantity_held < 0:
            qty = f"[{LOSS}]{qty}[/{LOSS}]"
        table.add_row(
            _arrow(p.unrealized_pl + p.realized_pl),
            p.symbol, qty,
            _cur(p.average_buy_price),
            _cur(p.invested_capital),
            _colour(p.unrealized_pl, _cur(p.unrealized_pl)),
            _colour(p.realized_pl, _cur(p.realized_pl)),
        )

    console.print()
    console.print(table)
    _print_totals(summary)


def _print_totals(summary: PortfolioSummary) -> None:
    realized, unrealized = summary.total_realized_pl, summary.total_unrealized_pl
    parts = [
        f"[{MUTED}]Invested[/{MUTED}]  [white]{_cur(summary.total_invested)}[/white]",
        f"[{MUTED}]Realized[/{MUTED}]  {_colour(realized, _cur(realized))}",
        f"[{MUTED}]Unrealized[/{MUTED}]  {_colour(unrealized, _cur(unrealized))}",
    ]
    console.print("  " + "     ".join(parts) + "\n")


# ── Virtual book ─────────────────────────────────────────────────────────────

def print_virtual(rows: List[VirtualPL], totals: VirtualTotals) -> None:
    if not rows:
        console.print(f"\n  [{MUTED}]No holdings yet.[/{MUTED}]\n")
        return

    table = _table(row_styles=["", "on grey7"])
    table.add_column("#",             justify="right", style=MUTED)
    table.add_column("Symbol",        style=HEAD, min_width=10)
    table.add_column("Buy Price",     justify="right")
    table.add_column("Qty",           justify="right")
    table.add_column("Buy Date",      style=MUTED)
    table.add_column("Current",       justify="right")
    table.add_column("Invested",      justify="right")
    table.add_column("Value",         justify="right", style=HEAD)
    table.add_column("P&L",           justify="right")
    table.add_column("%P&L",          justify="right")

    for i, r in enumerate(rows, 1):
        h = r.holding
        table.add_row(
            str(i), h.symbol, _cur(h.buy_price), f"{h.quantity:,}", h.date or "-",
            _cur(r.current_price), _cur(r.invested), _cur(r.current_value),
            _colour(r.profit, _cur(r.profit)), _colour(r.percent, _pct(r.percent)),
        )

    console.print()
    console.print(table)
    parts = [
        f"[{MUTED}]Invested[/{MUTED}]  [white]{_cur(totals.invested)}[/white]",
        f"[{MUTED}]Value[/{MUTED}]  [bold white]{_cur(totals.current_value)}[/bold white]",
        f"[{MUTED}]P&L[/{MUTED}]  {_colour(totals.profit, _cur(totals.profit))}",
    ]
    console.print("  " + "     ".join(parts) + "\n")


# ── Watchlist ────────────────────────────────────────────────────────────────

def print_watchlist(rows: List[WatchlistRow]) -> None:
    if not rows:
        console.print(f"\n  [{MUTED}]No stocks in watchlist.[/{MUTED}]\n")
        return

    table = _table(row_styles=["", "on grey7"])
    table.add_column("#",          justify="right", style=MUTED)
    table.add_column("Stock",      style=HEAD, min_width=10)
    table.add_column("Grade",      justify="center")
    table.add_column("Added",      style=MUTED)
    table.add_column("Add Rate",   justify="right")
    table.add_column("Held",       justify="right", style=MUTED)
    table.add_column("Current",    justify="right")
    table.add_column("Change",     justify="right")
    table.add_column("Change %",   justify="right")
    table.add_column("Red Flags")
    table.add_column("Remarks",    style=MUTED)

    for i, r in enumerate(rows, 1):
        it = r.item
        grade = it.grading_new or "-"
        if it.grading_old and it.grading_old != it.grading_new:
            grade = f"{grade} [{MUTED}](was {it.grading_old})[/{MUTED}]"
        flags = "; ".join(it.red_flags)
        if it.red_flags_score is not None:
            flags = f"[{LOSS}]{it.red_flags_score}[/{LOSS}] {flags}".strip()
        table.add_row(
            str(i), it.stock_name, grade, it.add_date or "-", _cur(it.add_rate),
            f"{r.holding_days} days" if r.holding_days is not None else "-",
            _cur(it.current_rate),
            _colour(r.change, _cur(r.change)) if r.change is not None else "-",
            _colour(r.change_pct, _pct(r.change_pct)) if r.change_pct is not None else "-",
            flags or "-", it.remarks,
        )

    console.print()
    console.print(table)
