"""
screener/exporter.py  —  Excel and CSV export
"""

import csv, io
from datetime import date, datetime
from typing import List, Optional

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

from screener.charges import compute_charges
from screener.models import RECORD_FIELDS, PortfolioSummary, Transaction

# ── Colour constants ──────────────────────────────────────────────────────────
HEADER_BG  = "1A237E"
HEADER_FG  = "FFFFFF"
SUBHEAD_BG = "283593"
POS_FG     = "1B5E20"
NEG_FG     = "B71C1C"
ALT_ROW    = "E8EAF6"

MONEY_FMT = '#,##0.00'
PNL_FMT   = '#,##0.00;[Red](#,##0.00)'

def _border():
    s = Side(style="thin", color="BDBDBD")
    return Border(left=s, right=s, top=s, bottom=s)

def _header_font(bold=True, size=10):
    return Font(name="Arial", size=size, bold=bold, color=HEADER_FG)

def _header_fill(bg=HEADER_BG):
    return PatternFill("solid", fgColor=bg)

def _style(cell, value=None, font=None, fill=None, fmt=None, align="left"):
    if value is not None: cell.value = value
    if font:  cell.font = font
    if fill:  cell.fill = fill
    if fmt:   cell.number_format = fmt
    cell.border    = _border()
    cell.alignment = Alignment(horizontal=align)
    return cell

def _pnl_font(value, bold=False):
    return Font(name="Arial", size=10, bold=bold, color=POS_FG if value >= 0 else NEG_FG)

# ── Public API ────────────────────────────────────────────────────────────────
def transactions_to_csv(transactions: List[Transaction]) -> str:
    """Full transaction list as CSV text, header first, current order."""
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=RECORD_FIELDS, lineterminator="\n")
    w.writeheader()
    for t in transactions:
        w.writerow(t.to_record())
    return buf.getvalue()

def export_to_csv(transactions: List[Transaction],
                  filename: Optional[str] = None) -> str:
    if filename is None:
        filename = f"actual_pl_{date.today().isoformat()}.csv"
    with open(filename, "w", newline="", encoding="utf-8") as f:
        f.write(transactions_to_csv(transactions))
    return filename

def export_to_excel(summary: PortfolioSummary,
                    transactions: List[Transaction],
                    filename: Optional[str] = None) -> str:
    if filename is None:
        filename = f"actual_pl_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
    wb = openpyxl.Workbook()
    _summary_sheet(wb, summary)
    _transactions_sheet(wb, transactions)
    if "Sheet" in wb.sheetnames:
        del wb["Sheet"]
    wb.save(filename)
    return filename

# ── Summary sheet ─────────────────────────────────────────────────────────────
def _summary_sheet(wb, summary: PortfolioSummary):
    ws = wb.create_sheet("Summary")

    # Title rows
    for row, text, size in [(1,"Actual Portfolio P&L",16),(2,f"Generated: {datetime.now().strftime('%d %b %Y  %H:%M')}",10)]:
        ws.merge_cells(f"A{row}:F{row}")
        c = ws[f"A{row}"]
        c.value = text
        c.font  = Font(name="Arial", size=size, bold=(row==1), italic=(row==2), color=HEADER_FG)
        c.fill  = _header_fill(HEADER_BG if row==1 else SUBHEAD_BG)
        c.alignment = Alignment(horizontal="center", vertical="center")
    ws.row_dimensions[1].height = 30

    headers = ["Symbol","Qty Held","Avg Buy","Invested","Unrealized P&L","Realized P&L"]
    for col, h in enumerate(headers, 1):
        _style(ws.cell(4, col, h), font=_header_font(), fill=_header_fill(), align="center")
    ws.row_dimensions[4].height = 20

    positions = list(summary.positions.values())
    for i, p in enumerate(positions):
        row  = 5 + i
        fill = PatternFill("solid", fgColor=ALT_ROW if i%2==0 else "FFFFFF")
        vals = [p.symbol, p.quantity_held, float(p.average_buy_price),
                float(p.invested_capital), float(p.unrealized_pl), float(p.realized_pl)]
        fmts = [None, "#,##0", MONEY_FMT, MONEY_FMT, PNL_FMT, PNL_FMT]
        for col, (val, fmt) in enumerate(zip(vals, fmts), 1):
            cell = ws.cell(row, col, val)
            cell.font   = Font(name="Arial", size=10)
            cell.fill   = fill
            cell.border = _border()
            cell.alignment = Alignment(horizontal="right" if col>1 else "left")
            if fmt: cell.number_format = fmt
            if col >= 5:
                cell.font = _pnl_font(val)

    # Totals row
    tr = 5 + len(positions)
    sub_fill = _header_fill(SUBHEAD_BG)
    for col in range(1, 7):
        ws.cell(tr, col).fill   = sub_fill
        ws.cell(tr, col).border = _border()

    _style(ws.cell(tr, 1, "TOTAL"), font=Font(name="Arial", bold=True, color=HEADER_FG))
    _style(ws.cell(tr, 4, float(summary.total_invested)),
           font=Font(name="Arial", bold=True, color=HEADER_FG), fmt=MONEY_FMT, align="right")
    _style(ws.cell(tr, 5, float(summary.total_unrealized_pl)),
           font=_pnl_font(summary.total_unrealized_pl, bold=True), fmt=PNL_FMT, align="right")
    _style(ws.cell(tr, 6, float(summary.total_realized_pl)),
           font=_pnl_font(summary.total_realized_pl, bold=True), fmt=PNL_FMT, align="right")

    for i, w in enumerate([14,12,14,16,18,18], 1):
        ws.column_dimensions[get_column_letter(i)].width = w
    ws.freeze_panes = "A5"

# ── Transactions sheet ────────────────────────────────────────────────────────
def _transactions_sheet(wb, transactions: List[Transaction]):
    ws = wb.create_sheet("Transactions")
    ws.merge_cells("A1:I1")
    _style(ws["A1"], "Transaction History",
           font=Font(name="Arial",size=14,bold=True,color=HEADER_FG),
           fill=_header_fill(), align="center")

    headers = ["Symbol","Date","Action","Quantity","Price","Charges","Net P&L","Return %","Notes"]
    for col, h in enumerate(headers, 1):
        _style(ws.cell(3, col, h), font=_header_font(), fill=_header_fill(), align="center")

    for row, t in enumerate(transactions, 4):
        ch   = compute_charges(t)
        fill = PatternFill("solid", fgColor="E8F5E9" if t.action.value=="Buy" else "FFEBEE")
        pct  = float(ch.return_pct) / 100 if ch.return_pct is not None else None
        vals = [t.symbol, t.date, t.action.value.upper(), t.quantity, float(t.price),
                float(ch.total_fees), float(ch.net_pl), pct, t.notes]
        fmts = [None, None, None, "#,##0", MONEY_FMT, MONEY_FMT, PNL_FMT, "0.00%;[Red]-0.00%", None]
        for col, (val, fmt) in enumerate(zip(vals, fmts), 1):
            cell = ws.cell(row, col, val)
            cell.font   = Font(name="Arial", size=10)
            cell.fill   = fill
            cell.border = _border()
            if fmt: cell.number_format = fmt

    for i, w in enumerate([12,12,8,10,12,12,14,10,30], 1):
        ws.column_dimensions[get_column_letter(i)].width = w
    ws.freeze_panes = "A4"
