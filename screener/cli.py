"""
screener/cli.py
===============
The interactive command-line interface.

Every menu action reads from / writes to the stores in portfolio.py and then
re-renders from scratch: the summary is recomputed by the ledger each time
it is shown, never kept between actions.
"""

from datetime import date
from typing import Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, Confirm

from screener import config, display, exporter
from screener.db import Database
from screener.models import (
    CHARGE_FIELDS, CsvImportError, Transaction, VirtualHolding, WatchlistItem, parse_date,
)
from screener.portfolio import Portfolio, VirtualPortfolio, Watchlist
from screener.prices import PriceBook
from screener.validation import (
    find_oversold, validate_charge, validate_price, validate_quantity, validate_symbol,
    validate_transaction, validate_virtual_holding, validate_watchlist_item,
)

console = Console()

CHARGE_LABELS = {
    "brokerage":     "Brokerage",
    "gst":           "GST",
    "stamp_duty":    "Stamp duty",
    "sebi_fee":      "SEBI fee",
    "stt":           "STT",
    "other_charges": "Other charges",
}


class CLI:
    """Main command-line interface class."""

    def __init__(self, db: Optional[Database] = None):
        self.db        = db or Database()
        self.portfolio = Portfolio(self.db)
        self.virtual   = VirtualPortfolio(self.db)
        self.watchlist = Watchlist(self.db)
        self.prices    = PriceBook(db=self.db)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _ask(self, label: str, default: Optional[str] = None) -> str:
        if default:
            return Prompt.ask(label, default=default).strip()
        return Prompt.ask(label).strip()

    def _ask_valid(self, label: str, default: Optional[str], check) -> str:
        """Keep asking until `check` returns no errors."""
        while True:
            raw = self._ask(label, default)
            errors = check(raw)
            if not errors:
                return raw
            self._show_errors(errors)

    def _show_errors(self, errors) -> None:
        for e in errors:
            console.print(f"[red]✗ {e}[/red]")

    def _prompt_index(self, count: int, what: str) -> Optional[int]:
        """Ask for a 1-based row number; returns a 0-based index or None."""
        if count == 0:
            console.print(f"[yellow]No {what} yet.[/yellow]")
            return None
        raw = Prompt.ask(f"Row number (1-{count})")
        try:
            n = int(raw)
        except ValueError:
            console.print("[red]That doesn't look like a number.[/red]")
            return None
        if not 1 <= n <= count:
            console.print(f"[red]Row {n} does not exist.[/red]")
            return None
        return n - 1

    def _prompt_date(self, default: str = "", label: str = "Date (YYYY-MM-DD)") -> str:
        """Ask until a valid date no later than today is given."""
        if parse_date(default) is None:
            default = date.today().isoformat()
        while True:
            raw = Prompt.ask(label, default=default).strip()
            parsed = parse_date(raw)
            if parsed is None:
                self._show_errors([f"'{raw}' is not a valid date (expected YYYY-MM-DD)."])
            elif parsed > date.today():
                self._show_errors([f"Date {parsed} is in the future."])
            else:
                return raw

    def _warn_oversold(self) -> None:
        for symbol, qty in find_oversold(self.portfolio.transactions).items():
            console.print(f"[yellow]⚠ {symbol}: sells exceed recorded buys "
                          f"(quantity reaches {qty:,}).[/yellow]")

    def _prompt_transaction(self, action: str,
                            current: Optional[Transaction] = None) -> Optional[Transaction]:
        """
        Guided flow for a transaction. Each field is re-asked until it is
        valid; returns None only if the finished record is still rejected.
        """
        record: Dict[str, str] = current.to_record() if current else {}
        symbol   = self._ask_valid("Symbol (e.g. RELIANCE, TCS)", record.get("symbol"),
                                   validate_symbol)
        quantity = self._ask_valid("Quantity", record.get("quantity"), validate_quantity)
        price    = self._ask_valid("Price per share", record.get("price"), validate_price)
        txn_date = self._prompt_date(record.get("date", ""))

        charges = {}
        for attr, key in CHARGE_FIELDS.items():
            label = CHARGE_LABELS[attr]
            charges[attr] = self._ask_valid(label, record.get(key) or "0",
                                            lambda raw, label=label: validate_charge(raw, label))
        notes = Prompt.ask("Notes (optional)", default=record.get("notes", ""))

        errors = validate_transaction(symbol, action, quantity, price,
                                      {CHARGE_LABELS[a]: v for a, v in charges.items()},
                                      parse_date(txn_date))
        if errors:
            self._show_errors(errors)
            return None

        record = {"symbol": symbol, "action": action, "quantity": quantity,
                  "price": price, "date": txn_date, "notes": notes,
                  "fees": record.get("fees", "")}
        record.update({CHARGE_FIELDS[a]: v for a, v in charges.items()})
        return Transaction.from_record(record)

    # -----------------------------------------------------------------------
    # Actual P&L
    # -----------------------------------------------------------------------

    def view_summary(self):
        summary = self.portfolio.summary(self.prices)
        display.print_summary(summary)
        self._warn_oversold()

    def view_transactions(self):
        display.print_transactions(self.portfolio.charge_rows())

    def add_transaction(self, action: str = "Buy"):
        console.print(f"\n[steel_blue1]── Add {action.upper()} Transaction ──[/steel_blue1]")
        txn = self._prompt_transaction(action)
        if txn is None:
            return
        self.portfolio.add_transaction(txn)
        console.print(f"[green]✓ {action.upper()} recorded for {txn.symbol}[/green]")
        self._warn_oversold()

    def edit_transaction(self):
        self.view_transactions()
        idx = self._prompt_index(len(self.portfolio), "transactions")
        if idx is None:
            return
        current = self.portfolio.transactions[idx]
        action  = Prompt.ask("Action", choices=["Buy", "Sell"], default=current.action.value)
        txn = self._prompt_transaction(action, current)
        if txn is None:
            return
        self.portfolio.update_transaction(idx, txn)
        console.print(f"[green]✓ Row {idx + 1} updated.[/green]")
        self._warn_oversold()

    def delete_transaction(self):
        self.view_transactions()
        idx = self._prompt_index(len(self.portfolio), "transactions")
        if idx is None:
            return
        t = self.portfolio.transactions[idx]
        if Confirm.ask(f"[red]Delete {t.action.value} {t.quantity:,} {t.symbol}?[/red]"):
            self.portfolio.delete_transaction(idx)
            console.print("[green]✓ Deleted.[/green]")

    def show_charges(self):
        rows = self.portfolio.charge_rows()
        display.print_transactions(rows)
        idx = self._prompt_index(len(rows), "transactions")
        if idx is not None:
            display.print_charge_detail(*rows[idx])

    def import_csv(self):
        path = Prompt.ask("CSV file to import").strip()
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            console.print(f"[red]Could not open {path}: {e}[/red]")
            return
        try:
            count = self.portfolio.import_csv(data)
        except CsvImportError as e:
            console.print(f"[red]CSV parse error: {e}[/red]")
            return
        console.print(f"[green]✓ Imported {count} transaction(s).[/green]")
        self._warn_oversold()

    def export_data(self):
        if not len(self.portfolio):
            console.print("[yellow]No transactions to export.[/yellow]")
            return

        console.print("\n  1. Export to CSV")
        console.print("  2. Export to Excel (.xlsx)")
        console.print("  3. Both")
        choice = Prompt.ask("Choose", choices=["1", "2", "3"])

        if choice in ("1", "3"):
            fname = exporter.export_to_csv(self.portfolio.transactions)
            console.print(f"[green]✓ CSV saved:   {fname}[/green]")
        if choice in ("2", "3"):
            fname = exporter.export_to_excel(self.portfolio.summary(self.prices),
                                             self.portfolio.transactions)
            console.print(f"[green]✓ Excel saved: {fname}[/green]")

    # -----------------------------------------------------------------------
    # Virtual P&L
    # -----------------------------------------------------------------------

    def view_virtual(self):
        display.print_virtual(self.virtual.rows(self.prices),
                              self.virtual.totals(self.prices))

    def virtual_menu(self):
        console.print("\n[steel_blue1]── Virtual P&L ──[/steel_blue1]")
        console.print("  1. View   2. Add   3. Edit   4. Delete")
        choice = Prompt.ask("Choose", choices=["1", "2", "3", "4"], default="1")

        if choice == "1":
            self.view_virtual()
            return

        if choice in ("3", "4"):
            self.view_virtual()
            idx = self._prompt_index(len(self.virtual), "holdings")
            if idx is None:
                return
            if choice == "4":
                removed = self.virtual.delete_holding(idx)
                console.print(f"[green]✓ {removed.symbol} removed.[/green]")
                return
            current = self.virtual.holdings[idx].to_record()
        else:
            current = {}

        symbol    = self._ask_valid("Symbol", current.get("symbol"), validate_symbol)
        buy_price = self._ask_valid("Buy price", current.get("buyPrice"),
                                    lambda raw: validate_price(raw, "Buy price"))
        quantity  = self._ask_valid("Quantity", str(current.get("quantity", "")),
                                    validate_quantity)
        buy_date  = Prompt.ask("Buy date (optional)", default=current.get("date", ""))

        errors = validate_virtual_holding(symbol, buy_price, quantity)
        if errors:
            self._show_errors(errors)
            return
        holding = VirtualHolding.from_record({"symbol": symbol, "buyPrice": buy_price,
                                              "quantity": quantity, "date": buy_date})
        if choice == "2":
            self.virtual.add_holding(holding)
        else:
            self.virtual.update_holding(idx, holding)
        console.print(f"[green]✓ {holding.symbol} saved.[/green]")

    # -----------------------------------------------------------------------
    # Watchlist
    # -----------------------------------------------------------------------

    def view_watchlist(self):
        display.print_watchlist(self.watchlist.rows())

    def _prompt_red_flags(self, current) -> list:
        options = config.RED_FLAG_OPTIONS
        for i, flag in enumerate(options, 1):
            console.print(f"  [grey62]{i}.[/grey62] {flag}")
        default = ",".join(str(options.index(f) + 1) for f in current if f in options)
        while True:
            raw = Prompt.ask("Red flags (numbers, comma separated)", default=default).strip()
            picks = [p.strip() for p in raw.split(",") if p.strip()]
            if all(p.isdigit() and 1 <= int(p) <= len(options) for p in picks):
                return [options[int(p) - 1] for p in dict.fromkeys(picks)]
            self._show_errors([f"Pick numbers between 1 and {len(options)}."])

    def watchlist_menu(self):
        console.print("\n[steel_blue1]── Watchlist ──[/steel_blue1]")
        console.print("  1. View   2. Add   3. Edit   4. Delete")
        choice = Prompt.ask("Choose", choices=["1", "2", "3", "4"], default="1")

        if choice == "1":
            self.view_watchlist()
            return

        if choice in ("3", "4"):
            self.view_watchlist()
            idx = self._prompt_index(len(self.watchlist), "stocks in the watchlist")
            if idx is None:
                return
            if choice == "4":
                removed = self.watchlist.delete_item(idx)
                console.print(f"[green]✓ {removed.stock_name} removed.[/green]")
                return
            current = self.watchlist.items[idx].to_record()
        else:
            current = {}

        name     = self._ask_valid("Stock", current.get("stockName"), validate_symbol).upper()
        add_date = self._prompt_date(current.get("addDate", ""), label="Add date (YYYY-MM-DD)")
        add_rate = self._ask_valid("Add rate", current.get("addRate"),
                                   lambda raw: validate_price(raw, "Add rate"))
        current_rate = self._ask_valid("Current rate",
                                       current.get("currentRate") or format(self.prices(name), "f"),
                                       lambda raw: validate_price(raw, "Current rate"))
        grading_new = Prompt.ask("Grading (new)", default=current.get("gradingNew", ""))
        grading_old = Prompt.ask("Grading (old)", default=current.get("gradingOld", ""))
        score = self._ask_valid("Red flags score (optional)", current.get("redFlagsScore"),
                                lambda raw: validate_charge(raw, "Red flags score"))
        flags   = self._prompt_red_flags(current.get("redFlags", []))
        remarks = Prompt.ask("Remarks (optional)", default=current.get("remarks", ""))

        errors = validate_watchlist_item(name, add_date, add_rate, current_rate, score, flags)
        if errors:
            self._show_errors(errors)
            return
        item = WatchlistItem.from_record({
            "stockName": name, "addDate": add_date, "addRate": add_rate,
            "currentRate": current_rate, "gradingNew": grading_new,
            "gradingOld": grading_old, "redFlagsScore": score,
            "redFlags": flags, "remarks": remarks,
        })
        if choice == "2":
            self.watchlist.add_item(item)
        else:
            self.watchlist.update_item(idx, item)
        console.print(f"[green]✓ {item.stock_name} saved.[/green]")

    # -----------------------------------------------------------------------
    # Prices
    # -----------------------------------------------------------------------

    def manage_prices(self):
        symbols = sorted(set(self.prices.known_symbols()) |
                         {t.symbol for t in self.portfolio.transactions})
        for s in symbols:
            tag = " [yellow](manual)[/yellow]" if self.prices.is_manual(s) else ""
            console.print(f"  [cyan]{s:<12}[/cyan] {self.prices(s):>12,.2f}{tag}")

        symbol = Prompt.ask("Symbol to price (blank to cancel)", default="").strip().upper()
        if not symbol:
            return
        raw = Prompt.ask("New price (blank clears the manual price)", default="").strip()
        if not raw:
            if self.prices.clear_price(symbol):
                console.print(f"[green]✓ Manual price for {symbol} cleared.[/green]")
            return
        try:
            self.prices.set_price(symbol, raw)
        except ValueError:
            console.print("[red]That doesn't look like a number.[/red]")
            return
        console.print(f"[green]✓ {symbol} now priced at {self.prices(symbol):,.2f}[/green]")

    # -----------------------------------------------------------------------
    # Main loop
    # -----------------------------------------------------------------------

    MENU = """
[grey39]┌─────────────────────────────────┐[/grey39]
[grey39]│[/grey39]  [bold white]MENU[/bold white]                           [grey39]│[/grey39]
[grey39]├─────────────────────────────────┤[/grey39]
[grey39]│[/grey39]  [white]1[/white]  [grey62]P&L summary[/grey62]                 [grey39]│[/grey39]
[grey39]│[/grey39]  [white]2[/white]  [grey62]Add BUY transaction[/grey62]         [grey39]│[/grey39]
[grey39]│[/grey39]  [white]3[/white]  [grey62]Add SELL transaction[/grey62]        [grey39]│[/grey39]
[grey39]│[/grey39]  [white]4[/white]  [grey62]All transactions[/grey62]            [grey39]│[/grey39]
[grey39]│[/grey39]  [white]5[/white]  [grey62]Transaction charges[/grey62]         [grey39]│[/grey39]
[grey39]│[/grey39]  [white]6[/white]  [grey62]Edit a transaction[/grey62]          [grey39]│[/grey39]
[grey39]│[/grey39]  [white]7[/white]  [grey62]Delete a transaction[/grey62]        [grey39]│[/grey39]
[grey39]│[/grey39]  [white]8[/white]  [grey62]Import CSV[/grey62]                  [grey39]│[/grey39]
[grey39]│[/grey39]  [white]9[/white]  [grey62]Export  (CSV / Excel)[/grey62]       [grey39]│[/grey39]
[grey39]│[/grey39]  [white]v[/white]  [grey62]Virtual P&L[/grey62]                 [grey39]│[/grey39]
[grey39]│[/grey39]  [white]w[/white]  [grey62]Watchlist[/grey62]                   [grey39]│[/grey39]
[grey39]│[/grey39]  [white]p[/white]  [grey62]Prices[/grey62]                      [grey39]│[/grey39]
[grey39]│[/grey39]  [white]q[/white]  [grey62]Quit[/grey62]                        [grey39]│[/grey39]
[grey39]└─────────────────────────────────┘[/grey39]"""

    def run(self):
        console.print(Panel(
            "[bold white]Stock Screener[/bold white]  [grey62]Actual & Virtual P&L[/grey62]",
            border_style="grey39",
            padding=(0, 2),
        ))

        actions = {
            "1": self.view_summary,
            "2": lambda: self.add_transaction("Buy"),
            "3": lambda: self.add_transaction("Sell"),
            "4": self.view_transactions,
            "5": self.show_charges,
            "6": self.edit_transaction,
            "7": self.delete_transaction,
            "8": self.import_csv,
            "9": self.export_data,
            "v": self.virtual_menu,
            "w": self.watchlist_menu,
            "p": self.manage_prices,
        }

        while True:
            console.print(self.MENU)
            choice = Prompt.ask("Choice", default="1").strip().lower()

            if choice == "q":
                console.print("[cyan]Goodbye! 👋[/cyan]")
                self.db.close()
                break
            action = actions.get(choice)
            if action is None:
                console.print("[red]Invalid choice. Please try again.[/red]")
                continue
            action()
