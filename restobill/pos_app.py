"""Main Textual app class."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, TypeVar

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from restobill.bill import bill_lines
from restobill.bill_modal import BillModal
from restobill.billing import format_money
from restobill.data import filter_menu, menu_categories
from restobill.errors import PosError
from restobill.message_modal import MessageModal
from restobill.models import MenuItem, Order, OrderLineItem, Table
from restobill.printer import check_printer_dependencies, print_bill
from restobill.rendering import format_line_item, format_menu_item, format_table_row, format_totals
from restobill.report_modal import ReportModal
from restobill.reports import daily_report
from restobill.session import Session
from restobill.text_entry_modal import TextEntryModal, validate_amount

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RestoBillApp(App):
    """A Textual register for table orders and bills."""

    TITLE = "RestoBill"
    SUB_TITLE = "Tables / Orders / Bills"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #tables-pane {
        width: 2fr;
        border: round $primary;
        padding: 1;
    }

    #order-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #menu-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #results, #tables-list, #order-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #order-totals {
        height: auto;
        padding: 0 1;
        margin-top: 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    query = reactive("")
    selected_index = reactive(0)
    category_index = reactive(0)
    table_index = reactive(0)
    line_index = reactive(None)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next result"),
        ("up", "move_up", "Previous"),
        ("down", "move_down", "Next"),
        ("left", "cycle_category(-1)", "Previous category"),
        ("right", "cycle_category(1)", "Next category"),
        ("enter", "register_selected", "Add item"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("plus", "adjust_selected(1)", "+1", key_display="+"),
        Binding("minus", "adjust_selected(-1)", "-1", key_display="-"),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session
        self.system_status = ""
        self.printer_status = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="tables-pane"):
                yield Static("Tables", classes="pane-title")
                yield Static(id="tables-list")
            with Vertical(id="order-pane"):
                yield Static(id="order-title", classes="pane-title")
                yield Static("(no items yet)", id="order-list")
                yield Static(id="order-totals")
            with Vertical(id="menu-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")

    def on_mount(self) -> None:
        _, self.printer_status = check_printer_dependencies()
        logger.info("app mounted, %s", self.printer_status)
        self._refresh_all()

    # -- keys ----------------------------------------------------------------

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return

        if self.input_state == "active":
            if event.key == "space":
                self.query += " "
            elif event.is_printable and event.character and event.character.isalnum():
                self.query += event.character
            else:
                return
            self.selected_index = 0
            self._refresh_search()
            event.stop()
            return

        if not event.is_printable or not event.character or not event.character.isalnum():
            return

        handlers: dict[str, Callable[[], None]] = {
            "s": self._enter_search,
            "j": lambda: self._move_line_selection(1),
            "k": lambda: self._move_line_selection(-1),
            "n": self._edit_note,
            "d": self._edit_discount,
            "c": self._complete_order,
            "x": self._cancel_order,
            "b": self._preview_bill,
            "r": self._open_report,
        }
        handler = handlers.get(event.character.lower())
        if handler is None:
            return
        handler()
        event.stop()

    def action_move_up(self) -> None:
        if self.input_state == "active":
            self.action_cycle_results(-1)
            return
        self._move_table_selection(-1)

    def action_move_down(self) -> None:
        if self.input_state == "active":
            self.action_cycle_results(1)
            return
        self._move_table_selection(1)

    def action_cancel_active_mode(self) -> None:
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self.query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            self._refresh_results(results)
            return
        self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    def action_cycle_category(self, delta: int) -> None:
        if self.input_state != "active":
            return
        categories = menu_categories(self.session.menu)
        self.category_index = (self.category_index + delta) % len(categories)
        self.selected_index = 0
        self._refresh_search()

    def action_register_selected(self) -> None:
        if self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            return
        item = results[self.selected_index]
        table = self._selected_table()
        order = self._guard(lambda: self.session.add_item(table.table_id, item.item_id))
        if order is None:
            return
        line = next(line for line in order.items if line.menu_item_id == item.item_id)
        self.line_index = order.items.index(line)
        self._set_status(f"Added {item.name} to {table.name}")
        self._refresh_all()

    def action_backspace_query(self) -> None:
        if self.input_state != "active" or not self.query:
            return
        self.query = self.query[:-1]
        self.selected_index = 0
        self._refresh_search()

    def action_adjust_selected(self, delta: int) -> None:
        line = self._selected_line()
        if line is None:
            return
        table = self._selected_table()
        order = self._guard(lambda: self.session.adjust_quantity(table.table_id, line.line_id, delta))
        if order is not None and self.line_index is not None and self.line_index >= len(order.items):
            self.line_index = len(order.items) - 1 if order.items else None
        self._refresh_all()

    # -- order actions -------------------------------------------------------

    def _enter_search(self) -> None:
        self.input_state = "active"
        self.query = ""
        self.selected_index = 0
        self._refresh_search()

    def _edit_note(self) -> None:
        line = self._selected_line()
        if line is None:
            return
        table = self._selected_table()

        def apply(note: str | None) -> None:
            if note is None:
                return
            self._guard(lambda: self.session.set_line_note(table.table_id, line.line_id, note))
            self._refresh_all()

        self.push_screen(TextEntryModal(f"Note: {line.name}", "e.g. no onions", value=line.note), apply)

    def _edit_discount(self) -> None:
        table = self._selected_table()
        order = self._current_order()
        if not order.items:
            self._set_status("Add items before a discount")
            return

        def apply(amount: str | None) -> None:
            if amount is None:
                return
            self._guard(lambda: self.session.apply_discount(table.table_id, amount))
            self._refresh_all()

        self.push_screen(
            TextEntryModal("Discount", f"Flat discount for {table.name}", str(order.discount_amount), validate_amount),
            apply,
        )

    def _complete_order(self) -> None:
        table = self._selected_table()
        result = self._guard(lambda: self.session.complete_order(table.table_id))
        if result is None:
            return
        order, _ = result
        self.line_index = None
        total = format_money(order.total, self.session.settings.currency)
        self._set_status(f"Order for {table.name} completed! Total {total}")
        self._refresh_all()

    def _cancel_order(self) -> None:
        table = self._selected_table()
        if self.session.active_order(table.table_id) is None:
            self._set_status(f"{table.name} has no order to cancel")
            return

        def confirm(answer: str | None) -> None:
            if answer is None:
                return
            if self._guard(lambda: self.session.cancel_order(table.table_id)) is not None:
                self.line_index = None
                self._set_status(f"Order for {table.name} cancelled")
            self._refresh_all()

        self.push_screen(
            TextEntryModal(
                "Cancel order",
                f"Type yes to discard the order on {table.name}",
                validator=lambda value: None if value.lower() == "yes" else "Type yes to confirm.",
            ),
            confirm,
        )

    def _preview_bill(self) -> None:
        table = self._selected_table()
        order = self._current_order()
        if not order.items:
            self._set_status("Nothing to bill")
            return
        lines = bill_lines(order, self.session.settings, table.name)

        def maybe_print(should_print: bool | None) -> None:
            if should_print:
                self._print(lines, order)

        self.push_screen(BillModal(lines, self.printer_status), maybe_print)

    def _print(self, lines: list[str], order: Order) -> None:
        try:
            print_bill(lines)
        except Exception as exc:
            self._set_status(f"Print failed for {order.order_id[:8]}: {exc}")
            logger.warning("print failed order=%s error=%r", order.order_id[:8], exc)
            return
        self._set_status(f"Printed bill {order.order_id[:8].upper()}")

    def _open_report(self) -> None:
        orders = self.session.completed_orders()
        report = daily_report(orders, date.today())
        self.push_screen(ReportModal(report, self.session.settings.currency, orders, self.session.menu))

    def _guard(self, action: Callable[[], T]) -> T | None:
        """Run a session action, surfacing domain errors in a blocking message."""
        try:
            result = action()
        except PosError as exc:
            logger.warning("action rejected: %s", exc)
            self.push_screen(MessageModal(type(exc).__name__, str(exc)))
            return None
        if self.session.persist_pending:
            self._set_status(f"Not saved yet: {self.session.last_persist_error}")
        return result

    # -- selection -----------------------------------------------------------

    def _selected_table(self) -> Table:
        tables = self.session.tables.all_tables()
        self.table_index = min(self.table_index, len(tables) - 1)
        return tables[self.table_index]

    def _current_order(self) -> Order:
        return self.session.order_for_table(self._selected_table().table_id)

    def _selected_line(self) -> OrderLineItem | None:
        order = self._current_order()
        if self.line_index is None or not (0 <= self.line_index < len(order.items)):
            return None
        return order.items[self.line_index]

    def _move_table_selection(self, delta: int) -> None:
        total = len(self.session.tables)
        self.table_index = (self.table_index + delta) % total
        self.line_index = None
        self._refresh_all()

    def _move_line_selection(self, delta: int) -> None:
        items = self._current_order().items
        if not items:
            return
        if self.line_index is None:
            self.line_index = 0 if delta > 0 else len(items) - 1
        else:
            self.line_index = (self.line_index + delta) % len(items)
        self._refresh_order()

    def _filtered_results(self) -> list[MenuItem]:
        categories = menu_categories(self.session.menu)
        category = categories[self.category_index % len(categories)]
        return filter_menu(self.session.menu, self.query, category)

    # -- rendering -----------------------------------------------------------

    def _set_status(self, message: str) -> None:
        self.system_status = message
        self._refresh_search_bar()

    def _refresh_all(self) -> None:
        self._refresh_tables()
        self._refresh_order()
        self._refresh_search()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            start = max(0, selected - rows // 2)
            start = min(start, total - rows)

        return (start, start + rows)

    def _windowed(self, widget: Static, rows: list[Text], selected: int | None) -> Text:
        start, end = self._window_bounds(len(rows), self._visible_rows(widget), selected)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == selected else "  ")
            lines.append_text(rows[idx])
        if end < len(rows):
            lines.append("\n⋮", style="dim")
        return lines

    def _refresh_tables(self) -> None:
        try:
            widget = self.query_one("#tables-list", Static)
        except NoMatches:
            return
        currency = self.session.settings.currency
        rows = [
            format_table_row(table, self.session.active_order(table.table_id), currency)
            for table in self.session.tables.all_tables()
        ]
        widget.update(self._windowed(widget, rows, self.table_index))

    def _refresh_order(self) -> None:
        try:
            title = self.query_one("#order-title", Static)
            order_widget = self.query_one("#order-list", Static)
            totals_widget = self.query_one("#order-totals", Static)
        except NoMatches:
            return
        table = self._selected_table()
        order = self._current_order()
        label = f"Order #{order.order_id[:6]}" if self.session.orders.is_committed(order.order_id) else "New order"
        title.update(f"{table.name} · {label}")
        totals_widget.update(format_totals(order, self.session.settings))
        if not order.items:
            self.line_index = None
            order_widget.update("(no items yet)")
            return
        if self.line_index is not None and self.line_index >= len(order.items):
            self.line_index = len(order.items) - 1
        currency = self.session.settings.currency
        rows = [format_line_item(item, currency) for item in order.items]
        order_widget.update(self._windowed(order_widget, rows, self.line_index))

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        if self.input_state == "normal":
            self._refresh_results([])
            return
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            status = self.system_status or "Ready"
            bar.update(
                "S search menu. J/K line, +/- qty, N note, D discount.\n"
                f"C complete, X cancel, B bill, R report.\n{status}"
            )
            return

        categories = menu_categories(self.session.menu)
        text = Text()
        text.append(f" {categories[self.category_index % len(categories)]} ", style="bold #ffffff on #2f6db5")
        text.append(f" {self.query}|\n")
        text.append("←/→ category, ↑/↓ select, Enter add, Ctrl+C done", style="dim")
        bar.update(text)

    def _refresh_results(self, results: list[MenuItem]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            results_widget.update("")
            return
        if not results:
            results_widget.update("No results")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0
        currency = self.session.settings.currency
        rows = [format_menu_item(item, currency) for item in results]
        results_widget.update(self._windowed(results_widget, rows, self.selected_index))
