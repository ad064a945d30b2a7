"""Bill preview modal screen."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static

from restobill.rendering import format_bill


class BillModal(ModalScreen[bool]):
    """Preview a bill; dismisses with True when the cashier asks to print it."""

    BINDINGS = [
        ("escape", "close", "Back"),
        ("q", "close", "Back"),
        ("p", "print", "Print"),
    ]

    CSS = """
    BillModal {
        align: center middle;
        background: $background 60%;
    }

    #bill-dialog {
        width: 44;
        height: 80%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #bill-body {
        height: 1fr;
    }

    #bill-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    def __init__(self, lines: list[str], printer_status: str = "") -> None:
        super().__init__()
        self.lines = lines
        self.printer_status = printer_status

    def compose(self) -> ComposeResult:
        with Container(id="bill-dialog"):
            with VerticalScroll(id="bill-body"):
                yield Static(format_bill(self.lines))
            yield Static(f"P print, Esc back. {self.printer_status}".strip(), id="bill-help")

    def action_close(self) -> None:
        self.dismiss(False)

    def action_print(self) -> None:
        self.dismiss(True)
