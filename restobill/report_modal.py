"""Daily sales report modal with the AI insight panel."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static

from restobill.insights import SalesInsight, generate_sales_insight
from restobill.models import MenuItem, Order
from restobill.reports import DailyReport
from restobill.rendering import format_report


class ReportModal(ModalScreen[None]):
    """
    Show today's figures and fetch sales insights in the background.

    The insight request runs in a worker bound to this screen, so closing the
    modal cancels it and nothing on the register waits for it.
    """

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("i", "generate_insight", "Insights"),
    ]

    CSS = """
    ReportModal {
        align: center middle;
        background: $background 60%;
    }

    #report-dialog {
        width: 72;
        height: 85%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #report-body {
        height: 1fr;
    }

    #insight-body {
        margin-top: 1;
        color: #9ecbff;
    }

    #report-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    def __init__(self, report: DailyReport, currency: str, orders: list[Order], menu: list[MenuItem]) -> None:
        super().__init__()
        self.report = report
        self.currency = currency
        self.orders = orders
        self.menu = menu
        self.insight_pending = False

    def compose(self) -> ComposeResult:
        with Container(id="report-dialog"):
            with VerticalScroll(id="report-body"):
                yield Static(format_report(self.report, self.currency))
                yield Static("Press I for AI insights.", id="insight-body")
            yield Static("I insights, Esc/q close", id="report-help")

    def action_close(self) -> None:
        self.dismiss()

    def action_generate_insight(self) -> None:
        if self.insight_pending:
            return
        self.insight_pending = True
        self.query_one("#insight-body", Static).update("Generating insights...")
        self.run_worker(self._load_insight(), exclusive=True)

    async def _load_insight(self) -> None:
        insight = await generate_sales_insight(self.orders, self.menu)
        self.insight_pending = False
        self._show_insight(insight)

    def _show_insight(self, insight: SalesInsight) -> None:
        text = Text()
        text.append("AI insights\n", style="bold")
        text.append(f"{insight.summary}\n", style="italic")
        for tip in insight.insights:
            text.append(f"  • {tip}\n")
        self.query_one("#insight-body", Static).update(text)
