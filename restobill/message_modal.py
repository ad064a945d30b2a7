"""Blocking message modal for errors the cashier must acknowledge."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import Static


class MessageModal(ModalScreen[None]):
    """Show one message until it is acknowledged."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("enter", "close", "Close"),
        ("q", "close", "Close"),
    ]

    CSS = """
    MessageModal {
        align: center middle;
        background: $background 60%;
    }

    #message-dialog {
        width: 60;
        height: auto;
        border: round $error;
        background: $panel;
        padding: 1 2;
    }

    #message-title {
        text-style: bold;
        margin-bottom: 1;
        color: #ffb3b3;
    }

    #message-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    def __init__(self, title: str, message: str) -> None:
        super().__init__()
        self.title_text = title
        self.message = message

    def compose(self) -> ComposeResult:
        with Container(id="message-dialog"):
            yield Static(self.title_text, id="message-title")
            yield Static(self.message, id="message-body")
            yield Static("Enter/Esc to close", id="message-help")

    def action_close(self) -> None:
        self.dismiss()
