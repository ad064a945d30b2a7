"""Single-line text entry modal screen (line notes, discounts)."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

Validator = Callable[[str], str | None]


def validate_amount(value: str) -> str | None:
    """Accept a non-negative amount with at most two decimals."""
    if not value:
        return "An amount is required."
    whole, _, cents = value.partition(".")
    if not whole.isdigit() and not (whole == "" and cents):
        return "Digits and one decimal point only."
    if cents and (not cents.isdigit() or len(cents) > 2):
        return "At most two decimals."
    return None


class TextEntryModal(ModalScreen[str | None]):
    """Prompt for one line of text; dismisses with the text, or None on cancel."""

    CSS = """
    TextEntryModal {
        align: center middle;
        background: $background 60%;
    }

    #entry-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #entry-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #entry-prompt {
        color: white;
        margin-bottom: 1;
    }

    #entry-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #entry-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #entry-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        prompt: str,
        value: str = "",
        validator: Validator | None = None,
        max_length: int = 120,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.prompt_text = prompt
        self.value = value
        self.validator = validator
        self.max_length = max_length
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="entry-dialog"):
            yield Static(self.title_text, id="entry-title")
            yield Static(self.prompt_text, id="entry-prompt")
            yield Static(id="entry-value")
            yield Static(id="entry-error")
            yield Static("Enter confirm. Backspace delete. Esc/Ctrl+C cancel.", id="entry-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character:
            if len(self.value) < self.max_length:
                self.value += event.character
            self.error = ""
            self._refresh_content()
            event.stop()

    def _confirm(self) -> None:
        value = self.value.strip()
        if self.validator is not None:
            error = self.validator(value)
            if error:
                self.error = error
                self._refresh_content()
                return
        self.dismiss(value)

    def _refresh_content(self) -> None:
        self.query_one("#entry-value", Static).update(f"{self.value}|")
        self.query_one("#entry-error", Static).update(self.error or "")
