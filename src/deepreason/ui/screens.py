"""Modal screens for the TUI.

This module hides the design decisions about:
- Confirmation dialog appearance (CSS, layout)
- Keyboard shortcuts for dialogs

Destructive chat operations (delete one, clear all) ask here first.
"""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Static


class ConfirmationScreen(ModalScreen[bool]):
    """Yes/no dialog. Dismisses with True only on an explicit yes."""

    CSS = """
    ConfirmationScreen {
        align: center middle;
        background: $background 70%;
    }

    #confirmation-dialog {
        width: 56;
        height: auto;
        max-height: 18;
        border: tall $error;
        background: $surface;
        padding: 1 2;
    }

    #confirmation-title {
        width: 100%;
        height: auto;
        text-align: center;
        text-style: bold;
        color: $error;
        padding: 0 0 1 0;
        border-bottom: solid $border;
        margin-bottom: 1;
    }

    #confirmation-prompt {
        width: 100%;
        height: auto;
        text-align: center;
        padding: 1 2;
        background: $panel;
        color: $foreground;
    }

    #confirmation-buttons {
        width: 100%;
        height: 3;
        align: center middle;
        margin-top: 1;
    }

    #confirmation-buttons Button {
        margin: 0 1;
        min-width: 10;
    }
    """

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=False),
        Binding("n", "answer(False)", "No", show=False),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    def __init__(self, title: str, prompt: str, confirm_label: str = "Delete") -> None:
        super().__init__()
        self._dialog_title = title
        self._dialog_prompt = prompt
        self._confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical(id="confirmation-dialog"):
            yield Static(self._dialog_title, id="confirmation-title")
            yield Static(self._dialog_prompt, id="confirmation-prompt")
            with Horizontal(id="confirmation-buttons"):
                yield Button(self._confirm_label, id="btn-yes", variant="error")
                yield Button("Cancel", id="btn-no", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#btn-no", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(event.button.id == "btn-yes")

    def action_answer(self, confirmed: bool) -> None:
        self.dismiss(confirmed)
