"""Modal screens for the TUI.

This module hides the design decisions about:
- Help overlay appearance (CSS, layout)
- Which keys and commands are advertised

To change how help looks, modify only this file.
"""

from rich.table import Table
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from ..chat.commands import DIRECTIVE_HELP
from .styles import HELP_CSS

KEY_HELP = [
    ("Enter", "Send the message or run the command"),
    ("Up / Down", "Recall earlier input"),
    ("Ctrl+N", "New tab"),
    ("Ctrl+W", "Close tab"),
    ("Ctrl+Left / Ctrl+Right", "Previous / next tab"),
    ("Alt+1 .. Alt+9", "Go to tab by number"),
    ("PageUp / PageDown", "Scroll the conversation"),
    ("Ctrl+Home / Ctrl+End", "Jump to oldest / newest message"),
    ("Ctrl+S", "Save conversation"),
    ("Ctrl+D", "Toggle log panel"),
    ("F1", "Toggle this help"),
    ("Ctrl+Q", "Quit"),
]


def _help_table(title: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=title, title_style="bold", show_header=False, box=None, expand=True)
    table.add_column(style="bold cyan", no_wrap=True)
    table.add_column()
    for key, description in rows:
        table.add_row(key, description)
    return table


class HelpScreen(ModalScreen[None]):
    """Overlay listing key bindings and slash commands.

    Any key closes it.
    """

    CSS = HELP_CSS

    def compose(self) -> ComposeResult:
        with Vertical(id="help-dialog"):
            yield Static("TabChat Help", id="help-title")
            yield Static(_help_table("Keys", KEY_HELP))
            yield Static("")
            yield Static(_help_table("Commands", DIRECTIVE_HELP))
            yield Static("Press any key to close", id="help-footer")

    def on_key(self, event: Key) -> None:
        event.stop()
        event.prevent_default()
        self.dismiss()
