"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
Single column: tab bar, conversation, optional log panel, status line, input.
"""

APP_CSS = """
Screen {
    layout: vertical;
    background: $background;
}

#tab-bar {
    height: 1;
    background: $surface;
    color: $text-muted;
    padding: 0 1;
}

#conversation {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &.busy {
        border: round $accent;
        border-title-color: $accent;
    }
}

#transcript {
    width: 100%;
    height: auto;
}

#debug-panel {
    height: 12;
    background: $surface;
    border: round $warning 50%;
    border-title-color: $warning;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
}

#status-line {
    height: 1;
    padding: 0 1;
    background: $surface;
    color: $text-muted;

    &.error {
        color: $error;
        text-style: bold;
    }
}

#chat-input {
    height: 3;
    border: tall $border;

    &:focus {
        border: tall $primary;
    }
}
"""

HELP_CSS = """
HelpScreen {
    align: center middle;
    background: $background 70%;
}

#help-dialog {
    width: 70;
    height: auto;
    max-height: 90%;
    border: tall $accent;
    background: $surface;
    padding: 1 2;
}

#help-title {
    width: 100%;
    text-align: center;
    text-style: bold;
    color: $accent;
    padding: 0 0 1 0;
}

#help-footer {
    width: 100%;
    text-align: center;
    color: $text-muted;
    padding: 1 0 0 0;
}
"""
