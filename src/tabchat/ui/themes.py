"""Theme definitions for the TUI.

This module hides the design decisions about:
- Color palettes and visual appearance
- Theme variables (borders, scrollbars, footer)

To add a new theme, define it here and register in the app.
"""

from textual.theme import Theme

# Gruvbox dark, medium contrast
GRUVBOX_DARK = Theme(
    name="tabchat-gruvbox",
    primary="#83a598",      # Blue - tabs, user messages
    secondary="#d3869b",    # Purple - assistant messages
    accent="#fabd2f",       # Yellow - active tab, spinner
    foreground="#ebdbb2",
    background="#1d2021",
    success="#b8bb26",
    warning="#fe8019",
    error="#fb4934",
    surface="#282828",
    panel="#32302f",
    dark=True,
    variables={
        "border": "#504945",
        "border-blurred": "#3c3836",
        "scrollbar": "#3c3836",
        "scrollbar-hover": "#504945",
        "scrollbar-active": "#83a598",
        "scrollbar-background": "#282828",
        "footer-background": "#1d2021",
        "footer-key-foreground": "#fabd2f",
        "footer-description-foreground": "#a89984",
        "input-cursor-background": "#ebdbb2",
        "input-cursor-foreground": "#1d2021",
        "input-selection-background": "#83a598 30%",
        "text-muted": "#928374",
    },
)
