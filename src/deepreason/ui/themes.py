"""Theme definitions for the TUI.

This module hides the design decisions about:
- Color palettes and visual appearance
- Theme variables (borders, scrollbars, etc.)

To add a new theme, define it here and register it in the app.
"""

from textual.theme import Theme

# Night palette: cool blues for the conversation, violet for reasoning
DEEPREASON_NIGHT = Theme(
    name="deepreason-night",
    primary="#7aa2f7",      # Blue - user messages, focus
    secondary="#bb9af7",    # Violet - reasoning traces
    accent="#e0af68",       # Amber - highlights, dialogs
    foreground="#c0caf5",
    background="#16161e",
    success="#9ece6a",
    warning="#ff9e64",
    error="#f7768e",
    surface="#1a1b26",
    panel="#1f2335",
    dark=True,
    variables={
        "block-cursor-foreground": "#16161e",
        "block-cursor-background": "#7aa2f7",
        "block-cursor-text-style": "bold",
        "block-cursor-blurred-foreground": "#c0caf5",
        "block-cursor-blurred-background": "#3b4261",
        "block-hover-background": "#292e42 40%",

        "input-cursor-background": "#c0caf5",
        "input-cursor-foreground": "#16161e",
        "input-selection-background": "#7aa2f7 30%",

        "border": "#3b4261",
        "border-blurred": "#292e42",

        "scrollbar": "#292e42",
        "scrollbar-hover": "#3b4261",
        "scrollbar-active": "#7aa2f7",
        "scrollbar-background": "#1a1b26",
        "scrollbar-corner-color": "#1a1b26",

        "footer-foreground": "#a9b1d6",
        "footer-background": "#16161e",
        "footer-key-foreground": "#e0af68",
        "footer-key-background": "#292e42",
        "footer-description-foreground": "#787c99",

        "text-muted": "#565f89",
        "text-disabled": "#3b4261",

        "link-color": "#7aa2f7",
        "link-style": "underline",
        "link-color-hover": "#7dcfff",
        "link-style-hover": "bold",

        "button-foreground": "#c0caf5",
        "button-color-foreground": "#16161e",
        "button-focus-text-style": "bold reverse",
    },
)
