"""Terminal UI module for deepreason.

Provides a Textual-based TUI for dual-model reasoning chats.

Module structure (each module hides a design decision):
- widgets.py: Custom widgets (sidebar, virtualized chat view, input, metrics, log)
- styles.py: CSS styling (layout decisions)
- themes.py: Color palettes and theme configuration
- screens.py: Modal dialogs (confirmation screens)
- formatting.py: Durations, usage figures and message bodies as display text
- app.py: Application orchestration (user interaction flow)
"""

from .app import DeepReasonApp, run_textual_tui
from .config import LogLevel
from .widgets import ChatInputBar, ChatSidebar, DebugPanel, MessageView, MetricsPanel, VirtualChatView

__all__ = [
    "ChatInputBar",
    "ChatSidebar",
    "DebugPanel",
    "DeepReasonApp",
    "LogLevel",
    "MessageView",
    "MetricsPanel",
    "VirtualChatView",
    "run_textual_tui",
]
