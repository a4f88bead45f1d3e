"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
Uses Textual CSS features: nesting, pseudo-classes, variables.

Layout: chat sidebar on the left, conversation on the right, with the
metrics line, model selector and input stacked below the conversation.
"""

APP_CSS = """
/* ============================================
   Main Screen Layout
   ============================================ */
Screen {
    layout: vertical;
    background: $background;
}

#main {
    height: 1fr;
}

/* ============================================
   Chat Sidebar
   ============================================ */
#sidebar {
    width: 32;
    height: 100%;
    background: $panel;
    border: round $border;
    border-title-color: $accent;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;

    &:focus-within {
        border: round $accent;
    }
}

#new-chat-btn {
    width: 100%;
    margin: 0 0 1 0;
}

#chat-list {
    height: 1fr;
    background: transparent;

    & > ListItem {
        padding: 0 1;
        background: transparent;
    }

    & > ListItem.-active-chat {
        color: $accent;
        text-style: bold;
    }
}

.empty-sidebar {
    color: $text-muted;
    text-style: italic;
    padding: 1 1;
}

/* ============================================
   Conversation Panel
   ============================================ */
#chat-panel {
    width: 1fr;
    height: 100%;
}

#chat-view {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-title-align: left;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus {
        border: round $primary;
    }

    &.-loading {
        border: round $warning;
        border-title-color: $warning;
    }
}

.spacer {
    width: 100%;
    height: 0;
    background: transparent;
}

/* ============================================
   Chat Messages
   ============================================ */
MessageView {
    width: 100%;
    height: auto;
    margin: 0 0 1 0;
    padding: 0 1;
    background: transparent;
}

MessageView.user-message {
    border-left: tall $primary;
    background: $primary 8%;

    & .message-header {
        color: $primary;
    }
}

MessageView.assistant-message {
    border-left: tall $success;
    background: $success 6%;

    & .message-header {
        color: $success;
    }
}

.message-header {
    height: 1;
    text-style: bold;
}

.message-content {
    height: auto;
}

.thinking-block {
    height: auto;
    margin: 0 0 1 0;
    padding: 0;
    border: none;
    background: $secondary 8%;

    & CollapsibleTitle {
        color: $secondary;
        text-style: italic;
    }

    & .thinking-content {
        color: $text-muted;
        text-style: italic;
        padding: 0 1;
    }
}

/* ============================================
   Bottom Bar - Metrics + Model + Input
   ============================================ */
#bottom-bar {
    height: auto;
    padding: 0 0 1 0;
}

#metrics {
    height: 1;
    padding: 0 2;
    background: $surface;
    color: $foreground;
}

#model-select {
    width: 100%;
    margin: 0;
}

ChatInputBar {
    height: 5;
    border: round $primary 60%;
    background: $panel;

    &:focus-within {
        border: round $primary;
    }

    &.-busy {
        border: round $warning 60%;
    }
}

#chat-input {
    width: 1fr;
    height: 100%;
    border: none;
    padding: 0 1;
    background: transparent;

    &:focus {
        background: transparent;
    }
}

#send-btn {
    width: 10;
    height: 100%;
    margin: 0 0 0 1;
    min-width: 8;
    text-style: bold;
}

/* ============================================
   Debug/Log Panel
   ============================================ */
#debug-panel {
    height: auto;
    min-height: 6;
    max-height: 12;
    background: $panel;
    border: round $warning 60%;
    border-title-color: $warning;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    overflow-y: scroll;
    scrollbar-gutter: stable;

    &:focus {
        border: round $warning;
    }
}

/* ============================================
   Chrome
   ============================================ */
Toast {
    background: $surface;
    border-left: tall $primary;
}

Toast.-warning {
    border-left: tall $warning;
}

Toast.-error {
    border-left: tall $error;
}

Footer {
    background: $background;
}
"""
