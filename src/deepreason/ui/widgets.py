"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Chat list rendering and selection
- Virtualized, recycled message rendering
- Input history management
- Metrics display formatting
- Log rendering and level filtering
"""

from collections.abc import Callable
from datetime import datetime

from rich.markup import escape

from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click, Resize
from textual.message import Message as TextualMessage
from textual.widgets import Button, Collapsible, OptionList, RichLog, Static, TextArea
from textual.widgets.option_list import Option

from ..chat.models import Chat, Message
from ..render.scheduler import RenderScheduler
from .config import (
    INPUT_HISTORY_MAX_SIZE,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
    SIDEBAR_TITLE_MAX,
    LogLevel,
)
from .formatting import format_elapsed_time, format_usage, render_markdown, render_plain


def copy_text(app, text: str, what: str) -> None:
    """Copy to the system clipboard, falling back to the terminal (OSC 52)."""
    try:
        import pyperclip
        pyperclip.copy(text)
        app.notify(f"{what} copied", timeout=2)
    except Exception:
        app.copy_to_clipboard(text)
        app.notify(f"{what} copied (terminal)", timeout=2)


class ChatSidebar(Vertical):
    """Stored chats, newest first, with a New Chat button."""

    BORDER_TITLE = "Chats"

    class ChatSelected(TextualMessage):
        """Posted when the user picks a chat from the list."""

        def __init__(self, chat_id: str) -> None:
            super().__init__()
            self.chat_id = chat_id

    class NewChatRequested(TextualMessage):
        """Posted when the New Chat button is pressed."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._signature: tuple | None = None

    def compose(self):
        yield Button("+ New Chat", id="new-chat-btn", variant="primary")
        yield OptionList(id="chat-list")

    @property
    def highlighted_chat_id(self) -> str | None:
        """Chat under the list cursor, if the list has one."""
        chat_list = self.query_one("#chat-list", OptionList)
        if chat_list.highlighted is None:
            return None
        return chat_list.get_option_at_index(chat_list.highlighted).id

    def refresh_chats(self, chats: list[Chat], active_chat_id: str | None) -> None:
        """Rebuild the list when titles, order or the active chat changed."""
        ordered = list(reversed(chats))
        signature = (tuple((c.id, c.title) for c in ordered), active_chat_id)
        if signature == self._signature:
            return
        self._signature = signature

        options = []
        for chat in ordered:
            title = chat.title
            if len(title) > SIDEBAR_TITLE_MAX:
                title = title[:SIDEBAR_TITLE_MAX - 1] + "…"
            style = "bold underline" if chat.id == active_chat_id else ""
            options.append(Option(render_plain(title, style), id=chat.id))

        chat_list = self.query_one("#chat-list", OptionList)
        chat_list.clear_options()
        chat_list.add_options(options)
        if active_chat_id is not None and signature[0]:
            ids = [c.id for c in ordered]
            if active_chat_id in ids:
                chat_list.highlighted = ids.index(active_chat_id)
        self.border_subtitle = f"{len(ordered)}"

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "new-chat-btn":
            event.stop()
            self.post_message(self.NewChatRequested())

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        if event.option.id is not None:
            self.post_message(self.ChatSelected(event.option.id))


class MessageView(Vertical):
    """One rendered message. Instances are pooled and rebound to rows."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.index: int = -1
        self._pending_key: tuple | None = None
        self._shown_key: tuple | None = None

    def compose(self):
        yield Static("", classes="message-header")
        with Collapsible(title="Thinking", collapsed=False, classes="thinking-block"):
            yield Static("", classes="thinking-content")
        yield Static("", classes="message-content")

    def on_mount(self) -> None:
        self._apply()

    def show(self, index: int, message: Message, label: str, collapsed: bool) -> None:
        """Bind this view to row ``index``; re-renders only what changed."""
        self.index = index
        self._pending_key = (message.role, message.content, message.thinking, label, collapsed)
        if self.is_mounted:
            self._apply()

    def _apply(self) -> None:
        key = self._pending_key
        if key is None or key == self._shown_key:
            return
        self._shown_key = key
        role, text, thinking_text, label, collapsed = key

        is_user = role == "user"
        self.set_class(is_user, "user-message")
        self.set_class(not is_user, "assistant-message")
        self.query_one(".message-header", Static).update("You" if is_user else "Assistant")

        thinking = self.query_one(".thinking-block", Collapsible)
        thinking.display = bool(thinking_text)
        if thinking_text:
            thinking.title = label
            thinking.collapsed = collapsed
            self.query_one(".thinking-content", Static).update(render_plain(thinking_text))

        content = self.query_one(".message-content", Static)
        if is_user:
            content.update(render_plain(text))
        else:
            content.update(render_markdown(text))

    def invalidate(self) -> None:
        """Force the next bind to re-render."""
        self._shown_key = None

    def on_resize(self) -> None:
        parent = self.parent
        if isinstance(parent, VirtualChatView):
            parent.schedule_measure()

    def on_click(self, event: Click) -> None:
        """Copy the message text when clicked."""
        event.stop()
        if self._shown_key is not None and self._shown_key[1]:
            copy_text(self.app, self._shown_key[1], "Message")


class VirtualChatView(VerticalScroll):
    """Conversation list that only materializes rows near the viewport.

    Two spacers stand in for the rows above and below the window; a pool
    of MessageView widgets is rebound to whichever rows are visible. Row
    heights come from the RenderScheduler, which learns real heights as
    rows are rendered.
    """

    BORDER_TITLE = "Conversation"
    ALLOW_SELECT = True

    def __init__(
        self,
        scheduler: RenderScheduler,
        label_for: Callable[[int, Message], str] | None = None,
        *args,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.scheduler = scheduler
        self._label_for = label_for or (lambda index, message: "Thinking")
        self._rows: list[Message] = []
        self._pool: list[MessageView] = []
        self._collapsed: dict[int, bool] = {}
        self._row_window: range = range(0)
        self._measure_scheduled = False
        self._last_width = 0

    def compose(self):
        yield Static("", id="top-spacer", classes="spacer")
        yield Static("", id="bottom-spacer", classes="spacer")

    def on_mount(self) -> None:
        self.scheduler.bind_view(self.call_after_refresh, self._scroll_to_bottom)

    @property
    def messages(self) -> list[Message]:
        return list(self._rows)

    @property
    def window(self) -> range:
        """Rows currently materialized."""
        return self._row_window

    def set_messages(self, messages: list[Message], reset: bool = False) -> None:
        """Show a new message list. ``reset`` drops measurements and fold state."""
        self._rows = list(messages)
        if reset:
            self.scheduler.reset(len(self._rows))
            self._collapsed.clear()
            # A freshly shown chat always opens at its latest message
            if self._rows:
                self.scheduler.request_scroll_to_bottom()
        else:
            self.scheduler.set_count(len(self._rows))
        self.border_subtitle = f"{len(self._rows)} messages" if self._rows else ""
        self.refresh_window()

    def refresh_window(self) -> None:
        """Rebind the pool to the rows around the viewport."""
        if not self.is_mounted:
            return
        items = self.scheduler.virtual_items(int(self.scroll_y), self._viewport_height())
        self._row_window = range(items[0].index, items[-1].index + 1) if items else range(0)

        bottom = self.query_one("#bottom-spacer", Static)
        while len(self._pool) < len(items):
            view = MessageView()
            self._pool.append(view)
            self.mount(view, before=bottom)

        for view, item in zip(self._pool, items):
            message = self._rows[item.index]
            view.display = True
            view.show(
                item.index,
                message,
                self._label_for(item.index, message),
                self._collapsed.get(item.index, False),
            )
        for view in self._pool[len(items):]:
            view.display = False
            view.index = -1

        self._place_spacers()
        self.schedule_measure()

    def schedule_measure(self) -> None:
        """Measure the window once the next layout has settled."""
        if not self._measure_scheduled:
            self._measure_scheduled = True
            self.call_after_refresh(self._measure_window)

    def _place_spacers(self) -> None:
        scheduler = self.scheduler
        top = self.query_one("#top-spacer", Static)
        bottom = self.query_one("#bottom-spacer", Static)
        window = self._row_window
        if not window:
            top.styles.height = scheduler.total_size
            bottom.styles.height = 0
            return
        last = window[-1]
        top.styles.height = scheduler.offset_of(window[0])
        bottom.styles.height = max(
            0, scheduler.total_size - scheduler.offset_of(last) - scheduler.size_of(last)
        )

    def _measure_window(self) -> None:
        """Feed rendered heights back into the scheduler."""
        self._measure_scheduled = False
        changed = False
        for view in self._pool:
            height = view.outer_size.height
            if view.display and view.index >= 0 and height > 0:
                changed |= self.scheduler.measure(view.index, height)
        if changed:
            self._place_spacers()

    def _viewport_height(self) -> int:
        return max(1, self.scrollable_content_region.height)

    def _scroll_to_bottom(self) -> None:
        self.scroll_end(animate=False)

    def watch_scroll_y(self, old_value: float, new_value: float) -> None:
        super().watch_scroll_y(old_value, new_value)
        self.scheduler.on_scroll(new_value, self._viewport_height(), self.virtual_size.height)
        visible = self.scheduler.visible_range(int(new_value), self._viewport_height())
        if visible != self._row_window:
            self.refresh_window()

    def on_resize(self, event: Resize) -> None:
        if event.size.width == self._last_width:
            self.refresh_window()
            return
        # Rows rewrap at a new width, so every measured height is stale
        self._last_width = event.size.width
        auto_scroll = self.scheduler.auto_scroll_enabled
        self.scheduler.reset(len(self._rows))
        self.scheduler.auto_scroll_enabled = auto_scroll
        for view in self._pool:
            view.invalidate()
        self.refresh_window()

    def on_collapsible_collapsed(self, event: Collapsible.Collapsed) -> None:
        self._remember_fold(event.collapsible, True)

    def on_collapsible_expanded(self, event: Collapsible.Expanded) -> None:
        self._remember_fold(event.collapsible, False)

    def _remember_fold(self, collapsible: Collapsible, collapsed: bool) -> None:
        for view in self._pool:
            if collapsible.parent is view and view.index >= 0:
                self._collapsed[view.index] = collapsed
                self.schedule_measure()
                return


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button.

    While ``busy`` is set, submissions are refused and the text is kept.
    """

    class Submitted(TextualMessage):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    class Refused(TextualMessage):
        """Message sent when input is submitted while busy."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1
        self._busy = False

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Send message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.focus()
        text_area.highlight_cursor_line = False

    @property
    def busy(self) -> bool:
        return self._busy

    @busy.setter
    def busy(self, value: bool) -> None:
        self._busy = value
        self.set_class(value, "-busy")
        self.query_one("#send-btn", Button).label = "Wait" if value else "Send"

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            event.stop()
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        ctrl+enter cannot work in terminals, so ctrl+j submits.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._is_cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._is_cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _is_cursor_at_start(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        return text_area.cursor_location == (0, 0)

    def _is_cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if not value:
            return
        if self._busy:
            self.post_message(self.Refused())
            return
        if not self._history or self._history[-1] != value:
            self._history.append(value)
            del self._history[:-INPUT_HISTORY_MAX_SIZE]
        self._history_index = -1
        text_area.text = ""
        self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()


class MetricsPanel(Static):
    """One-line status: model, turn phase, reasoning time, token usage."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._model_name = ""
        self._status = "Ready"
        self._elapsed = 0
        self._usage: dict | None = None

    def on_mount(self) -> None:
        self._update_display()

    def update_metrics(
        self,
        model: str | None = None,
        status: str | None = None,
        elapsed: int | None = None,
        usage: dict | None = None,
    ) -> None:
        """Update the metrics display. Arguments left as None keep their value,
        except ``usage`` which is always replaced."""
        if model is not None:
            self._model_name = model
        if status is not None:
            self._status = status
        if elapsed is not None:
            self._elapsed = elapsed
        self._usage = usage
        self._update_display()

    def _update_display(self) -> None:
        status_colors = {
            "Ready": "green",
            "Reasoning": "magenta",
            "Answering": "cyan",
            "Error": "red",
            "Cancelled": "yellow",
        }
        color = status_colors.get(self._status, "white")
        parts = [
            f"[bold cyan]Model:[/] {self._model_name}",
            f"[bold {color}]{self._status}[/]",
        ]
        if self._elapsed or self._status in ("Reasoning", "Answering"):
            parts.append(f"[bold yellow]Thinking:[/] {format_elapsed_time(self._elapsed)}")
        usage = format_usage(self._usage)
        if usage:
            parts.append(f"[bold magenta]Usage:[/] [dim]{usage}[/]")
        self.update("  ".join(parts))

    def get_plain_text(self) -> str:
        """Get metrics as plain text for clipboard."""
        text = f"Model: {self._model_name}  Status: {self._status}  Thinking: {format_elapsed_time(self._elapsed)}"
        usage = format_usage(self._usage)
        if usage:
            text += f"  Usage: {usage}"
        return text


class DebugPanel(RichLog):
    """Log panel for real-time tracing with level filtering.

    Shows timestamped log messages from all components.
    Supports standard log levels: DEBUG < INFO < WARNING < ERROR.
    Hidden by default, shown with --log-level flag or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Trace log"

    COMPONENT_COLORS = {
        "TUI": "cyan",
        "Controller": "green",
        "Sessions": "bright_green",
        "Storage": "blue",
        "Parser": "magenta",
        "Client": "bright_magenta",
    }

    def __init__(self, *args, log_level: int = LogLevel.DEBUG, **kwargs) -> None:
        super().__init__(
            *args,
            markup=True,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        """Current log level threshold."""
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        """Hide by default."""
        self.display = False

    def log_message(self, component: str, message: str, level: int = LogLevel.DEBUG) -> None:
        """Add a log entry if it meets the current level threshold."""
        if level < self._log_level:
            return

        timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        level_colors = {
            LogLevel.DEBUG: "dim white",
            LogLevel.INFO: "cyan",
            LogLevel.WARNING: "yellow",
            LogLevel.ERROR: "red",
        }
        level_color = level_colors.get(level, "white")
        comp_color = self.COMPONENT_COLORS.get(component, "white")
        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."
        message = escape(message)

        self.write(
            f"[dim]{timestamp}[/] "
            f"[{level_color}]{LogLevel.name(level):<5}[/] "
            f"[{comp_color}]\\[{component}][/] {message}"
        )

    def route(self, level: str, component: str, message: str) -> None:
        """Debug-callback entry point: ``(level, component, message)``."""
        self.log_message(component, message, LogLevel.from_string(level))

    def debug(self, component: str, message: str) -> None:
        self.log_message(component, message, LogLevel.DEBUG)

    def info(self, component: str, message: str) -> None:
        self.log_message(component, message, LogLevel.INFO)

    def warning(self, component: str, message: str) -> None:
        self.log_message(component, message, LogLevel.WARNING)

    def error(self, component: str, message: str) -> None:
        self.log_message(component, message, LogLevel.ERROR)

    def show(self) -> None:
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        self.display = False
        self.border_subtitle = "Hidden"

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True

    def get_plain_text(self) -> str:
        """Get plain text content of the log for copying."""
        return "\n".join(line.text for line in self.lines)

    def on_click(self, event: Click) -> None:
        """Copy log content to clipboard when clicked."""
        event.stop()
        text = self.get_plain_text()
        if not text.strip():
            self.app.notify("Log is empty", timeout=2)
            return
        copy_text(self.app, text, "Log")
