"""Main Textual TUI application.

Orchestrates the UI components: wires the session manager, chat context
and controller to the sidebar, the virtualized conversation view, the
metrics line and the input bar.
"""

import asyncio

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header, Select

from ..chat.models import Message
from ..client import DEFAULT_MODEL, SUPPORTED_MODELS, ReasoningAPIClient
from ..context import ChatContext
from ..controller import ChatController, TurnOutcome
from ..render.scheduler import RenderScheduler
from ..sessions import ChatStorage, SessionManager
from .config import (
    AUTO_SCROLL_THRESHOLD_ROWS,
    CHAT_PADDING_ROWS,
    ELAPSED_REFRESH_SECONDS,
    MESSAGE_ESTIMATE_ROWS,
    MESSAGE_OVERSCAN,
    LogLevel,
)
from .formatting import thinking_label
from .screens import ConfirmationScreen
from .styles import APP_CSS
from .themes import DEEPREASON_NIGHT
from .widgets import (
    ChatInputBar,
    ChatSidebar,
    DebugPanel,
    MetricsPanel,
    VirtualChatView,
    copy_text,
)


class DeepReasonApp(App):
    """Textual TUI for dual-model reasoning chats."""

    CSS = APP_CSS
    TITLE = "DeepReason"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+n", "new_chat", "New Chat"),
        Binding("ctrl+x", "delete_chat", "Delete Chat"),
        Binding("ctrl+k", "clear_chats", "Clear All"),
        Binding("escape", "cancel_turn", "Cancel"),
        Binding("ctrl+r", "copy_last_response", "Copy Response"),
        Binding("ctrl+y", "copy_metrics", "Copy Metrics", show=False),
        Binding("ctrl+d", "toggle_debug", "Debug"),
    ]

    def __init__(
        self,
        client: ReasoningAPIClient,
        storage: ChatStorage,
        model: str = DEFAULT_MODEL,
        system_prompt: str | None = None,
        log_level: str | None = None,
    ) -> None:
        super().__init__()
        self._api_client = client
        self._storage = storage
        self._model_name = model
        self._system_prompt = system_prompt
        self._log_level = log_level
        self._render_scheduler = RenderScheduler(
            estimate_size=MESSAGE_ESTIMATE_ROWS,
            overscan=MESSAGE_OVERSCAN,
            padding_start=CHAT_PADDING_ROWS,
            padding_end=CHAT_PADDING_ROWS,
            threshold=AUTO_SCROLL_THRESHOLD_ROWS,
        )
        self._sessions: SessionManager | None = None
        self._chat_context: ChatContext | None = None
        self._controller: ChatController | None = None
        self._turn_chat_id: str | None = None
        self._shown_chat_id: str | None = None
        self._unsubscribers: list = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="main"):
            yield ChatSidebar(id="sidebar")
            with Vertical(id="chat-panel"):
                yield VirtualChatView(self._render_scheduler, self._thinking_label, id="chat-view")
                yield DebugPanel(id="debug-panel")
                with Vertical(id="bottom-bar"):
                    yield MetricsPanel(id="metrics")
                    yield Select(
                        [(name, name) for name in self._model_choices()],
                        value=self._model_name,
                        allow_blank=False,
                        id="model-select",
                    )
                    yield ChatInputBar(id="chat-input-bar")

        yield Footer()

    def _model_choices(self) -> list[str]:
        choices = list(SUPPORTED_MODELS)
        if self._model_name not in choices:
            choices.insert(0, self._model_name)
        return choices

    def on_mount(self) -> None:
        """Called when app is mounted."""
        self.register_theme(DEEPREASON_NIGHT)
        self.theme = "deepreason-night"

        log_panel = self.query_one("#debug-panel", DebugPanel)
        if self._log_level is not None:
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.show()
            log_panel.info("TUI", f"Log panel enabled with level: {self._log_level.upper()}")

        self._sessions = SessionManager(self._storage, debug_callback=self._debug)
        self._chat_context = ChatContext(self._sessions, scheduler=self._render_scheduler)
        self._controller = ChatController(
            self._chat_context,
            self._api_client,
            model=self._model_name,
            system_prompt=self._system_prompt,
            debug_callback=self._debug,
        )

        self._unsubscribers = [
            self._sessions.store.subscribe(self._on_messages_changed),
            self._sessions.subscribe(self._on_sessions_changed),
            self._chat_context.subscribe(self._on_context_changed),
        ]
        self._sessions.load()

        self.sub_title = f"{self._model_name} | {self._storage.backend_type}"
        self.set_interval(ELAPSED_REFRESH_SECONDS, self._tick)
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def on_unmount(self) -> None:
        """Abandon any turn in flight and detach listeners."""
        if self._controller is not None:
            self._controller.cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self._chat_context is not None:
            self._chat_context.close()

    def _debug(self, level: str, component: str, message: str) -> None:
        """Route debug messages to the log panel."""
        self.query_one("#debug-panel", DebugPanel).route(level, component, message)

    # Observers

    def _on_messages_changed(self, messages: list[Message]) -> None:
        chat_view = self.query_one("#chat-view", VirtualChatView)
        active_id = self._sessions.active_chat_id if self._sessions else None
        switched = active_id != self._shown_chat_id
        self._shown_chat_id = active_id
        chat_view.set_messages(messages, reset=switched)

    def _on_sessions_changed(self, sessions: SessionManager) -> None:
        sidebar = self.query_one("#sidebar", ChatSidebar)
        sidebar.refresh_chats(sessions.chats, sessions.active_chat_id)
        active = sessions.active_chat
        self.title = f"DeepReason - {active.title}" if active else "DeepReason"

    def _on_context_changed(self, context: ChatContext) -> None:
        input_bar = self.query_one("#chat-input-bar", ChatInputBar)
        if context.loading and not input_bar.busy:
            # A turn just started in the active chat
            self._turn_chat_id = self._sessions.active_chat_id
        input_bar.busy = context.loading
        self.query_one("#chat-view", VirtualChatView).set_class(context.loading, "-loading")
        self._refresh_metrics()
        self.query_one("#chat-view", VirtualChatView).refresh_window()

    def _tick(self) -> None:
        if self._chat_context is not None and self._chat_context.loading:
            self._refresh_metrics()
            self.query_one("#chat-view", VirtualChatView).refresh_window()

    def _refresh_metrics(self) -> None:
        context = self._chat_context
        if context.loading:
            status = "Answering" if context.thinking_complete else "Reasoning"
        elif context.last_error:
            status = "Error"
        else:
            status = "Ready"
        self.query_one("#metrics", MetricsPanel).update_metrics(
            model=self._controller.model,
            status=status,
            elapsed=context.thinking_elapsed,
            usage=context.usage,
        )

    def _thinking_label(self, index: int, message: Message) -> str:
        """Reasoning header; only the latest turn of the turn's chat has a timer."""
        context = self._chat_context
        is_current_turn = (
            context is not None
            and self._turn_chat_id is not None
            and self._turn_chat_id == self._sessions.active_chat_id
            and index == len(self._sessions.store) - 1
        )
        if not is_current_turn:
            return "Thought process"
        complete = context.thinking_complete or not context.loading
        return thinking_label(context.thinking_elapsed, complete)

    # Input

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Handle user input submission."""
        self._run_turn(event.value)

    def on_chat_input_bar_refused(self, event: ChatInputBar.Refused) -> None:
        self.notify("Wait for the current response to finish", severity="warning", timeout=2)

    @work(group="turn")
    async def _run_turn(self, text: str) -> None:
        """Stream one assistant turn as a background async worker.

        Not exclusive: a submission arriving while a turn is loading is
        rejected by the controller and the running turn keeps streaming.
        """
        controller = self._controller
        self._debug("info", "TUI", f"Submitting: '{text[:50]}'")

        try:
            outcome = await controller.submit(text)
        except asyncio.CancelledError:
            self.notify("Cancelled", severity="warning", timeout=2)
            return

        if outcome is TurnOutcome.FAILED:
            error = self._chat_context.last_error or "unknown error"
            self.notify(f"Error: {error[:80]}", severity="error", timeout=5)
        elif outcome is TurnOutcome.CANCELLED:
            self.notify("Cancelled", severity="warning", timeout=2)
        elif outcome is TurnOutcome.REJECTED:
            if self._chat_context.loading:
                self.notify("Wait for the current response to finish", severity="warning", timeout=2)
            elif not self._api_client.has_credentials:
                self.notify("API tokens are not configured", severity="error", timeout=5)
            else:
                self.notify("Message not sent", severity="warning", timeout=2)

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "model-select" and self._controller is not None:
            if isinstance(event.value, str) and event.value != self._controller.model:
                self._controller.model = event.value
                self.sub_title = f"{event.value} | {self._storage.backend_type}"
                self._refresh_metrics()
                self._debug("info", "TUI", f"Model set to {event.value}")

    # Chat management

    def on_chat_sidebar_new_chat_requested(self, event: ChatSidebar.NewChatRequested) -> None:
        self.action_new_chat()

    def on_chat_sidebar_chat_selected(self, event: ChatSidebar.ChatSelected) -> None:
        if event.chat_id != self._sessions.active_chat_id:
            self._controller.select_chat(event.chat_id)
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def action_new_chat(self) -> None:
        """Start a fresh chat."""
        self._controller.new_chat()
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def action_delete_chat(self) -> None:
        """Delete the highlighted chat (or the active one) after confirmation."""
        sidebar = self.query_one("#sidebar", ChatSidebar)
        chat_id = sidebar.highlighted_chat_id or self._sessions.active_chat_id
        chat = self._sessions.get_chat(chat_id) if chat_id else None
        if chat is None:
            self.notify("No chat to delete", severity="warning", timeout=2)
            return

        def _confirmed(confirmed: bool | None) -> None:
            if confirmed:
                self._controller.delete_chat(chat.id)
                self.notify(f"Deleted '{chat.title}'", timeout=2)

        self.push_screen(
            ConfirmationScreen("Delete chat", f"Delete '{chat.title}'? This cannot be undone."),
            _confirmed,
        )

    def action_clear_chats(self) -> None:
        """Delete every chat after confirmation."""
        if not self._sessions.chats:
            self.notify("No chats to clear", timeout=2)
            return

        def _confirmed(confirmed: bool | None) -> None:
            if confirmed:
                self._controller.clear_all()
                self.notify("All chats cleared", timeout=2)

        self.push_screen(
            ConfirmationScreen(
                "Clear all chats",
                f"Delete all {len(self._sessions.chats)} chat(s)? This cannot be undone.",
                confirm_label="Clear",
            ),
            _confirmed,
        )

    def action_cancel_turn(self) -> None:
        """Cancel the response being streamed."""
        if self._controller is not None and self._controller.cancel():
            self._debug("info", "TUI", "Cancelled by user")

    def action_toggle_debug(self) -> None:
        """Toggle the log panel visibility."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)

    def action_copy_metrics(self) -> None:
        """Copy metrics to clipboard."""
        copy_text(self, self.query_one("#metrics", MetricsPanel).get_plain_text(), "Metrics")

    def action_copy_last_response(self) -> None:
        """Copy last assistant response to clipboard."""
        for message in reversed(self._sessions.store.messages):
            if message.role == "assistant" and message.content:
                copy_text(self, message.content, "Response")
                return
        self.notify("No response to copy", severity="warning")


async def run_textual_tui(
    client: ReasoningAPIClient,
    storage: ChatStorage,
    model: str = DEFAULT_MODEL,
    system_prompt: str | None = None,
    log_level: str | None = None,
) -> None:
    """Run the Textual TUI.

    Args:
        client: API client for the reasoning endpoint
        storage: Chat storage backend
        model: Initial answer model
        system_prompt: System prompt sent with every request
        log_level: Log level for panel (debug/info/warning/error), None to hide
    """
    app = DeepReasonApp(
        client=client,
        storage=storage,
        model=model,
        system_prompt=system_prompt,
        log_level=log_level,
    )
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
