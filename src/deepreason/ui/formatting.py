"""Text formatting utilities for the TUI.

Hides how durations, usage figures and message bodies are turned into
display text.
"""

from typing import Any

from rich.markdown import Markdown
from rich.text import Text


def format_elapsed_time(seconds: int) -> str:
    """Human-readable duration: '1 second', '12 seconds', '2 minutes 5 seconds'."""
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds} second{'' if seconds == 1 else 's'}"
    minutes, rest = divmod(seconds, 60)
    text = f"{minutes} minute{'' if minutes == 1 else 's'}"
    if rest:
        text += f" {rest} second{'' if rest == 1 else 's'}"
    return text


def thinking_label(elapsed: int, complete: bool) -> str:
    """Header of the collapsible reasoning block of the current turn."""
    if complete:
        return f"Thought for {format_elapsed_time(elapsed)}"
    return f"Thinking... {format_elapsed_time(elapsed)}"


def format_usage(usage: dict[str, Any] | None) -> str:
    """Compact token and cost summary from a usage event payload.

    Accepts the combined shape (``deepseek_usage`` / ``anthropic_usage`` /
    ``total_cost``) as well as a flat ``input_tokens`` / ``output_tokens``
    mapping. Unknown shapes render as an empty string.
    """
    if not usage:
        return ""

    parts = []
    for key, label in (("deepseek_usage", "Reasoning"), ("anthropic_usage", "Answer")):
        section = usage.get(key)
        if isinstance(section, dict):
            parts.append(
                f"{label} {section.get('input_tokens', 0):,}/{section.get('output_tokens', 0):,}"
            )
    if not parts and ("input_tokens" in usage or "output_tokens" in usage):
        parts.append(f"{usage.get('input_tokens', 0):,}/{usage.get('output_tokens', 0):,}")

    cost = usage.get("total_cost")
    if cost not in (None, ""):
        parts.append(f"{cost}")
    return "  ".join(parts)


def render_markdown(text: str) -> Markdown:
    """Render an assistant answer as markdown."""
    return Markdown(text or "")


def render_plain(text: str, style: str = "") -> Text:
    """Render text literally, without markup parsing, folding long lines."""
    result = Text(text, overflow="fold")
    if style:
        result.stylize(style)
    return result
