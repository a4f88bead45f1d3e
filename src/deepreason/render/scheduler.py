"""Render scheduler for the virtualized message list.

Hides the windowing arithmetic: where each row starts, which rows are
worth materializing for the current viewport, and when to follow the
bottom of the list. Heights are in terminal rows, but nothing here knows
about the terminal; the view supplies measurements and a frame hook.
"""

from bisect import bisect_right
from collections.abc import Callable
from dataclasses import dataclass

DEFAULT_ESTIMATE_SIZE = 6
DEFAULT_OVERSCAN = 2
DEFAULT_PADDING = 1
DEFAULT_AUTO_SCROLL_THRESHOLD = 2


@dataclass(frozen=True)
class VirtualItem:
    """A row placed in virtual space."""

    index: int
    start: int
    size: int

    @property
    def end(self) -> int:
        return self.start + self.size


class RenderScheduler:
    """Maps message indices to offsets and coalesces auto-scroll requests.

    Unmeasured rows use ``estimate_size``; ``measure()`` swaps in the real
    height and every later offset moves with it. Offsets are recomputed
    lazily from the first changed row.

    Args:
        estimate_size: Height assumed for rows never measured
        overscan: Extra rows materialized above and below the viewport
        padding_start: Blank space before the first row
        padding_end: Blank space after the last row
        threshold: Distance from the bottom that still counts as "at bottom"
        schedule_frame: Hook that runs a callback after the next paint
        scroll_to_bottom: Action performed by a coalesced scroll request
    """

    def __init__(
        self,
        estimate_size: int = DEFAULT_ESTIMATE_SIZE,
        overscan: int = DEFAULT_OVERSCAN,
        padding_start: int = DEFAULT_PADDING,
        padding_end: int = DEFAULT_PADDING,
        threshold: int = DEFAULT_AUTO_SCROLL_THRESHOLD,
        schedule_frame: Callable[[Callable[[], None]], None] | None = None,
        scroll_to_bottom: Callable[[], None] | None = None,
    ) -> None:
        if estimate_size < 1:
            raise ValueError("estimate_size must be at least 1")
        self.estimate_size = estimate_size
        self.overscan = max(0, overscan)
        self.padding_start = padding_start
        self.padding_end = padding_end
        self.threshold = threshold
        self.auto_scroll_enabled = True
        self._schedule_frame = schedule_frame
        self._scroll_to_bottom = scroll_to_bottom
        self._sizes: list[int | None] = []
        self._offsets: list[int] = []
        self._valid_until = 0
        self._scroll_pending = False
        self._scroll_generation = 0

    def bind_view(
        self,
        schedule_frame: Callable[[Callable[[], None]], None],
        scroll_to_bottom: Callable[[], None],
    ) -> None:
        """Attach the view hooks used for coalesced scrolling."""
        self._schedule_frame = schedule_frame
        self._scroll_to_bottom = scroll_to_bottom

    # Size model

    @property
    def count(self) -> int:
        return len(self._sizes)

    def set_count(self, count: int) -> None:
        """Resize the row model. Existing measurements are kept."""
        current = len(self._sizes)
        if count > current:
            self._sizes.extend([None] * (count - current))
        elif count < current:
            del self._sizes[count:]
            self._invalidate(count)

    def reset(self, count: int = 0) -> None:
        """Forget every measurement (e.g. after switching chats)."""
        self._sizes = [None] * count
        self._offsets = []
        self._valid_until = 0
        self.auto_scroll_enabled = True

    def measure(self, index: int, size: int) -> bool:
        """Record the rendered height of a row.

        Returns:
            True if the row's height changed
        """
        if not 0 <= index < len(self._sizes):
            return False
        size = max(0, size)
        if self._sizes[index] == size:
            return False
        self._sizes[index] = size
        self._invalidate(index + 1)
        return True

    def is_measured(self, index: int) -> bool:
        return 0 <= index < len(self._sizes) and self._sizes[index] is not None

    def size_of(self, index: int) -> int:
        size = self._sizes[index]
        return self.estimate_size if size is None else size

    def offset_of(self, index: int) -> int:
        """Virtual start position of row ``index``."""
        self._ensure_offsets(index + 1)
        return self._offsets[index]

    @property
    def total_size(self) -> int:
        """Height of the whole list, padding included."""
        if not self._sizes:
            return self.padding_start + self.padding_end
        last = len(self._sizes) - 1
        return self.offset_of(last) + self.size_of(last) + self.padding_end

    def index_at(self, position: int) -> int:
        """Index of the row covering ``position`` (clamped to the list)."""
        if not self._sizes:
            return 0
        self._ensure_offsets(len(self._sizes))
        index = bisect_right(self._offsets, position) - 1
        return min(max(index, 0), len(self._sizes) - 1)

    def _invalidate(self, index: int) -> None:
        if index < self._valid_until:
            self._valid_until = index
            del self._offsets[index:]

    def _ensure_offsets(self, upto: int) -> None:
        upto = min(upto, len(self._sizes))
        if upto <= self._valid_until:
            return
        if self._valid_until == 0:
            self._offsets = []
            position = self.padding_start
        else:
            last = self._valid_until - 1
            position = self._offsets[last] + self.size_of(last)
        for index in range(self._valid_until, upto):
            self._offsets.append(position)
            position += self.size_of(index)
        self._valid_until = upto

    # Windowing

    def visible_range(self, scroll_offset: int, viewport_height: int) -> range:
        """Rows intersecting the viewport, widened by the overscan margin."""
        if not self._sizes:
            return range(0)
        first = self.index_at(scroll_offset)
        last = self.index_at(scroll_offset + max(viewport_height, 1) - 1)
        start = max(0, first - self.overscan)
        end = min(len(self._sizes), last + 1 + self.overscan)
        return range(start, end)

    def virtual_items(self, scroll_offset: int, viewport_height: int) -> list[VirtualItem]:
        """Placed rows for the current window, in index order."""
        return [
            VirtualItem(index=i, start=self.offset_of(i), size=self.size_of(i))
            for i in self.visible_range(scroll_offset, viewport_height)
        ]

    # Auto-scroll

    def on_scroll(self, scroll_offset: float, viewport_height: int, content_height: int | None = None) -> bool:
        """Recompute whether the viewport is pinned to the bottom.

        Args:
            scroll_offset: Current top of the viewport
            viewport_height: Visible height
            content_height: Actual content height; defaults to ``total_size``

        Returns:
            The new auto-scroll state
        """
        if content_height is None:
            content_height = self.total_size
        distance = content_height - (scroll_offset + viewport_height)
        self.auto_scroll_enabled = distance < self.threshold
        return self.auto_scroll_enabled

    def notify_mutation(self, count: int) -> bool:
        """React to a store change.

        Returns:
            True if a scroll-to-bottom was requested
        """
        self.set_count(count)
        if self.auto_scroll_enabled and count > 0:
            self.request_scroll_to_bottom()
            return True
        return False

    @property
    def scroll_pending(self) -> bool:
        return self._scroll_pending

    def request_scroll_to_bottom(self) -> None:
        """Schedule one scroll-to-bottom for the next frame.

        Requests made before that frame collapse into the one already
        scheduled. Without a frame hook the scroll runs immediately.
        """
        if self._scroll_pending:
            return
        self._scroll_pending = True
        generation = self._scroll_generation

        def _flush() -> None:
            if not self._scroll_pending or generation != self._scroll_generation:
                return
            self._scroll_pending = False
            if self._scroll_to_bottom is not None:
                self._scroll_to_bottom()

        if self._schedule_frame is None:
            _flush()
        else:
            self._schedule_frame(_flush)

    def cancel_pending(self) -> None:
        """Drop a scheduled scroll that has not run yet."""
        self._scroll_pending = False
        self._scroll_generation += 1
