"""Horizontal viewport over the queue columns.

Each queue takes ``QUEUE_SPACING`` terminal columns. When all queues do not
fit, one column group is kept free for the scroll hint and the window of
visible queues follows ``scroll_offset``. All functions here are pure and
return a new ``Viewport``.
"""

from __future__ import annotations

from dataclasses import dataclass

QUEUE_SPACING = 3  # columns per queue
QUEUE_SEP_Y = 3  # separator distance from the bottom row


@dataclass(frozen=True)
class Viewport:
    num_queues: int
    rows: int
    cols: int
    scroll_offset: int = 0
    visible_start: int = 0
    visible_end: int = 0
    h_line_val: int = 0  # separator length

    @property
    def visible_count(self) -> int:
        return self.visible_end - self.visible_start

    @property
    def visible_range(self) -> range:
        return range(self.visible_start, self.visible_end)

    @property
    def more_left(self) -> bool:
        return self.visible_start > 0

    @property
    def more_right(self) -> bool:
        return self.visible_end < self.num_queues


def recompute(num_queues: int, rows: int, cols: int, scroll_offset: int = 0) -> Viewport:
    """Derive the visible queue window from the queue count and terminal size."""
    num_queues = max(0, num_queues)
    scroll_offset = max(0, scroll_offset)

    h_line_val = num_queues * QUEUE_SPACING - 1
    visible = num_queues
    if h_line_val >= cols:
        h_line_val = cols - 2 * QUEUE_SEP_Y
        visible = cols // QUEUE_SPACING - 1

    start = min(scroll_offset // QUEUE_SPACING, num_queues)
    end = min(num_queues, start + max(0, visible))
    return Viewport(
        num_queues=num_queues,
        rows=rows,
        cols=cols,
        scroll_offset=scroll_offset,
        visible_start=start,
        visible_end=end,
        h_line_val=max(0, h_line_val),
    )


def scroll_left(vp: Viewport) -> Viewport:
    if vp.scroll_offset < QUEUE_SPACING:
        return vp
    return recompute(vp.num_queues, vp.rows, vp.cols, vp.scroll_offset - QUEUE_SPACING)


def scroll_right(vp: Viewport) -> Viewport:
    if vp.visible_end >= vp.num_queues:
        return vp
    return recompute(vp.num_queues, vp.rows, vp.cols, vp.scroll_offset + QUEUE_SPACING)


def resize(vp: Viewport, rows: int, cols: int) -> Viewport:
    """Apply new terminal dimensions, keeping the scroll offset."""
    return recompute(vp.num_queues, rows, cols, vp.scroll_offset)
