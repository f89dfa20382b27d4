"""Frame planning and curses drawing for the BQL histogram.

``plan_frame`` turns the viewport and the sampled values into a flat list of
``DrawCommand`` records without touching curses. ``draw`` executes them on a
window. Glyphs are named after the curses ``ACS_*`` constants because those
only exist once the terminal has been initialised.
"""

from __future__ import annotations

import curses
import enum
from dataclasses import dataclass
from typing import Any, Mapping

from bqlmon.errors import TerminalError
from bqlmon.viewport import QUEUE_SEP_Y, QUEUE_SPACING, Viewport

VERSION = "0.1"

# ── Layout ─────────────────────────────────────────────────────────────────

QUEUE_VAL_Y = 4  # bar base, from the bottom
QUEUE_VAL_X = 3
QUEUE_SEP_X = 2
QUEUE_NUM_Y = 2
QUEUE_ARROW_Y = 4  # arrow height above the limit marker

PARAMS_X = 3
PARAMS_Y = 2

# ── Glyphs ─────────────────────────────────────────────────────────────────

G_BAR = "CKBOARD"
G_LIMIT = "BLOCK"
G_HLINE = "HLINE"
G_LARROW = "LARROW"
G_RARROW = "RARROW"

# Curses colour-pair IDs
C_HIGH = 1
C_LOW = 2
C_MID = 3
C_TEXT = 4
C_LABEL = 5
C_OVERFLOW = 6


# ── Colour tiers ───────────────────────────────────────────────────────────


class Tier(enum.Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"
    OVERFLOW = "overflow"


TIER_PAIRS: dict[Tier, int] = {
    Tier.LOW: C_LOW,
    Tier.MID: C_MID,
    Tier.HIGH: C_HIGH,
    Tier.OVERFLOW: C_OVERFLOW,
}


def color_tier(row: int, limit: int) -> Tier:
    """Tier of the bar segment at height *row* for a queue capped at *limit*."""
    if row < limit // 3:
        return Tier.LOW
    if row <= (limit * 2) // 3:
        return Tier.MID
    if row <= limit:
        return Tier.HIGH
    return Tier.OVERFLOW


# ── Frame planning ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DrawCommand:
    """Put *text* (or the ACS *glyph*) at (y, x)."""

    y: int
    x: int
    text: str = ""
    glyph: str | None = None
    pair: int = 0
    bold: bool = False


@dataclass(frozen=True)
class HeaderInfo:
    interface: str
    poll_freq: int
    driver: str = ""
    exit_hint: str = "F1 to exit"
    stale_reads: int = 0


def _labelled(y: int, x: int, label: str, value: str) -> list[DrawCommand]:
    return [DrawCommand(y, x, label), DrawCommand(y, x + len(label), value, bold=True)]


def plan_header(header: HeaderInfo, vp: Viewport) -> list[DrawCommand]:
    cmds: list[DrawCommand] = []
    y = PARAMS_Y
    cmds += _labelled(y, PARAMS_X, "Interface: ", header.interface)
    y += 1
    cmds += _labelled(y, PARAMS_X, "Frequency: ", f"{header.poll_freq} (msecs)")
    if header.driver:
        y += 1
        cmds += _labelled(y, PARAMS_X, "Driver: ", header.driver)
    if header.stale_reads:
        y += 1
        cmds += _labelled(y, PARAMS_X, "Stale reads: ", str(header.stale_reads))

    # Separator between the queue numbers and the bars
    sep_y = vp.rows - QUEUE_SEP_Y
    for i in range(vp.h_line_val):
        cmds.append(DrawCommand(sep_y, i + QUEUE_SEP_X, glyph=G_HLINE))

    x = vp.cols - len("Version: ") - len(VERSION) - QUEUE_SPACING
    y = PARAMS_Y
    cmds.append(DrawCommand(y, x, "BQLmon", bold=True))
    cmds += _labelled(y + 1, x, "Version: ", VERSION)
    cmds.append(DrawCommand(y + 2, x, header.exit_hint, bold=True))
    return cmds


def _plan_arrows(vp: Viewport, q: int, limit: int) -> list[DrawCommand]:
    x = q * QUEUE_SPACING + QUEUE_VAL_X - vp.scroll_offset
    y = max(1, vp.rows - QUEUE_VAL_Y - limit - QUEUE_ARROW_Y)
    cmds: list[DrawCommand] = []
    if q == vp.visible_start and vp.more_left:
        cmds.append(DrawCommand(y, x, glyph=G_LARROW))
        cmds.append(DrawCommand(y, x + 1, glyph=G_HLINE))
        cmds.append(DrawCommand(y, x + 2, glyph=G_HLINE))
    if q == vp.visible_end - 1 and vp.more_right:
        cmds.append(DrawCommand(y, x - 2, glyph=G_HLINE))
        cmds.append(DrawCommand(y, x - 1, glyph=G_HLINE))
        cmds.append(DrawCommand(y, x, glyph=G_RARROW))
    return cmds


def plan_queue(vp: Viewport, q: int, inflight: int, limit: int) -> list[DrawCommand]:
    """Label, stacked bar, limit marker and scroll hints for queue *q*."""
    x = q * QUEUE_SPACING + QUEUE_VAL_X - vp.scroll_offset
    base = vp.rows - QUEUE_VAL_Y

    cmds = [
        DrawCommand(
            vp.rows - QUEUE_NUM_Y,
            q * QUEUE_SPACING + QUEUE_SEP_X - vp.scroll_offset,
            f"{q:02d}",
            pair=C_LABEL,
            bold=True,
        )
    ]
    for i in range(inflight):
        if base - i < 0:
            break
        pair = TIER_PAIRS[color_tier(i, limit)]
        cmds.append(DrawCommand(base - i, x, glyph=G_BAR, pair=pair, bold=True))

    if base - limit >= 0:
        cmds.append(DrawCommand(base - limit, x, glyph=G_LIMIT))

    cmds += _plan_arrows(vp, q, limit)
    return cmds


def plan_frame(
    header: HeaderInfo, vp: Viewport, samples: Mapping[int, tuple[int, int]]
) -> list[DrawCommand]:
    """Everything to draw for one tick. *samples* maps queue → (inflight, limit)."""
    cmds = plan_header(header, vp)
    for q in vp.visible_range:
        inflight, limit = samples[q]
        cmds += plan_queue(vp, q, inflight, limit)
    return cmds


# ── Curses execution ───────────────────────────────────────────────────────


def color_number(name: str) -> int:
    """Map a colour name from the config (``"green"``) to its curses number."""
    value = getattr(curses, f"COLOR_{name.upper()}", None)
    if not isinstance(value, int):
        raise ValueError(f"unknown colour: {name}")
    return value


def init_colors(colors: Mapping[str, str]) -> None:
    """Set up colour pairs; *colors* maps tier names to colour names."""
    if not curses.has_colors():
        raise TerminalError("terminal does not support colors")
    curses.start_color()
    black = curses.COLOR_BLACK
    for tier, pair in TIER_PAIRS.items():
        curses.init_pair(pair, color_number(colors[tier.value]), black)
    curses.init_pair(C_TEXT, curses.COLOR_WHITE, black)
    curses.init_pair(C_LABEL, curses.COLOR_WHITE, curses.COLOR_BLUE)


def _attr(cmd: DrawCommand) -> int:
    attr = curses.color_pair(cmd.pair) if cmd.pair else 0
    if cmd.bold:
        attr |= curses.A_BOLD
    return attr


def _safe(win: Any, method: str, *args: Any) -> None:
    """addstr/addch wrapper that swallows out-of-bounds errors."""
    try:
        getattr(win, method)(*args)
    except curses.error:
        pass


def draw(win: Any, commands: list[DrawCommand]) -> None:
    """Draw the border and execute *commands* on *win*."""
    _safe(win, "box")
    for cmd in commands:
        if cmd.glyph is not None:
            ch = getattr(curses, f"ACS_{cmd.glyph}")
            _safe(win, "addch", cmd.y, cmd.x, ch | _attr(cmd))
        else:
            _safe(win, "addstr", cmd.y, cmd.x, cmd.text, _attr(cmd))
