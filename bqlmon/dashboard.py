"""Live terminal dashboard for Linux Byte Queue Limits.

Shows one column per transmit queue of a network interface: the bar is the
in-flight byte count (in KiB), the block marker is the current BQL limit.
Bars change colour by thirds of the limit and turn magenta above it. The
view scrolls horizontally when the queues do not fit the terminal.

Usage:
    bqlmon
    bqlmon -i enp3s0 -f 50
    bqlmon --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import enum
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bqlmon.config import DEFAULT_CONFIG, dump_default_config, load_config
from bqlmon.errors import BqlmonError, TerminalError
from bqlmon.netif import count_tx_queues, read_driver_info
from bqlmon.queues import QueueRegistry, sample
from bqlmon.render import VERSION, HeaderInfo, color_number, draw, init_colors, plan_frame
from bqlmon.viewport import Viewport, recompute, resize, scroll_left, scroll_right

# ── Key handling ───────────────────────────────────────────────────────────


class Event(enum.Enum):
    NONE = "none"
    EXIT = "exit"
    SCROLL_LEFT = "left"
    SCROLL_RIGHT = "right"
    RESIZE = "resize"


@dataclass(frozen=True)
class KeyMap:
    exit: int
    left: int
    right: int


def key_code(name: str) -> int:
    """Resolve a key name from the config: ``"q"``, ``"F1"``, ``"LEFT"``."""
    if len(name) == 1:
        return ord(name)
    code = getattr(curses, f"KEY_{name.upper()}", None)
    if not isinstance(code, int):
        raise ValueError(f"unknown key name: {name}")
    return code


def classify_key(key: int, keymap: KeyMap) -> Event:
    if key == keymap.exit:
        return Event.EXIT
    if key == keymap.left:
        return Event.SCROLL_LEFT
    if key == keymap.right:
        return Event.SCROLL_RIGHT
    if key == curses.KEY_RESIZE:
        return Event.RESIZE
    return Event.NONE


# ── Application state ──────────────────────────────────────────────────────


@dataclass
class AppState:
    """Everything the render loop owns between ticks."""

    interface: str
    poll_freq: int  # milliseconds
    viewport: Viewport
    driver: str = ""
    exit_hint: str = "F1 to exit"
    running: bool = True


def apply_event(state: AppState, event: Event, size: tuple[int, int]) -> None:
    """Update *state* for one input event. *size* is the current (rows, cols)."""
    if event is Event.EXIT:
        state.running = False
    elif event is Event.SCROLL_LEFT:
        state.viewport = scroll_left(state.viewport)
    elif event is Event.SCROLL_RIGHT:
        state.viewport = scroll_right(state.viewport)
    elif event is Event.RESIZE:
        rows, cols = size
        state.viewport = resize(state.viewport, rows, cols)


# ── Main loop ──────────────────────────────────────────────────────────────


def _tick(win: Any, state: AppState, registry: QueueRegistry, keymap: KeyMap) -> None:
    win.erase()

    samples = {q: sample(registry[q]) for q in state.viewport.visible_range}
    header = HeaderInfo(
        interface=state.interface,
        poll_freq=state.poll_freq,
        driver=state.driver,
        exit_hint=state.exit_hint,
        stale_reads=registry.stale_reads(),
    )
    draw(win, plan_frame(header, state.viewport, samples))

    event = classify_key(win.getch(), keymap)
    if event is Event.RESIZE:
        win.clear()
    apply_event(state, event, win.getmaxyx())
    if event is Event.NONE:
        time.sleep(state.poll_freq / 1000)

    win.refresh()


def _dashboard_loop(
    stdscr: curses.window,
    state: AppState,
    registry: QueueRegistry,
    keymap: KeyMap,
    colors: dict[str, str],
) -> None:
    init_colors(colors)
    try:
        curses.curs_set(0)
    except curses.error:
        pass  # not every terminal can hide the cursor
    stdscr.keypad(True)
    stdscr.nodelay(True)

    rows, cols = stdscr.getmaxyx()
    state.viewport = resize(state.viewport, rows, cols)

    while state.running:
        _tick(stdscr, state, registry, keymap)


def run(config: dict[str, Any], keymap: KeyMap) -> int:
    """Set up the queues and run the dashboard until the exit key.

    Fatal errors are reported on stderr once the terminal is restored. The
    exit status is 0 either way.
    """
    interface: str = config["interface"]
    root: str = config["sysfs_root"]
    try:
        num_queues = count_tx_queues(interface, root)
        driver = read_driver_info(interface, root)
        with QueueRegistry.create(interface, num_queues, root) as registry:
            state = AppState(
                interface=interface,
                poll_freq=int(config["poll_freq"]),
                viewport=recompute(num_queues, 0, 0),
                driver=driver.summary(),
                exit_hint=f"{config['keys']['exit']} to exit",
            )
            try:
                curses.wrapper(_dashboard_loop, state, registry, keymap, config["colors"])
            except curses.error as e:
                raise TerminalError(f"cannot initialize terminal: {e}") from e
    except BqlmonError as e:
        print(f"bqlmon: {e}", file=sys.stderr)
    except KeyboardInterrupt:
        pass
    return 0


# ── CLI entry point ────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bqlmon",
        description="Live Byte Queue Limits monitor for a network interface.",
    )
    parser.add_argument(
        "-i",
        "--interface",
        default=None,
        help=f"Network interface (default: {DEFAULT_CONFIG['interface']})",
    )
    parser.add_argument(
        "-f",
        "--frequency",
        type=int,
        default=None,
        metavar="MSECS",
        help=f"Poll frequency in milliseconds (default: {DEFAULT_CONFIG['poll_freq']})",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def resolve_settings(args: argparse.Namespace) -> tuple[dict[str, Any], KeyMap]:
    """Merge CLI flags over the config file and validate key and colour names.

    Raises:
        SystemExit: On an unknown key or colour name, or a value of the
            wrong type.
    """
    config = load_config(args.config)
    if args.interface:
        config["interface"] = args.interface
    if args.frequency is not None:
        config["poll_freq"] = args.frequency

    try:
        keys = {**DEFAULT_CONFIG["keys"], **config.get("keys", {})}
        colors = {**DEFAULT_CONFIG["colors"], **config.get("colors", {})}
        config["keys"] = keys
        config["colors"] = colors
        for field in ("interface", "sysfs_root"):
            if not isinstance(config[field], str):
                raise TypeError(f"{field} must be a string")
        config["poll_freq"] = int(config["poll_freq"])
        # 0 or less selects the default frequency
        if config["poll_freq"] <= 0:
            config["poll_freq"] = DEFAULT_CONFIG["poll_freq"]
        keymap = KeyMap(
            exit=key_code(keys["exit"]),
            left=key_code(keys["left"]),
            right=key_code(keys["right"]),
        )
        for name in colors.values():
            color_number(name)
    except (ValueError, TypeError, AttributeError) as e:
        print(f"bqlmon: invalid config: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    return config, keymap


def main() -> None:
    args = build_parser().parse_args()
    if args.dump_config:
        print(dump_default_config(), end="")
        return
    config, keymap = resolve_settings(args)
    sys.exit(run(config, keymap))


if __name__ == "__main__":
    main()
