"""Shared fixtures: a fake /sys/class/net tree on disk."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator
from unittest.mock import MagicMock, patch

import pytest

from bqlmon.queues import ATTR_NAMES

DEFAULT_VALUES: dict[str, str] = {
    "hold_time": "1000",
    "inflight": "4096",
    "limit": "30720",
    "limit_max": "1879048192",
    "limit_min": "0",
}


@pytest.fixture
def sysfs(tmp_path: Path) -> Path:
    root = tmp_path / "net"
    root.mkdir()
    return root


@pytest.fixture
def make_iface(sysfs: Path) -> Callable[..., Path]:
    """Create ``<sysfs>/<name>/queues/{tx,rx}-N`` with BQL attribute files."""

    def _make(name: str, num_queues: int, rx_queues: int = 1) -> Path:
        queues = sysfs / name / "queues"
        queues.mkdir(parents=True)
        for i in range(rx_queues):
            (queues / f"rx-{i}").mkdir()
        for i in range(num_queues):
            bql = queues / f"tx-{i}" / "byte_queue_limits"
            bql.mkdir(parents=True)
            for attr in ATTR_NAMES:
                (bql / attr).write_text(DEFAULT_VALUES[attr] + "\n")
        return queues

    return _make


@pytest.fixture
def write_attr(sysfs: Path) -> Callable[[str, int, str, str], None]:
    def _write(iface: str, queue: int, attr: str, content: str) -> None:
        path = sysfs / iface / "queues" / f"tx-{queue}" / "byte_queue_limits" / attr
        path.write_text(content)

    return _write


@pytest.fixture
def linux_uname() -> Iterator[MagicMock]:
    """Pretend to run on a BQL-capable kernel."""
    uts = MagicMock()
    uts.sysname = "Linux"
    uts.release = "6.8.0-45-generic"
    with patch("bqlmon.netif.os.uname", return_value=uts):
        yield uts
