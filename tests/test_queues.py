"""Tests for bqlmon.queues."""

from __future__ import annotations

import errno
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock, patch

import pytest

from bqlmon.errors import AttributeParseError, InitError, OpenError, ReadError
from bqlmon.queues import (
    ATTR_NAMES,
    QueueRegistry,
    SysfsAttribute,
    TxQueue,
    queue_path,
    sample,
    scale,
)

# ── scale ──────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (0, 0),
        (1000, 0),
        (1023, 0),
        (1024, 1),
        (2048, 2),
        (30720, 30),
        (1879048192, 1835008),
    ],
)
def test_scale(raw: int, expected: int) -> None:
    assert scale(raw) == expected


def test_queue_path() -> None:
    assert (
        queue_path("/sys/class/net", "eth0", 3)
        == "/sys/class/net/eth0/queues/tx-3/byte_queue_limits"
    )


# ── SysfsAttribute ─────────────────────────────────────────────────────────


class TestSysfsAttribute:
    def test_open_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OpenError):
            SysfsAttribute.open(str(tmp_path), "inflight")

    def test_reread_scales(self, tmp_path: Path) -> None:
        (tmp_path / "inflight").write_text("2048\n")
        attr = SysfsAttribute.open(str(tmp_path), "inflight")
        assert attr.reread() == 2
        assert attr.raw == 2048
        assert attr.value == 2
        attr.close()

    def test_reread_sees_new_content_without_reopen(self, tmp_path: Path) -> None:
        path = tmp_path / "inflight"
        path.write_text("1024\n")
        attr = SysfsAttribute.open(str(tmp_path), "inflight")
        assert attr.reread() == 1
        path.write_text("5120\n")
        assert attr.reread() == 5
        attr.close()

    @pytest.mark.parametrize("content", ["", "abc\n", "-4096\n", "12 34\n"])
    def test_parse_error_keeps_previous_value(
        self, tmp_path: Path, content: str
    ) -> None:
        path = tmp_path / "limit"
        path.write_text("3072\n")
        attr = SysfsAttribute.open(str(tmp_path), "limit")
        attr.reread()

        path.write_text(content)
        with pytest.raises(AttributeParseError):
            attr.reread()
        assert attr.value == 3
        assert attr.raw == 3072
        assert attr.failures == 1
        attr.close()

    def test_os_error_is_read_error(self) -> None:
        fh = MagicMock()
        fh.read.side_effect = OSError(errno.EIO, "Input/output error")
        attr = SysfsAttribute("inflight", "/fake/inflight", fh)
        attr.value = 7
        with pytest.raises(ReadError) as exc_info:
            attr.reread()
        assert not isinstance(exc_info.value, AttributeParseError)
        assert attr.value == 7
        assert attr.failures == 1

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        (tmp_path / "inflight").write_text("0\n")
        attr = SysfsAttribute.open(str(tmp_path), "inflight")
        attr.close()
        attr.close()
        assert attr.closed

    def test_reread_after_close(self, tmp_path: Path) -> None:
        (tmp_path / "inflight").write_text("0\n")
        attr = SysfsAttribute.open(str(tmp_path), "inflight")
        attr.close()
        with pytest.raises(ReadError):
            attr.reread()


# ── TxQueue ────────────────────────────────────────────────────────────────


class TestTxQueue:
    def test_open_reads_all_attributes(
        self, sysfs: Path, make_iface: Callable[..., Path]
    ) -> None:
        make_iface("eth0", 1)
        q = TxQueue.open(str(sysfs), "eth0", 0)
        assert q.index == 0
        assert q.inflight.value == 4
        assert q.limit.value == 30
        assert q.limit_max.value == 1835008
        assert q.limit_min.value == 0
        # hold_time is a duration but goes through the same scaling
        assert q.hold_time.raw == 1000
        assert q.hold_time.value == 0
        assert [a.name for a in q.attributes()] == list(ATTR_NAMES)
        q.close()

    def test_missing_attribute_fails_whole_queue(
        self, sysfs: Path, make_iface: Callable[..., Path]
    ) -> None:
        make_iface("eth0", 1)
        (sysfs / "eth0" / "queues" / "tx-0" / "byte_queue_limits" / "limit_min").unlink()
        with patch.object(SysfsAttribute, "close", autospec=True) as mock_close:
            with pytest.raises(InitError, match="queue 0"):
                TxQueue.open(str(sysfs), "eth0", 0)
        # The four attributes opened before the failure were released
        assert mock_close.call_count == 4

    def test_unreadable_first_value_is_not_fatal(
        self,
        sysfs: Path,
        make_iface: Callable[..., Path],
        write_attr: Callable[[str, int, str, str], None],
    ) -> None:
        make_iface("eth0", 1)
        write_attr("eth0", 0, "limit_max", "garbage\n")
        q = TxQueue.open(str(sysfs), "eth0", 0)
        assert q.limit_max.value == 0
        assert q.limit_max.failures == 1
        q.close()


# ── QueueRegistry ──────────────────────────────────────────────────────────


class TestQueueRegistry:
    def test_create(self, sysfs: Path, make_iface: Callable[..., Path]) -> None:
        make_iface("eth0", 4)
        with QueueRegistry.create("eth0", 4, str(sysfs)) as registry:
            assert len(registry) == 4
            assert [q.index for q in registry] == [0, 1, 2, 3]
            assert registry[2].limit.value == 30
        assert registry.closed
        assert all(a.closed for q in registry for a in q.attributes())

    def test_zero_queues(self, sysfs: Path) -> None:
        with pytest.raises(InitError):
            QueueRegistry.create("eth0", 0, str(sysfs))

    def test_failure_releases_earlier_queues(
        self, sysfs: Path, make_iface: Callable[..., Path]
    ) -> None:
        make_iface("eth0", 3)
        (sysfs / "eth0" / "queues" / "tx-2" / "byte_queue_limits" / "limit_min").unlink()
        with patch.object(SysfsAttribute, "close", autospec=True) as mock_close:
            with pytest.raises(InitError, match="queue 2"):
                QueueRegistry.create("eth0", 3, str(sysfs))
        # 2 complete queues (10 attributes) + 4 partially opened ones
        assert mock_close.call_count == 14

    def test_more_queues_than_present(
        self, sysfs: Path, make_iface: Callable[..., Path]
    ) -> None:
        make_iface("eth0", 2)
        with pytest.raises(InitError):
            QueueRegistry.create("eth0", 3, str(sysfs))

    def test_close_is_idempotent(
        self, sysfs: Path, make_iface: Callable[..., Path]
    ) -> None:
        make_iface("eth0", 2)
        registry = QueueRegistry.create("eth0", 2, str(sysfs))
        with patch.object(TxQueue, "close", autospec=True) as mock_close:
            registry.close()
            registry.close()
        assert mock_close.call_count == 2

    def test_stale_reads(
        self,
        sysfs: Path,
        make_iface: Callable[..., Path],
        write_attr: Callable[[str, int, str, str], None],
    ) -> None:
        make_iface("eth0", 2)
        with QueueRegistry.create("eth0", 2, str(sysfs)) as registry:
            assert registry.stale_reads() == 0
            write_attr("eth0", 1, "inflight", "nope\n")
            sample(registry[1])
            assert registry.stale_reads() == 1


# ── sample ─────────────────────────────────────────────────────────────────


class TestSample:
    def test_returns_inflight_and_limit(
        self,
        sysfs: Path,
        make_iface: Callable[..., Path],
        write_attr: Callable[[str, int, str, str], None],
    ) -> None:
        make_iface("eth0", 1)
        with QueueRegistry.create("eth0", 1, str(sysfs)) as registry:
            write_attr("eth0", 0, "inflight", "40960\n")
            write_attr("eth0", 0, "limit", "20480\n")
            # inflight above limit is reported as-is
            assert sample(registry[0]) == (40, 20)

    def test_failed_read_keeps_previous_value(
        self,
        sysfs: Path,
        make_iface: Callable[..., Path],
        write_attr: Callable[[str, int, str, str], None],
    ) -> None:
        make_iface("eth0", 1)
        with QueueRegistry.create("eth0", 1, str(sysfs)) as registry:
            q = registry[0]
            before = sample(q)
            write_attr("eth0", 0, "inflight", "\n")
            write_attr("eth0", 0, "limit", "x\n")
            assert sample(q) == before
            assert q.inflight.failures == 1
            assert q.limit.failures == 1

    def test_static_attributes_not_reread(
        self,
        sysfs: Path,
        make_iface: Callable[..., Path],
        write_attr: Callable[[str, int, str, str], None],
    ) -> None:
        make_iface("eth0", 1)
        with QueueRegistry.create("eth0", 1, str(sysfs)) as registry:
            write_attr("eth0", 0, "limit_min", "10240\n")
            sample(registry[0])
            assert registry[0].limit_min.value == 0
