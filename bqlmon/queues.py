"""Per-queue BQL attributes and the queue registry.

Every transmit queue exposes five counters under
``/sys/class/net/<iface>/queues/tx-<n>/byte_queue_limits/``. Each one is
opened once and re-read in place on every tick: sysfs regenerates the
content on read, so seeking back to offset zero is enough.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from bqlmon.errors import AttributeParseError, InitError, OpenError, ReadError
from bqlmon.netif import SYSFS_NET

# ── Constants ──────────────────────────────────────────────────────────────

ATTR_NAMES: tuple[str, ...] = ("hold_time", "inflight", "limit", "limit_max", "limit_min")

# Applied to every attribute, the hold_time duration included.
SCALE = 1024

_READ_SIZE = 512


def scale(raw: int) -> int:
    """Scale a raw counter value for display (truncating division by 1024)."""
    return raw // SCALE


def queue_path(root: str, interface: str, index: int) -> str:
    return os.path.join(root, interface, "queues", f"tx-{index}", "byte_queue_limits")


# ── Attribute store ────────────────────────────────────────────────────────


class SysfsAttribute:
    """One BQL counter file kept open for cheap re-reads.

    ``value`` is the last successfully read, scaled value. A failed re-read
    raises and leaves ``raw`` and ``value`` untouched.
    """

    def __init__(self, name: str, path: str, fh: BinaryIO) -> None:
        self.name = name
        self.path = path
        self.raw = 0
        self.value = 0
        self.failures = 0
        self._fh: BinaryIO | None = fh

    @classmethod
    def open(cls, queue_dir: str, name: str) -> SysfsAttribute:
        path = os.path.join(queue_dir, name)
        try:
            fh = open(path, "rb", buffering=0)
        except OSError as e:
            raise OpenError(f"cannot open {path}: {e.strerror}") from e
        return cls(name, path, fh)

    @property
    def closed(self) -> bool:
        return self._fh is None

    def reread(self) -> int:
        """Rewind, read and parse the counter; return the scaled value."""
        if self._fh is None:
            raise ReadError(f"{self.path} is closed")
        try:
            self._fh.seek(0)
            data = self._fh.read(_READ_SIZE)
        except OSError as e:
            self.failures += 1
            raise ReadError(f"cannot read {self.path}: {e.strerror}") from e

        text = (data or b"").decode("ascii", errors="replace").strip()
        try:
            raw = int(text)
        except ValueError:
            raw = -1
        if raw < 0:
            self.failures += 1
            raise AttributeParseError(self.path, text)

        self.raw = raw
        self.value = scale(raw)
        return self.value

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __repr__(self) -> str:
        return f"SysfsAttribute({self.name!r}, value={self.value})"


# ── Queue model ────────────────────────────────────────────────────────────


@dataclass
class TxQueue:
    """The five BQL attributes of one transmit queue."""

    index: int
    hold_time: SysfsAttribute
    inflight: SysfsAttribute
    limit: SysfsAttribute
    limit_max: SysfsAttribute
    limit_min: SysfsAttribute

    @classmethod
    def open(cls, root: str, interface: str, index: int) -> TxQueue:
        """Open all attributes of queue *index*; all or nothing.

        Every attribute is read once so the static ones (hold_time,
        limit_min, limit_max) carry a value for the whole session. A failed
        first read is not fatal, the value simply stays at zero.
        """
        qdir = queue_path(root, interface, index)
        opened: dict[str, SysfsAttribute] = {}
        try:
            for name in ATTR_NAMES:
                opened[name] = SysfsAttribute.open(qdir, name)
        except OpenError as e:
            for attr in opened.values():
                attr.close()
            raise InitError(f"failed to initialize queue {index}: {e}") from e

        for attr in opened.values():
            try:
                attr.reread()
            except ReadError:
                continue
        return cls(index=index, **opened)

    def attributes(self) -> tuple[SysfsAttribute, ...]:
        return tuple(getattr(self, name) for name in ATTR_NAMES)

    def close(self) -> None:
        for attr in self.attributes():
            attr.close()


class QueueRegistry:
    """All transmit queues of one interface, created once at startup."""

    def __init__(self, interface: str, queues: list[TxQueue]) -> None:
        self.interface = interface
        self._queues = queues
        self._closed = False

    @classmethod
    def create(
        cls, interface: str, queue_count: int, root: str = SYSFS_NET
    ) -> QueueRegistry:
        """Open every queue of *interface*.

        Raises:
            InitError: If there are no queues or any queue fails to open.
                Queues opened before the failure are closed again.
        """
        if queue_count <= 0:
            raise InitError(f"{interface} has no transmit queues")
        queues: list[TxQueue] = []
        try:
            for index in range(queue_count):
                queues.append(TxQueue.open(root, interface, index))
        except InitError:
            for q in queues:
                q.close()
            raise
        return cls(interface, queues)

    def __len__(self) -> int:
        return len(self._queues)

    def __getitem__(self, index: int) -> TxQueue:
        return self._queues[index]

    def __iter__(self) -> Iterator[TxQueue]:
        return iter(self._queues)

    @property
    def closed(self) -> bool:
        return self._closed

    def stale_reads(self) -> int:
        """Total failed re-reads across every attribute."""
        return sum(attr.failures for q in self._queues for attr in q.attributes())

    def close(self) -> None:
        if self._closed:
            return
        for q in self._queues:
            q.close()
        self._closed = True

    def __enter__(self) -> QueueRegistry:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ── Sampling ───────────────────────────────────────────────────────────────


def sample(queue: TxQueue) -> tuple[int, int]:
    """Re-read the hot attributes and return ``(inflight, limit)``.

    A failed read keeps the previous value; the dashboard keeps drawing
    with slightly stale data rather than stopping.
    """
    for attr in (queue.inflight, queue.limit):
        try:
            attr.reread()
        except ReadError:
            continue
    return queue.inflight.value, queue.limit.value
