"""Network interface discovery: platform check, tx queue count, driver info."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

import psutil

from bqlmon.errors import NoSuchInterface, UnsupportedPlatform

SYSFS_NET = "/sys/class/net"
SYSFS_MODULE = "/sys/module"

# BQL appeared in Linux 3.3
_MIN_KERNEL = (3, 3)


def check_platform() -> None:
    """Raise UnsupportedPlatform unless running on a BQL-capable Linux kernel."""
    uts = os.uname()
    if uts.sysname != "Linux":
        raise UnsupportedPlatform(f"unsupported OS: {uts.sysname}")
    m = re.match(r"(\d+)\.(\d+)", uts.release)
    if m is None:
        raise UnsupportedPlatform(f"cannot parse kernel release: {uts.release}")
    if (int(m.group(1)), int(m.group(2))) < _MIN_KERNEL:
        raise UnsupportedPlatform("kernel too old, requires 3.3 for BQL")


def count_tx_queues(interface: str, root: str = SYSFS_NET) -> int:
    """Count the ``tx-*`` queue directories of *interface*."""
    check_platform()
    qdir = os.path.join(root, interface, "queues")
    try:
        entries = os.listdir(qdir)
    except OSError as e:
        raise NoSuchInterface(interface, e.strerror or "") from e

    count = sum(1 for name in entries if name.startswith("tx-"))
    if count == 0:
        raise NoSuchInterface(interface, "no transmit queues, kernel too old?")
    return count


@dataclass
class DriverInfo:
    """Optional descriptive data shown in the dashboard header."""

    driver: str | None = None
    version: str | None = None
    speed: int | None = None  # Mb/s
    mtu: int | None = None

    def summary(self) -> str:
        parts: list[str] = []
        if self.driver:
            parts.append(f"{self.driver} {self.version}" if self.version else self.driver)
        if self.speed:
            parts.append(f"{self.speed} Mb/s")
        if self.mtu:
            parts.append(f"mtu {self.mtu}")
        return ", ".join(parts)


def read_driver_info(
    interface: str, root: str = SYSFS_NET, module_root: str = SYSFS_MODULE
) -> DriverInfo:
    """Best-effort driver and link details. Never raises."""
    info = DriverInfo()

    try:
        info.driver = os.path.basename(
            os.readlink(os.path.join(root, interface, "device", "driver"))
        )
    except OSError:
        pass  # virtual devices have no driver link

    if info.driver:
        try:
            with open(os.path.join(module_root, info.driver, "version")) as f:
                info.version = f.read().strip() or None
        except OSError:
            pass

    try:
        stats = psutil.net_if_stats().get(interface)
    except (OSError, RuntimeError):
        stats = None
    if stats is not None:
        info.speed = stats.speed or None
        info.mtu = stats.mtu or None

    return info
