"""Exception hierarchy for bqlmon.

Startup failures (platform, interface, queue registry, terminal) are fatal
and end the program after a one-line diagnostic. Read failures on a single
counter are transient and handled by the sampler.
"""

from __future__ import annotations


class BqlmonError(Exception):
    """Base class for all bqlmon errors."""


class UnsupportedPlatform(BqlmonError):
    """Not Linux, or a kernel without BQL support."""


class NoSuchInterface(BqlmonError):
    """The interface is missing or exposes no transmit queues."""

    def __init__(self, interface: str, detail: str = "") -> None:
        self.interface = interface
        msg = f"no such interface: {interface}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class InitError(BqlmonError):
    """A queue could not be set up while building the registry."""


class TerminalError(BqlmonError):
    """The terminal cannot host the dashboard (e.g. no colour support)."""


class OpenError(BqlmonError):
    """A sysfs attribute file could not be opened."""


class ReadError(BqlmonError):
    """A sysfs attribute file could not be re-read."""


class AttributeParseError(ReadError):
    """An attribute file held something other than a non-negative integer."""

    def __init__(self, path: str, content: str) -> None:
        self.path = path
        self.content = content
        super().__init__(f"unparsable value {content!r} in {path}")
