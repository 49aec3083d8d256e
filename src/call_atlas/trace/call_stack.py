"""Explicit call-frame stack kept by a trace session."""

from __future__ import annotations

from dataclasses import dataclass
from types import FrameType
from typing import Optional


@dataclass
class StackEntry:
    """One Python frame and the recorded source it runs on behalf of.

    ``source_name`` is the nearest recorded source: the frame's own unit when
    that unit is recorded, otherwise the value inherited from the caller.
    """

    frame: FrameType
    source_name: Optional[str]


class CallStack:
    """Push on call, pop on return, matched by frame identity.

    Returns for frames that were entered before tracing started never match
    an entry and are ignored. A return for a frame buried below the top
    unwinds everything above it, so a missed return can't leak entries.
    """

    def __init__(self) -> None:
        self._entries: list[StackEntry] = []

    @property
    def current_source(self) -> Optional[str]:
        if not self._entries:
            return None
        return self._entries[-1].source_name

    def push(self, frame: FrameType, source_name: Optional[str]) -> None:
        self._entries.append(StackEntry(frame, source_name))

    def pop(self, frame: FrameType) -> bool:
        """Pop ``frame`` (and anything above it). Returns False if not on the stack."""
        for index in range(len(self._entries) - 1, -1, -1):
            if self._entries[index].frame is frame:
                del self._entries[index:]
                return True
        return False

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
