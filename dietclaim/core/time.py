"""
dietclaim/core/time.py

Two notions of time live here and nowhere else:

  block height  — drives every expiry and period rule (HeightClock)
  wall clock    — only stamps journal entries (journal_timestamp)

Wire format for journal timestamps: YYYY-MM-DDTHH:MM:SS.mmmZ
"""

import threading
from datetime import datetime, timezone


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


class HeightClock:
    """
    Monotonically non-decreasing block height counter.

    The surrounding environment owns the height; components only read it.
    advance() and set_height() exist for the environment and for tests.
    """

    def __init__(self, height: int = 0) -> None:
        if not isinstance(height, int) or height < 0:
            raise ValueError(f"height must be non-negative int, got {height!r}")
        self._height = height
        self._lock   = threading.Lock()

    def current_height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the height forward by `blocks`. Returns the new height."""
        if not isinstance(blocks, int) or blocks < 0:
            raise ValueError(f"blocks must be non-negative int, got {blocks!r}")
        with self._lock:
            self._height += blocks
            return self._height

    def set_height(self, height: int) -> int:
        """Jump to an absolute height. Going backwards is refused."""
        with self._lock:
            if height < self._height:
                raise ValueError(
                    f"height is monotonic: cannot move from {self._height} to {height}"
                )
            self._height = height
            return self._height

    def __repr__(self) -> str:
        return f"HeightClock(height={self._height})"
