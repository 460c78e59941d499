from __future__ import annotations

import logging
from collections import deque

from ptyscribe.log_setup import TRACE

logger = logging.getLogger(__name__)


class ReplayLog:
    """Bounded, ordered log of one session's raw output chunks.

    Lets the display be rebuilt after the presentation layer is torn down
    and recreated. Oldest chunks are evicted first once ``max_chunks`` is
    reached. Contents are memory-resident only.
    """

    def __init__(self, max_chunks: int = 1000) -> None:
        """Initialize an empty log.

        Args:
            max_chunks: Maximum number of chunks retained.
        """
        if max_chunks <= 0:
            raise ValueError("max_chunks must be positive")
        self._max_chunks = max_chunks
        self._chunks: deque[str] = deque(maxlen=max_chunks)
        self._evicted: int = 0

    @property
    def max_chunks(self) -> int:
        return self._max_chunks

    @property
    def evicted(self) -> int:
        """Total chunks dropped by FIFO eviction since creation."""
        return self._evicted

    def append(self, chunk: str) -> None:
        """Add a raw chunk, evicting the oldest one when full.

        Args:
            chunk: Raw output exactly as received, control bytes and
                markers included.
        """
        if len(self._chunks) == self._max_chunks:
            self._evicted += 1
        self._chunks.append(chunk)
        logger.log(TRACE, "ReplayLog append len=%d size=%d", len(chunk), len(self._chunks))

    def chunks(self) -> list[str]:
        """Return a snapshot of the buffered chunks, oldest first."""
        return list(self._chunks)

    def clear(self) -> None:
        logger.debug("ReplayLog clear size=%d", len(self._chunks))
        self._chunks.clear()

    def __len__(self) -> int:
        return len(self._chunks)
