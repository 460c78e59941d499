from __future__ import annotations

import logging
from enum import Enum

from ptyscribe.config import SummaryConfig
from ptyscribe.log_setup import TRACE
from ptyscribe.parsing.markers import (
    SUMMARY_DELIMITER_RE,
    SUMMARY_EXTRACT_RE,
    SUMMARY_START,
)

logger = logging.getLogger(__name__)

SUMMARIZE_PROMPT = (
    "Summarize this session for context recovery. Wrap output in markers: "
    "three equals, SUMMARY_START, three equals at start. "
    "Three equals, SUMMARY_END, three equals at end."
)


class CapturePhase(Enum):
    """Lifecycle of one summary capture.

    Values:
        IDLE: Not capturing; chunks are ignored.
        CAPTURING: Accumulating normalized output until a qualifying
            start/end span appears or the buffer cap is hit.
    """

    IDLE = "idle"
    CAPTURING = "capturing"


class SummaryCapture:
    """Capture one delimited session summary per request.

    State machine: IDLE -> begin() -> CAPTURING -> qualifying match,
    overflow or abandon() -> IDLE.

    A match shorter than ``min_length`` is provisional: the session may
    describe the marker format before emitting the real summary, or the
    summary may quote the end delimiter before its real end. Capture
    continues from the provisional span. A start delimiter arriving after
    that span opens a new one; otherwise the span grows to the next end
    delimiter.
    """

    def __init__(self, config: SummaryConfig | None = None) -> None:
        self._config = config or SummaryConfig()
        self.phase: CapturePhase = CapturePhase.IDLE
        self._buffer: str = ""
        # Buffer offset just past a rejected short span.
        self._rejected_end: int = 0

    @property
    def capturing(self) -> bool:
        return self.phase == CapturePhase.CAPTURING

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    def begin(self) -> None:
        """Start a fresh capture, discarding any previous buffer."""
        if self.capturing:
            logger.debug("SummaryCapture restarted while capturing")
        self._buffer = ""
        self._rejected_end = 0
        self.phase = CapturePhase.CAPTURING
        logger.debug("SummaryCapture enabled")

    def abandon(self) -> None:
        if self.capturing:
            logger.debug("SummaryCapture abandoned with %d chars buffered", len(self._buffer))
        self._reset()

    def feed(self, clean: str) -> str | None:
        """Append a normalized chunk and look for a qualifying summary.

        Args:
            clean: Normalized chunk text.

        Returns:
            The summary text when a qualifying span completes, otherwise
            None. Always None while IDLE.
        """
        if not self.capturing:
            return None

        self._buffer += clean
        logger.log(TRACE, "SummaryCapture buffer=%d chunk=%d", len(self._buffer), len(clean))

        if self._rejected_end:
            restart = self._buffer.find(SUMMARY_START, self._rejected_end)
            if restart != -1:
                self._buffer = self._buffer[restart:]
                self._rejected_end = 0

        match = SUMMARY_EXTRACT_RE.search(self._buffer)
        if match:
            summary = SUMMARY_DELIMITER_RE.sub("", match.group(1).strip()).strip()
            if len(summary) >= self._config.min_length:
                logger.debug("SummaryCapture complete, %d chars", len(summary))
                self._reset()
                return summary
            logger.debug(
                "SummaryCapture match too short (%d < %d chars), continuing",
                len(summary), self._config.min_length,
            )
            self._buffer = self._buffer[match.start():]
            self._rejected_end = match.end() - match.start()

        if len(self._buffer) > self._config.max_buffer_chars:
            logger.warning(
                "SummaryCapture buffer limit (%d chars) reached, stopping capture",
                self._config.max_buffer_chars,
            )
            self._reset()
        return None

    def _reset(self) -> None:
        self._buffer = ""
        self._rejected_end = 0
        self.phase = CapturePhase.IDLE
