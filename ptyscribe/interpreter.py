from __future__ import annotations

import logging

from ptyscribe.autowork import AutoworkController
from ptyscribe.config import AppConfig
from ptyscribe.log_setup import TRACE
from ptyscribe.models import (
    DisplaySurface,
    DisplayText,
    EventSink,
    NarrationRequest,
    SessionEvent,
    SessionWriter,
    SummaryReady,
)
from ptyscribe.narration import NarrationExtractor
from ptyscribe.parsing.markers import DisplayMarkerFilter
from ptyscribe.parsing.normalizer import StreamNormalizer
from ptyscribe.replay_log import ReplayLog
from ptyscribe.summary import SummaryCapture

logger = logging.getLogger(__name__)

EXIT_NOTICE = "\r\n\x1b[90m[Process exited with code {code}]\x1b[0m\r\n"


class SessionInterpreter:
    """Per-session wiring of the output interpretation pipeline.

    Every raw chunk is appended to the replay log, normalized, and handed
    to the narration extractor, summary capture and work-loop controller.
    The raw chunk itself, with marker delimiters stripped but control
    sequences intact, goes to the attached display surface and out as a
    :class:`DisplayText` event.
    """

    def __init__(
        self,
        session_id: str,
        writer: SessionWriter,
        config: AppConfig | None = None,
        emit: EventSink | None = None,
    ) -> None:
        """Create the per-session state.

        Args:
            session_id: Identifier carried by every emitted event.
            writer: Async callable writing text into the session.
            config: Bounds and delays; defaults apply when omitted.
            emit: Receives display, narration, summary and state events.
        """
        self.session_id = session_id
        self._config = config or AppConfig()
        self._emit = emit
        self.replay = ReplayLog(self._config.replay.max_chunks)
        self.narration = NarrationExtractor(self._config.narration)
        self.summary = SummaryCapture(self._config.summary)
        self.autowork = AutoworkController(
            session_id, writer, self.summary, self._config.autowork, emit,
        )
        self._normalizer = StreamNormalizer()
        self._display = DisplayMarkerFilter()
        self._surface: DisplaySurface | None = None
        self.exit_code: int | None = None

    @property
    def active(self) -> bool:
        return self.narration.active

    @property
    def surface(self) -> DisplaySurface | None:
        return self._surface

    async def feed(self, chunk: str | bytes) -> str:
        """Process one raw chunk in arrival order.

        Returns:
            The display text produced for this chunk. May be shorter than
            the chunk when a partial delimiter is held back.
        """
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")
        logger.log(TRACE, "feed session=%s len=%d", self.session_id, len(chunk))
        self.replay.append(chunk)

        clean = self._normalizer.feed(chunk)
        if clean:
            self._interpret(clean)

        display = self._display.feed(chunk)
        if display:
            self._show(display)
        return display

    def flush_display(self) -> str:
        """Release text held back at the end of the stream.

        Call when the stream goes quiet, so a trailing fragment that only
        looked like the start of a marker is still shown.
        """
        tail = self._normalizer.flush()
        if tail:
            self._interpret(tail)
        display = self._display.flush()
        if display:
            self._show(display)
        return display

    def attach(self, surface: DisplaySurface) -> int:
        """Attach a presentation surface and replay buffered output into it.

        Buffered segments are marked as already spoken so re-attaching never
        narrates them again.

        Returns:
            Number of chunks replayed.
        """
        chunks = self.replay.chunks()
        logger.debug("Attach session=%s replaying %d chunks", self.session_id, len(chunks))
        self._surface = surface
        replay_filter = DisplayMarkerFilter()
        for chunk in chunks:
            text = replay_filter.feed(chunk)
            if text:
                surface.write(text)
        # Text the live filter still holds comes out with its next chunk.
        if not self._display.held:
            tail = replay_filter.flush()
            if tail:
                surface.write(tail)
        self.narration.prepopulate(chunks)
        return len(chunks)

    def detach(self) -> None:
        logger.debug("Detach session=%s", self.session_id)
        self._surface = None

    def user_input(self, data: str = "") -> None:
        """Record that the user typed into the session."""
        self.narration.end_silent_mode()

    def set_active(self, active: bool) -> None:
        if active != self.narration.active:
            logger.debug("Session %s active=%s", self.session_id, active)
        self.narration.active = active

    async def summarize(self) -> None:
        """Ask the session for a summary; it is restored after a clear."""
        await self.autowork.request_summary()

    def reset_narration(self) -> None:
        self.narration.reset()

    def on_exit(self, code: int | None) -> str:
        """Record process exit and show a notice on the display.

        The notice is appended to the replay log so it survives re-attach.
        """
        self.flush_display()
        self.exit_code = code
        self.autowork.close()
        self.summary.abandon()
        notice = EXIT_NOTICE.format(code=code)
        self.replay.append(notice)
        self._show(notice)
        logger.info("Session %s exited with code %s", self.session_id, code)
        return notice

    def close(self) -> None:
        """Abort background work and drop the surface."""
        self.autowork.close()
        self.summary.abandon()
        self._surface = None

    def _interpret(self, clean: str) -> None:
        for text in self.narration.feed(clean):
            self._send(NarrationRequest(session_id=self.session_id, text=text))

        summary = self.summary.feed(clean)
        if summary is not None:
            self._send(SummaryReady(session_id=self.session_id, text=summary))
            self.autowork.on_summary_ready(summary)

        self.autowork.on_output(clean)

    def _show(self, text: str) -> None:
        if self._surface is not None:
            self._surface.write(text)
        self._send(DisplayText(session_id=self.session_id, text=text))

    def _send(self, event: SessionEvent) -> None:
        if self._emit is not None:
            self._emit(event)
