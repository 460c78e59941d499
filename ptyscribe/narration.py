"""Narration channel: extract ``«tts»`` segments and decide what to speak.

- :class:`NarrationPolicy`: speakability heuristic (prose, not code).
- :class:`SignatureSet`: bounded, insertion-ordered record of segments
  already spoken or suppressed.
- :class:`NarrationExtractor`: per-session carry-over plus silent-mode
  and focus gating.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from ptyscribe.config import NarrationConfig
from ptyscribe.log_setup import TRACE
from ptyscribe.parsing.markers import (
    MAX_TTS_CLOSE_LEN,
    TTS_CLOSE_RE,
    TTS_OPEN_DELIMITERS,
    TTS_OPEN_RE,
    partial_delimiter_len,
)
from ptyscribe.parsing.normalizer import normalize

logger = logging.getLogger(__name__)

CODE_PATTERN_RE = re.compile(
    r"[{}()\[\];=`$]"
    r"|^\s*//"
    r"|^\s*#"
    r"|function\s|const\s|let\s|var\s"
)


def content_signature(text: str) -> str:
    """Dedup key for a segment: trimmed, with whitespace runs collapsed."""
    return " ".join(text.split())


@dataclass(frozen=True)
class NarrationPolicy:
    """Heuristic gate applied to every extracted segment.

    Attributes:
        min_length: Segments must be strictly longer than this.
        code_pattern: Any match marks the segment as code.
    """

    min_length: int = 5
    code_pattern: re.Pattern = field(default=CODE_PATTERN_RE)

    def looks_like_code(self, text: str) -> bool:
        return self.code_pattern.search(text) is not None

    def is_speakable(self, text: str) -> bool:
        """Check whether a trimmed segment reads like prose."""
        return (
            len(text) > self.min_length
            and text[0].isalpha()
            and not self.looks_like_code(text)
        )


class SignatureSet:
    """Insertion-ordered set with bulk eviction of the oldest entries.

    Once the set grows past ``max_size`` only the newest ``retain`` entries
    are kept.
    """

    def __init__(self, max_size: int = 1000, retain: int = 500) -> None:
        if retain > max_size:
            raise ValueError("retain must not exceed max_size")
        self._max_size = max_size
        self._retain = retain
        self._entries: dict[str, None] = {}

    def add(self, signature: str) -> None:
        self._entries[signature] = None
        if len(self._entries) > self._max_size:
            keep = list(self._entries)[-self._retain:] if self._retain else []
            logger.debug(
                "SignatureSet evicting %d entries", len(self._entries) - len(keep),
            )
            self._entries = dict.fromkeys(keep)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, signature: object) -> bool:
        return signature in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class _SegmentScanner:
    """Carry-over buffer that yields complete open/close segments.

    Remembers where the close-delimiter search last gave up, so a long
    unterminated segment is not rescanned from its start on every chunk.
    """

    def __init__(self, max_chars: int) -> None:
        self._max_chars = max_chars
        self.buffer: str = ""
        self._close_from: int = 0

    def feed(self, text: str) -> list[str]:
        buf = self.buffer + text
        segments: list[str] = []
        pos = 0
        close_from = self._close_from
        pending_open = None
        while True:
            open_m = TTS_OPEN_RE.search(buf, pos)
            if open_m is None:
                break
            close_m = TTS_CLOSE_RE.search(buf, max(open_m.end(), close_from))
            if close_m is None:
                pending_open = open_m
                break
            segments.append(buf[open_m.end():close_m.start()])
            pos = close_m.end()
            close_from = 0

        if pending_open is not None:
            # No close delimiter after this open yet; only the tail can
            # still become one.
            start = pending_open.start()
            resume = max(pending_open.end(), len(buf) - (MAX_TTS_CLOSE_LEN - 1))
            rest = buf[start:]
            self._close_from = resume - start
        else:
            rest = buf[pos:]
            keep = partial_delimiter_len(rest, TTS_OPEN_DELIMITERS)
            rest = rest[len(rest) - keep:] if keep else ""
            self._close_from = 0

        if len(rest) > self._max_chars:
            logger.debug(
                "Narration carry-over over cap (%d chars), keeping tail", len(rest),
            )
            trimmed = len(rest) - self._max_chars
            rest = rest[trimmed:]
            self._close_from = max(0, self._close_from - trimmed)
            if not TTS_OPEN_RE.match(rest):
                # Open delimiter was cut off; the tail is rescanned next feed.
                self._close_from = 0

        self.buffer = rest
        return segments

    def reset(self) -> None:
        self.buffer = ""
        self._close_from = 0


class NarrationExtractor:
    """Per-session narration state.

    Sessions start in silent mode: segments are recorded as seen but not
    forwarded, so startup banners and replayed history are never read out.
    Silent mode ends permanently on the first user input. Forwarding also
    requires the session's presentation to be active.
    """

    def __init__(
        self,
        config: NarrationConfig | None = None,
        policy: NarrationPolicy | None = None,
    ) -> None:
        self._config = config or NarrationConfig()
        self.policy = policy or NarrationPolicy(min_length=self._config.min_length)
        self._scanner = _SegmentScanner(self._config.carry_max_chars)
        self.seen = SignatureSet(
            max_size=self._config.max_signatures,
            retain=self._config.retain_signatures,
        )
        self.silent: bool = True
        self.active: bool = False

    @property
    def carry_over(self) -> str:
        return self._scanner.buffer

    def end_silent_mode(self) -> None:
        if self.silent:
            logger.debug("Narration silent mode ended by user input")
            self.silent = False

    def feed(self, clean: str) -> list[str]:
        """Scan one normalized chunk and return the segments to narrate.

        Args:
            clean: Normalized chunk text.

        Returns:
            Segments that are speakable, unseen, and not suppressed, in
            stream order. Suppressed segments are still recorded as seen.
        """
        forward: list[str] = []
        for segment in self._scanner.feed(clean):
            content = segment.strip()
            if not self.policy.is_speakable(content):
                logger.log(TRACE, "Narration skip non-prose %r", content[:80])
                continue
            signature = content_signature(content)
            if signature in self.seen:
                continue
            self.seen.add(signature)
            if self.silent or not self.active:
                logger.debug(
                    "Narration suppressed (silent=%s active=%s): %r",
                    self.silent, self.active, content[:80],
                )
                continue
            forward.append(content)
        return forward

    def prepopulate(self, chunks: Iterable[str]) -> int:
        """Mark segments in replayed chunks as seen without speaking them.

        Uses its own scanner so the live carry-over is left untouched.

        Args:
            chunks: Raw chunks, oldest first.

        Returns:
            Number of signatures newly recorded.
        """
        scanner = _SegmentScanner(self._config.carry_max_chars)
        added = 0
        for chunk in chunks:
            for segment in scanner.feed(normalize(chunk)):
                content = segment.strip()
                if not self.policy.is_speakable(content):
                    continue
                signature = content_signature(content)
                if signature not in self.seen:
                    self.seen.add(signature)
                    added += 1
        logger.debug("Narration prepopulated %d signatures", added)
        return added

    def reset(self) -> None:
        """Drop carry-over and signatures and re-enter silent mode."""
        self._scanner.reset()
        self.seen.clear()
        self.silent = True
