"""Control-sequence removal for semantic analysis of terminal output.

The normalized text feeds only the marker extractors. The bytes sent to the
display are never normalized.
"""

from __future__ import annotations

import logging
import re

from ptyscribe.log_setup import TRACE

logger = logging.getLogger(__name__)

# Cursor forward: ESC[NC becomes N spaces (Claude uses ESC[1C between words)
_CURSOR_FORWARD_RE = re.compile(r"\x1b\[(\d*)C")
_MAX_CURSOR_FORWARD = 256

_OSC_RE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")      # title setting etc.
_STRING_SEQ_RE = re.compile(r"\x1b[PX^_][^\x1b]*\x1b\\")        # DCS, SOS, PM, APC
_CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")                # cursor, erase, SGR, ESC[?...h
_CHARSET_RE = re.compile(r"\x1b[()*+][0-9A-Za-z]")
_ESC_SHORT_RE = re.compile(r"\x1b[ -/]*[0-~]")                  # ESC 7, ESC =, ESC M, ...
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")           # keeps \t and \n

# A chunk ending inside one of these is held back by StreamNormalizer.
_INCOMPLETE_TAIL_RE = re.compile(
    r"\x1b(?:"
    r"\[[0-?]*[ -/]*"
    r"|\][^\x07\x1b]*\x1b?"
    r"|[PX^_][^\x1b]*\x1b?"
    r"|[()*+]"
    r"|[ -/]*"
    r")\Z"
)
_MAX_PENDING = 512


def _cursor_forward(match: re.Match) -> str:
    count = int(match.group(1)) if match.group(1) else 1
    return " " * min(count, _MAX_CURSOR_FORWARD)


def normalize(chunk: str | bytes) -> str:
    """Strip terminal control sequences, keeping printable text and newlines.

    Cursor-forward becomes spaces, CRLF and lone CR become LF, and any ESC
    byte left over from an unrecognized sequence is dropped with the other
    bare control bytes. The result contains no ESC or CR, which makes the
    function idempotent.

    Args:
        chunk: Raw terminal output. Bytes are decoded as UTF-8 with
            replacement characters for invalid sequences.

    Returns:
        The cleaned text.
    """
    if isinstance(chunk, bytes):
        chunk = chunk.decode("utf-8", errors="replace")
    if not chunk:
        return ""
    text = _CURSOR_FORWARD_RE.sub(_cursor_forward, chunk)
    text = _OSC_RE.sub("", text)
    text = _STRING_SEQ_RE.sub("", text)
    text = _CSI_RE.sub("", text)
    text = _CHARSET_RE.sub("", text)
    text = _ESC_SHORT_RE.sub("", text)
    text = text.replace("\r\r\n", "\n").replace("\r\n", "\n").replace("\r", "\n")
    return _CONTROL_RE.sub("", text)


class StreamNormalizer:
    """Incremental normalizer for one session's chunk stream.

    A chunk that ends partway through an escape sequence (or on a bare CR
    that may be the first half of CRLF) would leave fragments like ``[3``
    in the clean text. The incomplete tail is held back and prefixed to the
    next chunk instead.
    """

    def __init__(self) -> None:
        self._pending: str = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: str | bytes) -> str:
        """Normalize a chunk, holding back an incomplete trailing sequence."""
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")
        text = self._pending + chunk
        self._pending = ""

        match = _INCOMPLETE_TAIL_RE.search(text)
        if match and len(text) - match.start() <= _MAX_PENDING:
            self._pending = text[match.start():]
            text = text[:match.start()]
        elif text.endswith("\r"):
            # CR CR LF is one line break; hold the whole CR run.
            kept = text.rstrip("\r")
            self._pending = text[len(kept):]
            text = kept

        if self._pending:
            logger.log(TRACE, "StreamNormalizer holding back %r", self._pending)
        return normalize(text)

    def flush(self) -> str:
        """Release any held-back tail through :func:`normalize`."""
        text, self._pending = self._pending, ""
        return normalize(text)

    def reset(self) -> None:
        self._pending = ""
