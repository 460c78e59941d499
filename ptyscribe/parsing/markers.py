"""In-band marker delimiters and display-side marker removal.

Three protocols share the stream:

- narration: ``«tts»...«/tts»`` (``<tts>...</tts>`` is also accepted)
- summary: ``===SUMMARY_START===...===SUMMARY_END===``
- autowork: ``===AUTOWORK_CONTINUE===``
"""

from __future__ import annotations

import re

TTS_OPEN_DELIMITERS: tuple[str, ...] = ("«tts»", "<tts>")
TTS_CLOSE_DELIMITERS: tuple[str, ...] = ("«/tts»", "</tts>")
SUMMARY_START = "===SUMMARY_START==="
SUMMARY_END = "===SUMMARY_END==="
AUTOWORK_CONTINUE = "===AUTOWORK_CONTINUE==="

ALL_DELIMITERS: tuple[str, ...] = (
    *TTS_OPEN_DELIMITERS,
    *TTS_CLOSE_DELIMITERS,
    SUMMARY_START,
    SUMMARY_END,
    AUTOWORK_CONTINUE,
)

TTS_OPEN_RE = re.compile("|".join(re.escape(d) for d in TTS_OPEN_DELIMITERS))
TTS_CLOSE_RE = re.compile("|".join(re.escape(d) for d in TTS_CLOSE_DELIMITERS))
MAX_TTS_CLOSE_LEN = max(len(d) for d in TTS_CLOSE_DELIMITERS)

# Greedy: first start delimiter to the LAST end delimiter, so delimiter-like
# text inside the summary does not cut it short.
SUMMARY_EXTRACT_RE = re.compile(
    re.escape(SUMMARY_START) + r"(.*)" + re.escape(SUMMARY_END), re.DOTALL
)
SUMMARY_DELIMITER_RE = re.compile(r"===SUMMARY_(?:START|END)===")

_DISPLAY_MARKER_RE = re.compile("|".join(re.escape(d) for d in ALL_DELIMITERS))


def strip_markers(text: str) -> str:
    """Remove every marker delimiter from *text*.

    Repeats until stable, since removing one delimiter can join the
    surrounding characters into another (``==«tts»=SUMMARY...``).
    """
    while True:
        stripped = _DISPLAY_MARKER_RE.sub("", text)
        if stripped == text:
            return stripped
        text = stripped


def partial_delimiter_len(text: str, delimiters: tuple[str, ...] = ALL_DELIMITERS) -> int:
    """Length of the longest suffix of *text* that is a proper prefix of a delimiter.

    Returns 0 when the text cannot be the start of a delimiter split across
    a chunk boundary.
    """
    longest = 0
    for delimiter in delimiters:
        upper = min(len(delimiter) - 1, len(text))
        for size in range(upper, longest, -1):
            if text.endswith(delimiter[:size]):
                longest = size
                break
    return longest


class DisplayMarkerFilter:
    """Strip marker delimiters from display text across chunk boundaries.

    A chunk ending in what could be the first half of a delimiter keeps that
    tail back until the next chunk shows whether it completes a marker.
    Control sequences are left untouched.
    """

    def __init__(self) -> None:
        self._held: str = ""

    @property
    def held(self) -> str:
        return self._held

    def feed(self, raw: str) -> str:
        text = strip_markers(self._held + raw)
        hold = partial_delimiter_len(text)
        if hold:
            self._held = text[-hold:]
            return text[:-hold]
        self._held = ""
        return text

    def flush(self) -> str:
        """Release held text once the stream has gone quiet."""
        text, self._held = self._held, ""
        return text

    def reset(self) -> None:
        self._held = ""
