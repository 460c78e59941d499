from __future__ import annotations

import pytest

from ptyscribe.parsing.markers import (
    ALL_DELIMITERS,
    AUTOWORK_CONTINUE,
    DisplayMarkerFilter,
    partial_delimiter_len,
    strip_markers,
)


class TestStripMarkers:
    def test_strips_tts_delimiters_keeps_content(self):
        assert strip_markers("say «tts»hello there«/tts» done") == "say hello there done"

    def test_strips_angle_tts_delimiters(self):
        assert strip_markers("<tts>hi friend</tts>") == "hi friend"

    def test_strips_summary_and_autowork(self):
        text = "===SUMMARY_START===body===SUMMARY_END===\n===AUTOWORK_CONTINUE==="
        assert strip_markers(text) == "body\n"

    def test_strip_is_stable_when_removal_joins_delimiter(self):
        text = "===AUTOWORK_«tts»CONTINUE==="
        assert strip_markers(text) == ""

    def test_control_sequences_kept(self):
        text = "\x1b[1m«tts»bold«/tts»\x1b[0m"
        assert strip_markers(text) == "\x1b[1mbold\x1b[0m"


class TestPartialDelimiterLen:
    def test_no_partial(self):
        assert partial_delimiter_len("plain text") == 0

    def test_partial_tts_open(self):
        assert partial_delimiter_len("hello «tt") == 3

    def test_partial_equals_prefix(self):
        assert partial_delimiter_len("line ===AUTOWORK_CONT") == len("===AUTOWORK_CONT")

    def test_single_equals(self):
        assert partial_delimiter_len("a = b =") == 1

    def test_complete_delimiter_is_not_partial(self):
        assert partial_delimiter_len("«tts»") == 0

    def test_restricted_delimiters(self):
        assert partial_delimiter_len("text ===", ("«tts»",)) == 0


class TestDisplayMarkerFilter:
    def test_passes_plain_text(self):
        filt = DisplayMarkerFilter()
        assert filt.feed("hello") == "hello"
        assert filt.held == ""

    def test_marker_split_across_chunks_never_leaks(self):
        filt = DisplayMarkerFilter()
        out = filt.feed("text «tt") + filt.feed("s»spoken«/t") + filt.feed("ts» after")
        assert out == "text spoken after"

    def test_autowork_marker_split(self):
        filt = DisplayMarkerFilter()
        out = filt.feed("done\r\n===AUTOWORK_") + filt.feed("CONTINUE===\r\n")
        assert out == "done\r\n\r\n"

    def test_false_alarm_released_by_next_chunk(self):
        filt = DisplayMarkerFilter()
        assert filt.feed("x ==") == "x "
        assert filt.feed(" y") == "== y"

    def test_flush_releases_held(self):
        filt = DisplayMarkerFilter()
        filt.feed("a =")
        assert filt.flush() == "="
        assert filt.held == ""

    def test_reset(self):
        filt = DisplayMarkerFilter()
        filt.feed("«")
        filt.reset()
        assert filt.held == ""

    @pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 11])
    def test_no_leakage_at_any_split(self, size):
        stream = (
            "\x1b[32mstart\x1b[0m «tts»Narrated line«/tts» mid "
            "===SUMMARY_START===summary body===SUMMARY_END=== "
            "<tts>other</tts> " + AUTOWORK_CONTINUE + " end"
        )
        filt = DisplayMarkerFilter()
        out = "".join(filt.feed(stream[i:i + size]) for i in range(0, len(stream), size))
        out += filt.flush()
        for delimiter in ALL_DELIMITERS:
            assert delimiter not in out
        assert out == strip_markers(stream)
