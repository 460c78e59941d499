from __future__ import annotations

import logging

import pytest

from ptyscribe.config import SummaryConfig
from ptyscribe.summary import CapturePhase, SummaryCapture

BODY = (
    "Worked on the session registry and the replay log. Added eviction of "
    "orphaned sessions and tests for bounded memory. Next: narration dedup."
)


def _wrapped(body: str) -> str:
    return f"===SUMMARY_START===\n{body}\n===SUMMARY_END==="


class TestSummaryCapture:
    def test_idle_ignores_chunks(self):
        capture = SummaryCapture()
        assert capture.feed(_wrapped(BODY)) is None
        assert capture.phase == CapturePhase.IDLE
        assert capture.buffer_size == 0

    def test_single_chunk_summary(self):
        capture = SummaryCapture()
        capture.begin()
        assert capture.feed("preamble " + _wrapped(BODY) + " trailer") == BODY
        assert capture.phase == CapturePhase.IDLE
        assert capture.buffer_size == 0

    @pytest.mark.parametrize("size", [1, 4, 9, 17, 64])
    def test_round_trip_across_splits(self, size):
        capture = SummaryCapture()
        capture.begin()
        stream = "thinking...\n" + _wrapped(BODY) + "\n> "
        results = [capture.feed(stream[i:i + size]) for i in range(0, len(stream), size)]
        emitted = [r for r in results if r is not None]
        assert emitted == [BODY]

    def test_at_most_one_summary_per_capture(self):
        capture = SummaryCapture()
        capture.begin()
        assert capture.feed(_wrapped(BODY)) == BODY
        assert capture.feed(_wrapped(BODY)) is None

    def test_provisional_short_match_then_real_summary(self):
        capture = SummaryCapture()
        capture.begin()
        assert capture.feed("Wrap it in ===SUMMARY_START=== ... ===SUMMARY_END===\n") is None
        assert capture.capturing
        assert capture.feed(_wrapped(BODY)) == BODY

    def test_greedy_to_last_end_delimiter(self):
        capture = SummaryCapture()
        capture.begin()
        text = (
            "===SUMMARY_START===" + BODY + " The end marker ===SUMMARY_END=== "
            "appears inside. More text.===SUMMARY_END==="
        )
        result = capture.feed(text)
        assert result is not None
        assert "===SUMMARY" not in result
        assert result.startswith("Worked on")
        assert result.endswith("More text.")

    def test_below_threshold_stays_capturing(self):
        capture = SummaryCapture()
        capture.begin()
        assert capture.feed(_wrapped("too short")) is None
        assert capture.phase == CapturePhase.CAPTURING

    def test_configurable_threshold(self):
        capture = SummaryCapture(SummaryConfig(min_length=5))
        capture.begin()
        assert capture.feed(_wrapped("short ok")) == "short ok"

    def test_overflow_abandons(self, caplog):
        capture = SummaryCapture(SummaryConfig(max_buffer_chars=100))
        capture.begin()
        with caplog.at_level(logging.WARNING, logger="ptyscribe.summary"):
            assert capture.feed("===SUMMARY_START===" + "x" * 200) is None
        assert capture.phase == CapturePhase.IDLE
        assert capture.buffer_size == 0
        assert "buffer limit" in caplog.text
        assert capture.feed("===SUMMARY_END===") is None

    def test_begin_restarts(self):
        capture = SummaryCapture()
        capture.begin()
        capture.feed("===SUMMARY_START===partial")
        capture.begin()
        assert capture.buffer_size == 0
        assert capture.feed(_wrapped(BODY)) == BODY

    def test_abandon(self):
        capture = SummaryCapture()
        capture.begin()
        capture.feed("===SUMMARY_START===")
        capture.abandon()
        assert not capture.capturing
        assert capture.feed(_wrapped(BODY)) is None

    def test_quoted_end_delimiter_at_any_split(self):
        head = "a" * 20
        tail = "b" * 200
        stream = f"===SUMMARY_START==={head}===SUMMARY_END==={tail}===SUMMARY_END==="
        for offset in range(1, len(stream)):
            capture = SummaryCapture()
            capture.begin()
            results = [capture.feed(stream[:offset]), capture.feed(stream[offset:])]
            assert [r for r in results if r is not None] == [head + tail], offset
            assert not capture.capturing

    def test_quoted_end_delimiter_in_small_chunks(self):
        capture = SummaryCapture()
        capture.begin()
        stream = _wrapped("Step one closed ===SUMMARY_END=== early. " + BODY)
        results = [capture.feed(stream[i:i + 7]) for i in range(0, len(stream), 7)]
        emitted = [r for r in results if r is not None]
        assert len(emitted) == 1
        assert emitted[0].startswith("Step one closed")
        assert emitted[0].endswith("Next: narration dedup.")

    def test_rejected_preamble_split_before_real_start(self):
        capture = SummaryCapture()
        capture.begin()
        assert capture.feed("Format: ===SUMMARY_START=== x ===SUMMARY_END===\n===SUMM") is None
        assert capture.feed("ARY_START===\n" + BODY) is None
        assert capture.feed("\n===SUMMARY_END===") == BODY
