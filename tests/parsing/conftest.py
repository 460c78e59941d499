import pytest

# ---- Representative ANSI output from interactive agent sessions ----

# Status bar: words separated by cursor-forward instead of spaces
SAMPLE_STATUS_BAR_ANSI = (
    "\x1b[34mptyscribe\x1b[1C\x1b[90m│\x1b[1C"
    "\x1b[32m⎇\x1b[1Cmain\x1b[1C⇡7\x1b[1C\x1b[90m│\x1b[1C"
    "\x1b[38;5;100mUsage:\x1b[1C32%\x1b[1C███▎░░░░░░\x1b[39m"
)

# Startup sequence with synchronized-update mode and CR CR LF line ends
SAMPLE_STARTUP_ANSI = (
    "\x1b[?2026h\r\r\n"
    "\x1b[38;5;220m────────\x1b[39m\r\r\n"
    "\x1b[1C\x1b[1mAccessing\x1b[1Cworkspace:\x1b[22m\r\r\n"
)

# Narration marker rendered with truecolor styling around it
SAMPLE_STYLED_TTS_ANSI = (
    "\x1b[38;2;255;255;255m⏺\x1b[1C\x1b[39m«tts»Running\x1b[1Cthe\x1b[1Ctest"
    "\x1b[1Csuite\x1b[1Cnow.«/tts»\x1b[39m\r\r\n"
)

# Continuation marker at the end of a turn, followed by the prompt redraw
SAMPLE_AUTOWORK_END_ANSI = (
    "\x1b[38;2;255;255;255m⏺\x1b[1C\x1b[39mClosed\x1b[1Ctask.\r\r\n"
    "===AUTOWORK_CONTINUE===\r\r\n"
    "\x1b[2K\x1b[1A\x1b[2K\x1b[G\x1b[38;5;246m❯\x1b[1C\x1b[39m"
)


@pytest.fixture
def status_bar_ansi():
    return SAMPLE_STATUS_BAR_ANSI


@pytest.fixture
def startup_ansi():
    return SAMPLE_STARTUP_ANSI


@pytest.fixture
def styled_tts_ansi():
    return SAMPLE_STYLED_TTS_ANSI


@pytest.fixture
def autowork_end_ansi():
    return SAMPLE_AUTOWORK_END_ANSI
