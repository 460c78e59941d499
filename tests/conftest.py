from unittest.mock import AsyncMock, MagicMock

import pytest

from ptyscribe.config import AutoworkConfig


@pytest.fixture
def writer():
    """Async session writer that records every write."""
    return AsyncMock()


@pytest.fixture
def emit():
    """Event sink collecting emitted session events."""
    return MagicMock()


@pytest.fixture
def fast_autowork():
    """Autowork config with every injection delay set to zero."""
    return AutoworkConfig(
        clear_ack_delay_s=0, fallback_delay_s=0, summary_paste_delay_s=0, submit_delay_s=0,
    )
