from __future__ import annotations

import re

import pyte

from ptyscribe.config import SurfaceConfig


class ScreenSurface:
    """Headless display surface backed by a pyte virtual terminal.

    Receives the display text produced by a session interpreter (control
    sequences intact, markers stripped) and renders it the way a terminal
    would. Useful for inspecting what a user would see, and as the surface
    a detached session replays into.
    """

    def __init__(self, config: SurfaceConfig | None = None) -> None:
        """Initialize a blank screen.

        Uses ``pyte.HistoryScreen`` so lines scrolled off the top stay
        readable through :meth:`get_full_display`.

        Args:
            config: Screen geometry and scrollback size. Defaults to
                30x120 with 5000 lines of history.
        """
        config = config or SurfaceConfig()
        self.rows = config.rows
        self.cols = config.cols
        self.screen = pyte.HistoryScreen(config.cols, config.rows, history=config.history)
        self.stream = pyte.Stream(self.screen)

    def write(self, text: str | bytes) -> None:
        """Feed display text into the virtual terminal.

        Args:
            text: Display text. Bytes are decoded as UTF-8 with
                replacement characters for invalid sequences.
        """
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        self.stream.feed(text)

    def get_display(self) -> list[str]:
        """Return the visible screen lines, right-stripped."""
        return [line.rstrip() for line in self.screen.display]

    def get_full_display(self) -> list[str]:
        """Return scrollback history followed by the visible screen."""
        history_lines: list[str] = []
        for row in self.screen.history.top:
            rendered = "".join(row[col].data for col in range(self.cols)).rstrip()
            history_lines.append(rendered)
        return history_lines + self.get_display()

    def get_text(self) -> str:
        """Return everything rendered so far with blank-line runs collapsed."""
        text = "\n".join(self.get_full_display())
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()

    def reset(self) -> None:
        """Clear the screen and scrollback."""
        self.screen.reset()
        self.screen.history.top.clear()
