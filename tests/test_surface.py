from __future__ import annotations

from ptyscribe.config import SurfaceConfig
from ptyscribe.surface import ScreenSurface


class TestScreenSurface:
    def test_basic_text(self):
        surface = ScreenSurface(SurfaceConfig(rows=5, cols=40))
        surface.write("Hello world")
        assert "Hello world" in surface.get_text()

    def test_colors_rendered_away(self):
        surface = ScreenSurface(SurfaceConfig(rows=5, cols=40))
        surface.write("\x1b[31mred text\x1b[0m")
        assert surface.get_text() == "red text"

    def test_cursor_forward(self):
        surface = ScreenSurface(SurfaceConfig(rows=5, cols=80))
        surface.write("Accessing\x1b[1Cworkspace:")
        assert "Accessing workspace:" in surface.get_text()

    def test_bytes_input(self):
        surface = ScreenSurface(SurfaceConfig(rows=5, cols=40))
        surface.write("café".encode("utf-8"))
        assert "café" in surface.get_text()

    def test_scrollback_kept(self):
        surface = ScreenSurface(SurfaceConfig(rows=3, cols=20, history=100))
        for i in range(10):
            surface.write(f"line {i}\r\n")
        assert "line 0" not in surface.get_display()
        assert "line 0" in surface.get_full_display()

    def test_reset(self):
        surface = ScreenSurface(SurfaceConfig(rows=3, cols=20))
        for i in range(10):
            surface.write(f"line {i}\r\n")
        surface.reset()
        assert surface.get_text() == ""
