"""
Tests for the drawing surface.
"""

import numpy as np
import pytest

from display.surface import COLORS, DrawingSurface, to_bgr


class TestColors:
    def test_named_colors_are_bgr(self):
        assert to_bgr("red") == (0, 0, 255)
        assert to_bgr("White") == (255, 255, 255)

    def test_tuple_passthrough(self):
        assert to_bgr((1, 2, 3)) == (1, 2, 3)

    def test_unknown_color(self):
        with pytest.raises(ValueError, match="Unknown color"):
            to_bgr("chartreuse")


class TestDrawingSurface:
    def test_rejects_empty_size(self):
        with pytest.raises(ValueError):
            DrawingSurface(0, 480)

    def test_starts_black(self):
        surface = DrawingSurface(64, 48)
        snap = surface.snapshot()
        assert snap.shape == (48, 64, 3)
        assert snap.max() == 0

    def test_draw_image_scales_to_surface(self):
        surface = DrawingSurface(64, 48)
        surface.draw_image(np.full((480, 640, 3), 77, dtype=np.uint8))

        snap = surface.snapshot()
        assert snap.min() == 77 and snap.max() == 77

    def test_draw_image_gray_and_bgra(self):
        surface = DrawingSurface(8, 8)
        surface.draw_image(np.full((8, 8), 5, dtype=np.uint8))
        assert tuple(surface.snapshot()[0, 0]) == (5, 5, 5)

        surface.draw_image(np.full((8, 8, 4), 9, dtype=np.uint8))
        assert tuple(surface.snapshot()[0, 0]) == (9, 9, 9)

    def test_draw_image_clipped_to_surface(self):
        surface = DrawingSurface(10, 10)
        surface.draw_image(np.full((10, 10, 3), 200, dtype=np.uint8), x=5, y=5, w=10, h=10)

        snap = surface.snapshot()
        assert snap[9, 9].max() == 200
        assert snap[4, 4].max() == 0

    def test_clear_region(self):
        surface = DrawingSurface(10, 10)
        surface.draw_image(np.full((10, 10, 3), 50, dtype=np.uint8))

        surface.clear(0, 0, 5, 10)

        snap = surface.snapshot()
        assert snap[:, :5].max() == 0
        assert snap[:, 5:].min() == 50

    def test_stroke_rect_uses_stroke_color(self):
        surface = DrawingSurface(100, 100)
        surface.set_stroke_color("green")
        surface.set_line_width(2)

        surface.stroke_rect(10, 10, 50, 50)

        snap = surface.snapshot()
        assert tuple(snap[10, 30]) == COLORS["green"]
        assert tuple(snap[35, 35]) == (0, 0, 0)

    def test_fill_rect_uses_fill_color(self):
        surface = DrawingSurface(100, 100)
        surface.set_fill_color("white")

        surface.fill_rect(10, 10, 20, 20)

        snap = surface.snapshot()
        assert tuple(snap[20, 20]) == (255, 255, 255)
        assert tuple(snap[50, 50]) == (0, 0, 0)

    def test_fill_text_draws_pixels(self):
        surface = DrawingSurface(200, 50)
        surface.set_fill_color("white")

        surface.fill_text("Score: 0.95", 5, 30)

        assert surface.snapshot().max() > 0

    def test_line_width_at_least_one(self):
        surface = DrawingSurface(10, 10)
        surface.set_line_width(0)
        assert surface.line_width == 1

    def test_batch_bumps_version(self):
        surface = DrawingSurface(10, 10)
        assert surface.version == 0

        with surface.batch():
            surface.clear()
            surface.fill_rect(0, 0, 2, 2)

        assert surface.version == 1

    def test_snapshot_is_a_copy(self):
        surface = DrawingSurface(10, 10)
        snap = surface.snapshot()
        snap[:] = 255
        assert surface.snapshot().max() == 0

    def test_encode_jpeg(self):
        jpeg = DrawingSurface(32, 24).encode_jpeg()
        assert jpeg[:2] == b"\xff\xd8"
