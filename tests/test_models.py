import pytest

from family_crop.models import (
    clamp_pan, compute_draw_rect, get_preset, pan_from_drag, scale_info,
)

SOURCES = [(800, 600), (600, 800), (1000, 1000), (123, 4567), (4000, 300), (1, 1)]
TARGETS = [(600, 600), (1600, 900), (1200, 675), (512, 512)]
ZOOMS = [1.0, 1.37, 2.0, 3.0]
PANS = [-1.0, -0.4, 0.0, 0.25, 1.0]

EPS = 1e-6


@pytest.mark.parametrize("src", SOURCES)
@pytest.mark.parametrize("target", TARGETS)
@pytest.mark.parametrize("zoom", ZOOMS)
def test_draw_rect_always_covers_target(src, target, zoom):
    tw, th = target
    for pan_x in PANS:
        for pan_y in PANS:
            rect = compute_draw_rect(src, tw, th, zoom, pan_x, pan_y)
            assert rect.w >= tw - EPS
            assert rect.h >= th - EPS
            # No blank edge on any side
            assert rect.x <= EPS
            assert rect.y <= EPS
            assert rect.x + rect.w >= tw - EPS
            assert rect.y + rect.h >= th - EPS


def test_square_crop_of_landscape_source():
    info = scale_info((800, 600), 600, 600, 1.0)
    assert info.draw_w == pytest.approx(800)
    assert info.draw_h == pytest.approx(600)
    assert info.max_shift_x == pytest.approx(100)
    assert info.max_shift_y == 0

    centered = compute_draw_rect((800, 600), 600, 600, 1.0, 0.0, 0.0)
    assert centered.x == pytest.approx(-100)
    assert centered.y == pytest.approx(0)

    # pan_x = 1 shows the right edge of the source
    right = compute_draw_rect((800, 600), 600, 600, 1.0, 1.0, 0.0)
    assert right.x == pytest.approx(-200)
    assert right.x + right.w == pytest.approx(600)


def test_zoom_scales_draw_size():
    info = scale_info((800, 600), 600, 600, 2.0)
    assert info.draw_w == pytest.approx(1600)
    assert info.draw_h == pytest.approx(1200)
    assert info.max_shift_y == pytest.approx(300)


def test_draw_rect_is_pure():
    args = ((640, 480), 600, 600, 1.5, 0.3, -0.2)
    assert compute_draw_rect(*args) == compute_draw_rect(*args)


def test_pan_is_clamped_inside_geometry():
    over = compute_draw_rect((800, 600), 600, 600, 1.0, 5.0, 0.0)
    edge = compute_draw_rect((800, 600), 600, 600, 1.0, 1.0, 0.0)
    assert over == edge


def test_no_source_is_degenerate():
    info = scale_info(None, 600, 600, 2.5)
    assert (info.draw_w, info.draw_h) == (600, 600)
    assert (info.max_shift_x, info.max_shift_y) == (0, 0)
    rect = compute_draw_rect(None, 600, 600, 2.5, 1.0, -1.0)
    assert (rect.x, rect.y, rect.w, rect.h) == (0, 0, 600, 600)


def test_zero_sized_source_rejected():
    with pytest.raises(ValueError):
        scale_info((0, 10), 600, 600, 1.0)


class TestPanFromDrag:
    def test_drag_right_moves_window_left(self):
        assert pan_from_drag(0.0, 50, 100) == pytest.approx(-0.5)

    def test_clamped(self):
        assert pan_from_drag(0.0, -500, 100) == 1.0
        assert pan_from_drag(0.0, 500, 100) == -1.0

    def test_zero_shift_keeps_offset(self):
        assert pan_from_drag(0.3, 50, 0) == 0.3

    def test_clamp_pan(self):
        assert clamp_pan(-3) == -1.0
        assert clamp_pan(0.2) == 0.2


class TestPresets:
    def test_profile_fills_placeholders(self):
        preset = get_preset("profile", profile_id=12)
        assert preset.endpoint == "/admin/family-profiles/12/photo"
        assert preset.filename_prefix == "family-profile-12"
        assert preset.circular
        assert (preset.output_w, preset.output_h) == (512, 512)

    def test_landing_and_cover(self):
        landing = get_preset("landing")
        assert (landing.preview_w, landing.preview_h) == (1600, 900)
        assert landing.endpoint == "/admin/landing-background/photo"
        assert not landing.circular
        cover = get_preset("blog_cover")
        assert (cover.output_w, cover.output_h) == (1200, 675)
        assert cover.filename_prefix == "cover"

    def test_profile_requires_id(self):
        with pytest.raises(ValueError, match="profile_id"):
            get_preset("profile")

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            get_preset("banner")
