import pytest

from family_crop.interaction import DRAGGING, IDLE, InteractionController
from family_crop.session import CropSession


@pytest.fixture
def controller(profile_session):
    return InteractionController(profile_session)


def test_drag_updates_pan(controller, profile_session):
    assert controller.pointer_down(1, 300, 300)
    assert controller.state == DRAGGING
    assert controller.pointer_move(1, 350, 300)
    assert profile_session.pan_x == pytest.approx(-0.5)
    assert controller.pointer_up(1)
    assert controller.state == IDLE


def test_drag_is_relative_to_start_pan(controller, profile_session):
    profile_session.set_pan(0.25, 0.0)
    controller.pointer_down(1, 100, 100)
    controller.pointer_move(1, 75, 100)
    assert profile_session.pan_x == pytest.approx(0.5)


def test_axis_without_overflow_is_untouched(controller, profile_session):
    # 800x600 into 600x600 has no vertical overflow
    profile_session.pan_y = 0.0
    controller.pointer_down(1, 300, 300)
    controller.pointer_move(1, 300, 500)
    assert profile_session.pan_y == 0.0


def test_second_pointer_is_ignored(controller, profile_session):
    controller.pointer_down(1, 300, 300)
    assert not controller.pointer_down(2, 0, 0)
    assert not controller.pointer_move(2, 500, 300)
    assert profile_session.pan_x == 0.0
    assert not controller.pointer_up(2)
    assert controller.dragging
    assert controller.pointer_id == 1


def test_move_without_drag_is_ignored(controller, profile_session):
    assert not controller.pointer_move(1, 400, 300)
    assert profile_session.pan_x == 0.0


def test_cancel_is_idempotent(controller):
    controller.pointer_down(1, 300, 300)
    assert controller.cancel()
    assert not controller.cancel()
    assert controller.state == IDLE
    assert controller.pointer_id is None


def test_no_image_no_drag(profile_preset):
    controller = InteractionController(CropSession(profile_preset))
    assert not controller.pointer_down(1, 10, 10)
    assert controller.state == IDLE


def test_pan_stays_in_range_after_zoom(controller, profile_session):
    controller.pointer_down(1, 300, 300)
    controller.pointer_move(1, -5000, -5000)
    assert -1.0 <= profile_session.pan_x <= 1.0
    assert -1.0 <= profile_session.pan_y <= 1.0
    controller.pointer_up(1)

    profile_session.set_zoom(3.0)
    controller.pointer_down(1, 300, 300)
    controller.pointer_move(1, 9000, 9000)
    assert profile_session.pan_x == -1.0
    assert profile_session.pan_y == -1.0
