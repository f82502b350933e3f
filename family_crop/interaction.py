"""
Pointer-drag state machine for panning the image inside the crop frame.

Two states: ``IDLE`` and ``DRAGGING``.  Only one pointer may drag at a
time; events from any other pointer id are ignored until the active drag
ends.  Coordinates are in preview-canvas pixels.
"""

from family_crop.models import pan_from_drag
from family_crop.session import CropSession

IDLE = "idle"
DRAGGING = "dragging"


class InteractionController:
    """Translates pointer events into pan-offset updates on a session."""

    def __init__(self, session: CropSession):
        self._session = session
        self.state = IDLE
        self.pointer_id: int | None = None
        self._start_x = 0.0
        self._start_y = 0.0
        self._start_pan_x = 0.0
        self._start_pan_y = 0.0

    @property
    def dragging(self) -> bool:
        return self.state == DRAGGING

    def pointer_down(self, pointer_id: int, x: float, y: float) -> bool:
        """Start a drag.  Returns True if the state changed."""
        if self.dragging or not self._session.has_image():
            return False
        self.state = DRAGGING
        self.pointer_id = pointer_id
        self._start_x = x
        self._start_y = y
        self._start_pan_x = self._session.pan_x
        self._start_pan_y = self._session.pan_y
        return True

    def pointer_move(self, pointer_id: int, x: float, y: float) -> bool:
        """Update pan offsets for the active pointer.  Returns True if handled."""
        if not self.dragging or pointer_id != self.pointer_id or not self._session.has_image():
            return False
        info = self._session.preview_scale_info()
        pan_x = pan_from_drag(self._start_pan_x, x - self._start_x, info.max_shift_x)
        pan_y = pan_from_drag(self._start_pan_y, y - self._start_y, info.max_shift_y)
        if info.max_shift_x <= 0:
            pan_x = self._session.pan_x
        if info.max_shift_y <= 0:
            pan_y = self._session.pan_y
        self._session.set_pan(pan_x, pan_y)
        return True

    def pointer_up(self, pointer_id: int) -> bool:
        """End the drag if *pointer_id* is the one that started it."""
        if not self.dragging or pointer_id != self.pointer_id:
            return False
        self._end()
        return True

    def cancel(self) -> bool:
        """Unconditionally return to IDLE.  Safe to call repeatedly."""
        was_dragging = self.dragging
        self._end()
        return was_dragging

    def _end(self):
        self.state = IDLE
        self.pointer_id = None
