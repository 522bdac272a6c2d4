"""
Highlight & resize presentation.

The view is derived entirely from the interaction state; the presenter only
pushes it to the frame when it actually changed. Called on every pointer
move, so it must stay cheap.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from src.overlay.constants import FLASH_SECONDS, HANDLE_POSITIONS
from src.overlay.controller import InteractionState, Mode
from src.overlay.resolver import Rect


@dataclass(frozen=True)
class HighlightView:
    element_id: Optional[str] = None
    rect: Optional[Rect] = None
    show_handles: bool = False
    handles: Tuple[Tuple[str, float, float], ...] = ()

    @property
    def visible(self) -> bool:
        return self.rect is not None

    def to_dict(self) -> dict:
        return {
            'elementId': self.element_id,
            'rect': self.rect.to_dict() if self.rect else None,
            'showHandles': self.show_handles,
            'handles': [{'position': name, 'x': x, 'y': y} for name, x, y in self.handles],
        }


HIDDEN = HighlightView()


def handle_points(rect: Rect) -> Tuple[Tuple[str, float, float], ...]:
    """Centre points of the eight handles: corners and edge midpoints."""
    mid_x = rect.x + rect.width / 2
    mid_y = rect.y + rect.height / 2
    points = {
        'nw': (rect.left, rect.top),
        'n': (mid_x, rect.top),
        'ne': (rect.right, rect.top),
        'e': (rect.right, mid_y),
        'se': (rect.right, rect.bottom),
        's': (mid_x, rect.bottom),
        'sw': (rect.left, rect.bottom),
        'w': (rect.left, mid_y),
    }
    return tuple((name, *points[name]) for name in HANDLE_POSITIONS)


def compute_view(state: InteractionState) -> HighlightView:
    if state.mode is Mode.RESIZING and state.resize_target and state.resize_rect:
        rect = state.resize_rect
        return HighlightView(state.resize_target.identifier, rect, True, handle_points(rect))

    if state.mode is Mode.EDITING_TEXT and state.editing:
        # Handles would get in the way of the text caret
        return HighlightView(state.editing.identifier, state.editing.bounding_box, False, ())

    if state.highlighted is None:
        return HIDDEN

    rect = state.highlighted.bounding_box
    return HighlightView(state.highlighted.identifier, rect, True, handle_points(rect))


class HighlightPresenter:
    """Mirrors the current view into the frame's overlay layers."""

    def __init__(self, bridge):
        self._bridge = bridge
        self._last = HIDDEN

    @property
    def current(self) -> HighlightView:
        return self._last

    def render(self, state: InteractionState) -> HighlightView:
        view = compute_view(state)
        if view == self._last:
            return view
        if view.visible:
            self._bridge.show_highlight(view)
        else:
            self._bridge.hide_highlight()
        self._last = view
        return view

    def flash(self, element_id: str) -> None:
        self._bridge.flash(element_id, FLASH_SECONDS)

    def reset(self) -> None:
        self._last = HIDDEN
