"""
Interaction State Machine - single source of truth for what the user is
doing inside the embedded document.

Exactly one mode is active at a time:
- IDLE: the highlight follows the pointer
- RESIZING: a handle is being dragged, the target resizes live
- EDITING_TEXT: the target's text is edited in place

Hover tracking and element resolution are suspended outside IDLE so a drag
or an in-progress text edit cannot be interrupted by stray events.
"""

import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from bs4 import Tag

from src.overlay.changes import StyleChange, TextChange
from src.overlay.constants import HANDLE_POSITIONS, MIN_ELEMENT_SIZE
from src.overlay.dom import editable_text, set_inline_styles, set_text
from src.overlay.messages import ElementDescriptor, FrameMessage, ShowContextMenu, StageChanges
from src.overlay.navigation import is_navigational
from src.overlay.resolver import EditableElement, ElementResolver, PointerTarget, Rect

logger = logging.getLogger(__name__)


class Mode(Enum):
    IDLE = 'idle'
    RESIZING = 'resizing'
    EDITING_TEXT = 'editing_text'


@dataclass
class InteractionState:
    """All mutable interaction state, reset in one place."""
    mode: Mode = Mode.IDLE
    pointer: Tuple[float, float] = (0.0, 0.0)
    highlighted: Optional[EditableElement] = None
    pinned: bool = False
    # The click that ends a resize drag; cleared by that click or the next press
    swallow_click: bool = False
    # Resizing
    resize_target: Optional[EditableElement] = None
    resize_handle: Optional[str] = None
    resize_origin: Tuple[float, float] = (0.0, 0.0)
    resize_start: Optional[Rect] = None
    resize_rect: Optional[Rect] = None
    # Text editing
    editing: Optional[EditableElement] = None
    text_snapshot: Optional[str] = None
    text_current: Optional[str] = None

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, f.default)


def size_styles(rect: Rect) -> Dict[str, str]:
    return {'width': f'{int(rect.width)}px', 'height': f'{int(rect.height)}px'}


def _is_within(node: Tag, ancestor: Tag) -> bool:
    return node is ancestor or any(parent is ancestor for parent in node.parents)


class InteractionStateMachine:
    """
    Turns frame events into state transitions, live DOM effects and
    outbound messages.

    `effects` is the FrameBridge used for live DOM changes, `emit` sends a
    frame message to the host. Every user action emits at most one message.
    """

    def __init__(self, resolver: ElementResolver, effects, emit: Callable[[FrameMessage], None]):
        self._resolver = resolver
        self._effects = effects
        self._emit = emit
        self._state = InteractionState()
        self._known: Dict[str, EditableElement] = {}
        self._on_state_change: Optional[Callable[[InteractionState], None]] = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def mode(self) -> Mode:
        return self._state.mode

    def set_on_state_change(self, callback: Callable[[InteractionState], None]):
        self._on_state_change = callback

    def _notify_change(self):
        if self._on_state_change:
            self._on_state_change(self._state)

    def _resolve(self, target: Optional[PointerTarget]) -> Optional[EditableElement]:
        element = self._resolver.resolve(target)
        if element is not None:
            self._known[element.identifier] = element
        return element

    def known_element(self, element_id: str) -> Optional[EditableElement]:
        return self._known.get(element_id)

    def forget(self, element_id: str) -> None:
        self._known.pop(element_id, None)
        st = self._state
        if st.highlighted and st.highlighted.identifier == element_id:
            st.highlighted = None
            st.pinned = False
            self._notify_change()

    # --- Hover ---

    def pointer_move(self, target: Optional[PointerTarget], x: float, y: float) -> None:
        st = self._state
        st.pointer = (x, y)

        if st.mode is Mode.RESIZING:
            self._drag_to(x, y)
            self._notify_change()
            return
        if st.mode is Mode.EDITING_TEXT:
            return
        if st.pinned:
            return

        element = self._resolve(target)
        if element is None and st.highlighted is None:
            return
        st.highlighted = element
        self._notify_change()

    def pointer_leave(self) -> None:
        st = self._state
        if st.mode is not Mode.IDLE or st.pinned or st.highlighted is None:
            return
        st.highlighted = None
        self._notify_change()

    # --- Click / context menu ---

    def click(self, target: Optional[PointerTarget], x: float, y: float) -> Optional[FrameMessage]:
        st = self._state
        st.pointer = (x, y)

        if st.mode is Mode.EDITING_TEXT:
            if target is not None and target.node is not None and _is_within(target.node, st.editing.node):
                return None
            return self._commit_text()
        if st.mode is Mode.RESIZING:
            return None
        if st.swallow_click:
            # The click that browsers fire after the mouseup ending a resize
            st.swallow_click = False
            return None

        element = self._resolve(target)
        if element is None:
            if st.pinned:
                st.pinned = False
                st.highlighted = None
                self._notify_change()
            return None

        if st.pinned and st.highlighted and st.highlighted.identifier != element.identifier:
            st.pinned = False
        st.highlighted = element

        if is_navigational(element.node):
            logger.debug(f"Ignoring click on navigational <{element.tag_name}> {element.identifier}")
            self._notify_change()
            return None

        node = element.node
        message = ShowContextMenu(
            element_id=element.identifier,
            position=(x, y),
            element=ElementDescriptor(
                id=element.identifier,
                tag_name=node.name.upper(),
                text_content=editable_text(node),
                class_name=' '.join(node.get('class') or []),
                rect=element.bounding_box,
            ),
        )
        self._notify_change()
        self._emit(message)
        return message

    # --- Resizing ---

    def handle_down(self, handle: str, x: float, y: float, element_id: Optional[str] = None) -> bool:
        st = self._state
        if st.mode is not Mode.IDLE:
            logger.debug(f"Handle press ignored while {st.mode.value}")
            return False
        target = st.highlighted
        if target is None or handle not in HANDLE_POSITIONS:
            return False
        if element_id is not None and element_id != target.identifier:
            return False

        st.swallow_click = False
        st.mode = Mode.RESIZING
        st.resize_target = target
        st.resize_handle = handle
        st.resize_origin = (x, y)
        st.resize_start = target.bounding_box
        st.resize_rect = target.bounding_box
        self._effects.begin_resize(target.identifier)
        self._notify_change()
        return True

    def _drag_to(self, x: float, y: float) -> None:
        st = self._state
        start, handle = st.resize_start, st.resize_handle
        dx = x - st.resize_origin[0]
        dy = y - st.resize_origin[1]

        width, height = start.width, start.height
        if 'e' in handle:
            width = start.width + dx
        elif 'w' in handle:
            width = start.width - dx
        if 's' in handle:
            height = start.height + dy
        elif 'n' in handle:
            height = start.height - dy

        st.resize_rect = start.resized(max(MIN_ELEMENT_SIZE, round(width)),
                                       max(MIN_ELEMENT_SIZE, round(height)))
        self._effects.set_styles(st.resize_target.identifier, size_styles(st.resize_rect))

    def pointer_up(self, x: float, y: float) -> Optional[FrameMessage]:
        st = self._state
        if st.mode is not Mode.RESIZING:
            return None

        self._drag_to(x, y)
        target, rect = st.resize_target, st.resize_rect
        styles = size_styles(rect)
        set_inline_styles(target.node, styles)
        target.bounding_box = rect
        self._effects.end_resize(target.identifier)

        st.mode = Mode.IDLE
        st.resize_target = st.resize_handle = st.resize_start = st.resize_rect = None
        st.highlighted = target
        st.pinned = False
        st.swallow_click = True

        message = StageChanges(element_id=target.identifier, changes=StyleChange(styles=styles))
        self._notify_change()
        self._emit(message)
        return message

    def arm_resize(self, element_id: str) -> bool:
        """Pin highlight and handles to an element (context menu 'resize')."""
        st = self._state
        element = self._known.get(element_id)
        if st.mode is not Mode.IDLE or element is None:
            return False
        st.highlighted = element
        st.pinned = True
        self._notify_change()
        return True

    # --- Text editing ---

    def double_click(self, target: Optional[PointerTarget]) -> bool:
        st = self._state
        if st.mode is not Mode.IDLE:
            return False
        element = self._resolve(target)
        if element is None or not element.has_editable_text:
            return False

        snapshot = editable_text(element.node)
        st.mode = Mode.EDITING_TEXT
        st.editing = element
        st.highlighted = element
        st.pinned = False
        st.swallow_click = False
        st.text_snapshot = snapshot
        st.text_current = snapshot
        self._effects.begin_text_edit(element.identifier)
        self._notify_change()
        return True

    def text_input(self, text: str) -> None:
        if self._state.mode is Mode.EDITING_TEXT:
            self._state.text_current = text

    def _commit_text(self) -> Optional[FrameMessage]:
        st = self._state
        element, snapshot, text = st.editing, st.text_snapshot, st.text_current
        self._effects.end_text_edit(element.identifier)
        st.mode = Mode.IDLE
        st.editing = st.text_snapshot = st.text_current = None

        message = None
        if text is not None and text != snapshot:
            set_text(element.node, text)
            message = StageChanges(element_id=element.identifier, changes=TextChange(text=text))
        self._notify_change()
        if message is not None:
            self._emit(message)
        return message

    def _revert_text(self) -> None:
        st = self._state
        element = st.editing
        self._effects.restore_text(element.identifier, st.text_snapshot)
        self._effects.end_text_edit(element.identifier)
        st.mode = Mode.IDLE
        st.editing = st.text_snapshot = st.text_current = None

    # --- Keyboard ---

    def key(self, key: str) -> None:
        if key != 'Escape':
            return
        st = self._state
        if st.mode is Mode.EDITING_TEXT:
            self._revert_text()
            self._notify_change()
        elif st.mode is Mode.RESIZING:
            self._effects.cancel_resize(st.resize_target.identifier)
            st.mode = Mode.IDLE
            st.highlighted = st.resize_target
            st.resize_target = st.resize_handle = st.resize_start = st.resize_rect = None
            st.swallow_click = True
            self._notify_change()

    # --- Teardown ---

    def teardown(self) -> None:
        """Undo any in-progress interaction and reset all state."""
        st = self._state
        if st.mode is Mode.EDITING_TEXT:
            self._revert_text()
        elif st.mode is Mode.RESIZING:
            self._effects.cancel_resize(st.resize_target.identifier)
        st.reset()
        self._known.clear()
        self._notify_change()
