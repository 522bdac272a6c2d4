"""
Frame Session - the editing runtime of one embedded document.

Owns the document mirror, the resolver, the interaction state machine, the
highlight presenter and the navigation guard. Raw browser events arrive via
`handle_event`; host messages arrive via `receive` once the session is
connected to the channel.
"""

import logging
from typing import Any, Callable, Dict, Optional

from bs4 import Tag

from src.overlay.bridge import build_frame_script
from src.overlay.changes import changes_to_dict
from src.overlay.constants import IDENTIFIER_ATTR, NODE_KEY_ATTR
from src.overlay.controller import InteractionStateMachine, Mode
from src.overlay.dom import (
    NodeIndex,
    apply_to_node,
    duplicate_node,
    find_by_identifier,
    parse_document,
    remove_node,
    serialize_document,
)
from src.overlay.messages import (
    ApplyChanges,
    ArmResize,
    Cleanup,
    DeleteElement,
    DuplicateElement,
    FrameMessage,
    HostMessage,
    MessageChannel,
)
from src.overlay.navigation import NavigationGuard
from src.overlay.presentation import HighlightPresenter
from src.overlay.resolver import ElementResolver, PointerTarget, Rect, generate_identifier

logger = logging.getLogger(__name__)


class FrameSession:

    def __init__(self, html: str, channel: MessageChannel, bridge,
                 id_factory: Callable[[], str] = generate_identifier,
                 parent_origin: Optional[str] = None):
        self._channel = channel
        self._bridge = bridge
        self._soup = parse_document(html)
        self._index = NodeIndex()
        self._index.stamp(self._soup)
        self._script = build_frame_script(parent_origin)
        self._active = False

        self.resolver = ElementResolver(on_assign=self._on_identifier_assigned, id_factory=id_factory)
        self.machine = InteractionStateMachine(self.resolver, bridge, self._emit)
        self.presenter = HighlightPresenter(bridge)
        self.machine.set_on_state_change(self.presenter.render)
        self.guard = NavigationGuard(bridge)

        self._events: Dict[str, Callable[[Dict[str, Any]], None]] = {
            'pointer_move': self._on_pointer_move,
            'pointer_leave': lambda event: self.machine.pointer_leave(),
            'click': self._on_click,
            'dblclick': self._on_double_click,
            'handle_down': self._on_handle_down,
            'pointer_up': self._on_pointer_up,
            'key': lambda event: self.machine.key(str(event['key'])),
            'text_input': self._on_text_input,
            'navigation_blocked': lambda event: self.guard.record_blocked(str(event.get('target') or '')),
        }

    @property
    def active(self) -> bool:
        return self._active

    @property
    def document(self):
        return self._soup

    @property
    def srcdoc(self) -> str:
        """Document for the iframe, node keys included."""
        return str(self._soup)

    def serialize(self) -> str:
        """Current document for persistence: node keys stripped, identifiers kept."""
        return serialize_document(self._soup)

    def tag_name(self, element_id: str) -> str:
        node = find_by_identifier(self._soup, element_id)
        return node.name if node is not None else ''

    # --- Lifecycle ---

    def activate(self) -> None:
        """Inject the frame script, install the guard and start receiving host messages."""
        if self._active:
            self._reset_local()
        self._bridge.inject(self._script)
        self.guard.install()
        self._channel.connect_frame(self.receive)
        self._active = True
        logger.info("Frame session activated")

    def _reset_local(self) -> None:
        self.machine.teardown()
        self.guard.uninstall()
        self.presenter.reset()

    def deactivate(self) -> None:
        self._reset_local()
        self._bridge.cleanup()
        self._channel.disconnect_frame()
        self._active = False
        logger.info("Frame session cleaned up")

    def _emit(self, message: FrameMessage) -> None:
        self._channel.send_to_host(message, origin=self._channel.frame_origin)

    def _on_identifier_assigned(self, node: Tag, identifier: str) -> None:
        key = node.get(NODE_KEY_ATTR)
        if key is not None:
            self._bridge.set_identifier(key, identifier)

    # --- Frame events ---

    def handle_event(self, event: Dict[str, Any], origin: Optional[str]) -> bool:
        """Dispatch one raw browser event. Returns False when it was dropped."""
        if not self._active:
            logger.debug("Frame event ignored, session inactive")
            return False
        if not self._channel.is_trusted(origin):
            logger.warning(f"Dropped frame event from untrusted origin {origin!r}")
            return False
        if not isinstance(event, dict) or event.get('kind') not in self._events:
            logger.warning(f"Dropped malformed frame event: {event!r}")
            return False

        try:
            self._events[event['kind']](event)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Dropped malformed {event['kind']} event: {e}")
            return False
        except Exception as e:
            logger.exception(f"Frame event {event['kind']} failed: {e}")
            return False
        return True

    def _target(self, event: Dict[str, Any]) -> Optional[PointerTarget]:
        node = self._index.get(event.get('node'))
        if node is None:
            return None
        return PointerTarget(
            node=node,
            rect=Rect.from_dict(event.get('rect') or {}),
            visible=bool(event.get('visible', True)),
        )

    @staticmethod
    def _point(event: Dict[str, Any]):
        return float(event['x']), float(event['y'])

    def _on_pointer_move(self, event):
        x, y = self._point(event)
        self.machine.pointer_move(self._target(event), x, y)

    def _on_click(self, event):
        x, y = self._point(event)
        self.machine.click(self._target(event), x, y)

    def _on_double_click(self, event):
        self.machine.double_click(self._target(event))

    def _on_handle_down(self, event):
        x, y = self._point(event)
        self.machine.handle_down(str(event['handle']), x, y, event.get('elementId') or None)

    def _on_pointer_up(self, event):
        x, y = self._point(event)
        self.machine.pointer_up(x, y)

    def _on_text_input(self, event):
        text = event['text']
        if not isinstance(text, str):
            raise TypeError("text_input requires a string")
        self.machine.text_input(text)

    # --- Host messages ---

    def receive(self, message: HostMessage) -> None:
        if isinstance(message, ApplyChanges):
            self._apply(message)
        elif isinstance(message, DuplicateElement):
            self._duplicate(message.element_id)
        elif isinstance(message, DeleteElement):
            self._delete(message.element_id)
        elif isinstance(message, ArmResize):
            if not self.machine.arm_resize(message.element_id):
                logger.warning(f"Cannot arm resize for {message.element_id}")
        elif isinstance(message, Cleanup):
            self.deactivate()
        else:
            logger.warning(f"Frame ignored unexpected message {type(message).__name__}")

    def _node(self, element_id: str) -> Optional[Tag]:
        node = find_by_identifier(self._soup, element_id)
        if node is None:
            logger.warning(f"Element {element_id} not found in document")
        return node

    def _apply(self, message: ApplyChanges) -> None:
        node = self._node(message.element_id)
        if node is None:
            return
        apply_to_node(node, message.changes)
        self._bridge.apply_changes(message.element_id, changes_to_dict(message.changes))
        self.presenter.flash(message.element_id)

    def _duplicate(self, element_id: str) -> None:
        node = self._node(element_id)
        if node is None:
            return
        clone = duplicate_node(node, self._index)
        self._bridge.insert_after(element_id, str(clone))
        logger.info(f"Duplicated <{node.name}> {element_id}")

    def _delete(self, element_id: str) -> None:
        if self.machine.mode is not Mode.IDLE:
            logger.warning(f"Not deleting {element_id} while {self.machine.mode.value}")
            return
        node = self._node(element_id)
        if node is None:
            return
        for tag in [node, *node.find_all(True)]:
            identifier = tag.get('id') or tag.get(IDENTIFIER_ATTR)
            if identifier:
                self.machine.forget(identifier)
        self._bridge.remove(element_id)
        tag = node.name
        remove_node(node, self._index)
        logger.info(f"Deleted <{tag}> {element_id}")
