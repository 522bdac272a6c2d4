"""
Cross-frame message protocol.

Frame -> host:  SHOW_CONTEXT_MENU, STAGE_CHANGES
Host -> frame:  APPLY_CHANGES, DUPLICATE_ELEMENT, DELETE_ELEMENT, ARM_RESIZE, CLEANUP

Every message is serialised to its wire dict and parsed back on delivery,
so both endpoints only ever see messages that survive `parse_message`.
The channel drops anything coming from an origin outside its allow-list.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Iterable, Optional, Tuple, Union

from src.overlay.changes import ElementChanges, changes_from_dict, changes_to_dict
from src.overlay.resolver import Rect

logger = logging.getLogger(__name__)


class MessageError(ValueError):
    """Raised for unknown or malformed message payloads."""


class ChannelError(RuntimeError):
    """Raised when the other endpoint is not connected."""


@dataclass(frozen=True)
class ElementDescriptor:
    """Snapshot of an element handed to the host with SHOW_CONTEXT_MENU."""
    id: str
    tag_name: str
    text_content: str
    class_name: str
    rect: Rect

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'tagName': self.tag_name,
            'textContent': self.text_content,
            'className': self.class_name,
            'rect': self.rect.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ElementDescriptor':
        return cls(
            id=str(data['id']),
            tag_name=str(data['tagName']),
            text_content=str(data.get('textContent') or ''),
            class_name=str(data.get('className') or ''),
            rect=Rect.from_dict(data.get('rect') or {}),
        )


@dataclass(frozen=True)
class ShowContextMenu:
    element_id: str
    position: Tuple[float, float]
    element: ElementDescriptor


@dataclass(frozen=True)
class StageChanges:
    element_id: str
    changes: ElementChanges


@dataclass(frozen=True)
class ApplyChanges:
    element_id: str
    changes: ElementChanges


@dataclass(frozen=True)
class DuplicateElement:
    element_id: str


@dataclass(frozen=True)
class DeleteElement:
    element_id: str


@dataclass(frozen=True)
class ArmResize:
    element_id: str


@dataclass(frozen=True)
class Cleanup:
    pass


FrameMessage = Union[ShowContextMenu, StageChanges]
HostMessage = Union[ApplyChanges, DuplicateElement, DeleteElement, ArmResize, Cleanup]
Message = Union[FrameMessage, HostMessage]

FRAME_MESSAGE_TYPES = (ShowContextMenu, StageChanges)
HOST_MESSAGE_TYPES = (ApplyChanges, DuplicateElement, DeleteElement, ArmResize, Cleanup)


def message_to_dict(message: Message) -> Dict[str, Any]:
    """Serialise a message to its wire form."""
    if isinstance(message, ShowContextMenu):
        return {
            'type': 'SHOW_CONTEXT_MENU',
            'elementId': message.element_id,
            'position': {'x': message.position[0], 'y': message.position[1]},
            'element': message.element.to_dict(),
        }
    if isinstance(message, StageChanges):
        return {'type': 'STAGE_CHANGES', 'elementId': message.element_id,
                'changes': changes_to_dict(message.changes)}
    if isinstance(message, ApplyChanges):
        return {'type': 'APPLY_CHANGES', 'elementId': message.element_id,
                'changes': changes_to_dict(message.changes)}
    if isinstance(message, DuplicateElement):
        return {'type': 'DUPLICATE_ELEMENT', 'elementId': message.element_id}
    if isinstance(message, DeleteElement):
        return {'type': 'DELETE_ELEMENT', 'elementId': message.element_id}
    if isinstance(message, ArmResize):
        return {'type': 'ARM_RESIZE', 'elementId': message.element_id}
    if isinstance(message, Cleanup):
        return {'type': 'CLEANUP'}
    raise MessageError(f"Not a protocol message: {message!r}")


def _element_id(data: Dict[str, Any]) -> str:
    element_id = data.get('elementId')
    if not isinstance(element_id, str) or not element_id:
        raise MessageError(f"{data.get('type')} requires a non-empty elementId")
    return element_id


def parse_message(data: Any) -> Message:
    """Parse a wire dict into a typed message. Raises MessageError."""
    if not isinstance(data, dict):
        raise MessageError(f"Message must be an object, got {type(data).__name__}")

    kind = data.get('type')
    try:
        if kind == 'SHOW_CONTEXT_MENU':
            position = data.get('position') or {}
            return ShowContextMenu(
                element_id=_element_id(data),
                position=(float(position['x']), float(position['y'])),
                element=ElementDescriptor.from_dict(data['element']),
            )
        if kind == 'STAGE_CHANGES':
            return StageChanges(element_id=_element_id(data), changes=changes_from_dict(data.get('changes')))
        if kind == 'APPLY_CHANGES':
            return ApplyChanges(element_id=_element_id(data), changes=changes_from_dict(data.get('changes')))
        if kind == 'DUPLICATE_ELEMENT':
            return DuplicateElement(element_id=_element_id(data))
        if kind == 'DELETE_ELEMENT':
            return DeleteElement(element_id=_element_id(data))
        if kind == 'ARM_RESIZE':
            return ArmResize(element_id=_element_id(data))
        if kind == 'CLEANUP':
            return Cleanup()
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, MessageError):
            raise
        raise MessageError(f"Malformed {kind} message: {e}") from e

    raise MessageError(f"Unknown message type: {kind!r}")


class MessageChannel:
    """
    In-process, two-way channel between the frame session and the host.

    Each direction is a FIFO queue. Sending while a delivery is in progress
    (a handler replying) enqueues behind the current message, so handlers
    always observe messages in the order the triggering actions happened.
    """

    def __init__(self, trusted_origins: Iterable[str], host_origin: str, frame_origin: Optional[str] = None):
        self._trusted = frozenset(o.rstrip('/') for o in trusted_origins if o)
        self.host_origin = host_origin.rstrip('/')
        self.frame_origin = (frame_origin or host_origin).rstrip('/')
        self._host_handler: Optional[Callable[[FrameMessage], None]] = None
        self._frame_handler: Optional[Callable[[HostMessage], None]] = None
        self._to_host: Deque[Dict[str, Any]] = deque()
        self._to_frame: Deque[Dict[str, Any]] = deque()
        self._delivering_host = False
        self._delivering_frame = False

    @property
    def trusted_origins(self) -> frozenset:
        return self._trusted

    def is_trusted(self, origin: Optional[str]) -> bool:
        return bool(origin) and origin.rstrip('/') in self._trusted

    # --- Endpoints ---

    def connect_host(self, handler: Callable[[FrameMessage], None]) -> None:
        self._host_handler = handler

    def disconnect_host(self) -> None:
        self._host_handler = None
        self._to_host.clear()

    def connect_frame(self, handler: Callable[[HostMessage], None]) -> None:
        self._frame_handler = handler

    def disconnect_frame(self) -> None:
        self._frame_handler = None
        self._to_frame.clear()

    @property
    def host_connected(self) -> bool:
        return self._host_handler is not None

    @property
    def frame_connected(self) -> bool:
        return self._frame_handler is not None

    # --- Sending ---

    def send_to_host(self, message: FrameMessage, origin: Optional[str] = None) -> bool:
        """
        Deliver a frame message to the host.

        Returns False when the message was dropped (untrusted origin or no
        host listening).
        """
        origin = origin or self.frame_origin
        if not self.is_trusted(origin):
            logger.warning(f"Dropped {type(message).__name__} from untrusted origin {origin!r}")
            return False
        if not isinstance(message, FRAME_MESSAGE_TYPES):
            raise MessageError(f"{type(message).__name__} cannot travel frame -> host")
        if self._host_handler is None:
            logger.debug(f"No host listening, dropped {type(message).__name__}")
            return False

        self._to_host.append(message_to_dict(message))
        if not self._delivering_host:
            self._delivering_host = True
            try:
                self._drain(self._to_host, lambda: self._host_handler, FRAME_MESSAGE_TYPES)
            finally:
                self._delivering_host = False
        return True

    def send_to_frame(self, message: HostMessage, origin: Optional[str] = None) -> bool:
        """
        Deliver a host message to the frame.

        Raises ChannelError when no frame is connected (frame unreachable).
        """
        origin = origin or self.host_origin
        if not self.is_trusted(origin):
            logger.warning(f"Dropped {type(message).__name__} from untrusted origin {origin!r}")
            return False
        if not isinstance(message, HOST_MESSAGE_TYPES):
            raise MessageError(f"{type(message).__name__} cannot travel host -> frame")
        if self._frame_handler is None:
            raise ChannelError(f"Frame unreachable, cannot deliver {type(message).__name__}")

        self._to_frame.append(message_to_dict(message))
        if not self._delivering_frame:
            self._delivering_frame = True
            try:
                self._drain(self._to_frame, lambda: self._frame_handler, HOST_MESSAGE_TYPES)
            finally:
                self._delivering_frame = False
        return True

    def _drain(self, queue: Deque[Dict[str, Any]], get_handler, allowed: tuple) -> None:
        while queue:
            wire = queue.popleft()
            handler = get_handler()
            if handler is None:
                logger.debug(f"Endpoint went away, dropped {wire.get('type')}")
                continue
            try:
                message = parse_message(wire)
                if not isinstance(message, allowed):
                    raise MessageError(f"Unexpected {wire.get('type')} on this direction")
                handler(message)
            except MessageError as e:
                logger.warning(f"Rejected message: {e}")
            except Exception as e:
                logger.exception(f"Handler failed for {wire.get('type')}: {e}")
