"""
Element Resolver - decides which pointer targets are editable and gives
them a stable identifier.
"""

import random
import string
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from bs4 import Tag

from src.overlay.constants import (
    EDITABLE_TAGS,
    EXCLUDED_ANCESTORS,
    IDENTIFIER_ATTR,
    IDENTIFIER_PREFIX,
    IDENTIFIER_SUFFIX_LENGTH,
    TEXT_EDITABLE_TAGS,
)
from src.overlay.dom import editable_text

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class Rect:
    """Bounding box in frame viewport coordinates."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def resized(self, width: float, height: float) -> 'Rect':
        return Rect(self.x, self.y, width, height)

    def to_dict(self) -> Dict[str, float]:
        return {
            'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height,
            'top': self.top, 'right': self.right, 'bottom': self.bottom, 'left': self.left,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rect':
        x = data.get('x', data.get('left', 0))
        y = data.get('y', data.get('top', 0))
        return cls(float(x or 0), float(y or 0),
                   float(data.get('width') or 0), float(data.get('height') or 0))


@dataclass(frozen=True)
class PointerTarget:
    """What the frame reported about the element under the pointer."""
    node: Optional[Tag]
    rect: Rect = Rect()
    visible: bool = True


@dataclass
class EditableElement:
    identifier: str
    tag_category: str
    has_editable_text: bool
    bounding_box: Rect
    node: Tag = field(repr=False, compare=False)

    @property
    def tag_name(self) -> str:
        return self.node.name


def generate_identifier() -> str:
    suffix = ''.join(random.choices(_ID_ALPHABET, k=IDENTIFIER_SUFFIX_LENGTH))
    return f'{IDENTIFIER_PREFIX}{suffix}'


class ElementResolver:
    """
    Maps pointer targets to EditableElements.

    Identifiers are written back onto the node the first time they are
    synthesised; `on_assign(node, identifier)` mirrors the write into the
    live document.
    """

    def __init__(self,
                 on_assign: Optional[Callable[[Tag, str], None]] = None,
                 id_factory: Callable[[], str] = generate_identifier):
        self._on_assign = on_assign
        self._id_factory = id_factory

    def is_eligible(self, target: Optional[PointerTarget]) -> bool:
        if target is None or not isinstance(target.node, Tag):
            return False
        node = target.node
        if node.name not in EDITABLE_TAGS:
            return False
        if node.find_parent(list(EXCLUDED_ANCESTORS)) is not None:
            return False
        return bool(target.visible)

    def resolve(self, target: Optional[PointerTarget]) -> Optional[EditableElement]:
        if not self.is_eligible(target):
            return None

        node = target.node
        return EditableElement(
            identifier=self.identify(node),
            tag_category=EDITABLE_TAGS[node.name],
            has_editable_text=has_editable_text(node),
            bounding_box=target.rect,
            node=node,
        )

    def identify(self, node: Tag) -> str:
        """Return the node's identifier, synthesising one only if it has none."""
        existing = node.get('id') or node.get(IDENTIFIER_ATTR)
        if existing:
            return existing

        root = _root_of(node)
        identifier = self._id_factory()
        while root.find(attrs={IDENTIFIER_ATTR: identifier}) is not None or root.find(id=identifier) is not None:
            identifier = self._id_factory()

        node[IDENTIFIER_ATTR] = identifier
        if self._on_assign:
            self._on_assign(node, identifier)
        return identifier


def has_editable_text(node: Tag) -> bool:
    return node.name in TEXT_EDITABLE_TAGS and bool(editable_text(node).strip())


def _root_of(node: Tag) -> Tag:
    while node.parent is not None:
        node = node.parent
    return node
