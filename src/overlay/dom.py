"""
Helpers for the in-memory mirror of the embedded document.

The mirror is a BeautifulSoup tree kept in step with the live frame DOM.
Every element carries a transient node key (data-ps-node) so events coming
from the browser can be mapped back to mirror nodes; keys are stripped when
the document is serialised for persistence.
"""

import copy
import logging
from typing import Dict, Iterator, Optional

from bs4 import BeautifulSoup, Doctype, NavigableString, Tag

from src.overlay.changes import ElementChanges, styles_of, text_of
from src.overlay.constants import IDENTIFIER_ATTR, NODE_KEY_ATTR

logger = logging.getLogger(__name__)

PARSER = 'html.parser'


def parse_document(html: str) -> BeautifulSoup:
    """Parse page HTML, making sure <html>, <head> and <body> exist."""
    soup = BeautifulSoup(html or '', PARSER)

    html_tag = soup.find('html')
    if html_tag is None:
        html_tag = soup.new_tag('html')
        for child in list(soup.contents):
            if isinstance(child, Doctype):
                continue
            html_tag.append(child.extract())
        soup.append(html_tag)

    if html_tag.find('head', recursive=False) is None:
        html_tag.insert(0, soup.new_tag('head'))

    if html_tag.find('body', recursive=False) is None:
        body = soup.new_tag('body')
        for child in list(html_tag.contents):
            if isinstance(child, Tag) and child.name == 'head':
                continue
            body.append(child.extract())
        html_tag.append(body)

    return soup


def serialize_document(soup: BeautifulSoup) -> str:
    """Render the mirror without transient node keys."""
    clone = BeautifulSoup(str(soup), PARSER)
    for tag in clone.find_all(attrs={NODE_KEY_ATTR: True}):
        del tag[NODE_KEY_ATTR]
    return str(clone)


class NodeIndex:
    """Node key -> mirror node lookup."""

    def __init__(self):
        self._nodes: Dict[str, Tag] = {}
        self._next = 0

    def __len__(self) -> int:
        return len(self._nodes)

    def stamp(self, root: Tag) -> None:
        """Assign keys to `root` (unless it is the document) and all its descendant elements."""
        for tag in _self_and_descendants(root):
            key = str(self._next)
            self._next += 1
            tag[NODE_KEY_ATTR] = key
            self._nodes[key] = tag

    def get(self, key) -> Optional[Tag]:
        if key is None:
            return None
        return self._nodes.get(str(key))

    def forget(self, root: Tag) -> None:
        for tag in _self_and_descendants(root):
            key = tag.get(NODE_KEY_ATTR)
            if key is not None:
                self._nodes.pop(key, None)


def _self_and_descendants(root: Tag) -> Iterator[Tag]:
    if not isinstance(root, BeautifulSoup):
        yield root
    yield from root.find_all(True)


def find_by_identifier(soup: BeautifulSoup, identifier: str) -> Optional[Tag]:
    if not identifier:
        return None
    return soup.find(id=identifier) or soup.find(attrs={IDENTIFIER_ATTR: identifier})


def has_child_elements(node: Tag) -> bool:
    return node.find(True, recursive=False) is not None


def first_direct_text(node: Tag) -> Optional[NavigableString]:
    for child in node.children:
        # Comments, CDATA etc. are NavigableString subclasses; only plain text counts
        if type(child) is NavigableString:
            return child
    return None


def editable_text(node: Tag) -> str:
    """
    The text `set_text` replaces: all of it without child elements,
    otherwise the first direct text node ('' when there is none).
    """
    if not has_child_elements(node):
        return node.get_text()
    first = first_direct_text(node)
    return str(first) if first is not None else ''


def set_text(node: Tag, text: str) -> bool:
    """
    Replace the element's text without touching child elements.

    Without child elements the whole content becomes `text`. With child
    elements only the first direct text node is replaced; if there is none
    nothing changes. Returns True when the node was modified.
    """
    if not has_child_elements(node):
        node.string = text
        return True

    first = first_direct_text(node)
    if first is None:
        logger.debug(f"<{node.name}> has child elements and no direct text, text change skipped")
        return False
    first.replace_with(NavigableString(text))
    return True


def parse_style(style: Optional[str]) -> Dict[str, str]:
    """Parse an inline style attribute into an ordered property map."""
    result: Dict[str, str] = {}
    for declaration in (style or '').split(';'):
        if ':' not in declaration:
            continue
        prop, value = declaration.split(':', 1)
        prop, value = prop.strip().lower(), value.strip()
        if prop:
            result[prop] = value
    return result


def format_style(styles: Dict[str, str]) -> str:
    return '; '.join(f'{prop}: {value}' for prop, value in styles.items())


def set_inline_styles(node: Tag, styles: Dict[str, str]) -> None:
    """Apply properties one by one on top of the existing inline style."""
    current = parse_style(node.get('style'))
    for prop, value in styles.items():
        current[prop.strip().lower()] = value
    if current:
        node['style'] = format_style(current)


def apply_to_node(node: Tag, changes: ElementChanges) -> None:
    text = text_of(changes)
    if text is not None:
        set_text(node, text)
    styles = styles_of(changes)
    if styles:
        set_inline_styles(node, styles)


def duplicate_node(node: Tag, index: NodeIndex) -> Tag:
    """
    Insert a copy of `node` right after it and return the copy.

    Identity attributes are removed from the copy (so ids stay unique) and
    it receives fresh node keys.
    """
    clone = copy.copy(node)
    for tag in _self_and_descendants(clone):
        for attr in ('id', IDENTIFIER_ATTR, NODE_KEY_ATTR):
            if tag.has_attr(attr):
                del tag[attr]
    node.insert_after(clone)
    index.stamp(clone)
    return clone


def remove_node(node: Tag, index: NodeIndex) -> None:
    index.forget(node)
    node.decompose()
