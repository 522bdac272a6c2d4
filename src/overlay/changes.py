"""
Element change payloads.

A change is one of three variants: TextChange, StyleChange or
TextStyleChange. Staging, merging and applying all match on the variant
instead of probing optional fields.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class TextChange:
    """Replacement for the element's direct text."""
    text: str


@dataclass(frozen=True)
class StyleChange:
    """Inline CSS properties (property name -> value)."""
    styles: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TextStyleChange:
    """Both a text replacement and inline styles."""
    text: str
    styles: Dict[str, str] = field(default_factory=dict)


ElementChanges = Union[TextChange, StyleChange, TextStyleChange]


def text_of(changes: ElementChanges) -> Optional[str]:
    if isinstance(changes, (TextChange, TextStyleChange)):
        return changes.text
    if isinstance(changes, StyleChange):
        return None
    raise TypeError(f"Unknown change variant: {type(changes).__name__}")


def styles_of(changes: ElementChanges) -> Dict[str, str]:
    if isinstance(changes, (StyleChange, TextStyleChange)):
        return dict(changes.styles)
    if isinstance(changes, TextChange):
        return {}
    raise TypeError(f"Unknown change variant: {type(changes).__name__}")


def make_changes(text: Optional[str] = None, styles: Optional[Dict[str, str]] = None) -> ElementChanges:
    """Build the narrowest variant for the given fields."""
    styles = dict(styles or {})
    if text is not None and styles:
        return TextStyleChange(text=text, styles=styles)
    if text is not None:
        return TextChange(text=text)
    if styles:
        return StyleChange(styles=styles)
    raise ValueError("A change needs text, styles, or both")


def merge_changes(earlier: ElementChanges, later: ElementChanges) -> ElementChanges:
    """
    Union two change records for the same element.

    Text from `later` wins when present, otherwise the earlier text is kept.
    Style maps are merged property by property, later values winning.
    """
    later_text = text_of(later)
    text = later_text if later_text is not None else text_of(earlier)
    styles = styles_of(earlier)
    styles.update(styles_of(later))
    return make_changes(text=text, styles=styles)


def changes_to_dict(changes: ElementChanges) -> Dict[str, Any]:
    """Wire form: {'text'?: str, 'styles'?: {prop: value}}."""
    data: Dict[str, Any] = {}
    text = text_of(changes)
    if text is not None:
        data['text'] = text
    styles = styles_of(changes)
    if styles:
        data['styles'] = styles
    return data


def changes_from_dict(data: Any) -> ElementChanges:
    """Parse the wire form. Raises ValueError on malformed payloads."""
    if not isinstance(data, dict):
        raise ValueError(f"changes must be an object, got {type(data).__name__}")

    text = data.get('text')
    if text is not None and not isinstance(text, str):
        raise ValueError("changes.text must be a string")

    raw_styles = data.get('styles') or {}
    if not isinstance(raw_styles, dict):
        raise ValueError("changes.styles must be an object")
    styles = {}
    for prop, value in raw_styles.items():
        if not isinstance(prop, str) or not isinstance(value, (str, int, float)):
            raise ValueError(f"Invalid style entry {prop!r}: {value!r}")
        styles[prop] = str(value)

    return make_changes(text=text, styles=styles)


def change_kind(changes: ElementChanges) -> str:
    """Short label used in history entries: 'text', 'style' or 'text+style'."""
    if isinstance(changes, TextChange):
        return 'text'
    if isinstance(changes, StyleChange):
        return 'style'
    if isinstance(changes, TextStyleChange):
        return 'text+style'
    raise TypeError(f"Unknown change variant: {type(changes).__name__}")


def describe_changes(changes: ElementChanges) -> str:
    parts = []
    text = text_of(changes)
    if text is not None:
        preview = text if len(text) <= 40 else text[:40] + '...'
        parts.append(f'text → "{preview}"')
    for prop, value in styles_of(changes).items():
        parts.append(f'{prop} → {value}')
    return ', '.join(parts)
