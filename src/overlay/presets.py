"""
Named inline-style presets and the property groups offered by the customize
dialog.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class StylePreset:
    id: str
    name: str
    description: str
    category: str
    styles: Dict[str, str] = field(default_factory=dict)


PRESET_CATEGORIES = {
    'button': 'Buttons',
    'text': 'Text',
    'card': 'Cards',
    'general': 'Effects',
}

PRESETS: List[StylePreset] = [
    # Buttons
    StylePreset('btn-primary', 'Primary Button', 'Solid main call to action', 'button', {
        'background-color': '#3b82f6',
        'color': '#ffffff',
        'padding': '12px 24px',
        'border-radius': '8px',
        'border': 'none',
        'font-weight': '600',
        'cursor': 'pointer',
        'transition': 'all 0.3s ease',
    }),
    StylePreset('btn-outline', 'Outline Button', 'Transparent button with a border', 'button', {
        'background-color': 'transparent',
        'color': '#3b82f6',
        'padding': '12px 24px',
        'border-radius': '8px',
        'border': '2px solid #3b82f6',
        'font-weight': '600',
        'cursor': 'pointer',
        'transition': 'all 0.3s ease',
    }),
    StylePreset('btn-gradient', 'Gradient Button', 'Button with a diagonal gradient', 'button', {
        'background': 'linear-gradient(135deg, #667eea 0%, #764ba2 100%)',
        'color': '#ffffff',
        'padding': '12px 24px',
        'border-radius': '12px',
        'border': 'none',
        'font-weight': '600',
        'cursor': 'pointer',
        'box-shadow': '0 4px 15px rgba(102, 126, 234, 0.4)',
        'transition': 'all 0.3s ease',
    }),
    # Text
    StylePreset('text-hero', 'Hero Title', 'Large gradient headline', 'text', {
        'font-size': '48px',
        'font-weight': '800',
        'line-height': '1.2',
        'letter-spacing': '-0.02em',
        'background': 'linear-gradient(135deg, #667eea 0%, #764ba2 100%)',
        '-webkit-background-clip': 'text',
        '-webkit-text-fill-color': 'transparent',
    }),
    StylePreset('text-subtitle', 'Subtitle', 'Muted secondary text', 'text', {
        'font-size': '20px',
        'font-weight': '400',
        'line-height': '1.6',
        'color': '#64748b',
        'letter-spacing': '0.01em',
    }),
    StylePreset('text-emphasis', 'Emphasis', 'Highlighted inline text', 'text', {
        'font-size': '18px',
        'font-weight': '600',
        'color': '#3b82f6',
        'background-color': '#eff6ff',
        'padding': '4px 12px',
        'border-radius': '6px',
        'display': 'inline-block',
    }),
    # Cards
    StylePreset('card-elevated', 'Elevated Card', 'Soft drop shadow', 'card', {
        'background-color': '#ffffff',
        'border-radius': '16px',
        'padding': '24px',
        'box-shadow': '0 4px 6px -1px rgba(0, 0, 0, 0.1), 0 2px 4px -1px rgba(0, 0, 0, 0.06)',
        'border': '1px solid rgba(0, 0, 0, 0.05)',
        'transition': 'all 0.3s ease',
    }),
    StylePreset('card-glass', 'Glass Card', 'Frosted glass panel', 'card', {
        'background': 'rgba(255, 255, 255, 0.7)',
        'backdrop-filter': 'blur(10px)',
        'border-radius': '20px',
        'padding': '24px',
        'border': '1px solid rgba(255, 255, 255, 0.3)',
        'box-shadow': '0 8px 32px 0 rgba(31, 38, 135, 0.15)',
    }),
    StylePreset('card-neon', 'Neon Card', 'Dark card with a glowing border', 'card', {
        'background-color': '#1e293b',
        'border-radius': '16px',
        'padding': '24px',
        'border': '2px solid #3b82f6',
        'box-shadow': '0 0 20px rgba(59, 130, 246, 0.5)',
        'color': '#ffffff',
    }),
    # Effects
    StylePreset('effect-hover-lift', 'Hover Lift', 'Smooth transform transition', 'general', {
        'transition': 'transform 0.3s ease, box-shadow 0.3s ease',
        'cursor': 'pointer',
    }),
    StylePreset('effect-glow', 'Glow', 'Soft blue glow', 'general', {
        'box-shadow': '0 0 20px rgba(59, 130, 246, 0.6)',
        'transition': 'box-shadow 0.3s ease',
    }),
    StylePreset('effect-blur', 'Blur Background', 'Blurred translucent background', 'general', {
        'backdrop-filter': 'blur(10px)',
        'background': 'rgba(255, 255, 255, 0.8)',
    }),
]

# Properties editable one by one in the customize dialog, by tab
STYLE_FIELDS = {
    'Style': ['color', 'background-color', 'font-size', 'font-weight'],
    'Layout': ['width', 'height', 'padding-top', 'padding-right', 'padding-bottom', 'padding-left',
               'margin-top', 'margin-bottom'],
    'Border': ['border-width', 'border-style', 'border-color', 'border-radius'],
}


def get_preset(preset_id: str) -> Optional[StylePreset]:
    for preset in PRESETS:
        if preset.id == preset_id:
            return preset
    return None


def presets_by_category() -> Dict[str, List[StylePreset]]:
    grouped: Dict[str, List[StylePreset]] = {key: [] for key in PRESET_CATEGORIES}
    for preset in PRESETS:
        grouped.setdefault(preset.category, []).append(preset)
    return {key: items for key, items in grouped.items() if items}
