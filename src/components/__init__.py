"""
Reusable UI Components
"""

from .customize_dialog import render_customize_dialog, open_customize_dialog
from .confirm_dialog import ask_confirmation, ask_commit_message

__all__ = ['render_customize_dialog', 'open_customize_dialog', 'ask_confirmation', 'ask_commit_message']
