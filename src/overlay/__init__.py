"""
Visual overlay editing for PAGESMITH pages.

This package lets a page be edited in place inside an embedded frame:
- FrameSession: document mirror, element resolution and interaction state
- HostOverlayController: edit mode, context menu, staging and commit
- MessageChannel: typed, origin-checked messages between the two
- NiceGuiFrameBridge: drives the live frame DOM from Python
- setup_overlay_handlers: event handlers for app.py integration

Usage:
    from src.overlay import FrameSession, HostOverlayController, MessageChannel
    from src.overlay.handlers import setup_overlay_handlers
"""

from src.overlay.bridge import FrameBridge, NiceGuiFrameBridge, host_relay_html
from src.overlay.changes import StyleChange, TextChange, TextStyleChange, make_changes, merge_changes
from src.overlay.controller import InteractionStateMachine, Mode
from src.overlay.frame import FrameSession
from src.overlay.handlers import setup_overlay_handlers
from src.overlay.host import HostOverlayController
from src.overlay.messages import ChannelError, MessageChannel, MessageError
from src.overlay.staging import ChangeHistory, ChangeStagingStore, StagedEntry

__all__ = [
    'FrameBridge',
    'NiceGuiFrameBridge',
    'host_relay_html',
    'TextChange',
    'StyleChange',
    'TextStyleChange',
    'make_changes',
    'merge_changes',
    'InteractionStateMachine',
    'Mode',
    'FrameSession',
    'HostOverlayController',
    'setup_overlay_handlers',
    'MessageChannel',
    'MessageError',
    'ChannelError',
    'ChangeStagingStore',
    'ChangeHistory',
    'StagedEntry',
]
