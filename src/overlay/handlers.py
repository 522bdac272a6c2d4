"""
Overlay Handlers - event handlers for visual editing in app.py

This module keeps the edit mode wiring out of app.py so the main
application file stays focused on layout and page switching.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from nicegui import ui

from src.overlay.constants import FRAME_EVENT
from src.overlay.host import HostOverlayController, default_commit_message
from src.overlay.messages import ShowContextMenu

logger = logging.getLogger(__name__)


def setup_overlay_handlers(
    state: Dict[str, Any],
    refresh_toolbar: Callable[[], None],
    render_context_menu: Callable[[Optional[ShowContextMenu]], None],
    ask_commit_message: Callable[[str, int], Awaitable[Optional[str]]],
    on_committed: Optional[Callable[[], None]] = None,
):
    """
    Set up all overlay event handlers.

    Args:
        state: Page state dictionary; 'session' and 'host' hold the current
            FrameSession and HostOverlayController and change on page switch
        refresh_toolbar: Redraws the edit toggle, badge and commit button
        render_context_menu: Shows the menu for a SHOW_CONTEXT_MENU, hides it for None
        ask_commit_message: Dialog returning the commit message or None
        on_committed: Called after a successful commit

    Returns:
        Dict with handler functions for binding to UI events
    """

    def on_host_change():
        """Called whenever the host controller state changes."""
        host: HostOverlayController = state.get('host')
        refresh_toolbar()
        render_context_menu(host.context_menu if host else None)

    def bind_host(host: HostOverlayController):
        host.set_on_change(on_host_change)

    def handle_frame_event(event):
        """Relay a raw event from the embedded document to the frame session."""
        session = state.get('session')
        if session is None:
            return
        raw = event.args if hasattr(event, 'args') else event
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring non-object frame event: {raw!r}")
            return
        session.handle_event(raw, raw.get('origin'))

    def toggle_edit_mode(_=None):
        host: HostOverlayController = state.get('host')
        if host is None:
            return
        was_on = host.edit_mode
        is_on = host.toggle_edit_mode()
        if not was_on and not is_on:
            ui.notify(f'Could not start edit mode: {host.last_error}', type='negative')
        elif is_on:
            ui.notify('Edit mode on: click an element for options, double-click to edit text',
                      position='bottom', timeout=2000, color='info')
        on_host_change()

    async def menu_action(action: str):
        host: HostOverlayController = state.get('host')
        if host is None:
            return
        done = await host.run_menu_action(action)
        if not done and host.last_error:
            ui.notify(host.last_error, type='negative')
            host.last_error = None

    async def commit_changes():
        host: HostOverlayController = state.get('host')
        if host is None or not host.can_commit:
            ui.notify('No staged changes to commit', type='warning')
            return

        default = default_commit_message(host.staging.all())
        message = await ask_commit_message(default, host.staged_count)
        if message is None:
            return

        if host.commit(message):
            ui.notify('Changes committed', type='positive')
            if on_committed:
                on_committed()
        else:
            ui.notify(f'Commit failed: {host.last_error}', type='negative')

    ui.on(FRAME_EVENT, handle_frame_event)

    return {
        'bind_host': bind_host,
        'handle_frame_event': handle_frame_event,
        'toggle_edit_mode': toggle_edit_mode,
        'menu_action': menu_action,
        'commit_changes': commit_changes,
    }
