"""
Tests for the app.py overlay wiring: frame events reach the session,
toolbar actions reach the host controller.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from src.overlay.changes import TextChange
from src.overlay.constants import FRAME_EVENT, NODE_KEY_ATTR
from src.overlay.handlers import setup_overlay_handlers
from src.overlay.host import HostOverlayController

from conftest import ORIGIN


@pytest.fixture
def mock_ui():
    with patch('src.overlay.handlers.ui') as mocked:
        yield mocked


@pytest.fixture
def wiring(mock_ui, channel, make_session):
    session = make_session(activate=False)
    persisted = []
    host = HostOverlayController(channel, session, persist=lambda entries, message: persisted.append(message))
    state = {'session': session, 'host': host}
    ui_hooks = SimpleNamespace(toolbar=MagicMock(), menu=MagicMock(), committed=MagicMock(), answer='Retitle')

    async def ask_commit_message(default, count):
        ui_hooks.asked = (default, count)
        return ui_hooks.answer

    handlers = setup_overlay_handlers(
        state,
        refresh_toolbar=ui_hooks.toolbar,
        render_context_menu=ui_hooks.menu,
        ask_commit_message=ask_commit_message,
        on_committed=ui_hooks.committed,
    )
    handlers['bind_host'](host)
    return SimpleNamespace(state=state, session=session, host=host, handlers=handlers,
                           hooks=ui_hooks, persisted=persisted)


def test_registers_frame_event(mock_ui, wiring):
    mock_ui.on.assert_called_once_with(FRAME_EVENT, wiring.handlers['handle_frame_event'])


def test_toggle_edit_mode(mock_ui, wiring):
    wiring.handlers['toggle_edit_mode']()

    assert wiring.host.edit_mode
    assert wiring.session.active
    mock_ui.notify.assert_called_once()
    wiring.hooks.toolbar.assert_called()


def test_frame_event_reaches_session_and_menu(wiring):
    wiring.handlers['toggle_edit_mode']()
    title = wiring.session.document.find(id='title')
    event = SimpleNamespace(args={'kind': 'click', 'x': 5, 'y': 6, 'node': title[NODE_KEY_ATTR],
                                  'rect': {'x': 0, 'y': 0, 'width': 50, 'height': 20}, 'origin': ORIGIN})

    wiring.handlers['handle_frame_event'](event)

    assert wiring.host.context_menu.element_id == 'title'
    menu = wiring.hooks.menu.call_args.args[0]
    assert menu.element.tag_name == 'H1'


def test_untrusted_or_malformed_events_are_ignored(wiring):
    wiring.handlers['toggle_edit_mode']()
    title = wiring.session.document.find(id='title')

    wiring.handlers['handle_frame_event'](SimpleNamespace(args=['click']))
    wiring.handlers['handle_frame_event'](SimpleNamespace(args={'kind': 'click', 'x': 1, 'y': 1,
                                                                 'node': title[NODE_KEY_ATTR]}))
    assert wiring.host.context_menu is None


def test_frame_event_without_session(wiring):
    wiring.state['session'] = None
    wiring.handlers['handle_frame_event'](SimpleNamespace(args={'kind': 'click'}))


def test_commit_changes(mock_ui, wiring):
    wiring.handlers['toggle_edit_mode']()
    wiring.host.apply_changes('title', TextChange('Hi'))

    asyncio.run(wiring.handlers['commit_changes']())

    assert wiring.hooks.asked == ('Edit 1 element', 1)
    assert wiring.persisted == ['Retitle']
    assert wiring.host.staged_count == 0
    wiring.hooks.committed.assert_called_once()


def test_commit_cancelled(wiring):
    wiring.handlers['toggle_edit_mode']()
    wiring.host.apply_changes('title', TextChange('Hi'))
    wiring.hooks.answer = None

    asyncio.run(wiring.handlers['commit_changes']())

    assert wiring.persisted == []
    assert wiring.host.staged_count == 1


def test_commit_with_nothing_staged(mock_ui, wiring):
    asyncio.run(wiring.handlers['commit_changes']())
    assert mock_ui.notify.call_args.kwargs['type'] == 'warning'


def test_failed_menu_action_notifies(mock_ui, wiring):
    wiring.handlers['toggle_edit_mode']()
    title = wiring.session.document.find(id='title')
    wiring.session.handle_event({'kind': 'click', 'x': 1, 'y': 1, 'node': title[NODE_KEY_ATTR]}, ORIGIN)
    wiring.session.deactivate()
    mock_ui.notify.reset_mock()

    asyncio.run(wiring.handlers['menu_action']('duplicate'))

    assert 'unreachable' in mock_ui.notify.call_args.args[0]
    assert wiring.host.last_error is None
