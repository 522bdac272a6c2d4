import asyncio
from unittest.mock import MagicMock

import pytest

from src.overlay.changes import StyleChange, TextChange, TextStyleChange
from src.overlay.host import HostOverlayController, default_commit_message
from src.overlay.messages import ShowContextMenu, StageChanges
from src.overlay.staging import StagedEntry

from conftest import ORIGIN


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def session(make_session):
    return make_session(activate=False)


@pytest.fixture
def persisted():
    return []


@pytest.fixture
def prompts():
    return []


@pytest.fixture
def make_host(channel, session, persisted, prompts):
    def factory(confirm_answer=True, customize_result=None, with_confirm=True, persist=None):
        async def confirm(text):
            prompts.append(text)
            return confirm_answer

        async def customize(element):
            prompts.append(element.id)
            return customize_result

        host = HostOverlayController(
            channel, session,
            persist=persist or (lambda entries, message: persisted.append((entries, message))),
            confirm=confirm if with_confirm else None,
            customize=customize,
        )
        host.enable()
        return host
    return factory


def open_menu(session, frame_event, element_id):
    node = session.document.find(id=element_id)
    session.handle_event(frame_event('click', node, x=12, y=34), ORIGIN)


class TestEditMode:

    def test_toggle(self, make_host, session, channel):
        host = make_host()
        assert host.edit_mode and session.active and channel.host_connected

        assert host.toggle_edit_mode() is False
        assert not session.active
        assert not channel.host_connected

        assert host.toggle_edit_mode() is True
        assert session.active

    def test_enable_failure_leaves_edit_mode_off(self, channel):
        frame = MagicMock()
        frame.activate.side_effect = RuntimeError('no frame')
        host = HostOverlayController(channel, frame, persist=MagicMock())

        assert host.enable() is False
        assert not host.edit_mode
        assert not channel.host_connected
        assert host.last_error == 'no frame'

    def test_disable_keeps_staged_changes(self, make_host, session, frame_event):
        host = make_host()
        host.apply_changes('title', TextChange('Hi'))
        open_menu(session, frame_event, 'box')

        host.disable()

        assert host.staged_count == 1
        assert host.context_menu is None

    def test_listener_errors_do_not_break_staging(self, make_host):
        host = make_host()
        host.set_on_change(MagicMock(side_effect=RuntimeError('ui gone')))
        assert host.apply_changes('title', TextChange('Hi')) is True
        assert host.staged_count == 1


class TestFrameMessages:

    def test_click_opens_context_menu(self, make_host, session, frame_event):
        host = make_host()
        open_menu(session, frame_event, 'box')

        menu = host.context_menu
        assert isinstance(menu, ShowContextMenu)
        assert menu.element_id == 'box'
        assert menu.position == (12, 34)
        assert menu.element.tag_name == 'DIV'

    def test_context_menu_ignored_outside_edit_mode(self, make_host, session, frame_event):
        host = make_host()
        open_menu(session, frame_event, 'box')
        message = host.context_menu
        host.disable()

        host.handle_message(message)
        assert host.context_menu is None

    def test_inline_edit_is_staged_with_history(self, make_host, session, frame_event):
        host = make_host()
        title = session.document.find(id='title')
        session.handle_event(frame_event('dblclick', title), ORIGIN)
        session.handle_event({'kind': 'text_input', 'text': 'Hi'}, ORIGIN)
        session.handle_event(frame_event('click'), ORIGIN)

        assert host.staging.all() == [StagedEntry('title', TextChange('Hi'))]
        assert [(e.element_id, e.tag, e.kind) for e in host.history.entries()] == [('title', 'h1', 'text')]

    def test_repeated_stages_merge(self, make_host):
        host = make_host()
        host.handle_message(StageChanges('title', TextChange('Hi')))
        host.handle_message(StageChanges('title', StyleChange({'width': '20px'})))

        assert host.staged_count == 1
        assert host.staging.get('title') == TextStyleChange('Hi', {'width': '20px'})
        assert len(host.history) == 2


class TestMenuActions:

    def test_customize_applies_and_stages(self, make_host, session, frame_event, prompts, bridge):
        changes = TextStyleChange('Boxed', {'padding': '4px'})
        host = make_host(customize_result=changes)
        open_menu(session, frame_event, 'box')

        assert run(host.run_menu_action('customize')) is True

        assert prompts == ['box']
        assert host.context_menu is None
        assert host.staging.get('box') == changes
        assert session.document.find(id='box').string == 'Boxed'
        assert bridge.called('flash') == [('box', 1.0)]

    def test_customize_text_on_nested_markup_keeps_children(self, make_host, session, frame_event, prompts, bridge):
        host = make_host(customize_result=TextChange('Some plain '))
        lead = session.document.find('p', class_='lead')
        session.handle_event(frame_event('click', lead), ORIGIN)
        assert host.context_menu.element.text_content == 'Some '

        assert run(host.run_menu_action('customize')) is True

        assert prompts == ['element-000000001']
        assert bridge.called('apply_changes') == [('element-000000001', {'text': 'Some plain '})]
        assert host.staging.get('element-000000001') == TextChange('Some plain ')
        assert lead.get_text() == 'Some plain bold text'
        assert 'Some plain <strong>bold</strong> text</p>' in session.serialize()

    def test_customize_cancelled(self, make_host, session, frame_event):
        host = make_host(customize_result=None)
        open_menu(session, frame_event, 'box')

        assert run(host.run_menu_action('customize')) is False
        assert host.staged_count == 0

    def test_resize_arms_handles(self, make_host, session, frame_event):
        host = make_host()
        open_menu(session, frame_event, 'box')

        assert run(host.run_menu_action('resize')) is True
        assert session.machine.state.pinned
        assert session.machine.state.highlighted.identifier == 'box'

    def test_duplicate(self, make_host, session, frame_event):
        host = make_host()
        open_menu(session, frame_event, 'box')

        assert run(host.run_menu_action('duplicate')) is True
        assert len(session.document.find_all('div', style='color: red')) == 2
        assert host.staged_count == 0

    def test_delete_confirmed(self, make_host, session, frame_event, prompts):
        host = make_host(confirm_answer=True)
        open_menu(session, frame_event, 'box')

        assert run(host.run_menu_action('delete')) is True
        assert prompts == ['Delete this <div> element?']
        assert session.document.find(id='box') is None

    def test_delete_declined(self, make_host, session, frame_event):
        host = make_host(confirm_answer=False)
        open_menu(session, frame_event, 'box')

        assert run(host.run_menu_action('delete')) is False
        assert session.document.find(id='box') is not None

    def test_delete_without_prompt_is_refused(self, make_host, session, frame_event):
        host = make_host(with_confirm=False)
        open_menu(session, frame_event, 'box')

        assert run(host.run_menu_action('delete')) is False
        assert session.document.find(id='box') is not None

    def test_no_open_menu_or_unknown_action(self, make_host, session, frame_event):
        host = make_host()
        assert run(host.run_menu_action('duplicate')) is False

        open_menu(session, frame_event, 'box')
        assert run(host.run_menu_action('explode')) is False
        assert host.context_menu is not None

    def test_apply_to_unreachable_frame_is_not_staged(self, make_host, session):
        host = make_host()
        session.deactivate()

        assert host.apply_changes('title', TextChange('Hi')) is False
        assert host.staged_count == 0
        assert 'unreachable' in host.last_error


class TestCommit:

    def test_nothing_staged(self, make_host, persisted):
        host = make_host()
        assert not host.can_commit
        assert host.commit() is False
        assert persisted == []

    def test_persists_once_in_order(self, make_host, persisted):
        host = make_host()
        host.apply_changes('box', StyleChange({'color': 'blue'}))
        host.apply_changes('title', TextChange('Hi'))
        host.apply_changes('box', TextChange('Blue'))

        assert host.commit() is True

        assert len(persisted) == 1
        entries, message = persisted[0]
        assert [e.element_id for e in entries] == ['box', 'title']
        assert entries[0].changes == TextStyleChange('Blue', {'color': 'blue'})
        assert message == 'Edit 2 elements'
        assert host.staged_count == 0

    def test_custom_message(self, make_host, persisted):
        host = make_host()
        host.apply_changes('title', TextChange('Hi'))
        host.commit('  Retitle  ')
        assert persisted[0][1] == 'Retitle'

    def test_failure_keeps_staged(self, make_host):
        host = make_host(persist=MagicMock(side_effect=OSError('disk full')))
        host.apply_changes('title', TextChange('Hi'))

        assert host.commit() is False
        assert host.staged_count == 1
        assert host.last_error == 'disk full'


def test_default_commit_message():
    assert default_commit_message([StagedEntry('a', TextChange('x'))]) == 'Edit 1 element'
    assert default_commit_message([]) == 'Edit 0 elements'
