import pytest

from src.overlay.changes import StyleChange, TextChange, TextStyleChange
from src.overlay.constants import IDENTIFIER_ATTR, NODE_KEY_ATTR
from src.overlay.controller import Mode
from src.overlay.messages import (
    ApplyChanges,
    ArmResize,
    ChannelError,
    Cleanup,
    DeleteElement,
    DuplicateElement,
)

from conftest import ORIGIN


class TestDocument:

    def test_srcdoc_keeps_node_keys_serialize_strips_them(self, make_session):
        session = make_session(activate=False)
        assert NODE_KEY_ATTR in session.srcdoc
        assert NODE_KEY_ATTR not in session.serialize()
        assert 'id="title"' in session.serialize()

    def test_generated_identifiers_are_persisted(self, make_session, frame_event):
        session = make_session()
        lead = session.document.find('p', class_='lead')
        session.handle_event(frame_event('pointer_move', lead), ORIGIN)

        assert f'{IDENTIFIER_ATTR}="element-000000001"' in session.serialize()

    def test_tag_name(self, make_session):
        session = make_session(activate=False)
        assert session.tag_name('title') == 'h1'
        assert session.tag_name('missing') == ''


class TestLifecycle:

    def test_activate_injects_and_guards(self, make_session, bridge, channel):
        session = make_session()
        assert session.active
        assert bridge.names() == ['inject', 'install_guard']
        assert 'pagesmith' in bridge.called('inject')[0][0]
        assert channel.frame_connected
        assert session.guard.installed

    def test_activate_twice_resets_first(self, make_session, bridge, frame_event):
        session = make_session()
        session.handle_event(frame_event('dblclick', session.document.find(id='title')), ORIGIN)
        bridge.reset()

        session.activate()

        assert session.machine.mode is Mode.IDLE
        assert bridge.names()[:3] == ['restore_text', 'end_text_edit', 'hide_highlight']
        assert bridge.called('inject')
        assert bridge.called('install_guard') == [()]

    def test_cleanup_message_restores_everything(self, make_session, bridge, channel, frame_event):
        session = make_session()
        session.handle_event(frame_event('pointer_move', session.document.find(id='title')), ORIGIN)
        session.handle_event(frame_event('handle_down', x=100, y=40, handle='se', elementId='title'), ORIGIN)
        session.handle_event(frame_event('pointer_move', x=130, y=60), ORIGIN)
        bridge.reset()

        channel.send_to_frame(Cleanup())

        assert not session.active
        assert session.machine.mode is Mode.IDLE
        assert session.machine.state.highlighted is None
        assert not session.guard.installed
        assert not channel.frame_connected
        assert bridge.called('cancel_resize') == [('title',)]
        assert 'uninstall_guard' in bridge.names()
        assert bridge.names()[-1] == 'cleanup'

    def test_messages_after_cleanup_are_unreachable(self, make_session, channel):
        make_session().deactivate()
        with pytest.raises(ChannelError):
            channel.send_to_frame(ApplyChanges('title', TextChange('x')))


class TestEventFiltering:

    def test_inactive_session_drops_events(self, make_session, frame_event, host_inbox):
        session = make_session(activate=False)
        assert session.handle_event(frame_event('click', session.document.find(id='title')), ORIGIN) is False
        assert host_inbox == []

    def test_untrusted_origin_dropped(self, make_session, frame_event, host_inbox):
        session = make_session()
        event = frame_event('click', session.document.find(id='title'))
        assert session.handle_event(event, 'https://evil.example') is False
        assert session.handle_event(event, None) is False
        assert host_inbox == []

    @pytest.mark.parametrize('event', [
        None,
        {},
        {'kind': 'teleport'},
        {'kind': 'click'},
        {'kind': 'pointer_move', 'x': 'left', 'y': 3},
        {'kind': 'text_input', 'text': 5},
        {'kind': 'handle_down', 'x': 1, 'y': 1},
    ])
    def test_malformed_events_dropped(self, make_session, event):
        session = make_session()
        assert session.handle_event(event, ORIGIN) is False
        assert session.machine.mode is Mode.IDLE

    def test_unknown_node_key_is_no_target(self, make_session, frame_event, host_inbox):
        session = make_session()
        assert session.handle_event({'kind': 'click', 'x': 1, 'y': 1, 'node': '99999'}, ORIGIN) is True
        assert host_inbox == []

    def test_navigation_blocked_recorded(self, make_session):
        session = make_session()
        session.handle_event({'kind': 'navigation_blocked', 'target': '/home'}, ORIGIN)
        assert session.guard.blocked_attempts == ['/home']


class TestApplyChanges:

    def test_text_and_style(self, make_session, channel, bridge):
        session = make_session()
        bridge.reset()

        channel.send_to_frame(ApplyChanges('box', TextStyleChange('New', {'background-color': 'blue'})))

        box = session.document.find(id='box')
        assert box.string == 'New'
        assert box['style'] == 'color: red; background-color: blue'
        assert bridge.called('apply_changes') == [
            ('box', {'text': 'New', 'styles': {'background-color': 'blue'}}),
        ]
        assert bridge.called('flash') == [('box', 1.0)]

    def test_text_with_child_elements_replaces_first_direct_text(self, make_session, channel):
        session = make_session(html='<p id="p">Some <strong>bold</strong> text</p>')
        channel.send_to_frame(ApplyChanges('p', TextChange('Other ')))
        assert 'Other <strong>bold</strong> text' in session.serialize()

    def test_text_without_direct_text_is_noop(self, make_session, channel):
        session = make_session()
        channel.send_to_frame(ApplyChanges('wrap', TextChange('Gone')))
        assert session.document.find(id='inner').string == 'Nested'
        assert 'Gone' not in session.serialize()

    def test_style_only(self, make_session, channel):
        session = make_session()
        channel.send_to_frame(ApplyChanges('title', StyleChange({'font-size': '40px'})))
        assert session.document.find(id='title')['style'] == 'font-size: 40px'

    def test_unknown_element(self, make_session, channel, bridge):
        make_session()
        bridge.reset()
        channel.send_to_frame(ApplyChanges('nope', TextChange('x')))
        assert bridge.calls == []


class TestStructuralEdits:

    def test_duplicate(self, make_session, channel, bridge):
        session = make_session()
        bridge.reset()

        channel.send_to_frame(DuplicateElement('box'))

        boxes = session.document.find_all('div', style='color: red')
        assert len(boxes) == 2
        assert boxes[1].get('id') is None
        (element_id, html), = bridge.called('insert_after')
        assert element_id == 'box'
        assert NODE_KEY_ATTR in html and 'id="box"' not in html

    def test_delete(self, make_session, channel, bridge, frame_event):
        session = make_session()
        session.handle_event(frame_event('pointer_move', session.document.find(id='inner')), ORIGIN)

        channel.send_to_frame(DeleteElement('wrap'))

        assert session.document.find(id='wrap') is None
        assert session.document.find(id='inner') is None
        assert bridge.called('remove') == [('wrap',)]
        assert session.machine.state.highlighted is None
        assert session.machine.known_element('inner') is None

    def test_delete_skipped_while_editing(self, make_session, channel, bridge, frame_event):
        session = make_session()
        session.handle_event(frame_event('dblclick', session.document.find(id='title')), ORIGIN)

        channel.send_to_frame(DeleteElement('box'))

        assert session.document.find(id='box') is not None
        assert bridge.called('remove') == []

    def test_arm_resize_unknown_element(self, make_session, channel):
        session = make_session()
        channel.send_to_frame(ArmResize('title'))
        assert not session.machine.state.pinned
