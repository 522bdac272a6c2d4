import itertools

import pytest

from src.overlay.constants import NODE_KEY_ATTR
from src.overlay.frame import FrameSession
from src.overlay.messages import MessageChannel

ORIGIN = 'http://localhost:8081'

SAMPLE_HTML = """<!DOCTYPE html>
<html><head><title>Sample</title></head>
<body>
<header id="top"><nav><a href="/home" id="home-link">Home</a><button id="nav-btn">Menu</button></nav></header>
<main id="content">
<h1 id="title">Hello</h1>
<p class="lead intro">Some <strong>bold</strong> text</p>
<div id="box" style="color: red">Box</div>
<a id="plain-anchor">No href</a>
<div id="wrap"><span id="inner">Nested</span></div>
<iframe id="embed"><p id="inside-frame">Framed</p></iframe>
</main>
</body></html>"""


class RecordingBridge:
    """FrameBridge double that records every command."""

    def __init__(self):
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name, *args))

    def names(self):
        return [call[0] for call in self.calls]

    def called(self, name):
        return [call[1:] for call in self.calls if call[0] == name]

    def reset(self):
        self.calls.clear()

    def inject(self, script):
        self._record('inject', script)

    def show_highlight(self, view):
        self._record('show_highlight', view)

    def hide_highlight(self):
        self._record('hide_highlight')

    def set_identifier(self, node_key, identifier):
        self._record('set_identifier', node_key, identifier)

    def begin_text_edit(self, element_id):
        self._record('begin_text_edit', element_id)

    def end_text_edit(self, element_id):
        self._record('end_text_edit', element_id)

    def restore_text(self, element_id, text):
        self._record('restore_text', element_id, text)

    def begin_resize(self, element_id):
        self._record('begin_resize', element_id)

    def set_styles(self, element_id, styles):
        self._record('set_styles', element_id, styles)

    def end_resize(self, element_id):
        self._record('end_resize', element_id)

    def cancel_resize(self, element_id):
        self._record('cancel_resize', element_id)

    def apply_changes(self, element_id, changes):
        self._record('apply_changes', element_id, changes)

    def flash(self, element_id, seconds):
        self._record('flash', element_id, seconds)

    def insert_after(self, element_id, html):
        self._record('insert_after', element_id, html)

    def remove(self, element_id):
        self._record('remove', element_id)

    def install_guard(self):
        self._record('install_guard')

    def uninstall_guard(self):
        self._record('uninstall_guard')

    def cleanup(self):
        self._record('cleanup')


@pytest.fixture
def bridge():
    return RecordingBridge()


@pytest.fixture
def channel():
    return MessageChannel([ORIGIN], host_origin=ORIGIN)


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f'element-{next(counter):09d}'


@pytest.fixture
def make_session(channel, bridge, id_factory):
    """Build a FrameSession over SAMPLE_HTML (or the given HTML)."""
    def factory(html=SAMPLE_HTML, activate=True):
        session = FrameSession(html, channel, bridge, id_factory=id_factory)
        if activate:
            session.activate()
        return session
    return factory


@pytest.fixture
def host_inbox(channel):
    """Collects every frame -> host message."""
    received = []
    channel.connect_host(received.append)
    return received


@pytest.fixture
def frame_event():
    """Build a raw frame event for a mirror node."""
    def build(kind, node=None, x=10, y=10, rect=None, visible=True, **extra):
        event = {'kind': kind, 'x': x, 'y': y, **extra}
        if node is not None:
            event['node'] = node[NODE_KEY_ATTR]
            event['rect'] = rect or {'x': 0, 'y': 0, 'width': 100, 'height': 40}
            event['visible'] = visible
        return event
    return build
