"""
Frame Bridge - drives the live frame DOM from Python.

The injected frame script forwards raw pointer/keyboard events to the host
page with postMessage; the host relay (see `host_relay_html`) checks the
origin and hands them to Python through a NiceGUI event. In the other
direction every DOM effect is a small command posted into the frame with an
explicit target origin.
"""

import json
from typing import Any, Dict, Iterable, Optional, Protocol, runtime_checkable

from nicegui import ui

from src.overlay.constants import (
    FRAME_CHANNEL,
    FRAME_EVENT,
    FRAME_SCRIPT_ID,
    HANDLE_POSITIONS,
    HANDLE_SIZE,
    HANDLES_ID,
    HIGHLIGHT_ID,
    HOST_CHANNEL,
    IDENTIFIER_ATTR,
    NODE_KEY_ATTR,
    OVERLAY_ATTR,
)

# Delay before a single click is forwarded, so the first click of a
# double-click does not open the context menu
CLICK_DELAY_MS = 250


@runtime_checkable
class FrameBridge(Protocol):
    """Live DOM effects the frame session can ask for."""

    def inject(self, script: str) -> None: ...

    def show_highlight(self, view) -> None: ...

    def hide_highlight(self) -> None: ...

    def set_identifier(self, node_key: str, identifier: str) -> None: ...

    def begin_text_edit(self, element_id: str) -> None: ...

    def end_text_edit(self, element_id: str) -> None: ...

    def restore_text(self, element_id: str, text: str) -> None: ...

    def begin_resize(self, element_id: str) -> None: ...

    def set_styles(self, element_id: str, styles: Dict[str, str]) -> None: ...

    def end_resize(self, element_id: str) -> None: ...

    def cancel_resize(self, element_id: str) -> None: ...

    def apply_changes(self, element_id: str, changes: Dict[str, Any]) -> None: ...

    def flash(self, element_id: str, seconds: float) -> None: ...

    def insert_after(self, element_id: str, html: str) -> None: ...

    def remove(self, element_id: str) -> None: ...

    def install_guard(self) -> None: ...

    def uninstall_guard(self) -> None: ...

    def cleanup(self) -> None: ...


def build_frame_script(parent_origin: Optional[str] = None) -> str:
    """
    Script injected into the embedded document while edit mode is on.

    It keeps all of its state in one closure and tears itself down on the
    'cleanup' command or on the 'pagesmith:teardown' document event (fired
    by the host before a re-injection).
    """
    cfg = json.dumps({
        'parentOrigin': parent_origin,
        'frameChannel': FRAME_CHANNEL,
        'hostChannel': HOST_CHANNEL,
        'nodeKeyAttr': NODE_KEY_ATTR,
        'idAttr': IDENTIFIER_ATTR,
        'overlayAttr': OVERLAY_ATTR,
        'scriptId': FRAME_SCRIPT_ID,
        'highlightId': HIGHLIGHT_ID,
        'handlesId': HANDLES_ID,
        'handlePositions': list(HANDLE_POSITIONS),
        'handleSize': HANDLE_SIZE,
        'clickDelay': CLICK_DELAY_MS,
    })
    return '''
(function () {
    const CFG = %s;
    const PARENT_ORIGIN = CFG.parentOrigin || window.origin;
    const listeners = [];
    const guardListeners = [];
    const textSnapshots = new WeakMap();
    const styleSnapshots = new WeakMap();
    let highlight = null;
    let handles = null;
    let editing = null;
    let editRegion = null;
    let resizing = false;
    let pendingClick = null;
    let moveFrame = 0;
    let queuedMove = null;
    let savedUserSelect = null;
    let guardInstalled = false;

    function on(list, target, type, fn, opts) {
        target.addEventListener(type, fn, opts);
        list.push([target, type, fn, opts]);
    }

    function offAll(list) {
        while (list.length) {
            const [target, type, fn, opts] = list.pop();
            target.removeEventListener(type, fn, opts);
        }
    }

    function flushMove() {
        if (moveFrame) {
            cancelAnimationFrame(moveFrame);
            moveFrame = 0;
        }
        if (queuedMove) {
            const move = queuedMove;
            queuedMove = null;
            post('pointer_move', move);
        }
    }

    function post(kind, data) {
        window.parent.postMessage(Object.assign({channel: CFG.frameChannel, kind: kind}, data || {}), PARENT_ORIGIN);
    }

    function send(kind, data) {
        flushMove();
        post(kind, data);
    }

    function isOverlay(el) {
        return !!(el && el.closest && el.closest('[' + CFG.overlayAttr + ']'));
    }

    function keyed(el) {
        while (el && el.nodeType !== 1) el = el.parentNode;
        while (el && !el.hasAttribute(CFG.nodeKeyAttr)) el = el.parentElement;
        return el && !isOverlay(el) ? el : null;
    }

    function describe(el, e) {
        const base = {x: e.clientX, y: e.clientY, node: null};
        if (!el) return base;
        const r = el.getBoundingClientRect();
        base.node = el.getAttribute(CFG.nodeKeyAttr);
        base.rect = {x: r.x, y: r.y, width: r.width, height: r.height};
        base.visible = el.offsetParent !== null;
        return base;
    }

    function byId(id) {
        return document.getElementById(id) ||
            document.querySelector('[' + CFG.idAttr + '="' + CSS.escape(id) + '"]');
    }

    function ensureLayers() {
        if (!highlight) {
            highlight = document.createElement('div');
            highlight.id = CFG.highlightId;
            highlight.setAttribute(CFG.overlayAttr, '');
            Object.assign(highlight.style, {
                position: 'fixed', pointerEvents: 'none', display: 'none', zIndex: '2147483646',
                border: '2px solid #3b82f6', backgroundColor: 'rgba(59, 130, 246, 0.1)',
                boxSizing: 'border-box'
            });
            document.body.appendChild(highlight);
        }
        if (!handles) {
            handles = document.createElement('div');
            handles.id = CFG.handlesId;
            handles.setAttribute(CFG.overlayAttr, '');
            Object.assign(handles.style, {position: 'fixed', left: '0', top: '0', display: 'none', zIndex: '2147483647'});
            CFG.handlePositions.forEach(function (pos) {
                const h = document.createElement('div');
                h.setAttribute('data-ps-handle', pos);
                Object.assign(h.style, {
                    position: 'fixed', width: CFG.handleSize + 'px', height: CFG.handleSize + 'px',
                    background: '#ffffff', border: '1px solid #3b82f6', borderRadius: '2px',
                    cursor: pos + '-resize'
                });
                handles.appendChild(h);
            });
            document.body.appendChild(handles);
        }
    }

    function showView(view) {
        ensureLayers();
        const r = view.rect;
        Object.assign(highlight.style, {
            display: 'block', left: r.x + 'px', top: r.y + 'px', width: r.width + 'px', height: r.height + 'px'
        });
        handles.setAttribute('data-ps-for', view.elementId || '');
        handles.style.display = view.showHandles ? 'block' : 'none';
        const half = CFG.handleSize / 2;
        view.handles.forEach(function (h) {
            const el = handles.querySelector('[data-ps-handle="' + h.position + '"]');
            if (el) {
                el.style.left = (h.x - half) + 'px';
                el.style.top = (h.y - half) + 'px';
            }
        });
    }

    function hideView() {
        if (highlight) highlight.style.display = 'none';
        if (handles) handles.style.display = 'none';
    }

    function lockSelection() {
        savedUserSelect = document.body.style.userSelect;
        document.body.style.userSelect = 'none';
        resizing = true;
    }

    function releaseSelection() {
        if (resizing) document.body.style.userSelect = savedUserSelect || '';
        resizing = false;
    }

    // Text a text change replaces: the whole element without child elements,
    // otherwise its first direct text node, wrapped while it is being edited
    function openRegion(el) {
        if (el.children.length === 0) return el;
        for (const n of el.childNodes) {
            if (n.nodeType === 3) {
                const wrap = document.createElement('span');
                wrap.setAttribute('data-ps-edit', '');
                el.insertBefore(wrap, n);
                wrap.appendChild(n);
                return wrap;
            }
        }
        return null;
    }

    function closeRegion(el) {
        if (!editRegion) return;
        if (editRegion === el) {
            el.removeAttribute('contenteditable');
        } else if (editRegion.parentNode) {
            editRegion.replaceWith(document.createTextNode(editRegion.textContent));
        }
        editRegion = null;
    }

    function endEdit(el) {
        if (!el) return;
        if (editing === el) closeRegion(el);
        textSnapshots.delete(el);
        if (editing === el) editing = null;
    }

    function installGuard() {
        if (guardInstalled) return;
        guardInstalled = true;
        on(guardListeners, window, 'popstate', function () {
            try { history.pushState(history.state, '', location.href); } catch (err) { /* about:srcdoc */ }
            send('navigation_blocked', {target: 'history'});
        });
        on(guardListeners, document, 'click', function (e) {
            const a = e.target.closest && e.target.closest('a[href]');
            if (a) {
                e.preventDefault();
                send('navigation_blocked', {target: a.getAttribute('href')});
            }
        }, true);
        on(guardListeners, document, 'submit', function (e) {
            e.preventDefault();
            send('navigation_blocked', {target: 'form'});
        }, true);
        on(guardListeners, window, 'beforeunload', function (e) {
            e.preventDefault();
            e.returnValue = '';
        });
    }

    function uninstallGuard() {
        offAll(guardListeners);
        guardInstalled = false;
    }

    function teardown() {
        uninstallGuard();
        offAll(listeners);
        clearTimeout(pendingClick);
        if (moveFrame) cancelAnimationFrame(moveFrame);
        if (editing) {
            const snapshot = textSnapshots.get(editing);
            if (snapshot !== undefined) editing.innerHTML = snapshot;
            endEdit(editing);
        }
        releaseSelection();
        if (highlight) highlight.remove();
        if (handles) handles.remove();
        highlight = handles = null;
        const script = document.getElementById(CFG.scriptId);
        if (script) script.remove();
    }

    const COMMANDS = {
        highlight: function (cmd) { showView(cmd.view); },
        hide: function () { hideView(); },
        tag: function (cmd) {
            const el = document.querySelector('[' + CFG.nodeKeyAttr + '="' + cmd.node + '"]');
            if (el) el.setAttribute(CFG.idAttr, cmd.identifier);
        },
        edit_begin: function (cmd) {
            const el = byId(cmd.elementId);
            if (!el) return;
            const before = el.innerHTML;
            const region = openRegion(el);
            if (!region) return;
            textSnapshots.set(el, before);
            region.setAttribute('contenteditable', 'true');
            editing = el;
            editRegion = region;
            region.focus();
        },
        edit_end: function (cmd) { endEdit(byId(cmd.elementId)); },
        restore_text: function (cmd) {
            const el = byId(cmd.elementId);
            if (!el) return;
            const snapshot = textSnapshots.get(el);
            if (snapshot !== undefined) el.innerHTML = snapshot;
            else el.textContent = cmd.text;
        },
        resize_begin: function (cmd) {
            const el = byId(cmd.elementId);
            if (el) styleSnapshots.set(el, el.style.cssText);
            lockSelection();
        },
        set_styles: function (cmd) {
            const el = byId(cmd.elementId);
            if (!el) return;
            Object.keys(cmd.styles).forEach(function (prop) { el.style.setProperty(prop, cmd.styles[prop]); });
        },
        resize_end: function (cmd) {
            const el = byId(cmd.elementId);
            if (el) styleSnapshots.delete(el);
            releaseSelection();
        },
        resize_cancel: function (cmd) {
            const el = byId(cmd.elementId);
            if (el && styleSnapshots.has(el)) {
                el.style.cssText = styleSnapshots.get(el);
                styleSnapshots.delete(el);
            }
            releaseSelection();
        },
        apply: function (cmd) {
            const el = byId(cmd.elementId);
            if (!el) return;
            const changes = cmd.changes || {};
            if (typeof changes.text === 'string') {
                if (el.children.length === 0) {
                    el.textContent = changes.text;
                } else {
                    for (const n of el.childNodes) {
                        if (n.nodeType === 3) { n.nodeValue = changes.text; break; }
                    }
                }
            }
            const styles = changes.styles || {};
            Object.keys(styles).forEach(function (prop) { el.style.setProperty(prop, styles[prop]); });
        },
        flash: function (cmd) {
            const el = byId(cmd.elementId);
            if (!el) return;
            const previous = el.style.outline;
            el.style.outline = '2px solid #22c55e';
            setTimeout(function () { el.style.outline = previous; }, cmd.seconds * 1000);
        },
        insert_after: function (cmd) {
            const el = byId(cmd.elementId);
            if (el) el.insertAdjacentHTML('afterend', cmd.html);
        },
        remove: function (cmd) {
            const el = byId(cmd.elementId);
            if (el) el.remove();
        },
        guard: function (cmd) { if (cmd.on) installGuard(); else uninstallGuard(); },
        cleanup: function () { teardown(); }
    };

    on(listeners, window, 'message', function (e) {
        if (e.source !== window.parent || e.origin !== PARENT_ORIGIN) return;
        const cmd = e.data;
        if (!cmd || cmd.channel !== CFG.hostChannel) return;
        const run = COMMANDS[cmd.op];
        if (!run) return;
        try {
            run(cmd);
        } catch (err) {
            console.warn('pagesmith: command failed', cmd.op, err);
        }
    });

    on(listeners, document, 'pagesmith:teardown', teardown);

    on(listeners, document, 'mousemove', function (e) {
        if (!resizing && isOverlay(e.target)) return;
        queuedMove = describe(keyed(e.target), e);
        if (!moveFrame) {
            moveFrame = requestAnimationFrame(function () {
                moveFrame = 0;
                const move = queuedMove;
                queuedMove = null;
                if (move) post('pointer_move', move);
            });
        }
    }, true);

    on(listeners, document.documentElement, 'mouseleave', function () {
        send('pointer_leave');
    });

    on(listeners, document, 'mousedown', function (e) {
        const h = e.target.closest && e.target.closest('[data-ps-handle]');
        if (!h) return;
        e.preventDefault();
        e.stopPropagation();
        send('handle_down', {
            handle: h.getAttribute('data-ps-handle'),
            elementId: handles.getAttribute('data-ps-for'),
            x: e.clientX, y: e.clientY
        });
    }, true);

    on(listeners, document, 'mouseup', function (e) {
        if (resizing) send('pointer_up', {x: e.clientX, y: e.clientY});
    }, true);

    on(listeners, document, 'click', function (e) {
        if (isOverlay(e.target)) {
            e.preventDefault();
            e.stopPropagation();
            return;
        }
        if (editing && editing.contains(e.target)) return;
        e.preventDefault();
        e.stopPropagation();
        const payload = describe(keyed(e.target), e);
        if (editing) {
            send('click', payload);
            return;
        }
        clearTimeout(pendingClick);
        pendingClick = setTimeout(function () {
            pendingClick = null;
            send('click', payload);
        }, CFG.clickDelay);
    }, true);

    on(listeners, document, 'dblclick', function (e) {
        if (editing || isOverlay(e.target)) return;
        e.preventDefault();
        e.stopPropagation();
        clearTimeout(pendingClick);
        pendingClick = null;
        const el = keyed(e.target);
        if (el) send('dblclick', describe(el, e));
    }, true);

    on(listeners, document, 'keydown', function (e) {
        if (e.key === 'Escape') {
            e.preventDefault();
            send('key', {key: 'Escape'});
        }
    }, true);

    on(listeners, document, 'input', function () {
        if (editRegion) send('text_input', {text: editRegion.textContent});
    }, true);
})();
''' % cfg


def host_relay_html(trusted_origins: Iterable[str]) -> str:
    """Host-side listener forwarding trusted frame messages to Python."""
    trusted = json.dumps(sorted(set(o.rstrip('/') for o in trusted_origins if o)))
    return f'''
        <script>
            (function() {{
                const TRUSTED = {trusted};
                window.addEventListener('message', function(e) {{
                    const data = e.data;
                    if (!data || data.channel !== {json.dumps(FRAME_CHANNEL)}) return;
                    if (!TRUSTED.includes(e.origin)) {{
                        console.warn('pagesmith: ignored frame message from', e.origin);
                        return;
                    }}
                    emitEvent({json.dumps(FRAME_EVENT)}, Object.assign({{}}, data, {{origin: e.origin}}));
                }});
            }})();
        </script>
    '''


class NiceGuiFrameBridge:
    """FrameBridge implementation running JavaScript in the host page."""

    def __init__(self, iframe_id: str, frame_origin: Optional[str] = None):
        self._iframe_id = iframe_id
        self._frame_origin = frame_origin

    def _frame_js(self, body: str) -> str:
        return f'''
            (function() {{
                const frame = document.getElementById({json.dumps(self._iframe_id)});
                if (!frame || !frame.contentWindow) return;
                {body}
            }})();
        '''

    def _send(self, op: str, **data) -> None:
        command = json.dumps({'channel': HOST_CHANNEL, 'op': op, **data})
        origin = json.dumps(self._frame_origin) if self._frame_origin else 'window.location.origin'
        ui.run_javascript(self._frame_js(f'frame.contentWindow.postMessage({command}, {origin});'))

    def inject(self, script: str) -> None:
        ui.run_javascript(self._frame_js(f'''
                const doc = frame.contentDocument;
                if (!doc || !doc.head) return;
                doc.dispatchEvent(new CustomEvent('pagesmith:teardown'));
                const previous = doc.getElementById({json.dumps(FRAME_SCRIPT_ID)});
                if (previous) previous.remove();
                const script = doc.createElement('script');
                script.id = {json.dumps(FRAME_SCRIPT_ID)};
                script.textContent = {json.dumps(script)};
                doc.head.appendChild(script);
        '''))

    def show_highlight(self, view) -> None:
        self._send('highlight', view=view.to_dict())

    def hide_highlight(self) -> None:
        self._send('hide')

    def set_identifier(self, node_key: str, identifier: str) -> None:
        self._send('tag', node=node_key, identifier=identifier)

    def begin_text_edit(self, element_id: str) -> None:
        self._send('edit_begin', elementId=element_id)

    def end_text_edit(self, element_id: str) -> None:
        self._send('edit_end', elementId=element_id)

    def restore_text(self, element_id: str, text: str) -> None:
        self._send('restore_text', elementId=element_id, text=text)

    def begin_resize(self, element_id: str) -> None:
        self._send('resize_begin', elementId=element_id)

    def set_styles(self, element_id: str, styles: Dict[str, str]) -> None:
        self._send('set_styles', elementId=element_id, styles=styles)

    def end_resize(self, element_id: str) -> None:
        self._send('resize_end', elementId=element_id)

    def cancel_resize(self, element_id: str) -> None:
        self._send('resize_cancel', elementId=element_id)

    def apply_changes(self, element_id: str, changes: Dict[str, Any]) -> None:
        self._send('apply', elementId=element_id, changes=changes)

    def flash(self, element_id: str, seconds: float) -> None:
        self._send('flash', elementId=element_id, seconds=seconds)

    def insert_after(self, element_id: str, html: str) -> None:
        self._send('insert_after', elementId=element_id, html=html)

    def remove(self, element_id: str) -> None:
        self._send('remove', elementId=element_id)

    def install_guard(self) -> None:
        self._send('guard', on=True)

    def uninstall_guard(self) -> None:
        self._send('guard', on=False)

    def cleanup(self) -> None:
        self._send('cleanup')
